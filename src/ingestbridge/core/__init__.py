"""
Core primitives shared by every ingest-bridge layer.

Architecture::

    errors.py      Structured error hierarchy (IngestError and subclasses)
    result.py      Result[T] envelope (Ok / Err)
    logging.py     structlog configuration and context binding
    settings.py    Environment-driven settings (pydantic-settings)
"""

from ingestbridge.core.errors import (
    AppendError,
    BackendConnectionError,
    ConfigurationError,
    ErrorCategory,
    IngestError,
    ParseError,
    ProcessorStateError,
    SchemaConflictError,
    SchemaError,
    StreamReadError,
)
from ingestbridge.core.result import Err, Ok, Result

__all__ = [
    # Errors
    "ErrorCategory",
    "IngestError",
    "ConfigurationError",
    "BackendConnectionError",
    "SchemaError",
    "SchemaConflictError",
    "StreamReadError",
    "ParseError",
    "AppendError",
    "ProcessorStateError",
    # Result
    "Ok",
    "Err",
    "Result",
]
