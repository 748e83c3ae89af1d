"""
Structured error types for ingest-bridge.

Every failure the bridge can report is an ``IngestError`` carrying a category,
a retryable flag, structured context, and an optional chained cause. The
hierarchy is split along the two phases of a processor's life:

- **Startup-fatal:** configuration, backend connection and schema conflicts.
  These surface from ``IngestProcessor.on_start`` as ``Err(...)`` and keep the
  processor out of the ACTIVE state.
- **Per-unit:** stream read, parse and append faults. These are caught inside
  the pipeline, logged with the flow file's provenance, and folded into a
  FAILURE outcome for that one unit of work.

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                        IngestError                               │
        │  (category, retryable, retry_after, context, cause)             │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  TransientError       SourceError         ValidationError        │
        │  (retryable=True)     (SOURCE)            (VALIDATION)           │
        │       │                   │                    │                 │
        │  BackendConnection    StreamReadError     SchemaError            │
        │  Error                ParseError          SchemaConflictError    │
        │                                                                  │
        │  ConfigError          StorageError        ProcessorStateError    │
        │  (CONFIG)             (STORAGE)           (INTERNAL)             │
        │       │                   │                                      │
        │  ConfigurationError   AppendError                                │
        └─────────────────────────────────────────────────────────────────┘

Examples:
    >>> error = ParseError("Bad column count").with_context(line=2)
    >>> error.context.line
    2
    >>> error.retryable
    False

Usage:
    from ingestbridge.core.errors import ConfigurationError

    if not (name or spec):
        raise ConfigurationError("Must provide either schema_name or schema_spec")
"""

from __future__ import annotations

import csv
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    # Infrastructure errors (usually transient)
    NETWORK = "NETWORK"           # Unreachable backend, DNS
    DATABASE = "DATABASE"         # Query, transaction
    STORAGE = "STORAGE"           # Append, commit

    # Source/data errors
    SOURCE = "SOURCE"             # Flow file stream
    PARSE = "PARSE"               # Converter faults
    VALIDATION = "VALIDATION"     # Schema violations, conflicts

    # Configuration errors (never retryable)
    CONFIG = "CONFIG"             # Missing or malformed properties
    AUTH = "AUTH"                 # Rejected credentials

    # Internal errors
    INTERNAL = "INTERNAL"         # Lifecycle misuse, bugs
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Typed fields cover what the bridge knows at the point of failure; anything
    else goes into ``metadata``. ``to_dict()`` drops unset fields so log lines
    stay compact.

    Attributes:
        provenance: path + filename of the flow file being processed
        type_name: feature type the processor is bound to
        converter: converter name or type
        backend: storage backend identifier (``memory``, ``sqlite``, ...)
        line: record/line number inside the flow file
        metadata: additional key-value pairs
    """

    provenance: str | None = None
    type_name: str | None = None
    converter: str | None = None
    backend: str | None = None
    line: int | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["provenance", "type_name", "converter", "backend", "line"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class IngestError(Exception):
    """
    Base exception for all ingest-bridge errors.

    Subclasses set ``default_category`` and ``default_retryable``; callers can
    override either per instance. Passing ``cause=`` chains the original
    exception so tracebacks keep the root cause.

    Examples:
        >>> err = IngestError("Something went wrong")
        >>> err.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> err.to_dict()["error_type"]
        'IngestError'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        retry_after: int | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.retry_after = retry_after
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> IngestError:
        """
        Add context to this error (fluent API).

        Usage:
            raise ParseError("Bad record").with_context(line=12, provenance=p)
        """
        for key, value in kwargs.items():
            if key != "metadata" and hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        if self.retry_after is not None:
            result["retry_after"] = self.retry_after
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = f"{type(self.cause).__name__}: {self.cause}"
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# TRANSIENT ERRORS
# =============================================================================


class TransientError(IngestError):
    """Temporary error that may succeed on retry."""

    default_category = ErrorCategory.NETWORK
    default_retryable = True


class BackendConnectionError(TransientError):
    """Storage backend is unreachable or rejected the connection."""

    default_category = ErrorCategory.NETWORK


# =============================================================================
# SOURCE ERRORS
# =============================================================================


class SourceError(IngestError):
    """Error raised while reading a flow file."""

    default_category = ErrorCategory.SOURCE
    default_retryable = False


class StreamReadError(SourceError):
    """The flow file's byte stream could not be opened or read."""

    pass


class ParseError(SourceError):
    """The converter could not turn raw input into a typed record."""

    default_category = ErrorCategory.PARSE


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(IngestError):
    """
    Data validation error.

    Never retryable - the data or schema must be fixed.
    """

    default_category = ErrorCategory.VALIDATION
    default_retryable = False

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.field:
            result["field"] = self.field
        if self.value is not None:
            result["value"] = repr(self.value)
        return result


class SchemaError(ValidationError):
    """Schema definition or lookup error."""

    pass


class SchemaConflictError(SchemaError):
    """A different schema with the same type name already exists in the backend."""

    def __init__(self, type_name: str, existing: str, requested: str):
        self.type_name = type_name
        self.existing = existing
        self.requested = requested
        super().__init__(
            f"Schema '{type_name}' already exists with an incompatible definition: "
            f"existing={existing!r} requested={requested!r}"
        )


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(IngestError):
    """
    Configuration error.

    Never retryable - configuration must be fixed.
    """

    default_category = ErrorCategory.CONFIG
    default_retryable = False


class ConfigurationError(ConfigError):
    """Missing, ambiguous or unresolvable schema/converter configuration."""

    pass


# =============================================================================
# STORAGE ERRORS
# =============================================================================


class StorageError(IngestError):
    """Storage backend error."""

    default_category = ErrorCategory.STORAGE
    default_retryable = False


class AppendError(StorageError):
    """A record slot could not be allocated, populated or committed."""

    pass


# =============================================================================
# LIFECYCLE ERRORS
# =============================================================================


class ProcessorStateError(IngestError):
    """Operation attempted in the wrong lifecycle state."""

    default_category = ErrorCategory.INTERNAL


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def categorize_error(error: Exception) -> ErrorCategory:
    """Get the category of an error. Non-ingest exceptions are mapped by type."""
    if isinstance(error, IngestError):
        return error.category
    if isinstance(error, (ConnectionError, TimeoutError)):
        return ErrorCategory.NETWORK
    if isinstance(error, OSError):
        return ErrorCategory.SOURCE
    if isinstance(error, (ValueError, TypeError, LookupError, csv.Error)):
        return ErrorCategory.PARSE
    return ErrorCategory.UNKNOWN


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "IngestError",
    "TransientError",
    "BackendConnectionError",
    "SourceError",
    "StreamReadError",
    "ParseError",
    "ValidationError",
    "SchemaError",
    "SchemaConflictError",
    "ConfigError",
    "ConfigurationError",
    "StorageError",
    "AppendError",
    "ProcessorStateError",
    "categorize_error",
]
