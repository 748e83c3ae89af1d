"""Tests for ingestbridge.core.errors module."""

import pytest

from ingestbridge.core.errors import (
    AppendError,
    BackendConnectionError,
    ConfigurationError,
    ErrorCategory,
    ErrorContext,
    IngestError,
    ParseError,
    ProcessorStateError,
    SchemaConflictError,
    SchemaError,
    SourceError,
    StorageError,
    StreamReadError,
    TransientError,
    categorize_error,
)


class TestErrorContext:
    """Test ErrorContext dataclass."""

    def test_empty_context_to_dict(self):
        """Unset fields are dropped."""
        assert ErrorContext().to_dict() == {}

    def test_context_fields_and_metadata(self):
        ctx = ErrorContext(provenance="/in/obs.csv", line=3, metadata={"column": 2})
        assert ctx.to_dict() == {"provenance": "/in/obs.csv", "line": 3, "column": 2}


class TestIngestError:
    """Test the base error."""

    def test_defaults(self):
        err = IngestError("boom")
        assert err.message == "boom"
        assert err.category == ErrorCategory.INTERNAL
        assert err.retryable is False
        assert str(err) == "boom"

    def test_cause_is_chained(self):
        cause = ValueError("bad value")
        err = ParseError("could not parse", cause=cause)
        assert err.cause is cause
        assert err.__cause__ is cause
        assert err.to_dict()["cause"] == "ValueError: bad value"

    def test_with_context_sets_typed_fields(self):
        """Known keys land on the context, unknown keys in metadata."""
        err = ParseError("bad").with_context(line=7, provenance="/x", column="ts")
        assert err.context.line == 7
        assert err.context.provenance == "/x"
        assert err.context.metadata == {"column": "ts"}

    def test_with_context_returns_self(self):
        err = StreamReadError("bad")
        assert err.with_context(line=1) is err

    def test_to_dict(self):
        err = AppendError("no slot").with_context(type_name="obs")
        data = err.to_dict()
        assert data["error_type"] == "AppendError"
        assert data["category"] == "STORAGE"
        assert data["context"] == {"type_name": "obs"}

    def test_category_override(self):
        err = IngestError("x", category=ErrorCategory.AUTH, retryable=True)
        assert err.category == ErrorCategory.AUTH
        assert err.retryable is True


class TestHierarchy:
    """Each spec-level fault maps to its class and category."""

    @pytest.mark.parametrize(
        "cls,base,category",
        [
            (ConfigurationError, IngestError, ErrorCategory.CONFIG),
            (BackendConnectionError, TransientError, ErrorCategory.NETWORK),
            (SchemaConflictError, SchemaError, ErrorCategory.VALIDATION),
            (StreamReadError, SourceError, ErrorCategory.SOURCE),
            (ParseError, SourceError, ErrorCategory.PARSE),
            (AppendError, StorageError, ErrorCategory.STORAGE),
            (ProcessorStateError, IngestError, ErrorCategory.INTERNAL),
        ],
    )
    def test_class_layout(self, cls, base, category):
        assert issubclass(cls, base)
        assert cls.default_category == category

    def test_schema_conflict_carries_both_layouts(self):
        err = SchemaConflictError("obs", "id:String", "id:Integer")
        assert err.type_name == "obs"
        assert err.existing == "id:String"
        assert err.requested == "id:Integer"
        assert "obs" in err.message

    def test_backend_connection_error_is_retryable(self):
        assert BackendConnectionError("down").retryable is True

    def test_configuration_error_not_retryable(self):
        assert ConfigurationError("missing").retryable is False


class TestHelpers:
    def test_categorize_error(self):
        assert categorize_error(ParseError("bad")) == ErrorCategory.PARSE
        assert categorize_error(FileNotFoundError()) == ErrorCategory.SOURCE
        assert categorize_error(ValueError()) == ErrorCategory.PARSE
        assert categorize_error(KeyError("k")) == ErrorCategory.PARSE
        assert categorize_error(ConnectionRefusedError()) == ErrorCategory.NETWORK
        assert categorize_error(RuntimeError()) == ErrorCategory.UNKNOWN
