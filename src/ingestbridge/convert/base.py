"""
Converter protocol and the shared record-mapping engine.

A converter is bound to one schema and one config at build time. Per flow
file it creates an ``EvaluationContext`` and lazily maps raw records from a
byte stream to ``TypedRecord`` values:

    raw bytes ──► _read(stream) ──► (line, raw, record) ──► fields ──► TypedRecord
                  (subclass)                              (transforms, coercion)

Error modes:
- ``raise-errors`` (default): the first bad record raises ``ParseError``; the
  generator stops and the caller decides what the unit's outcome is.
- ``skip-bad-records``: bad records are counted in ``ctx.failure`` and skipped.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator
from typing import Any, BinaryIO, Protocol, runtime_checkable

from ingestbridge.convert.config import ConverterConfig, FieldConfig
from ingestbridge.convert.context import EvaluationContext
from ingestbridge.convert.expressions import Expression, compile_expression
from ingestbridge.core.errors import ConfigurationError, IngestError, ParseError
from ingestbridge.core.logging import get_logger
from ingestbridge.schema.types import FeatureSchema, TypedRecord

logger = get_logger(__name__)

_DEFAULT_ID = "md5($0)"


@runtime_checkable
class Converter(Protocol):
    """Capability every converter kind provides to the pipeline."""

    @property
    def schema(self) -> FeatureSchema:
        ...

    def create_evaluation_context(
        self, globals: dict[str, Any] | None = None
    ) -> EvaluationContext:
        ...

    def process(self, stream: BinaryIO, ctx: EvaluationContext) -> Iterator[TypedRecord]:
        ...


class BaseConverter(ABC):
    """
    Base class for config-driven converters.

    Subclasses implement ``_read`` (split the stream into raw records) and
    ``_record_args`` (the positional ``$N`` arguments a transform sees).
    """

    type_name: str = ""

    def __init__(self, schema: FeatureSchema, config: ConverterConfig):
        self._schema = schema
        self._config = config
        self._id_expr = compile_expression(config.id_field or _DEFAULT_ID)
        self._fields: list[tuple[FieldConfig, Expression | None]] = [
            (f, compile_expression(f.transform) if f.transform else None)
            for f in config.fields
        ]
        self._user_data = {
            key: compile_expression(expr) for key, expr in config.user_data.items()
        }
        self._validate()

        defined = {f.name for f in config.fields}
        missing = [a for a in schema.attribute_names if a not in defined]
        if missing:
            logger.warning(
                "converter_attributes_unmapped",
                type_name=schema.type_name,
                converter=self.type_name,
                attributes=missing,
            )

    def _validate(self) -> None:
        """Check config constraints specific to a converter kind."""
        for field_config, expr in self._fields:
            if expr is None and field_config.path is None:
                raise ConfigurationError(
                    f"Field '{field_config.name}' needs a transform"
                    + (" or a path" if self.type_name == "json" else "")
                )

    @property
    def schema(self) -> FeatureSchema:
        return self._schema

    @property
    def config(self) -> ConverterConfig:
        return self._config

    def create_evaluation_context(
        self, globals: dict[str, Any] | None = None
    ) -> EvaluationContext:
        return EvaluationContext(globals=dict(globals or {}))

    @abstractmethod
    def _read(
        self, stream: BinaryIO, ctx: EvaluationContext
    ) -> Iterator[tuple[int, str, Any]]:
        """Yield ``(line_number, raw_text, parsed_record)`` for each raw record."""
        raise NotImplementedError

    @abstractmethod
    def _record_args(self, raw: str, record: Any) -> list[Any]:
        """Positional ``$N`` arguments for the id, user data and plain fields."""
        raise NotImplementedError

    def _field_args(self, field_config: FieldConfig, raw: str, record: Any) -> list[Any]:
        return self._record_args(raw, record)

    def process(self, stream: BinaryIO, ctx: EvaluationContext) -> Iterator[TypedRecord]:
        """
        Lazily convert every record in ``stream``.

        The returned generator is single-use. Closing it early (or letting a
        ``ParseError`` escape) releases the underlying reader.
        """
        skip_bad = self._config.options.error_mode == "skip-bad-records"
        for line, raw, record in self._read(stream, ctx):
            ctx.line = line
            try:
                converted = self._convert(raw, record, ctx)
            except Exception as e:
                ctx.failure += 1
                error = self._wrap_error(e, ctx)
                if not skip_bad:
                    if error is e:
                        raise
                    raise error from e
                logger.debug("record_skipped", line=line, error=error.message)
                continue
            ctx.success += 1
            yield converted

    def _convert(self, raw: str, record: Any, ctx: EvaluationContext) -> TypedRecord:
        ctx.reset_record()
        for field_config, expr in self._fields:
            args = self._field_args(field_config, raw, record)
            ctx.fields[field_config.name] = (
                expr.evaluate(args, ctx) if expr is not None else args[0]
            )

        record_args = self._record_args(raw, record)
        values = []
        for attribute in self._schema.attributes:
            try:
                values.append(attribute.coerce(ctx.fields.get(attribute.name)))
            except (TypeError, ValueError) as e:
                raise ParseError(
                    f"Cannot coerce {ctx.fields.get(attribute.name)!r} to "
                    f"{attribute.type.value} for attribute '{attribute.name}'",
                    cause=e,
                ) from e

        feature_id = self._id_expr.evaluate(record_args, ctx)
        if feature_id is None or str(feature_id) == "":
            raise ParseError("Record identifier evaluated to an empty value")

        user_data = {
            key: expr.evaluate(record_args, ctx) for key, expr in self._user_data.items()
        }
        return TypedRecord(id=str(feature_id), attributes=values, user_data=user_data)

    def _wrap_error(self, error: Exception, ctx: EvaluationContext) -> IngestError:
        if isinstance(error, ParseError):
            wrapped = error
        else:
            wrapped = ParseError(
                f"Failed to convert record at line {ctx.line}: {error}",
                cause=error,
            )
        return wrapped.with_context(
            line=ctx.line,
            type_name=self._schema.type_name,
            converter=self.type_name,
            provenance=ctx.input_file_path or None,
        )


__all__ = ["Converter", "BaseConverter"]
