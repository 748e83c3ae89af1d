"""Resolve the processor's converter properties into a live Converter."""

from __future__ import annotations

from ingestbridge.convert.base import Converter
from ingestbridge.convert.registry import ConverterRegistry, converter_registry
from ingestbridge.core.errors import ConfigurationError, IngestError
from ingestbridge.core.logging import get_logger
from ingestbridge.schema.types import FeatureSchema

logger = get_logger(__name__)


def _present(value: str | None) -> bool:
    return value is not None and value.strip() != ""


def resolve_converter(
    name: str | None,
    spec: str | None,
    schema: FeatureSchema,
    *,
    registry: ConverterRegistry | None = None,
    strict: bool = True,
) -> Converter:
    """
    Build a converter bound to ``schema`` from a registered name or an inline config.

    Resolution follows the same rules as ``resolve_schema``: a name wins over
    an inline config, and strict mode rejects both being set. Nothing is
    retried.

    Raises:
        ConfigurationError: Neither source is present, both are present in
            strict mode, or the config cannot be found, parsed or built.
    """
    registry = registry or converter_registry
    has_name, has_spec = _present(name), _present(spec)

    if not has_name and not has_spec:
        raise ConfigurationError("Must provide either converter_name or converter_spec")
    if strict and has_name and has_spec:
        raise ConfigurationError(
            "Provide only one of converter_name or converter_spec, not both"
        )

    source = name.strip() if has_name else "<inline>"
    try:
        if has_name:
            config = registry.resolve_config_by_name(name.strip())
        else:
            config = registry.resolve_config_by_inline_spec(spec)
        converter = registry.build(schema, config)
    except IngestError as e:
        raise ConfigurationError(
            f"Could not resolve converter {source!r} for type {schema.type_name!r}: {e.message}",
            cause=e,
        ) from e
    except Exception as e:
        # Factories are pluggable; whatever they raise is a bad converter config
        raise ConfigurationError(
            f"Could not build converter {source!r} for type {schema.type_name!r}: "
            f"{type(e).__name__}: {e}",
            cause=e,
        ) from e

    logger.debug(
        "converter_resolved",
        converter=source,
        type=config.type,
        type_name=schema.type_name,
    )
    return converter


__all__ = ["resolve_converter"]
