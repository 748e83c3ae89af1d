"""Resolve the processor's schema properties into one FeatureSchema."""

from __future__ import annotations

from ingestbridge.core.errors import ConfigurationError, IngestError
from ingestbridge.schema.registry import SchemaRegistry, schema_registry
from ingestbridge.schema.types import FeatureSchema


def _present(value: str | None) -> bool:
    return value is not None and value.strip() != ""


def resolve_schema(
    name: str | None,
    spec: str | None,
    type_name_override: str | None = None,
    *,
    registry: SchemaRegistry | None = None,
    strict: bool = True,
) -> FeatureSchema:
    """
    Resolve a schema from a registry name or an inline spec.

    A registry name takes precedence over an inline spec. In strict mode,
    supplying both is rejected as ambiguous. The override, when given,
    becomes the resolved schema's type name.

    Raises:
        ConfigurationError: Neither source is present, both are present in
            strict mode, or the lookup/parse yields no schema.
    """
    registry = registry or schema_registry
    has_name, has_spec = _present(name), _present(spec)

    if not has_name and not has_spec:
        raise ConfigurationError("Must provide either schema_name or schema_spec")
    if strict and has_name and has_spec:
        raise ConfigurationError(
            "Provide only one of schema_name or schema_spec, not both"
        )

    override = type_name_override if _present(type_name_override) else None
    source = name if has_name else spec
    try:
        if has_name:
            schema = registry.resolve_by_name(name.strip())
            if override:
                schema = schema.renamed(override)
        else:
            schema = registry.resolve_by_inline_spec(spec, override)
    except IngestError as e:
        raise ConfigurationError(
            f"Could not resolve schema from config value {source!r} "
            f"and type name {override!r}: {e.message}",
            cause=e,
        ) from e

    if schema is None:
        raise ConfigurationError(
            f"Could not resolve schema from config value {source!r} and type name {override!r}"
        )
    return schema


__all__ = ["resolve_schema"]
