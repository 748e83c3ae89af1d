"""
Named schema registry.

Schemas can be registered directly, as compact specs (parsed lazily on first
lookup), or loaded from YAML files. The processor's ``schema_name`` property
is resolved against this registry; ``list_names()`` is the set of allowable
values a host can offer.

Schema file layout::

    schemas:
      obs:
        spec: "id:String,ts:Timestamp,*geom:Point"
      tracks:
        attributes:
          - {name: track_id, type: String}
          - {name: geom, type: Point, default: true}

Usage:
    from ingestbridge.schema.registry import schema_registry

    schema_registry.register_spec("obs", "id:String,ts:Timestamp,*geom:Point")
    schema = schema_registry.resolve_by_name("obs")
"""

from __future__ import annotations

from pathlib import Path

import yaml

from ingestbridge.core.errors import SchemaError
from ingestbridge.core.logging import get_logger
from ingestbridge.schema.spec import definition_from_mapping, parse_inline
from ingestbridge.schema.types import FeatureSchema

logger = get_logger(__name__)


class SchemaRegistry:
    """Registry of named schemas."""

    def __init__(self):
        self._schemas: dict[str, FeatureSchema] = {}
        self._specs: dict[str, str] = {}

    def register(self, schema: FeatureSchema, *, name: str | None = None) -> None:
        """Register a schema under ``name`` (defaults to its type name)."""
        key = name or schema.type_name
        self._schemas[key] = schema
        self._specs.pop(key, None)
        logger.debug("schema_registered", name=key, type_name=schema.type_name)

    def register_spec(self, name: str, spec: str) -> None:
        """Register an inline spec for lazy parsing under ``name``."""
        self._specs[name] = spec
        self._schemas.pop(name, None)

    def resolve_by_name(self, name: str) -> FeatureSchema:
        """
        Look up a registered schema.

        Raises:
            SchemaError: If no schema is registered under ``name`` or its
                deferred spec fails to parse.
        """
        if name in self._schemas:
            return self._schemas[name]
        if name in self._specs:
            schema = parse_inline(self._specs[name], type_name=name)
            self._schemas[name] = schema
            del self._specs[name]
            return schema
        available = ", ".join(self.list_names()) or "<none>"
        raise SchemaError(f"Schema not found: {name}. Available: {available}")

    def resolve_by_inline_spec(
        self, spec: str, type_name_override: str | None = None
    ) -> FeatureSchema:
        """Parse an inline schema spec, applying an optional type-name override."""
        return parse_inline(spec, type_name=type_name_override)

    def list_names(self) -> list[str]:
        return sorted(set(self._schemas) | set(self._specs))

    def __contains__(self, name: str) -> bool:
        return name in self._schemas or name in self._specs

    def load_file(self, path: str | Path) -> list[str]:
        """Load every schema in a YAML schema file. Returns the names loaded."""
        path = Path(path)
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as e:
            raise SchemaError(f"Cannot read schema file {path}: {e}", cause=e) from e
        entries = data.get("schemas") if isinstance(data, dict) else None
        if not isinstance(entries, dict):
            raise SchemaError(f"Schema file {path} has no 'schemas' mapping")

        loaded = []
        for name, entry in entries.items():
            if isinstance(entry, str):
                self.register_spec(name, entry)
            else:
                self.register(definition_from_mapping(entry).to_schema(name), name=name)
            loaded.append(name)
        logger.info("schema_file_loaded", path=str(path), schemas=loaded)
        return loaded

    def clear(self) -> None:
        """Clear registry (for testing)."""
        self._schemas.clear()
        self._specs.clear()


# Global registry instance
schema_registry = SchemaRegistry()


def register_schema(schema: FeatureSchema) -> FeatureSchema:
    """Register a schema with the global registry."""
    schema_registry.register(schema)
    return schema


def load_schema_file(path: str | Path) -> list[str]:
    """Load a YAML schema file into the global registry."""
    return schema_registry.load_file(path)


__all__ = [
    "SchemaRegistry",
    "schema_registry",
    "register_schema",
    "load_schema_file",
]
