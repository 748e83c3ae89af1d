"""
Converter registry: converter kinds and named converter configs.

Two tables live here:

- **Kinds** map a config ``type`` (``delimited-text``, ``json``) to a factory
  ``(schema, config) -> Converter``. Built-in kinds register at import time
  through ``@register_converter``; new kinds register the same way without
  touching the pipeline.
- **Named configs** map a converter name to a ``ConverterConfig`` (or to an
  inline spec parsed on first lookup). The processor's ``converter_name``
  property resolves against this table.

Converter file layout::

    converters:
      obs-csv:
        type: delimited-text
        id-field: $1
        fields: [...]
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import yaml

from ingestbridge.convert.base import Converter
from ingestbridge.convert.config import ConverterConfig
from ingestbridge.core.errors import ConfigurationError
from ingestbridge.core.logging import get_logger
from ingestbridge.schema.types import FeatureSchema

logger = get_logger(__name__)

ConverterFactory = Callable[[FeatureSchema, ConverterConfig], Converter]

# Converter kinds registered via @register_converter
_kinds: dict[str, ConverterFactory] = {}
_loaded: bool = False


def register_converter(type_name: str) -> Callable[[type], type]:
    """Decorator registering a converter class under a config ``type``."""

    def decorator(cls: type) -> type:
        if type_name in _kinds:
            raise ValueError(f"Converter type '{type_name}' is already registered")
        _kinds[type_name] = cls
        cls.type_name = type_name
        logger.debug("converter_type_registered", type=type_name, cls=cls.__name__)
        return cls

    return decorator


def _ensure_loaded() -> None:
    """Import the built-in converter modules so their kinds register."""
    global _loaded
    if not _loaded:
        from ingestbridge.convert import delimited, json_lines  # noqa: F401

        _loaded = True


class ConverterRegistry:
    """Registry of converter kinds and named converter configs."""

    def __init__(self):
        self._factories: dict[str, ConverterFactory] = {}
        self._configs: dict[str, ConverterConfig] = {}
        self._specs: dict[str, str] = {}

    # ── kinds ────────────────────────────────────────────────────

    def register_factory(self, type_name: str, factory: ConverterFactory) -> None:
        """Register a converter kind on this registry only."""
        self._factories[type_name] = factory

    def _factory(self, type_name: str) -> ConverterFactory:
        _ensure_loaded()
        factory = self._factories.get(type_name) or _kinds.get(type_name)
        if factory is None:
            available = ", ".join(self.list_types())
            raise ConfigurationError(
                f"Unknown converter type '{type_name}'. Available: {available}"
            )
        return factory

    def list_types(self) -> list[str]:
        _ensure_loaded()
        return sorted(set(_kinds) | set(self._factories))

    # ── named configs ────────────────────────────────────────────

    def register_config(self, name: str, config: ConverterConfig) -> None:
        self._configs[name] = config
        self._specs.pop(name, None)
        logger.debug("converter_config_registered", name=name, type=config.type)

    def register_spec(self, name: str, spec: str) -> None:
        """Register an inline config for lazy parsing under ``name``."""
        self._specs[name] = spec
        self._configs.pop(name, None)

    def resolve_config_by_name(self, name: str) -> ConverterConfig:
        if name in self._configs:
            return self._configs[name]
        if name in self._specs:
            config = ConverterConfig.from_yaml(self._specs[name])
            self._configs[name] = config
            del self._specs[name]
            return config
        available = ", ".join(self.list_names()) or "<none>"
        raise ConfigurationError(f"Converter not found: {name}. Available: {available}")

    def resolve_config_by_inline_spec(self, spec: str) -> ConverterConfig:
        return ConverterConfig.from_yaml(spec)

    def list_names(self) -> list[str]:
        return sorted(set(self._configs) | set(self._specs))

    def __contains__(self, name: str) -> bool:
        return name in self._configs or name in self._specs

    def load_file(self, path: str | Path) -> list[str]:
        """Load every converter in a YAML converter file. Returns the names loaded."""
        path = Path(path)
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Cannot read converter file {path}: {e}", cause=e) from e
        entries = data.get("converters") if isinstance(data, dict) else None
        if not isinstance(entries, dict):
            raise ConfigurationError(f"Converter file {path} has no 'converters' mapping")

        for name, entry in entries.items():
            self.register_config(name, ConverterConfig.from_mapping(entry))
        logger.info("converter_file_loaded", path=str(path), converters=list(entries))
        return list(entries)

    # ── build ────────────────────────────────────────────────────

    def build(self, schema: FeatureSchema, config: ConverterConfig) -> Converter:
        """Build a live converter of ``config.type`` bound to ``schema``."""
        return self._factory(config.type)(schema, config)

    def clear(self) -> None:
        """Clear named configs and per-instance kinds (for testing)."""
        self._factories.clear()
        self._configs.clear()
        self._specs.clear()


# Global registry instance
converter_registry = ConverterRegistry()


def load_converter_file(path: str | Path) -> list[str]:
    """Load a YAML converter file into the global registry."""
    return converter_registry.load_file(path)


__all__ = [
    "ConverterFactory",
    "ConverterRegistry",
    "converter_registry",
    "register_converter",
    "load_converter_file",
]
