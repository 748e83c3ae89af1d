"""
JSON converter for newline-delimited JSON (one object per line).

A field either declares a dotted ``path`` into the object, with an optional
transform that sees the extracted value as ``$0``, or a plain transform that
sees the raw line as ``$0``.

Example::

    fields:
      - name: name
        path: properties.name
      - name: lon
        path: geometry.coordinates.0
      - name: lat
        path: geometry.coordinates.1
      - name: geom
        transform: point($lon, $lat)
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from typing import Any, BinaryIO

from ingestbridge.convert.base import BaseConverter
from ingestbridge.convert.config import FieldConfig
from ingestbridge.convert.context import EvaluationContext
from ingestbridge.convert.registry import register_converter


def lookup_path(record: Any, path: str) -> Any:
    """Follow a dotted path through nested dicts and lists. Missing keys give None."""
    current = record
    for part in path.split("."):
        if isinstance(current, dict):
            current = current.get(part)
        elif isinstance(current, list) and part.lstrip("-").isdigit():
            index = int(part)
            current = current[index] if -len(current) <= index < len(current) else None
        else:
            return None
        if current is None:
            return None
    return current


@register_converter("json")
class JsonConverter(BaseConverter):
    """Converter for newline-delimited JSON objects."""

    def _read(
        self, stream: BinaryIO, ctx: EvaluationContext
    ) -> Iterator[tuple[int, str, Any]]:
        encoding = self._config.options.encoding
        for line_number, line in enumerate(stream, start=1):
            if line_number <= self._config.options.skip_lines:
                continue
            text = line.decode(encoding).strip()
            if not text:
                continue
            try:
                record = json.loads(text)
            except json.JSONDecodeError as e:
                # Surfaces through the converter's error mode like any bad record
                record = e
            yield line_number, text, record

    def _record_args(self, raw: str, record: Any) -> list[Any]:
        if isinstance(record, json.JSONDecodeError):
            raise ValueError(f"Invalid JSON: {record.msg}")
        return [raw]

    def _field_args(self, field_config: FieldConfig, raw: str, record: Any) -> list[Any]:
        if isinstance(record, json.JSONDecodeError):
            raise ValueError(f"Invalid JSON: {record.msg}")
        if field_config.path is not None:
            return [lookup_path(record, field_config.path)]
        return self._record_args(raw, record)


__all__ = ["JsonConverter", "lookup_path"]
