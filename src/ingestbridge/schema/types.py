"""
Canonical record shapes: attribute types, schemas and typed records.

A ``FeatureSchema`` is a named, ordered list of typed attributes. It is
resolved once at processor start and never mutated afterwards; renaming
produces a new instance.

Design Principles:
- Immutable once resolved (frozen dataclasses)
- Schema order is the positional order of ``TypedRecord.attributes``
- Coercion lives on the attribute type so converters and writers agree
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any

from ingestbridge.core.errors import SchemaError


_POINT_WKT = re.compile(
    r"^\s*POINT\s*\(\s*([-+0-9.eE]+)\s+([-+0-9.eE]+)\s*\)\s*$", re.IGNORECASE
)

_TRUE = {"true", "t", "yes", "y", "1"}
_FALSE = {"false", "f", "no", "n", "0"}


@dataclass(frozen=True)
class Point:
    """A 2D point geometry in (x=lon, y=lat) order."""

    x: float
    y: float

    @property
    def wkt(self) -> str:
        return f"POINT ({_fmt(self.x)} {_fmt(self.y)})"

    @classmethod
    def from_wkt(cls, text: str) -> Point:
        match = _POINT_WKT.match(text)
        if not match:
            raise ValueError(f"Not a POINT WKT: {text!r}")
        return cls(float(match.group(1)), float(match.group(2)))

    def __str__(self) -> str:
        return self.wkt


def _fmt(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else repr(float(value))


def parse_datetime(value: str) -> datetime:
    """Parse an ISO-8601 string, treating a trailing ``Z`` as UTC."""
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class AttributeType(str, Enum):
    """Supported attribute types."""

    STRING = "String"
    INTEGER = "Integer"
    LONG = "Long"
    FLOAT = "Float"
    DOUBLE = "Double"
    BOOLEAN = "Boolean"
    DATE = "Date"
    TIMESTAMP = "Timestamp"
    UUID = "UUID"
    POINT = "Point"
    BYTES = "Bytes"

    @classmethod
    def parse(cls, name: str) -> AttributeType:
        """Look up a type by name or alias, case-insensitively."""
        key = name.strip().lower()
        if key in _TYPE_ALIASES:
            return _TYPE_ALIASES[key]
        raise SchemaError(f"Unknown attribute type: {name!r}", value=name)

    @property
    def is_geometry(self) -> bool:
        return self is AttributeType.POINT

    def coerce(self, value: Any) -> Any:
        """
        Convert ``value`` to this type's Python representation.

        ``None`` passes through unchanged. Raises ``ValueError`` or
        ``TypeError`` when the value cannot be represented.
        """
        if value is None:
            return None
        match self:
            case AttributeType.STRING:
                return value if isinstance(value, str) else str(value)
            case AttributeType.INTEGER | AttributeType.LONG:
                if isinstance(value, bool):
                    raise TypeError("boolean is not an integer")
                if isinstance(value, float):
                    if not value.is_integer():
                        raise ValueError(f"Not an integral value: {value!r}")
                    return int(value)
                return int(value.strip()) if isinstance(value, str) else int(value)
            case AttributeType.FLOAT | AttributeType.DOUBLE:
                return float(value.strip()) if isinstance(value, str) else float(value)
            case AttributeType.BOOLEAN:
                if isinstance(value, bool):
                    return value
                text = str(value).strip().lower()
                if text in _TRUE:
                    return True
                if text in _FALSE:
                    return False
                raise ValueError(f"Not a boolean: {value!r}")
            case AttributeType.DATE | AttributeType.TIMESTAMP:
                if isinstance(value, datetime):
                    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
                if isinstance(value, date):
                    return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
                if isinstance(value, (int, float)) and not isinstance(value, bool):
                    return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
                return parse_datetime(str(value))
            case AttributeType.UUID:
                return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))
            case AttributeType.POINT:
                if isinstance(value, Point):
                    return value
                if isinstance(value, (tuple, list)) and len(value) == 2:
                    return Point(float(value[0]), float(value[1]))
                return Point.from_wkt(str(value))
            case AttributeType.BYTES:
                if isinstance(value, (bytes, bytearray)):
                    return bytes(value)
                return str(value).encode("utf-8")
        raise TypeError(f"Unhandled attribute type {self}")


_TYPE_ALIASES: dict[str, AttributeType] = {
    "string": AttributeType.STRING,
    "str": AttributeType.STRING,
    "int": AttributeType.INTEGER,
    "integer": AttributeType.INTEGER,
    "long": AttributeType.LONG,
    "float": AttributeType.FLOAT,
    "double": AttributeType.DOUBLE,
    "boolean": AttributeType.BOOLEAN,
    "bool": AttributeType.BOOLEAN,
    "date": AttributeType.DATE,
    "timestamp": AttributeType.TIMESTAMP,
    "uuid": AttributeType.UUID,
    "point": AttributeType.POINT,
    "bytes": AttributeType.BYTES,
}


@dataclass(frozen=True)
class AttributeDescriptor:
    """One typed attribute of a schema."""

    name: str
    type: AttributeType
    default_geometry: bool = False
    options: dict[str, str] = field(default_factory=dict)

    def coerce(self, value: Any) -> Any:
        return self.type.coerce(value)


@dataclass(frozen=True)
class FeatureSchema:
    """
    Named, ordered list of typed attributes.

    Identity is ``type_name``. Two schemas are compatible when their encoded
    specs (attribute names, types and options in order) are equal.

    Examples:
        >>> schema = parse_spec("id:String,ts:Timestamp,*geom:Point", type_name="obs")
        >>> schema.attribute_names
        ('id', 'ts', 'geom')
        >>> schema.geometry_attribute.name
        'geom'
    """

    type_name: str
    attributes: tuple[AttributeDescriptor, ...]
    user_data: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.type_name or not self.type_name.strip():
            raise SchemaError("Schema type name must not be empty")
        if not self.attributes:
            raise SchemaError(f"Schema '{self.type_name}' has no attributes")
        names = [a.name for a in self.attributes]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise SchemaError(
                f"Schema '{self.type_name}' has duplicate attributes: {duplicates}"
            )
        defaults = [a.name for a in self.attributes if a.default_geometry]
        if len(defaults) > 1:
            raise SchemaError(
                f"Schema '{self.type_name}' declares more than one default geometry: {defaults}"
            )

    @property
    def attribute_names(self) -> tuple[str, ...]:
        return tuple(a.name for a in self.attributes)

    @property
    def geometry_attribute(self) -> AttributeDescriptor | None:
        """The default geometry, falling back to the first geometry attribute."""
        for attribute in self.attributes:
            if attribute.default_geometry:
                return attribute
        for attribute in self.attributes:
            if attribute.type.is_geometry:
                return attribute
        return None

    def index_of(self, name: str) -> int:
        for i, attribute in enumerate(self.attributes):
            if attribute.name == name:
                return i
        raise SchemaError(f"Schema '{self.type_name}' has no attribute '{name}'", field=name)

    def attribute(self, name: str) -> AttributeDescriptor:
        return self.attributes[self.index_of(name)]

    def renamed(self, type_name: str) -> FeatureSchema:
        """Return a copy of this schema under a different type name."""
        return replace(self, type_name=type_name)

    def coerce_values(self, values: list[Any]) -> list[Any]:
        """Coerce a positional value list to this schema's attribute types."""
        if len(values) != len(self.attributes):
            raise SchemaError(
                f"Expected {len(self.attributes)} attribute values for "
                f"'{self.type_name}', got {len(values)}"
            )
        return [a.coerce(v) for a, v in zip(self.attributes, values)]

    def to_spec(self) -> str:
        """Encode as a compact spec string (without the type name)."""
        from ingestbridge.schema.spec import encode_spec

        return encode_spec(self)


@dataclass
class TypedRecord:
    """One converted record: identifier, positional values, auxiliary metadata."""

    id: str
    attributes: list[Any]
    user_data: dict[str, Any] = field(default_factory=dict)


__all__ = [
    "AttributeType",
    "AttributeDescriptor",
    "FeatureSchema",
    "TypedRecord",
    "Point",
    "parse_datetime",
]
