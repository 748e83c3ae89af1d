"""
Schema spec parsing and encoding.

Two inline forms are accepted.

Compact spec string (one line)::

    id:String,ts:Timestamp,*geom:Point:srid=4326;table.sharing=false

- attributes are comma separated ``name:Type[:key=value]*``
- a leading ``*`` marks the default geometry
- an optional ``;key=value,...`` suffix carries schema user data
- the type name comes from the caller (registry key or override)

YAML/JSON mapping (multi-line, or a single-line ``{...}`` flow mapping)::

    type-name: obs
    attributes:
      - {name: id, type: String}
      - {name: ts, type: Timestamp}
      - {name: geom, type: Point, default: true, options: {srid: "4326"}}
    user-data:
      table.sharing: "false"
"""

from __future__ import annotations

from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ingestbridge.core.errors import SchemaError
from ingestbridge.schema.types import AttributeDescriptor, AttributeType, FeatureSchema


class AttributeSpec(BaseModel):
    """One attribute in a mapping-form schema definition."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1)
    default: bool = Field(default=False, description="Marks the default geometry")
    options: dict[str, str] = Field(default_factory=dict)

    def to_descriptor(self) -> AttributeDescriptor:
        return AttributeDescriptor(
            name=self.name,
            type=AttributeType.parse(self.type),
            default_geometry=self.default,
            options=dict(self.options),
        )


class SchemaDefinition(BaseModel):
    """Mapping-form schema definition, as found inline or in schema files."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    type_name: str | None = Field(default=None, alias="type-name")
    attributes: list[AttributeSpec] | None = None
    spec: str | None = Field(default=None, description="Compact spec, alternative to attributes")
    user_data: dict[str, str] = Field(default_factory=dict, alias="user-data")

    def to_schema(self, type_name: str | None = None) -> FeatureSchema:
        name = type_name or self.type_name
        if not name:
            raise SchemaError("Schema definition has no type-name")
        if self.spec is not None:
            if self.attributes:
                raise SchemaError(f"Schema '{name}' defines both 'spec' and 'attributes'")
            schema = parse_spec(self.spec, type_name=name)
            if self.user_data:
                schema = FeatureSchema(
                    name, schema.attributes, {**schema.user_data, **self.user_data}
                )
            return schema
        if not self.attributes:
            raise SchemaError(f"Schema '{name}' defines no attributes")
        return FeatureSchema(
            type_name=name,
            attributes=tuple(a.to_descriptor() for a in self.attributes),
            user_data=dict(self.user_data),
        )


def _parse_pairs(text: str, what: str) -> dict[str, str]:
    pairs: dict[str, str] = {}
    for item in text.split(","):
        item = item.strip()
        if not item:
            continue
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise SchemaError(f"Malformed {what} entry: {item!r}")
        pairs[key.strip()] = value.strip().strip("'\"")
    return pairs


def _parse_attribute(text: str) -> AttributeDescriptor:
    default_geometry = text.startswith("*")
    if default_geometry:
        text = text[1:]
    parts = [p.strip() for p in text.split(":")]
    if len(parts) < 2 or not parts[0] or not parts[1]:
        raise SchemaError(f"Malformed attribute spec: {text!r}")
    name, type_name, *option_parts = parts
    attribute_type = AttributeType.parse(type_name)
    if default_geometry and not attribute_type.is_geometry:
        raise SchemaError(f"Attribute '{name}' is marked default geometry but is {attribute_type.value}")
    options = _parse_pairs(",".join(option_parts), "attribute option") if option_parts else {}
    return AttributeDescriptor(name, attribute_type, default_geometry, options)


def parse_spec(spec: str, type_name: str) -> FeatureSchema:
    """Parse a compact spec string into a schema named ``type_name``."""
    body, _, user_part = spec.strip().partition(";")
    if not body.strip():
        raise SchemaError("Schema spec is empty")
    attributes = tuple(
        _parse_attribute(item.strip()) for item in body.split(",") if item.strip()
    )
    user_data = _parse_pairs(user_part, "user data") if user_part else {}
    return FeatureSchema(type_name=type_name, attributes=attributes, user_data=user_data)


def encode_spec(schema: FeatureSchema) -> str:
    """Encode a schema as a compact spec string; inverse of ``parse_spec``."""
    items = []
    for attribute in schema.attributes:
        item = f"{'*' if attribute.default_geometry else ''}{attribute.name}:{attribute.type.value}"
        for key in sorted(attribute.options):
            item += f":{key}={attribute.options[key]}"
        items.append(item)
    encoded = ",".join(items)
    if schema.user_data:
        encoded += ";" + ",".join(f"{k}={schema.user_data[k]}" for k in sorted(schema.user_data))
    return encoded


def is_mapping_form(text: str) -> bool:
    stripped = text.strip()
    return stripped.startswith("{") or "\n" in stripped


def definition_from_mapping(data: Any) -> SchemaDefinition:
    if not isinstance(data, dict):
        raise SchemaError(f"Schema definition must be a mapping, got {type(data).__name__}")
    try:
        return SchemaDefinition.model_validate(data)
    except ValidationError as e:
        raise SchemaError(f"Invalid schema definition: {e}", cause=e) from e


def parse_inline(text: str, type_name: str | None = None) -> FeatureSchema:
    """
    Parse either inline form.

    ``type_name`` is required for the compact form; for the mapping form it
    overrides the definition's ``type-name``.
    """
    if is_mapping_form(text):
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise SchemaError(f"Invalid schema YAML: {e}", cause=e) from e
        return definition_from_mapping(data).to_schema(type_name)
    if not type_name:
        raise SchemaError("A type name is required for a compact schema spec")
    return parse_spec(text, type_name=type_name)


__all__ = [
    "AttributeSpec",
    "SchemaDefinition",
    "parse_spec",
    "encode_spec",
    "parse_inline",
    "definition_from_mapping",
]
