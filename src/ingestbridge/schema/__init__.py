"""
Schema layer: feature schemas, spec parsing and the named-schema registry.

Example:
    >>> from ingestbridge.schema import parse_spec
    >>> parse_spec("id:String,*geom:Point", type_name="obs").attribute_names
    ('id', 'geom')
"""

from ingestbridge.schema.registry import (
    SchemaRegistry,
    load_schema_file,
    register_schema,
    schema_registry,
)
from ingestbridge.schema.resolver import resolve_schema
from ingestbridge.schema.spec import encode_spec, parse_inline, parse_spec
from ingestbridge.schema.types import (
    AttributeDescriptor,
    AttributeType,
    FeatureSchema,
    Point,
    TypedRecord,
)

__all__ = [
    # Types
    "AttributeType",
    "AttributeDescriptor",
    "FeatureSchema",
    "TypedRecord",
    "Point",
    # Spec
    "parse_spec",
    "parse_inline",
    "encode_spec",
    # Registry
    "SchemaRegistry",
    "schema_registry",
    "register_schema",
    "load_schema_file",
    "resolve_schema",
]
