"""
Storage sink contracts: data stores, writer handles and record slots.

A ``DataStore`` is a connected handle to one storage backend catalog. It owns
schema metadata and hands out append-only ``FeatureWriter`` handles, one per
schema type. Writers follow an allocate / populate / commit protocol:

    slot = writer.next_slot()          # allocate, nothing is visible yet
    slot.set_attributes(values)        # positional, schema order
    slot.set_id(record.id)
    slot.user_data.update(record.user_data)
    writer.commit(slot)                # durable immediately (auto-commit)

A slot that is never committed leaves no trace in the backend. There is no
transaction spanning several commits.
"""

from __future__ import annotations

import json
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from ingestbridge.core.errors import AppendError, SchemaError
from ingestbridge.schema.spec import encode_spec
from ingestbridge.schema.types import (
    AttributeDescriptor,
    AttributeType,
    FeatureSchema,
    TypedRecord,
)


class ConnectionParams(BaseModel):
    """Backend connection properties."""

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    url: str = Field(
        default="memory://",
        alias="endpoints",
        description="Backend URL: memory://[name], sqlite:///path.db, postgresql+psycopg://host/db",
    )
    instance_id: str | None = Field(
        default=None, description="Backend instance identifier, recorded with the connection"
    )
    catalog: str = Field(
        default="ingest",
        min_length=1,
        pattern=r"^[A-Za-z_][A-Za-z0-9_]*$",
        description="Catalog namespace; prefixes every table the backend creates",
    )
    user: str | None = Field(default=None, description="Backend user name")
    password: str | None = Field(default=None, repr=False, description="Backend password")


class RecordSlot:
    """A pending record allocated by a writer. Invisible until committed."""

    __slots__ = ("schema", "attributes", "id", "user_data", "_owner", "committed")

    def __init__(self, schema: FeatureSchema, owner: object):
        self.schema = schema
        self.attributes: list[Any] = [None] * len(schema.attributes)
        self.id: str | None = None
        self.user_data: dict[str, Any] = {}
        self._owner = owner
        self.committed = False

    def set_attributes(self, values: list[Any]) -> None:
        """Set every attribute by position, coercing to the schema types."""
        if len(values) != len(self.schema.attributes):
            raise AppendError(
                f"Expected {len(self.schema.attributes)} attribute values for "
                f"'{self.schema.type_name}', got {len(values)}"
            )
        try:
            self.attributes = self.schema.coerce_values(list(values))
        except (TypeError, ValueError) as e:
            raise AppendError(f"Invalid attribute values: {e}", cause=e) from e

    def set_id(self, feature_id: str) -> None:
        if not feature_id:
            raise AppendError("Record identifier must not be empty")
        self.id = str(feature_id)

    def check(self, owner: object) -> None:
        """Raise ``AppendError`` unless this slot is ready to commit through ``owner``."""
        if self._owner is not owner:
            raise AppendError("Slot was allocated by a different writer")
        if self.committed:
            raise AppendError(f"Slot for record '{self.id}' was already committed")
        if self.id is None:
            raise AppendError("Slot has no identifier; call set_id before commit")

    def to_record(self) -> TypedRecord:
        return TypedRecord(
            id=self.id or "", attributes=list(self.attributes), user_data=dict(self.user_data)
        )


@runtime_checkable
class FeatureWriter(Protocol):
    """Append-only, auto-commit writer bound to one schema type."""

    @property
    def type_name(self) -> str:
        ...

    def next_slot(self) -> RecordSlot:
        """Allocate a new pending record slot."""
        ...

    def commit(self, slot: RecordSlot) -> None:
        """Durably append a populated slot."""
        ...

    def close(self) -> None:
        """Release the writer. Safe to call more than once."""
        ...


@runtime_checkable
class DataStore(Protocol):
    """Connected handle to a storage backend catalog."""

    @property
    def backend(self) -> str:
        ...

    def ensure_schema(self, schema: FeatureSchema) -> None:
        """Create ``schema`` if absent. Raises ``SchemaConflictError`` on a layout mismatch."""
        ...

    def get_schema(self, type_name: str) -> FeatureSchema | None:
        ...

    def list_type_names(self) -> list[str]:
        ...

    def open_writer(self, type_name: str) -> FeatureWriter:
        """Open an append writer. Raises ``SchemaError`` for an unknown type."""
        ...

    def read(self, type_name: str) -> list[TypedRecord]:
        """Return every committed record of ``type_name`` in commit order."""
        ...

    def dispose(self) -> None:
        """Release the connection. Safe to call more than once."""
        ...


def schema_layout(schema: FeatureSchema) -> str:
    """
    Lossless attribute layout used to store schemas and detect conflicts.

    JSON rather than the compact spec, so option values may hold any
    character. User data is excluded.
    """
    return json.dumps(
        [
            {
                "name": a.name,
                "type": a.type.value,
                "default": a.default_geometry,
                "options": dict(a.options),
            }
            for a in schema.attributes
        ],
        sort_keys=True,
    )


def schema_from_layout(
    type_name: str, layout: str, user_data: dict[str, str] | None = None
) -> FeatureSchema:
    """Rebuild a schema from a stored ``schema_layout`` string."""
    try:
        attributes = tuple(
            AttributeDescriptor(
                name=item["name"],
                type=AttributeType.parse(item["type"]),
                default_geometry=bool(item.get("default", False)),
                options={str(k): str(v) for k, v in item.get("options", {}).items()},
            )
            for item in json.loads(layout)
        )
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        raise SchemaError(f"Stored layout for '{type_name}' is unreadable: {e}", cause=e) from e
    return FeatureSchema(type_name, attributes, dict(user_data or {}))


def describe_layout(schema: FeatureSchema) -> str:
    """Compact spec of the attribute layout, for conflict messages."""
    return encode_spec(FeatureSchema(schema.type_name, schema.attributes))


__all__ = [
    "ConnectionParams",
    "RecordSlot",
    "FeatureWriter",
    "DataStore",
    "schema_layout",
    "schema_from_layout",
    "describe_layout",
]
