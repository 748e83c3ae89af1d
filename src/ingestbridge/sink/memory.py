"""
In-process storage backend.

``memory://`` connects to a fresh, private catalog. ``memory://<name>``
connects to a named catalog shared by every connection in the process, so
committed records survive a processor stop/start cycle the way they would
in an external store.
"""

from __future__ import annotations

import threading

from ingestbridge.core.errors import AppendError, SchemaConflictError, SchemaError, StorageError
from ingestbridge.core.logging import get_logger
from ingestbridge.schema.types import FeatureSchema, TypedRecord
from ingestbridge.sink.protocol import RecordSlot, describe_layout, schema_layout

logger = get_logger(__name__)


class MemoryCatalog:
    """Schemas and committed records for one in-memory catalog."""

    def __init__(self, name: str):
        self.name = name
        self.lock = threading.RLock()
        self.schemas: dict[str, FeatureSchema] = {}
        self.records: dict[str, list[TypedRecord]] = {}


_catalogs: dict[str, MemoryCatalog] = {}
_catalogs_lock = threading.Lock()


def get_catalog(name: str) -> MemoryCatalog:
    """Return the shared catalog called ``name``, creating it on first use."""
    with _catalogs_lock:
        if name not in _catalogs:
            _catalogs[name] = MemoryCatalog(name)
        return _catalogs[name]


def reset_catalogs() -> None:
    """Drop every shared catalog (for testing)."""
    with _catalogs_lock:
        _catalogs.clear()


class MemoryFeatureWriter:
    """Append writer over a memory catalog."""

    def __init__(self, store: MemoryDataStore, schema: FeatureSchema):
        self._store = store
        self._schema = schema
        self._closed = False

    @property
    def type_name(self) -> str:
        return self._schema.type_name

    @property
    def closed(self) -> bool:
        return self._closed

    def next_slot(self) -> RecordSlot:
        if self._closed:
            raise AppendError(f"Writer for '{self.type_name}' is closed")
        return RecordSlot(self._schema, owner=self)

    def commit(self, slot: RecordSlot) -> None:
        if self._closed:
            raise AppendError(f"Writer for '{self.type_name}' is closed")
        slot.check(self)
        catalog = self._store.catalog
        with catalog.lock:
            catalog.records.setdefault(self.type_name, []).append(slot.to_record())
        slot.committed = True

    def close(self) -> None:
        self._closed = True


class MemoryDataStore:
    """Data store handle over a ``MemoryCatalog``."""

    backend = "memory"

    def __init__(self, catalog: MemoryCatalog):
        self.catalog = catalog
        self._writers: list[MemoryFeatureWriter] = []
        self._disposed = False

    def _check_open(self) -> None:
        if self._disposed:
            raise StorageError(f"Data store for catalog '{self.catalog.name}' is disposed")

    def ensure_schema(self, schema: FeatureSchema) -> None:
        self._check_open()
        with self.catalog.lock:
            existing = self.catalog.schemas.get(schema.type_name)
            if existing is None:
                self.catalog.schemas[schema.type_name] = schema
                self.catalog.records.setdefault(schema.type_name, [])
                logger.info("schema_created", backend=self.backend, type_name=schema.type_name)
                return
        if schema_layout(existing) != schema_layout(schema):
            raise SchemaConflictError(
                schema.type_name, describe_layout(existing), describe_layout(schema)
            )

    def get_schema(self, type_name: str) -> FeatureSchema | None:
        self._check_open()
        return self.catalog.schemas.get(type_name)

    def list_type_names(self) -> list[str]:
        self._check_open()
        return sorted(self.catalog.schemas)

    def open_writer(self, type_name: str) -> MemoryFeatureWriter:
        self._check_open()
        schema = self.get_schema(type_name)
        if schema is None:
            raise SchemaError(f"Schema '{type_name}' does not exist in catalog '{self.catalog.name}'")
        writer = MemoryFeatureWriter(self, schema)
        self._writers.append(writer)
        return writer

    def read(self, type_name: str) -> list[TypedRecord]:
        with self.catalog.lock:
            return list(self.catalog.records.get(type_name, []))

    def dispose(self) -> None:
        for writer in self._writers:
            writer.close()
        self._writers.clear()
        self._disposed = True


__all__ = [
    "MemoryCatalog",
    "MemoryDataStore",
    "MemoryFeatureWriter",
    "get_catalog",
    "reset_catalogs",
]
