"""
SQLAlchemy storage backend (SQLite, PostgreSQL, any SQLAlchemy URL).

Layout per catalog::

    {catalog}_schemas        type_name | layout (JSON) | user_data (JSON)
    {catalog}_{type_name}    __row__ | __fid__ | <attributes...> | __user_data__ (JSON)

Geometries are stored as WKT text and timestamps as naive UTC. Each commit
runs in its own transaction, so every appended record is durable as soon as
``commit`` returns.
"""

from __future__ import annotations

import json
import re
from datetime import timezone
from typing import Any

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    DateTime,
    Float,
    Integer,
    LargeBinary,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    event,
    select,
)
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import ArgumentError, DBAPIError, NoSuchModuleError, SQLAlchemyError

from ingestbridge.core.errors import (
    AppendError,
    BackendConnectionError,
    ConfigurationError,
    SchemaConflictError,
    SchemaError,
    StorageError,
)
from ingestbridge.core.logging import get_logger
from ingestbridge.schema.types import AttributeType, FeatureSchema, TypedRecord
from ingestbridge.sink.protocol import (
    RecordSlot,
    describe_layout,
    schema_from_layout,
    schema_layout,
)

logger = get_logger(__name__)

_COLUMN_TYPES: dict[AttributeType, Any] = {
    AttributeType.STRING: Text,
    AttributeType.INTEGER: Integer,
    AttributeType.LONG: BigInteger,
    AttributeType.FLOAT: Float,
    AttributeType.DOUBLE: Float,
    AttributeType.BOOLEAN: Boolean,
    AttributeType.DATE: DateTime,
    AttributeType.TIMESTAMP: DateTime,
    AttributeType.UUID: lambda: String(36),
    AttributeType.POINT: Text,
    AttributeType.BYTES: LargeBinary,
}


def create_sink_engine(url: Any, **kwargs: Any) -> Engine:
    """Create an engine; SQLite files get WAL journaling and cross-thread access."""
    url = make_url(url)
    if url.get_backend_name() != "sqlite":
        return create_engine(url, **kwargs)

    kwargs.setdefault("connect_args", {"check_same_thread": False})
    engine = create_engine(url, **kwargs)
    if url.database and url.database != ":memory:":

        @event.listens_for(engine, "connect")
        def _set_sqlite_pragma(dbapi_connection: Any, _rec: Any) -> None:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.close()

    return engine


def _table_name(catalog: str, type_name: str) -> str:
    return f"{catalog}_{re.sub(r'[^A-Za-z0-9_]', '_', type_name)}"


def _to_column(attribute_type: AttributeType, value: Any) -> Any:
    if value is None:
        return None
    match attribute_type:
        case AttributeType.POINT:
            return value.wkt
        case AttributeType.UUID:
            return str(value)
        case AttributeType.DATE | AttributeType.TIMESTAMP:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class SqlFeatureWriter:
    """Append writer over one schema table."""

    def __init__(self, store: SqlDataStore, schema: FeatureSchema, table: Table):
        self._store = store
        self._schema = schema
        self._table = table
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
        row = {"__fid__": slot.id, "__user_data__": json.dumps(slot.user_data, default=str)}
        for attribute, value in zip(self._schema.attributes, slot.attributes):
            row[attribute.name] = _to_column(attribute.type, value)
        try:
            with self._store.engine.begin() as conn:
                conn.execute(self._table.insert().values(**row))
        except SQLAlchemyError as e:
            raise AppendError(
                f"Failed to append record '{slot.id}' to '{self.type_name}': {e}", cause=e
            ).with_context(backend=self._store.backend, type_name=self.type_name) from e
        slot.committed = True

    def close(self) -> None:
        self._closed = True


class SqlDataStore:
    """Data store handle over a SQLAlchemy engine."""

    def __init__(self, engine: Engine, catalog: str = "ingest"):
        self.engine = engine
        self.catalog = catalog
        self._metadata = MetaData()
        self._schemas_table = Table(
            f"{catalog}_schemas",
            self._metadata,
            Column("type_name", String(255), primary_key=True),
            Column("layout", Text, nullable=False),
            Column("user_data", Text, nullable=False, default="{}"),
        )
        self._tables: dict[str, Table] = {}
        self._writers: list[SqlFeatureWriter] = []
        self._disposed = False

    @property
    def backend(self) -> str:
        return self.engine.dialect.name

    @classmethod
    def connect(cls, url: Any, catalog: str = "ingest", **engine_kwargs: Any) -> SqlDataStore:
        """
        Create an engine, verify the backend is reachable and prepare the catalog.

        Raises:
            ConfigurationError: The URL is malformed or names an unknown driver.
            BackendConnectionError: The backend is unreachable or rejects the credentials.
        """
        try:
            engine = create_sink_engine(url, **engine_kwargs)
        except (ArgumentError, NoSuchModuleError) as e:
            raise ConfigurationError(f"Invalid backend URL: {e}", cause=e) from e
        except ImportError as e:
            raise ConfigurationError(f"Backend driver is not installed: {e}", cause=e) from e

        store = cls(engine, catalog)
        try:
            with engine.begin() as conn:
                store._metadata.create_all(conn, tables=[store._schemas_table])
        except DBAPIError as e:
            engine.dispose()
            raise BackendConnectionError(
                f"Cannot connect to backend {engine.url.render_as_string(hide_password=True)}: "
                f"{e.orig}",
                cause=e,
            ).with_context(backend=engine.dialect.name) from e
        return store

    def _check_open(self) -> None:
        if self._disposed:
            raise StorageError(f"Data store for catalog '{self.catalog}' is disposed")

    def _table_for(self, schema: FeatureSchema) -> Table:
        if schema.type_name not in self._tables:
            columns = [
                Column("__row__", Integer, primary_key=True, autoincrement=True),
                Column("__fid__", String(255), nullable=False, index=True),
            ]
            for attribute in schema.attributes:
                columns.append(Column(attribute.name, _COLUMN_TYPES[attribute.type]()))
            columns.append(Column("__user_data__", Text, nullable=False, default="{}"))
            self._tables[schema.type_name] = Table(
                _table_name(self.catalog, schema.type_name), self._metadata, *columns
            )
        return self._tables[schema.type_name]

    def ensure_schema(self, schema: FeatureSchema) -> None:
        self._check_open()
        layout = schema_layout(schema)
        try:
            with self.engine.begin() as conn:
                stored = conn.execute(
                    select(self._schemas_table.c.layout).where(
                        self._schemas_table.c.type_name == schema.type_name
                    )
                ).scalar_one_or_none()
                if stored is not None and stored != layout:
                    raise SchemaConflictError(
                        schema.type_name,
                        describe_layout(schema_from_layout(schema.type_name, stored)),
                        describe_layout(schema),
                    )
                table = self._table_for(schema)
                table.create(conn, checkfirst=True)
                if stored is None:
                    conn.execute(
                        self._schemas_table.insert().values(
                            type_name=schema.type_name,
                            layout=layout,
                            user_data=json.dumps(schema.user_data, sort_keys=True),
                        )
                    )
                    logger.info("schema_created", backend=self.backend, type_name=schema.type_name)
        except SQLAlchemyError as e:
            raise StorageError(
                f"Failed to ensure schema '{schema.type_name}': {e}", cause=e
            ).with_context(backend=self.backend, type_name=schema.type_name) from e

    def get_schema(self, type_name: str) -> FeatureSchema | None:
        self._check_open()
        with self.engine.connect() as conn:
            row = conn.execute(
                select(self._schemas_table.c.layout, self._schemas_table.c.user_data).where(
                    self._schemas_table.c.type_name == type_name
                )
            ).one_or_none()
        if row is None:
            return None
        return schema_from_layout(type_name, row.layout, json.loads(row.user_data or "{}"))

    def list_type_names(self) -> list[str]:
        self._check_open()
        with self.engine.connect() as conn:
            return sorted(conn.execute(select(self._schemas_table.c.type_name)).scalars())

    def open_writer(self, type_name: str) -> SqlFeatureWriter:
        schema = self.get_schema(type_name)
        if schema is None:
            raise SchemaError(f"Schema '{type_name}' does not exist in catalog '{self.catalog}'")
        writer = SqlFeatureWriter(self, schema, self._table_for(schema))
        self._writers.append(writer)
        return writer

    def read(self, type_name: str) -> list[TypedRecord]:
        schema = self.get_schema(type_name)
        if schema is None:
            raise SchemaError(f"Schema '{type_name}' does not exist in catalog '{self.catalog}'")
        table = self._table_for(schema)
        with self.engine.connect() as conn:
            rows = conn.execute(select(table).order_by(table.c["__row__"])).mappings().all()
        records = []
        for row in rows:
            values = [row[a.name] for a in schema.attributes]
            records.append(
                TypedRecord(
                    id=row["__fid__"],
                    attributes=schema.coerce_values(values),
                    user_data=json.loads(row["__user_data__"] or "{}"),
                )
            )
        return records

    def dispose(self) -> None:
        if self._disposed:
            return
        for writer in self._writers:
            writer.close()
        self._writers.clear()
        self.engine.dispose()
        self._disposed = True


__all__ = ["SqlDataStore", "SqlFeatureWriter", "create_sink_engine"]
