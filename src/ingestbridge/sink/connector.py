"""
Sink connector: open a ``DataStore`` from connection parameters.

Supported URL schemes
---------------------
==================  ==========================================  ============
Scheme              Example                                     Backend
==================  ==========================================  ============
``memory``          ``memory://`` or ``memory://shared``        In-process
``sqlite``          ``sqlite:///path/to/ingest.db``             SQLite file
``postgresql``      ``postgresql+psycopg://host:5432/ingest``   PostgreSQL
``(other)``         any SQLAlchemy URL with an installed driver  SQLAlchemy
==================  ==========================================  ============

``user`` and ``password`` from ``ConnectionParams`` override any credentials
embedded in the URL. New backends are added with ``register_backend``.

Usage::

    store = connect(ConnectionParams(url="sqlite:///ingest.db", catalog="obs"))
    store.ensure_schema(schema)
    writer = store.open_writer(schema.type_name)
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from pydantic import ValidationError
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from ingestbridge.core.errors import ConfigurationError
from ingestbridge.core.logging import get_logger
from ingestbridge.sink.memory import MemoryCatalog, MemoryDataStore, get_catalog
from ingestbridge.sink.protocol import ConnectionParams, DataStore
from ingestbridge.sink.sql import SqlDataStore

logger = get_logger(__name__)

BackendFactory = Callable[[ConnectionParams], DataStore]


def _create_memory(params: ConnectionParams) -> DataStore:
    name = params.url[len("memory://"):].strip("/")
    if not name:
        return MemoryDataStore(MemoryCatalog("<private>"))
    return MemoryDataStore(get_catalog(f"{name}/{params.catalog}"))


def _create_sql(params: ConnectionParams) -> DataStore:
    try:
        url = make_url(params.url)
    except ArgumentError as e:
        raise ConfigurationError(f"Invalid backend URL {params.url!r}: {e}", cause=e) from e
    if params.user:
        url = url.set(username=params.user)
    if params.password:
        url = url.set(password=params.password)
    return SqlDataStore.connect(url, catalog=params.catalog)


# Scheme prefix -> factory. Anything unmatched is handed to SQLAlchemy.
_BACKENDS: dict[str, BackendFactory] = {
    "memory": _create_memory,
}


def register_backend(scheme: str, factory: BackendFactory) -> None:
    """Register a backend factory for URLs starting with ``scheme://``."""
    _BACKENDS[scheme] = factory


def _scheme(url: str) -> str:
    scheme, sep, _ = url.partition("://")
    if not sep:
        raise ConfigurationError(f"Backend URL must include a scheme: {url!r}")
    return scheme.split("+", 1)[0].lower()


def connect(params: ConnectionParams | Mapping[str, Any]) -> DataStore:
    """
    Connect to the backend named by ``params.url``.

    Raises:
        ConfigurationError: The parameters are invalid.
        BackendConnectionError: The backend is unreachable or rejects the credentials.
    """
    if not isinstance(params, ConnectionParams):
        try:
            params = ConnectionParams.model_validate(dict(params))
        except ValidationError as e:
            raise ConfigurationError(f"Invalid connection parameters: {e}", cause=e) from e

    scheme = _scheme(params.url)
    factory = _BACKENDS.get(scheme, _create_sql)
    store = factory(params)
    logger.info(
        "sink_connected",
        backend=store.backend,
        catalog=params.catalog,
        instance_id=params.instance_id,
    )
    return store


__all__ = ["BackendFactory", "connect", "register_backend"]
