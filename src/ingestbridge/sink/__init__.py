"""
Storage sink layer.

``connect`` opens a ``DataStore`` for a backend URL; data stores hand out
append-only, auto-commit ``FeatureWriter`` handles.
"""

from ingestbridge.sink.connector import connect, register_backend
from ingestbridge.sink.memory import MemoryDataStore
from ingestbridge.sink.protocol import ConnectionParams, DataStore, FeatureWriter, RecordSlot
from ingestbridge.sink.sql import SqlDataStore

__all__ = [
    "ConnectionParams",
    "DataStore",
    "FeatureWriter",
    "RecordSlot",
    "MemoryDataStore",
    "SqlDataStore",
    "connect",
    "register_backend",
]
