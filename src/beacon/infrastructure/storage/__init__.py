"""
Local persistence for the telemetry SDK.

Exports the KeyValueStore facade and the backend plugins behind it.
"""

from .plugins import (
    JsonFileStoragePlugin,
    MemoryStoragePlugin,
    SqliteStoragePlugin,
    StoragePlugin,
    create_plugin,
)
from .service import KeyValueStore

__all__ = [
    "KeyValueStore",
    "StoragePlugin",
    "SqliteStoragePlugin",
    "JsonFileStoragePlugin",
    "MemoryStoragePlugin",
    "create_plugin",
]
