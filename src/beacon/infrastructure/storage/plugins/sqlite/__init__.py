"""SQLite storage plugin."""

from .storage import SqliteStoragePlugin, default_db_path

__all__ = ["SqliteStoragePlugin", "default_db_path"]
