"""SQLite implementation for key-value storage."""

import logging
import os
from typing import List, Optional

import aiosqlite

from .....core.constants import DEFAULT_DB_FILENAME
from .....core.exceptions import StorageError
from ..base import StoragePlugin
from .constants import DELETE_VALUE, KV_SCHEMA, SELECT_KEYS, SELECT_VALUE, UPSERT_VALUE
from .utils import initialize_table

logger = logging.getLogger(__name__)


def default_db_path() -> str:
    """Default database location under the user's home directory."""
    return os.path.join(os.path.expanduser("~"), ".beacon", DEFAULT_DB_FILENAME)


class SqliteStoragePlugin(StoragePlugin):
    """
    SQLite implementation for durable key-value storage.

    Values live in a single ``kv_store`` table and survive process restarts.
    Connections are opened per operation.

    Attributes:
        db_path (str): Full path to SQLite database file
    """

    durable = True

    def __init__(self, db_path: Optional[str] = None):
        """
        Initialize SQLite storage.

        Args:
            db_path: Database file path (defaults to ``~/.beacon/beacon.db``)
        """
        self.db_path = db_path or default_db_path()

    async def initialize(self) -> None:
        """
        Initialize storage and create the table.

        Raises:
            StorageError: If initialization fails
        """
        await initialize_table(self.db_path, KV_SCHEMA)
        logger.info(f"Initialized SQLite storage at {self.db_path}")

    async def cleanup(self) -> None:
        """Clean up resources."""
        pass  # SQLite connection is managed per operation

    async def get_item(self, key: str) -> Optional[str]:
        try:
            async with aiosqlite.connect(self.db_path) as db:
                async with db.execute(SELECT_VALUE, (key,)) as cursor:
                    row = await cursor.fetchone()
                    return row[0] if row else None
        except Exception as e:
            logger.error(f"Failed to read key {key}: {str(e)}")
            raise StorageError(f"Failed to read key {key}: {str(e)}")

    async def set_item(self, key: str, value: str) -> None:
        try:
            async with aiosqlite.connect(self.db_path) as db:
                await db.execute(UPSERT_VALUE, (key, value))
                await db.commit()
        except Exception as e:
            logger.error(f"Failed to write key {key}: {str(e)}")
            raise StorageError(f"Failed to write key {key}: {str(e)}")

    async def remove_item(self, key: str) -> None:
        try:
            async with aiosqlite.connect(self.db_path) as db:
                await db.execute(DELETE_VALUE, (key,))
                await db.commit()
        except Exception as e:
            logger.error(f"Failed to remove key {key}: {str(e)}")
            raise StorageError(f"Failed to remove key {key}: {str(e)}")

    async def keys(self) -> List[str]:
        try:
            async with aiosqlite.connect(self.db_path) as db:
                async with db.execute(SELECT_KEYS) as cursor:
                    rows = await cursor.fetchall()
                    return [row[0] for row in rows]
        except Exception as e:
            logger.error(f"Failed to list keys: {str(e)}")
            raise StorageError(f"Failed to list keys: {str(e)}")
