"""Utilities for SQLite database operations."""

import logging
import os

import aiosqlite

from ......core.exceptions import StorageError

logger = logging.getLogger(__name__)


async def initialize_table(db_path: str, schema: str) -> None:
    """
    Initialize a table in the SQLite database.

    Creates the parent directory of the database file when needed.

    Args:
        db_path: Path to SQLite database
        schema: SQL schema for table creation

    Raises:
        StorageError: If initialization fails
    """
    try:
        directory = os.path.dirname(db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        async with aiosqlite.connect(db_path) as db:
            await db.execute(schema)
            await db.commit()
    except Exception as e:
        logger.error(f"Failed to initialize table: {str(e)}")
        raise StorageError(f"Failed to initialize table: {str(e)}")
