"""
Constants for SQLite storage plugin.

This module defines constants used by the SQLite storage implementation:
- SQL schema definition
- Key-value queries
"""

# SQL Schema Definitions

KV_SCHEMA = """
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
)
"""

# Key-value queries
SELECT_VALUE = "SELECT value FROM kv_store WHERE key = ?"
UPSERT_VALUE = """
INSERT INTO kv_store (key, value)
VALUES (?, ?)
ON CONFLICT(key) DO UPDATE SET value = excluded.value
"""
DELETE_VALUE = "DELETE FROM kv_store WHERE key = ?"
SELECT_KEYS = "SELECT key FROM kv_store ORDER BY key"
