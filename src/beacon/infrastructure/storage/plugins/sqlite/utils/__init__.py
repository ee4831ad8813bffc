"""SQLite storage utilities."""

from .persistence import initialize_table

__all__ = ["initialize_table"]
