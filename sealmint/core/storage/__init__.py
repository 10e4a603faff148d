"""
Persistent Storage Module.

Provides SQLite-backed persistence for:
- Participant records
- Sale state (statistics, supply, price curve, books)
"""

from sealmint.core.storage.sqlite_adapter import SQLiteAdapter
from sealmint.core.storage.storage_manager import StorageManager, STATE_KEYS

__all__ = ["SQLiteAdapter", "StorageManager", "STATE_KEYS"]
