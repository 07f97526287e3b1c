"""
Storage implementations.

Provides implementations of the RecordStore interface for persisting bikes
and the vote log.

Available implementations:
- JSONLRecordStore: Bike table snapshot in JSON, votes in an append-only JSONL log
- SQLiteRecordStore: Both tables in SQLite with transactional vote commits
"""

from .jsonl_storage import JSONLRecordStore
from .sqlite_storage import SQLiteRecordStore

__all__ = ["JSONLRecordStore", "SQLiteRecordStore"]
