"""
docledger Stores — Document Store, Permission Store and Document Counter.

Backends:
    memory — dicts owned by the store instance, lock-serialized
    sql    — SQLAlchemy tables (SQLite or PostgreSQL)
"""

from docledger.store.base import RegistryStore, StoreTransaction
from docledger.store.memory import MemoryRegistryStore
from docledger.store.sql import SqlRegistryStore

__all__ = [
    "RegistryStore",
    "StoreTransaction",
    "MemoryRegistryStore",
    "SqlRegistryStore",
]
