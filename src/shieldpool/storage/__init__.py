"""Storage layer for shieldpool."""

from .database import (
    DatabaseConfig,
    InMemoryItemStore,
    ItemStore,
    SQLiteItemStore,
    StoredItem,
    load_state,
    save_state,
)

__all__ = [
    "DatabaseConfig",
    "ItemStore",
    "InMemoryItemStore",
    "SQLiteItemStore",
    "StoredItem",
    "save_state",
    "load_state",
]
