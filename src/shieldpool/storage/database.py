"""Persistence backends for shieldpool.

Ledger state is stored as separately addressable items, each with its own
version. Values are encoded with msgpack. All items changed by one operation
are written in a single transaction.
"""

import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Iterable, Optional

import msgpack

from ..errors import MalformedEncoding, StorageError

if TYPE_CHECKING:
    from ..ledger.state import LedgerState

logger = logging.getLogger(__name__)


@dataclass
class DatabaseConfig:
    """Database configuration."""

    # Connection settings
    database_path: str = ":memory:"
    connection_timeout: float = 30.0

    # Performance settings
    cache_size: int = 2000  # SQLite pages
    synchronous: str = "NORMAL"  # OFF, NORMAL, FULL
    journal_mode: str = "WAL"  # DELETE, TRUNCATE, PERSIST, MEMORY, WAL, OFF

    def validate(self) -> None:
        if self.connection_timeout <= 0:
            raise ValueError("connection_timeout must be positive")
        if self.synchronous not in ("OFF", "NORMAL", "FULL"):
            raise ValueError(f"Invalid synchronous mode {self.synchronous}")


@dataclass
class StoredItem:
    """One persisted item."""

    version: int
    value: Any


def encode_value(value: Any) -> bytes:
    try:
        return msgpack.packb(value, use_bin_type=True)
    except (TypeError, ValueError, OverflowError) as e:
        raise StorageError(f"Cannot encode value: {e}", cause=e) from e


def decode_value(data: bytes) -> Any:
    try:
        return msgpack.unpackb(data, raw=False, strict_map_key=False)
    except (ValueError, msgpack.UnpackException) as e:
        raise StorageError(f"Corrupt stored value: {e}", cause=e) from e


class ItemStore(ABC):
    """Abstract item store."""

    @abstractmethod
    def connect(self) -> None:
        """Open the store."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Close the store."""
        pass

    @abstractmethod
    def load_all(self) -> Dict[str, StoredItem]:
        """Read every stored item."""
        pass

    @abstractmethod
    def write_items(self, items: Dict[str, StoredItem]) -> None:
        """Write items atomically."""
        pass

    def __enter__(self):
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.disconnect()


class InMemoryItemStore(ItemStore):
    """Item store kept in process memory."""

    def __init__(self):
        self._items: Dict[str, tuple] = {}
        self._lock = threading.RLock()

    def connect(self) -> None:
        pass

    def disconnect(self) -> None:
        pass

    def load_all(self) -> Dict[str, StoredItem]:
        with self._lock:
            return {
                key: StoredItem(version, decode_value(raw))
                for key, (version, raw) in self._items.items()
            }

    def write_items(self, items: Dict[str, StoredItem]) -> None:
        encoded = {
            key: (item.version, encode_value(item.value)) for key, item in items.items()
        }
        with self._lock:
            self._items.update(encoded)


class SQLiteItemStore(ItemStore):
    """SQLite item store."""

    def __init__(self, config: Optional[DatabaseConfig] = None):
        self.config = config or DatabaseConfig()
        self.config.validate()
        self._connection: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()

        if self.config.database_path != ":memory:":
            Path(self.config.database_path).parent.mkdir(parents=True, exist_ok=True)

    def connect(self) -> None:
        """Establish SQLite database connection."""
        with self._lock:
            if self._connection is not None:
                return

            try:
                self._connection = sqlite3.connect(
                    self.config.database_path,
                    timeout=self.config.connection_timeout,
                    isolation_level=None,  # transactions are handled manually
                    check_same_thread=False,
                )
                self._configure_sqlite()
                self._create_tables()
                logger.info(f"Connected to SQLite database: {self.config.database_path}")
            except sqlite3.Error as e:
                raise StorageError(f"Failed to connect to database: {e}", cause=e) from e

    def disconnect(self) -> None:
        """Close SQLite database connection."""
        with self._lock:
            if self._connection is not None:
                try:
                    self._connection.close()
                    logger.info("Disconnected from SQLite database")
                except sqlite3.Error as e:
                    logger.error(f"Error closing database connection: {e}")
                finally:
                    self._connection = None

    def _configure_sqlite(self) -> None:
        pragmas = [
            f"PRAGMA cache_size = {self.config.cache_size}",
            f"PRAGMA synchronous = {self.config.synchronous}",
            f"PRAGMA journal_mode = {self.config.journal_mode}",
        ]
        for pragma in pragmas:
            self._connection.execute(pragma)

    def _create_tables(self) -> None:
        self._connection.execute(
            """
            CREATE TABLE IF NOT EXISTS ledger_items (
                key TEXT PRIMARY KEY,
                version INTEGER NOT NULL,
                value BLOB NOT NULL
            )
            """
        )

    def _require_connection(self) -> sqlite3.Connection:
        if self._connection is None:
            raise StorageError("Database not connected")
        return self._connection

    def load_all(self) -> Dict[str, StoredItem]:
        with self._lock:
            connection = self._require_connection()
            try:
                rows = connection.execute(
                    "SELECT key, version, value FROM ledger_items"
                ).fetchall()
            except sqlite3.Error as e:
                raise StorageError(f"Query failed: {e}", cause=e) from e
        return {key: StoredItem(version, decode_value(value)) for key, version, value in rows}

    def write_items(self, items: Dict[str, StoredItem]) -> None:
        """Write items in one transaction, rolling back on failure."""
        rows = [
            (key, item.version, encode_value(item.value)) for key, item in items.items()
        ]
        with self._lock:
            connection = self._require_connection()
            try:
                connection.execute("BEGIN TRANSACTION")
                connection.executemany(
                    "INSERT OR REPLACE INTO ledger_items (key, version, value) "
                    "VALUES (?, ?, ?)",
                    rows,
                )
                connection.execute("COMMIT")
            except sqlite3.Error as e:
                if connection.in_transaction:
                    connection.execute("ROLLBACK")
                raise StorageError(f"Transaction failed: {e}", cause=e) from e


def save_state(
    store: ItemStore, state: "LedgerState", items: Optional[Iterable[str]] = None
) -> None:
    """
    Persist ledger items.

    Args:
        store: Target store
        state: Ledger state
        items: Items to write; the state's dirty items when omitted
    """
    names = set(items) if items is not None else state.dirty_items
    if not names:
        return

    store.write_items(
        {
            name: StoredItem(state.versions[name], state.export_item(name))
            for name in names
        }
    )
    state.mark_clean(names)
    logger.debug("Persisted items: %s", ", ".join(sorted(names)))


def load_state(store: ItemStore, state: "LedgerState") -> "LedgerState":
    """Restore every stored item into state."""
    stored = store.load_all()
    for name, item in stored.items():
        if name not in state.versions:
            raise StorageError(f"Unknown stored item {name}", item=name)
        try:
            state.load_item(name, item.value, item.version)
        except (KeyError, TypeError, ValueError, MalformedEncoding) as e:
            raise StorageError(f"Cannot restore item {name}: {e}", item=name, cause=e) from e
    state.mark_clean()
    return state
