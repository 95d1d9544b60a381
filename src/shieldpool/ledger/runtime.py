"""
Runtime dispatcher for the shielded ledger.

ShieldedLedger is the entry point a host calls. It decodes wire payloads,
runs the ledger operations against its state, persists the items each
accepted operation changed and reports the outcome as a DispatchResult.
"""

import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, List, Optional

from ..config import LedgerConfig
from ..crypto.hashing import FieldElement
from ..crypto.params import ParameterSet
from ..crypto.zkp.verification import Groth16Verifier
from ..core.payload import MintData, PrivateTransferData, ReclaimData
from ..errors import ErrorKind, LedgerError, StorageError
from ..sharding import ShardTable
from ..storage import ItemStore, SQLiteItemStore, load_state, save_state
from . import operations
from .events import LedgerEvent
from .state import Ciphertext, LedgerState

logger = logging.getLogger(__name__)


@dataclass
class DispatchResult:
    """Outcome of one dispatched call."""

    success: bool
    events: List[LedgerEvent] = field(default_factory=list)
    error_kind: Optional[ErrorKind] = None
    error_type: Optional[str] = None
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "events": [event.to_dict() for event in self.events],
            "error_kind": self.error_kind.value if self.error_kind else None,
            "error_type": self.error_type,
            "message": self.message,
        }


class ShieldedLedger:
    """A shielded pool ledger with its pinned parameters and optional store."""

    def __init__(
        self,
        parameters: ParameterSet,
        config: Optional[LedgerConfig] = None,
        store: Optional[ItemStore] = None,
        verifier: Optional[Groth16Verifier] = None,
    ):
        self.config = config or LedgerConfig()
        self.config.validate()
        self.parameters = parameters
        self.verifier = verifier or Groth16Verifier(self.config.zkp_config())
        self.state = self._new_state()
        self.events: Deque[LedgerEvent] = deque(maxlen=self.config.event_log_size)
        self._lock = threading.RLock()

        if store is None and self.config.database_path is not None:
            store = SQLiteItemStore(self.config.database_config())
        self.store = store
        if self.store is not None:
            self.store.connect()
            load_state(self.store, self.state)
            logger.info("Loaded ledger state: %s", self.state.get_stats())

    def close(self) -> None:
        if self.store is not None:
            self.store.disconnect()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def _new_state(self) -> LedgerState:
        return LedgerState(
            self.parameters.hash_params,
            tree_depth=self.config.tree_depth,
            root_history_size=self.config.root_history_size,
        )

    def _reload_state(self) -> None:
        """Discard in-memory changes and rebuild the state from the store."""
        state = self._new_state()
        load_state(self.store, state)
        self.state = state

    def _dispatch(self, call: str, origin: str, run: Callable[[], List[LedgerEvent]]) -> DispatchResult:
        with self._lock:
            try:
                events = run()
            except LedgerError as e:
                logger.warning(
                    "%s from %s rejected: %s (%s)", call, origin, e.kind.value, e.message
                )
                return DispatchResult(
                    success=False,
                    error_kind=e.kind,
                    error_type=type(e).__name__,
                    message=e.message,
                )

            if self.store is not None:
                try:
                    save_state(self.store, self.state)
                except StorageError as e:
                    # Store writes are atomic, so the store still holds the
                    # state from before this call.
                    logger.error("%s from %s not persisted: %s", call, origin, e.message)
                    self._reload_state()
                    return DispatchResult(
                        success=False, error_type=type(e).__name__, message=e.message
                    )

            self.events.extend(events)
            logger.info("%s from %s accepted", call, origin)
            return DispatchResult(success=True, events=events)

    def drain_events(self) -> List[LedgerEvent]:
        """Return the recorded events and clear the log."""
        with self._lock:
            events = list(self.events)
            self.events.clear()
            return events

    def init(self, owner: str, total: int) -> DispatchResult:
        """Issue the public token and pin the parameter checksums."""
        return self._dispatch(
            "init",
            owner,
            lambda: operations.init(self.state, self.parameters, owner, total),
        )

    def transfer_asset(self, origin: str, target: str, amount: int) -> DispatchResult:
        return self._dispatch(
            "transfer_asset",
            origin,
            lambda: operations.transfer_asset(self.state, origin, target, amount),
        )

    def mint(self, origin: str, payload: bytes) -> DispatchResult:
        """Deposit into the pool; payload is an encoded MintData."""

        def run() -> List[LedgerEvent]:
            data = MintData.from_bytes(payload)
            return operations.mint(self.state, origin, data, self.parameters)

        return self._dispatch("mint", origin, run)

    def private_transfer(self, origin: str, payload: bytes) -> DispatchResult:
        """Spend two coins into two; payload is an encoded PrivateTransferData."""

        def run() -> List[LedgerEvent]:
            data = PrivateTransferData.from_bytes(payload)
            return operations.private_transfer(
                self.state, origin, data, self.parameters, self.verifier
            )

        return self._dispatch("private_transfer", origin, run)

    def reclaim(self, origin: str, payload: bytes) -> DispatchResult:
        """Withdraw from the pool; payload is an encoded ReclaimData."""

        def run() -> List[LedgerEvent]:
            data = ReclaimData.from_bytes(payload)
            return operations.reclaim(
                self.state, origin, data, self.parameters, self.verifier
            )

        return self._dispatch("reclaim", origin, run)

    # Queries

    def balance(self, who: str) -> int:
        return self.state.balance(who)

    @property
    def initialized(self) -> bool:
        return self.state.initialized

    @property
    def pool_balance(self) -> int:
        return self.state.pool_balance

    @property
    def total_supply(self) -> int:
        return self.state.total_supply

    @property
    def nullifiers(self) -> List[bytes]:
        return list(self.state.nullifiers)

    @property
    def ciphertexts(self) -> List[Ciphertext]:
        return list(self.state.ciphertexts)

    @property
    def shards(self) -> ShardTable:
        return self.state.shards

    def shard_roots(self) -> List[Optional[FieldElement]]:
        return self.state.shards.roots()

    def get_stats(self) -> Dict[str, Any]:
        stats = self.state.get_stats()
        stats["events"] = len(self.events)
        stats["verification_cache"] = self.verifier.cache.get_stats()
        return stats
