"""
Ledger state and state deltas.

Operations never mutate a LedgerState directly. They validate against it,
describe the outcome as a StateDelta, and the delta is applied in one pass.
A rejected operation therefore leaves the state untouched.

Each persisted item carries its own version, bumped whenever an applied
delta touches it, and is marked dirty until the store has written it.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from ..crypto.hashing import FieldElement, expect_length
from ..crypto.merkle import DEFAULT_TREE_DEPTH
from ..crypto.params import Checksums, HashParameters
from ..errors import StorageError
from ..sharding import DEFAULT_ROOT_HISTORY, ShardTable
from .events import LedgerEvent

ITEM_INITIALIZED = "initialized"
ITEM_COIN_SHARDS = "coin_shards"
ITEM_NULLIFIERS = "nullifiers"
ITEM_CIPHERTEXTS = "ciphertexts"
ITEM_POOL_BALANCE = "pool_balance"
ITEM_TOTAL_SUPPLY = "total_supply"
ITEM_BALANCES = "balances"
ITEM_CHECKSUMS = "checksums"

PERSISTED_ITEMS = (
    ITEM_INITIALIZED,
    ITEM_COIN_SHARDS,
    ITEM_NULLIFIERS,
    ITEM_CIPHERTEXTS,
    ITEM_POOL_BALANCE,
    ITEM_TOTAL_SUPPLY,
    ITEM_BALANCES,
    ITEM_CHECKSUMS,
)


@dataclass(frozen=True)
class Ciphertext:
    """Encrypted value of a created coin."""

    sender_pk: bytes
    cipher: bytes

    def __post_init__(self) -> None:
        expect_length(self.sender_pk, 32, "sender_pk")
        expect_length(self.cipher, 16, "cipher")

    def to_bytes(self) -> bytes:
        return self.sender_pk + self.cipher

    @classmethod
    def from_bytes(cls, data: bytes) -> "Ciphertext":
        data = expect_length(data, 48, "ciphertext")
        return cls(sender_pk=data[:32], cipher=data[32:])


@dataclass
class StateDelta:
    """Validated outcome of one operation."""

    checksums: Optional[Checksums] = None
    total_supply: Optional[int] = None
    balance_changes: Dict[str, int] = field(default_factory=dict)
    pool_change: int = 0
    nullifiers: List[bytes] = field(default_factory=list)
    commitments: List[FieldElement] = field(default_factory=list)
    ciphertexts: List[Ciphertext] = field(default_factory=list)
    events: List[LedgerEvent] = field(default_factory=list)

    def credit(self, account: str, amount: int) -> None:
        self.balance_changes[account] = self.balance_changes.get(account, 0) + amount

    def debit(self, account: str, amount: int) -> None:
        self.credit(account, -amount)

    def touched_items(self) -> Set[str]:
        items = set()
        if self.checksums is not None:
            items.update((ITEM_INITIALIZED, ITEM_CHECKSUMS))
        if self.total_supply is not None:
            items.add(ITEM_TOTAL_SUPPLY)
        if self.balance_changes:
            items.add(ITEM_BALANCES)
        if self.pool_change:
            items.add(ITEM_POOL_BALANCE)
        if self.nullifiers:
            items.add(ITEM_NULLIFIERS)
        if self.commitments:
            items.add(ITEM_COIN_SHARDS)
        if self.ciphertexts:
            items.add(ITEM_CIPHERTEXTS)
        return items


class LedgerState:
    """Everything the ledger persists."""

    def __init__(
        self,
        hash_params: HashParameters,
        tree_depth: int = DEFAULT_TREE_DEPTH,
        root_history_size: int = DEFAULT_ROOT_HISTORY,
    ):
        self.hash_params = hash_params
        self.tree_depth = tree_depth
        self.root_history_size = root_history_size

        self.initialized = False
        self.shards = ShardTable(hash_params, tree_depth, root_history_size)
        self.nullifiers: List[bytes] = []
        self._spent: Set[bytes] = set()
        self.ciphertexts: List[Ciphertext] = []
        self.pool_balance = 0
        self.total_supply = 0
        self.balances: Dict[str, int] = {}
        self.checksums: Optional[Checksums] = None

        self.versions: Dict[str, int] = {item: 0 for item in PERSISTED_ITEMS}
        self._dirty: Set[str] = set()

    def balance(self, account: str) -> int:
        return self.balances.get(account, 0)

    def is_spent(self, nullifier: bytes) -> bool:
        return nullifier in self._spent

    def apply(self, delta: StateDelta) -> List[LedgerEvent]:
        """
        Apply a validated delta.

        Returns:
            The delta's events
        """
        if delta.checksums is not None:
            self.initialized = True
            self.checksums = delta.checksums
        if delta.total_supply is not None:
            self.total_supply = delta.total_supply

        for account, change in delta.balance_changes.items():
            balance = self.balance(account) + change
            if balance:
                self.balances[account] = balance
            else:
                self.balances.pop(account, None)
        self.pool_balance += delta.pool_change

        for nullifier in delta.nullifiers:
            self.nullifiers.append(nullifier)
            self._spent.add(nullifier)
        for cm in delta.commitments:
            self.shards.update(cm)
        self.ciphertexts.extend(delta.ciphertexts)

        touched = delta.touched_items()
        for item in touched:
            self.versions[item] += 1
        self._dirty |= touched
        return list(delta.events)

    @property
    def dirty_items(self) -> Set[str]:
        return set(self._dirty)

    def mark_clean(self, items: Optional[Set[str]] = None) -> None:
        if items is None:
            self._dirty.clear()
        else:
            self._dirty -= items

    def export_item(self, item: str) -> Any:
        """Plain-data value of a persisted item."""
        if item == ITEM_INITIALIZED:
            return self.initialized
        if item == ITEM_COIN_SHARDS:
            return self.shards.to_dict()
        if item == ITEM_NULLIFIERS:
            return list(self.nullifiers)
        if item == ITEM_CIPHERTEXTS:
            return [c.to_bytes() for c in self.ciphertexts]
        if item == ITEM_POOL_BALANCE:
            return self.pool_balance
        if item == ITEM_TOTAL_SUPPLY:
            return self.total_supply
        if item == ITEM_BALANCES:
            return dict(self.balances)
        if item == ITEM_CHECKSUMS:
            return self.checksums.to_dict() if self.checksums else None
        raise StorageError(f"Unknown item {item}", item=item)

    def load_item(self, item: str, value: Any, version: int) -> None:
        """Restore a persisted item from its plain-data value."""
        if item == ITEM_INITIALIZED:
            self.initialized = bool(value)
        elif item == ITEM_COIN_SHARDS:
            self.shards = ShardTable.from_dict(
                value, self.hash_params, self.tree_depth, self.root_history_size
            )
        elif item == ITEM_NULLIFIERS:
            self.nullifiers = list(value)
            self._spent = set(self.nullifiers)
        elif item == ITEM_CIPHERTEXTS:
            self.ciphertexts = [Ciphertext.from_bytes(raw) for raw in value]
        elif item == ITEM_POOL_BALANCE:
            self.pool_balance = int(value)
        elif item == ITEM_TOTAL_SUPPLY:
            self.total_supply = int(value)
        elif item == ITEM_BALANCES:
            self.balances = {str(k): int(v) for k, v in value.items()}
        elif item == ITEM_CHECKSUMS:
            self.checksums = Checksums.from_dict(value) if value else None
        else:
            raise StorageError(f"Unknown item {item}", item=item)
        self.versions[item] = version

    def snapshot(self) -> Dict[str, Any]:
        """All items as plain data, for comparison and debugging."""
        return {item: self.export_item(item) for item in PERSISTED_ITEMS}

    def get_stats(self) -> Dict[str, Any]:
        return {
            "initialized": self.initialized,
            "nullifiers": len(self.nullifiers),
            "ciphertexts": len(self.ciphertexts),
            "pool_balance": self.pool_balance,
            "total_supply": self.total_supply,
            "accounts": len(self.balances),
            "shards": self.shards.get_stats(),
        }
