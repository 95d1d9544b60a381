"""
Shard management for shieldpool.

Commitments are partitioned into 256 shards by their first byte. Each shard
owns an incremental Merkle accumulator, a set index for duplicate checks and
a bounded window of its recent roots, so a proof generated against a root
that was current a few appends ago is still accepted.
"""

import logging

logger = logging.getLogger(__name__)
from collections import deque
from typing import Any, Deque, Dict, List, Optional, Tuple

from ..crypto.hashing import FieldElement
from ..crypto.merkle import DEFAULT_TREE_DEPTH, MembershipPath, MerkleAccumulator
from ..crypto.params import HashParameters
from ..errors import StorageError

NUM_SHARDS = 256
DEFAULT_ROOT_HISTORY = 64


def shard_index(cm: FieldElement) -> int:
    """Shard of a commitment: the first byte of its canonical encoding."""
    return cm.to_bytes()[0]


class Shard:
    """One partition of the commitment set."""

    def __init__(
        self,
        index: int,
        params: HashParameters,
        depth: int = DEFAULT_TREE_DEPTH,
        root_history_size: int = DEFAULT_ROOT_HISTORY,
    ):
        self.index = index
        self.tree = MerkleAccumulator(params, depth)
        self._positions: Dict[FieldElement, int] = {}
        self._recent_roots: Deque[FieldElement] = deque(maxlen=root_history_size)

    def __len__(self) -> int:
        return len(self.tree)

    def __contains__(self, cm: FieldElement) -> bool:
        return cm in self._positions

    @property
    def is_empty(self) -> bool:
        return len(self.tree) == 0

    @property
    def free_slots(self) -> int:
        return self.tree.capacity - len(self.tree)

    @property
    def recent_roots(self) -> List[FieldElement]:
        return list(self._recent_roots)

    def root(self) -> FieldElement:
        return self.tree.root()

    def knows_root(self, root: FieldElement) -> bool:
        """True if root is the current root or one of the recent roots."""
        return root in self._recent_roots

    def append(self, cm: FieldElement) -> FieldElement:
        root = self.tree.append(cm)
        self._positions[cm] = len(self.tree) - 1
        self._recent_roots.append(root)
        return root

    def prove(self, cm: FieldElement) -> Tuple[FieldElement, MembershipPath]:
        """Current root and membership path of a commitment in this shard."""
        if cm not in self._positions:
            raise KeyError(f"Commitment not in shard {self.index}")
        return self.root(), self.tree.prove(self._positions[cm])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "leaves": [cm.to_bytes() for cm in self.tree.leaves],
            "recent_roots": [root.to_bytes() for root in self._recent_roots],
        }

    def load(self, data: Dict[str, Any]) -> None:
        """Restore leaves and root history into an empty shard."""
        if not self.is_empty:
            raise StorageError(f"Shard {self.index} is not empty", item="coin_shards")
        for raw in data["leaves"]:
            cm = FieldElement.from_bytes(raw, field="cm")
            self.tree.append(cm)
            self._positions[cm] = len(self.tree) - 1
        self._recent_roots.clear()
        self._recent_roots.extend(
            FieldElement.from_bytes(raw, field="root") for raw in data["recent_roots"]
        )
        if self._recent_roots and self._recent_roots[-1] != self.tree.root():
            raise StorageError(
                f"Shard {self.index} root history does not match its leaves",
                item="coin_shards",
            )


class ShardTable:
    """The 256 commitment shards of the ledger."""

    def __init__(
        self,
        params: HashParameters,
        depth: int = DEFAULT_TREE_DEPTH,
        root_history_size: int = DEFAULT_ROOT_HISTORY,
    ):
        """
        Initialize empty shards.

        Args:
            params: Hash parameters of every shard's accumulator
            depth: Accumulator depth
            root_history_size: Number of recent roots each shard accepts
        """
        if root_history_size <= 0:
            raise ValueError("root_history_size must be positive")

        self.params = params
        self.depth = depth
        self.root_history_size = root_history_size
        self.shards = [
            Shard(i, params, depth, root_history_size) for i in range(NUM_SHARDS)
        ]

    def __len__(self) -> int:
        return sum(len(shard) for shard in self.shards)

    def shard_for(self, cm: FieldElement) -> Shard:
        return self.shards[shard_index(cm)]

    def check_root(self, root: FieldElement) -> bool:
        """True if some non-empty shard has root as current or recent root."""
        return any(shard.knows_root(root) for shard in self.shards if not shard.is_empty)

    def exists(self, cm: FieldElement) -> bool:
        return cm in self.shard_for(cm)

    def can_accept(self, cm: FieldElement, count: int = 1) -> bool:
        """True if the commitment's shard has room for count more leaves."""
        return self.shard_for(cm).free_slots >= count

    def update(self, cm: FieldElement) -> FieldElement:
        """
        Append a commitment to its shard and return the shard's new root.

        Duplicates are not checked here; callers check ``exists`` first.
        """
        shard = self.shard_for(cm)
        root = shard.append(cm)
        logger.debug("Appended commitment to shard %d (size %d)", shard.index, len(shard))
        return root

    def prove(self, cm: FieldElement) -> Tuple[FieldElement, MembershipPath]:
        return self.shard_for(cm).prove(cm)

    def roots(self) -> List[Optional[FieldElement]]:
        """Current root of every shard, None for empty shards."""
        return [None if shard.is_empty else shard.root() for shard in self.shards]

    def to_dict(self) -> Dict[str, Any]:
        """Serialize non-empty shards keyed by index."""
        return {
            shard.index: shard.to_dict() for shard in self.shards if not shard.is_empty
        }

    @classmethod
    def from_dict(
        cls,
        data: Dict[int, Dict[str, Any]],
        params: HashParameters,
        depth: int = DEFAULT_TREE_DEPTH,
        root_history_size: int = DEFAULT_ROOT_HISTORY,
    ) -> "ShardTable":
        table = cls(params, depth, root_history_size)
        for index, shard_data in data.items():
            index = int(index)
            if not 0 <= index < NUM_SHARDS:
                raise StorageError(f"Invalid shard index {index}", item="coin_shards")
            table.shards[index].load(shard_data)
        return table

    def get_stats(self) -> Dict[str, Any]:
        sizes = [len(shard) for shard in self.shards]
        return {
            "total_commitments": sum(sizes),
            "non_empty_shards": sum(1 for size in sizes if size),
            "largest_shard": max(sizes),
            "depth": self.depth,
            "root_history_size": self.root_history_size,
        }
