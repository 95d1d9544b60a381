"""
Incremental Merkle accumulator for coin commitments.

Each shard keeps one fixed-depth binary tree. Leaves are appended left to
right and the root is maintained incrementally, touching one node per level.
Positions that have not been filled hold precomputed empty digests.
"""

import logging

logger = logging.getLogger(__name__)
from dataclasses import dataclass
from typing import List, Tuple

from ..errors import CapacityExceeded
from .hashing import Blake2Hasher, FieldElement
from .params import HashParameters

DEFAULT_TREE_DEPTH = 20


def leaf_hash(params: HashParameters, leaf: FieldElement) -> FieldElement:
    """Hash a commitment into a leaf digest."""
    return Blake2Hasher.hash_to_field(params.leaf_key, leaf.to_bytes())


def node_hash(
    params: HashParameters, left: FieldElement, right: FieldElement
) -> FieldElement:
    """Two-to-one compression of sibling digests."""
    return Blake2Hasher.hash_to_field(
        params.node_key, left.to_bytes() + right.to_bytes()
    )


def compute_zero_hashes(params: HashParameters, depth: int) -> List[FieldElement]:
    """Digests of empty subtrees, indexed by level (0 is the leaf level)."""
    zero_hashes = [FieldElement.zero()]
    for _ in range(depth):
        zero_hashes.append(node_hash(params, zero_hashes[-1], zero_hashes[-1]))
    return zero_hashes


@dataclass(frozen=True)
class MembershipPath:
    """Authentication path from a leaf to the root."""

    leaf_index: int
    siblings: Tuple[FieldElement, ...]

    @property
    def depth(self) -> int:
        return len(self.siblings)

    def compute_root(self, params: HashParameters, leaf: FieldElement) -> FieldElement:
        """Fold the path over the leaf's digest."""
        current = leaf_hash(params, leaf)
        index = self.leaf_index
        for sibling in self.siblings:
            if index & 1:
                current = node_hash(params, sibling, current)
            else:
                current = node_hash(params, current, sibling)
            index >>= 1
        return current

    def to_dict(self) -> dict:
        return {
            "leaf_index": self.leaf_index,
            "siblings": [s.to_hex() for s in self.siblings],
        }


def verify_path(
    params: HashParameters,
    leaf: FieldElement,
    path: MembershipPath,
    root: FieldElement,
) -> bool:
    """Check that leaf sits at path.leaf_index in a tree with the given root."""
    if path.leaf_index < 0 or path.leaf_index >= 1 << path.depth:
        return False
    return path.compute_root(params, leaf) == root


class MerkleAccumulator:
    """Append-only Merkle tree of fixed depth."""

    def __init__(self, params: HashParameters, depth: int = DEFAULT_TREE_DEPTH):
        """
        Initialize an empty accumulator.

        Args:
            params: Hash parameters keying the leaf and node hashes
            depth: Number of levels above the leaves; capacity is 2**depth
        """
        if depth <= 0:
            raise ValueError("Tree depth must be positive")

        self.params = params
        self.depth = depth
        self.capacity = 1 << depth
        self._zero_hashes = compute_zero_hashes(params, depth)
        # _levels[0] holds leaf digests, _levels[depth] the root once non-empty.
        self._levels: List[List[FieldElement]] = [[] for _ in range(depth + 1)]
        self._leaves: List[FieldElement] = []

    def __len__(self) -> int:
        return len(self._leaves)

    @property
    def leaves(self) -> List[FieldElement]:
        return list(self._leaves)

    @property
    def is_full(self) -> bool:
        return len(self._leaves) >= self.capacity

    def root(self) -> FieldElement:
        """Current root; the empty-tree root when nothing was appended."""
        if not self._leaves:
            return self._zero_hashes[self.depth]
        return self._levels[self.depth][0]

    def append(self, leaf: FieldElement) -> FieldElement:
        """
        Append a leaf and return the new root.

        Raises:
            CapacityExceeded: If the tree already holds 2**depth leaves
        """
        if self.is_full:
            raise CapacityExceeded(f"Merkle tree of depth {self.depth} is full")

        index = len(self._leaves)
        self._leaves.append(leaf)
        self._levels[0].append(leaf_hash(self.params, leaf))

        for level in range(self.depth):
            nodes = self._levels[level]
            left_index = index & ~1
            left = nodes[left_index]
            right = (
                nodes[left_index + 1]
                if left_index + 1 < len(nodes)
                else self._zero_hashes[level]
            )
            parent = node_hash(self.params, left, right)

            index >>= 1
            parents = self._levels[level + 1]
            if index < len(parents):
                parents[index] = parent
            else:
                parents.append(parent)

        return self._levels[self.depth][0]

    def prove(self, index: int) -> MembershipPath:
        """
        Build the membership path of the leaf at index.

        Raises:
            IndexError: If no leaf was appended at index
        """
        if index < 0 or index >= len(self._leaves):
            raise IndexError(f"No leaf at index {index}")

        siblings = []
        position = index
        for level in range(self.depth):
            nodes = self._levels[level]
            sibling_index = position ^ 1
            if sibling_index < len(nodes):
                siblings.append(nodes[sibling_index])
            else:
                siblings.append(self._zero_hashes[level])
            position >>= 1

        return MembershipPath(leaf_index=index, siblings=tuple(siblings))

    def __repr__(self) -> str:
        return (
            f"MerkleAccumulator(depth={self.depth}, leaves={len(self._leaves)}, "
            f"root={self.root().to_hex()[:16]}...)"
        )
