"""
Unit tests for the incremental Merkle accumulator.
"""

import pytest

from shieldpool.crypto.hashing import FieldElement
from shieldpool.crypto.merkle import (
    MembershipPath,
    MerkleAccumulator,
    compute_zero_hashes,
    leaf_hash,
    node_hash,
    verify_path,
)
from shieldpool.crypto.params import HashParameters
from shieldpool.errors import CapacityExceeded


@pytest.fixture
def params():
    return HashParameters.generate()


def naive_root(params, leaves, depth):
    """Root computed from scratch over a fully padded tree."""
    zeros = compute_zero_hashes(params, depth)
    level = [leaf_hash(params, leaf) for leaf in leaves]
    for height in range(depth):
        if len(level) % 2:
            level.append(zeros[height])
        level = [node_hash(params, level[i], level[i + 1]) for i in range(0, len(level), 2)]
    return level[0] if leaves else zeros[depth]


class TestMerkleAccumulator:
    """Test the MerkleAccumulator class."""

    def test_empty_root(self, params):
        """Test that an empty tree has the all-zero root."""
        tree = MerkleAccumulator(params, depth=4)
        assert tree.root() == compute_zero_hashes(params, 4)[4]
        assert len(tree) == 0

    def test_invalid_depth(self, params):
        """Test that depth must be positive."""
        with pytest.raises(ValueError, match="positive"):
            MerkleAccumulator(params, depth=0)

    @pytest.mark.parametrize("count", [1, 2, 3, 5, 8])
    def test_incremental_root_matches_naive(self, params, count):
        """Test that appends maintain the same root as a full recomputation."""
        tree = MerkleAccumulator(params, depth=3)
        leaves = [FieldElement(i + 1) for i in range(count)]
        for leaf in leaves:
            root = tree.append(leaf)
        assert root == tree.root()
        assert root == naive_root(params, leaves, 3)

    def test_capacity(self, params):
        """Test that a full tree raises CapacityExceeded."""
        tree = MerkleAccumulator(params, depth=2)
        for i in range(4):
            tree.append(FieldElement(i))
        assert tree.is_full
        with pytest.raises(CapacityExceeded, match="full"):
            tree.append(FieldElement(9))
        assert len(tree) == 4

    def test_paths_verify(self, params):
        """Test that every leaf has a valid path under the current root."""
        tree = MerkleAccumulator(params, depth=4)
        leaves = [FieldElement(100 + i) for i in range(6)]
        for leaf in leaves:
            tree.append(leaf)
        root = tree.root()
        for index, leaf in enumerate(leaves):
            path = tree.prove(index)
            assert path.depth == 4
            assert verify_path(params, leaf, path, root)

    def test_path_rejects_wrong_leaf(self, params):
        """Test that a path does not verify another leaf."""
        tree = MerkleAccumulator(params, depth=3)
        tree.append(FieldElement(1))
        tree.append(FieldElement(2))
        path = tree.prove(0)
        assert not verify_path(params, FieldElement(2), path, tree.root())

    def test_old_path_verifies_old_root(self, params):
        """Test that a path taken earlier verifies against the earlier root."""
        tree = MerkleAccumulator(params, depth=3)
        tree.append(FieldElement(1))
        old_root, old_path = tree.root(), tree.prove(0)
        tree.append(FieldElement(2))
        assert verify_path(params, FieldElement(1), old_path, old_root)
        assert not verify_path(params, FieldElement(1), old_path, tree.root())

    def test_prove_unknown_index(self, params):
        """Test that proving a missing leaf raises IndexError."""
        tree = MerkleAccumulator(params, depth=3)
        with pytest.raises(IndexError):
            tree.prove(0)

    def test_out_of_range_path_index(self, params):
        """Test that a path index beyond the tree never verifies."""
        path = MembershipPath(leaf_index=8, siblings=tuple(compute_zero_hashes(params, 3)[:3]))
        assert not verify_path(params, FieldElement(0), path, FieldElement(0))

    def test_path_to_dict(self, params):
        """Test path serialization for debugging."""
        tree = MerkleAccumulator(params, depth=2)
        tree.append(FieldElement(1))
        data = tree.prove(0).to_dict()
        assert data["leaf_index"] == 0
        assert len(data["siblings"]) == 2
