"""
Commitment sharding for shieldpool.

Commitments are routed to one of 256 shards by their first byte; each shard
keeps its own Merkle accumulator and recent-root window.
"""

from .shard_manager import (
    DEFAULT_ROOT_HISTORY,
    NUM_SHARDS,
    Shard,
    ShardTable,
    shard_index,
)

__all__ = [
    "NUM_SHARDS",
    "DEFAULT_ROOT_HISTORY",
    "Shard",
    "ShardTable",
    "shard_index",
]
