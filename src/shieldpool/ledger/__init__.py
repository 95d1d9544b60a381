"""
Shielded ledger for shieldpool.

Operations validate against an explicit LedgerState and return a StateDelta;
ShieldedLedger dispatches wire payloads to them and persists the result.
"""

from .events import (
    Issued,
    LedgerEvent,
    Minted,
    PrivateTransferred,
    Reclaimed,
    Transferred,
)
from .operations import (
    init,
    mint,
    private_transfer,
    reclaim,
    transfer_asset,
    validate_init,
    validate_mint,
    validate_private_transfer,
    validate_reclaim,
    validate_transfer_asset,
)
from .runtime import DispatchResult, ShieldedLedger
from .state import PERSISTED_ITEMS, Ciphertext, LedgerState, StateDelta

__all__ = [
    # Events
    "LedgerEvent",
    "Issued",
    "Transferred",
    "Minted",
    "PrivateTransferred",
    "Reclaimed",
    # State
    "PERSISTED_ITEMS",
    "Ciphertext",
    "LedgerState",
    "StateDelta",
    # Operations
    "init",
    "transfer_asset",
    "mint",
    "private_transfer",
    "reclaim",
    "validate_init",
    "validate_transfer_asset",
    "validate_mint",
    "validate_private_transfer",
    "validate_reclaim",
    # Runtime
    "DispatchResult",
    "ShieldedLedger",
]
