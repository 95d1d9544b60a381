"""shieldpool error handling.

This module provides the exception hierarchy for the shielded ledger,
including the ledger rejection taxonomy surfaced to hosts.
"""

from .exceptions import (
    AlreadyInitialized,
    AlreadySpent,
    AmountZero,
    BalanceLow,
    CapacityExceeded,
    ConfigurationError,
    CryptographicError,
    DecryptionError,
    DuplicateCommitment,
    ErrorCategory,
    ErrorContext,
    ErrorKind,
    ErrorSeverity,
    InvalidLedgerState,
    LedgerError,
    MalformedEncoding,
    MintFail,
    NotInitialized,
    ParameterMismatch,
    PoolOverdrawn,
    ShieldPoolError,
    StorageError,
    ValidationError,
    ZKPFail,
    create_malformed_error,
    error_for_kind,
)

__all__ = [
    # Base
    "ShieldPoolError",
    "ErrorSeverity",
    "ErrorCategory",
    "ErrorContext",
    "ErrorKind",
    "ValidationError",
    "CryptographicError",
    "DecryptionError",
    "StorageError",
    "ConfigurationError",
    # Ledger
    "LedgerError",
    "AlreadyInitialized",
    "NotInitialized",
    "ParameterMismatch",
    "MalformedEncoding",
    "DuplicateCommitment",
    "AlreadySpent",
    "InvalidLedgerState",
    "ZKPFail",
    "PoolOverdrawn",
    "BalanceLow",
    "AmountZero",
    "MintFail",
    "CapacityExceeded",
    "error_for_kind",
    "create_malformed_error",
]
