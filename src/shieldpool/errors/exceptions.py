"""Exception hierarchy for shieldpool.

This module defines the structured exceptions raised by the shielded ledger:
a common base carrying severity, category and context, and one ledger error
per rejection reason so a host can tell a spent coin from a bad proof from a
changed parameter set.
"""

import time
import traceback
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    """Error severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories."""

    VALIDATION = "validation"
    CRYPTOGRAPHIC = "cryptographic"
    LEDGER = "ledger"
    STORAGE = "storage"
    CONFIGURATION = "configuration"
    SYSTEM = "system"


class ErrorKind(Enum):
    """Rejection reasons surfaced by the ledger."""

    ALREADY_INITIALIZED = "AlreadyInitialized"
    NOT_INITIALIZED = "NotInitialized"
    PARAMETER_MISMATCH = "ParameterMismatch"
    MALFORMED_ENCODING = "MalformedEncoding"
    DUPLICATE_COMMITMENT = "DuplicateCommitment"
    ALREADY_SPENT = "AlreadySpent"
    INVALID_LEDGER_STATE = "InvalidLedgerState"
    ZKP_FAIL = "ZKPFail"
    POOL_OVERDRAWN = "PoolOverdrawn"
    BALANCE_LOW = "BalanceLow"
    AMOUNT_ZERO = "AmountZero"
    MINT_FAIL = "MintFail"
    CAPACITY_EXCEEDED = "CapacityExceeded"


@dataclass
class ErrorContext:
    """Context information for an error."""

    timestamp: float = field(default_factory=time.time)
    component: Optional[str] = None
    operation: Optional[str] = None
    account: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert context to dictionary."""
        return {
            "timestamp": self.timestamp,
            "component": self.component,
            "operation": self.operation,
            "account": self.account,
            "metadata": self.metadata,
        }


class ShieldPoolError(Exception):
    """Base exception for all shieldpool errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        category: ErrorCategory = ErrorCategory.SYSTEM,
        context: Optional[ErrorContext] = None,
        cause: Optional[Exception] = None,
        retryable: bool = False,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.severity = severity
        self.category = category
        self.context = context or ErrorContext()
        self.cause = cause
        self.retryable = retryable
        self.metadata = metadata or {}
        self.timestamp = time.time()
        self.traceback = traceback.format_exc()

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary."""
        return {
            "type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "severity": self.severity.value,
            "category": self.category.value,
            "context": self.context.to_dict(),
            "cause": str(self.cause) if self.cause else None,
            "retryable": self.retryable,
            "metadata": self.metadata,
            "timestamp": self.timestamp,
        }

    def __str__(self) -> str:
        """String representation of the error."""
        parts = [f"{self.__class__.__name__}: {self.message}"]

        if self.error_code:
            parts.append(f"Code: {self.error_code}")

        if self.severity != ErrorSeverity.MEDIUM:
            parts.append(f"Severity: {self.severity.value}")

        if self.category != ErrorCategory.SYSTEM:
            parts.append(f"Category: {self.category.value}")

        if self.retryable:
            parts.append("Retryable: Yes")

        return " | ".join(parts)


class ValidationError(ShieldPoolError):
    """Validation error."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        expected: Optional[Any] = None,
        **kwargs,
    ):
        kwargs.setdefault("category", ErrorCategory.VALIDATION)
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value
        self.expected = expected

    def to_dict(self) -> Dict[str, Any]:
        """Convert validation error to dictionary."""
        data = super().to_dict()
        data.update(
            {
                "field": self.field,
                "value": str(self.value) if self.value is not None else None,
                "expected": str(self.expected) if self.expected is not None else None,
            }
        )
        return data


class CryptographicError(ShieldPoolError):
    """Cryptographic error."""

    def __init__(
        self,
        message: str,
        algorithm: Optional[str] = None,
        **kwargs,
    ):
        kwargs.setdefault("category", ErrorCategory.CRYPTOGRAPHIC)
        kwargs.setdefault("severity", ErrorSeverity.HIGH)
        super().__init__(message, **kwargs)
        self.algorithm = algorithm

    def to_dict(self) -> Dict[str, Any]:
        """Convert cryptographic error to dictionary."""
        data = super().to_dict()
        data.update({"algorithm": self.algorithm})
        return data


class DecryptionError(CryptographicError):
    """Ciphertext could not be decrypted under the given keys."""


class StorageError(ShieldPoolError):
    """Storage error."""

    def __init__(
        self,
        message: str,
        item: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(message, category=ErrorCategory.STORAGE, **kwargs)
        self.item = item

    def to_dict(self) -> Dict[str, Any]:
        """Convert storage error to dictionary."""
        data = super().to_dict()
        data.update({"item": self.item})
        return data


class ConfigurationError(ShieldPoolError):
    """Configuration error."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        **kwargs,
    ):
        super().__init__(
            message,
            category=ErrorCategory.CONFIGURATION,
            severity=ErrorSeverity.HIGH,
            **kwargs,
        )
        self.config_key = config_key
        self.config_value = config_value

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration error to dictionary."""
        data = super().to_dict()
        data.update(
            {
                "config_key": self.config_key,
                "config_value": (
                    str(self.config_value) if self.config_value is not None else None
                ),
            }
        )
        return data


class LedgerError(ShieldPoolError):
    """Base class for operations rejected by the ledger.

    Ledger errors are never retryable: each one is either attacker input or a
    caller logic error and must be resubmitted with corrected data.
    """

    kind: ErrorKind = ErrorKind.INVALID_LEDGER_STATE

    def __init__(self, message: Optional[str] = None, **kwargs):
        kwargs.setdefault("category", ErrorCategory.LEDGER)
        kwargs["retryable"] = False
        super().__init__(
            message or self.kind.value, error_code=self.kind.value, **kwargs
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert ledger error to dictionary."""
        data = super().to_dict()
        data.update({"kind": self.kind.value})
        return data


class AlreadyInitialized(LedgerError):
    """The ledger has already been initialized."""

    kind = ErrorKind.ALREADY_INITIALIZED


class NotInitialized(LedgerError):
    """The ledger has not been initialized yet."""

    kind = ErrorKind.NOT_INITIALIZED


class ParameterMismatch(LedgerError):
    """Supplied parameters or keys disagree with the pinned checksums."""

    kind = ErrorKind.PARAMETER_MISMATCH

    def __init__(self, message: Optional[str] = None, **kwargs):
        kwargs.setdefault("category", ErrorCategory.CONFIGURATION)
        kwargs.setdefault("severity", ErrorSeverity.CRITICAL)
        super().__init__(message, **kwargs)


class MalformedEncoding(LedgerError):
    """Untrusted bytes do not decode to a valid value."""

    kind = ErrorKind.MALFORMED_ENCODING

    def __init__(
        self, message: Optional[str] = None, field: Optional[str] = None, **kwargs
    ):
        kwargs.setdefault("category", ErrorCategory.VALIDATION)
        super().__init__(message, **kwargs)
        self.field = field


class DuplicateCommitment(LedgerError):
    """The commitment is already present in its shard."""

    kind = ErrorKind.DUPLICATE_COMMITMENT


class AlreadySpent(LedgerError):
    """The nullifier has already been recorded."""

    kind = ErrorKind.ALREADY_SPENT


class InvalidLedgerState(LedgerError):
    """A claimed Merkle root is not recognized by any shard."""

    kind = ErrorKind.INVALID_LEDGER_STATE


class ZKPFail(LedgerError):
    """The proof did not verify, or the proof or key failed to parse."""

    kind = ErrorKind.ZKP_FAIL

    def __init__(self, message: Optional[str] = None, **kwargs):
        kwargs.setdefault("category", ErrorCategory.CRYPTOGRAPHIC)
        kwargs.setdefault("severity", ErrorSeverity.HIGH)
        super().__init__(message, **kwargs)


class PoolOverdrawn(LedgerError):
    """The pool balance is lower than the requested withdrawal."""

    kind = ErrorKind.POOL_OVERDRAWN

    def __init__(self, message: Optional[str] = None, **kwargs):
        kwargs.setdefault("severity", ErrorSeverity.CRITICAL)
        super().__init__(message, **kwargs)


class BalanceLow(LedgerError):
    """The public balance is lower than the requested amount."""

    kind = ErrorKind.BALANCE_LOW


class AmountZero(LedgerError):
    """The amount must be non-zero."""

    kind = ErrorKind.AMOUNT_ZERO


class MintFail(LedgerError):
    """The commitment opening submitted with a mint is wrong."""

    kind = ErrorKind.MINT_FAIL


class CapacityExceeded(LedgerError):
    """The target shard's accumulator is full."""

    kind = ErrorKind.CAPACITY_EXCEEDED


_ERRORS_BY_KIND = {
    cls.kind: cls
    for cls in (
        AlreadyInitialized,
        NotInitialized,
        ParameterMismatch,
        MalformedEncoding,
        DuplicateCommitment,
        AlreadySpent,
        InvalidLedgerState,
        ZKPFail,
        PoolOverdrawn,
        BalanceLow,
        AmountZero,
        MintFail,
        CapacityExceeded,
    )
}


def error_for_kind(kind: ErrorKind, message: Optional[str] = None) -> LedgerError:
    """Create the ledger error matching a kind."""
    return _ERRORS_BY_KIND[kind](message)


def create_malformed_error(
    field: str, expected: Any, message: Optional[str] = None
) -> MalformedEncoding:
    """Create a malformed-encoding error for a named field."""
    if message is None:
        message = f"Malformed encoding for field '{field}': expected {expected}"

    return MalformedEncoding(message, field=field)
