"""
Core ZKP types.

This module defines the status codes, configuration and result types shared
by the Groth16 verifier, the circuits and the key generation code.
"""

import time
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, Optional


class ZKPStatus(IntEnum):
    """Status codes for ZKP operations."""
    SUCCESS = 0
    INVALID_INPUT = 2
    VERIFICATION_FAILED = 3
    MALFORMED_DATA = 8
    CRYPTOGRAPHIC_ERROR = 9


@dataclass
class ZKPConfig:
    """Configuration for proof verification."""
    # Prepared verifying keys kept in memory
    cache_size: int = 8

    # Security settings
    enable_subgroup_checks: bool = True
    max_public_inputs: int = 64

    def validate(self) -> None:
        """Validate configuration parameters."""
        if self.cache_size <= 0:
            raise ValueError("cache_size must be positive")
        if self.max_public_inputs <= 0:
            raise ValueError("max_public_inputs must be positive")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cache_size": self.cache_size,
            "enable_subgroup_checks": self.enable_subgroup_checks,
            "max_public_inputs": self.max_public_inputs,
        }


@dataclass
class VerificationResult:
    """Result of proof verification."""
    status: ZKPStatus
    is_valid: bool = False
    error_message: Optional[str] = None
    verification_time: float = 0.0
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_success(self) -> bool:
        """Check if verification ran to completion."""
        return self.status == ZKPStatus.SUCCESS


class ZKPError(Exception):
    """Base exception for ZKP operations."""

    def __init__(self, message: str, status: ZKPStatus = ZKPStatus.CRYPTOGRAPHIC_ERROR,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.status = status
        self.details = details or {}
        self.timestamp = time.time()
