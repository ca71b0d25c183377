"""
Route Integrity Registry error taxonomy.

Every failure the registry can report is a typed, catchable exception
carrying an ErrorKind. Codes are stable and match the numeric codes
published by the on-ledger deployment, so indexers and wallets can map
them without string matching.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """Registry error kinds."""
    EMPTY_ROUTE_HASH = "EmptyRouteHash"
    DUPLICATE_COMMITMENT = "DuplicateCommitment"
    EXPIRED_TIMESTAMP = "ExpiredTimestamp"
    EXPIRY_TOO_FAR = "ExpiryTooFar"
    NOT_FOUND = "NotFound"

    @property
    def code(self) -> int:
        return _ERROR_CODES[self]


_ERROR_CODES = {
    ErrorKind.EMPTY_ROUTE_HASH: 1,
    ErrorKind.DUPLICATE_COMMITMENT: 2,
    ErrorKind.EXPIRED_TIMESTAMP: 3,
    ErrorKind.EXPIRY_TOO_FAR: 4,
    ErrorKind.NOT_FOUND: 5,
}


class RegistryError(Exception):
    """Base class for all registry errors."""

    kind: ErrorKind = None

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.kind.value
        super().__init__(self.message)

    @property
    def code(self) -> int:
        return self.kind.code

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.kind.value,
            "code": self.kind.code,
            "message": self.message,
        }


class EmptyRouteHashError(RegistryError):
    """Route hash is all zero bytes. Caller must supply a different key."""
    kind = ErrorKind.EMPTY_ROUTE_HASH


class DuplicateCommitmentError(RegistryError):
    """A commitment already exists for this route hash. Never retried."""
    kind = ErrorKind.DUPLICATE_COMMITMENT


class ExpiredTimestampError(RegistryError):
    """Nonzero expiry is not after the current clock reading."""
    kind = ErrorKind.EXPIRED_TIMESTAMP


class ExpiryTooFarError(RegistryError):
    """Nonzero expiry lies beyond the maximum expiry window."""
    kind = ErrorKind.EXPIRY_TOO_FAR


class CommitmentNotFoundError(RegistryError):
    """
    No commitment exists for the requested route hash.

    This is a normal query outcome, not a system fault.
    """
    kind = ErrorKind.NOT_FOUND


class InvalidDigestError(ValueError):
    """A digest argument is not 32 bytes / 64 hex characters."""
