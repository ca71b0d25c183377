"""
Route commitment record.

A commitment binds a route hash to the digests of the rules and solver
version that produced the route, plus who recorded it, when, and until
when the committed result is meant to be valid. Records are immutable:
the registry hands out frozen copies and never rewrites a stored one.
"""

from dataclasses import dataclass
from typing import Any, Dict

from .hashing import digest_hex, to_digest

# Maximum distance between insertion time and expiry (10 years in seconds)
MAX_EXPIRY_DURATION = 315_360_000

# Expiry sentinel meaning "never expires"
NO_EXPIRY = 0

U64_MAX = 2 ** 64 - 1


def check_u64(name: str, value: Any) -> int:
    """Require an unsigned 64-bit integer (bool rejected)."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {type(value).__name__}")
    if value < 0 or value > U64_MAX:
        raise ValueError(f"{name} out of unsigned 64-bit range: {value}")
    return value


@dataclass(frozen=True)
class Commitment:
    """
    Commitment metadata stored for each route.

    All hashes are 32-byte SHA-256 digests held as raw bytes.
    """
    route_hash: bytes
    rules_hash: bytes
    solver_version_hash: bytes
    committer: str
    timestamp: int
    expiry: int = NO_EXPIRY

    def has_expiry(self) -> bool:
        return self.expiry != NO_EXPIRY

    def is_expired(self, now: int) -> bool:
        """
        True if the committed result should no longer be considered valid.

        Informational only: the registry keeps serving expired
        commitments, they are part of the permanent record.
        """
        return self.has_expiry() and now > self.expiry

    def to_dict(self) -> Dict[str, Any]:
        return {
            "route_hash": digest_hex(self.route_hash),
            "rules_hash": digest_hex(self.rules_hash),
            "solver_version_hash": digest_hex(self.solver_version_hash),
            "committer": self.committer,
            "timestamp": self.timestamp,
            "expiry": self.expiry,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Commitment":
        return cls(
            route_hash=to_digest(data["route_hash"]),
            rules_hash=to_digest(data["rules_hash"]),
            solver_version_hash=to_digest(data["solver_version_hash"]),
            committer=str(data["committer"]),
            timestamp=check_u64("timestamp", data["timestamp"]),
            expiry=check_u64("expiry", data.get("expiry", NO_EXPIRY)),
        )
