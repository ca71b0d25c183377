"""
Commit validation.

Runs before any storage mutation. Checks are evaluated in a fixed order
and short-circuit on the first failure, so a malformed call always
observes the same error:

    1. route_hash is all zeros          -> EmptyRouteHash
    2. route_hash already committed     -> DuplicateCommitment
    3. expiry != 0 and expiry <= now    -> ExpiredTimestamp
    4. expiry != 0 and expiry > now + MAX_EXPIRY_DURATION -> ExpiryTooFar

An expiry of 0 means "no expiry" and skips checks 3 and 4 entirely.
Validation has no side effects.
"""

from typing import Callable, Union

from .commitment import MAX_EXPIRY_DURATION, NO_EXPIRY
from .errors import (
    DuplicateCommitmentError,
    EmptyRouteHashError,
    ExpiredTimestampError,
    ExpiryTooFarError,
)
from .hashing import is_zero_digest

KeyExists = Union[bool, Callable[[], bool]]


def validate(route_hash: bytes, expiry: int, now: int, key_exists: KeyExists) -> None:
    """
    Validate a commit request.

    Args:
        route_hash: 32-byte route digest
        expiry: Expiry timestamp, 0 for none
        now: Current clock reading
        key_exists: Whether route_hash is already stored. May be a
            zero-argument callable; it is only invoked once the zero-hash
            check has passed.

    Raises:
        EmptyRouteHashError, DuplicateCommitmentError,
        ExpiredTimestampError, ExpiryTooFarError
    """
    if is_zero_digest(route_hash):
        raise EmptyRouteHashError("route_hash cannot be all zeros")

    exists = key_exists() if callable(key_exists) else key_exists
    if exists:
        raise DuplicateCommitmentError("Commitment already exists for this route_hash")

    if expiry == NO_EXPIRY:
        return

    if expiry <= now:
        raise ExpiredTimestampError(f"expiry {expiry} is not after timestamp {now}")

    if expiry > now + MAX_EXPIRY_DURATION:
        raise ExpiryTooFarError(
            f"expiry {expiry} exceeds maximum of {now + MAX_EXPIRY_DURATION}"
        )
