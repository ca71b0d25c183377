"""
Host-environment collaborators: the clock and the committer identity.

The registry never computes time or identity itself. Both are injected
at construction so tests can pin them and deployments can choose how
the committer is recorded.
"""

import threading
import time
from abc import ABC, abstractmethod
from typing import Optional


class Clock(ABC):
    """Monotonically non-decreasing source of the current time, in seconds."""

    @abstractmethod
    def now(self) -> int:
        pass


class SystemClock(Clock):
    """Wall clock, clamped so readings never go backwards within a process."""

    def __init__(self):
        self._last = 0
        self._lock = threading.Lock()

    def now(self) -> int:
        with self._lock:
            self._last = max(self._last, int(time.time()))
            return self._last


class FixedClock(Clock):
    """
    Manually driven clock for tests and replays.

    advance() only moves forward; set() refuses to go backwards.
    """

    def __init__(self, timestamp: int):
        self._timestamp = timestamp

    def now(self) -> int:
        return self._timestamp

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError("clock cannot move backwards")
        self._timestamp += seconds
        return self._timestamp

    def set(self, timestamp: int) -> None:
        if timestamp < self._timestamp:
            raise ValueError("clock cannot move backwards")
        self._timestamp = timestamp


class IdentityProvider(ABC):
    """
    Supplies the identity recorded as a commitment's committer.

    No authorization is performed against the returned identity; any
    identity may commit any unused route hash.
    """

    # Committer mode name reported by the service
    mode = "custom"

    @abstractmethod
    def committer(self, caller: Optional[str] = None) -> str:
        pass


class RegistryIdentity(IdentityProvider):
    """
    Records the registry's own identity for every commitment.

    This reproduces the deployed ledger behaviour, where the recorded
    committer is the registry itself rather than the submitting caller.
    """

    mode = "registry"

    def __init__(self, identity: str):
        self._identity = identity

    def committer(self, caller: Optional[str] = None) -> str:
        return self._identity


class CallerIdentity(IdentityProvider):
    """Records the caller-supplied identity, or a default when none is given."""

    mode = "caller"

    def __init__(self, default: str):
        self._default = default

    def committer(self, caller: Optional[str] = None) -> str:
        return caller or self._default
