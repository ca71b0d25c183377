"""
Route Integrity Registry

A non-custodial, append-only registry of routing commitments. It is a
public notice board, not an execution engine: it stores hashes and
timestamps so anyone can later check that a route they were given was
produced by the committed rules and solver version.

Insertion runs in strict order:

    1. validation    (fixed-order checks, no side effects)
    2. storage write (insert-only; never reached for an existing key)
    3. notification  (best-effort; failure never undoes step 2)

Queries (get_commit, has_commit, verify_commit) never mutate.

Security properties:
- No admin: no privileged operations
- No upgrades: behaviour is fixed at construction
- Append-only: commitments cannot be modified or deleted
- Open access: any caller may commit any unused route hash

Calls are expected to be serialized by the host. The registry holds no
lock of its own.
"""

from typing import Optional

from .commitment import Commitment, check_u64
from .errors import CommitmentNotFoundError, RegistryError
from .events import CommitEvent, EventEmitter
from .hashing import DigestLike, digests_equal, short_hex, to_digest
from .host import Clock, IdentityProvider
from .logging_config import audit_log
from .storage import CommitmentStore
from .validation import validate


class CommitmentRegistry:
    """
    Commitment registry over an injected store.

    Usage:
        registry = CommitmentRegistry(
            store=SqliteCommitmentStore("data/routeintegrity.db"),
            clock=SystemClock(),
            identity=RegistryIdentity(key.identity),
            events=EventEmitter([LoggingEventSink()], signer=key),
        )

        registry.commit_route(route_hash, rules_hash, solver_hash, expiry)

        commit = registry.get_commit(route_hash)
        assert registry.verify_commit(route_hash, rules_hash, solver_hash)
    """

    def __init__(
        self,
        store: CommitmentStore,
        clock: Clock,
        identity: IdentityProvider,
        events: Optional[EventEmitter] = None
    ):
        self._store = store
        self._clock = clock
        self._identity = identity
        self._events = events or EventEmitter()

    @property
    def store(self) -> CommitmentStore:
        return self._store

    @property
    def events(self) -> EventEmitter:
        return self._events

    @property
    def committer_mode(self) -> str:
        """How the committer is chosen: "registry" or "caller"."""
        return self._identity.mode

    def commit_route(
        self,
        route_hash: DigestLike,
        rules_hash: DigestLike,
        solver_version_hash: DigestLike,
        expiry: int = 0,
        caller: Optional[str] = None
    ) -> Commitment:
        """
        Commit routing metadata to the registry.

        Args:
            route_hash: SHA-256 of the complete route manifest
            rules_hash: SHA-256 of the routing rules configuration
            solver_version_hash: SHA-256 of the solver version/commit
            expiry: Unix timestamp when the quote expires (0 = no expiry)
            caller: Identity of the submitter, recorded only if the
                identity provider uses it

        Returns:
            The stored Commitment

        Raises:
            EmptyRouteHashError: route_hash is all zeros
            DuplicateCommitmentError: route_hash already committed
            ExpiredTimestampError: expiry is not in the future
            ExpiryTooFarError: expiry exceeds the maximum duration
            InvalidDigestError / ValueError: malformed arguments
        """
        key = to_digest(route_hash)
        rules = to_digest(rules_hash)
        solver = to_digest(solver_version_hash)
        expiry = check_u64("expiry", expiry)

        timestamp = self._clock.now()

        try:
            validate(key, expiry, timestamp, lambda: self._store.exists(key))
        except RegistryError as e:
            audit_log.commit_rejected(short_hex(key), e.kind.value, e.message)
            raise

        commitment = Commitment(
            route_hash=key,
            rules_hash=rules,
            solver_version_hash=solver,
            committer=self._identity.committer(caller),
            timestamp=timestamp,
            expiry=expiry,
        )
        self._store.write(key, commitment)

        audit_log.commit_accepted(short_hex(key), commitment.committer, timestamp, expiry)

        self._events.emit(CommitEvent.from_commitment(commitment))
        return commitment

    def get_commit(self, route_hash: DigestLike) -> Commitment:
        """
        Retrieve commitment metadata for a route hash.

        Raises:
            CommitmentNotFoundError: no commitment exists for this hash
        """
        key = to_digest(route_hash)
        commitment = self._store.read(key)
        audit_log.commit_lookup(short_hex(key), commitment is not None)
        if commitment is None:
            raise CommitmentNotFoundError("Commitment not found")
        return commitment

    def has_commit(self, route_hash: DigestLike) -> bool:
        """Check if a route hash has been committed, without loading it."""
        return self._store.exists(to_digest(route_hash))

    def verify_commit(
        self,
        route_hash: DigestLike,
        expected_rules_hash: DigestLike,
        expected_solver_hash: DigestLike
    ) -> bool:
        """
        Verify that a commitment matches expected values.

        Returns:
            True if the commitment exists AND both hashes match,
            False otherwise (absence is not an error here)
        """
        key = to_digest(route_hash)
        expected_rules = to_digest(expected_rules_hash)
        expected_solver = to_digest(expected_solver_hash)

        try:
            commitment = self.get_commit(key)
        except CommitmentNotFoundError:
            audit_log.commit_verified(short_hex(key), False)
            return False

        verified = (
            digests_equal(commitment.rules_hash, expected_rules)
            and digests_equal(commitment.solver_version_hash, expected_solver)
        )
        audit_log.commit_verified(short_hex(key), verified)
        return verified
