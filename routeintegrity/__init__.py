"""
Route Integrity Registry

Version: 1.0.0
License: Apache 2.0

A write-once, publicly readable ledger of routing commitments.

Each commitment binds a route hash to the hashes of the rules
configuration and solver version that produced the route, together with
the committer identity, the insertion timestamp and an optional expiry.
Anyone holding the original route manifest, rules and solver version can
recompute the hashes and check them against the registry, trusting the
producer no further than the original commitment.

The registry does not compute, validate or execute routes. It only
stores and discloses commitment metadata.

Usage:
    from routeintegrity import (
        CommitmentRegistry,
        InMemoryCommitmentStore,
        SystemClock,
        RegistryIdentity,
        hash_route_manifest,
        hash_rules_config,
        hash_solver_version,
    )

    registry = CommitmentRegistry(
        store=InMemoryCommitmentStore(),
        clock=SystemClock(),
        identity=RegistryIdentity("route-integrity-registry"),
    )

    route_hash = hash_route_manifest(manifest)
    rules_hash = hash_rules_config(rules)
    solver_hash = hash_solver_version("solver-v1.0.0")

    registry.commit_route(route_hash, rules_hash, solver_hash, expiry=0)

    # Later, any third party:
    registry.verify_commit(route_hash, rules_hash, solver_hash)  # True
"""

__version__ = "1.0.0"
__license__ = "Apache-2.0"

# Canonicalization and hashing
from .canonicalization import canonicalize, canonicalize_str, stringify
from .hashing import (
    DIGEST_SIZE,
    ZERO_DIGEST,
    to_digest,
    digest_hex,
    is_zero_digest,
    hash_route_manifest,
    hash_rules_config,
    hash_solver_version,
)

# Data model
from .commitment import Commitment, MAX_EXPIRY_DURATION, NO_EXPIRY

# Errors
from .errors import (
    ErrorKind,
    RegistryError,
    EmptyRouteHashError,
    DuplicateCommitmentError,
    ExpiredTimestampError,
    ExpiryTooFarError,
    CommitmentNotFoundError,
    InvalidDigestError,
)

# Validation
from .validation import validate

# Storage
from .storage import (
    CommitmentStore,
    InMemoryCommitmentStore,
    SqliteCommitmentStore,
)

# Events
from .events import (
    CommitEvent,
    EventSink,
    EventEmitter,
    InMemoryEventSink,
    LoggingEventSink,
    SqliteEventLog,
    S3ObjectLockEventSink,
    WebhookEventSink,
    verify_event_chain,
    verify_event_signature,
)

# Host collaborators
from .host import (
    Clock,
    SystemClock,
    FixedClock,
    IdentityProvider,
    RegistryIdentity,
    CallerIdentity,
)

# Keys
from .keys import RegistryKey, load_or_create_registry_key

# Registry
from .registry import CommitmentRegistry


__all__ = [
    # Version
    "__version__",

    # Canonicalization
    "canonicalize",
    "canonicalize_str",
    "stringify",

    # Hashing
    "DIGEST_SIZE",
    "ZERO_DIGEST",
    "to_digest",
    "digest_hex",
    "is_zero_digest",
    "hash_route_manifest",
    "hash_rules_config",
    "hash_solver_version",

    # Data model
    "Commitment",
    "MAX_EXPIRY_DURATION",
    "NO_EXPIRY",

    # Errors
    "ErrorKind",
    "RegistryError",
    "EmptyRouteHashError",
    "DuplicateCommitmentError",
    "ExpiredTimestampError",
    "ExpiryTooFarError",
    "CommitmentNotFoundError",
    "InvalidDigestError",

    # Validation
    "validate",

    # Storage
    "CommitmentStore",
    "InMemoryCommitmentStore",
    "SqliteCommitmentStore",

    # Events
    "CommitEvent",
    "EventSink",
    "EventEmitter",
    "InMemoryEventSink",
    "LoggingEventSink",
    "SqliteEventLog",
    "S3ObjectLockEventSink",
    "WebhookEventSink",
    "verify_event_chain",
    "verify_event_signature",

    # Host
    "Clock",
    "SystemClock",
    "FixedClock",
    "IdentityProvider",
    "RegistryIdentity",
    "CallerIdentity",

    # Keys
    "RegistryKey",
    "load_or_create_registry_key",

    # Registry
    "CommitmentRegistry",
]
