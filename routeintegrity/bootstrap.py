"""
Deployment wiring: builds a CommitmentRegistry from configuration.

Everything here is glue. The registry itself only ever sees the
injected store, clock, identity provider and event emitter.
"""

from pathlib import Path
from typing import Optional, Union

from . import config
from .events import EventEmitter, build_event_sinks
from .host import CallerIdentity, IdentityProvider, RegistryIdentity, SystemClock
from .keys import RegistryKey, load_or_create_registry_key
from .registry import CommitmentRegistry
from .storage import SqliteCommitmentStore


def build_identity(mode: str, key: Optional[RegistryKey], default_identity: str) -> IdentityProvider:
    """
    Identity provider for a committer mode.

    registry: every commitment records the registry's own identity
    caller:   the submitting caller's identity, defaulting to the registry's
    """
    identity = key.identity if key is not None else default_identity
    if mode == "registry":
        return RegistryIdentity(identity)
    if mode == "caller":
        return CallerIdentity(identity)
    raise ValueError(f"Unknown committer mode: {mode}")


def build_registry(
    db_path: Union[str, Path, None] = None,
    committer_mode: Optional[str] = None,
    key_path: Union[str, Path, None] = None,
    sink_names: Optional[list] = None,
    sign_events: Optional[bool] = None
) -> CommitmentRegistry:
    """
    Build the production registry: SQLite store, system clock, the
    registry key for identity and notification signing, and the
    configured event sinks. Arguments override config values.
    """
    db_path = db_path or config.DB_PATH
    committer_mode = committer_mode or config.COMMITTER_MODE
    key_path = key_path or config.IDENTITY_KEY_PATH
    sink_names = config.event_sink_names() if sink_names is None else sink_names
    sign_events = config.SIGN_EVENTS if sign_events is None else sign_events

    key = load_or_create_registry_key(key_path, kid=config.IDENTITY_KID)

    sinks = build_event_sinks(
        sink_names,
        db_path=db_path,
        s3_bucket=config.S3_BUCKET,
        s3_prefix=config.S3_PREFIX,
        s3_retention_days=config.S3_RETENTION_DAYS,
        s3_legal_hold=config.S3_LEGAL_HOLD,
        webhook_url=config.INDEXER_WEBHOOK_URL,
        webhook_timeout=config.INDEXER_WEBHOOK_TIMEOUT,
    )

    return CommitmentRegistry(
        store=SqliteCommitmentStore(db_path),
        clock=SystemClock(),
        identity=build_identity(committer_mode, key, config.REGISTRY_IDENTITY),
        events=EventEmitter(sinks, signer=key if sign_events else None),
    )


def build_reader(db_path: Union[str, Path, None] = None) -> CommitmentRegistry:
    """
    Registry for lookups only: no key is loaded or created and no event
    sinks are opened. Commits through it still work but notify nobody.
    """
    return CommitmentRegistry(
        store=SqliteCommitmentStore(db_path or config.DB_PATH),
        clock=SystemClock(),
        identity=RegistryIdentity(config.REGISTRY_IDENTITY),
    )
