"""
Commit notifications for off-registry indexers.

After a commitment is stored, the registry publishes a RouteCommitted
event:

    topic:   ("commit", route_hash)
    payload: (rules_hash, solver_version_hash, committer, timestamp, expiry)

Delivery is fire-and-forget. A sink that raises is logged and skipped;
a failed notification never rolls back or blocks the insertion it
follows. Indexers that need completeness should rebuild from the store.
"""

import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from .canonicalization import canonicalize
from .commitment import Commitment
from .hashing import digest_hex, sha256_digest, short_hex
from .keys import RegistryKey, verify_ed25519
from .logging_config import audit_log

logger = logging.getLogger(__name__)

COMMIT_TOPIC = "commit"


@dataclass(frozen=True)
class CommitEvent:
    """A RouteCommitted notification."""
    route_hash: bytes
    rules_hash: bytes
    solver_version_hash: bytes
    committer: str
    timestamp: int
    expiry: int

    @classmethod
    def from_commitment(cls, commitment: Commitment) -> "CommitEvent":
        return cls(
            route_hash=commitment.route_hash,
            rules_hash=commitment.rules_hash,
            solver_version_hash=commitment.solver_version_hash,
            committer=commitment.committer,
            timestamp=commitment.timestamp,
            expiry=commitment.expiry,
        )

    @property
    def topic(self) -> Tuple[str, bytes]:
        return (COMMIT_TOPIC, self.route_hash)

    @property
    def payload(self) -> Tuple[bytes, bytes, str, int, int]:
        return (
            self.rules_hash,
            self.solver_version_hash,
            self.committer,
            self.timestamp,
            self.expiry,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "topic": [COMMIT_TOPIC, digest_hex(self.route_hash)],
            "rules_hash": digest_hex(self.rules_hash),
            "solver_version_hash": digest_hex(self.solver_version_hash),
            "committer": self.committer,
            "timestamp": self.timestamp,
            "expiry": self.expiry,
        }


# ============================================================
# Sinks
# ============================================================

class EventSink(ABC):
    """Destination for commit notifications."""

    name = "sink"

    @abstractmethod
    def publish(self, event: CommitEvent, document: Dict[str, Any]) -> None:
        """
        Deliver one notification.

        Args:
            event: The event
            document: Its wire form (event.to_dict(), plus a signature
                block when the emitter signs notifications)
        """
        pass


class InMemoryEventSink(EventSink):
    """Keeps published notifications in a list. For tests and embedded indexers."""

    name = "memory"

    def __init__(self):
        self._documents: List[Dict[str, Any]] = []
        self._events: List[CommitEvent] = []
        self._lock = threading.Lock()

    def publish(self, event: CommitEvent, document: Dict[str, Any]) -> None:
        with self._lock:
            self._events.append(event)
            self._documents.append(document)

    @property
    def events(self) -> List[CommitEvent]:
        with self._lock:
            return list(self._events)

    @property
    def documents(self) -> List[Dict[str, Any]]:
        with self._lock:
            return list(self._documents)


class LoggingEventSink(EventSink):
    """Writes each notification as a structured log line."""

    name = "log"

    def __init__(self, logger_name: str = "routeintegrity.events"):
        self._logger = logging.getLogger(logger_name)

    def publish(self, event: CommitEvent, document: Dict[str, Any]) -> None:
        self._logger.info(
            "RouteCommitted: %s", short_hex(event.route_hash),
            extra={"extra_fields": {"event_type": "ROUTE_COMMITTED", "event": document}},
        )


class SqliteEventLog(EventSink):
    """
    Append-only event log in SQLite with hash chain linking.

    Each entry stores the SHA-256 of its canonical document and an
    entry hash over (previous entry hash || payload hash), so an indexer
    replaying the log can detect gaps and tampering.
    """

    name = "sqlite"

    def __init__(self, db_path: Union[str, Path]):
        self._db_path = Path(db_path)
        self._lock = threading.Lock()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        self._conn.execute("PRAGMA journal_mode=WAL;")
        self._conn.row_factory = sqlite3.Row
        with self._conn:
            self._conn.execute("""
            CREATE TABLE IF NOT EXISTS event_log (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                route_hash TEXT NOT NULL,
                timestamp INTEGER NOT NULL,
                payload_hash TEXT NOT NULL,
                prev_entry_hash TEXT,
                entry_hash TEXT NOT NULL,
                event_json TEXT NOT NULL
            );""")

    def latest_entry_hash(self) -> Optional[str]:
        cur = self._conn.execute("SELECT entry_hash FROM event_log ORDER BY seq DESC LIMIT 1")
        row = cur.fetchone()
        return row["entry_hash"] if row else None

    def publish(self, event: CommitEvent, document: Dict[str, Any]) -> None:
        payload = canonicalize(document)
        payload_hash = sha256_digest(payload).hex()
        with self._lock, self._conn:
            prev = self.latest_entry_hash()
            self._conn.execute(
                "INSERT INTO event_log(route_hash, timestamp, payload_hash, prev_entry_hash, "
                "entry_hash, event_json) VALUES(?,?,?,?,?,?)",
                (
                    digest_hex(event.route_hash),
                    event.timestamp,
                    payload_hash,
                    prev,
                    chain_entry_hash(prev, payload_hash),
                    payload.decode("utf-8"),
                )
            )

    def export(self) -> List[Dict[str, Any]]:
        """Export the complete event log in insertion order."""
        cur = self._conn.execute(
            "SELECT seq, route_hash, timestamp, payload_hash, prev_entry_hash, entry_hash, "
            "event_json FROM event_log ORDER BY seq ASC"
        )
        return [dict(row) for row in cur.fetchall()]

    def close(self) -> None:
        self._conn.close()


class S3ObjectLockEventSink(EventSink):
    """
    One COMPLIANCE-locked S3 object per notification.

    The bucket must have Object Lock enabled. Objects are keyed
    {prefix}{timestamp}-{route_hash}.json so a prefix listing is in
    commit order.
    """

    name = "s3_object_lock"

    def __init__(self, bucket: str, prefix: str, retention_days: int, legal_hold: str = "OFF", client=None):
        self.bucket = bucket
        self.prefix = prefix.rstrip("/") + "/"
        self.retention_days = retention_days
        self.legal_hold = legal_hold
        self._client = client

    def _get_client(self):
        if self._client is None:
            import boto3
            self._client = boto3.client("s3")
        return self._client

    def publish(self, event: CommitEvent, document: Dict[str, Any]) -> None:
        key = f"{self.prefix}{event.timestamp}-{digest_hex(event.route_hash)}.json"
        retain_until = datetime.now(timezone.utc) + timedelta(days=int(self.retention_days))
        self._get_client().put_object(
            Bucket=self.bucket,
            Key=key,
            Body=canonicalize(document),
            ContentType="application/json",
            ObjectLockMode="COMPLIANCE",
            ObjectLockRetainUntilDate=retain_until,
            ObjectLockLegalHoldStatus=self.legal_hold
        )


class WebhookEventSink(EventSink):
    """POSTs each notification to an indexer endpoint. One attempt, no retry."""

    name = "webhook"

    def __init__(self, url: str, timeout: float = 3.0, session=None):
        self.url = url
        self.timeout = timeout
        self._session = session

    def publish(self, event: CommitEvent, document: Dict[str, Any]) -> None:
        import requests
        poster = self._session or requests
        r = poster.post(self.url, json=document, timeout=self.timeout)
        r.raise_for_status()


# ============================================================
# Emitter
# ============================================================

class EventEmitter:
    """
    Fans a commit notification out to every configured sink.

    When a registry key is given, each notification carries an Ed25519
    signature over its canonical body so indexers can authenticate it
    with verify_event_signature().
    """

    def __init__(self, sinks: Optional[Iterable[EventSink]] = None, signer: Optional[RegistryKey] = None):
        self._sinks: List[EventSink] = list(sinks or [])
        self._signer = signer

    @property
    def sinks(self) -> List[EventSink]:
        return list(self._sinks)

    def build_document(self, event: CommitEvent) -> Dict[str, Any]:
        document = event.to_dict()
        if self._signer is not None:
            kid, sig_b64 = self._signer.sign(canonicalize(document))
            document["signature"] = {"kid": kid, "alg": "ed25519", "sig_b64": sig_b64}
        return document

    def emit(self, event: CommitEvent) -> int:
        """
        Publish to all sinks.

        Never raises. Returns the number of sinks that accepted the event.
        """
        try:
            document = self.build_document(event)
        except Exception as e:
            logger.exception("Failed to build commit notification")
            audit_log.event_sink_failed("emitter", short_hex(event.route_hash), str(e))
            return 0

        delivered = 0
        for sink in self._sinks:
            try:
                sink.publish(event, document)
                delivered += 1
            except Exception as e:
                logger.warning("Event sink %s failed: %s", sink.name, e)
                audit_log.event_sink_failed(sink.name, short_hex(event.route_hash), str(e))
        return delivered


def chain_entry_hash(prev_entry_hash: Optional[str], payload_hash: str) -> str:
    """
    Compute the hash chain entry hash.

    Args:
        prev_entry_hash: Hash of the previous entry (or None for first)
        payload_hash: Hash of the current payload

    Returns:
        SHA-256 hex of the concatenated hashes
    """
    data = (prev_entry_hash or "").encode("utf-8") + payload_hash.encode("utf-8")
    return sha256_digest(data).hex()


def verify_event_chain(entries: List[Dict[str, Any]]) -> bool:
    """Recompute every payload and entry hash of an exported event log."""
    prev = None
    for entry in entries:
        payload_hash = sha256_digest(entry["event_json"].encode("utf-8")).hex()
        if payload_hash != entry["payload_hash"]:
            return False
        if entry["prev_entry_hash"] != prev:
            return False
        if chain_entry_hash(prev, payload_hash) != entry["entry_hash"]:
            return False
        prev = entry["entry_hash"]
    return True


def verify_event_signature(document: Dict[str, Any], identity_hex: str) -> bool:
    """Check a signed notification against the registry identity."""
    signature = document.get("signature")
    if not signature:
        return False
    body = dict(document)
    body.pop("signature", None)
    return verify_ed25519(signature.get("sig_b64", ""), canonicalize(body), identity_hex)


def build_event_sinks(
    names: Iterable[str],
    db_path: Union[str, Path] = "data/routeintegrity.db",
    s3_bucket: str = "",
    s3_prefix: str = "routeintegrity/events/",
    s3_retention_days: int = 365,
    s3_legal_hold: str = "OFF",
    webhook_url: str = "",
    webhook_timeout: float = 3.0
) -> List[EventSink]:
    """
    Build sinks from configuration names.

    Supported: memory, log, sqlite, s3_object_lock, webhook.
    """
    sinks: List[EventSink] = []
    for name in names:
        name = name.strip()
        if not name:
            continue
        if name == "memory":
            sinks.append(InMemoryEventSink())
        elif name == "log":
            sinks.append(LoggingEventSink())
        elif name == "sqlite":
            sinks.append(SqliteEventLog(db_path))
        elif name == "s3_object_lock":
            if not s3_bucket:
                raise ValueError("S3_BUCKET required for s3_object_lock event sink")
            sinks.append(S3ObjectLockEventSink(
                bucket=s3_bucket, prefix=s3_prefix,
                retention_days=s3_retention_days, legal_hold=s3_legal_hold
            ))
        elif name == "webhook":
            if not webhook_url:
                raise ValueError("INDEXER_WEBHOOK_URL required for webhook event sink")
            sinks.append(WebhookEventSink(webhook_url, timeout=webhook_timeout))
        else:
            raise ValueError(f"Unknown event sink: {name}")
    return sinks
