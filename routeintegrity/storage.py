"""
Commitment storage.

The registry talks to its durable key-value store through exactly three
primitives: exists, read and write. The store is always injected; there
is no module-level default instance.

write() is insert-only by contract. Stores do not re-check uniqueness
themselves: the registry only calls write() after validation has proved
the key is absent, so duplicate prevention is owned by the validation
step and the call order.
"""

import sqlite3
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Optional, Union

from .commitment import Commitment
from .hashing import digest_hex, to_digest


class CommitmentStore(ABC):
    """
    Abstract interface for the registry's durable key-value store.

    Implementations must be:
    - Durable (survive process restarts) for production use
    - Deterministic (read returns exactly what write stored)
    - Keyed by the 32-byte route hash
    """

    @abstractmethod
    def exists(self, key: bytes) -> bool:
        """Check whether a commitment is stored under key."""
        pass

    @abstractmethod
    def read(self, key: bytes) -> Optional[Commitment]:
        """Return the stored commitment, or None if absent."""
        pass

    @abstractmethod
    def write(self, key: bytes, commitment: Commitment) -> None:
        """Store a commitment under a key that is known to be absent."""
        pass


class InMemoryCommitmentStore(CommitmentStore):
    """
    In-memory commitment store for development/testing.

    WARNING: Not durable. Everything is lost when the process exits.
    Use SqliteCommitmentStore for anything that must persist.
    """

    def __init__(self):
        self._entries: Dict[bytes, Commitment] = {}
        self._lock = threading.Lock()

    def exists(self, key: bytes) -> bool:
        with self._lock:
            return bytes(key) in self._entries

    def read(self, key: bytes) -> Optional[Commitment]:
        with self._lock:
            return self._entries.get(bytes(key))

    def write(self, key: bytes, commitment: Commitment) -> None:
        with self._lock:
            self._entries[bytes(key)] = commitment

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class SqliteCommitmentStore(CommitmentStore):
    """
    SQLite-backed durable commitment store.

    Uses one connection per thread (reused within the thread) and
    WAL journaling. Digests are stored as lowercase hex so the table
    can be inspected and exported with standard tooling.
    """

    def __init__(self, db_path: Union[str, Path]):
        self._db_path = Path(db_path)
        self._local = threading.local()
        self.init_schema()

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _get_connection(self) -> sqlite3.Connection:
        """
        Get a thread-local database connection.
        Connections are reused within the same thread for performance.
        """
        conn = getattr(self._local, "conn", None)
        if conn is None:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
            conn.execute("PRAGMA journal_mode=WAL;")
            conn.execute("PRAGMA synchronous=FULL;")
            conn.row_factory = sqlite3.Row
            self._local.conn = conn
        return conn

    @contextmanager
    def transaction(self):
        """
        Context manager for database transactions.
        Automatically commits on success, rolls back on failure.
        """
        conn = self._get_connection()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise

    def init_schema(self) -> None:
        """
        Initialize the commitments table.
        Safe to call multiple times (uses IF NOT EXISTS).
        """
        with self.transaction() as conn:
            conn.execute("""
            CREATE TABLE IF NOT EXISTS route_commitments (
                route_hash TEXT PRIMARY KEY,
                rules_hash TEXT NOT NULL,
                solver_version_hash TEXT NOT NULL,
                committer TEXT NOT NULL,
                timestamp INTEGER NOT NULL,
                expiry INTEGER NOT NULL DEFAULT 0,
                created_at TEXT DEFAULT CURRENT_TIMESTAMP
            );""")
            conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_commitments_timestamp
            ON route_commitments(timestamp);""")

    def exists(self, key: bytes) -> bool:
        conn = self._get_connection()
        cur = conn.execute(
            "SELECT 1 FROM route_commitments WHERE route_hash=?",
            (digest_hex(key),)
        )
        return cur.fetchone() is not None

    def read(self, key: bytes) -> Optional[Commitment]:
        conn = self._get_connection()
        cur = conn.execute(
            "SELECT route_hash, rules_hash, solver_version_hash, committer, timestamp, expiry "
            "FROM route_commitments WHERE route_hash=?",
            (digest_hex(key),)
        )
        row = cur.fetchone()
        if row is None:
            return None
        return Commitment(
            route_hash=to_digest(row["route_hash"]),
            rules_hash=to_digest(row["rules_hash"]),
            solver_version_hash=to_digest(row["solver_version_hash"]),
            committer=row["committer"],
            timestamp=int(row["timestamp"]),
            expiry=int(row["expiry"]),
        )

    def write(self, key: bytes, commitment: Commitment) -> None:
        with self.transaction() as conn:
            conn.execute(
                "INSERT INTO route_commitments(route_hash, rules_hash, solver_version_hash, "
                "committer, timestamp, expiry) VALUES(?,?,?,?,?,?)",
                (
                    digest_hex(key),
                    digest_hex(commitment.rules_hash),
                    digest_hex(commitment.solver_version_hash),
                    commitment.committer,
                    commitment.timestamp,
                    commitment.expiry,
                )
            )

    def close(self) -> None:
        """Close the thread-local connection (for cleanup)."""
        conn = getattr(self._local, "conn", None)
        if conn is not None:
            conn.close()
            self._local.conn = None
