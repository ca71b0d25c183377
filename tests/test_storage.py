import sqlite3
import threading

import pytest

from routeintegrity import (
    CommitmentRegistry,
    DuplicateCommitmentError,
    FixedClock,
    InMemoryCommitmentStore,
    RegistryIdentity,
    SqliteCommitmentStore,
    to_digest,
)
from routeintegrity.commitment import Commitment

from conftest import NOW, REGISTRY_ID, h


def make_commitment(n: int, expiry: int = 0) -> Commitment:
    return Commitment(
        route_hash=to_digest(h(n)),
        rules_hash=to_digest(h(n + 100)),
        solver_version_hash=to_digest(h(n + 200)),
        committer=REGISTRY_ID,
        timestamp=NOW,
        expiry=expiry,
    )


@pytest.fixture(params=["memory", "sqlite"])
def any_store(request, tmp_path):
    if request.param == "memory":
        yield InMemoryCommitmentStore()
    else:
        s = SqliteCommitmentStore(tmp_path / "store.db")
        yield s
        s.close()


def test_read_back_exact(any_store):
    c = make_commitment(1, expiry=NOW + 500)
    assert any_store.exists(c.route_hash) is False
    assert any_store.read(c.route_hash) is None
    any_store.write(c.route_hash, c)
    assert any_store.exists(c.route_hash) is True
    assert any_store.read(c.route_hash) == c


def test_keys_are_independent(any_store):
    a, b = make_commitment(1), make_commitment(2)
    any_store.write(a.route_hash, a)
    assert any_store.exists(b.route_hash) is False
    any_store.write(b.route_hash, b)
    assert any_store.read(a.route_hash) == a
    assert any_store.read(b.route_hash) == b


def test_sqlite_survives_reopen(db_path):
    c = make_commitment(7, expiry=NOW + 60)
    first = SqliteCommitmentStore(db_path)
    first.write(c.route_hash, c)
    first.close()

    second = SqliteCommitmentStore(db_path)
    assert second.read(c.route_hash) == c
    second.close()


def test_sqlite_schema_is_inspectable(db_path):
    c = make_commitment(3)
    s = SqliteCommitmentStore(db_path)
    s.write(c.route_hash, c)
    s.close()

    conn = sqlite3.connect(str(db_path))
    row = conn.execute("SELECT route_hash, committer, expiry FROM route_commitments").fetchone()
    conn.close()
    assert row == (h(3), REGISTRY_ID, 0)


def test_sqlite_rejects_second_write_for_key(db_path):
    c = make_commitment(4)
    s = SqliteCommitmentStore(db_path)
    s.write(c.route_hash, c)
    with pytest.raises(sqlite3.IntegrityError):
        s.write(c.route_hash, c)
    s.close()


def test_registry_over_sqlite_across_restart(db_path):
    def open_registry():
        return CommitmentRegistry(
            store=SqliteCommitmentStore(db_path),
            clock=FixedClock(NOW),
            identity=RegistryIdentity(REGISTRY_ID),
        )

    open_registry().commit_route(h(1), h(2), h(3), NOW + 1000)

    reopened = open_registry()
    assert reopened.verify_commit(h(1), h(2), h(3))
    assert reopened.get_commit(h(1)).expiry == NOW + 1000
    with pytest.raises(DuplicateCommitmentError):
        reopened.commit_route(h(1), h(2), h(3))


def test_sqlite_connection_per_thread(db_path):
    s = SqliteCommitmentStore(db_path)
    c = make_commitment(5)
    s.write(c.route_hash, c)
    seen = []

    def reader():
        seen.append(s.read(c.route_hash))
        s.close()

    t = threading.Thread(target=reader)
    t.start()
    t.join()
    assert seen == [c]
    s.close()
