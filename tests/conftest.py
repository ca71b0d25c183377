import pytest

from routeintegrity import (
    CommitmentRegistry,
    EventEmitter,
    FixedClock,
    InMemoryCommitmentStore,
    InMemoryEventSink,
    RegistryIdentity,
    RegistryKey,
)

NOW = 1_700_000_000
REGISTRY_ID = "route-integrity-registry"


def h(n: int) -> str:
    """Distinct nonzero 64-hex digest for test fixtures."""
    return f"{n:064x}"


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def store():
    return InMemoryCommitmentStore()


@pytest.fixture
def sink():
    return InMemoryEventSink()


@pytest.fixture
def registry(store, clock, sink):
    return CommitmentRegistry(
        store=store,
        clock=clock,
        identity=RegistryIdentity(REGISTRY_ID),
        events=EventEmitter([sink]),
    )


@pytest.fixture
def registry_key():
    return RegistryKey.generate()


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "data" / "routeintegrity.db"
