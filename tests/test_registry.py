"""
Registry behaviour: insertion, lookup and verification against an
in-memory store and a pinned clock.
"""

import logging

import pytest

from routeintegrity import (
    MAX_EXPIRY_DURATION,
    CallerIdentity,
    CommitmentNotFoundError,
    CommitmentRegistry,
    DuplicateCommitmentError,
    EmptyRouteHashError,
    EventEmitter,
    EventSink,
    ExpiredTimestampError,
    ExpiryTooFarError,
    FixedClock,
    InMemoryCommitmentStore,
    InMemoryEventSink,
    InvalidDigestError,
    RegistryIdentity,
    to_digest,
)

from conftest import NOW, REGISTRY_ID, h

H1, H2, H3, H4, H5, H6 = (h(n) for n in range(1, 7))
ZERO = "00" * 32


class FailingSink(EventSink):
    name = "failing"

    def publish(self, event, document):
        raise RuntimeError("indexer unavailable")


# ============================================================
# End-to-end scenario
# ============================================================

def test_commit_scenario(registry):
    c = registry.commit_route(H1, H2, H3, 1_700_001_000)
    got = registry.get_commit(H1)
    assert got == c
    assert got.rules_hash == to_digest(H2)
    assert got.solver_version_hash == to_digest(H3)
    assert got.timestamp == 1_700_000_000
    assert got.expiry == 1_700_001_000
    assert got.committer == REGISTRY_ID

    with pytest.raises(DuplicateCommitmentError):
        registry.commit_route(H1, H2, H3, 1_700_001_000)

    with pytest.raises(EmptyRouteHashError):
        registry.commit_route(ZERO, H2, H3, 1_700_001_000)

    with pytest.raises(ExpiredTimestampError):
        registry.commit_route(H4, H2, H3, 1_699_999_999)

    with pytest.raises(ExpiryTooFarError):
        registry.commit_route(H5, H2, H3, NOW + MAX_EXPIRY_DURATION + 1)

    registry.commit_route(H6, H2, H3, 0)
    assert registry.get_commit(H6).expiry == 0

    assert not registry.has_commit(H4)
    assert not registry.has_commit(H5)
    assert not registry.has_commit(ZERO)


def test_expiry_at_exact_max_accepted(registry):
    c = registry.commit_route(H1, H2, H3, NOW + MAX_EXPIRY_DURATION)
    assert c.expiry == NOW + MAX_EXPIRY_DURATION


def test_expiry_equal_to_now_rejected(registry):
    with pytest.raises(ExpiredTimestampError):
        registry.commit_route(H1, H2, H3, NOW)


# ============================================================
# Insertion
# ============================================================

def test_timestamp_comes_from_clock(registry, clock):
    clock.advance(42)
    assert registry.commit_route(H1, H2, H3).timestamp == NOW + 42


def test_rejected_commit_leaves_store_untouched(registry, store, sink):
    registry.commit_route(H1, H2, H3)
    with pytest.raises(DuplicateCommitmentError):
        registry.commit_route(H1, H4, H5)
    assert len(store) == 1
    assert registry.get_commit(H1).rules_hash == to_digest(H2)
    assert len(sink.events) == 1


def test_duplicate_rejected_even_after_expiry(registry, clock):
    registry.commit_route(H1, H2, H3, NOW + 10)
    clock.advance(100)
    with pytest.raises(DuplicateCommitmentError):
        registry.commit_route(H1, H2, H3)
    # Expired commitments are still served
    c = registry.get_commit(H1)
    assert c.is_expired(clock.now())


def test_duplicate_check_precedes_expiry_check(registry):
    registry.commit_route(H1, H2, H3)
    with pytest.raises(DuplicateCommitmentError):
        registry.commit_route(H1, H2, H3, 1)


def test_digest_forms_are_equivalent(registry):
    registry.commit_route(bytes.fromhex(H1), "sha256:" + H2, H3.upper())
    assert registry.has_commit("sha256:" + H1)
    assert registry.verify_commit(H1, bytes.fromhex(H2), H3)


def test_malformed_digest_rejected(registry, store):
    with pytest.raises(InvalidDigestError):
        registry.commit_route("abc", H2, H3)
    with pytest.raises(ValueError):
        registry.commit_route(H1, H2, b"\x01" * 31)
    assert len(store) == 0


@pytest.mark.parametrize("expiry", [-1, 2 ** 64, 1.5, "100", True])
def test_invalid_expiry_type_or_range(registry, store, expiry):
    with pytest.raises(ValueError):
        registry.commit_route(H1, H2, H3, expiry)
    assert len(store) == 0


def test_committer_registry_identity_ignores_caller(registry):
    c = registry.commit_route(H1, H2, H3, caller="GABC")
    assert c.committer == REGISTRY_ID


def test_committer_caller_identity():
    reg = CommitmentRegistry(
        store=InMemoryCommitmentStore(),
        clock=FixedClock(NOW),
        identity=CallerIdentity(REGISTRY_ID),
    )
    assert reg.commit_route(H1, H2, H3, caller="GABC").committer == "GABC"
    assert reg.commit_route(H4, H2, H3).committer == REGISTRY_ID


# ============================================================
# Events
# ============================================================

def test_event_emitted_after_store(registry, sink):
    registry.commit_route(H1, H2, H3, NOW + 60)
    assert len(sink.events) == 1
    event = sink.events[0]
    assert event.topic == ("commit", to_digest(H1))
    assert event.payload == (to_digest(H2), to_digest(H3), REGISTRY_ID, NOW, NOW + 60)
    assert sink.documents[0]["topic"] == ["commit", H1]


def test_no_event_on_rejection(registry, sink):
    with pytest.raises(EmptyRouteHashError):
        registry.commit_route(ZERO, H2, H3)
    assert sink.events == []


def test_failing_sink_does_not_roll_back(store, clock, caplog):
    good = InMemoryEventSink()
    reg = CommitmentRegistry(
        store=store,
        clock=clock,
        identity=RegistryIdentity(REGISTRY_ID),
        events=EventEmitter([FailingSink(), good]),
    )
    with caplog.at_level(logging.WARNING):
        c = reg.commit_route(H1, H2, H3)
    assert reg.get_commit(H1) == c
    assert len(good.events) == 1
    assert any("failing" in r.getMessage() for r in caplog.records)


def test_registry_without_sinks(store, clock):
    reg = CommitmentRegistry(store=store, clock=clock, identity=RegistryIdentity(REGISTRY_ID))
    reg.commit_route(H1, H2, H3)
    assert reg.has_commit(H1)


# ============================================================
# Queries
# ============================================================

def test_get_missing_raises_not_found(registry):
    with pytest.raises(CommitmentNotFoundError) as exc:
        registry.get_commit(H1)
    assert exc.value.code == 5


def test_has_commit(registry):
    assert registry.has_commit(H1) is False
    registry.commit_route(H1, H2, H3)
    assert registry.has_commit(H1) is True


def test_verify_commit(registry):
    registry.commit_route(H1, H2, H3)
    assert registry.verify_commit(H1, H2, H3) is True
    assert registry.verify_commit(H1, H4, H3) is False
    assert registry.verify_commit(H1, H2, H4) is False
    assert registry.verify_commit(H1, H3, H2) is False


def test_verify_missing_is_false_not_error(registry):
    assert registry.verify_commit(H1, H2, H3) is False


def test_queries_do_not_mutate(registry, store, sink):
    registry.commit_route(H1, H2, H3)
    before = registry.get_commit(H1)
    registry.has_commit(H1)
    registry.verify_commit(H1, H4, H5)
    registry.get_commit(H1)
    assert registry.get_commit(H1) == before
    assert len(store) == 1
    assert len(sink.events) == 1


def test_commitment_is_immutable(registry):
    c = registry.commit_route(H1, H2, H3)
    with pytest.raises(AttributeError):
        c.expiry = 5


def test_audit_log_records_rejection(registry, caplog):
    with caplog.at_level(logging.WARNING, logger="routeintegrity.audit"):
        with pytest.raises(DuplicateCommitmentError):
            registry.commit_route(H1, H2, H3)
            registry.commit_route(H1, H2, H3)
    rejected = [r for r in caplog.records if getattr(r, "extra_fields", {}).get("event_type") == "COMMIT_REJECTED"]
    assert len(rejected) == 1
    assert rejected[0].extra_fields["error_kind"] == "DuplicateCommitment"
