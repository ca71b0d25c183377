import pytest

from routeintegrity import (
    MAX_EXPIRY_DURATION,
    ZERO_DIGEST,
    DuplicateCommitmentError,
    EmptyRouteHashError,
    ErrorKind,
    ExpiredTimestampError,
    ExpiryTooFarError,
    validate,
)

NOW = 1_700_000_000
KEY = bytes.fromhex("ab" * 32)


def test_valid_no_expiry():
    validate(KEY, 0, NOW, False)


def test_valid_expiry_in_window():
    validate(KEY, NOW + 1, NOW, False)
    validate(KEY, NOW + MAX_EXPIRY_DURATION, NOW, False)


def test_zero_hash_rejected():
    with pytest.raises(EmptyRouteHashError) as exc:
        validate(ZERO_DIGEST, 0, NOW, False)
    assert exc.value.kind is ErrorKind.EMPTY_ROUTE_HASH
    assert exc.value.code == 1


def test_zero_hash_checked_before_existence():
    calls = []

    def exists():
        calls.append(1)
        return True

    with pytest.raises(EmptyRouteHashError):
        validate(ZERO_DIGEST, 0, NOW, exists)
    assert calls == []


def test_duplicate_rejected():
    with pytest.raises(DuplicateCommitmentError):
        validate(KEY, 0, NOW, True)


def test_duplicate_wins_over_bad_expiry():
    with pytest.raises(DuplicateCommitmentError):
        validate(KEY, NOW - 1, NOW, lambda: True)


def test_expiry_equal_to_now_is_expired():
    with pytest.raises(ExpiredTimestampError):
        validate(KEY, NOW, NOW, False)


def test_expiry_in_past():
    with pytest.raises(ExpiredTimestampError) as exc:
        validate(KEY, 1, NOW, False)
    assert exc.value.code == 3


def test_expiry_too_far():
    with pytest.raises(ExpiryTooFarError) as exc:
        validate(KEY, NOW + MAX_EXPIRY_DURATION + 1, NOW, False)
    assert exc.value.kind is ErrorKind.EXPIRY_TOO_FAR
    assert exc.value.code == 4


def test_zero_expiry_skips_time_checks_at_any_time():
    validate(KEY, 0, 0, False)
    validate(KEY, 0, 2 ** 63, False)


def test_error_codes_stable():
    assert [k.code for k in ErrorKind] == [1, 2, 3, 4, 5]
    assert ErrorKind.NOT_FOUND.value == "NotFound"


def test_error_to_dict():
    err = ExpiryTooFarError("too far")
    assert err.to_dict() == {"error": "ExpiryTooFar", "code": 4, "message": "too far"}
    assert DuplicateCommitmentError().message == "DuplicateCommitment"
