"""
JSON encodings with fixed bytes.

canonicalize() sorts keys by code point and is used for signed
notification bodies, where signer and verifier may build the document
in different orders.

stringify() keeps key order and is what producers hashed route
manifests and rules configurations with, so verifiers must hash the
document exactly as it was committed.

Both emit no insignificant whitespace and UTF-8 without escaping
non-ASCII, accept only JSON-native values and refuse non-finite floats.
"""

import json
from typing import Any

_SCALARS = (str, int, float, bool, type(None))


def _check(value: Any, path: str = "$") -> None:
    if isinstance(value, _SCALARS):
        return
    if isinstance(value, dict):
        for k, v in value.items():
            if not isinstance(k, str):
                raise ValueError(f"{path}: object key {k!r} is not a string")
            _check(v, f"{path}.{k}")
        return
    if isinstance(value, (list, tuple)):
        for i, item in enumerate(value):
            _check(item, f"{path}[{i}]")
        return
    raise ValueError(f"{path}: {type(value).__name__} has no JSON form")


def canonicalize(obj: Any) -> bytes:
    """
    Canonical JSON bytes of obj.

    Raises:
        ValueError: non-JSON value, non-string key, NaN or infinity
    """
    _check(obj)
    text = json.dumps(
        obj,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )
    return text.encode("utf-8")


def canonicalize_str(obj: Any) -> str:
    return canonicalize(obj).decode("utf-8")


def stringify(obj: Any) -> bytes:
    """
    Compact JSON bytes with keys in insertion order.

    Byte-compatible with JavaScript's JSON.stringify for strings,
    integers, booleans, null, arrays and objects, which is how route
    manifests and rules configurations were hashed when committed.
    Floats with an integral value differ (1.0 vs 1); send those as
    strings or integers.

    Raises:
        ValueError: non-JSON value, non-string key, NaN or infinity
    """
    _check(obj)
    text = json.dumps(obj, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    return text.encode("utf-8")
