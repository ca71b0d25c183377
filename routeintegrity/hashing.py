"""
Digest handling for the Route Integrity Registry.

The registry stores and compares 32-byte SHA-256 digests. On the wire
they travel as 64-character lowercase hex, optionally with a "sha256:"
prefix. This module normalizes every accepted form to raw bytes and
provides the helpers producers and verifiers use to compute the
digests of route manifests, rules configurations and solver versions.
"""

import hashlib
import hmac
import re
from typing import Any, Dict, Union

from .canonicalization import stringify
from .errors import InvalidDigestError

DIGEST_SIZE = 32
HEX_DIGEST_LENGTH = DIGEST_SIZE * 2
ZERO_DIGEST = bytes(DIGEST_SIZE)

_HEX_DIGEST_RE = re.compile(r"[0-9a-fA-F]{64}")

DigestLike = Union[bytes, bytearray, memoryview, str]


def to_digest(value: DigestLike) -> bytes:
    """
    Normalize a digest argument to exactly 32 raw bytes.

    Accepts:
    - 32 raw bytes (bytes, bytearray, memoryview)
    - 64 hex characters, any case
    - "sha256:" followed by 64 hex characters

    Raises:
        InvalidDigestError: on any other length, type or non-hex input
    """
    if isinstance(value, (bytes, bytearray, memoryview)):
        raw = bytes(value)
        if len(raw) != DIGEST_SIZE:
            raise InvalidDigestError(
                f"Digest must be {DIGEST_SIZE} bytes, got {len(raw)}"
            )
        return raw

    if not isinstance(value, str):
        raise InvalidDigestError(f"Unsupported digest type: {type(value).__name__}")

    text = value.strip()
    if text.startswith("sha256:"):
        text = text[len("sha256:"):]

    if len(text) != HEX_DIGEST_LENGTH:
        raise InvalidDigestError(
            f"Digest must be {HEX_DIGEST_LENGTH} hex characters, got {len(text)}"
        )
    # bytes.fromhex would skip embedded whitespace and return a short digest
    if not _HEX_DIGEST_RE.fullmatch(text):
        raise InvalidDigestError(f"Digest is not valid hex: {value!r}")
    return bytes.fromhex(text)


def digest_hex(digest: bytes) -> str:
    """Render a 32-byte digest as lowercase hex."""
    return bytes(digest).hex()


def short_hex(digest: bytes, length: int = 16) -> str:
    """Hex prefix for log lines."""
    return digest_hex(digest)[:length] + "..."


def is_zero_digest(digest: bytes) -> bool:
    """True if every byte of the digest is zero."""
    return all(b == 0 for b in digest)


def digests_equal(a: bytes, b: bytes) -> bool:
    """Constant-time digest comparison."""
    return hmac.compare_digest(bytes(a), bytes(b))


def sha256_digest(data: Union[bytes, str]) -> bytes:
    """SHA-256 of raw bytes or UTF-8 text."""
    if isinstance(data, str):
        data = data.encode('utf-8')
    return hashlib.sha256(data).digest()


def hash_route_manifest(manifest: Dict[str, Any]) -> bytes:
    """
    Compute the route hash of a route manifest.

    route_hash = SHA-256(compact JSON(manifest)), keys in insertion order
    """
    return sha256_digest(stringify(manifest))


def hash_rules_config(rules: Dict[str, Any]) -> bytes:
    """
    Compute the rules hash of a routing rules configuration.

    rules_hash = SHA-256(compact JSON(rules)), keys in insertion order
    """
    return sha256_digest(stringify(rules))


def hash_solver_version(version: str) -> bytes:
    """
    Compute the solver version hash.

    The version identifier (release tag or source commit) is hashed as
    raw UTF-8 with no canonicalization.
    """
    return sha256_digest(version)
