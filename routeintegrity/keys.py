"""
Registry key management.

The registry owns one Ed25519 key. Its verify key, rendered as hex, is
the registry's identity (the value recorded as committer in "registry"
committer mode), and the signing key authenticates the notifications
published to off-registry indexers.
"""

import base64
import json
import os
from pathlib import Path
from typing import Tuple, Union

from nacl.exceptions import BadSignatureError
from nacl.signing import SigningKey, VerifyKey

DEFAULT_KID = "registry-identity-01"


def b64e(b: bytes) -> str:
    """Base64 encode bytes to string."""
    return base64.b64encode(b).decode('ascii')


def b64d(s: str) -> bytes:
    """Base64 decode string to bytes."""
    return base64.b64decode(s.encode('ascii'))


class RegistryKey:
    """
    File-backed Ed25519 registry key.

    Key file format:
        {"kid": "...", "private_key_b64": "..."}
    """

    def __init__(self, signing_key: SigningKey, kid: str = DEFAULT_KID):
        self._sk = signing_key
        self._kid = kid

    @classmethod
    def generate(cls, kid: str = DEFAULT_KID) -> "RegistryKey":
        return cls(SigningKey.generate(), kid)

    @classmethod
    def load(cls, path: Union[str, Path]) -> "RegistryKey":
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
        return cls(SigningKey(b64d(raw["private_key_b64"])), raw.get("kid", DEFAULT_KID))

    def save(self, path: Union[str, Path]) -> None:
        """Write the key file, readable by the owner only."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump({"kid": self._kid, "private_key_b64": b64e(bytes(self._sk))}, f, indent=2)
        os.chmod(path, 0o600)

    @property
    def kid(self) -> str:
        return self._kid

    @property
    def public_key_b64(self) -> str:
        return b64e(bytes(self._sk.verify_key))

    @property
    def identity(self) -> str:
        """Registry identity: hex of the Ed25519 verify key."""
        return bytes(self._sk.verify_key).hex()

    def sign(self, payload: bytes) -> Tuple[str, str]:
        """Sign payload and return (kid, signature_b64)."""
        sig = self._sk.sign(payload).signature
        return self._kid, b64e(sig)


def load_or_create_registry_key(path: Union[str, Path], kid: str = DEFAULT_KID) -> RegistryKey:
    """Load the registry key, generating and saving one on first start."""
    path = Path(path)
    if path.exists():
        return RegistryKey.load(path)
    key = RegistryKey.generate(kid)
    key.save(path)
    return key


def verify_ed25519(signature_b64: str, payload: bytes, identity_hex: str) -> bool:
    """
    Verify an Ed25519 signature against a registry identity.

    Args:
        signature_b64: Base64-encoded signature
        payload: The signed data
        identity_hex: Hex-encoded verify key (the registry identity)

    Returns:
        True if signature is valid, False otherwise
    """
    try:
        vk = VerifyKey(bytes.fromhex(identity_hex))
        vk.verify(payload, b64d(signature_b64))
        return True
    except (BadSignatureError, ValueError):
        return False
