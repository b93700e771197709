"""Identity keys and signatures.

An Identity is a raw 32-byte Ed25519 public key. A Keypair holds the matching
private key and signs transaction messages. Keys are rendered as lowercase hex
wherever they appear as text (config, key files, HTTP payloads, GitHub bios).
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

KEY_SIZE = 32


@dataclass(frozen=True)
class Identity:
    """A 32-byte identity (public key) that can own registry records."""

    key: bytes

    def __post_init__(self) -> None:
        if len(self.key) != KEY_SIZE:
            raise ValueError(f"identity must be {KEY_SIZE} bytes, received {len(self.key)}")

    @classmethod
    def from_string(cls, text: str) -> Identity:
        try:
            raw = bytes.fromhex(text.strip())
        except ValueError as exc:
            raise ValueError(f"invalid identity {text!r}: expected 64 hex characters") from exc
        return cls(raw)

    def verify(self, message: bytes, signature: bytes) -> bool:
        """Return True if ``signature`` over ``message`` was made by this identity."""
        try:
            Ed25519PublicKey.from_public_bytes(self.key).verify(signature, message)
        except (InvalidSignature, ValueError):
            return False
        return True

    def __bytes__(self) -> bytes:
        return self.key

    def __str__(self) -> str:
        return self.key.hex()


class Keypair:
    """An Ed25519 private key with its identity."""

    def __init__(self, private_key: Ed25519PrivateKey):
        self._private_key = private_key
        raw = private_key.public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )
        self.identity = Identity(raw)

    @classmethod
    def generate(cls) -> Keypair:
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def from_seed(cls, seed: bytes) -> Keypair:
        return cls(Ed25519PrivateKey.from_private_bytes(seed))

    @property
    def seed(self) -> bytes:
        return self._private_key.private_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PrivateFormat.Raw,
            encryption_algorithm=serialization.NoEncryption(),
        )

    def sign(self, message: bytes) -> bytes:
        return self._private_key.sign(message)

    # ------------------------------------------------------------------
    # Key files
    # ------------------------------------------------------------------

    def save(self, path: str | Path) -> Path:
        """Write the key file (``{"identity": ..., "seed": ...}``) with owner-only permissions."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps({"identity": str(self.identity), "seed": self.seed.hex()}, indent=2)
        )
        path.chmod(0o600)
        return path

    @classmethod
    def load(cls, path: str | Path) -> Keypair:
        data = json.loads(Path(path).read_text())
        keypair = cls.from_seed(bytes.fromhex(data["seed"]))
        expected = data.get("identity")
        if expected and expected != str(keypair.identity):
            raise ValueError(f"key file {path} identity does not match its seed")
        return keypair

    def __repr__(self) -> str:
        return f"Keypair(identity={self.identity})"
