"""Signed transactions carrying one registry instruction.

A transaction names an instruction, the authority it runs as, and the
instruction arguments. Signatures cover the canonical JSON encoding of those
three fields, so a co-signer (the oracle) signs exactly what the authority
signed.

The builders add a random ``nonce`` argument. The registry runs each signed
message at most once, so a captured transaction cannot be replayed, and the
nonce lets an author sign the same instruction again later.
"""

from __future__ import annotations

import hashlib
import json
import secrets
from dataclasses import dataclass, field
from typing import Any

from nsreg.core.addressing import Address
from nsreg.core.identity import Identity, Keypair

INSTRUCTION_ARGS: dict[str, tuple[str, ...]] = {
    "publish_package": ("scope", "name", "disambiguator"),
    "register_author": ("name", "disambiguator"),
    "unregister_author": ("address",),
}

TEXT_ARGS = frozenset({"scope", "name", "address", "nonce"})
INT_ARGS = frozenset({"disambiguator"})


def new_nonce() -> str:
    return secrets.token_hex(16)


@dataclass
class Transaction:
    instruction: str
    authority: Identity
    args: dict[str, Any] = field(default_factory=dict)
    signatures: dict[Identity, bytes] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Check the instruction and the type of every argument.

        Raises ``ValueError``. Names and addresses must be ``str`` and the
        disambiguator a plain ``int``; a JSON list or number in their place is
        refused here, before any of it reaches the registry.
        """
        if self.instruction not in INSTRUCTION_ARGS:
            raise ValueError(f"Unknown instruction {self.instruction!r}")
        if not isinstance(self.args, dict):
            raise ValueError("Transaction args must be a mapping")
        missing = [a for a in INSTRUCTION_ARGS[self.instruction] if a not in self.args]
        if missing:
            raise ValueError(f"{self.instruction} is missing arguments: {', '.join(missing)}")
        for key, value in self.args.items():
            if key in TEXT_ARGS:
                if not isinstance(value, str):
                    raise ValueError(f"Argument {key!r} must be a string, got {type(value).__name__}")
            elif key in INT_ARGS:
                # bool is an int subclass; true/false is not a disambiguator.
                if isinstance(value, bool) or not isinstance(value, int):
                    raise ValueError(f"Argument {key!r} must be an integer, got {type(value).__name__}")
            else:
                raise ValueError(f"Unexpected argument {key!r} for {self.instruction}")

    # ------------------------------------------------------------------
    # Builders
    # ------------------------------------------------------------------

    @classmethod
    def publish_package(
        cls, authority: Identity, scope: str, name: str, disambiguator: int
    ) -> Transaction:
        return cls(
            "publish_package",
            authority,
            {"scope": scope, "name": name, "disambiguator": disambiguator, "nonce": new_nonce()},
        )

    @classmethod
    def register_author(cls, authority: Identity, name: str, disambiguator: int) -> Transaction:
        return cls(
            "register_author",
            authority,
            {"name": name, "disambiguator": disambiguator, "nonce": new_nonce()},
        )

    @classmethod
    def unregister_author(cls, authority: Identity, address: Address) -> Transaction:
        return cls("unregister_author", authority, {"address": str(address), "nonce": new_nonce()})

    # ------------------------------------------------------------------
    # Signing
    # ------------------------------------------------------------------

    def message(self) -> bytes:
        body = {
            "instruction": self.instruction,
            "authority": str(self.authority),
            "args": self.args,
        }
        return json.dumps(body, sort_keys=True, separators=(",", ":")).encode("utf-8")

    def digest(self) -> bytes:
        """sha256 of the signed message; identifies the transaction for replay checks."""
        return hashlib.sha256(self.message()).digest()

    def sign(self, *keypairs: Keypair) -> Transaction:
        message = self.message()
        for keypair in keypairs:
            self.signatures[keypair.identity] = keypair.sign(message)
        return self

    def verified_signers(self) -> frozenset[Identity]:
        """Identities whose signature over this transaction checks out."""
        message = self.message()
        return frozenset(
            identity
            for identity, signature in self.signatures.items()
            if identity.verify(message, signature)
        )

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict:
        return {
            "instruction": self.instruction,
            "authority": str(self.authority),
            "args": dict(self.args),
            "signatures": {str(k): v.hex() for k, v in self.signatures.items()},
        }

    @classmethod
    def from_dict(cls, data: dict) -> Transaction:
        """Inverse of ``to_dict``. Malformed input raises ``ValueError`` or ``KeyError``."""
        args = data.get("args", {})
        signatures = data.get("signatures", {})
        if not isinstance(args, dict) or not isinstance(signatures, dict):
            raise ValueError("args and signatures must be mappings")
        if not isinstance(data["instruction"], str) or not isinstance(data["authority"], str):
            raise ValueError("instruction and authority must be strings")
        if not all(isinstance(v, str) for v in signatures.values()):
            raise ValueError("signatures must be hex strings")
        return cls(
            instruction=data["instruction"],
            authority=Identity.from_string(data["authority"]),
            args=dict(args),
            signatures={Identity.from_string(k): bytes.fromhex(v) for k, v in signatures.items()},
        )
