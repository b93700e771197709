"""Deterministic address derivation from namespaced identifiers.

An address is ``sha256(tag || components... || disambiguator || program_id ||
"ProgramDerivedAddress")``. Digests that decode as a point on the Ed25519 curve
are rejected so that a derived address can never be an identity somebody holds
a private key for; the one-byte disambiguator lets the caller pick an input
that lands off the curve.

Because the address is a pure function of the identifier, "is this name
taken" becomes "is this address bound", which the account store answers with
a single insert-if-absent.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Iterable, Sequence

from nsreg.errors import AddressDerivationFailed

ADDRESS_SIZE = 32
MAX_SEED_LENGTH = 32
MAX_SEEDS = 16
DERIVATION_MARKER = b"ProgramDerivedAddress"

DEFAULT_PROGRAM_ID = hashlib.sha256(b"nsreg/registry-program").digest()

# Ed25519 curve parameters (RFC 8032)
_P = 2**255 - 19
_D = (-121665 * pow(121666, _P - 2, _P)) % _P


@dataclass(frozen=True)
class Address:
    """A 32-byte storage address."""

    value: bytes

    def __post_init__(self) -> None:
        if len(self.value) != ADDRESS_SIZE:
            raise ValueError(f"address must be {ADDRESS_SIZE} bytes, received {len(self.value)}")

    @classmethod
    def from_string(cls, text: str) -> Address:
        try:
            raw = bytes.fromhex(text.strip())
        except ValueError as exc:
            raise ValueError(f"invalid address {text!r}: expected 64 hex characters") from exc
        return cls(raw)

    def __bytes__(self) -> bytes:
        return self.value

    def __str__(self) -> str:
        return self.value.hex()


def is_on_curve(candidate: bytes) -> bool:
    """Return True if ``candidate`` decompresses to an Ed25519 point.

    Follows the usual decompression rule: clear the sign bit, read y, and
    check whether ``(y^2 - 1) / (d*y^2 + 1)`` is a square mod p.
    """
    y = (int.from_bytes(candidate, "little") & ((1 << 255) - 1)) % _P
    y2 = y * y % _P
    u = (y2 - 1) % _P
    v = (_D * y2 + 1) % _P
    if u == 0:
        return True
    x2 = u * pow(v, _P - 2, _P) % _P
    return pow(x2, (_P - 1) // 2, _P) == 1


def _seeds(namespace_tag: bytes, components: Iterable[bytes]) -> list[bytes]:
    seeds = [bytes(namespace_tag), *(bytes(c) for c in components)]
    # The disambiguator counts as a seed too.
    if len(seeds) + 1 > MAX_SEEDS:
        raise AddressDerivationFailed(
            f"too many seeds: {len(seeds) + 1} (maximum {MAX_SEEDS})"
        )
    for seed in seeds:
        if len(seed) > MAX_SEED_LENGTH:
            raise AddressDerivationFailed(
                f"seed is {len(seed)} bytes (maximum {MAX_SEED_LENGTH})",
                {"seed": seed.hex()},
            )
    return seeds


def _derive(seeds: Sequence[bytes], disambiguator: int, program_id: bytes) -> Address:
    if not isinstance(disambiguator, int) or not 0 <= disambiguator <= 255:
        raise AddressDerivationFailed(
            f"disambiguator must be an integer in 0..255, received {disambiguator!r}"
        )
    digest = hashlib.sha256()
    for seed in seeds:
        digest.update(seed)
    digest.update(bytes([disambiguator]))
    digest.update(program_id)
    digest.update(DERIVATION_MARKER)
    candidate = digest.digest()
    if is_on_curve(candidate):
        raise AddressDerivationFailed(
            f"disambiguator {disambiguator} yields an on-curve address",
            {"disambiguator": disambiguator},
        )
    return Address(candidate)


def derive_address(
    namespace_tag: bytes,
    components: Sequence[bytes],
    disambiguator: int,
    program_id: bytes = DEFAULT_PROGRAM_ID,
) -> Address:
    """Derive the address for ``namespace_tag`` + ``components`` + ``disambiguator``.

    Raises ``AddressDerivationFailed`` when a seed is too long, the
    disambiguator is out of range, or the result lands on the curve.
    """
    return _derive(_seeds(namespace_tag, components), disambiguator, bytes(program_id))


def find_address(
    namespace_tag: bytes,
    components: Sequence[bytes],
    program_id: bytes = DEFAULT_PROGRAM_ID,
) -> tuple[Address, int]:
    """Return the canonical address and disambiguator (the highest that works)."""
    seeds = _seeds(namespace_tag, components)
    program_id = bytes(program_id)
    for disambiguator in range(255, -1, -1):
        try:
            return _derive(seeds, disambiguator, program_id), disambiguator
        except AddressDerivationFailed:
            continue
    raise AddressDerivationFailed("no disambiguator yields a usable address")


class AddressDeriver:
    """Address derivation bound to one program id."""

    def __init__(self, program_id: bytes = DEFAULT_PROGRAM_ID):
        self.program_id = bytes(program_id)

    def derive(self, namespace_tag: bytes, components: Sequence[bytes], disambiguator: int) -> Address:
        return derive_address(namespace_tag, components, disambiguator, self.program_id)

    def find(self, namespace_tag: bytes, components: Sequence[bytes]) -> tuple[Address, int]:
        return find_address(namespace_tag, components, self.program_id)

    def require_canonical(
        self, namespace_tag: bytes, components: Sequence[bytes], disambiguator: int
    ) -> Address:
        """Derive with ``disambiguator`` and require it to be the canonical one.

        Accepting only the canonical disambiguator keeps one address per
        identifier, so a second registration cannot dodge the collision by
        picking another value.
        """
        address = self.derive(namespace_tag, components, disambiguator)
        canonical, expected = self.find(namespace_tag, components)
        if canonical != address:
            raise AddressDerivationFailed(
                f"disambiguator {disambiguator} is not canonical, use {expected}",
                {"disambiguator": disambiguator, "canonical": expected},
            )
        return address
