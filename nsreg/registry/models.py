"""Registry data models: author and package records, receipts."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass

from nsreg.core.addressing import Address
from nsreg.core.fixed_string import LAYOUT_SIZE, FixedCapacityString, StringValidationError
from nsreg.core.identity import KEY_SIZE, Identity
from nsreg.errors import RecordLayoutError

AUTHORS_NAMESPACE = b"authors"
PACKAGES_NAMESPACE = b"packages"

DISCRIMINATOR_SIZE = 8


def _discriminator(type_name: str) -> bytes:
    """Leading 8-byte record type tag, ``sha256("account:<Type>")[:8]``."""
    return hashlib.sha256(f"account:{type_name}".encode()).digest()[:DISCRIMINATOR_SIZE]


def _split(data: bytes, discriminator: bytes, sizes: list[int], type_name: str) -> list[bytes]:
    expected = DISCRIMINATOR_SIZE + sum(sizes)
    if len(data) != expected:
        raise RecordLayoutError(
            f"{type_name} must be {expected} bytes, received {len(data)}"
        )
    if data[:DISCRIMINATOR_SIZE] != discriminator:
        raise RecordLayoutError(f"record is not a {type_name}")
    parts = []
    offset = DISCRIMINATOR_SIZE
    for size in sizes:
        parts.append(data[offset:offset + size])
        offset += size
    return parts


def _decode_string(raw: bytes, field: str) -> FixedCapacityString:
    try:
        return FixedCapacityString.from_layout(raw)
    except (StringValidationError, ValueError) as exc:
        raise RecordLayoutError(f"corrupt {field}: {exc}") from exc


@dataclass
class AuthorRecord:
    """Binds an author handle to the identity that controls it."""

    name: FixedCapacityString
    authority: Identity

    DISCRIMINATOR = _discriminator("AuthorRecord")
    SIZE = DISCRIMINATOR_SIZE + LAYOUT_SIZE + KEY_SIZE

    def to_bytes(self) -> bytes:
        return self.DISCRIMINATOR + self.name.to_layout() + self.authority.key

    @classmethod
    def from_bytes(cls, data: bytes) -> AuthorRecord:
        name, authority = _split(data, cls.DISCRIMINATOR, [LAYOUT_SIZE, KEY_SIZE], "AuthorRecord")
        return cls(name=_decode_string(name, "name"), authority=Identity(authority))

    def seeds(self) -> list[bytes]:
        return [self.name.as_bytes()]


@dataclass
class PackageRecord:
    """Binds a ``(scope, name)`` package to the identity that published it."""

    scope: FixedCapacityString  # without the leading "@"
    name: FixedCapacityString
    authority: Identity

    DISCRIMINATOR = _discriminator("PackageRecord")
    SIZE = DISCRIMINATOR_SIZE + 2 * LAYOUT_SIZE + KEY_SIZE

    @property
    def package_id(self) -> str:
        return f"@{self.scope}/{self.name}"

    def to_bytes(self) -> bytes:
        return (
            self.DISCRIMINATOR
            + self.scope.to_layout()
            + self.name.to_layout()
            + self.authority.key
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> PackageRecord:
        scope, name, authority = _split(
            data, cls.DISCRIMINATOR, [LAYOUT_SIZE, LAYOUT_SIZE, KEY_SIZE], "PackageRecord"
        )
        return cls(
            scope=_decode_string(scope, "scope"),
            name=_decode_string(name, "name"),
            authority=Identity(authority),
        )

    def seeds(self) -> list[bytes]:
        return [self.scope.as_bytes(), self.name.as_bytes()]


def decode_record(data: bytes) -> AuthorRecord | PackageRecord:
    """Decode stored bytes into whichever record type the discriminator names."""
    tag = data[:DISCRIMINATOR_SIZE]
    if tag == AuthorRecord.DISCRIMINATOR:
        return AuthorRecord.from_bytes(data)
    if tag == PackageRecord.DISCRIMINATOR:
        return PackageRecord.from_bytes(data)
    raise RecordLayoutError("unknown record type")


def parse_package_id(package_id: str) -> tuple[str, str]:
    """Split ``@scope/name`` (or ``scope/name``) into ``(scope, name)``."""
    text = package_id.strip()
    if text.startswith("@"):
        text = text[1:]
    scope, sep, name = text.partition("/")
    if not sep or not scope or not name or "/" in name:
        raise ValueError(f"expected '@scope/name', received {package_id!r}")
    return scope, name


@dataclass
class Receipt:
    """Result of a successful create operation."""

    address: Address
    record: AuthorRecord | PackageRecord


@dataclass
class Reclaimed:
    """Result of a successful unregister: the freed storage goes back to ``authority``."""

    address: Address
    authority: Identity
    space: int
