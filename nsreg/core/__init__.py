"""Core primitives shared by every registry record.

- FixedCapacityString: bounded, validated UTF-8 text
- Addressing: deterministic addresses derived from namespaced identifiers
- Identity: Ed25519 identity keys and signatures
"""

from nsreg.core.addressing import Address, AddressDeriver, derive_address, find_address
from nsreg.core.fixed_string import (
    FixedCapacityString,
    InvalidEncoding,
    StringValidationError,
    TooLong,
)
from nsreg.core.identity import Identity, Keypair

__all__ = [
    "Address",
    "AddressDeriver",
    "derive_address",
    "find_address",
    "FixedCapacityString",
    "InvalidEncoding",
    "StringValidationError",
    "TooLong",
    "Identity",
    "Keypair",
]
