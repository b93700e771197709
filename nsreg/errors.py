"""
Registry errors.

Error hierarchy:
    RegistryError (base)
    ├── InvalidString
    ├── Unauthorized
    ├── AlreadyExists
    ├── AddressDerivationFailed
    ├── RecordNotFound
    ├── RecordLayoutError
    └── OracleError

Every error is terminal for the operation that raised it. Nothing is retried
automatically and nothing is written before the error is raised.
"""

from __future__ import annotations

from typing import Any


class RegistryError(Exception):
    """Base error for all registry failures."""

    code = "registry_error"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidString(RegistryError):
    """A name failed the 32-byte / UTF-8 validation."""

    code = "invalid_string"

    def __init__(self, field: str, reason: str, details: dict[str, Any] | None = None):
        super().__init__(f"Invalid {field}: {reason}", details)
        self.field = field
        self.reason = reason


class Unauthorized(RegistryError):
    """
    A signature or ownership check failed.

    Examples:
    - RegisterAuthor without the oracle co-signature
    - UnregisterAuthor by an identity other than the record's authority
    - A transaction missing its authority's signature
    """

    code = "unauthorized"


class AlreadyExists(RegistryError):
    """The target address is already bound. Raised by the account store."""

    code = "already_exists"

    def __init__(self, address: Any, details: dict[str, Any] | None = None):
        super().__init__(f"Address {address} is already in use", details)
        self.address = address


class AddressDerivationFailed(RegistryError):
    """The identifier and disambiguator do not yield a usable address.

    Resubmit with a different disambiguator.
    """

    code = "address_derivation_failed"


class RecordNotFound(RegistryError):
    code = "record_not_found"

    def __init__(self, address: Any, details: dict[str, Any] | None = None):
        super().__init__(f"No record at address {address}", details)
        self.address = address


class RecordLayoutError(RegistryError):
    """Stored bytes do not decode as the expected record type."""

    code = "record_layout_error"


class OracleError(RegistryError):
    """The oracle could not reach its external verification source."""

    code = "oracle_error"
