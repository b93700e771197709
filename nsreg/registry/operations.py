"""Registry operations: publish packages, register and unregister authors.

Each operation validates all of its input, then performs at most one store
mutation. The store's insert-if-absent is the only uniqueness check: the
record address is derived from the identifier, so a second claim on the same
identifier collides on the same address.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterable, Iterator, Optional

from nsreg.core.addressing import Address, AddressDeriver
from nsreg.core.fixed_string import FixedCapacityString, StringValidationError
from nsreg.core.identity import Identity
from nsreg.errors import AlreadyExists, InvalidString, RecordNotFound, RegistryError, Unauthorized
from nsreg.registry.authorizer import Authorizer
from nsreg.registry.models import (
    AUTHORS_NAMESPACE,
    PACKAGES_NAMESPACE,
    AuthorRecord,
    PackageRecord,
    Receipt,
    Reclaimed,
    decode_record,
)
from nsreg.registry.store import Account, AccountStore
from nsreg.registry.transaction import Transaction
from nsreg.security.audit_log import AuditLogger

logger = logging.getLogger(__name__)


def _as_bytes(value: str | bytes) -> bytes:
    if isinstance(value, str):
        # Lone surrogates pass through and fail UTF-8 validation below.
        return value.encode("utf-8", "surrogatepass")
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    raise TypeError(f"expected str or bytes, got {type(value).__name__}")


def _label(value: str | bytes) -> str:
    return _as_bytes(value).decode("utf-8", "replace")


def _validated(field: str, value: str | bytes) -> FixedCapacityString:
    try:
        return FixedCapacityString.construct(_as_bytes(value))
    except StringValidationError as exc:
        raise InvalidString(field, str(exc)) from exc


class Registry:
    """The registry program: operations over an account store."""

    def __init__(
        self,
        store: AccountStore,
        authorizer: Authorizer,
        deriver: Optional[AddressDeriver] = None,
        audit: Optional[AuditLogger] = None,
    ):
        self.store = store
        self.authorizer = authorizer
        self.deriver = deriver or AddressDeriver()
        self.audit = audit

    @contextmanager
    def _audited(
        self, action: str, caller: Identity, resource_type: str, resource_id: str
    ) -> Iterator[dict]:
        outcome: dict = {"address": ""}
        try:
            yield outcome
        except RegistryError as exc:
            logger.info("%s %s by %s failed: %s", action, resource_id, caller, exc.message)
            if self.audit:
                self.audit.log_event(
                    actor=str(caller),
                    action=action,
                    resource_type=resource_type,
                    resource_id=resource_id,
                    address=outcome["address"],
                    details=exc.details,
                    success=False,
                    error_code=exc.code,
                )
            raise
        if self.audit:
            self.audit.log_event(
                actor=str(caller),
                action=action,
                resource_type=resource_type,
                resource_id=resource_id,
                address=outcome["address"],
            )

    # ------------------------------------------------------------------
    # Addressing
    # ------------------------------------------------------------------

    def author_address(self, name: str | bytes) -> tuple[Address, int]:
        """Canonical address and disambiguator for an author handle."""
        return self.deriver.find(AUTHORS_NAMESPACE, [_as_bytes(name)])

    def package_address(self, scope: str | bytes, name: str | bytes) -> tuple[Address, int]:
        """Canonical address and disambiguator for a ``(scope, name)`` package."""
        return self.deriver.find(PACKAGES_NAMESPACE, [_as_bytes(scope), _as_bytes(name)])

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def publish_package(
        self,
        caller: Identity,
        scope: str | bytes,
        name: str | bytes,
        disambiguator: int,
    ) -> Receipt:
        """Create the package record for ``(scope, name)`` owned by ``caller``."""
        resource_id = f"@{_label(scope)}/{_label(name)}"
        with self._audited("publish_package", caller, "package", resource_id) as outcome:
            record = PackageRecord(
                scope=_validated("scope", scope),
                name=_validated("name", name),
                authority=caller,
            )
            address = self.deriver.require_canonical(
                PACKAGES_NAMESPACE, record.seeds(), disambiguator
            )
            outcome["address"] = str(address)
            self.store.insert_if_absent(address, Account(data=record.to_bytes(), payer=caller))

        logger.info("Published %s at %s by %s", record.package_id, address, caller)
        return Receipt(address=address, record=record)

    def register_author(
        self,
        caller: Identity,
        name: str | bytes,
        disambiguator: int,
        co_signers: Iterable[Identity] = (),
    ) -> Receipt:
        """Create the author record for ``name`` with ``caller`` as its authority.

        The authorizer runs first, so an unsigned request is refused whatever
        the name looks like.
        """
        resource_id = _label(name)
        with self._audited("register_author", caller, "author", resource_id) as outcome:
            self.authorizer.check_registration(caller, resource_id, co_signers)
            record = AuthorRecord(name=_validated("name", name), authority=caller)
            address = self.deriver.require_canonical(
                AUTHORS_NAMESPACE, record.seeds(), disambiguator
            )
            outcome["address"] = str(address)
            self.store.insert_if_absent(address, Account(data=record.to_bytes(), payer=caller))

        logger.info("Registered author %r at %s for %s", resource_id, address, caller)
        return Receipt(address=address, record=record)

    def unregister_author(self, caller: Identity, address: Address) -> Reclaimed:
        """Delete the author record at ``address`` and return its storage to ``caller``.

        Only the record's authority may do this; any other caller, or an
        address holding no author record, gets ``Unauthorized``.
        """
        account = self.store.get(address)
        resource_id = ""
        record = None
        if account is not None:
            try:
                record = AuthorRecord.from_bytes(account.data)
                resource_id = record.name.view_as_text()
            except RegistryError:
                record = None

        with self._audited("unregister_author", caller, "author", resource_id) as outcome:
            outcome["address"] = str(address)
            if record is None:
                raise Unauthorized(f"No author record at {address}")
            if record.authority != caller:
                raise Unauthorized(
                    f"{caller} is not the authority of author {resource_id!r}",
                    {"authority": str(record.authority)},
                )
            removed = self.store.delete(address, expected=account)
            if removed is None:
                raise Unauthorized(f"No author record at {address}")

        logger.info(
            "Closed author account %s, returning %d bytes to %s", address, removed.space, caller
        )
        return Reclaimed(address=address, authority=caller, space=removed.space)

    def execute(self, tx: Transaction) -> Receipt | Reclaimed:
        """Run a signed transaction.

        The authority must have signed it. Every other valid signature is
        passed on as a co-signer (this is how the oracle vouches for an
        author registration). A transaction runs at most once: its digest is
        claimed before dispatch and released again if the operation fails.
        Malformed arguments raise ``ValueError``.
        """
        tx.validate()
        signers = tx.verified_signers()
        if tx.authority not in signers:
            raise Unauthorized(f"Transaction is not signed by its authority {tx.authority}")
        co_signers = signers - {tx.authority}
        args = tx.args
        address = (
            Address.from_string(args["address"]) if tx.instruction == "unregister_author" else None
        )

        digest = tx.digest()
        try:
            self.store.claim_transaction(digest)
        except AlreadyExists as exc:
            logger.info("Refused replay of %s transaction %s", tx.instruction, digest.hex())
            raise Unauthorized(
                "Transaction has already been executed", {"digest": digest.hex()}
            ) from exc

        try:
            if tx.instruction == "publish_package":
                return self.publish_package(
                    tx.authority, args["scope"], args["name"], args["disambiguator"]
                )
            if tx.instruction == "register_author":
                return self.register_author(
                    tx.authority, args["name"], args["disambiguator"], co_signers
                )
            return self.unregister_author(tx.authority, address)
        except RegistryError:
            self.store.release_transaction(digest)
            raise

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_record(self, address: Address) -> AuthorRecord | PackageRecord:
        account = self.store.get(address)
        if account is None:
            raise RecordNotFound(address)
        return decode_record(account.data)

    def get_author(self, name: str | bytes) -> tuple[Address, AuthorRecord]:
        address, _ = self.author_address(name)
        record = self.get_record(address)
        if not isinstance(record, AuthorRecord):
            raise RecordNotFound(address)
        return address, record

    def get_package(self, scope: str | bytes, name: str | bytes) -> tuple[Address, PackageRecord]:
        address, _ = self.package_address(scope, name)
        record = self.get_record(address)
        if not isinstance(record, PackageRecord):
            raise RecordNotFound(address)
        return address, record

    def list_records(self) -> list[tuple[Address, AuthorRecord | PackageRecord]]:
        """Every decodable record in the store."""
        records = []
        for address, account in self.store.items():
            try:
                records.append((address, decode_record(account.data)))
            except RegistryError:
                logger.warning("Skipping undecodable account at %s", address)
        return records
