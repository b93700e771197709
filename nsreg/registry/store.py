"""Account stores: the address space records live in.

A store maps derived addresses to account bytes and offers one primitive the
registry relies on for uniqueness: ``insert_if_absent``. Exactly one of any
number of concurrent inserts for the same address succeeds; the rest raise
``AlreadyExists``.

A store also keeps the ledger of executed transaction digests, so a signed
transaction runs at most once.

Two implementations:
- ``InMemoryAccountStore`` for tests and embedding
- ``FileAccountStore`` backed by ``accounts.json`` and ``executed.json`` in a
  registry directory
"""

from __future__ import annotations

import base64
import json
import os
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

from nsreg.core.addressing import Address
from nsreg.core.identity import Identity
from nsreg.errors import AlreadyExists


@dataclass(frozen=True)
class Account:
    """Raw record bytes plus the identity that paid for the storage."""

    data: bytes
    payer: Identity

    @property
    def space(self) -> int:
        return len(self.data)


class AccountStore(ABC):
    """Address space with create-if-absent semantics."""

    @abstractmethod
    def insert_if_absent(self, address: Address, account: Account) -> None:
        """Bind ``address`` to ``account``; raise ``AlreadyExists`` if bound."""

    @abstractmethod
    def get(self, address: Address) -> Optional[Account]:
        """Return the account at ``address`` or None."""

    @abstractmethod
    def delete(self, address: Address, expected: Optional[Account] = None) -> Optional[Account]:
        """Unbind ``address`` and return what was there.

        Returns None if the address is absent, or if ``expected`` is given and
        the bound account differs from it (nothing is deleted then).
        """

    @abstractmethod
    def items(self) -> Iterator[tuple[Address, Account]]:
        """Iterate over every bound address."""

    @abstractmethod
    def claim_transaction(self, digest: bytes) -> None:
        """Record ``digest`` as executed; raise ``AlreadyExists`` if it already was."""

    @abstractmethod
    def release_transaction(self, digest: bytes) -> None:
        """Forget ``digest`` (the transaction failed and may be resubmitted)."""

    def __contains__(self, address: Address) -> bool:
        return self.get(address) is not None


class InMemoryAccountStore(AccountStore):
    def __init__(self) -> None:
        self._accounts: dict[Address, Account] = {}
        self._executed: set[bytes] = set()
        self._lock = threading.Lock()

    def insert_if_absent(self, address: Address, account: Account) -> None:
        with self._lock:
            if address in self._accounts:
                raise AlreadyExists(address)
            self._accounts[address] = account

    def get(self, address: Address) -> Optional[Account]:
        return self._accounts.get(address)

    def delete(self, address: Address, expected: Optional[Account] = None) -> Optional[Account]:
        with self._lock:
            current = self._accounts.get(address)
            if current is None or (expected is not None and current != expected):
                return None
            return self._accounts.pop(address)

    def items(self) -> Iterator[tuple[Address, Account]]:
        return iter(list(self._accounts.items()))

    def claim_transaction(self, digest: bytes) -> None:
        with self._lock:
            if digest in self._executed:
                raise AlreadyExists(digest.hex())
            self._executed.add(digest)

    def release_transaction(self, digest: bytes) -> None:
        with self._lock:
            self._executed.discard(digest)


class FileAccountStore(AccountStore):
    """File-based store.

    Storage path: ``<registry_dir>/accounts.json``, a dict of hex address to
    ``{"data": <base64>, "payer": <hex identity>}``. Executed transaction
    digests go to ``<registry_dir>/executed.json`` as a sorted hex list.
    Every mutation re-reads the file under the lock and rewrites it
    atomically.
    """

    ACCOUNTS_FILE = "accounts.json"
    EXECUTED_FILE = "executed.json"

    def __init__(self, registry_dir: str | Path):
        self.registry_dir = Path(registry_dir)
        self.registry_dir.mkdir(parents=True, exist_ok=True)
        self.accounts_path = self.registry_dir / self.ACCOUNTS_FILE
        self.executed_path = self.registry_dir / self.EXECUTED_FILE
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _load(self) -> dict[str, dict]:
        if not self.accounts_path.exists():
            return {}
        with open(self.accounts_path) as f:
            data = json.load(f)
        return data if isinstance(data, dict) else {}

    def _save(self, accounts: dict[str, dict]) -> None:
        self._write_json(self.accounts_path, accounts)

    def _load_executed(self) -> set[str]:
        if not self.executed_path.exists():
            return set()
        with open(self.executed_path) as f:
            data = json.load(f)
        return set(data) if isinstance(data, list) else set()

    @staticmethod
    def _write_json(path: Path, payload: object) -> None:
        tmp_path = path.with_suffix(".json.tmp")
        with open(tmp_path, "w") as f:
            json.dump(payload, f, indent=2, sort_keys=True)
        os.replace(tmp_path, path)

    @staticmethod
    def _account_to_dict(account: Account) -> dict:
        return {
            "data": base64.b64encode(account.data).decode("ascii"),
            "payer": str(account.payer),
        }

    @staticmethod
    def _dict_to_account(d: dict) -> Account:
        return Account(
            data=base64.b64decode(d["data"]),
            payer=Identity.from_string(d["payer"]),
        )

    # ------------------------------------------------------------------
    # AccountStore
    # ------------------------------------------------------------------

    def insert_if_absent(self, address: Address, account: Account) -> None:
        with self._lock:
            accounts = self._load()
            key = str(address)
            if key in accounts:
                raise AlreadyExists(address)
            accounts[key] = self._account_to_dict(account)
            self._save(accounts)

    def get(self, address: Address) -> Optional[Account]:
        d = self._load().get(str(address))
        return self._dict_to_account(d) if d else None

    def delete(self, address: Address, expected: Optional[Account] = None) -> Optional[Account]:
        with self._lock:
            accounts = self._load()
            d = accounts.get(str(address))
            if d is None:
                return None
            if expected is not None and self._dict_to_account(d) != expected:
                return None
            del accounts[str(address)]
            self._save(accounts)
            return self._dict_to_account(d)

    def items(self) -> Iterator[tuple[Address, Account]]:
        for key, d in self._load().items():
            yield Address.from_string(key), self._dict_to_account(d)

    def claim_transaction(self, digest: bytes) -> None:
        with self._lock:
            executed = self._load_executed()
            if digest.hex() in executed:
                raise AlreadyExists(digest.hex())
            executed.add(digest.hex())
            self._write_json(self.executed_path, sorted(executed))

    def release_transaction(self, digest: bytes) -> None:
        with self._lock:
            executed = self._load_executed()
            if digest.hex() in executed:
                executed.discard(digest.hex())
                self._write_json(self.executed_path, sorted(executed))
