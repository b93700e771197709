"""Tests for the account stores."""

import tempfile
from pathlib import Path

import pytest

from nsreg.core.addressing import find_address
from nsreg.core.identity import Keypair
from nsreg.errors import AlreadyExists
from nsreg.registry.store import Account, FileAccountStore, InMemoryAccountStore

PAYER = Keypair.generate().identity
ADDRESS, _ = find_address(b"authors", [b"alice"])
OTHER_ADDRESS, _ = find_address(b"authors", [b"bob"])


def _check_store(store):
    account = Account(data=b"record-bytes", payer=PAYER)

    assert store.get(ADDRESS) is None
    store.insert_if_absent(ADDRESS, account)
    assert store.get(ADDRESS) == account
    assert ADDRESS in store
    assert OTHER_ADDRESS not in store

    with pytest.raises(AlreadyExists):
        store.insert_if_absent(ADDRESS, Account(data=b"other", payer=PAYER))
    assert store.get(ADDRESS) == account

    # Compare-and-delete leaves a different account alone
    assert store.delete(ADDRESS, expected=Account(data=b"other", payer=PAYER)) is None
    assert store.get(ADDRESS) == account

    assert store.delete(ADDRESS, expected=account) == account
    assert store.get(ADDRESS) is None
    assert store.delete(ADDRESS) is None

    digest = bytes(range(32))
    store.claim_transaction(digest)
    with pytest.raises(AlreadyExists):
        store.claim_transaction(digest)
    store.release_transaction(digest)
    store.claim_transaction(digest)


def test_in_memory_store():
    _check_store(InMemoryAccountStore())


def test_file_store():
    with tempfile.TemporaryDirectory() as tmpdir:
        _check_store(FileAccountStore(Path(tmpdir) / "registry"))


def test_file_store_persists():
    with tempfile.TemporaryDirectory() as tmpdir:
        account = Account(data=b"\x00\x01\xff", payer=PAYER)
        FileAccountStore(tmpdir).insert_if_absent(ADDRESS, account)

        reopened = FileAccountStore(tmpdir)
        assert reopened.get(ADDRESS) == account
        assert list(reopened.items()) == [(ADDRESS, account)]


def test_account_space():
    assert Account(data=b"x" * 80, payer=PAYER).space == 80


def test_file_store_persists_executed_transactions():
    with tempfile.TemporaryDirectory() as tmpdir:
        digest = b"\x07" * 32
        FileAccountStore(tmpdir).claim_transaction(digest)
        with pytest.raises(AlreadyExists):
            FileAccountStore(tmpdir).claim_transaction(digest)
