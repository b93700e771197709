"""Registry: author and package records keyed by derived addresses.

The registry provides:
- Publishing: bind an ``@scope/name`` package to the publishing identity
- Author registration: bind a handle to an identity, gated by an oracle
- Unregistration: the authority on file deletes its author record
- Lookup: resolve a handle or package id straight to its address
"""

from nsreg.registry.authorizer import Authorizer, OracleAuthorizer
from nsreg.registry.models import AuthorRecord, PackageRecord, Receipt, Reclaimed
from nsreg.registry.operations import Registry
from nsreg.registry.store import Account, AccountStore, FileAccountStore, InMemoryAccountStore
from nsreg.registry.transaction import Transaction

__all__ = [
    "Authorizer",
    "OracleAuthorizer",
    "AuthorRecord",
    "PackageRecord",
    "Receipt",
    "Reclaimed",
    "Registry",
    "Account",
    "AccountStore",
    "FileAccountStore",
    "InMemoryAccountStore",
    "Transaction",
]
