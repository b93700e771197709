"""Pydantic models for API request/response serialization.

These models mirror the nsreg dataclasses and provide JSON serialization for
the FastAPI endpoints. Identities and addresses travel as 64-char hex strings.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Record models
# ---------------------------------------------------------------------------


class AuthorResponse(BaseModel):
    """Mirrors nsreg.registry.models.AuthorRecord."""

    address: str
    name: str
    authority: str


class PackageResponse(BaseModel):
    """Mirrors nsreg.registry.models.PackageRecord."""

    address: str
    scope: str
    name: str
    authority: str
    package_id: str = ""


# ---------------------------------------------------------------------------
# Transaction models
# ---------------------------------------------------------------------------


class TransactionRequest(BaseModel):
    """Mirrors nsreg.registry.transaction.Transaction.to_dict()."""

    instruction: str
    authority: str
    args: dict[str, Any] = Field(default_factory=dict)
    signatures: dict[str, str] = Field(default_factory=dict)


class OracleRequest(BaseModel):
    """A signed register_author transaction for the oracle to co-sign."""

    transaction: TransactionRequest
    username: Optional[str] = None


class ReceiptResponse(BaseModel):
    """Outcome of a create (address + record) or an unregister (reclaimed space)."""

    instruction: str
    address: str
    author: Optional[AuthorResponse] = None
    package: Optional[PackageResponse] = None
    reclaimed_space: int = 0
