"""Authors router -- look up author records by handle."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from nsreg.core.addressing import Address
from nsreg.registry.models import AuthorRecord
from nsreg.registry.operations import Registry
from web.backend.app.middleware.registry import get_registry
from web.backend.app.models.api import AuthorResponse

router = APIRouter(prefix="/api/authors", tags=["authors"])


def author_response(address: Address, record: AuthorRecord) -> AuthorResponse:
    """Convert an AuthorRecord to a Pydantic response model."""
    return AuthorResponse(
        address=str(address),
        name=record.name.view_as_text(),
        authority=str(record.authority),
    )


@router.get(
    "/{name}",
    response_model=AuthorResponse,
    summary="Get an author",
)
async def get_author(name: str, reg: Registry = Depends(get_registry)):
    """Resolve an author handle to its record. Returns 404 if unregistered."""
    address, record = reg.get_author(name)
    return author_response(address, record)


@router.get(
    "/{name}/address",
    summary="Derive an author's address",
)
async def get_author_address(name: str, reg: Registry = Depends(get_registry)):
    """Return the canonical address and disambiguator for a handle."""
    address, disambiguator = reg.author_address(name)
    return {"address": str(address), "disambiguator": disambiguator}
