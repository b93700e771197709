"""Packages router -- look up package records by scope and name."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from nsreg.core.addressing import Address
from nsreg.registry.models import PackageRecord
from nsreg.registry.operations import Registry
from web.backend.app.middleware.registry import get_registry
from web.backend.app.models.api import PackageResponse

router = APIRouter(prefix="/api/packages", tags=["packages"])


def package_response(address: Address, record: PackageRecord) -> PackageResponse:
    """Convert a PackageRecord to a Pydantic response model."""
    return PackageResponse(
        address=str(address),
        scope=record.scope.view_as_text(),
        name=record.name.view_as_text(),
        authority=str(record.authority),
        package_id=record.package_id,
    )


@router.get(
    "/{scope}/{name}",
    response_model=PackageResponse,
    summary="Get a package",
)
async def get_package(scope: str, name: str, reg: Registry = Depends(get_registry)):
    """Resolve ``scope`` (without ``@``) and ``name`` to the package record."""
    address, record = reg.get_package(scope.lstrip("@"), name)
    return package_response(address, record)


@router.get(
    "/{scope}/{name}/address",
    summary="Derive a package's address",
)
async def get_package_address(scope: str, name: str, reg: Registry = Depends(get_registry)):
    address, disambiguator = reg.package_address(scope.lstrip("@"), name)
    return {"address": str(address), "disambiguator": disambiguator}
