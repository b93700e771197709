"""Transactions router -- submit signed registry transactions."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from nsreg.registry.models import AuthorRecord, Receipt, Reclaimed
from nsreg.registry.operations import Registry
from nsreg.registry.transaction import Transaction
from web.backend.app.middleware.registry import get_registry
from web.backend.app.models.api import ReceiptResponse, TransactionRequest
from web.backend.app.routers.authors import author_response
from web.backend.app.routers.packages import package_response

router = APIRouter(prefix="/api/transactions", tags=["transactions"])


def parse_transaction(body: TransactionRequest) -> Transaction:
    """Build a Transaction from the request body; malformed input is a 422."""
    try:
        return Transaction.from_dict(body.model_dump())
    except (KeyError, ValueError) as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Malformed transaction: {exc}",
        )


def receipt_response(instruction: str, result: Receipt | Reclaimed) -> ReceiptResponse:
    if isinstance(result, Reclaimed):
        return ReceiptResponse(
            instruction=instruction,
            address=str(result.address),
            reclaimed_space=result.space,
        )
    if isinstance(result.record, AuthorRecord):
        return ReceiptResponse(
            instruction=instruction,
            address=str(result.address),
            author=author_response(result.address, result.record),
        )
    return ReceiptResponse(
        instruction=instruction,
        address=str(result.address),
        package=package_response(result.address, result.record),
    )


@router.post(
    "",
    response_model=ReceiptResponse,
    summary="Submit a signed transaction",
)
async def submit_transaction(body: TransactionRequest, reg: Registry = Depends(get_registry)):
    """Execute ``publish_package``, ``register_author``, or ``unregister_author``.

    The transaction must carry a valid signature from its authority.
    ``register_author`` additionally needs the oracle's signature; most
    clients get it through ``POST /api/oracle/github`` instead.
    """
    tx = parse_transaction(body)
    try:
        result = reg.execute(tx)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
    return receipt_response(tx.instruction, result)
