"""Oracle router -- GitHub-verified author registration."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from nsreg.oracle.github import GitHubOracle
from web.backend.app.middleware.registry import get_oracle
from web.backend.app.models.api import OracleRequest, ReceiptResponse
from web.backend.app.routers.transactions import parse_transaction, receipt_response

router = APIRouter(prefix="/api/oracle", tags=["oracle"])


@router.post(
    "/github",
    response_model=ReceiptResponse,
    summary="Register an author verified through their GitHub bio",
)
async def github_oracle(body: OracleRequest, oracle: GitHubOracle = Depends(get_oracle)):
    """Co-sign and submit a ``register_author`` transaction.

    The author signs the transaction first. The oracle fetches the GitHub
    profile named by the transaction, checks that its bio contains
    ``"<bio_marker><authority>"``, then adds its signature and submits.
    """
    tx = parse_transaction(body.transaction)
    try:
        receipt = await oracle.co_sign(tx, username=body.username)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
    return receipt_response(tx.instruction, receipt)
