"""
Transactions router for the caller's coin ledger entries.
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Body

from fetchsub.dependencies import CurrentUser, get_current_user
from fetchsub.exceptions import CoinError
from fetchsub.models import TransactionCreateRequest, TransactionRecord
from fetchsub.services import coin_service

router = APIRouter(prefix="/api/transactions", tags=["Transactions"])


@router.get("")
async def list_transactions(
    limit: int = Query(50, ge=1, le=500),
    user: CurrentUser = Depends(get_current_user),
) -> List[TransactionRecord]:
    """Caller's transactions, newest first."""
    try:
        rows = coin_service.list_transactions(user.id, limit)
    except CoinError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return [TransactionRecord(**{k: row.get(k) for k in TransactionRecord.model_fields}) for row in rows]


@router.post("", status_code=201)
async def create_transaction(
    request: TransactionCreateRequest = Body(...),
    user: CurrentUser = Depends(get_current_user),
) -> TransactionRecord:
    """
    Record a ledger entry for the caller. The balance itself is not changed;
    use the coins endpoints for that.
    """
    if request.user_id and request.user_id != user.id:
        raise HTTPException(status_code=403, detail="Cannot record transactions for another user")
    if request.amount == 0:
        raise HTTPException(status_code=400, detail="Amount must not be zero")

    try:
        row = coin_service.record_transaction(user.id, request.amount, request.type, request.description)
    except CoinError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return TransactionRecord(**{k: row.get(k) for k in TransactionRecord.model_fields})
