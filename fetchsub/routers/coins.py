"""
Coins router module.

This module provides endpoints for:
- Reading the caller's coin balance (created with the welcome bonus on first read)
- Estimating the cost of an extraction before running it
- Spending coins directly
"""

from fastapi import APIRouter, Depends, HTTPException, Body

from fetchsub.dependencies import CurrentUser, get_current_user, get_optional_user
from fetchsub.exceptions import CoinError, InsufficientCoinsError
from fetchsub.models import (
    CoinBalanceResponse,
    CoinEstimateRequest,
    CoinEstimateResponse,
    DeductCoinsRequest,
    DeductCoinsResponse,
)
from fetchsub.services import coin_service


router = APIRouter(prefix="/api/coins", tags=["Coins"])


@router.get("/balance")
async def get_balance(user: CurrentUser = Depends(get_current_user)) -> CoinBalanceResponse:
    try:
        row = coin_service.initialize_user_coins(user.id)
    except CoinError as e:
        raise HTTPException(status_code=500, detail=str(e))

    return CoinBalanceResponse(
        user_id=user.id,
        balance=float(row.get("balance") or 0),
        total_earned=float(row.get("total_earned") or 0),
        total_spent=float(row.get("total_spent") or 0),
        subscription_tier=row.get("subscription_tier") or "FREE",
        last_coin_refresh=row.get("last_coin_refresh"),
    )


@router.post("/estimate")
async def estimate_cost(
    request: CoinEstimateRequest = Body(...),
    user: CurrentUser = Depends(get_optional_user),
) -> CoinEstimateResponse:
    """Estimated cost of an extraction; signed-in callers also get their balance."""
    cost = coin_service.calculate_estimated_cost(
        request.input_type, request.url, request.csv_content, request.format_count
    )
    if user.is_anonymous:
        return CoinEstimateResponse(estimated_cost=cost)

    try:
        has_enough, balance = coin_service.check_balance(user.id, cost)
    except CoinError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return CoinEstimateResponse(estimated_cost=cost, balance=balance, has_enough=has_enough)


@router.post("/deduct")
async def deduct(
    request: DeductCoinsRequest = Body(...),
    user: CurrentUser = Depends(get_current_user),
) -> DeductCoinsResponse:
    """
    Spend coins from the caller's balance.

    Raises:
        HTTPException: 402 with require_more_coins when the balance is too low
    """
    try:
        result = coin_service.deduct_coins(user.id, request.amount, request.description)
    except InsufficientCoinsError as e:
        raise HTTPException(
            status_code=402,
            detail={
                "error": "Insufficient coins",
                "require_more_coins": True,
                "required": e.required,
                "balance": e.available,
            }
        )
    except CoinError as e:
        raise HTTPException(status_code=500, detail=str(e))

    return DeductCoinsResponse(
        success=True,
        deducted=result["deducted"],
        remaining_balance=result["remaining_balance"],
        transaction_id=result["transaction_id"],
    )
