"""
Subscriptions router module.

This module provides endpoints for:
- The monthly coin credit, called by an external cron with CRON_API_KEY
- Reading the caller's subscription
"""

from fastapi import APIRouter, Depends, HTTPException

from fetchsub.dependencies import CurrentUser, get_current_user, verify_cron_token
from fetchsub.models import MonthlyCreditResponse
from fetchsub.services import subscription_service

router = APIRouter(prefix="/api/subscriptions", tags=["Subscriptions"])


@router.post("/monthly-credit")
async def monthly_credit(_: bool = Depends(verify_cron_token)) -> MonthlyCreditResponse:
    """
    Credit every active subscriber with their plan's monthly coins.

    Safe to call more than once a month: subscribers already credited in
    the current calendar month are skipped.

    Cron example: 5 0 1 * * curl -X POST -H "Authorization: Bearer $CRON_API_KEY" .../api/subscriptions/monthly-credit
    """
    try:
        result = subscription_service.run_monthly_credit()
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Monthly credit failed: {str(e)}")
    return MonthlyCreditResponse(**result)


@router.get("/me")
async def my_subscription(user: CurrentUser = Depends(get_current_user)):
    subscription = subscription_service.get_user_subscription(user.id)
    if subscription is None:
        return {"user_id": user.id, "status": "none", "plan_name": None}
    return subscription
