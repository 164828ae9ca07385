"""
Admin router for administrative endpoints.

This module provides endpoints for:
- Activating and cancelling user subscriptions
- Monthly credit scheduler status monitoring
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Body
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from fetchsub.dependencies import verify_api_key
from fetchsub.services import subscription_service

router = APIRouter(prefix="/admin", tags=["Admin"])


class SubscriptionActivateRequest(BaseModel):
    user_id: str
    plan_name: str
    subscription_id: Optional[str] = None


@router.post("/subscriptions")
async def activate_subscription(
    request: SubscriptionActivateRequest = Body(...),
    _: bool = Depends(verify_api_key)
):
    """
    Activate (or switch) a user's subscription plan, e.g. after a payment
    provider webhook. Coins are granted by the next monthly credit run.
    """
    return subscription_service.initialize_user_subscription(
        request.user_id, request.plan_name, request.subscription_id
    )


@router.delete("/subscriptions/{user_id}")
async def cancel_subscription(user_id: str, _: bool = Depends(verify_api_key)):
    if not subscription_service.cancel_user_subscription(user_id):
        raise HTTPException(status_code=404, detail="No subscription for this user")
    return {"user_id": user_id, "status": subscription_service.CANCELLED}


@router.get("/subscription-scheduler/status")
async def get_subscription_scheduler_status(_: bool = Depends(verify_api_key)):
    """
    Get current status of the in-process monthly credit scheduler.

    Returns running state, next scheduled run, and the time and summary
    of the last run.
    """
    status = subscription_service.get_scheduler_status()
    return JSONResponse(content=status, status_code=200)
