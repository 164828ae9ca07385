"""
FastAPI dependency injection functions.

This module provides reusable dependencies for:
- API key authentication for admin and cache endpoints
- Cron token verification for the monthly subscription credit
- Resolving the calling user from a Supabase access token
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Header, HTTPException
from fetchsub.config import get_settings
from fetchsub.services.supabase_service import get_user_from_token


@dataclass
class CurrentUser:
    """Caller identity. Anonymous callers have no id and are never charged."""
    id: Optional[str]
    email: Optional[str] = None
    is_anonymous: bool = False


def verify_api_key(x_api_key: str = Header(None)) -> bool:
    """
    Dependency to verify API key from request header.
    Raises HTTPException 401 if invalid, 500 if not configured.
    """
    settings = get_settings()
    if not settings.api_key:
        raise HTTPException(status_code=500, detail="API key not configured")
    if x_api_key != settings.api_key:
        raise HTTPException(status_code=401, detail="Invalid API Key")
    return True


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the token from "Bearer <token>", or None if the header is missing or malformed."""
    if not authorization:
        return None
    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1].strip():
        return None
    return parts[1].strip()


def verify_cron_token(authorization: str = Header(None)) -> bool:
    """
    Dependency to verify the cron caller of the monthly credit endpoint.

    Expected format: "Bearer <CRON_API_KEY>"

    Raises:
        HTTPException 401 if the header is missing or malformed
        HTTPException 403 if the token is wrong
        HTTPException 500 if CRON_API_KEY not configured
    """
    settings = get_settings()
    if not settings.cron_api_key:
        raise HTTPException(status_code=500, detail="CRON_API_KEY not configured")

    token = _bearer_token(authorization)
    if token is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    if token != settings.cron_api_key:
        raise HTTPException(status_code=403, detail="Invalid API key")
    return True


def get_current_user(authorization: str = Header(None)) -> CurrentUser:
    """
    Dependency resolving "Authorization: Bearer <supabase access token>" to a user.

    Raises:
        HTTPException 401 if the token is missing or invalid
        HTTPException 503 if Supabase is not configured
    """
    token = _bearer_token(authorization)
    if token is None:
        raise HTTPException(status_code=401, detail="Authentication required")

    user = get_user_from_token(token)
    if user is None or not getattr(user, "id", None):
        raise HTTPException(status_code=401, detail="Invalid or expired session")
    return CurrentUser(id=str(user.id), email=getattr(user, "email", None))


def get_optional_user(
    authorization: str = Header(None),
    x_anonymous_user: str = Header(None),
) -> CurrentUser:
    """
    Like get_current_user, but lets "X-Anonymous-User: true" through when
    anonymous use is allowed. A bearer token takes precedence.
    """
    if authorization:
        return get_current_user(authorization)

    if (x_anonymous_user or "").lower() == "true":
        if not get_settings().allow_anonymous:
            raise HTTPException(status_code=401, detail="Anonymous access is disabled")
        return CurrentUser(id=None, is_anonymous=True)

    raise HTTPException(status_code=401, detail="Authentication required")
