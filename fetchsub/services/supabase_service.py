"""
Supabase service module for database and auth access.

The service-role client is created once at import when configured. It backs
the coin ledger tables, the subscription tables and access-token checks.
"""

from typing import Optional, Any
from fastapi import HTTPException
from supabase import create_client, Client
from fetchsub.config import SUPABASE_URL, SUPABASE_SERVICE_KEY


# Supabase client initialization (optional, only if configured)
supabase_client: Optional[Client] = None

try:
    if SUPABASE_URL and SUPABASE_SERVICE_KEY:
        supabase_client = create_client(SUPABASE_URL, SUPABASE_SERVICE_KEY)
        print("INFO: Supabase client initialized successfully")
    else:
        print("INFO: Supabase not configured (SUPABASE_URL/SUPABASE_SERVICE_KEY missing) - coin ledger disabled")
except Exception as e:
    print(f"WARNING: Failed to initialize Supabase client: {str(e)}")
    supabase_client = None


def get_supabase_client() -> Client:
    """
    Client used by the coin ledger, subscriptions and session checks.

    Raises:
        HTTPException: 503 if SUPABASE_URL or SUPABASE_SERVICE_KEY is missing
    """
    if supabase_client is None:
        raise HTTPException(
            status_code=503,
            detail="Supabase not configured. Set SUPABASE_URL and SUPABASE_SERVICE_KEY environment variables."
        )
    return supabase_client


def get_user_from_token(token: str) -> Optional[Any]:
    """
    Resolve a Supabase access token (JWT) to its user.

    Returns:
        The Supabase user object, or None if the token is invalid or expired

    Raises:
        HTTPException: 503 if Supabase is not configured
    """
    supabase = get_supabase_client()
    try:
        response = supabase.auth.get_user(token)
    except Exception as e:
        print(f"WARNING: Token validation failed: {str(e)}")
        return None
    return getattr(response, "user", None)
