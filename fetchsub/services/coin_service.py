"""
Coin service module for the per-user coin ledger.

Balances live in the Supabase `user_coins` table and every change is
recorded in `coin_transactions`. Spending goes through the
`spend_user_coins` database function, which updates the balance and writes
the transaction row in one call and is not blocked by row-level security.
When that function is not installed, a compare-and-set update on the
balance column is used instead, retried a few times if another request
changed the balance in between.

A balance never goes below zero: every spend checks the current balance
first and the database function re-checks it.
"""

import math
import random
import string
import time
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List, Tuple

from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from fetchsub.config import WELCOME_BONUS_COINS
from fetchsub.exceptions import CoinRecordError, InsufficientCoinsError
from fetchsub.services.supabase_service import get_supabase_client
from fetchsub.utils.csv_utils import count_youtube_lines
from fetchsub.utils.url_utils import is_playlist_or_channel_url


OPERATION_COSTS = {
    "SINGLE_SUBTITLE": 1,
    "BATCH_SUBTITLE": 0.5,
}

SUBSCRIPTION_TIERS = {
    "FREE": {"monthly_coins": 50, "price": 0},
    "BASIC": {"monthly_coins": 200, "price": 4.99},
    "STANDARD": {"monthly_coins": 500, "price": 9.99},
    "PREMIUM": {"monthly_coins": 1000, "price": 19.99},
}

# Playlist and channel sizes are unknown before listing them
ESTIMATED_BATCH_VIDEOS = 5

TRANSACTION_TYPES = ("EARNED", "SPENT", "SUBSCRIPTION", "REFUNDED")

SPEND_RPC = "spend_user_coins"
# PostgREST: function not found in schema cache
MISSING_FUNCTION_CODE = "PGRST202"

BALANCE_UPDATE_ATTEMPTS = 3


class _BalanceChanged(Exception):
    """The balance moved between read and conditional update."""


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _transaction_id(prefix: str) -> str:
    suffix = ''.join(random.choices(string.ascii_lowercase + string.digits, k=6))
    return f"{prefix}_{int(time.time() * 1000)}_{suffix}"


def _cost(video_count: int, format_count: int, batch: bool) -> int:
    if batch:
        cost = video_count * OPERATION_COSTS["BATCH_SUBTITLE"] * format_count
    else:
        cost = OPERATION_COSTS["SINGLE_SUBTITLE"] * format_count
    return max(math.ceil(cost), 1)


def calculate_estimated_cost(
    input_type: str,
    url: Optional[str] = None,
    csv_content: Optional[str] = None,
    format_count: int = 1,
) -> int:
    """
    Up-front cost of a request, before any video is listed.

    Playlist and channel URLs are assumed to hold ESTIMATED_BATCH_VIDEOS
    videos; a CSV counts its lines that mention a YouTube URL. Batches use
    the batch rate per subtitle file. Never less than 1.
    """
    format_count = max(format_count, 1)
    if input_type == "file":
        return _cost(count_youtube_lines(csv_content or ""), format_count, batch=True)
    if url and is_playlist_or_channel_url(url):
        return _cost(ESTIMATED_BATCH_VIDEOS, format_count, batch=True)
    return _cost(1, format_count, batch=False)


def calculate_processing_cost(input_type: str, processed_videos: int, format_count: int = 1) -> int:
    """
    Actual cost once processing is done. Nothing is charged when no video
    produced subtitles.
    """
    if processed_videos <= 0:
        return 0
    batch = input_type == "file" or processed_videos > 1
    return _cost(processed_videos, max(format_count, 1), batch=batch)


def get_user_coins(user_id: str) -> Optional[Dict[str, Any]]:
    """Return the user's user_coins row, or None if it does not exist yet."""
    supabase = get_supabase_client()
    try:
        result = supabase.table("user_coins").select("*").eq("user_id", user_id).execute()
    except Exception as e:
        raise CoinRecordError(f"Failed to read coin balance: {str(e)}")
    return result.data[0] if result.data else None


def record_transaction(
    user_id: str,
    amount: float,
    transaction_type: str,
    description: str = "",
    transaction_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Insert a coin_transactions row and return it."""
    if transaction_type not in TRANSACTION_TYPES:
        raise ValueError(f"Unknown transaction type: {transaction_type}")

    supabase = get_supabase_client()
    row = {
        "user_id": user_id,
        "transaction_id": transaction_id or _transaction_id(transaction_type.lower()),
        "type": transaction_type,
        "amount": amount,
        "description": description,
        "created_at": _now_iso(),
    }
    try:
        result = supabase.table("coin_transactions").insert(row).execute()
    except Exception as e:
        raise CoinRecordError(f"Failed to record transaction: {str(e)}")
    return result.data[0] if result.data else row


def initialize_user_coins(user_id: str) -> Dict[str, Any]:
    """
    Return the user's coin row, creating it with the welcome bonus if missing.

    Safe to call repeatedly: an existing row is returned untouched and the
    bonus is granted only when the row is created here.
    """
    existing = get_user_coins(user_id)
    if existing:
        return existing

    supabase = get_supabase_client()
    row = {
        "user_id": user_id,
        "balance": WELCOME_BONUS_COINS,
        "total_earned": WELCOME_BONUS_COINS,
        "total_spent": 0,
        "subscription_tier": "FREE",
        "last_coin_refresh": _now_iso(),
    }
    try:
        result = supabase.table("user_coins").insert(row).execute()
    except Exception as e:
        # A concurrent request may have created the row first
        existing = get_user_coins(user_id)
        if existing:
            return existing
        raise CoinRecordError(f"Failed to create coin balance: {str(e)}")

    print(f"INFO: Created coin balance for user {user_id} with {WELCOME_BONUS_COINS} welcome coins")
    record_transaction(
        user_id,
        WELCOME_BONUS_COINS,
        "EARNED",
        "Welcome bonus",
        transaction_id=f"welcome_{int(time.time() * 1000)}",
    )
    return result.data[0] if result.data else row


def check_balance(user_id: str, amount: float) -> Tuple[bool, float]:
    """Return (has_enough, balance). Creates the coin row if missing."""
    row = initialize_user_coins(user_id)
    balance = float(row.get("balance") or 0)
    return balance >= amount, balance


def _compare_and_set(user_id: str, row: Dict[str, Any], values: Dict[str, Any]) -> None:
    """
    Update the user_coins row only if its balance still equals the one read.

    Raises:
        _BalanceChanged: If no row matched
        CoinRecordError: If the database rejected the update
    """
    supabase = get_supabase_client()
    try:
        result = (
            supabase.table("user_coins")
            .update(values)
            .eq("user_id", user_id)
            .eq("balance", row.get("balance"))
            .execute()
        )
    except Exception as e:
        raise CoinRecordError(f"Failed to update coin balance: {str(e)}")
    if not result.data:
        raise _BalanceChanged()


def _balance_retries() -> Retrying:
    return Retrying(
        stop=stop_after_attempt(BALANCE_UPDATE_ATTEMPTS),
        wait=wait_exponential(multiplier=0.1, max=1),
        retry=retry_if_exception_type(_BalanceChanged),
        reraise=True,
    )


def _spend_with_compare_and_set(user_id: str, amount: float) -> float:
    """
    Subtract `amount` with a conditional update on the balance read.

    Retries when the balance changed in between; raises
    InsufficientCoinsError if the fresh balance no longer covers the amount
    and CoinRecordError if it kept changing.
    """
    try:
        for attempt in _balance_retries():
            with attempt:
                row = get_user_coins(user_id)
                if row is None:
                    raise CoinRecordError(f"No coin balance for user {user_id}")
                balance = float(row.get("balance") or 0)
                if balance < amount:
                    raise InsufficientCoinsError(amount, balance)

                new_balance = balance - amount
                _compare_and_set(user_id, row, {
                    "balance": new_balance,
                    "total_spent": float(row.get("total_spent") or 0) + amount,
                })
    except _BalanceChanged:
        raise CoinRecordError("Balance kept changing; spend not applied")
    return new_balance


def deduct_coins(user_id: str, amount: float, description: str = "Subtitle extraction") -> Dict[str, Any]:
    """
    Spend coins from a user's balance.

    Returns:
        Dictionary with remaining_balance, deducted and transaction_id

    Raises:
        ValueError: If amount is not positive
        InsufficientCoinsError: If the balance does not cover the amount
        CoinRecordError: If the database rejected the spend
    """
    if amount <= 0:
        raise ValueError("Amount must be positive")

    has_enough, balance = check_balance(user_id, amount)
    if not has_enough:
        raise InsufficientCoinsError(amount, balance)

    supabase = get_supabase_client()
    transaction_id = _transaction_id("deduct")

    try:
        supabase.rpc(SPEND_RPC, {
            "p_user_id": user_id,
            "p_amount": amount,
            "p_transaction_id": transaction_id,
            "p_description": description,
            "p_created_at": _now_iso(),
        }).execute()
    except Exception as e:
        code = getattr(e, "code", None)
        message = getattr(e, "message", None) or str(e)
        if code != MISSING_FUNCTION_CODE:
            if "insufficient" in message.lower():
                raise InsufficientCoinsError(amount, balance)
            raise CoinRecordError(f"Failed to deduct coins: {message}")

        print(f"WARNING: {SPEND_RPC} function missing, using conditional update for user {user_id}")
        remaining = _spend_with_compare_and_set(user_id, amount)
        record_transaction(user_id, amount, "SPENT", description, transaction_id=transaction_id)
    else:
        row = get_user_coins(user_id)
        remaining = float(row["balance"]) if row else balance - amount

    print(f"INFO: Deducted {amount} coins from user {user_id}, remaining {remaining}")
    return {
        "remaining_balance": remaining,
        "deducted": amount,
        "transaction_id": transaction_id,
    }


def add_coins(
    user_id: str,
    amount: float,
    transaction_type: str = "EARNED",
    description: str = "",
    subscription_tier: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Credit coins to a user and record the transaction.

    Uses the same conditional update as spending so concurrent credits and
    spends do not overwrite each other.
    """
    if amount <= 0:
        raise ValueError("Amount must be positive")

    initialize_user_coins(user_id)

    try:
        for attempt in _balance_retries():
            with attempt:
                row = get_user_coins(user_id)
                new_balance = float(row.get("balance") or 0) + amount
                update = {
                    "balance": new_balance,
                    "total_earned": float(row.get("total_earned") or 0) + amount,
                }
                if subscription_tier:
                    update["subscription_tier"] = subscription_tier.upper()
                    update["last_coin_refresh"] = _now_iso()
                _compare_and_set(user_id, row, update)
    except _BalanceChanged:
        raise CoinRecordError("Balance kept changing; credit not applied")

    transaction = record_transaction(user_id, amount, transaction_type, description)
    return {
        "balance": new_balance,
        "added": amount,
        "transaction_id": transaction.get("transaction_id"),
    }


def list_transactions(user_id: str, limit: int = 50) -> List[Dict[str, Any]]:
    """Return the user's transactions, newest first."""
    supabase = get_supabase_client()
    try:
        result = (
            supabase.table("coin_transactions")
            .select("*")
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
    except Exception as e:
        raise CoinRecordError(f"Failed to list transactions: {str(e)}")
    return result.data or []
