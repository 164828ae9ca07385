"""
Subscription service module.

Manages rows in `user_subscriptions` and credits each active subscriber
with their plan's monthly coins. The monthly credit can be triggered over
HTTP by an external cron, or run in-process with APScheduler when
MONTHLY_CREDIT_ENABLED is set.
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any, List

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from fetchsub.config import get_settings
from fetchsub.services.coin_service import add_coins, SUBSCRIPTION_TIERS
from fetchsub.services.supabase_service import get_supabase_client
from fetchsub.utils.logging_utils import get_request_logger


ACTIVE = "active"
CANCELLED = "cancelled"

JOB_ID = "monthly_subscription_credit"

_scheduler: Optional[BackgroundScheduler] = None
_last_run_time: Optional[datetime] = None
_last_run_summary: Optional[Dict[str, int]] = None


def initialize_user_subscription(user_id: str, plan_name: str, subscription_id: Optional[str] = None) -> Dict[str, Any]:
    """Create or replace the user's subscription as active."""
    supabase = get_supabase_client()
    now = datetime.now(timezone.utc).isoformat()
    row = {
        "user_id": user_id,
        "plan_name": plan_name,
        "subscription_id": subscription_id,
        "status": ACTIVE,
        "updated_at": now,
    }
    result = supabase.table("user_subscriptions").upsert(row, on_conflict="user_id").execute()
    return result.data[0] if result.data else row


def get_user_subscription(user_id: str) -> Optional[Dict[str, Any]]:
    supabase = get_supabase_client()
    result = supabase.table("user_subscriptions").select("*").eq("user_id", user_id).execute()
    return result.data[0] if result.data else None


def cancel_user_subscription(user_id: str) -> bool:
    """Mark the subscription cancelled. Returns False if the user had none."""
    supabase = get_supabase_client()
    result = (
        supabase.table("user_subscriptions")
        .update({"status": CANCELLED, "updated_at": datetime.now(timezone.utc).isoformat()})
        .eq("user_id", user_id)
        .execute()
    )
    return bool(result.data)


def get_plan_coins() -> Dict[str, int]:
    """
    Monthly coins per plan name from `pricing_plans`, keyed as stored.
    Built-in tier amounts are used for plans the table does not list.
    """
    supabase = get_supabase_client()
    result = supabase.table("pricing_plans").select("name, monthly_coins").execute()
    plans = {name: tier["monthly_coins"] for name, tier in SUBSCRIPTION_TIERS.items()}
    for plan in result.data or []:
        plans[plan["name"]] = plan.get("monthly_coins") or 0
    return plans


def _credited_this_month(last_payment_date: Optional[str], now: datetime) -> bool:
    if not last_payment_date:
        return False
    try:
        paid = datetime.fromisoformat(last_payment_date.replace("Z", "+00:00"))
    except ValueError:
        return False
    return paid.year == now.year and paid.month == now.month


def run_monthly_credit(now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Credit every active subscriber once per calendar month.

    Each subscriber ends up credited, skipped (already credited this month,
    or a plan worth zero coins), failed, or error. One subscriber failing
    does not stop the others.
    """
    global _last_run_time, _last_run_summary
    now = now or datetime.now(timezone.utc)
    log = get_request_logger("monthly-credit")

    supabase = get_supabase_client()
    subscribers = (
        supabase.table("user_subscriptions")
        .select("user_id, plan_name, subscription_id, last_payment_date")
        .eq("status", ACTIVE)
        .execute()
    ).data or []
    plan_coins = get_plan_coins()

    log.info(f"Monthly credit: {len(subscribers)} active subscribers")
    results: List[Dict[str, Any]] = []

    for subscriber in subscribers:
        user_id = subscriber["user_id"]
        plan = subscriber.get("plan_name")
        try:
            if _credited_this_month(subscriber.get("last_payment_date"), now):
                results.append({"user_id": user_id, "plan": plan, "status": "skipped",
                                "reason": "Already credited this month"})
                continue

            coins = plan_coins.get(plan) or plan_coins.get((plan or "").upper()) or 0
            if coins <= 0:
                results.append({"user_id": user_id, "plan": plan, "status": "skipped",
                                "reason": "Invalid plan or zero coins"})
                continue

            try:
                add_coins(user_id, coins, "SUBSCRIPTION", f"Monthly {plan} subscription coins",
                          subscription_tier=plan)
            except Exception as e:
                log.warning(f"Failed to credit {user_id}: {str(e)}")
                results.append({"user_id": user_id, "plan": plan, "status": "failed",
                                "reason": f"Failed to add coins: {str(e)}"})
                continue

            supabase.table("user_subscriptions").update(
                {"last_payment_date": now.isoformat()}
            ).eq("user_id", user_id).execute()
            results.append({"user_id": user_id, "plan": plan, "status": "credited", "coins": coins})

        except Exception as e:
            log.error(f"Error processing subscriber {user_id}: {str(e)}")
            results.append({"user_id": user_id, "plan": plan, "status": "error", "reason": str(e)})

    summary = {
        "processed": len(results),
        "credited": sum(1 for r in results if r["status"] == "credited"),
        "skipped": sum(1 for r in results if r["status"] == "skipped"),
        "failed": sum(1 for r in results if r["status"] in ("failed", "error")),
    }
    _last_run_time = now
    _last_run_summary = summary
    log.info(f"Monthly credit finished: {summary}")
    return {**summary, "results": results}


def _scheduled_monthly_credit():
    try:
        run_monthly_credit()
    except Exception as e:
        get_request_logger("monthly-credit").error(f"Scheduled monthly credit failed: {str(e)}")


def start_scheduler():
    """Schedule the monthly credit for 00:05 UTC on the 1st, if enabled."""
    global _scheduler

    if not get_settings().monthly_credit_enabled:
        print("INFO: Monthly credit scheduler disabled (MONTHLY_CREDIT_ENABLED not set)")
        return
    if _scheduler is not None and _scheduler.running:
        return

    _scheduler = BackgroundScheduler(timezone="UTC")
    _scheduler.add_job(
        _scheduled_monthly_credit,
        trigger=CronTrigger(day=1, hour=0, minute=5, timezone="UTC"),
        id=JOB_ID,
        name="Monthly subscription coin credit",
        replace_existing=True,
    )
    _scheduler.start()

    next_run = _scheduler.get_job(JOB_ID).next_run_time
    print(f"INFO: Monthly credit scheduler started, next run at {next_run}")


def stop_scheduler():
    global _scheduler
    if _scheduler is None:
        return
    print("INFO: Stopping monthly credit scheduler...")
    _scheduler.shutdown(wait=False)
    _scheduler = None


def get_scheduler_status() -> Dict[str, Any]:
    job = _scheduler.get_job(JOB_ID) if _scheduler else None
    return {
        "running": bool(_scheduler and _scheduler.running),
        "next_run": job.next_run_time.isoformat() if job and job.next_run_time else None,
        "last_run": _last_run_time.isoformat() if _last_run_time else None,
        "last_summary": _last_run_summary,
    }
