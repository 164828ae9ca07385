"""
Health router.

GET /api/health runs a few cheap checks and reports healthy, degraded
(something optional is missing) or unhealthy (extraction cannot work).
"""

import os
import asyncio
from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from fetchsub.config import CACHE_DIR, YTDLP_BINARY, get_settings
from fetchsub.models import HealthResponse
from fetchsub.services import supabase_service
from fetchsub.services.ytdlp_service import get_ytdlp_version

router = APIRouter(prefix="/api", tags=["Health"])


def _check(passed: bool, message: str, critical: bool = False) -> dict:
    return {"status": "pass" if passed else "fail", "message": message, "critical": critical}


@router.get("/health")
async def health():
    settings = get_settings()
    checks = {}

    version = await asyncio.to_thread(get_ytdlp_version)
    checks["ytdlp"] = _check(
        version is not None,
        f"yt-dlp {version}" if version else f"yt-dlp binary not usable at {YTDLP_BINARY}",
        critical=True,
    )

    writable = os.path.isdir(CACHE_DIR) and os.access(CACHE_DIR, os.W_OK)
    checks["cache_dir"] = _check(writable, f"{CACHE_DIR} {'writable' if writable else 'not writable'}", critical=True)

    configured = supabase_service.supabase_client is not None
    checks["supabase"] = _check(configured, "configured" if configured else "not configured, coin ledger disabled")

    missing = [name for name, value in (("API_KEY", settings.api_key), ("CRON_API_KEY", settings.cron_api_key)) if not value]
    checks["environment"] = _check(not missing, "all set" if not missing else f"missing: {', '.join(missing)}")

    failed = [c for c in checks.values() if c["status"] == "fail"]
    if any(c["critical"] for c in failed):
        status = "unhealthy"
    elif failed:
        status = "degraded"
    else:
        status = "healthy"

    body = HealthResponse(
        status=status,
        timestamp=datetime.now(timezone.utc).isoformat(),
        checks=checks,
    )
    return JSONResponse(content=body.model_dump(), status_code=503 if status == "unhealthy" else 200)
