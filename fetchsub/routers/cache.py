"""
Cache router module for managing cached subtitles and temporary files.

This module provides endpoints for:
- Cleaning up expired temporary files and clearing the in-memory caches
- Reporting cache sizes
"""

from fastapi import APIRouter, Depends, Query

from fetchsub.dependencies import verify_api_key
from fetchsub.config import CACHE_TTL_HOURS
from fetchsub.services.cache_service import cleanup_cache, clear_memory_caches, memory_cache_stats


router = APIRouter(tags=["Cache"])


@router.delete("/cache/cleanup")
async def cache_cleanup(
    memory: bool = Query(False, description="Also clear cached transcripts and remembered failures"),
    _: bool = Depends(verify_api_key)
):
    """
    Delete temporary files older than CACHE_TTL_HOURS.

    Use cases:
    - Cron job target: 0 * * * * curl -X DELETE .../cache/cleanup
    - Forcing a retry of videos that recently failed (memory=true)
    """
    result = cleanup_cache()
    response = {
        "message": f"Cleanup complete. Deleted {result['total_deleted']} entries.",
        "deleted": result["deleted"],
        "freed_bytes": result["freed_bytes"],
        "ttl_hours": CACHE_TTL_HOURS
    }
    if memory:
        response["cleared"] = clear_memory_caches()
    return response


@router.get("/cache/stats")
async def cache_stats(_: bool = Depends(verify_api_key)):
    return memory_cache_stats()
