"""
Extract router module.

Provides the subtitle extraction endpoints:
- POST /api/youtube/extract: Video, playlist, channel or CSV extraction, charged in coins
- GET /api/youtube/extract: Quick single-video extraction in one format, free
"""

import asyncio
import math

from fastapi import APIRouter, Query, HTTPException, Depends, Body

from fetchsub.dependencies import CurrentUser, get_optional_user
from fetchsub.exceptions import CoinError, InsufficientCoinsError
from fetchsub.models import ExtractRequest, ExtractResponse, SubtitleResult
from fetchsub.services import coin_service, status_service
from fetchsub.services.extraction_service import (
    compute_processing_stats,
    extract_subtitles,
    process_csv,
    process_youtube_url,
)
from fetchsub.utils.logging_utils import get_request_logger


router = APIRouter(prefix="/api/youtube", tags=["Extract"])


def _charge(user: CurrentUser, cost: int, description: str, logger):
    """
    Deduct the final cost. If the balance dropped below it while the batch
    ran, whatever whole coins remain are taken instead.

    Returns (coins_used, remaining_balance).
    """
    try:
        deduction = coin_service.deduct_coins(user.id, cost, description)
        return cost, deduction["remaining_balance"]
    except InsufficientCoinsError as e:
        available = math.floor(e.available)
        logger.warning(f"Balance {e.available} below final cost {cost}, charging {available}")
        if available < 1:
            return 0, e.available
        deduction = coin_service.deduct_coins(user.id, available, description)
        return available, deduction["remaining_balance"]


@router.post("/extract")
async def extract(
    request: ExtractRequest = Body(...),
    user: CurrentUser = Depends(get_optional_user),
) -> ExtractResponse:
    """
    Extract subtitles for a YouTube URL or a CSV of URLs.

    Flow:
    1. Estimate the cost and check the balance (402 if it is too low)
    2. Process every video, at most MAX_CONCURRENT_EXTRACTIONS at a time
    3. Charge for the videos that actually produced subtitles

    Anonymous callers (X-Anonymous-User: true) are never charged.
    Progress can be polled at /api/youtube/processing-status?id=<process_id>.
    """
    logger = get_request_logger()

    if request.input_type == "url" and not (request.url or "").strip():
        raise HTTPException(status_code=400, detail="url is required when input_type is 'url'")
    if request.input_type == "file" and not (request.csv_content or "").strip():
        raise HTTPException(status_code=400, detail="csv_content is required when input_type is 'file'")

    formats = [f.strip().upper() for f in request.formats if f.strip()]
    if not formats:
        raise HTTPException(status_code=400, detail="At least one format is required")

    estimate = coin_service.calculate_estimated_cost(
        request.input_type, request.url, request.csv_content, len(formats)
    )
    balance = None

    if not user.is_anonymous:
        try:
            has_enough, balance = coin_service.check_balance(user.id, estimate)
        except CoinError as e:
            raise HTTPException(status_code=500, detail=f"Failed to check coin balance: {str(e)}")
        if not has_enough:
            raise HTTPException(
                status_code=402,
                detail={
                    "error": "Insufficient coins",
                    "require_more_coins": True,
                    "required": estimate,
                    "balance": balance,
                }
            )

    process_id = status_service.start(total=1)
    logger.info(
        f"Extract {request.input_type} for {'anonymous' if user.is_anonymous else user.id}, "
        f"formats={formats}, lang={request.language}, estimate={estimate}, process={process_id}"
    )

    csv_stats = None
    try:
        if request.input_type == "url":
            results = await process_youtube_url(request.url.strip(), formats, request.language, process_id, logger)
        else:
            results, csv_stats = await process_csv(request.csv_content, formats, request.language, process_id, logger)
    except ValueError as e:
        status_service.fail(process_id, str(e))
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        status_service.fail(process_id, str(e))
        logger.error(f"Extraction failed: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error extracting subtitles: {str(e)}")

    stats = compute_processing_stats(results, formats)
    coins_used = 0
    remaining = balance

    if not user.is_anonymous:
        cost = coin_service.calculate_processing_cost(request.input_type, stats.processed_videos, len(formats))
        if cost:
            description = f"Subtitle extraction: {stats.processed_videos} video(s), {len(formats)} format(s)"
            try:
                coins_used, remaining = _charge(user, cost, description, logger)
            except CoinError as e:
                # Subtitles were produced; hand them over and leave the charge for reconciliation
                logger.error(f"Failed to charge {cost} coins to {user.id}: {str(e)}")

    status_service.complete(
        process_id,
        f"Processed {stats.processed_videos} of {stats.total_videos} videos"
    )
    logger.info(f"Extract done: {stats.processed_videos}/{stats.total_videos} videos, {coins_used} coins")

    return ExtractResponse(
        subtitles=results,
        stats=stats,
        coins_used=coins_used,
        remaining_balance=remaining,
        process_id=process_id,
        csv_stats=csv_stats,
    )


@router.get("/extract")
async def extract_single(
    url: str = Query(..., description="YouTube video URL"),
    format: str = Query("SRT", description="Output format: SRT, VTT, TXT, PARAGRAPH, CLEAN_TEXT, JSON, ASS, SMI"),
    lang: str = Query("en", description="Subtitle language code"),
) -> SubtitleResult:
    """
    Quick subtitle fetch for one video in one format.

    Failures to fetch subtitles are returned as a result with `error` set
    rather than an HTTP error.
    """
    logger = get_request_logger()
    try:
        return await asyncio.to_thread(extract_subtitles, url, format, lang, logger)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error extracting subtitles: {str(e)}")
