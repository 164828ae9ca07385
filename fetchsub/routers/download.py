"""
Download router module.

Provides GET /api/youtube/download, which returns one video's subtitles in
the requested format as a file attachment.
"""

import re
import asyncio

from fastapi import APIRouter, Query, HTTPException
from fastapi.responses import Response

from fetchsub.services.extraction_service import extract_video_subtitles
from fetchsub.utils.filename_utils import create_subtitle_filename, encode_content_disposition_filename
from fetchsub.utils.logging_utils import get_request_logger
from fetchsub.utils.subtitle_formats import file_extension, media_type


router = APIRouter(prefix="/api/youtube", tags=["Download"])

VIDEO_ID_PATTERN = re.compile(r'^[A-Za-z0-9_-]{11}$')


@router.get("/download")
async def download_subtitles(
    id: str = Query(..., description="11-character YouTube video ID"),
    format: str = Query("SRT", description="Output format"),
    lang: str = Query("en", description="Subtitle language code"),
):
    """
    Download subtitles for a video as a file.

    Raises:
        HTTPException: 400 for a malformed video ID, 404 if the video has no
            usable subtitles, 500 on unexpected errors
    """
    if not VIDEO_ID_PATTERN.match(id):
        raise HTTPException(status_code=400, detail="Invalid YouTube video ID")

    logger = get_request_logger()
    try:
        result = (await asyncio.to_thread(extract_video_subtitles, id, [format], lang, logger))[0]
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error generating subtitles: {str(e)}")

    if result.error:
        raise HTTPException(
            status_code=404,
            detail={"error": result.error, "notice": result.notice, "id": id}
        )

    filename = create_subtitle_filename(result.video_title, lang, file_extension(format))
    return Response(
        content=result.content,
        media_type=media_type(format),
        headers={"Content-Disposition": encode_content_disposition_filename(filename)}
    )
