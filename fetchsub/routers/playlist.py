"""
Playlist router for playlist metadata.

Provides GET /api/youtube/playlist-info, used by clients to show a
playlist's title and size (and so the likely cost) before extracting.
"""

import asyncio

from fastapi import APIRouter, Query, HTTPException

from fetchsub.models import PlaylistInfoResponse
from fetchsub.services.playlist_service import get_playlist_info
from fetchsub.utils.url_utils import parse_youtube_url

router = APIRouter(prefix="/api/youtube", tags=["Playlist"])


@router.get("/playlist-info")
async def playlist_info(
    id: str = Query(None, description="Playlist ID"),
    url: str = Query(None, description="Playlist URL, used when id is not given"),
) -> PlaylistInfoResponse:
    """
    Title and video count of a playlist.

    When YouTube cannot be reached the count is estimated from the playlist
    ID and is_estimate is true; this endpoint does not fail for that.
    """
    playlist_id = (id or "").strip()
    if not playlist_id and url:
        target = parse_youtube_url(url)
        if target and target.kind == "playlist":
            playlist_id = target.id
    if not playlist_id:
        raise HTTPException(status_code=400, detail="Playlist ID is required")

    info = await asyncio.to_thread(get_playlist_info, playlist_id)
    return PlaylistInfoResponse(**info)
