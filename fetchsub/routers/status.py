"""
Processing status router.

GET /api/youtube/processing-status?id=<process_id> reports the progress of
an extraction started by POST /api/youtube/extract.
"""

from fastapi import APIRouter, Query, HTTPException

from fetchsub.models import ProcessingStatusResponse
from fetchsub.services import status_service

router = APIRouter(prefix="/api/youtube", tags=["Status"])


@router.get("/processing-status")
async def processing_status(
    id: str = Query(None, description="Process ID returned by the extract endpoint"),
) -> ProcessingStatusResponse:
    if not id:
        raise HTTPException(status_code=400, detail="Process ID is required")

    status = status_service.get(id)
    if status is None:
        raise HTTPException(status_code=404, detail="Unknown or expired process ID")
    return ProcessingStatusResponse(**status)
