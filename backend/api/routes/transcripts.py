"""
Transcript API routes.
"""
from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_archive_service
from api.models.responses import DateListResponse, PanelResponse, TranscriptResponse
from core.archive import ArchiveSearchService
from core.dates import is_valid_date_key, is_within_archive
from core.errors import NotReadyError

router = APIRouter()


@router.get("", response_model=DateListResponse)
async def list_dates(service: ArchiveSearchService = Depends(get_archive_service)):
    """All dates that have a transcript, ascending."""
    try:
        dates = service.available_dates()
    except NotReadyError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return DateListResponse(total=len(dates), dates=dates)


@router.get("/{date}", response_model=TranscriptResponse)
async def get_transcript(date: str, service: ArchiveSearchService = Depends(get_archive_service)):
    """Fetch the transcript for one date."""
    if not is_valid_date_key(date):
        raise HTTPException(status_code=400, detail="Invalid date format. Use YYYY-MM-DD")
    if not is_within_archive(date):
        raise HTTPException(status_code=404, detail="Date outside the archive range")

    try:
        transcript = service.get_transcript(date)
    except NotReadyError as e:
        raise HTTPException(status_code=503, detail=str(e))

    if transcript is None:
        raise HTTPException(status_code=404, detail="Transcript not found")

    return TranscriptResponse(
        date=transcript.date,
        panels=[PanelResponse(panel=p.index, dialogue=list(p.dialogue)) for p in transcript.panels],
    )
