"""
Archive status and administration routes.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_archive_service
from api.models.requests import ReloadRequest
from api.models.responses import StatusResponse
from core.archive import ArchiveSearchService
from core.errors import LoadExhaustedError
from models.archive_models import ServiceStatus

router = APIRouter()


def _status_response(status: ServiceStatus) -> StatusResponse:
    return StatusResponse(
        state=status.state.value,
        load_path=status.load_path.value if status.load_path else None,
        version=status.version,
        generated_at=status.generated_at,
        total_documents=status.total_documents,
        total_words=status.total_words,
        loaded_at=status.loaded_at,
        persisted=status.persisted,
        error=status.error,
    )


@router.get("/status", response_model=StatusResponse)
async def get_status(service: ArchiveSearchService = Depends(get_archive_service)):
    """Readiness of the search index and which load path produced it."""
    return _status_response(service.status())


@router.post("/reload", response_model=StatusResponse)
async def reload_archive(
    request: Optional[ReloadRequest] = None,
    service: ArchiveSearchService = Depends(get_archive_service),
):
    """Reload the archive, swapping it in once complete."""
    clear_cache = request.clear_cache if request else False
    try:
        await service.reload(clear_cache=clear_cache)
    except LoadExhaustedError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return _status_response(service.status())
