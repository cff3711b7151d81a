"""
FastAPI dependencies.
"""
from fastapi import HTTPException, Request

from core.archive import ArchiveSearchService


def get_archive_service(request: Request) -> ArchiveSearchService:
    """Return the service created at startup (or injected by tests)."""
    service = getattr(request.app.state, "archive_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Archive service not started")
    return service
