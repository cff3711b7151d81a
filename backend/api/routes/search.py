"""
Search API routes.
"""
from fastapi import APIRouter, Depends, HTTPException, Query

from api.dependencies import get_archive_service
from api.models.responses import SearchResponse, SearchResultResponse, PanelMatchResponse
from core.archive import ArchiveSearchService
from core.config import DEFAULT_SEARCH_LIMIT, MAX_SEARCH_LIMIT
from core.errors import NotReadyError
from models.search_models import SearchMode, SearchOptions

router = APIRouter()


@router.get("", response_model=SearchResponse)
async def search(
    q: str = Query(default="", description="Free-text query"),
    mode: SearchMode = Query(default=SearchMode.ALL, description="all: every word must match; any: at least one"),
    limit: int = Query(default=DEFAULT_SEARCH_LIMIT, ge=1, le=MAX_SEARCH_LIMIT),
    offset: int = Query(default=0, ge=0),
    service: ArchiveSearchService = Depends(get_archive_service),
):
    """Ranked full-text search over the transcripts."""
    try:
        results = service.search(q, SearchOptions(mode=mode, limit=limit, offset=offset))
    except NotReadyError as e:
        raise HTTPException(status_code=503, detail=str(e))

    return SearchResponse(
        query=q,
        mode=mode.value,
        limit=limit,
        offset=offset,
        results=[
            SearchResultResponse(
                date=result.date,
                score=result.score,
                matched_panels=[
                    PanelMatchResponse(
                        panel_index=match.panel_index,
                        dialogue_index=match.dialogue_index,
                        text=match.text,
                        spans=[list(span) for span in match.spans],
                        highlighted=match.highlighted,
                    )
                    for match in result.matched_panels
                ],
            )
            for result in results
        ],
    )
