"""
Pydantic response models for API endpoints.
"""
from pydantic import BaseModel, Field
from typing import List, Optional


class PanelMatchResponse(BaseModel):
    """One matching dialogue line."""
    panel_index: int = Field(..., description="Panel number as published")
    dialogue_index: int
    text: str
    spans: List[List[int]] = Field(default=[], description="[start, end) offsets of matches in text")
    highlighted: str = Field(..., description="HTML-escaped text with <mark> around matches")


class SearchResultResponse(BaseModel):
    """A single ranked search hit."""
    date: str
    score: float
    matched_panels: List[PanelMatchResponse] = []


class SearchResponse(BaseModel):
    """Response model for search."""
    query: str
    mode: str
    limit: int
    offset: int
    results: List[SearchResultResponse] = []


class PanelResponse(BaseModel):
    panel: int
    dialogue: List[str] = []


class TranscriptResponse(BaseModel):
    """Response model for transcript retrieval."""
    date: str
    panels: List[PanelResponse] = []


class DateListResponse(BaseModel):
    total: int
    dates: List[str] = []


class StatusResponse(BaseModel):
    """Readiness and provenance of the loaded archive."""
    state: str = Field(..., description="idle | loading | ready | failed")
    load_path: Optional[str] = Field(default=None, description="cache_hit | network_refresh | stale_fallback | rebuilt")
    version: Optional[str] = None
    generated_at: Optional[str] = None
    total_documents: int = 0
    total_words: int = 0
    loaded_at: Optional[str] = None
    persisted: bool = Field(default=False, description="Whether the loaded archive is also held in the cache")
    error: Optional[str] = None
