"""
Data models for search queries and results.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Tuple

from core.config import DEFAULT_SEARCH_LIMIT


class SearchMode(str, Enum):
    ALL = "all"  # every query token must appear in the document
    ANY = "any"  # at least one query token must appear


@dataclass(frozen=True)
class SearchOptions:
    mode: SearchMode = SearchMode.ALL
    limit: int = DEFAULT_SEARCH_LIMIT
    offset: int = 0


@dataclass
class PanelMatch:
    """One dialogue line that matched the query."""
    panel_index: int  # Panel number as published
    dialogue_index: int
    text: str
    spans: List[Tuple[int, int]] = field(default_factory=list)  # [start, end) into text
    highlighted: str = ""


@dataclass
class SearchResult:
    date: str
    score: float
    matched_panels: List[PanelMatch] = field(default_factory=list)
