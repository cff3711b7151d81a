"""
Data models for loaded archive snapshots and service status.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from models.index_models import IndexMetadata, InvertedIndex
from services.search.transcript_store import TranscriptStore


class LoadPath(str, Enum):
    """Which loader strategy produced a snapshot."""
    CACHE_HIT = "cache_hit"
    NETWORK_REFRESH = "network_refresh"
    STALE_FALLBACK = "stale_fallback"
    REBUILT = "rebuilt"


class ServiceState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class ArchiveSnapshot:
    """A mutually consistent transcript store and index, published as one unit."""
    store: TranscriptStore
    index: InvertedIndex
    metadata: IndexMetadata
    load_path: LoadPath
    loaded_at: str
    persisted: bool = True  # False for rebuilt snapshots that were never cached


@dataclass
class ServiceStatus:
    state: ServiceState
    load_path: Optional[LoadPath] = None
    version: Optional[str] = None
    generated_at: Optional[str] = None
    total_documents: int = 0
    total_words: int = 0
    loaded_at: Optional[str] = None
    persisted: bool = False
    error: Optional[str] = None

    @property
    def is_ready(self) -> bool:
        return self.state == ServiceState.READY
