"""
Archive search service: owns the loaded snapshot and its lifecycle.

    idle -> loading -> ready -> (reload) -> ready
                    -> failed -> (load again) -> ...

Readers always see one complete snapshot; load() and reload() publish a new
one with a single assignment.
"""
import asyncio
import logging
import sqlite3
from pathlib import Path
from typing import List, Optional

import httpx

from core.config import DB_PATH, TRANSCRIPTS_DIR
from core.database import Database
from core.errors import NotReadyError
from models.archive_models import ArchiveSnapshot, ServiceState, ServiceStatus
from models.index_models import IndexMetadata
from models.search_models import SearchOptions, SearchResult
from models.transcript_models import TranscriptDocument
from services.ingestion.cache_manager import (
    BulkStore,
    InMemoryBulkStore,
    InMemoryMetadataStore,
    MetadataStore,
    SqliteBulkStore,
    SqliteMetadataStore,
)
from services.ingestion.loader import ArchiveLoader
from services.ingestion.payload_fetcher import PayloadFetcher
from services.ingestion.transcript_source import DirectoryTranscriptSource, HttpTranscriptSource
from services.search.query_engine import QueryEngine, query_engine

logger = logging.getLogger(__name__)


class ArchiveSearchService:
    """Process-wide search service. Construct one per process (or per test)."""

    def __init__(self, loader: ArchiveLoader, engine: QueryEngine = query_engine):
        self.loader = loader
        self.engine = engine
        self._snapshot: Optional[ArchiveSnapshot] = None
        self._load_task: Optional[asyncio.Task] = None
        self._reload_task: Optional[asyncio.Task] = None
        self._state = ServiceState.IDLE
        self._error: Optional[str] = None

    # ===== LIFECYCLE =====

    @property
    def is_ready(self) -> bool:
        return self._snapshot is not None

    async def load(self) -> ArchiveSnapshot:
        """
        Load the archive once.

        Concurrent callers share the in-flight load. Abandoning the wait does
        not cancel it; its result is still published.

        Raises:
            LoadExhaustedError: if every load strategy failed.
        """
        if self._snapshot is not None:
            return self._snapshot
        if self._load_task is None:
            self._start_load()
        return await asyncio.shield(self._load_task)

    async def reload(self, clear_cache: bool = False) -> ArchiveSnapshot:
        """
        Load a fresh snapshot while the current one keeps serving, then swap.

        Callers arriving during a reload join it instead of starting another,
        so snapshots are always published in the order their loads started.
        """
        if self._reload_task is None:
            self._reload_task = asyncio.create_task(self._run_reload(clear_cache))
            self._reload_task.add_done_callback(self._on_reload_done)
        return await asyncio.shield(self._reload_task)

    async def clear_cache(self) -> None:
        await self.loader.clear_cache()

    async def aclose(self) -> None:
        await self.loader.fetcher.aclose()

    def _start_load(self) -> asyncio.Task:
        if self._snapshot is None:
            self._state = ServiceState.LOADING
        self._load_task = asyncio.create_task(self._run_load())
        self._load_task.add_done_callback(self._on_load_done)
        return self._load_task

    async def _run_reload(self, clear_cache: bool) -> ArchiveSnapshot:
        if self._load_task is not None:
            # Let the in-flight load finish; its outcome is recorded by the task
            await asyncio.wait({self._load_task})
        if clear_cache:
            await self.loader.clear_cache()
        return await self._start_load()

    def _on_reload_done(self, task: asyncio.Task) -> None:
        if self._reload_task is task:
            self._reload_task = None
        if not task.cancelled():
            # Already logged by the load task
            task.exception()

    async def _run_load(self) -> ArchiveSnapshot:
        try:
            snapshot = await self.loader.load()
        except Exception as e:
            self._error = str(e)
            if self._snapshot is None:
                self._state = ServiceState.FAILED
            raise
        self._snapshot = snapshot
        self._state = ServiceState.READY
        self._error = None
        return snapshot

    def _on_load_done(self, task: asyncio.Task) -> None:
        if self._load_task is task:
            self._load_task = None
        if not task.cancelled() and task.exception() is not None:
            logger.error("Archive load failed: %s", task.exception())

    # ===== QUERIES =====

    def _require_snapshot(self) -> ArchiveSnapshot:
        snapshot = self._snapshot
        if snapshot is None:
            raise NotReadyError()
        return snapshot

    def search(self, query: str, options: Optional[SearchOptions] = None) -> List[SearchResult]:
        """
        Search the loaded archive.

        Raises:
            NotReadyError: if load() has not completed.
        """
        snapshot = self._require_snapshot()
        return self.engine.search(snapshot.store, snapshot.index, query, options)

    def get_transcript(self, date: str) -> Optional[TranscriptDocument]:
        return self._require_snapshot().store.get(date)

    def has_transcript(self, date: str) -> bool:
        snapshot = self._snapshot
        return snapshot is not None and date in snapshot.store

    def available_dates(self) -> List[str]:
        return self._require_snapshot().store.dates()

    def stats(self) -> IndexMetadata:
        """Corpus statistics and provenance of the loaded index."""
        return self._require_snapshot().metadata

    def status(self) -> ServiceStatus:
        snapshot = self._snapshot
        if snapshot is None:
            return ServiceStatus(state=self._state, error=self._error)
        return ServiceStatus(
            state=self._state,
            load_path=snapshot.load_path,
            version=snapshot.metadata.version,
            generated_at=snapshot.metadata.generated_at,
            total_documents=snapshot.metadata.total_documents,
            total_words=snapshot.metadata.total_words,
            loaded_at=snapshot.loaded_at,
            persisted=snapshot.persisted,
            error=self._error,
        )


def create_archive_service(
    db_path: Path = DB_PATH,
    client: Optional[httpx.AsyncClient] = None,
    transcripts_dir: Optional[str] = TRANSCRIPTS_DIR,
) -> ArchiveSearchService:
    """
    Wire the default SQLite cache, HTTP fetcher and transcript source.

    An unusable database falls back to in-memory stores so the archive can
    still be loaded from the network or rebuilt.
    """
    bulk_store: BulkStore
    metadata_store: MetadataStore
    try:
        db = Database(db_path)
    except (sqlite3.Error, OSError) as e:
        logger.warning("Cache database %s unavailable, caching in memory only: %s", db_path, e)
        bulk_store, metadata_store = InMemoryBulkStore(), InMemoryMetadataStore()
    else:
        bulk_store, metadata_store = SqliteBulkStore(db), SqliteMetadataStore(db)

    fetcher = PayloadFetcher(client=client)
    if transcripts_dir:
        source = DirectoryTranscriptSource(Path(transcripts_dir))
    else:
        source = HttpTranscriptSource(fetcher)
    loader = ArchiveLoader(
        bulk_store=bulk_store,
        metadata_store=metadata_store,
        fetcher=fetcher,
        transcript_source=source,
    )
    return ArchiveSearchService(loader)
