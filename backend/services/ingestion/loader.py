"""
Loader / freshness coordinator.

Produces one consistent ArchiveSnapshot by trying named strategies in order;
the first one that returns a snapshot wins:

    1. cache        cached payloads whose version matches and that the server
                    confirms are current
    2. network      fresh download, written back to the cache
    3. stale_cache  cached payloads regardless of version or freshness
    4. rebuild      in-memory index built from whatever transcripts are
                    obtainable; never persisted
"""
import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from core.config import (
    CACHE_TTL_HOURS,
    INDEX_VERSION,
    SEARCH_INDEX_URLS,
    TRANSCRIPT_INDEX_URLS,
)
from core.errors import ArchiveError, CacheError, FetchError, LoadExhaustedError, PayloadParseError
from models.archive_models import ArchiveSnapshot, LoadPath
from services.ingestion.cache_manager import BulkStore, MetadataStore
from services.ingestion.payload_fetcher import FetchedPayload, PayloadFetcher
from services.ingestion.transcript_source import TranscriptSource
from services.processing.index_builder import IndexBuilder, index_builder, utc_now_iso
from services.processing.payload import assemble_payloads, decode_payload, parse_transcripts

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PayloadSpec:
    """One bulk payload: its cache key and the mirror URLs to fetch it from."""
    name: str
    urls: Tuple[str, ...]


DEFAULT_PAYLOADS = (
    PayloadSpec("search-index", tuple(SEARCH_INDEX_URLS)),
    PayloadSpec("transcript-index", tuple(TRANSCRIPT_INDEX_URLS)),
)


@dataclass
class LoadContext:
    """Scratch state shared by the strategies of a single load() run."""
    fetched: Dict[str, FetchedPayload] = field(default_factory=dict)
    cached: Dict[str, Optional[Dict[str, Any]]] = field(default_factory=dict)
    attempts: Dict[str, str] = field(default_factory=dict)


Strategy = Callable[[LoadContext], Awaitable[Optional[ArchiveSnapshot]]]


def _parse_iso(value: Any) -> Optional[datetime]:
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class ArchiveLoader:
    """Runs the load strategies against injected stores, fetcher and transcript source."""

    def __init__(
        self,
        bulk_store: BulkStore,
        metadata_store: MetadataStore,
        fetcher: PayloadFetcher,
        payloads: Sequence[PayloadSpec] = DEFAULT_PAYLOADS,
        transcript_source: Optional[TranscriptSource] = None,
        builder: IndexBuilder = index_builder,
        expected_version: str = INDEX_VERSION,
        cache_ttl_hours: float = CACHE_TTL_HOURS,
    ):
        if not payloads:
            raise ValueError("At least one payload is required")
        self.bulk_store = bulk_store
        self.metadata_store = metadata_store
        self.fetcher = fetcher
        self.payloads = tuple(payloads)
        self.transcript_source = transcript_source
        self.builder = builder
        self.expected_version = expected_version
        self.cache_ttl = timedelta(hours=cache_ttl_hours)

        self.strategies: List[Tuple[str, Strategy]] = [
            ("cache", self.load_from_cache),
            ("network", self.load_from_network),
            ("stale_cache", self.load_from_stale_cache),
            ("rebuild", self.rebuild_from_transcripts),
        ]

    async def load(self) -> ArchiveSnapshot:
        """
        Try each strategy in order and return the first snapshot produced.

        Raises:
            LoadExhaustedError: if no strategy produced a snapshot.
        """
        ctx = LoadContext()
        start = time.monotonic()

        for name, strategy in self.strategies:
            try:
                snapshot = await strategy(ctx)
            except ArchiveError as e:
                logger.warning("Load strategy %s failed: %s", name, e)
                ctx.attempts[name] = str(e)
                continue

            if snapshot is not None:
                logger.info(
                    "Archive loaded via %s in %dms: v%s, %d transcripts, %d words",
                    snapshot.load_path.value, (time.monotonic() - start) * 1000,
                    snapshot.metadata.version, snapshot.metadata.total_documents,
                    snapshot.metadata.total_words,
                )
                return snapshot
            ctx.attempts.setdefault(name, "no result")

        logger.error("All load strategies failed: %s", ctx.attempts)
        raise LoadExhaustedError("Search index unavailable and no fallback succeeded", attempts=ctx.attempts)

    async def clear_cache(self) -> None:
        """Remove every cached payload and metadata record this loader owns."""
        for spec in self.payloads:
            await self._invalidate(spec.name)
        logger.info("Archive cache cleared")

    # ===== STRATEGIES =====

    async def load_from_cache(self, ctx: LoadContext) -> Optional[ArchiveSnapshot]:
        records = {}
        outdated = []
        for spec in self.payloads:
            record = self.metadata_store.get(spec.name)
            if record is None:
                ctx.attempts["cache"] = f"no cached metadata for {spec.name}"
                return None
            if record.get("version") != self.expected_version:
                outdated.append((spec.name, record.get("version")))
            records[spec.name] = record

        if outdated:
            for name, version in outdated:
                logger.info("Cached %s is v%s, expected v%s; invalidating", name, version, self.expected_version)
                await self._invalidate(name)
            ctx.attempts["cache"] = "version mismatch"
            return None

        for spec in self.payloads:
            if not await self._is_fresh(spec, records[spec.name]):
                logger.info("Cached %s is outdated, will fetch from server", spec.name)
                ctx.attempts["cache"] = f"{spec.name} outdated"
                return None

        payloads = []
        for spec in self.payloads:
            data = await self._cached_payload(ctx, spec.name)
            if data is None:
                raise CacheError(f"Metadata present but payload missing or corrupt for {spec.name}")
            payloads.append(data)

        store, index, metadata = assemble_payloads(
            payloads, source_last_modified=records[self.payloads[0].name].get("lastModified")
        )
        return self._snapshot(store, index, metadata, LoadPath.CACHE_HIT)

    async def load_from_network(self, ctx: LoadContext) -> Optional[ArchiveSnapshot]:
        results = await asyncio.gather(
            *(self.fetcher.fetch(spec.name, list(spec.urls)) for spec in self.payloads),
            return_exceptions=True,
        )
        failures = []
        for spec, result in zip(self.payloads, results):
            if isinstance(result, FetchError):
                failures.append(str(result))
            elif isinstance(result, BaseException):
                raise result
            else:
                ctx.fetched[spec.name] = result
        if failures:
            raise FetchError("; ".join(failures))

        fetched = [ctx.fetched[spec.name] for spec in self.payloads]
        store, index, metadata = assemble_payloads(
            [payload.data for payload in fetched], source_last_modified=fetched[0].last_modified
        )
        if metadata.version != self.expected_version:
            logger.warning("Server payload is v%s, expected v%s", metadata.version, self.expected_version)

        for payload in fetched:
            await self._persist(payload, metadata.total_documents, metadata.total_words)

        return self._snapshot(store, index, metadata, LoadPath.NETWORK_REFRESH)

    async def load_from_stale_cache(self, ctx: LoadContext) -> Optional[ArchiveSnapshot]:
        payloads = []
        for spec in self.payloads:
            data = await self._cached_payload(ctx, spec.name)
            if data is None:
                ctx.attempts["stale_cache"] = f"no cached {spec.name}"
                return None
            payloads.append(data)

        store, index, metadata = assemble_payloads(payloads)
        logger.warning("Using stale cached archive v%s due to server error", metadata.version)
        return self._snapshot(store, index, metadata, LoadPath.STALE_FALLBACK)

    async def rebuild_from_transcripts(self, ctx: LoadContext) -> Optional[ArchiveSnapshot]:
        transcripts = await self._recoverable_transcripts(ctx)
        if not transcripts:
            ctx.attempts["rebuild"] = "no transcripts obtainable"
            return None

        logger.info("Rebuilding search index from %d transcripts", len(transcripts))
        result = await self.builder.build_archive_async(transcripts)
        if len(result.store) == 0:
            ctx.attempts["rebuild"] = "no valid transcripts"
            return None
        return self._snapshot(result.store, result.index, result.metadata, LoadPath.REBUILT, persisted=False)

    # ===== HELPERS =====

    async def _recoverable_transcripts(self, ctx: LoadContext) -> List[Any]:
        """Transcripts from this run's downloads, then the cache, then the transcript source."""
        candidates = [payload.data for payload in ctx.fetched.values()]
        for spec in self.payloads:
            data = await self._cached_payload(ctx, spec.name)
            if data is not None:
                candidates.append(data)

        for data in candidates:
            try:
                documents = parse_transcripts(data)
            except PayloadParseError as e:
                logger.warning("Ignoring unusable transcript payload: %s", e)
                continue
            if documents:
                return documents

        if self.transcript_source is None:
            return []
        return await self.transcript_source.load_all()

    async def _is_fresh(self, spec: PayloadSpec, record: Dict[str, Any]) -> bool:
        cached_at = _parse_iso(record.get("cachedAt"))
        if cached_at is None:
            return False

        probe = await self.fetcher.probe(list(spec.urls))
        if not probe.reachable:
            # Server unreachable: keep using the cache
            return True
        if probe.last_modified is not None:
            return probe.last_modified <= cached_at
        return datetime.now(timezone.utc) - cached_at < self.cache_ttl

    async def _cached_payload(self, ctx: LoadContext, name: str) -> Optional[Dict[str, Any]]:
        if name in ctx.cached:
            return ctx.cached[name]
        data = None
        entry = await self.bulk_store.get(name)
        if entry is not None:
            try:
                data = decode_payload(entry.payload)
            except PayloadParseError as e:
                logger.warning("Cached %s is corrupt, ignoring: %s", name, e)
        ctx.cached[name] = data
        return data

    async def _persist(self, payload: FetchedPayload, total_documents: int, total_words: int) -> None:
        # Drop the old record first so metadata never describes a payload it doesn't match
        self.metadata_store.delete(payload.name)
        if not await self.bulk_store.put(payload.name, payload.raw):
            logger.warning("Could not cache %s; continuing without cache", payload.name)
            return
        self.metadata_store.set(payload.name, {
            "version": payload.data.get("version"),
            "generatedAt": payload.data.get("generatedAt"),
            "cachedAt": utc_now_iso(),
            "lastModified": payload.last_modified,
            "totalDocuments": total_documents,
            "totalWords": total_words,
        })

    async def _invalidate(self, name: str) -> None:
        self.metadata_store.delete(name)
        await self.bulk_store.invalidate(name)

    @staticmethod
    def _snapshot(store, index, metadata, load_path: LoadPath, persisted: bool = True) -> ArchiveSnapshot:
        return ArchiveSnapshot(
            store=store,
            index=index,
            metadata=metadata,
            load_path=load_path,
            loaded_at=utc_now_iso(),
            persisted=persisted,
        )
