"""
Sources of raw per-date transcripts, used when the index must be rebuilt.
"""
import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from core.config import (
    ARCHIVE_END_DATE,
    ARCHIVE_START_DATE,
    TRANSCRIPT_FETCH_BATCH_SIZE,
    TRANSCRIPT_FETCH_DELAY_MS,
    TRANSCRIPTS_BASE_URL,
)
from core.dates import iter_archive_dates
from services.ingestion.payload_fetcher import PayloadFetcher

logger = logging.getLogger(__name__)


def read_transcript_directory(root: Path) -> List[Dict[str, Any]]:
    """
    Read every <root>/<year>/<date>.json file.

    Unreadable files and year directories are skipped with a warning.
    """
    root = Path(root)
    transcripts = []
    if not root.is_dir():
        logger.warning("Transcript directory not found: %s", root)
        return transcripts

    for year_dir in sorted(p for p in root.iterdir() if p.is_dir()):
        loaded = 0
        for path in sorted(year_dir.glob("*.json")):
            try:
                with open(path, "r", encoding="utf-8") as f:
                    transcripts.append(json.load(f))
                loaded += 1
            except (OSError, ValueError) as e:
                logger.warning("Failed to load %s: %s", path.name, e)
        logger.info("%s: %d transcripts loaded", year_dir.name, loaded)

    return transcripts


class TranscriptSource:
    """Supplies raw transcript dictionaries for an index rebuild."""

    async def load_all(self) -> List[Dict[str, Any]]:
        raise NotImplementedError


class DirectoryTranscriptSource(TranscriptSource):
    """Reads transcripts from a local directory tree."""

    def __init__(self, root: Path):
        self.root = Path(root)

    async def load_all(self) -> List[Dict[str, Any]]:
        return await asyncio.to_thread(read_transcript_directory, self.root)


class HttpTranscriptSource(TranscriptSource):
    """Fetches <base_url>/<year>/<date>.json for every date in the archive range."""

    def __init__(
        self,
        fetcher: PayloadFetcher,
        base_url: str = TRANSCRIPTS_BASE_URL,
        start: str = ARCHIVE_START_DATE,
        end: str = ARCHIVE_END_DATE,
        batch_size: int = TRANSCRIPT_FETCH_BATCH_SIZE,
        delay_ms: int = TRANSCRIPT_FETCH_DELAY_MS,
    ):
        self.fetcher = fetcher
        self.base_url = base_url.rstrip("/")
        self.start = start
        self.end = end
        self.batch_size = max(1, batch_size)
        self.delay_ms = delay_ms

    def url_for(self, date: str) -> str:
        return f"{self.base_url}/{date[:4]}/{date}.json"

    async def load_all(self) -> List[Dict[str, Any]]:
        dates = list(iter_archive_dates(self.start, self.end))
        transcripts: List[Dict[str, Any]] = []

        # Small batches with a pause between them to avoid hammering the server
        for i in range(0, len(dates), self.batch_size):
            batch = dates[i:i + self.batch_size]
            results = await asyncio.gather(*(self._load_one(date) for date in batch))
            transcripts.extend(result for result in results if result is not None)
            if self.delay_ms and i + self.batch_size < len(dates):
                await asyncio.sleep(self.delay_ms / 1000)

        logger.info("Fetched %d/%d transcripts from %s", len(transcripts), len(dates), self.base_url)
        return transcripts

    async def _load_one(self, date: str) -> Optional[Dict[str, Any]]:
        data = await self.fetcher.fetch_json(self.url_for(date))
        return data if isinstance(data, dict) else None
