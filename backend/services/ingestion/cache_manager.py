"""
Cache layer for bulk payloads and their freshness metadata.

Bulk payloads (megabytes) live in a BulkStore whose operations are awaited and
run off the event loop. Small metadata records live in a synchronous
MetadataStore so freshness can be decided before reading any payload.

Storage failures never propagate: reads report a miss, writes report False.
"""
import asyncio
import json
import logging
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from core.database import Database
from core.retry import retry_on_transient_error

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class CacheEntry:
    """One stored bulk payload."""
    key: str
    payload: bytes
    stored_at: str  # ISO-8601


class BulkStore:
    """Asynchronous durable store for large payloads."""

    async def get(self, key: str) -> Optional[CacheEntry]:
        raise NotImplementedError

    async def put(self, key: str, payload: bytes) -> bool:
        raise NotImplementedError

    async def invalidate(self, key: str) -> None:
        raise NotImplementedError


class MetadataStore:
    """Synchronous key-value store for small freshness records."""

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def set(self, key: str, record: Dict[str, Any]) -> bool:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError


class SqliteBulkStore(BulkStore):
    """BulkStore backed by the cache_entries table; each call runs in a worker thread."""

    def __init__(self, db: Database):
        self.db = db

    async def get(self, key: str) -> Optional[CacheEntry]:
        try:
            return await asyncio.to_thread(self._get, key)
        except sqlite3.Error as e:
            logger.warning("Cache read failed for %s, treating as miss: %s", key, e)
            return None

    async def put(self, key: str, payload: bytes) -> bool:
        try:
            await asyncio.to_thread(self._put, key, payload)
        except sqlite3.Error as e:
            logger.warning("Cache write failed for %s (%d bytes): %s", key, len(payload), e)
            return False
        logger.info("Cached %s (%.2f MB)", key, len(payload) / 1024 / 1024)
        return True

    async def invalidate(self, key: str) -> None:
        try:
            await asyncio.to_thread(self._delete, key)
        except sqlite3.Error as e:
            logger.warning("Cache invalidation failed for %s: %s", key, e)

    def _get(self, key: str) -> Optional[CacheEntry]:
        result = self.db.execute_one(
            "SELECT key, payload, stored_at FROM cache_entries WHERE key = ?",
            (key,)
        )
        if result is None:
            return None
        return CacheEntry(key=result["key"], payload=bytes(result["payload"]), stored_at=result["stored_at"])

    @retry_on_transient_error()
    def _put(self, key: str, payload: bytes) -> None:
        # Single statement in one transaction: readers see the old row or the new one
        self.db.execute_write(
            "INSERT OR REPLACE INTO cache_entries (key, payload, stored_at) VALUES (?, ?, ?)",
            (key, sqlite3.Binary(payload), _now_iso())
        )

    @retry_on_transient_error()
    def _delete(self, key: str) -> None:
        self.db.execute_write("DELETE FROM cache_entries WHERE key = ?", (key,))


class SqliteMetadataStore(MetadataStore):
    """MetadataStore backed by the cache_metadata table."""

    def __init__(self, db: Database):
        self.db = db

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        try:
            result = self.db.execute_one(
                "SELECT record FROM cache_metadata WHERE key = ?",
                (key,)
            )
        except sqlite3.Error as e:
            logger.warning("Metadata read failed for %s: %s", key, e)
            return None
        if result is None:
            return None
        try:
            record = json.loads(result["record"])
        except ValueError as e:
            logger.warning("Corrupted metadata for %s, ignoring: %s", key, e)
            return None
        return record if isinstance(record, dict) else None

    def set(self, key: str, record: Dict[str, Any]) -> bool:
        try:
            self.db.execute_write(
                "INSERT OR REPLACE INTO cache_metadata (key, record, updated_at) VALUES (?, ?, ?)",
                (key, json.dumps(record), _now_iso())
            )
        except sqlite3.Error as e:
            logger.warning("Metadata write failed for %s: %s", key, e)
            return False
        return True

    def delete(self, key: str) -> None:
        try:
            self.db.execute_write("DELETE FROM cache_metadata WHERE key = ?", (key,))
        except sqlite3.Error as e:
            logger.warning("Metadata delete failed for %s: %s", key, e)


class InMemoryBulkStore(BulkStore):
    """Process-local BulkStore, for tests and cache-less deployments."""

    def __init__(self):
        self.entries: Dict[str, CacheEntry] = {}

    async def get(self, key: str) -> Optional[CacheEntry]:
        return self.entries.get(key)

    async def put(self, key: str, payload: bytes) -> bool:
        self.entries[key] = CacheEntry(key=key, payload=bytes(payload), stored_at=_now_iso())
        return True

    async def invalidate(self, key: str) -> None:
        self.entries.pop(key, None)


class InMemoryMetadataStore(MetadataStore):
    """Process-local MetadataStore."""

    def __init__(self):
        self.records: Dict[str, Dict[str, Any]] = {}

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        record = self.records.get(key)
        return dict(record) if record is not None else None

    def set(self, key: str, record: Dict[str, Any]) -> bool:
        self.records[key] = dict(record)
        return True

    def delete(self, key: str) -> None:
        self.records.pop(key, None)
