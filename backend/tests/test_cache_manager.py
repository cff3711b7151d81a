"""
Tests for the SQLite-backed cache stores.
"""
import sqlite3
from unittest.mock import patch

import pytest

from core.database import Database
from services.ingestion.cache_manager import (
    InMemoryBulkStore,
    InMemoryMetadataStore,
    SqliteBulkStore,
    SqliteMetadataStore,
)


@pytest.fixture
def db(tmp_path):
    return Database(tmp_path / "cache" / "archive_cache.db")


class TestSqliteBulkStore:
    """Test bulk payload storage."""

    @pytest.mark.asyncio
    async def test_put_and_get(self, db):
        store = SqliteBulkStore(db)

        assert await store.put("search-index", b'{"version":"1.0"}') is True
        entry = await store.get("search-index")

        assert entry.key == "search-index"
        assert entry.payload == b'{"version":"1.0"}'
        assert entry.stored_at.endswith("Z")

    @pytest.mark.asyncio
    async def test_missing_key(self, db):
        assert await SqliteBulkStore(db).get("nothing") is None

    @pytest.mark.asyncio
    async def test_put_replaces_whole_entry(self, db):
        store = SqliteBulkStore(db)

        await store.put("search-index", b"old payload")
        await store.put("search-index", b"new")

        assert (await store.get("search-index")).payload == b"new"
        assert len(db.execute("SELECT key FROM cache_entries")) == 1

    @pytest.mark.asyncio
    async def test_invalidate(self, db):
        store = SqliteBulkStore(db)
        await store.put("search-index", b"payload")

        await store.invalidate("search-index")
        await store.invalidate("never-stored")

        assert await store.get("search-index") is None

    @pytest.mark.asyncio
    async def test_survives_reopen(self, tmp_path):
        path = tmp_path / "archive_cache.db"
        await SqliteBulkStore(Database(path)).put("transcript-index", b"payload")

        entry = await SqliteBulkStore(Database(path)).get("transcript-index")

        assert entry.payload == b"payload"

    @pytest.mark.asyncio
    async def test_write_failure_reports_false(self, db):
        store = SqliteBulkStore(db)

        with patch.object(db, "execute_write", side_effect=sqlite3.OperationalError("database or disk is full")):
            assert await store.put("search-index", b"payload") is False

        assert await store.get("search-index") is None

    @pytest.mark.asyncio
    async def test_read_failure_is_a_miss(self, db):
        store = SqliteBulkStore(db)
        await store.put("search-index", b"payload")

        with patch.object(db, "execute_one", side_effect=sqlite3.DatabaseError("file is not a database")):
            assert await store.get("search-index") is None

    @pytest.mark.asyncio
    async def test_retries_locked_database(self, db):
        store = SqliteBulkStore(db)
        real_write = db.execute_write
        calls = []

        def flaky_write(query, params=None):
            calls.append(query)
            if len(calls) == 1:
                raise sqlite3.OperationalError("database is locked")
            return real_write(query, params)

        with patch.object(db, "execute_write", side_effect=flaky_write), patch("core.retry.time.sleep") as mock_sleep:
            assert await store.put("search-index", b"payload") is True

        assert len(calls) == 2
        mock_sleep.assert_called_once()
        assert (await store.get("search-index")).payload == b"payload"


class TestSqliteMetadataStore:
    """Test freshness record storage."""

    def test_set_get_delete(self, db):
        store = SqliteMetadataStore(db)
        record = {"version": "1.0", "cachedAt": "2024-01-01T00:00:00Z", "totalDocuments": 4}

        assert store.set("search-index", record) is True
        assert store.get("search-index") == record

        store.delete("search-index")
        assert store.get("search-index") is None

    def test_corrupt_record_is_ignored(self, db):
        db.execute_write(
            "INSERT INTO cache_metadata (key, record, updated_at) VALUES (?, ?, ?)",
            ("search-index", "{not json", "2024-01-01T00:00:00Z")
        )

        assert SqliteMetadataStore(db).get("search-index") is None

    def test_non_object_record_is_ignored(self, db):
        db.execute_write(
            "INSERT INTO cache_metadata (key, record, updated_at) VALUES (?, ?, ?)",
            ("search-index", "[1, 2]", "2024-01-01T00:00:00Z")
        )

        assert SqliteMetadataStore(db).get("search-index") is None

    def test_write_failure_reports_false(self, db):
        store = SqliteMetadataStore(db)

        with patch.object(db, "execute_write", side_effect=sqlite3.OperationalError("readonly database")):
            assert store.set("search-index", {"version": "1.0"}) is False


class TestInMemoryStores:

    @pytest.mark.asyncio
    async def test_bulk_store(self):
        store = InMemoryBulkStore()

        await store.put("search-index", b"payload")
        assert (await store.get("search-index")).payload == b"payload"

        await store.invalidate("search-index")
        assert await store.get("search-index") is None

    def test_metadata_store_returns_copies(self):
        store = InMemoryMetadataStore()
        store.set("search-index", {"version": "1.0"})

        store.get("search-index")["version"] = "tampered"

        assert store.get("search-index") == {"version": "1.0"}
