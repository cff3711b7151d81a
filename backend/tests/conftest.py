"""
Shared fixtures for archive search tests.
"""
import json
from typing import Dict, List, Optional, Tuple

import httpx
import pytest

from services.ingestion.cache_manager import InMemoryBulkStore, InMemoryMetadataStore
from services.ingestion.loader import ArchiveLoader, PayloadSpec
from services.ingestion.payload_fetcher import PayloadFetcher
from services.ingestion.transcript_source import TranscriptSource
from services.processing.index_builder import IndexBuilder
from services.processing.payload import encode_payload, search_index_payload, transcript_index_payload

SEARCH_URL = "https://cdn.example.test/search-index.min.json"
TRANSCRIPT_URL = "https://cdn.example.test/transcript-index.min.json"

PAYLOADS = (
    PayloadSpec("search-index", (SEARCH_URL,)),
    PayloadSpec("transcript-index", (TRANSCRIPT_URL,)),
)

OLD_LAST_MODIFIED = "Mon, 01 Jan 2024 00:00:00 GMT"
FUTURE_LAST_MODIFIED = "Fri, 01 Jan 2100 00:00:00 GMT"


def sample_corpus() -> List[Dict]:
    return [
        {"date": "2001-01-01", "panels": [{"panel": 1, "dialogue": ["The boss is late"]}]},
        {"date": "2001-01-02", "panels": [
            {"panel": 1, "dialogue": ["Dilbert, your project is late."]},
            {"panel": 2, "dialogue": ["The pointy-haired boss wants a meeting.", "Another meeting?"]},
        ]},
        {"date": "2001-01-03", "panels": [
            {"panel": 1, "dialogue": ["Meeting meeting meeting!"]},
            {"panel": 2, "dialogue": []},
        ]},
        {"date": "2001-01-04", "panels": [
            {"panel": 1, "dialogue": ["Catbert is the evil director of human resources."]},
        ]},
    ]


def build_payloads(corpus: List[Dict], version: str = "1.0") -> Tuple[bytes, bytes]:
    """Encode a corpus as split (search-index, transcript-index) payload bytes."""
    result = IndexBuilder(version=version).build_archive(corpus, generated_at="2024-01-01T00:00:00Z")
    return (
        encode_payload(search_index_payload(result, include_comics=False)),
        encode_payload(transcript_index_payload(result)),
    )


class FakeServer:
    """In-process HTTP server for httpx.MockTransport."""

    def __init__(self):
        self.routes: Dict[str, Tuple[int, bytes, Dict[str, str]]] = {}
        self.calls: List[Tuple[str, str]] = []
        self.down = False
        self.get_status: Optional[int] = None  # force every GET to this status

    def serve(self, url: str, body: bytes, last_modified: Optional[str] = OLD_LAST_MODIFIED, status: int = 200):
        headers = {"Last-Modified": last_modified} if last_modified else {}
        self.routes[url] = (status, body, headers)

    def serve_corpus(self, corpus: List[Dict], version: str = "1.0", last_modified: Optional[str] = OLD_LAST_MODIFIED):
        search_raw, transcript_raw = build_payloads(corpus, version=version)
        self.serve(SEARCH_URL, search_raw, last_modified=last_modified)
        self.serve(TRANSCRIPT_URL, transcript_raw, last_modified=last_modified)

    def gets(self) -> List[str]:
        return [url for method, url in self.calls if method == "GET"]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append((request.method, str(request.url)))
        if self.down:
            raise httpx.ConnectError("server down", request=request)
        route = self.routes.get(str(request.url))
        if route is None:
            return httpx.Response(404)
        status, body, headers = route
        if request.method == "HEAD":
            return httpx.Response(status, headers=headers)
        if self.get_status is not None:
            return httpx.Response(self.get_status)
        return httpx.Response(status, content=body, headers=headers)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


class StaticTranscriptSource(TranscriptSource):
    def __init__(self, transcripts: List[Dict]):
        self.transcripts = transcripts
        self.calls = 0

    async def load_all(self) -> List[Dict]:
        self.calls += 1
        return list(self.transcripts)


@pytest.fixture
def corpus():
    return sample_corpus()


@pytest.fixture
def fake_server():
    return FakeServer()


@pytest.fixture
def bulk_store():
    return InMemoryBulkStore()


@pytest.fixture
def metadata_store():
    return InMemoryMetadataStore()


@pytest.fixture
def make_loader(fake_server, bulk_store, metadata_store):
    """Factory for loaders wired to the fake server and in-memory stores."""
    def _make(transcript_source=None, payloads=PAYLOADS, expected_version="1.0", **kwargs):
        return ArchiveLoader(
            bulk_store=bulk_store,
            metadata_store=metadata_store,
            fetcher=PayloadFetcher(client=fake_server.client()),
            payloads=payloads,
            transcript_source=transcript_source,
            expected_version=expected_version,
            **kwargs
        )
    return _make


@pytest.fixture
def write_transcripts(tmp_path):
    """Write transcripts into a <year>/<date>.json tree and return its root."""
    def _write(transcripts: List[Dict], root_name: str = "transcripts"):
        root = tmp_path / root_name
        for transcript in transcripts:
            year_dir = root / transcript["date"][:4]
            year_dir.mkdir(parents=True, exist_ok=True)
            (year_dir / f"{transcript['date']}.json").write_text(json.dumps(transcript), encoding="utf-8")
        return root
    return _write
