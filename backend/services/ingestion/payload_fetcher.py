"""
HTTP client for bulk payloads, freshness probes and per-date transcripts.
"""
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Dict, List, Optional

import httpx

from core.config import HTTP_TIMEOUT_SECONDS
from core.errors import FetchError, PayloadParseError
from services.processing.payload import decode_payload

logger = logging.getLogger(__name__)


@dataclass
class FetchedPayload:
    """A downloaded and decoded bulk payload."""
    name: str
    url: str
    raw: bytes
    data: Dict[str, Any]
    last_modified: Optional[str] = None


@dataclass
class ProbeResult:
    """Outcome of a freshness probe."""
    reachable: bool
    last_modified: Optional[datetime] = None
    url: Optional[str] = None


def parse_http_date(value: Optional[str]) -> Optional[datetime]:
    """Parse a Last-Modified header into an aware datetime."""
    if not value:
        return None
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class PayloadFetcher:
    """Fetches payloads over HTTP, trying each mirror URL in order."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None, timeout: float = HTTP_TIMEOUT_SECONDS):
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def fetch(self, name: str, urls: List[str]) -> FetchedPayload:
        """
        Download and decode a payload from the first URL that works.

        Raises:
            FetchError: if every URL failed to respond or to parse.
        """
        last_error: Optional[Exception] = None
        last_url: Optional[str] = None
        last_status: Optional[int] = None
        for url in urls:
            start = time.monotonic()
            try:
                response = await self.client.get(url)
                response.raise_for_status()
                data = decode_payload(response.content)
            except (httpx.HTTPError, PayloadParseError) as e:
                logger.warning("Fetching %s from %s failed: %s", name, url, e)
                last_error, last_url = e, url
                last_status = e.response.status_code if isinstance(e, httpx.HTTPStatusError) else None
                continue

            logger.info(
                "Downloaded %s v%s from %s (%.2f MB, %dms, generated %s)",
                name, data.get("version"), url, len(response.content) / 1024 / 1024,
                (time.monotonic() - start) * 1000, data.get("generatedAt"),
            )
            return FetchedPayload(
                name=name,
                url=url,
                raw=response.content,
                data=data,
                last_modified=response.headers.get("Last-Modified"),
            )

        raise FetchError(
            f"Could not fetch {name} from any of {len(urls)} URLs: {last_error}",
            url=last_url,
            status_code=last_status,
        )

    async def probe(self, urls: List[str]) -> ProbeResult:
        """Issue HEAD requests until one succeeds and report its Last-Modified."""
        for url in urls:
            try:
                response = await self.client.head(url)
            except httpx.HTTPError as e:
                logger.debug("Freshness probe to %s failed: %s", url, e)
                continue
            if response.status_code >= 400:
                logger.debug("Freshness probe to %s returned %d", url, response.status_code)
                continue
            return ProbeResult(
                reachable=True,
                last_modified=parse_http_date(response.headers.get("Last-Modified")),
                url=url,
            )
        return ProbeResult(reachable=False)

    async def fetch_json(self, url: str) -> Optional[Any]:
        """GET a JSON document; None when missing or unreadable."""
        try:
            response = await self.client.get(url)
        except httpx.HTTPError as e:
            logger.debug("Fetching %s failed: %s", url, e)
            return None
        if response.status_code != 200:
            return None
        try:
            return response.json()
        except ValueError:
            logger.warning("Ignoring invalid JSON at %s", url)
            return None
