"""
Data models for the inverted index and its metadata.
"""
import hashlib
import json
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Iterable, Iterator, List, Optional, Tuple

from core.errors import PayloadParseError

EMPTY_POSTINGS: FrozenSet[str] = frozenset()


class InvertedIndex:
    """
    Read-only mapping from normalized token to the DateKeys containing it.

    Posting lists keep first-seen order so serialization is stable, but
    lookups treat them as sets.
    """

    def __init__(self, postings: Optional[Dict[str, Iterable[str]]] = None):
        self._postings: Dict[str, Tuple[str, ...]] = {
            token: tuple(dates) for token, dates in (postings or {}).items()
        }
        self._sets: Dict[str, FrozenSet[str]] = {
            token: frozenset(dates) for token, dates in self._postings.items()
        }

    def __len__(self) -> int:
        return len(self._postings)

    def __contains__(self, token: str) -> bool:
        return token in self._postings

    def __iter__(self) -> Iterator[str]:
        return iter(self._postings)

    def postings(self, token: str) -> FrozenSet[str]:
        """Return the set of DateKeys for a token (empty if unknown)."""
        return self._sets.get(token, EMPTY_POSTINGS)

    def posting_list(self, token: str) -> Tuple[str, ...]:
        return self._postings.get(token, ())

    def referenced_dates(self) -> FrozenSet[str]:
        """All DateKeys that appear in any posting list."""
        dates = set()
        for posting in self._postings.values():
            dates.update(posting)
        return frozenset(dates)

    def to_dict(self) -> Dict[str, List[str]]:
        return {token: list(dates) for token, dates in self._postings.items()}

    def fingerprint(self) -> str:
        """SHA-256 of the canonical JSON form (sorted tokens and postings)."""
        canonical = {token: sorted(dates) for token, dates in self._postings.items()}
        encoded = json.dumps(canonical, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
        return hashlib.sha256(encoded.encode("utf-8")).hexdigest()

    @classmethod
    def from_dict(cls, data: Any) -> "InvertedIndex":
        """Parse a serialized word index, validating its shape."""
        if not isinstance(data, dict):
            raise PayloadParseError("wordIndex is not an object")
        for token, dates in data.items():
            if not isinstance(dates, list) or not all(isinstance(d, str) for d in dates):
                raise PayloadParseError(f"Posting list for {token!r} is not a list of dates")
        return cls(data)


@dataclass(frozen=True)
class IndexMetadata:
    """Small freshness and statistics record kept apart from the bulk data."""
    version: str
    generated_at: str  # ISO-8601
    total_documents: int = 0
    total_words: int = 0
    source_last_modified: Optional[str] = None
