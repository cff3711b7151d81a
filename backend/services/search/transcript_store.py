"""
In-memory transcript store addressable by DateKey.
"""
from typing import Dict, Iterable, List, Optional

from models.transcript_models import TranscriptDocument


class TranscriptStore:
    """Holds the transcript corpus for one loaded snapshot. Read-only once built."""

    def __init__(self, documents: Optional[Iterable[TranscriptDocument]] = None):
        self._documents: Dict[str, TranscriptDocument] = {}
        for document in documents or ():
            self._documents[document.date] = document

    def __len__(self) -> int:
        return len(self._documents)

    def __contains__(self, date: str) -> bool:
        return date in self._documents

    def get(self, date: str) -> Optional[TranscriptDocument]:
        return self._documents.get(date)

    def dates(self) -> List[str]:
        """All DateKeys in ascending order."""
        return sorted(self._documents)

    def documents(self) -> List[TranscriptDocument]:
        """All documents ordered by DateKey."""
        return [self._documents[date] for date in self.dates()]
