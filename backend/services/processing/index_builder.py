"""
Inverted index builder.

Scans transcripts and produces a token -> DateKey posting index plus corpus
statistics. Used offline by the generator and at runtime as the last-resort
load strategy.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from core.config import INDEX_BUILD_BATCH_SIZE, INDEX_VERSION
from core.errors import MalformedDocumentError
from models.index_models import IndexMetadata, InvertedIndex
from models.transcript_models import TranscriptDocument
from services.processing.tokenizer import Tokenizer, default_tokenizer
from services.search.transcript_store import TranscriptStore

logger = logging.getLogger(__name__)

TranscriptInput = Union[TranscriptDocument, Dict[str, Any]]


@dataclass
class BuildResult:
    """Everything produced by one build: the store, its index and statistics."""
    store: TranscriptStore
    index: InvertedIndex
    metadata: IndexMetadata
    skipped: List[str] = field(default_factory=list)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class IndexBuilder:
    """Builds document-level posting lists from transcript dialogue."""

    def __init__(
        self,
        tokenizer: Tokenizer = default_tokenizer,
        version: str = INDEX_VERSION,
        batch_size: int = INDEX_BUILD_BATCH_SIZE,
    ):
        self.tokenizer = tokenizer
        self.version = version
        self.batch_size = max(1, batch_size)

    def build(self, transcripts: Iterable[TranscriptInput]) -> Tuple[InvertedIndex, IndexMetadata]:
        """Build an index and its metadata from transcripts."""
        result = self.build_archive(transcripts)
        return result.index, result.metadata

    def build_archive(
        self,
        transcripts: Iterable[TranscriptInput],
        generated_at: Optional[str] = None,
        source_last_modified: Optional[str] = None,
    ) -> BuildResult:
        """
        Build the transcript store and inverted index together.

        Documents are indexed in DateKey order, so the same set of transcripts
        always yields the same posting lists regardless of input order.
        """
        documents, skipped = self._collect(transcripts)
        postings: Dict[str, List[str]] = {}
        for document in documents:
            self._index_document(postings, document)
        return self._finish(documents, postings, skipped, generated_at, source_last_modified)

    async def build_archive_async(
        self,
        transcripts: Iterable[TranscriptInput],
        generated_at: Optional[str] = None,
        source_last_modified: Optional[str] = None,
    ) -> BuildResult:
        """Same as build_archive, yielding to the event loop between batches."""
        documents, skipped = self._collect(transcripts)
        postings: Dict[str, List[str]] = {}
        for start in range(0, len(documents), self.batch_size):
            for document in documents[start:start + self.batch_size]:
                self._index_document(postings, document)
            await asyncio.sleep(0)
        return self._finish(documents, postings, skipped, generated_at, source_last_modified)

    def _collect(self, transcripts: Iterable[TranscriptInput]) -> Tuple[List[TranscriptDocument], List[str]]:
        """Validate inputs, skipping malformed documents with a warning."""
        by_date: Dict[str, TranscriptDocument] = {}
        skipped: List[str] = []

        for position, raw in enumerate(transcripts):
            try:
                document = raw if isinstance(raw, TranscriptDocument) else TranscriptDocument.from_dict(raw)
            except MalformedDocumentError as e:
                label = e.date or f"#{position}"
                logger.warning("Skipping malformed transcript %s: %s", label, e)
                skipped.append(label)
                continue

            if document.date in by_date:
                logger.warning("Duplicate transcript for %s, keeping the later one", document.date)
            by_date[document.date] = document

        documents = [by_date[date] for date in sorted(by_date)]
        return documents, skipped

    def _index_document(self, postings: Dict[str, List[str]], document: TranscriptDocument) -> None:
        seen = set()
        for _, _, line in document.iter_lines():
            for token in self.tokenizer.tokenize(line):
                if token in seen:
                    continue
                seen.add(token)
                postings.setdefault(token, []).append(document.date)

    def _finish(
        self,
        documents: List[TranscriptDocument],
        postings: Dict[str, List[str]],
        skipped: List[str],
        generated_at: Optional[str],
        source_last_modified: Optional[str],
    ) -> BuildResult:
        index = InvertedIndex(postings)
        metadata = IndexMetadata(
            version=self.version,
            generated_at=generated_at or utc_now_iso(),
            total_documents=len(documents),
            total_words=len(index),
            source_last_modified=source_last_modified,
        )
        logger.info(
            "Index built: %d documents, %d distinct tokens, %d skipped",
            metadata.total_documents, metadata.total_words, len(skipped),
        )
        return BuildResult(store=TranscriptStore(documents), index=index, metadata=metadata, skipped=skipped)


# Global builder instance
index_builder = IndexBuilder()
