"""
Bulk payload encoding and decoding.

Payload shapes:
    search index:     {version, generatedAt, stats, wordIndex, comics?}
    transcript index: {version, generatedAt, stats, transcripts}

A single payload carrying both wordIndex and comics is also accepted.
"""
import json
import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from core.errors import MalformedDocumentError, PayloadParseError
from models.index_models import IndexMetadata, InvertedIndex
from models.transcript_models import TranscriptDocument
from services.processing.index_builder import BuildResult
from services.search.transcript_store import TranscriptStore

logger = logging.getLogger(__name__)

TRANSCRIPT_KEYS = ("comics", "transcripts")


def decode_payload(raw: Union[bytes, str]) -> Dict[str, Any]:
    """Parse serialized payload bytes into a JSON object."""
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise PayloadParseError(f"Payload is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise PayloadParseError("Payload is not a JSON object")
    if not isinstance(data.get("version"), str):
        raise PayloadParseError("Payload has no version")
    return data


def encode_payload(data: Dict[str, Any], pretty: bool = False) -> bytes:
    if pretty:
        text = json.dumps(data, indent=2, ensure_ascii=False)
    else:
        text = json.dumps(data, separators=(",", ":"), ensure_ascii=False)
    return text.encode("utf-8")


def search_index_payload(result: BuildResult, include_comics: bool = True) -> Dict[str, Any]:
    """Serialize a build into the search index payload format."""
    payload = {
        "version": result.metadata.version,
        "generatedAt": result.metadata.generated_at,
        "stats": {
            "totalComics": result.metadata.total_documents,
            "totalWords": result.metadata.total_words,
        },
        "wordIndex": result.index.to_dict(),
    }
    if include_comics:
        payload["comics"] = {doc.date: doc.to_dict() for doc in result.store.documents()}
    return payload


def transcript_index_payload(result: BuildResult) -> Dict[str, Any]:
    """Serialize a build's transcripts into the transcript index payload format."""
    return {
        "version": result.metadata.version,
        "generatedAt": result.metadata.generated_at,
        "stats": {"totalTranscripts": len(result.store)},
        "transcripts": {doc.date: doc.to_dict() for doc in result.store.documents()},
    }


def parse_transcripts(payload: Dict[str, Any]) -> Optional[List[TranscriptDocument]]:
    """
    Extract transcript documents from a payload, or None if it carries none.

    Malformed documents are skipped with a warning.
    """
    raw = None
    for key in TRANSCRIPT_KEYS:
        if key in payload:
            raw = payload[key]
            break
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise PayloadParseError("Transcript map is not an object")

    documents = []
    for date, entry in raw.items():
        try:
            document = TranscriptDocument.from_dict(entry)
        except MalformedDocumentError as e:
            logger.warning("Skipping malformed transcript %s in payload: %s", date, e)
            continue
        if document.date != date:
            logger.warning("Transcript keyed %s carries date %s, skipping", date, document.date)
            continue
        documents.append(document)
    return documents


def assemble_payloads(
    payloads: Iterable[Dict[str, Any]],
    source_last_modified: Optional[str] = None,
) -> Tuple[TranscriptStore, InvertedIndex, IndexMetadata]:
    """
    Combine one or more payloads into a consistent (store, index, metadata).

    Raises:
        PayloadParseError: if versions disagree, the word index or the
            transcripts are missing, or the index references dates that have
            no transcript.
    """
    payloads = list(payloads)
    if not payloads:
        raise PayloadParseError("No payloads to assemble")

    versions = {payload.get("version") for payload in payloads}
    if len(versions) != 1:
        raise PayloadParseError(f"Payload versions disagree: {sorted(map(str, versions))}")

    index = None
    documents = None
    for payload in payloads:
        if index is None and "wordIndex" in payload:
            index = InvertedIndex.from_dict(payload["wordIndex"])
        if documents is None:
            documents = parse_transcripts(payload)

    if index is None:
        raise PayloadParseError("No payload carries a wordIndex")
    if documents is None:
        raise PayloadParseError("No payload carries transcripts")

    store = TranscriptStore(documents)
    missing = [date for date in index.referenced_dates() if date not in store]
    if missing:
        raise PayloadParseError(
            f"Index references {len(missing)} dates missing from the transcripts (e.g. {sorted(missing)[0]})"
        )

    first = payloads[0]
    metadata = IndexMetadata(
        version=first["version"],
        generated_at=str(first.get("generatedAt", "")),
        total_documents=len(store),
        total_words=len(index),
        source_last_modified=source_last_modified,
    )
    return store, index, metadata
