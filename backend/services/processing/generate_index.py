"""
Generate the bulk payload files from a directory of transcripts.

Reads <transcripts>/<year>/<date>.json and writes, into the output directory:
- search-index.json / search-index.min.json          word index (+ comics)
- transcript-index.json / transcript-index.min.json  transcripts by date

Run this whenever transcripts are updated.

Usage:
    python -m services.processing.generate_index --transcripts PATH [--output-dir PATH] [--split]
"""
import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Dict, Optional, Sequence

from core.config import INDEX_VERSION, LOG_LEVEL
from services.ingestion.transcript_source import read_transcript_directory
from services.processing.index_builder import BuildResult, IndexBuilder
from services.processing.payload import encode_payload, search_index_payload, transcript_index_payload

logger = logging.getLogger(__name__)


def write_payload(data: Dict, output_dir: Path, name: str) -> Dict[str, int]:
    """Write formatted and minified variants; return their sizes in bytes."""
    formatted = output_dir / f"{name}.json"
    minified = output_dir / f"{name}.min.json"
    formatted.write_bytes(encode_payload(data, pretty=True))
    minified.write_bytes(encode_payload(data))
    sizes = {"formatted": formatted.stat().st_size, "minified": minified.stat().st_size}
    logger.info(
        "%s: %.2f MB formatted, %.2f MB minified",
        name, sizes["formatted"] / 1024 / 1024, sizes["minified"] / 1024 / 1024,
    )
    return sizes


def generate(transcripts_dir: Path, output_dir: Path, version: str = INDEX_VERSION, split: bool = False) -> BuildResult:
    """Build the index from a transcript directory and write all payload files."""
    start = time.monotonic()
    raw = read_transcript_directory(transcripts_dir)
    result = IndexBuilder(version=version).build_archive(raw)

    output_dir.mkdir(parents=True, exist_ok=True)
    write_payload(search_index_payload(result, include_comics=not split), output_dir, "search-index")
    write_payload(transcript_index_payload(result), output_dir, "transcript-index")

    logger.info(
        "Generated %d/%d transcripts, %d unique words in %dms",
        result.metadata.total_documents, len(raw), result.metadata.total_words,
        (time.monotonic() - start) * 1000,
    )
    return result


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Generate the search index and transcript database from transcript files"
    )
    parser.add_argument(
        "--transcripts",
        type=Path,
        required=True,
        help="Directory containing <year>/<date>.json transcripts"
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("static/dilbert-index"),
        help="Output directory for index files"
    )
    parser.add_argument(
        "--version",
        default=INDEX_VERSION,
        help="Version string stamped into the payloads"
    )
    parser.add_argument(
        "--split",
        action="store_true",
        help="Leave transcripts out of the search index (they live in transcript-index only)"
    )
    args = parser.parse_args(argv)

    logging.basicConfig(level=LOG_LEVEL, format="%(levelname)s %(name)s: %(message)s")

    if not args.transcripts.is_dir():
        logger.error("Transcript directory not found: %s", args.transcripts)
        return 1

    try:
        result = generate(args.transcripts, args.output_dir, version=args.version, split=args.split)
    except OSError as e:
        logger.error("Failed to generate indexes: %s", e)
        return 1

    if result.metadata.total_documents == 0:
        logger.error("No valid transcripts found in %s", args.transcripts)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
