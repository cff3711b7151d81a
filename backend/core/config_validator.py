"""
Configuration validation for the archive search backend.
Validates payload URLs, archive bounds, ranking settings and storage on startup.
"""
from pathlib import Path
from typing import List, Dict, Any

import httpx

from core.errors import ConfigurationError


class ConfigValidator:
    """Validates system configuration before the archive is loaded."""

    def __init__(self):
        self.errors: List[str] = []
        self.warnings: List[str] = []

    def validate_all(self) -> Dict[str, Any]:
        """
        Run all validation checks.

        Returns:
            {
                "valid": bool,
                "errors": List[str],
                "warnings": List[str]
            }
        """
        self.errors = []
        self.warnings = []

        self._validate_payload_urls()
        self._validate_archive_range()
        self._validate_transcript_source()
        self._validate_database()
        self._validate_config_values()

        return {
            "valid": len(self.errors) == 0,
            "errors": self.errors,
            "warnings": self.warnings
        }

    def validate_or_raise(self) -> Dict[str, Any]:
        """Run all checks and raise ConfigurationError if any failed."""
        result = self.validate_all()
        if not result["valid"]:
            raise ConfigurationError("; ".join(result["errors"]))
        return result

    def _validate_payload_urls(self):
        """Check that every payload has at least one well-formed http(s) URL."""
        from core.config import SEARCH_INDEX_URLS, TRANSCRIPT_INDEX_URLS, TRANSCRIPTS_BASE_URL

        for name, urls in (("SEARCH_INDEX_URLS", SEARCH_INDEX_URLS), ("TRANSCRIPT_INDEX_URLS", TRANSCRIPT_INDEX_URLS)):
            if not urls:
                self.errors.append(f"{name} is empty. Configure at least one payload URL.")
            for url in urls:
                if not self._is_http_url(url):
                    self.errors.append(f"{name} contains an invalid URL: {url}")

        if not self._is_http_url(TRANSCRIPTS_BASE_URL):
            self.warnings.append(
                f"TRANSCRIPTS_BASE_URL ({TRANSCRIPTS_BASE_URL}) is not an http(s) URL; "
                "rebuilding from remote transcripts will not work."
            )

    def _validate_archive_range(self):
        """Check that the archive bounds are valid dates in order."""
        from core.config import ARCHIVE_START_DATE, ARCHIVE_END_DATE
        from core.dates import is_valid_date_key

        for name, value in (("ARCHIVE_START_DATE", ARCHIVE_START_DATE), ("ARCHIVE_END_DATE", ARCHIVE_END_DATE)):
            if not is_valid_date_key(value):
                self.errors.append(f"{name} ({value}) must be a YYYY-MM-DD date")
                return

        if ARCHIVE_START_DATE > ARCHIVE_END_DATE:
            self.errors.append(
                f"ARCHIVE_START_DATE ({ARCHIVE_START_DATE}) must not be after ARCHIVE_END_DATE ({ARCHIVE_END_DATE})"
            )

    def _validate_transcript_source(self):
        """Check the local transcript directory, if one is configured."""
        from core.config import TRANSCRIPTS_DIR

        if TRANSCRIPTS_DIR and not Path(TRANSCRIPTS_DIR).is_dir():
            self.warnings.append(
                f"TRANSCRIPTS_DIR not found at {TRANSCRIPTS_DIR}. "
                "Index rebuilds will find no transcripts."
            )

    def _validate_database(self):
        """Check that the cache database location is usable."""
        from core.config import DB_PATH

        if not DB_PATH.parent.exists():
            self.errors.append(f"Cache directory does not exist: {DB_PATH.parent}")
            return

        if not DB_PATH.exists():
            self.warnings.append(
                f"Cache database not found at {DB_PATH}. "
                "Will be created on first run."
            )

    def _validate_config_values(self):
        """Validate configuration value ranges and types."""
        from core.config import (
            CACHE_TTL_HOURS,
            DEFAULT_SEARCH_LIMIT,
            INDEX_BUILD_BATCH_SIZE,
            LONG_LINE_BONUS,
            MAX_SEARCH_LIMIT,
            MEDIUM_LINE_BONUS,
            MIN_TOKEN_LENGTH,
            PHRASE_MATCH_WEIGHT,
            SHORT_LINE_BONUS,
            TERM_FREQUENCY_WEIGHT,
        )

        if MIN_TOKEN_LENGTH < 1:
            self.errors.append(f"MIN_TOKEN_LENGTH ({MIN_TOKEN_LENGTH}) must be >= 1")

        weights = {
            "TERM_FREQUENCY_WEIGHT": TERM_FREQUENCY_WEIGHT,
            "PHRASE_MATCH_WEIGHT": PHRASE_MATCH_WEIGHT,
            "SHORT_LINE_BONUS": SHORT_LINE_BONUS,
            "MEDIUM_LINE_BONUS": MEDIUM_LINE_BONUS,
            "LONG_LINE_BONUS": LONG_LINE_BONUS,
        }
        for name, value in weights.items():
            if value < 0:
                self.errors.append(f"{name} ({value}) must not be negative")

        if TERM_FREQUENCY_WEIGHT == 0 and PHRASE_MATCH_WEIGHT == 0:
            self.warnings.append("Both TERM_FREQUENCY_WEIGHT and PHRASE_MATCH_WEIGHT are 0; ranking ignores matches")

        if not (1 <= DEFAULT_SEARCH_LIMIT <= MAX_SEARCH_LIMIT):
            self.errors.append(
                f"DEFAULT_SEARCH_LIMIT ({DEFAULT_SEARCH_LIMIT}) must be between 1 and MAX_SEARCH_LIMIT ({MAX_SEARCH_LIMIT})"
            )

        if INDEX_BUILD_BATCH_SIZE < 1:
            self.errors.append(f"INDEX_BUILD_BATCH_SIZE ({INDEX_BUILD_BATCH_SIZE}) must be >= 1")

        if CACHE_TTL_HOURS <= 0:
            self.warnings.append(
                f"CACHE_TTL_HOURS ({CACHE_TTL_HOURS}) disables the cache when the server sends no Last-Modified"
            )

    @staticmethod
    def _is_http_url(url: str) -> bool:
        try:
            parsed = httpx.URL(url)
        except (httpx.InvalidURL, TypeError):
            return False
        return parsed.scheme in ("http", "https") and bool(parsed.host)


# Global validator instance
config_validator = ConfigValidator()
