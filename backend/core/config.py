"""
Configuration management for the strip archive search backend.
Loads configuration from environment variables and .env file.
"""
import os
from pathlib import Path
from dotenv import load_dotenv

# Look for .env file in the backend directory or project root
BACKEND_DIR = Path(__file__).parent.parent
PROJECT_ROOT = BACKEND_DIR.parent
ENV_FILE = PROJECT_ROOT / ".env"

if ENV_FILE.exists():
    load_dotenv(ENV_FILE)
else:
    backend_env = BACKEND_DIR / ".env"
    if backend_env.exists():
        load_dotenv(backend_env)


def _split_list(value: str) -> list:
    return [item.strip() for item in value.split(",") if item.strip()]


# Base paths
BASE_DIR = PROJECT_ROOT
DATA_DIR = Path(os.getenv("DATA_DIR", str(BASE_DIR / "data")))
DB_PATH = Path(os.getenv("DB_PATH", str(DATA_DIR / "archive_cache.db")))

# Ensure directories exist
DATA_DIR.mkdir(parents=True, exist_ok=True)

# Index build version. Cached payloads carrying a different version are ignored.
INDEX_VERSION = os.getenv("INDEX_VERSION", "1.0")

# Bulk payload locations, tried in order (CDN first, then origin)
SEARCH_INDEX_URLS = _split_list(os.getenv(
    "SEARCH_INDEX_URLS",
    "https://cdn.jsdelivr.net/gh/yayiji/readbert@main/static/dilbert-index/search-index.min.json,"
    "http://localhost:5173/dilbert-index/search-index.min.json",
))
TRANSCRIPT_INDEX_URLS = _split_list(os.getenv(
    "TRANSCRIPT_INDEX_URLS",
    "https://cdn.jsdelivr.net/gh/yayiji/readbert@main/static/dilbert-index/transcript-index.min.json,"
    "http://localhost:5173/dilbert-index/transcript-index.min.json",
))

# Per-date transcript files, used only when rebuilding the index
TRANSCRIPTS_BASE_URL = os.getenv("TRANSCRIPTS_BASE_URL", "http://localhost:5173/dilbert-transcripts")
TRANSCRIPTS_DIR = os.getenv("TRANSCRIPTS_DIR", None)  # Local directory tree, preferred over HTTP
TRANSCRIPT_FETCH_BATCH_SIZE = int(os.getenv("TRANSCRIPT_FETCH_BATCH_SIZE", "20"))
TRANSCRIPT_FETCH_DELAY_MS = int(os.getenv("TRANSCRIPT_FETCH_DELAY_MS", "50"))

# Archive bounds
ARCHIVE_START_DATE = os.getenv("ARCHIVE_START_DATE", "1989-04-16")
ARCHIVE_END_DATE = os.getenv("ARCHIVE_END_DATE", "2023-03-12")

# Cache freshness
CACHE_TTL_HOURS = int(os.getenv("CACHE_TTL_HOURS", "24"))  # Used when the server sends no Last-Modified
HTTP_TIMEOUT_SECONDS = float(os.getenv("HTTP_TIMEOUT_SECONDS", "30"))

# Tokenization (shared by index build and query)
MIN_TOKEN_LENGTH = int(os.getenv("MIN_TOKEN_LENGTH", "3"))
STOPWORDS = frozenset(_split_list(os.getenv(
    "STOPWORDS",
    "the,and,for,are,but,not,you,all,was,were,this,that,with,have,has,had,its,our,your,from",
)))

# Ranking weights
TERM_FREQUENCY_WEIGHT = float(os.getenv("TERM_FREQUENCY_WEIGHT", "10"))
PHRASE_MATCH_WEIGHT = float(os.getenv("PHRASE_MATCH_WEIGHT", "20"))
SHORT_LINE_BONUS = float(os.getenv("SHORT_LINE_BONUS", "15"))  # matched line < 50 chars
MEDIUM_LINE_BONUS = float(os.getenv("MEDIUM_LINE_BONUS", "10"))  # matched line < 100 chars
LONG_LINE_BONUS = float(os.getenv("LONG_LINE_BONUS", "5"))

# Search settings
DEFAULT_SEARCH_LIMIT = int(os.getenv("DEFAULT_SEARCH_LIMIT", "50"))
MAX_SEARCH_LIMIT = int(os.getenv("MAX_SEARCH_LIMIT", "500"))

# Processing optimization
INDEX_BUILD_BATCH_SIZE = int(os.getenv("INDEX_BUILD_BATCH_SIZE", "250"))

# API configuration
API_V1_PREFIX = "/api/v1"
# CORS origins can be comma-separated list in env var
CORS_ORIGINS_STR = os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:3000")
CORS_ORIGINS = [origin.strip() for origin in CORS_ORIGINS_STR.split(",")]

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
