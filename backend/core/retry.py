"""
Retry helpers for transient storage errors.
"""
import logging
import sqlite3
import time
from functools import wraps

logger = logging.getLogger(__name__)


def retry_on_transient_error(max_retries: int = 3, base_delay: float = 0.05):
    """
    Decorator to retry operations on transient errors.

    Detects SQLite busy/locked errors and retries with exponential backoff.
    Any other error, or the last failed attempt, is re-raised.
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            for attempt in range(max_retries):
                try:
                    return func(*args, **kwargs)
                except sqlite3.OperationalError as e:
                    if _is_transient_error(e) and attempt < max_retries - 1:
                        delay = base_delay * (2 ** attempt)
                        logger.warning("Database busy, retrying %s in %.2fs: %s", func.__name__, delay, e)
                        time.sleep(delay)
                        continue
                    raise

        return wrapper
    return decorator


def _is_transient_error(error: Exception) -> bool:
    """Determine if error is transient (retryable)."""
    error_str = str(error).lower()
    transient_indicators = [
        "locked",
        "busy",
    ]
    return any(indicator in error_str for indicator in transient_indicators)
