"""In-memory cache for the "list all books" result.

The only cache in the system. Individual profiles are never cached; the
list entry is dropped whenever a book is created or deleted.
"""

import logging
import time
from threading import Lock
from typing import Any

from bookstore_catalog.events import LogEvent

logger = logging.getLogger(__name__)

ALL_BOOKS_KEY = "all_books"


class ListCache:
    """Thread-safe key → value store with a per-entry time-to-live."""

    def __init__(self, ttl_seconds: float = 300.0) -> None:
        self._ttl = ttl_seconds
        self._entries: dict[str, tuple[float, Any]] = {}
        self._lock = Lock()

    def get(self, key: str) -> Any | None:
        """Return the cached value, or None when missing or expired."""
        now = time.monotonic()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if expires_at <= now:
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._entries[key] = (time.monotonic() + self._ttl, value)

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)
        logger.debug(
            "Cache invalidated for key: %s",
            key,
            extra={"event": LogEvent.CACHE_INVALIDATED, "cache_key": key},
        )
