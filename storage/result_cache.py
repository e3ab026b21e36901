"""In-memory TTL cache of completed research runs."""

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional

from loguru import logger

from config.settings import settings
from models.company import CacheEntry
from utils.helpers import normalize_url


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ResultCache:
    """
    Keyed by normalised URL; one live entry per key, last write wins.

    Expired entries behave as absent and are evicted lazily on access.
    A lock guards the map so independent keys can be read and written
    from concurrent runs (and threads) safely.  Runs for the same key are
    not serialised.
    """

    def __init__(
        self,
        ttl: Optional[timedelta] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._ttl = ttl if ttl is not None else timedelta(hours=settings.cache_ttl_hours)
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def now(self) -> datetime:
        return self._clock()

    def get(self, url: str) -> Optional[CacheEntry]:
        key = normalize_url(url)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() - entry.created_at > self._ttl:
                del self._entries[key]
                logger.debug(f"ResultCache: evicted expired entry for {key}")
                return None
            return entry

    def put(self, url: str, entry: CacheEntry) -> None:
        key = normalize_url(url)
        if entry.key != key:
            entry = entry.model_copy(update={"key": key})
        with self._lock:
            self._entries[key] = entry
        logger.debug(f"ResultCache: stored {key}")

    def clear(self) -> int:
        """Drop every entry and return how many there were."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        logger.info(f"ResultCache: cleared {count} entries.")
        return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
