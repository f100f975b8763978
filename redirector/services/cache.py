import logging
import re
import threading
import time
from typing import Callable, Dict, Optional

from redirector.models.internal import CacheEntry, MediaFormat, MediaInfo
from redirector.utils.url import query_param

logger = logging.getLogger(__name__)

EXPIRE_PARAM = "expire"
DEFAULT_MAX_ENTRIES = 1024

_EPOCH_RE = re.compile(r"^[+-]?[0-9]+$")


def parse_expiry(direct_url: str) -> Optional[int]:
    """Epoch seconds from the `expire` query parameter, or None"""
    value = query_param(direct_url, EXPIRE_PARAM)
    if value is None or not _EPOCH_RE.match(value):
        return None
    return int(value)


class ResolutionCache:
    """
    In-memory cache of resolved formats keyed by canonical source URL.

    Entries expire at the absolute time embedded in the resolved URL, not
    after a fixed TTL. Expired entries are dropped lazily on lookup, and by
    a sweep whenever a store would exceed max_entries; if the cache is still
    full after the sweep, the entry expiring soonest is evicted.
    """

    def __init__(
        self,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.time
    ):
        self.max_entries = max_entries
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def lookup(self, url: str) -> Optional[CacheEntry]:
        with self._lock:
            entry = self._entries.get(url)
            if entry is None:
                return None
            if self._clock() < entry.expires_at:
                return entry
            del self._entries[url]

        logger.debug(f"Cache entry expired: {url}")
        return None

    def store(self, url: str, format: MediaFormat, info: MediaInfo) -> bool:
        """
        Cache the format for url until its `expire` timestamp.
        Returns False (and stores nothing) when the URL carries no usable expiry.
        """
        expires_at = parse_expiry(format.direct_url)
        if expires_at is None:
            return False

        entry = CacheEntry(expires_at=expires_at, format=format, info=info)
        with self._lock:
            if url not in self._entries and len(self._entries) >= self.max_entries:
                self._make_room()
            self._entries[url] = entry
        return True

    def sweep(self) -> int:
        """Remove expired entries, returning how many were dropped"""
        with self._lock:
            return self._sweep_locked()

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def _sweep_locked(self) -> int:
        now = self._clock()
        expired = [url for url, entry in self._entries.items() if entry.expires_at <= now]
        for url in expired:
            del self._entries[url]
        return len(expired)

    def _make_room(self) -> None:
        if self._sweep_locked():
            return
        victim = min(self._entries, key=lambda url: self._entries[url].expires_at)
        del self._entries[victim]
        logger.debug(f"Cache full ({self.max_entries}), evicted {victim}")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, url: str) -> bool:
        with self._lock:
            return url in self._entries
