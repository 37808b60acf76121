"""
In-memory TTL cache for API GET responses.
"""
import copy
import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Optional

DEFAULT_TTL = 5 * 60
MAX_CACHE_SIZE = 100

# Endpoint pattern -> TTL in seconds. None means the endpoint is never cached.
ENDPOINT_TTLS = {
    # Rarely changing data
    '/api/regions': 60 * 60,
    '/api/users': 30 * 60,
    '/api/settings': 60 * 60,

    # Moderately changing data
    '/api/targets': 15 * 60,
    '/api/productivity': 10 * 60,

    # Frequently changing data
    '/api/sales': 2 * 60,
    '/api/tours': 2 * 60,
    '/api/dashboard': 60,

    # Sensitive or real-time data
    '/api/login': None,
    '/api/logout': None,
    '/api/activity_logs': None,
}


class ApiCache:
    """
    Time-To-Live cache with storage of {key: (expires_at, url, value)}.

    Values are deep-copied on the way in and out, so callers may mutate what
    they get back.

    Keys combine the HTTP method and the full URL including its query string.
    Expired entries are purged on get/set; the oldest entry is evicted once
    the cache holds more than max_size entries.
    """

    def __init__(self, clock: Callable[[], float] = time.time, max_size: int = MAX_CACHE_SIZE):
        self._storage = OrderedDict()
        self._clock = clock
        self._lock = threading.Lock()
        self.max_size = max_size

    @staticmethod
    def cache_key(url: str, method: str = 'GET') -> str:
        return f"{method.upper()}:{url}"

    @staticmethod
    def ttl_for(url: str) -> Optional[float]:
        """Return the TTL configured for url, or None when it must not be cached."""
        for pattern, ttl in ENDPOINT_TTLS.items():
            if pattern in url:
                return ttl
        return DEFAULT_TTL

    def is_cacheable(self, url: str) -> bool:
        return '/api/' in url and self.ttl_for(url) is not None

    def get(self, url: str) -> Optional[Any]:
        """
        Retrieve a cached response body.

        Args:
            url: Full request URL (query string included).

        Returns:
            Cached value if found and not expired, otherwise None.
        """
        key = self.cache_key(url)
        with self._lock:
            self._purge_expired()
            entry = self._storage.get(key)
            if entry is None:
                return None
            return copy.deepcopy(entry[2])

    def set(self, url: str, value: Any, ttl: Optional[float] = None) -> None:
        """
        Store a response body.

        Args:
            url: Full request URL (query string included).
            value: Parsed response body.
            ttl: Time-to-live in seconds; defaults to the endpoint's configured TTL.
        """
        configured = self.ttl_for(url)
        if configured is None:
            return

        key = self.cache_key(url)
        with self._lock:
            self._purge_expired()
            expires_at = self._clock() + (ttl or configured)
            self._storage[key] = (expires_at, url, copy.deepcopy(value))
            self._storage.move_to_end(key)

            while len(self._storage) > self.max_size:
                self._storage.popitem(last=False)

    def invalidate(self, pattern: str) -> int:
        """Drop every entry whose URL contains pattern. Returns the number removed."""
        with self._lock:
            doomed = [key for key, (_, url, _) in self._storage.items() if pattern in url]
            for key in doomed:
                del self._storage[key]
            return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._storage.clear()

    def __len__(self):
        with self._lock:
            return len(self._storage)

    def _purge_expired(self) -> None:
        """Remove all expired entries (caller holds the lock)."""
        now = self._clock()
        expired_keys = [
            key for key, (expires_at, _, _) in self._storage.items()
            if now >= expires_at
        ]
        for key in expired_keys:
            del self._storage[key]
