"""
In-Memory Response Cache.

Holds network responses recorded during profiling so that later page loads
can replay them instead of hitting the network. Entries are written once
per key and live until the store is cleared or garbage collected; there is
no eviction and no TTL.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional
import threading


@dataclass
class CachedResponse:
    """A recorded response, ready to fulfill an intercepted request."""
    body: str
    headers: Dict[str, str] = field(default_factory=dict)
    status: int = 200
    content_type: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "body": self.body,
            "headers": dict(self.headers),
            "status": self.status,
            "content_type": self.content_type,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CachedResponse":
        """Deserialize from dictionary."""
        return cls(
            body=data["body"],
            headers=dict(data.get("headers", {})),
            status=data.get("status", 200),
            content_type=data.get("content_type"),
        )


def make_cache_key(url: str, post_data: Optional[str]) -> str:
    """Derive the cache key for a request: url followed by its POST body."""
    return url + (post_data or "")


class CacheStore:
    """
    Key/value store of recorded responses.

    The first write for a key wins: set() on an existing key leaves the
    stored value untouched. A lock makes each operation atomic so concurrent
    page loads never observe a half-written entry.
    """

    def __init__(self):
        self._entries: Dict[str, CachedResponse] = {}
        self._lock = threading.Lock()

    def has(self, key: str) -> bool:
        with self._lock:
            return key in self._entries

    def get(self, key: str) -> Optional[CachedResponse]:
        with self._lock:
            return self._entries.get(key)

    def set(self, key: str, value: CachedResponse) -> bool:
        """
        Store a response unless the key is already cached.

        Args:
            key: Cache key (see make_cache_key)
            value: Response to store

        Returns:
            True if the value was written, False if the key already existed
        """
        with self._lock:
            if key in self._entries:
                return False
            self._entries[key] = value
            return True

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.has(key)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __repr__(self) -> str:
        return f"CacheStore(entries={len(self)})"
