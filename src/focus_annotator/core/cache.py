"""Time-bounded result cache for annotate responses."""

import copy
import hashlib
import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from typing import Any

from focus_annotator.config import DEFAULT_CACHE_SIZE, DEFAULT_CACHE_TTL


def cache_key(platform: str, checksum: str, prompt: str | None = None) -> str:
    """Build the cache key for a request.

    A free-text prompt changes what the model is asked, so a non-empty one
    becomes part of the key.
    """
    key = f"{platform}:{checksum}"
    if prompt:
        key += ":" + hashlib.sha1(prompt.encode("utf-8")).hexdigest()[:16]
    return key


class ResultCache:
    """Key-value store with per-entry expiry and a size bound.

    Writes are single-key upserts; last writer wins. Identical keys carry
    identical values, so races between writers are harmless. Values are
    copied in and out, so callers may mutate what they get back.
    """

    def __init__(
        self,
        *,
        ttl: float = DEFAULT_CACHE_TTL,
        max_entries: int = DEFAULT_CACHE_SIZE,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl = ttl
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, tuple[float, Any]] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        """Return the cached value, or None if absent or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            return copy.deepcopy(value)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._entries.pop(key, None)
            self._entries[key] = (self._clock() + self.ttl, copy.deepcopy(value))
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
