"""Thread-safe in-memory LRU cache for embedding vectors.

Identical texts (e.g. repeated greetings, the same conversation summary
between turns that did not change any slot) map to the same embedding, so
the vector memory keeps the most recent ones here instead of paying for
another provider round-trip.

• **OrderedDict** for O(1) LRU eviction and promotion.
• **Byte ceiling** estimated as ``8 × len(vector)`` plus the UTF-8 key size.
• **threading.Lock** because FastAPI runs turns in worker threads.
• Purely ephemeral: lost on process restart.

>>> cache = EmbeddingCache(max_bytes=1024 * 1024)
>>> cache.put("hello", [0.1, 0.2])
>>> cache.get("hello")
[0.1, 0.2]
"""

from __future__ import annotations

import hashlib
import logging
import threading
from collections import OrderedDict

logger = logging.getLogger(__name__)

# Default ceiling: 8 MB (roughly 1 300 ada-002 vectors)
DEFAULT_MAX_BYTES = 8 * 1024 * 1024
_BYTES_PER_FLOAT = 8


def _key_for(model: str, text: str) -> str:
    digest = hashlib.sha256(text.encode("utf-8")).hexdigest()
    return f"{model}:{digest}"


class EmbeddingCache:
    """Least-Recently-Used embedding store bounded by estimated byte size."""

    def __init__(self, max_bytes: int = DEFAULT_MAX_BYTES) -> None:
        self._max_bytes = max_bytes
        self._current_bytes = 0
        # key → (vector, estimated_size_bytes)
        self._store: OrderedDict[str, tuple[list[float], int]] = OrderedDict()
        self._lock = threading.Lock()

    @staticmethod
    def _estimate_bytes(key: str, vector: list[float]) -> int:
        return len(key.encode("utf-8")) + _BYTES_PER_FLOAT * len(vector)

    def get(self, text: str, model: str = "") -> list[float] | None:
        """Return the cached vector (promoting it to MRU) or ``None``."""
        key = _key_for(model, text)
        with self._lock:
            if key not in self._store:
                return None
            self._store.move_to_end(key)
            vector, _ = self._store[key]
            return list(vector)

    def put(self, text: str, vector: list[float], model: str = "") -> None:
        """Store *vector* for *text*.  Empty vectors are never cached."""
        if not vector:
            return

        key = _key_for(model, text)
        size = self._estimate_bytes(key, vector)
        if size > self._max_bytes:
            logger.debug("Embedding cache: skipping entry of %d bytes (max %d)", size, self._max_bytes)
            return

        with self._lock:
            if key in self._store:
                _, old_size = self._store.pop(key)
                self._current_bytes -= old_size

            while self._current_bytes + size > self._max_bytes and self._store:
                _, (_, evicted_size) = self._store.popitem(last=False)
                self._current_bytes -= evicted_size
                logger.debug("Embedding cache: evicted entry (%d bytes)", evicted_size)

            self._store[key] = (list(vector), size)
            self._current_bytes += size

    def clear(self) -> None:
        with self._lock:
            self._store.clear()
            self._current_bytes = 0

    @property
    def current_bytes(self) -> int:
        """Total estimated bytes currently stored."""
        return self._current_bytes

    @property
    def entry_count(self) -> int:
        return len(self._store)
