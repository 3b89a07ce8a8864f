"""Tests for the in-memory embedding LRU cache."""

from __future__ import annotations

from clinic_agent.services.cache import EmbeddingCache


class TestEmbeddingCacheBasics:
    def test_put_and_get(self):
        cache = EmbeddingCache()
        cache.put("hello", [0.1, 0.2])
        assert cache.get("hello") == [0.1, 0.2]

    def test_get_returns_none_for_missing_text(self):
        assert EmbeddingCache().get("nothing") is None

    def test_entries_are_scoped_by_model(self):
        cache = EmbeddingCache()
        cache.put("hello", [1.0], model="a")
        assert cache.get("hello", model="b") is None
        assert cache.get("hello", model="a") == [1.0]

    def test_empty_vectors_are_not_cached(self):
        cache = EmbeddingCache()
        cache.put("hello", [])
        assert cache.entry_count == 0
        assert cache.get("hello") is None

    def test_put_overwrites_existing_entry(self):
        cache = EmbeddingCache()
        cache.put("hello", [1.0])
        cache.put("hello", [2.0, 3.0])
        assert cache.get("hello") == [2.0, 3.0]
        assert cache.entry_count == 1

    def test_returned_vector_is_a_copy(self):
        cache = EmbeddingCache()
        cache.put("hello", [1.0])
        cache.get("hello").append(99.0)
        assert cache.get("hello") == [1.0]

    def test_clear_removes_all_entries(self):
        cache = EmbeddingCache()
        cache.put("a", [1.0])
        cache.put("b", [2.0])
        cache.clear()
        assert cache.entry_count == 0
        assert cache.current_bytes == 0


class TestEmbeddingCacheEviction:
    def _entry_size(self) -> int:
        probe = EmbeddingCache()
        probe.put("x", [0.0] * 4)
        return probe.current_bytes

    def test_evicts_least_recently_used(self):
        size = self._entry_size()
        cache = EmbeddingCache(max_bytes=size * 2)
        cache.put("first", [0.0] * 4)
        cache.put("second", [0.0] * 4)
        cache.put("third", [0.0] * 4)
        assert cache.get("first") is None
        assert cache.get("second") is not None
        assert cache.get("third") is not None

    def test_get_promotes_entry(self):
        size = self._entry_size()
        cache = EmbeddingCache(max_bytes=size * 2)
        cache.put("first", [0.0] * 4)
        cache.put("second", [0.0] * 4)
        cache.get("first")
        cache.put("third", [0.0] * 4)
        assert cache.get("first") is not None
        assert cache.get("second") is None

    def test_oversized_entry_is_skipped(self):
        cache = EmbeddingCache(max_bytes=16)
        cache.put("big", [0.0] * 100)
        assert cache.entry_count == 0
        assert cache.current_bytes == 0
