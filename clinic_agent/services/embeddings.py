"""Text embeddings through LangChain's ``OpenAIEmbeddings``.

Any failure (missing key, transport error, non-2xx, malformed body) yields an
empty vector, which callers treat as "skip this memory operation".
"""

from __future__ import annotations

import logging
import time
from typing import Any

from langchain_openai import OpenAIEmbeddings

from clinic_agent.config import EMBEDDING_MODEL, OPENAI_API_KEY, OPENAI_BASE_URL
from clinic_agent.services.cache import EmbeddingCache

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT_SECONDS = 30.0


class EmbeddingClient:
    """Converts text to a fixed-dimension vector, with an LRU cache in front."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        *,
        model: str | None = None,
        cache: EmbeddingCache | None = None,
        http_client: Any | None = None,
    ):
        self._api_key = OPENAI_API_KEY if api_key is None else api_key
        self._model = model or EMBEDDING_MODEL
        self._cache = cache if cache is not None else EmbeddingCache()
        self._embeddings: OpenAIEmbeddings | None = None
        if self._api_key:
            self._embeddings = OpenAIEmbeddings(
                model=self._model,
                api_key=self._api_key,
                base_url=base_url or OPENAI_BASE_URL,
                timeout=REQUEST_TIMEOUT_SECONDS,
                max_retries=0,
                # Send the raw text; token-level chunking would need tiktoken downloads
                check_embedding_ctx_length=False,
                http_client=http_client,
            )

    def embed(self, text: str) -> list[float]:
        """Return the embedding of *text*, or ``[]`` on any failure."""
        if self._embeddings is None:
            logger.debug("Embeddings skipped: no API key configured")
            return []

        cached = self._cache.get(text, self._model)
        if cached is not None:
            return cached

        t0 = time.perf_counter()
        try:
            vector = [float(x) for x in self._embeddings.embed_query(text)]
        except Exception as exc:
            logger.error("Embeddings API error: %s", exc)
            return []

        logger.debug(
            "Embedded %d chars into %d dims in %.0fms",
            len(text), len(vector), (time.perf_counter() - t0) * 1000,
        )
        self._cache.put(text, vector, self._model)
        return vector
