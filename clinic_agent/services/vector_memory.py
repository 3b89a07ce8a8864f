"""Long-term conversation memory backed by a Pinecone index (REST API).

Memory is best-effort: every failure is logged and turned into a no-op so
that an index outage never blocks a conversation turn.
"""

from __future__ import annotations

import logging

import httpx
from pydantic import BaseModel, ValidationError

from clinic_agent.config import PINECONE_API_KEY, pinecone_index_host
from clinic_agent.services.embeddings import EmbeddingClient

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT_SECONDS = 15.0
TOP_K = 5


# ── Query response shape (only the fields we read) ───────────────────


class _MatchMetadata(BaseModel):
    text: str


class _Match(BaseModel):
    metadata: _MatchMetadata


class _QueryResponse(BaseModel):
    matches: list[_Match] = []


class VectorMemoryClient:
    """Upsert / query free-text snippets by embedding proximity."""

    def __init__(
        self,
        embeddings: EmbeddingClient,
        api_key: str | None = None,
        index_host: str | None = None,
    ):
        self._embeddings = embeddings
        self._api_key = PINECONE_API_KEY if api_key is None else api_key
        self._client = httpx.Client(
            base_url=index_host or pinecone_index_host(),
            headers={"Api-Key": self._api_key, "Content-Type": "application/json"},
            timeout=REQUEST_TIMEOUT_SECONDS,
        )

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    def upsert(self, text: str, vector_id: str) -> bool:
        """Store *text* under *vector_id*.  Returns ``True`` if it was written."""
        if not self.configured:
            logger.debug("Vector memory: upsert skipped (no index key)")
            return False

        embedding = self._embeddings.embed(text)
        if not embedding:
            logger.warning("Vector memory: skipping upsert for %s (embedding failed)", vector_id)
            return False

        body = {
            "vectors": [
                {"id": vector_id, "values": embedding, "metadata": {"text": text}},
            ],
        }
        try:
            response = self._client.request("POST", "/vectors/upsert", json=body)
        except httpx.HTTPError as exc:
            logger.error("Vector memory upsert error: %s", exc)
            return False

        if response.status_code >= 400:
            logger.error(
                "Vector memory upsert error: %s - %s", response.status_code, response.text,
            )
            return False

        logger.info("Vector memory: stored vector %s", vector_id)
        return True

    def query(self, text: str) -> str:
        """Return the metadata text of the top matches, one per line, or ``""``."""
        if not self.configured:
            logger.debug("Vector memory: query skipped (no index key)")
            return ""

        embedding = self._embeddings.embed(text)
        if not embedding:
            logger.warning("Vector memory: skipping query (embedding failed)")
            return ""

        body = {"vector": embedding, "topK": TOP_K, "includeMetadata": True}
        try:
            response = self._client.request("POST", "/query", json=body)
            if response.status_code >= 400:
                logger.error(
                    "Vector memory query error: %s - %s", response.status_code, response.text,
                )
                return ""
            matches = _QueryResponse.model_validate(response.json()).matches
        except (httpx.HTTPError, ValidationError, ValueError) as exc:
            logger.error("Vector memory query error: %s", exc)
            return ""

        relevant = "".join(f"{match.metadata.text}\n" for match in matches)

        logger.info("Vector memory: %d relevant result(s)", len(matches))
        return relevant
