"""Tests for the Pinecone-backed vector memory client."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import httpx
import pytest

from clinic_agent.services.vector_memory import TOP_K, VectorMemoryClient


@pytest.fixture
def embeddings():
    mock = MagicMock()
    mock.embed.return_value = [0.1, 0.2, 0.3]
    return mock


@pytest.fixture
def memory(embeddings):
    return VectorMemoryClient(
        embeddings, api_key="test-key", index_host="https://test-index.svc.pinecone.io",
    )


class TestUpsert:
    def test_upserts_vector_with_text_metadata(self, memory, mock_response):
        with patch.object(
            memory._client, "request", return_value=mock_response({"upsertedCount": 1}),
        ) as mock_req:
            assert memory.upsert("Conversation abc: name=João", "abc") is True

        args, kwargs = mock_req.call_args
        assert args == ("POST", "/vectors/upsert")
        assert kwargs["json"] == {
            "vectors": [
                {
                    "id": "abc",
                    "values": [0.1, 0.2, 0.3],
                    "metadata": {"text": "Conversation abc: name=João"},
                },
            ],
        }

    def test_empty_embedding_skips_network_write(self, memory, embeddings):
        embeddings.embed.return_value = []
        with patch.object(memory._client, "request") as mock_req:
            assert memory.upsert("text", "abc") is False
        mock_req.assert_not_called()

    def test_error_status_is_absorbed(self, memory, mock_response):
        with patch.object(
            memory._client, "request", return_value=mock_response({"message": "nope"}, 403),
        ):
            assert memory.upsert("text", "abc") is False

    def test_transport_error_is_absorbed(self, memory):
        with patch.object(memory._client, "request", side_effect=httpx.ConnectError("down")):
            assert memory.upsert("text", "abc") is False

    def test_missing_index_key_is_a_no_op(self, embeddings):
        memory = VectorMemoryClient(embeddings, api_key="", index_host="https://x")
        with patch.object(memory._client, "request") as mock_req:
            assert memory.upsert("text", "abc") is False
        mock_req.assert_not_called()
        embeddings.embed.assert_not_called()


class TestQuery:
    def test_concatenates_match_metadata(self, memory, mock_response):
        body = {
            "matches": [
                {"id": "1", "score": 0.9, "metadata": {"text": "Cleaning takes 30 minutes"}},
                {"id": "2", "score": 0.8, "metadata": {"text": "North unit opens at 8"}},
            ]
        }
        with patch.object(memory._client, "request", return_value=mock_response(body)) as mock_req:
            result = memory.query("how long is a cleaning?")

        assert result == "Cleaning takes 30 minutes\nNorth unit opens at 8\n"
        args, kwargs = mock_req.call_args
        assert args == ("POST", "/query")
        assert kwargs["json"] == {
            "vector": [0.1, 0.2, 0.3],
            "topK": TOP_K,
            "includeMetadata": True,
        }
        assert TOP_K == 5

    def test_no_matches_returns_empty_string(self, memory, mock_response):
        with patch.object(memory._client, "request", return_value=mock_response({"matches": []})):
            assert memory.query("anything") == ""

    def test_empty_embedding_returns_empty_string(self, memory, embeddings):
        embeddings.embed.return_value = []
        with patch.object(memory._client, "request") as mock_req:
            assert memory.query("anything") == ""
        mock_req.assert_not_called()

    def test_error_status_returns_empty_string(self, memory, mock_response):
        with patch.object(
            memory._client, "request", return_value=mock_response({"message": "nope"}, 500),
        ):
            assert memory.query("anything") == ""

    def test_match_without_metadata_returns_empty_string(self, memory, mock_response):
        with patch.object(
            memory._client, "request", return_value=mock_response({"matches": [{"id": "1"}]}),
        ):
            assert memory.query("anything") == ""

    def test_transport_error_returns_empty_string(self, memory):
        with patch.object(memory._client, "request", side_effect=httpx.ReadTimeout("slow")):
            assert memory.query("anything") == ""

    @pytest.mark.parametrize(
        "body",
        [[], "not an object", {"matches": None}, {"matches": ["oops"]}, {"matches": [{"metadata": "x"}]}],
        ids=["list-body", "string-body", "null-matches", "non-object-match", "non-object-metadata"],
    )
    def test_malformed_body_returns_empty_string(self, memory, mock_response, body):
        with patch.object(memory._client, "request", return_value=mock_response(body)):
            assert memory.query("anything") == ""

    def test_invalid_json_returns_empty_string(self, memory, mock_response):
        response = mock_response({})
        response.json.side_effect = ValueError("Expecting value")
        with patch.object(memory._client, "request", return_value=response):
            assert memory.query("anything") == ""
