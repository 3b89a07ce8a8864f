"""Shared test fixtures for the clinic SDR agent test suite."""

from __future__ import annotations

import json
import os
from unittest.mock import MagicMock

import httpx
import pytest


def pytest_configure(config):
    """Set test environment variables BEFORE collection starts.

    This runs before any imports, so config.py picks these values up.
    """
    os.environ.setdefault("OPENAI_API_KEY", "test-openai-key-123")
    os.environ.setdefault("PINECONE_API_KEY", "test-pinecone-key-456")
    os.environ.setdefault("PINECONE_INDEX_HOST", "https://test-index.svc.pinecone.io")
    os.environ.setdefault("APP_ENV", "development")
    os.environ.setdefault("SLOT_LANGUAGE", "en")


def make_response(data, status_code: int = 200, text: str | None = None) -> MagicMock:
    """Build a mock ``httpx.Response`` with the given JSON body."""
    mock = MagicMock()
    mock.status_code = status_code
    mock.json.return_value = data
    mock.text = text if text is not None else str(data)
    return mock


@pytest.fixture
def mock_response():
    """Factory fixture for creating mock provider responses."""
    return make_response


class ScriptedOpenAI:
    """OpenAI-compatible endpoint served from an ``httpx.MockTransport``.

    Replies are consumed in order; an exception instance is raised from the
    transport instead of answering.  Every request body is recorded.
    """

    base_url = "https://openai.test/v1"

    def __init__(self):
        self.requests: list[dict] = []
        self._replies: list = []
        self.http_client = httpx.Client(transport=httpx.MockTransport(self._handle))

    def reply(self, body, status_code: int = 200) -> ScriptedOpenAI:
        self._replies.append((status_code, body))
        return self

    def fail(self, exc: Exception) -> ScriptedOpenAI:
        self._replies.append(exc)
        return self

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append({"path": request.url.path, "json": json.loads(request.content or b"{}")})
        if not self._replies:
            return httpx.Response(500, json={"error": {"message": "no scripted reply"}})
        reply = self._replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        status_code, body = reply
        return httpx.Response(status_code, json=body)


@pytest.fixture
def openai_server():
    """A scripted OpenAI endpoint; pass ``.http_client`` to the client under test."""
    server = ScriptedOpenAI()
    yield server
    server.http_client.close()
