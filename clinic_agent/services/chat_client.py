"""Chat-completions client with a one-step model fallback.

Both models are LangChain ``ChatOpenAI`` instances talking to the OpenAI
``/chat/completions`` endpoint.  Failure handling is intentionally flat:

* 429 / ``insufficient_quota`` on the primary model → one retry on the
  fallback (lower-tier) model with the same messages and tools.
* Anything else that goes wrong → a fixed apology for the patient.

Errors are never raised to the caller; the ``outcome`` on the returned
:class:`ChatCompletion` tells degraded answers apart from real ones.
"""

from __future__ import annotations

import enum
import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import openai
from langchain_core.messages import AIMessage, AnyMessage
from langchain_core.messages.tool import InvalidToolCall, ToolCall
from langchain_core.tools import BaseTool
from langchain_openai import ChatOpenAI

from clinic_agent.config import CHAT_MODEL, FALLBACK_CHAT_MODEL, OPENAI_API_KEY, OPENAI_BASE_URL

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT_SECONDS = 60.0
MAX_TOKENS = 1000
TEMPERATURE = 0.7

NOT_CONFIGURED_REPLY = "Sorry, the chat provider API key is not configured."
GENERIC_ERROR_REPLY = "Sorry, there was an error processing your message. Please try again."
QUOTA_EXCEEDED_REPLY = (
    "Sorry, the API quota has been exceeded for both the primary and the fallback "
    "model. Please check the provider account credits."
)


class ChatOutcome(enum.StrEnum):
    OK = "ok"
    FALLBACK = "fallback"
    NOT_CONFIGURED = "not_configured"
    QUOTA_EXCEEDED = "quota_exceeded"
    FAILED = "failed"


@dataclass(frozen=True)
class ChatCompletion:
    """The assistant message for one request plus how it was obtained."""

    message: AIMessage
    outcome: ChatOutcome = ChatOutcome.OK
    model: str | None = None

    @classmethod
    def canned(cls, text: str, outcome: ChatOutcome) -> ChatCompletion:
        return cls(AIMessage(content=text), outcome=outcome)

    @property
    def content(self) -> str:
        content = self.message.content
        return content if isinstance(content, str) else ""

    @property
    def tool_calls(self) -> list[ToolCall]:
        return list(self.message.tool_calls)

    @property
    def invalid_tool_calls(self) -> list[InvalidToolCall]:
        return list(self.message.invalid_tool_calls)

    @property
    def degraded(self) -> bool:
        return self.outcome not in (ChatOutcome.OK, ChatOutcome.FALLBACK)


def _is_quota_error(exc: Exception) -> bool:
    if isinstance(exc, openai.RateLimitError):
        return True
    return isinstance(exc, openai.APIStatusError) and (
        exc.code == "insufficient_quota" or "insufficient_quota" in str(exc)
    )


class ChatCompletionClient:
    """Primary + fallback ``ChatOpenAI`` models behind a never-raising call."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        *,
        model: str | None = None,
        fallback_model: str | None = None,
        http_client: Any | None = None,
    ):
        self._api_key = OPENAI_API_KEY if api_key is None else api_key
        self._base_url = base_url or OPENAI_BASE_URL
        self._http_client = http_client
        self.model_name = model or CHAT_MODEL
        self.fallback_model_name = fallback_model or FALLBACK_CHAT_MODEL

        # ChatOpenAI refuses to build without a key, so both stay unset until one exists
        self._primary = self._build_llm(self.model_name) if self._api_key else None
        self._fallback = self._build_llm(self.fallback_model_name) if self._api_key else None

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    # ── LLM builders ─────────────────────────────────────────────────

    def _build_llm(self, model: str) -> ChatOpenAI:
        return ChatOpenAI(
            model=model,
            api_key=self._api_key,
            base_url=self._base_url,
            temperature=TEMPERATURE,
            max_tokens=MAX_TOKENS,
            timeout=REQUEST_TIMEOUT_SECONDS,
            max_retries=0,  # the fallback model is the only retry
            http_client=self._http_client,
        )

    def _invoke(
        self, llm: Any, model: str, messages: list[AnyMessage], tools: Sequence[BaseTool],
    ) -> AIMessage:
        runnable = llm.bind_tools(list(tools)) if tools else llm
        t0 = time.perf_counter()
        response = runnable.invoke(messages)
        logger.debug("Chat completion from %s in %.0fms", model, (time.perf_counter() - t0) * 1000)
        return response

    # ── Public API ───────────────────────────────────────────────────

    def complete(
        self,
        messages: list[AnyMessage],
        tools: Sequence[BaseTool] | None = None,
    ) -> ChatCompletion:
        """Return the assistant reply for *messages*, never raising."""
        if not self.configured:
            return ChatCompletion.canned(NOT_CONFIGURED_REPLY, ChatOutcome.NOT_CONFIGURED)

        tools = tools or []
        try:
            response = self._invoke(self._primary, self.model_name, messages, tools)
            return ChatCompletion(response, model=self.model_name)
        except Exception as exc:
            if not _is_quota_error(exc):
                logger.error("Chat API call failed (%s): %s", self.model_name, exc)
                return ChatCompletion.canned(GENERIC_ERROR_REPLY, ChatOutcome.FAILED)
            logger.warning(
                "Quota/rate limit on %s, retrying once with %s: %s",
                self.model_name, self.fallback_model_name, exc,
            )

        try:
            response = self._invoke(self._fallback, self.fallback_model_name, messages, tools)
        except Exception as exc:
            if _is_quota_error(exc):
                logger.error(
                    "Quota exceeded on both %s and %s", self.model_name, self.fallback_model_name,
                )
                return ChatCompletion.canned(QUOTA_EXCEEDED_REPLY, ChatOutcome.QUOTA_EXCEEDED)
            logger.error("Fallback chat API call failed (%s): %s", self.fallback_model_name, exc)
            return ChatCompletion.canned(GENERIC_ERROR_REPLY, ChatOutcome.FAILED)

        return ChatCompletion(response, outcome=ChatOutcome.FALLBACK, model=self.fallback_model_name)
