"""Pydantic schemas for the FastAPI endpoints.

The frontend speaks camelCase (``conversationId``); fields are declared in
snake_case and aliased.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StartConversationResponse(_CamelModel):
    conversation_id: str = Field(..., description="Identifier to use in subsequent calls")


class SendMessageRequest(_CamelModel):
    """Incoming chat message.

    Both fields are optional at the schema level so that a missing field
    yields the endpoint's own 400 rather than a 422 validation error.
    """

    conversation_id: str | None = Field(default=None, description="Conversation identifier")
    message: str | None = Field(default=None, description="The patient's message")


class SendMessageResponse(_CamelModel):
    response: str = Field(..., description="The agent's reply")


class EchoResponse(_CamelModel):
    """Diagnostic echo of a request body."""

    received: bool
    conversation_id: str | None = None
    message: str | None = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    service: str = "clinic-sdr-agent"
