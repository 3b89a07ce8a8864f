"""FastAPI route definitions for the clinic SDR agent API."""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Body, HTTPException, Request

from clinic_agent.api.schemas import (
    EchoResponse,
    HealthResponse,
    SendMessageRequest,
    SendMessageResponse,
    StartConversationResponse,
)
from clinic_agent.models import Conversation

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_agent(request: Request):
    """Retrieve the conversation agent from app state (set in the lifespan)."""
    agent = getattr(request.app.state, "agent", None)
    if agent is None:
        raise HTTPException(
            status_code=503,
            detail="The agent is still starting up. Please try again in a moment.",
        )
    return agent


# ── Endpoints ────────────────────────────────────────────────────────


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse()


@router.post("/chat/start", response_model=StartConversationResponse)
async def start_conversation(http_request: Request):
    """Start a new conversation and return its identifier."""
    agent = _get_agent(http_request)
    conversation = agent.store.create()
    return StartConversationResponse(conversation_id=conversation.id)


@router.post("/chat/send", response_model=SendMessageResponse)
async def send_message(
    http_request: Request,
    request: SendMessageRequest | None = Body(default=None),
):
    """Send a patient message and get the agent's reply.

    Validation happens before any state is touched, so a 400 or 404 never
    mutates a conversation.  The turn itself is blocking (provider calls over
    ``httpx``) and is offloaded to a worker thread.
    """
    if request is None:
        raise HTTPException(status_code=400, detail="Request body is required")
    if not request.conversation_id:
        raise HTTPException(status_code=400, detail="ConversationId is required")
    if not request.message:
        raise HTTPException(status_code=400, detail="Message is required")

    agent = _get_agent(http_request)
    if agent.store.get(request.conversation_id) is None:
        raise HTTPException(status_code=404, detail="Conversation not found")

    request_id = getattr(http_request.state, "request_id", "?")
    try:
        reply = await asyncio.to_thread(
            agent.process_message, request.conversation_id, request.message,
        )
    except Exception as e:
        # Full traceback stays server-side; the client gets a generic message.
        logger.exception("[%s] Error processing chat message", request_id)
        raise HTTPException(
            status_code=500,
            detail="An internal error occurred. Please try again.",
        ) from e

    return SendMessageResponse(response=reply)


@router.post("/chat/test", response_model=EchoResponse)
async def echo(request: SendMessageRequest | None = Body(default=None)):
    """Diagnostic endpoint: echo whether a body arrived and its fields."""
    return EchoResponse(
        received=request is not None,
        conversation_id=request.conversation_id if request else None,
        message=request.message if request else None,
    )


@router.get("/chat/{conversation_id}", response_model=Conversation)
async def get_conversation(conversation_id: str, http_request: Request):
    """Return the full conversation (messages, slots, step, completion flag)."""
    agent = _get_agent(http_request)
    conversation = agent.store.get(conversation_id)
    if conversation is None:
        raise HTTPException(status_code=404, detail="Conversation not found")

    def snapshot() -> Conversation:
        # A running turn holds this lock while it mutates the conversation
        with agent.store.lock(conversation_id):
            return conversation.model_copy(deep=True)

    return await asyncio.to_thread(snapshot)
