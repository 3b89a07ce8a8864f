"""LangGraph pipeline that runs one conversation turn.

Architecture:
  Each user message is processed by a small StateGraph:

    1. **retrieve_knowledge** — vector-memory lookup for the user text
    2. **chatbot**            — chat completion with the three scheduling tools
    3. **tools**              — executes the requested tool calls (once)
    4. **respond**            — final completion that sees the tool results
    5. **update_state**       — stores the reply, runs slot filling / step logic
    6. **remember**           — upserts a conversation summary to vector memory

  Routing:
    retrieve_knowledge → chatbot → (has tool calls?) → tools → respond → update_state
                                 → (no tool calls?)  ─────────────────→ update_state
    update_state → remember → END

  Only one round of tools is allowed per turn: ``respond`` never routes back
  to ``tools``, and any tool calls it returns are ignored.

  State:
    The conversation itself lives in the :class:`ConversationStore`; the graph
    state only carries the per-turn working set, so no checkpointer is used.
    Turns on the same conversation are serialised by the store's lock.
"""

from __future__ import annotations

import logging
from typing import Annotated

from langchain_core.messages import (
    AIMessage,
    AnyMessage,
    HumanMessage,
    SystemMessage,
    ToolMessage,
)
from langgraph.graph import END, StateGraph
from langgraph.graph.message import add_messages
from typing_extensions import TypedDict

from clinic_agent.config import SLOT_LANGUAGE
from clinic_agent.models import Conversation
from clinic_agent.prompts import get_system_prompt
from clinic_agent.services.chat_client import ChatCompletionClient
from clinic_agent.services.conversation_store import ConversationStore, InMemoryConversationStore
from clinic_agent.services.embeddings import EmbeddingClient
from clinic_agent.services.vector_memory import VectorMemoryClient
from clinic_agent.state_tracker import ConversationStateTracker, rules_for_language
from clinic_agent.tools.scheduling import ToolDispatcher

logger = logging.getLogger(__name__)


# ── State schema ─────────────────────────────────────────────────────


class TurnState(TypedDict):
    """Working set of a single turn.

    ``messages`` is the request history sent to the chat model: the system
    prompt, the conversation so far, the model's reply and, after the tools
    node, one ``ToolMessage`` per tool call.  It uses the LangGraph
    ``add_messages`` reducer so nodes append instead of overwriting.  Tool
    traffic is never copied into the conversation itself.
    """

    conversation: Conversation
    user_message: str
    knowledge: str
    messages: Annotated[list[AnyMessage], add_messages]
    reply: str
    remembered: bool


_MESSAGE_TYPES = {"user": HumanMessage, "assistant": AIMessage, "system": SystemMessage}


def _history_messages(conversation: Conversation) -> list[AnyMessage]:
    return [
        _MESSAGE_TYPES[m.role](content=m.content)
        for m in conversation.messages
        if m.role in _MESSAGE_TYPES
    ]


def _requested_calls(message: AnyMessage) -> list[tuple[str, str | dict, str]]:
    """``(name, arguments, id)`` for every tool call on *message*, parsed or not."""
    calls: list[tuple[str, str | dict, str]] = [
        (call["name"], call["args"], call["id"] or "")
        for call in getattr(message, "tool_calls", None) or []
    ]
    # Arguments that failed JSON parsing stay raw so the dispatcher rejects them
    calls.extend(
        (call["name"] or "", call["args"] or "", call["id"] or "")
        for call in getattr(message, "invalid_tool_calls", None) or []
    )
    return calls


# ── Nodes ────────────────────────────────────────────────────────────


def _make_retrieve_node(memory: VectorMemoryClient):
    def retrieve_knowledge(state: TurnState) -> dict:
        """Fetch related snippets from vector memory (``""`` when unavailable)."""
        return {"knowledge": memory.query(state["user_message"])}

    return retrieve_knowledge


def _make_chatbot_node(
    chat: ChatCompletionClient,
    dispatcher: ToolDispatcher,
    tracker: ConversationStateTracker,
):
    def chatbot(state: TurnState) -> dict:
        """First completion: full history plus the scheduling tools."""
        conversation = state["conversation"]
        system = SystemMessage(
            content=get_system_prompt(
                tracker.step_description(conversation),
                conversation.slots,
                state["knowledge"],
            )
        )
        request = [system, *_history_messages(conversation)]

        result = chat.complete(request, dispatcher.tools)
        if result.degraded:
            logger.warning(
                "Conversation %s: degraded completion (%s)", conversation.id, result.outcome,
            )
        return {"messages": [*request, result.message], "reply": result.content}

    return chatbot


def _make_tools_node(dispatcher: ToolDispatcher):
    def tools(state: TurnState) -> dict:
        """Run every requested tool once; one ``ToolMessage`` per call."""
        calls = _requested_calls(state["messages"][-1])
        logger.info("Tool calls requested: %s", ", ".join(name for name, _, _ in calls))
        return {
            "messages": [
                ToolMessage(content=dispatcher.execute(name, arguments), tool_call_id=call_id)
                for name, arguments, call_id in calls
            ]
        }

    return tools


def _make_respond_node(chat: ChatCompletionClient, dispatcher: ToolDispatcher):
    def respond(state: TurnState) -> dict:
        """Final completion after the tool round; further tool calls are dropped."""
        result = chat.complete(state["messages"], dispatcher.tools)
        if result.tool_calls or result.invalid_tool_calls:
            logger.info(
                "Ignoring %d tool call(s) after the tool round",
                len(result.tool_calls) + len(result.invalid_tool_calls),
            )
        return {"reply": result.content}

    return respond


def _make_update_state_node(tracker: ConversationStateTracker):
    def update_state(state: TurnState) -> dict:
        conversation = state["conversation"]
        conversation.add_message("assistant", state["reply"])
        tracker.update(conversation, state["user_message"])
        return {}

    return update_state


def _make_remember_node(memory: VectorMemoryClient):
    def remember(state: TurnState) -> dict:
        conversation = state["conversation"]
        return {"remembered": memory.upsert(conversation.summary(), conversation.id)}

    return remember


# ── Conditional edges ────────────────────────────────────────────────


def should_use_tools(state: TurnState) -> str:
    """Route to the tools node only when the first completion asked for tools."""
    messages = state.get("messages") or []
    if messages and _requested_calls(messages[-1]):
        return "tools"
    return "update_state"


# ── Graph assembly ───────────────────────────────────────────────────


def build_turn_graph(
    chat: ChatCompletionClient,
    memory: VectorMemoryClient,
    dispatcher: ToolDispatcher,
    tracker: ConversationStateTracker,
):
    """Build and compile the per-turn StateGraph."""
    graph = StateGraph(TurnState)

    graph.add_node("retrieve_knowledge", _make_retrieve_node(memory))
    graph.add_node("chatbot", _make_chatbot_node(chat, dispatcher, tracker))
    graph.add_node("tools", _make_tools_node(dispatcher))
    graph.add_node("respond", _make_respond_node(chat, dispatcher))
    graph.add_node("update_state", _make_update_state_node(tracker))
    graph.add_node("remember", _make_remember_node(memory))

    graph.set_entry_point("retrieve_knowledge")
    graph.add_edge("retrieve_knowledge", "chatbot")
    graph.add_conditional_edges(
        "chatbot", should_use_tools, {"tools": "tools", "update_state": "update_state"},
    )
    graph.add_edge("tools", "respond")
    graph.add_edge("respond", "update_state")
    graph.add_edge("update_state", "remember")
    graph.add_edge("remember", END)

    return graph.compile()


class ConversationAgent:
    """Entry point used by the HTTP routes and the CLI."""

    def __init__(
        self,
        store: ConversationStore,
        chat: ChatCompletionClient,
        memory: VectorMemoryClient,
        *,
        dispatcher: ToolDispatcher | None = None,
        tracker: ConversationStateTracker | None = None,
    ):
        self.store = store
        self.tracker = tracker or ConversationStateTracker()
        self.dispatcher = dispatcher or ToolDispatcher()
        self._graph = build_turn_graph(chat, memory, self.dispatcher, self.tracker)

    def process_message(self, conversation_id: str, user_message: str) -> str:
        """Run one turn and return the assistant's reply.

        Raises ``KeyError`` if *conversation_id* is unknown.
        """
        conversation = self.store.get(conversation_id)
        if conversation is None:
            raise KeyError(conversation_id)

        with self.store.lock(conversation_id):
            logger.info("Processing message for conversation %s", conversation_id)
            conversation.add_message("user", user_message)
            result = self._graph.invoke(
                {
                    "conversation": conversation,
                    "user_message": user_message,
                    "knowledge": "",
                    "messages": [],
                    "reply": "",
                    "remembered": False,
                }
            )

        logger.info(
            "Conversation %s updated. Step: %d, slots: %s",
            conversation_id, conversation.current_step, conversation.slots,
        )
        return result["reply"]


def create_clinic_agent(store: ConversationStore | None = None) -> ConversationAgent:
    """Wire the agent with provider clients built from configuration."""
    chat = ChatCompletionClient()
    memory = VectorMemoryClient(EmbeddingClient())
    tracker = ConversationStateTracker(rules_for_language(SLOT_LANGUAGE))
    agent = ConversationAgent(
        store or InMemoryConversationStore(), chat, memory, tracker=tracker,
    )
    logger.debug(
        "Clinic agent ready — chat configured: %s, memory configured: %s",
        chat.configured, memory.configured,
    )
    return agent
