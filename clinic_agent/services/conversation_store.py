"""Conversation registry.

The HTTP layer and the agent only talk to the :class:`ConversationStore`
interface.  The in-memory implementation keeps conversations for the
lifetime of the process and hands out one lock per conversation so that
two concurrent turns on the same id are serialised instead of racing on the
slot map.
"""

from __future__ import annotations

import abc
import logging
import threading

from clinic_agent.models import Conversation

logger = logging.getLogger(__name__)


class ConversationStore(abc.ABC):
    """Key-value access to conversations by id."""

    @abc.abstractmethod
    def create(self) -> Conversation:
        """Create, register and return a fresh conversation."""

    @abc.abstractmethod
    def get(self, conversation_id: str) -> Conversation | None:
        """Return the conversation or ``None`` if the id is unknown."""

    @abc.abstractmethod
    def lock(self, conversation_id: str) -> threading.Lock:
        """Return the exclusive lock guarding mutations of one conversation."""


class InMemoryConversationStore(ConversationStore):
    """Process-local store; conversations disappear on restart."""

    def __init__(self) -> None:
        self._conversations: dict[str, Conversation] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def create(self) -> Conversation:
        conversation = Conversation()
        with self._registry_lock:
            self._conversations[conversation.id] = conversation
            self._locks[conversation.id] = threading.Lock()
        logger.info("Started conversation %s", conversation.id)
        return conversation

    def get(self, conversation_id: str) -> Conversation | None:
        return self._conversations.get(conversation_id)

    def lock(self, conversation_id: str) -> threading.Lock:
        with self._registry_lock:
            if conversation_id not in self._locks:
                raise KeyError(conversation_id)
            return self._locks[conversation_id]

    def __len__(self) -> int:
        return len(self._conversations)
