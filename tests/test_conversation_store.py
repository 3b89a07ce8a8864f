"""Tests for the in-memory conversation store and the conversation model."""

from __future__ import annotations

import threading

import pytest
from pydantic import ValidationError

from clinic_agent.models import Conversation, Message
from clinic_agent.services.conversation_store import InMemoryConversationStore


class TestInMemoryConversationStore:
    def test_create_registers_conversation(self):
        store = InMemoryConversationStore()
        conversation = store.create()
        assert store.get(conversation.id) is conversation
        assert len(store) == 1

    def test_new_conversation_starts_empty(self):
        conversation = InMemoryConversationStore().create()
        assert conversation.messages == []
        assert conversation.slots == {}
        assert conversation.current_step == 0
        assert conversation.is_completed is False

    def test_get_unknown_returns_none(self):
        assert InMemoryConversationStore().get("missing") is None

    def test_lock_is_stable_per_conversation(self):
        store = InMemoryConversationStore()
        first, second = store.create(), store.create()
        assert store.lock(first.id) is store.lock(first.id)
        assert store.lock(first.id) is not store.lock(second.id)

    def test_lock_for_unknown_conversation_raises(self):
        with pytest.raises(KeyError):
            InMemoryConversationStore().lock("missing")

    def test_concurrent_creates_are_all_registered(self):
        store = InMemoryConversationStore()
        threads = [threading.Thread(target=store.create) for _ in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(store) == 20


class TestConversationModel:
    def test_messages_are_immutable(self):
        message = Message(role="user", content="hi")
        with pytest.raises(ValidationError):
            message.content = "changed"

    def test_add_message_appends_in_order(self):
        conversation = Conversation()
        conversation.add_message("user", "one")
        conversation.add_message("assistant", "two")
        assert [m.content for m in conversation.messages] == ["one", "two"]
        assert conversation.messages[0].timestamp <= conversation.messages[1].timestamp

    def test_summary_lists_filled_slots(self):
        conversation = Conversation(id="abc", slots={"name": "João", "unit": "Central Unit"})
        assert conversation.summary() == "Conversation abc: name=João unit=Central Unit"

    def test_serialises_with_camel_case_keys(self):
        data = Conversation(id="abc").model_dump(by_alias=True)
        assert {"id", "messages", "slots", "currentStep", "isCompleted"} == set(data)
