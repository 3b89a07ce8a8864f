"""Conversation domain models.

A ``Conversation`` is owned by the conversation store and mutated in place by
the agent during a turn.  ``Message`` objects are frozen once created; the
message list itself is append-only (use :meth:`Conversation.add_message`).

Both models serialise with camelCase keys (``currentStep``, ``isCompleted``)
which is the shape the frontend consumes.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Role = Literal["user", "assistant", "system", "tool"]

SLOT_NAMES: tuple[str, ...] = ("name", "procedure", "unit", "date", "time")
MAX_STEP = len(SLOT_NAMES) - 1


class Message(BaseModel):
    """A single chat message."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    role: Role
    content: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


class Conversation(BaseModel):
    """Message history plus the slot-filling state of one patient chat."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    messages: list[Message] = Field(default_factory=list)
    slots: dict[str, str] = Field(default_factory=dict)
    current_step: int = Field(default=0, ge=0, le=MAX_STEP)
    is_completed: bool = False

    def add_message(self, role: Role, content: str) -> Message:
        message = Message(role=role, content=content)
        self.messages.append(message)
        return message

    def has_all_slots(self) -> bool:
        return all(name in self.slots for name in SLOT_NAMES)

    def summary(self) -> str:
        """One-line summary stored in vector memory after each turn."""
        filled = " ".join(f"{key}={value}" for key, value in self.slots.items())
        return f"Conversation {self.id}: {filled}".rstrip()
