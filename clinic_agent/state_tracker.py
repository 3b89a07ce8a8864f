"""Keyword-driven slot filling and step tracking for the scheduling flow.

The flow has five scripted stages (see ``STEP_DESCRIPTIONS``).  After every
user message the tracker:

1. fills any still-empty slot whose trigger phrase appears in the message
   (case-insensitive substring match),
2. advances ``current_step`` by at most one when the number of filled slots
   reaches ``current_step + 1``,
3. marks the conversation completed once the last step is reached with all
   five slots present.

Slots are never cleared or corrected.  Extraction is deliberately naive:
the trigger phrases, vocabularies and fallback values live in ``SlotRule``
records so a deployment can swap the rule set (see ``RULE_SETS``) or plug in
its own rules without touching the tracker.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import date, timedelta

from clinic_agent.models import MAX_STEP, SLOT_NAMES, Conversation

logger = logging.getLogger(__name__)

STEP_DESCRIPTIONS: tuple[str, ...] = (
    "1. Initial reception: greet the patient and introduce yourself as the clinic's assistant.",
    "2. Collect name and desired procedure: ask for the patient's name and procedure.",
    "3. Confirm unit and available times: confirm the clinic unit and show time slots.",
    "4. Availability check: verify that the chosen time is available.",
    "5. Scheduling: book the procedure and send the confirmation.",
)

_TRAILING_PUNCT = ".,;:!?\"')"


def _tomorrow() -> str:
    return (date.today() + timedelta(days=1)).isoformat()


@dataclass(frozen=True)
class SlotRule:
    """How one slot is detected and filled.

    ``triggers`` decide *whether* the rule fires.  The value is then taken
    from, in order: the token following the trigger (``capture_next_token``),
    the first ``vocabulary`` keyword found in the message, or ``fallback``
    (a string or a zero-arg callable).
    """

    slot: str
    triggers: tuple[str, ...]
    vocabulary: tuple[tuple[str, str], ...] = ()
    fallback: str | Callable[[], str] | None = None
    capture_next_token: bool = False
    _patterns: tuple[re.Pattern[str], ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        patterns = tuple(
            re.compile(re.escape(trigger) + r"\s*(\S*)", re.IGNORECASE)
            for trigger in self.triggers
        )
        object.__setattr__(self, "_patterns", patterns)

    def matches(self, message: str) -> bool:
        lowered = message.lower()
        return any(trigger.lower() in lowered for trigger in self.triggers)

    def extract(self, message: str) -> str:
        """Return the slot value for *message*, or ``""`` when none applies."""
        if self.capture_next_token:
            for pattern in self._patterns:
                match = pattern.search(message)
                if match:
                    return match.group(1).rstrip(_TRAILING_PUNCT)
            return ""

        lowered = message.lower()
        for keyword, label in self.vocabulary:
            if keyword in lowered:
                return label

        if callable(self.fallback):
            return self.fallback()
        return self.fallback or ""


# ── Built-in rule sets ───────────────────────────────────────────────

ENGLISH_RULES: tuple[SlotRule, ...] = (
    SlotRule("name", ("my name is", "i am"), capture_next_token=True),
    SlotRule(
        "procedure",
        ("procedure", "consultation"),
        vocabulary=(("cleaning", "Dental Cleaning"), ("consultation", "General Consultation")),
        fallback="Unspecified procedure",
    ),
    SlotRule(
        "unit",
        ("unit",),
        vocabulary=(("central", "Central Unit"), ("north", "North Unit")),
        fallback="Central Unit",
    ),
    SlotRule("date", ("day", "date"), fallback=_tomorrow),
    SlotRule("time", ("time",), fallback="10:00"),
)

PORTUGUESE_RULES: tuple[SlotRule, ...] = (
    SlotRule("name", ("meu nome é", "eu sou"), capture_next_token=True),
    SlotRule(
        "procedure",
        ("procedimento", "consulta"),
        vocabulary=(("limpeza", "Limpeza Dental"), ("consulta", "Consulta Geral")),
        fallback="Procedimento não especificado",
    ),
    SlotRule(
        "unit",
        ("unidade",),
        vocabulary=(("central", "Unidade Central"), ("norte", "Unidade Norte")),
        fallback="Unidade Central",
    ),
    SlotRule("date", ("dia", "data"), fallback=_tomorrow),
    SlotRule("time", ("horário",), fallback="10:00"),
)

RULE_SETS: dict[str, tuple[SlotRule, ...]] = {
    "en": ENGLISH_RULES,
    "pt": PORTUGUESE_RULES,
}


def rules_for_language(language: str) -> tuple[SlotRule, ...]:
    """Return the built-in rule set for *language*, defaulting to English."""
    rules = RULE_SETS.get(language.lower())
    if rules is None:
        logger.warning("Unknown slot language %r, falling back to 'en'", language)
        return ENGLISH_RULES
    return rules


class ConversationStateTracker:
    """Applies slot rules to a conversation after each user message."""

    def __init__(self, rules: Sequence[SlotRule] = ENGLISH_RULES) -> None:
        unknown = {rule.slot for rule in rules} - set(SLOT_NAMES)
        if unknown:
            raise ValueError(f"Unknown slot name(s) in rules: {sorted(unknown)}")
        self._rules = tuple(rules)

    def update(self, conversation: Conversation, user_message: str) -> None:
        """Fill slots from *user_message* and advance the step counter."""
        for rule in self._rules:
            if rule.slot in conversation.slots or not rule.matches(user_message):
                continue
            value = rule.extract(user_message)
            if value:
                conversation.slots[rule.slot] = value
                logger.debug("Slot %s filled for %s: %r", rule.slot, conversation.id, value)

        if (
            conversation.current_step < MAX_STEP
            and len(conversation.slots) >= conversation.current_step + 1
        ):
            conversation.current_step += 1

        if conversation.current_step == MAX_STEP and conversation.has_all_slots():
            conversation.is_completed = True

    @staticmethod
    def step_description(conversation: Conversation) -> str:
        return STEP_DESCRIPTIONS[conversation.current_step]
