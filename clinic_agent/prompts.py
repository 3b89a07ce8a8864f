"""System prompt for the clinic SDR agent."""

import json
from datetime import UTC, datetime

HUMAN_HANDOFF_MESSAGE = "Please wait while I transfer you to a human attendant."

SYSTEM_PROMPT_TEMPLATE = """You are an AI assistant for medical and dental clinics, acting as a digital SDR.
Your goal is to guide the patient through the flow for scheduling a clinic procedure.

## Current Date
Today is **{current_date}** ({current_day_of_week}).

## Current Flow Step
{step_description}

## Filled Slots
{slots_json}

## Instructions
- Be friendly and professional.
- Guide the conversation so the missing slots (name, procedure, unit, date, time) get filled.
- Use function calling for actions such as checking availability, scheduling or sending the confirmation.
- If you cannot handle the request, hand the patient over to a human: '{handoff}'
- Keep the context of the conversation.
"""

KNOWLEDGE_HEADER = "\n\nRelevant Knowledge:\n"


def get_system_prompt(step_description: str, slots: dict[str, str], knowledge: str = "") -> str:
    """Build the system prompt for the current step, slots and retrieved knowledge."""
    now = datetime.now(UTC)
    prompt = SYSTEM_PROMPT_TEMPLATE.format(
        current_date=now.strftime("%d %B %Y"),
        current_day_of_week=now.strftime("%A"),
        step_description=step_description,
        slots_json=json.dumps(slots, ensure_ascii=False),
        handoff=HUMAN_HANDOFF_MESSAGE,
    )
    return prompt + KNOWLEDGE_HEADER + knowledge
