"""LangChain tools for the clinic scheduling flow.

These are *mocks*: each tool returns a canned, human-readable string
simulating the clinic's scheduling system so the LLM can phrase its answer
to the patient.  No external system is contacted.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from langchain_core.tools import BaseTool, tool
from langchain_core.utils.function_calling import convert_to_openai_tool
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

AVAILABLE_TIMES: tuple[str, ...] = ("09:00", "10:00", "14:00", "15:00")
UNKNOWN_TOOL_REPLY = "Function not recognized."


# ── Argument schemas ─────────────────────────────────────────────────


class CheckAvailabilityArgs(BaseModel):
    procedure: str = Field(..., description="Type of procedure requested")
    unit: str = Field(..., description="Clinic unit")
    date: str = Field(..., description="Desired date (YYYY-MM-DD)")


class AppointmentArgs(BaseModel):
    name: str = Field(..., description="Patient's name")
    procedure: str = Field(..., description="Type of procedure")
    unit: str = Field(..., description="Clinic unit")
    date: str = Field(..., description="Appointment date")
    time: str = Field(..., description="Appointment time")


# ── Tool 1: Check availability ───────────────────────────────────────


@tool(args_schema=CheckAvailabilityArgs)
def check_availability(procedure: str, unit: str, date: str) -> str:
    """Check the available time slots for a procedure at a specific clinic unit."""
    return (
        f"Available times for {procedure} at {unit} on {date}: "
        f"{', '.join(AVAILABLE_TIMES)}"
    )


# ── Tool 2: Schedule an appointment ──────────────────────────────────


@tool(args_schema=AppointmentArgs)
def schedule_appointment(name: str, procedure: str, unit: str, date: str, time: str) -> str:
    """Schedule a procedure for the patient."""
    return f"Appointment confirmed for {name}: {procedure} at {unit} on {date} at {time}."


# ── Tool 3: Send the confirmation message ────────────────────────────


@tool(args_schema=AppointmentArgs)
def send_confirmation(name: str, procedure: str, unit: str, date: str, time: str) -> str:
    """Send a confirmation message to the patient."""
    return (
        f"Confirmation sent to {name} via SMS/WhatsApp: {procedure} appointment "
        f"at {unit} on {date} at {time}."
    )


ALL_TOOLS: list[BaseTool] = [check_availability, schedule_appointment, send_confirmation]


class ToolDispatcher:
    """Maps a tool-call name plus arguments to one of the mock tools.

    Arguments arrive either parsed (``dict``, as LangChain tool calls carry
    them) or as the raw JSON string the model produced.  Malformed arguments
    are not caught here: ``json.JSONDecodeError`` or a pydantic
    ``ValidationError`` propagates to the caller.
    """

    def __init__(self, tools: list[BaseTool] | None = None) -> None:
        self._tools = {t.name: t for t in (tools if tools is not None else ALL_TOOLS)}

    @property
    def tools(self) -> list[BaseTool]:
        """The tools to bind to the chat model."""
        return list(self._tools.values())

    @property
    def definitions(self) -> list[dict]:
        """Tool descriptors in the chat provider's function-calling format."""
        return [convert_to_openai_tool(t) for t in self._tools.values()]

    def execute(self, name: str, arguments: str | dict[str, Any]) -> str:
        selected = self._tools.get(name)
        if selected is None:
            logger.warning("LLM requested unknown tool %r", name)
            return UNKNOWN_TOOL_REPLY

        if isinstance(arguments, str):
            arguments = json.loads(arguments) if arguments else {}
        result = selected.invoke(arguments)
        logger.info("Tool %s executed", name)
        return result
