"""
pagepilot/data_models/llms/interaction.py

Vendor-neutral shapes for LLM requests and responses.
"""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class ChatRole(StrEnum):
    """Role of a message sent to the LLM."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class LLMToolCall(BaseModel):
    """A function call requested by the model."""
    tool_name: str
    tool_arguments: dict[str, Any] = Field(default_factory=dict)
    call_id: str | None = None


class LLMChatResponse(BaseModel):
    """Normalized response from any vendor client."""
    content: str | None = Field(default=None, description="Concatenated text output")
    tool_calls: list[LLMToolCall] = Field(default_factory=list)
    response_id: str | None = Field(default=None, description="Vendor response id, if chaining is supported")
    parsed: Any | None = Field(default=None, description="Structured output when a response_model was given")
