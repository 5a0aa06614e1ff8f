"""
pagepilot/data_models/messages.py

Transcript messages exchanged between the user, the agents and the UI.
"""

import time
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


def now_ms() -> int:
    """Current wall-clock time as epoch milliseconds."""
    return int(time.time() * 1000)


class Actor(StrEnum):
    """Who produced a message."""
    SYSTEM = "system"
    USER = "user"
    PLANNER = "planner"
    NAVIGATOR = "navigator"


class Message(BaseModel):
    """
    Immutable transcript entry.

    Navigator action-result messages may carry an executed-code block in
    `content` (see pagepilot.utils.code_provenance); display code must strip
    it, code recovery must decode it.
    """
    model_config = ConfigDict(frozen=True)

    actor: Actor = Field(description="Producer of the message")
    content: str = Field(description="Message text, possibly with an executed-code block")
    timestamp: int = Field(default_factory=now_ms, description="Creation time in epoch milliseconds")
