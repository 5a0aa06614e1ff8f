"""
pagepilot/panels/message_view.py

Display model for transcript messages.
"""

from datetime import datetime, timedelta

from pydantic import BaseModel, Field

from pagepilot.data_models.messages import Actor, Message
from pagepilot.utils.code_provenance import (
    decode_executed_code,
    is_code_execution_outcome,
    strip_executed_code,
)


class MessageView(BaseModel):
    """What the message list renders for one message."""
    actor: Actor
    display_text: str = Field(description="Content with any executed-code block removed")
    timestamp_label: str
    can_save_as_favorite: bool = Field(description="Whether to offer the save-as-favorite button")
    code: str | None = Field(default=None, description="Decoded code to pre-fill the save dialog with")


def format_timestamp(timestamp_ms: int, now: datetime | None = None) -> str:
    """
    Format a message timestamp relative to now.

    Today: `14:05`; yesterday: `Yesterday, 14:05`; this year: `Mar 3, 14:05`;
    otherwise `Mar 3, 2023, 14:05`.
    """
    moment = datetime.fromtimestamp(timestamp_ms / 1000)
    now = now or datetime.now()
    time_part = moment.strftime("%H:%M")
    day_part = f"{moment.strftime('%b')} {moment.day}"

    if moment.date() == now.date():
        return time_part
    if moment.date() == (now - timedelta(days=1)).date():
        return f"Yesterday, {time_part}"
    if moment.year == now.year:
        return f"{day_part}, {time_part}"
    return f"{day_part}, {moment.year}, {time_part}"


def build_message_view(message: Message, now: datetime | None = None) -> MessageView:
    """
    Build the display model of a message.

    Navigator messages reporting a code execution (successful or not) offer
    saving as a favorite. Messages without an executed-code block still offer
    it; the dialog then opens empty.
    """
    code = decode_executed_code(message.content)
    can_save = message.actor == Actor.NAVIGATOR and (
        code is not None or is_code_execution_outcome(message.content)
    )
    return MessageView(
        actor=message.actor,
        display_text=strip_executed_code(message.content),
        timestamp_label=format_timestamp(message.timestamp, now=now),
        can_save_as_favorite=can_save,
        code=code if can_save else None,
    )
