"""
pagepilot/agents/transcript.py

Append-only message history shared by the planner, the navigator and the UI.
"""

from typing import Callable

from pagepilot.data_models.llms.interaction import ChatRole
from pagepilot.data_models.messages import Actor, Message
from pagepilot.utils.logger import get_logger

logger = get_logger(name=__name__)


# LLM chat role for each transcript actor; agent messages are replayed as assistant turns.
_ACTOR_TO_ROLE: dict[Actor, ChatRole] = {
    Actor.SYSTEM: ChatRole.USER,
    Actor.USER: ChatRole.USER,
    Actor.PLANNER: ChatRole.ASSISTANT,
    Actor.NAVIGATOR: ChatRole.ASSISTANT,
}


class Transcript:
    """
    Ordered, append-only list of messages.

    Messages are immutable once added; observers are notified of each new message.
    """

    def __init__(self) -> None:
        self._messages: list[Message] = []
        self._observers: list[Callable[[Message], None]] = []

    def __len__(self) -> int:
        return len(self._messages)

    @property
    def messages(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    def add_message(self, actor: Actor, content: str) -> Message:
        """Append a message and return it."""
        message = Message(actor=actor, content=content)
        self._messages.append(message)
        logger.debug("Transcript += [%s] %s", actor, content[:120])
        for observer in list(self._observers):
            observer(message)
        return message

    def observe(self, observer: Callable[[Message], None]) -> Callable[[], None]:
        """Register a callback for new messages. Returns a callable that removes it."""
        self._observers.append(observer)

        def remove() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return remove

    def to_llm_messages(self) -> list[dict[str, str]]:
        """
        Render the history as chat messages for an LLM call.

        Each message is prefixed with its actor so the model can tell the planner
        and the navigator apart. Consecutive messages with the same role are merged.
        """
        llm_messages: list[dict[str, str]] = []
        for message in self._messages:
            role = _ACTOR_TO_ROLE[message.actor].value
            text = f"[{message.actor.value}] {message.content}"
            if llm_messages and llm_messages[-1]["role"] == role:
                llm_messages[-1]["content"] += "\n\n" + text
            else:
                llm_messages.append({"role": role, "content": text})
        return llm_messages
