"""
pagepilot/llms/anthropic_client.py

Anthropic vendor client over the Messages API.

The planner and navigator always ask for a pydantic model back. The Messages
API has no response-format parameter, so the model is requested as the input
of a forced `structured_output` tool.
"""

import asyncio
import random
from typing import Any, NamedTuple, TypeVar

from anthropic import AsyncAnthropic, APIStatusError, RateLimitError
from pydantic import BaseModel, ValidationError

from pagepilot.config import Config
from pagepilot.data_models.llms.interaction import LLMChatResponse, LLMToolCall
from pagepilot.data_models.llms.vendors import AnthropicModel, LLMVendor
from pagepilot.llms.abstract_llm_vendor_client import AbstractLLMVendorClient
from pagepilot.utils.logger import get_logger

logger = get_logger(name=__name__)


T = TypeVar("T", bound=BaseModel)

STRUCTURED_OUTPUT_TOOL: str = "structured_output"

# Reply to a trailing assistant turn, which the Messages API would otherwise
# treat as a prefill of the answer.
CONTINUE_PROMPT: str = "Continue."

_TRANSIENT_STATUS_CODES: frozenset[int] = frozenset({429, 500, 502, 503, 504, 529})
_TRANSIENT_ERROR_TYPES: frozenset[str] = frozenset({"overloaded_error", "api_error"})


class RetryPolicy(NamedTuple):
    """
    Exponential backoff for transient Messages API errors.
    """
    max_attempts: int = 5
    base_delay: float = 1.0     # seconds before the first retry
    max_delay: float = 60.0     # cap before jitter
    jitter: float = 0.5         # up to this fraction of the delay is added at random

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number `attempt` (0-based)."""
        delay = min(self.base_delay * (2 ** attempt), self.max_delay)
        return delay + delay * self.jitter * random.random()


def is_transient_error(error: Exception) -> bool:
    """Whether a Messages API error is worth retrying (rate limits, overload, server errors)."""
    if isinstance(error, RateLimitError):
        return True
    if not isinstance(error, APIStatusError):
        return False
    body = error.body if isinstance(error.body, dict) else {}
    error_info = body.get("error")
    if isinstance(error_info, dict) and error_info.get("type") in _TRANSIENT_ERROR_TYPES:
        return True
    return getattr(error, "status_code", None) in _TRANSIENT_STATUS_CODES


def inline_schema_refs(schema: dict[str, Any]) -> dict[str, Any]:
    """
    Return a copy of a pydantic JSON schema with every `#/$defs/...` reference
    replaced by its definition and the `$defs` table removed.

    Tool input schemas must be self-contained. A reference that cannot be
    resolved becomes a plain object schema.
    """
    definitions: dict[str, Any] = schema.get("$defs", {})

    def inline(node: Any) -> Any:
        if isinstance(node, list):
            return [inline(item) for item in node]
        if not isinstance(node, dict):
            return node
        ref = node.get("$ref")
        if isinstance(ref, str):
            name = ref.removeprefix("#/$defs/")
            if ref.startswith("#/$defs/") and name in definitions:
                return inline(definitions[name])
            logger.warning("Unresolvable schema reference %s", ref)
            return {"type": "object"}
        return {key: inline(value) for key, value in node.items() if key != "$defs"}

    return inline(schema)


class AnthropicClient(AbstractLLMVendorClient):
    """
    Vendor client for Anthropic models.

    Retries transient API errors according to its RetryPolicy; any other
    error is raised to the caller on the first attempt.
    """

    _vendor = LLMVendor.ANTHROPIC

    # Magic methods ________________________________________________________________________________________________________

    def __init__(self, model: AnthropicModel, retry_policy: RetryPolicy | None = None) -> None:
        super().__init__(model)
        self._async_client = AsyncAnthropic(api_key=Config.ANTHROPIC_API_KEY)
        self._retry_policy = retry_policy or RetryPolicy()
        logger.debug("Initialized AnthropicClient with model: %s", model)

    # Private methods ______________________________________________________________________________________________________

    @staticmethod
    def _structured_output_tool(response_model: type[BaseModel]) -> dict[str, Any]:
        return {
            "name": STRUCTURED_OUTPUT_TOOL,
            "description": f"Respond with a {response_model.__name__} object.",
            "input_schema": inline_schema_refs(response_model.model_json_schema()),
        }

    def _build_request(
        self,
        messages: list[dict[str, str]],
        system_prompt: str | None,
        max_tokens: int | None,
        temperature: float | None,
        response_model: type[BaseModel] | None,
    ) -> dict[str, Any]:
        """Translate a chat-style message list into Messages API arguments."""
        system_parts = [msg["content"] for msg in messages if msg["role"] == "system"]
        turns = [{"role": msg["role"], "content": msg["content"]} for msg in messages if msg["role"] != "system"]
        if turns and turns[-1]["role"] == "assistant":
            turns.append({"role": "user", "content": CONTINUE_PROMPT})

        request: dict[str, Any] = {
            "model": self.model.value,
            "messages": turns,
            "max_tokens": self._resolve_max_tokens(max_tokens),
            "temperature": self._resolve_temperature(temperature, structured=response_model is not None),
        }
        system = system_prompt or (system_parts[0] if system_parts else None)
        if system:
            request["system"] = system
        if response_model is not None:
            request["tools"] = [self._structured_output_tool(response_model)]
            request["tool_choice"] = {"type": "tool", "name": STRUCTURED_OUTPUT_TOOL}
        return request

    @staticmethod
    def _read_response(response: Any, response_model: type[T] | None) -> LLMChatResponse:
        """
        Collect text, tool calls and the structured output from a Messages API response.

        Raises:
            ValueError: If a structured response was requested and is missing or invalid.
        """
        text_parts: list[str] = []
        tool_calls: list[LLMToolCall] = []
        structured_input: Any = None

        for block in response.content:
            if block.type == "text":
                text_parts.append(block.text)
            elif block.type == "tool_use" and block.name == STRUCTURED_OUTPUT_TOOL:
                structured_input = block.input
            elif block.type == "tool_use":
                tool_calls.append(LLMToolCall(tool_name=block.name, tool_arguments=block.input, call_id=block.id))

        parsed = None
        if response_model is not None:
            if structured_input is None:
                raise ValueError(f"Anthropic response has no {STRUCTURED_OUTPUT_TOOL} tool call")
            try:
                parsed = response_model.model_validate(structured_input)
            except ValidationError as e:
                logger.error("Structured output does not match %s: %s", response_model.__name__, e)
                raise ValueError(f"Anthropic structured output does not match {response_model.__name__}: {e}") from e

        return LLMChatResponse(
            content="\n".join(text_parts) if text_parts else None,
            tool_calls=tool_calls,
            response_id=None,
            parsed=parsed,
        )

    # Public methods _______________________________________________________________________________________________________

    async def call_async(
        self,
        messages: list[dict[str, str]] | None = None,
        input: str | None = None,
        system_prompt: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        response_model: type[T] | None = None,
    ) -> LLMChatResponse:
        """
        Call the Messages API. See AbstractLLMVendorClient.call_async.

        Raises:
            ValueError: If neither messages nor input is given, or the structured output is unusable.
            anthropic.APIStatusError: When a non-transient error occurs or retries run out.
        """
        if messages is None:
            if input is None:
                raise ValueError("Either messages or input must be provided")
            messages = [{"role": "user", "content": input}]

        request = self._build_request(messages, system_prompt, max_tokens, temperature, response_model)
        policy = self._retry_policy

        attempt = 0
        while True:
            try:
                response = await self._async_client.messages.create(**request)
            except (APIStatusError, RateLimitError) as e:
                if not is_transient_error(e) or attempt + 1 >= policy.max_attempts:
                    raise
                delay = policy.delay_for(attempt)
                attempt += 1
                logger.warning(
                    "Anthropic API error (attempt %d/%d), retrying in %.1fs: %s",
                    attempt, policy.max_attempts, delay, e,
                )
                await asyncio.sleep(delay)
                continue
            return self._read_response(response, response_model)
