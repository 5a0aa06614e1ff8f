"""
pagepilot/llms/openai_client.py

OpenAI-specific LLM client implementation using the Responses API.
"""

from typing import Any, TypeVar

from openai import AsyncOpenAI
from pydantic import BaseModel

from pagepilot.config import Config
from pagepilot.data_models.llms.interaction import LLMChatResponse
from pagepilot.data_models.llms.vendors import LLMVendor, OpenAIModel
from pagepilot.llms.abstract_llm_vendor_client import AbstractLLMVendorClient
from pagepilot.utils.logger import get_logger

logger = get_logger(name=__name__)


T = TypeVar("T", bound=BaseModel)


class OpenAIClient(AbstractLLMVendorClient):
    """
    OpenAI-specific LLM client using the Responses API.
    """

    _vendor = LLMVendor.OPENAI

    # Magic methods ________________________________________________________________________________________________________

    def __init__(self, model: OpenAIModel) -> None:
        super().__init__(model)
        self._async_client = AsyncOpenAI(api_key=Config.OPENAI_API_KEY)
        logger.debug("Initialized OpenAIClient with model: %s", model)

    # Private methods ______________________________________________________________________________________________________

    def _build_responses_api_kwargs(
        self,
        messages: list[dict[str, Any]] | None,
        input_text: str | None,
        system_prompt: str | None,
        max_tokens: int | None,
    ) -> dict[str, Any]:
        """Build kwargs for Responses API call."""
        kwargs: dict[str, Any] = {
            "model": self.model.value,
            "max_output_tokens": self._resolve_max_tokens(max_tokens),
        }

        # Handle input
        if input_text:
            kwargs["input"] = input_text
        elif messages:
            kwargs["input"] = [
                {"role": msg["role"], "content": msg["content"]}
                for msg in messages
                if msg.get("role") != "system"
            ]
        else:
            raise ValueError("Either messages or input must be provided")

        # Always pass system prompt as instructions
        if system_prompt:
            kwargs["instructions"] = system_prompt

        return kwargs

    def _parse_responses_api_response(
        self,
        response: Any,
        response_model: type[T] | None,
    ) -> LLMChatResponse:
        """Parse response from Responses API."""
        content: str | None = None
        parsed = None

        for item in response.output or []:
            if item.type != "message" or not getattr(item, "content", None):
                continue
            text_parts = []
            for content_block in item.content:
                if content_block.type == "output_text":
                    text_parts.append(content_block.text)
                # Extract parsed model if available
                if response_model is not None and getattr(content_block, "parsed", None):
                    parsed = content_block.parsed
            if text_parts:
                content = "".join(text_parts)

        # If response_model provided but not auto-parsed, manually parse from JSON content
        if response_model is not None and parsed is None and content:
            try:
                parsed = response_model.model_validate_json(content)
            except Exception as e:
                logger.error("Failed to parse JSON content into %s: %s", response_model.__name__, e)
                raise ValueError(f"Failed to parse structured response from OpenAI Responses API: {e}")

        if response_model is not None and parsed is None:
            raise ValueError("Failed to parse structured response from OpenAI Responses API: no content returned")

        return LLMChatResponse(
            content=content,
            response_id=response.id,
            parsed=parsed,
        )

    # Public methods _______________________________________________________________________________________________________

    async def call_async(
        self,
        messages: list[dict[str, str]] | None = None,
        input: str | None = None,
        system_prompt: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,  # noqa: ARG002 - reserved for future use
        response_model: type[T] | None = None,
    ) -> LLMChatResponse:
        """
        Async call to OpenAI using the Responses API.

        Args:
            messages: List of message dicts with 'role' and 'content' keys.
            input: Input string (Responses API shorthand).
            system_prompt: Optional system prompt for context.
            max_tokens: Maximum tokens in the response.
            temperature: Sampling temperature (0.0-1.0).
            response_model: Pydantic model class for structured response.

        Returns:
            LLMChatResponse. If response_model is provided, the parsed model is in response.parsed.
        """
        kwargs = self._build_responses_api_kwargs(messages, input, system_prompt, max_tokens)

        if response_model is not None:
            # Use responses.parse() with text_format for automatic schema handling
            response = await self._async_client.responses.parse(
                **kwargs,
                text_format=response_model,
            )
        else:
            response = await self._async_client.responses.create(**kwargs)

        return self._parse_responses_api_response(response, response_model)
