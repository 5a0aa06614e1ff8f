"""
pagepilot/llms/llm_client.py

Vendor-agnostic LLM client used by the planner and the navigator.
"""

from typing import TypeVar

from pydantic import BaseModel

from pagepilot.data_models.llms.interaction import LLMChatResponse
from pagepilot.data_models.llms.vendors import LLMModel
from pagepilot.llms.abstract_llm_vendor_client import AbstractLLMVendorClient
# Vendor clients must be imported so AbstractLLMVendorClient can discover them
from pagepilot.llms.anthropic_client import AnthropicClient  # noqa: F401
from pagepilot.llms.openai_client import OpenAIClient  # noqa: F401
from pagepilot.utils.exceptions import LLMStructuredOutputError

T = TypeVar("T", bound=BaseModel)


class LLMClient:
    """Thin facade that dispatches to the vendor client for a model."""

    def __init__(self, llm_model: LLMModel) -> None:
        self.llm_model = llm_model
        self._vendor_client = AbstractLLMVendorClient.get_llm_vendor_client(llm_model)

    async def call_async(
        self,
        messages: list[dict[str, str]] | None = None,
        input: str | None = None,
        system_prompt: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        response_model: type[BaseModel] | None = None,
    ) -> LLMChatResponse:
        """Forward a call to the vendor client. See AbstractLLMVendorClient.call_async."""
        return await self._vendor_client.call_async(
            messages=messages,
            input=input,
            system_prompt=system_prompt,
            max_tokens=max_tokens,
            temperature=temperature,
            response_model=response_model,
        )

    async def call_structured(
        self,
        response_model: type[T],
        messages: list[dict[str, str]],
        system_prompt: str | None = None,
    ) -> T:
        """
        Call the LLM and return its structured output.

        Raises:
            LLMStructuredOutputError: If the vendor returned no usable structured output.
        """
        try:
            response = await self.call_async(
                messages=messages,
                system_prompt=system_prompt,
                response_model=response_model,
            )
        except ValueError as e:
            raise LLMStructuredOutputError(str(e)) from e
        if not isinstance(response.parsed, response_model):
            raise LLMStructuredOutputError(
                f"Expected {response_model.__name__}, got {type(response.parsed).__name__}"
            )
        return response.parsed
