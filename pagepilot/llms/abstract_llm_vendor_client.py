"""
pagepilot/llms/abstract_llm_vendor_client.py

Abstract base class for LLM vendor clients.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import ClassVar, TypeVar

from pydantic import BaseModel

from pagepilot.data_models.llms.interaction import LLMChatResponse
from pagepilot.data_models.llms.vendors import LLMModel, LLMVendor

T = TypeVar("T", bound=BaseModel)


class AbstractLLMVendorClient(ABC):
    """
    Abstract base class defining the interface for LLM vendor clients.

    All vendor-specific clients must implement this interface to ensure
    consistent behavior across the LLMClient.
    """

    # Class attributes ____________________________________________________________________________________________________

    _vendor: ClassVar[LLMVendor]
    DEFAULT_MAX_TOKENS: ClassVar[int] = 4_096
    DEFAULT_TEMPERATURE: ClassVar[float] = 0.7
    DEFAULT_STRUCTURED_TEMPERATURE: ClassVar[float] = 0.0

    def __init_subclass__(cls, **kwargs: object) -> None:
        super().__init_subclass__(**kwargs)
        if not hasattr(cls, '_vendor'):
            raise TypeError(f"{cls.__name__} must define _vendor class attribute")

    @classmethod
    def get_llm_vendor_client(cls, model: LLMModel) -> AbstractLLMVendorClient:
        """Create the appropriate vendor client for the given model."""
        for subclass in cls.__subclasses__():
            if subclass._vendor == model.vendor:
                return subclass(model=model)
        raise ValueError(f"No client found for vendor: {model.vendor}")

    # Magic methods ________________________________________________________________________________________________________

    def __init__(self, model: LLMModel) -> None:
        """
        Initialize the vendor client.

        Args:
            model: The LLM model to use.
        """
        self.model = model

    # Protected methods ____________________________________________________________________________________________________

    def _resolve_max_tokens(self, max_tokens: int | None) -> int:
        """Resolve max_tokens, using default if None."""
        return max_tokens if max_tokens is not None else self.DEFAULT_MAX_TOKENS

    def _resolve_temperature(
        self,
        temperature: float | None,
        structured: bool = False,
    ) -> float:
        """Resolve temperature, using appropriate default if None."""
        if temperature is not None:
            return temperature
        return self.DEFAULT_STRUCTURED_TEMPERATURE if structured else self.DEFAULT_TEMPERATURE

    # Unified API methods __________________________________________________________________________________________________

    @abstractmethod
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
        Unified async call to the LLM.

        Args:
            messages: List of message dicts with 'role' and 'content' keys.
            input: Input string (shorthand for simple prompts).
            system_prompt: Optional system prompt for context.
            max_tokens: Maximum tokens in the response.
            temperature: Sampling temperature (0.0-1.0).
            response_model: Pydantic model class for structured response.

        Returns:
            LLMChatResponse. If response_model is provided, the parsed model is in response.parsed.
        """
        pass
