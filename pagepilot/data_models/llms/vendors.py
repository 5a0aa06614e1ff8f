"""
pagepilot/data_models/llms/vendors.py

Models the planner and navigator can run on, grouped by vendor.
"""

from enum import StrEnum


class LLMVendor(StrEnum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"


class OpenAIModel(StrEnum):
    """OpenAI models with Responses API structured output."""
    GPT_5_1 = "gpt-5.1"
    GPT_5_MINI = "gpt-5-mini"

    @property
    def vendor(self) -> LLMVendor:
        return LLMVendor.OPENAI


class AnthropicModel(StrEnum):
    """Anthropic models with tool-use structured output."""
    CLAUDE_SONNET_4_5 = "claude-sonnet-4-5"
    CLAUDE_HAIKU_4_5 = "claude-haiku-4-5"

    @property
    def vendor(self) -> LLMVendor:
        return LLMVendor.ANTHROPIC


LLMModel = OpenAIModel | AnthropicModel

DEFAULT_LLM_MODEL: LLMModel = OpenAIModel.GPT_5_1

_MODELS_BY_VALUE: dict[str, LLMModel] = {model.value: model for model in [*OpenAIModel, *AnthropicModel]}


def model_choices() -> list[str]:
    """Model names accepted on the command line."""
    return list(_MODELS_BY_VALUE)


def parse_model(value: str) -> LLMModel:
    """
    Look up a model by name.

    Raises:
        ValueError: If no vendor offers a model with that name.
    """
    try:
        return _MODELS_BY_VALUE[value]
    except KeyError:
        raise ValueError(f"Unknown model '{value}'. Options: {', '.join(model_choices())}") from None
