"""
tests/conftest.py

Configuration for pytest.
"""

from collections.abc import Callable, Generator
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from pagepilot.agents.transcript import Transcript
from pagepilot.data_models.code_execution import CodeExecutionResult
from pagepilot.data_models.settings import GeneralSettings
from pagepilot.storage.abstract_storage import InMemoryKeyValueStorage
from pagepilot.storage.favorites_storage import CodeFavoritesStorage


@pytest.fixture(autouse=True)
def mock_vendor_sdk_clients() -> Generator[dict[str, MagicMock], None, None]:
    """
    Mock the vendor SDK clients to avoid needing real API keys in tests.

    Patches AsyncOpenAI and AsyncAnthropic where the vendor client modules
    import them, so OpenAIClient / AnthropicClient can be instantiated freely.
    """
    with (
        patch("pagepilot.llms.openai_client.AsyncOpenAI") as mock_async_openai,
        patch("pagepilot.llms.anthropic_client.AsyncAnthropic") as mock_async_anthropic,
    ):
        mock_async_openai.return_value = MagicMock()
        mock_async_anthropic.return_value = MagicMock()
        yield {"async_openai": mock_async_openai, "async_anthropic": mock_async_anthropic}


@pytest.fixture
def backend() -> InMemoryKeyValueStorage:
    """Fresh in-memory key/value backend."""
    return InMemoryKeyValueStorage()


@pytest.fixture
def favorites_store(backend: InMemoryKeyValueStorage) -> CodeFavoritesStorage:
    """Favorites store over the in-memory backend."""
    return CodeFavoritesStorage(backend)


@pytest.fixture
def transcript() -> Transcript:
    return Transcript()


@pytest.fixture
def make_settings() -> Callable[..., GeneralSettings]:
    """
    Factory fixture for GeneralSettings.

    Usage:
        settings = make_settings(allow_code_generation=True, fast_js_mode=True)
    """
    def _make(**overrides: object) -> GeneralSettings:
        return GeneralSettings(**overrides)
    return _make


@pytest.fixture
def make_page() -> Callable[..., MagicMock]:
    """
    Factory fixture for a mock AbstractBrowserPage.

    Usage:
        page = make_page(result=CodeExecutionResult(success=True, output="ok"))
        page = make_page(side_effect=ConnectionError("socket closed"))
    """
    def _make(
        result: CodeExecutionResult | None = None,
        side_effect: BaseException | None = None,
        url: str | None = "https://example.com/page",
    ) -> MagicMock:
        page = MagicMock()
        page.execute_code = AsyncMock(
            return_value=result or CodeExecutionResult(success=True),
            side_effect=side_effect,
        )
        page.navigate = AsyncMock(return_value=None)
        page.get_current_url = AsyncMock(return_value=url)
        return page
    return _make
