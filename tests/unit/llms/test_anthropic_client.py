"""
tests/unit/llms/test_anthropic_client.py

Unit tests for the Anthropic client: retry policy, schema inlining and Messages API calls.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from anthropic import APIStatusError, RateLimitError
from pydantic import BaseModel

from pagepilot.data_models.agent_outputs import NavigatorOutput
from pagepilot.data_models.llms.vendors import AnthropicModel
from pagepilot.llms.anthropic_client import (
    CONTINUE_PROMPT,
    AnthropicClient,
    RetryPolicy,
    inline_schema_refs,
    is_transient_error,
)


def make_status_error(status_code: int, error_type: str) -> APIStatusError:
    return APIStatusError(
        message=error_type,
        response=MagicMock(status_code=status_code),
        body={"error": {"type": error_type, "message": error_type}},
    )


# --- Helper function tests ---


class TestIsTransientError:
    """Tests for is_transient_error."""

    def test_rate_limit_error_is_transient(self) -> None:
        """RateLimitError should be retried."""
        class MockRateLimitError(RateLimitError):
            def __init__(self) -> None:
                pass

        assert is_transient_error(MockRateLimitError()) is True

    @pytest.mark.parametrize(
        "status_code, error_type",
        [(529, "overloaded_error"), (500, "api_error"), (429, "rate_limit_error"), (502, "bad_gateway"), (503, "x")],
    )
    def test_server_side_errors_are_transient(self, status_code: int, error_type: str) -> None:
        assert is_transient_error(make_status_error(status_code, error_type)) is True

    @pytest.mark.parametrize(
        "status_code, error_type",
        [(400, "invalid_request_error"), (401, "authentication_error"), (404, "not_found_error")],
    )
    def test_client_errors_are_not_transient(self, status_code: int, error_type: str) -> None:
        assert is_transient_error(make_status_error(status_code, error_type)) is False

    def test_overloaded_body_wins_over_status(self) -> None:
        assert is_transient_error(make_status_error(400, "overloaded_error")) is True

    def test_generic_exception_is_not_transient(self) -> None:
        assert is_transient_error(ValueError("Something went wrong")) is False


class TestRetryPolicy:
    """Tests for RetryPolicy.delay_for."""

    def test_first_retry_waits_base_delay(self) -> None:
        policy = RetryPolicy()
        assert policy.base_delay <= policy.delay_for(0) <= policy.base_delay * (1 + policy.jitter)

    def test_delay_doubles(self) -> None:
        policy = RetryPolicy(jitter=0.0)
        assert [policy.delay_for(attempt) for attempt in range(3)] == [1.0, 2.0, 4.0]

    def test_delay_is_capped(self) -> None:
        policy = RetryPolicy()
        assert policy.delay_for(100) <= policy.max_delay * (1 + policy.jitter)


class TestInlineSchemaRefs:
    """Tests for inline_schema_refs."""

    def test_navigator_output_refs_are_inlined(self) -> None:
        schema = inline_schema_refs(NavigatorOutput.model_json_schema())
        assert "$defs" not in schema
        assert "$ref" not in str(schema)
        variants = schema["properties"]["actions"]["items"]["anyOf"]
        assert {variant["title"] for variant in variants} == {"ExecuteCodeAction", "GoToUrlAction", "DoneAction"}

    def test_refs_nested_in_definitions_are_inlined(self) -> None:
        schema = inline_schema_refs({
            "$defs": {
                "Inner": {"type": "integer"},
                "Outer": {"type": "object", "properties": {"inner": {"$ref": "#/$defs/Inner"}}},
            },
            "properties": {"outer": {"$ref": "#/$defs/Outer"}},
        })
        assert schema == {
            "properties": {"outer": {"type": "object", "properties": {"inner": {"type": "integer"}}}},
        }

    def test_unresolvable_ref(self) -> None:
        schema = inline_schema_refs({"properties": {"x": {"$ref": "#/$defs/Missing"}}})
        assert schema["properties"]["x"] == {"type": "object"}

    def test_input_is_not_mutated(self) -> None:
        original = NavigatorOutput.model_json_schema()
        snapshot = str(original)
        inline_schema_refs(original)
        assert str(original) == snapshot


# --- Anthropic Client tests ---


class Answer(BaseModel):
    value: int


class TestAnthropicClientCall:
    """Tests for AnthropicClient.call_async."""

    @pytest.fixture
    def client(self) -> AnthropicClient:
        """Create an AnthropicClient with a mocked SDK client."""
        client = AnthropicClient(
            model=AnthropicModel.CLAUDE_SONNET_4_5,
            retry_policy=RetryPolicy(max_attempts=3, base_delay=0.0, jitter=0.0),
        )
        client._async_client.messages.create = AsyncMock()
        return client

    def _text_response(self, content: str = "Hello!") -> MagicMock:
        block = MagicMock()
        block.type = "text"
        block.text = content
        response = MagicMock()
        response.content = [block]
        return response

    def _tool_response(self, tool_input: dict) -> MagicMock:
        block = MagicMock()
        block.type = "tool_use"
        block.name = "structured_output"
        block.input = tool_input
        block.id = "toolu_1"
        response = MagicMock()
        response.content = [block]
        return response

    @pytest.mark.asyncio
    async def test_text_call(self, client: AnthropicClient) -> None:
        client._async_client.messages.create.return_value = self._text_response()

        response = await client.call_async(
            messages=[{"role": "system", "content": "be brief"}, {"role": "user", "content": "Hi"}],
        )

        assert response.content == "Hello!"
        kwargs = client._async_client.messages.create.await_args.kwargs
        assert kwargs["system"] == "be brief"
        assert kwargs["messages"] == [{"role": "user", "content": "Hi"}]
        assert "tools" not in kwargs

    @pytest.mark.asyncio
    async def test_structured_call(self, client: AnthropicClient) -> None:
        client._async_client.messages.create.return_value = self._tool_response({"value": 42})

        response = await client.call_async(input="What is 6*7?", response_model=Answer)

        assert response.parsed == Answer(value=42)
        kwargs = client._async_client.messages.create.await_args.kwargs
        assert kwargs["tool_choice"] == {"type": "tool", "name": "structured_output"}
        assert kwargs["temperature"] == AnthropicClient.DEFAULT_STRUCTURED_TEMPERATURE

    @pytest.mark.asyncio
    async def test_structured_call_without_tool_use(self, client: AnthropicClient) -> None:
        client._async_client.messages.create.return_value = self._text_response("no tool")
        with pytest.raises(ValueError):
            await client.call_async(input="x", response_model=Answer)

    @pytest.mark.asyncio
    async def test_requires_messages_or_input(self, client: AnthropicClient) -> None:
        with pytest.raises(ValueError):
            await client.call_async()

    @pytest.mark.asyncio
    async def test_retries_on_overloaded_error(self, client: AnthropicClient) -> None:
        overloaded = make_status_error(529, "overloaded_error")
        client._async_client.messages.create.side_effect = [overloaded, overloaded, self._text_response("ok")]

        with patch("pagepilot.llms.anthropic_client.asyncio.sleep", new_callable=AsyncMock) as sleep:
            response = await client.call_async(input="Hello")

        assert response.content == "ok"
        assert client._async_client.messages.create.await_count == 3
        assert sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_max_retries_exceeded(self, client: AnthropicClient) -> None:
        client._async_client.messages.create.side_effect = make_status_error(529, "overloaded_error")

        with pytest.raises(APIStatusError):
            await client.call_async(input="Hello")

        assert client._async_client.messages.create.await_count == client._retry_policy.max_attempts

    @pytest.mark.asyncio
    async def test_no_retry_on_non_retryable_error(self, client: AnthropicClient) -> None:
        client._async_client.messages.create.side_effect = make_status_error(400, "invalid_request_error")

        with pytest.raises(APIStatusError):
            await client.call_async(input="Hello")

        assert client._async_client.messages.create.await_count == 1

    @pytest.mark.asyncio
    async def test_trailing_assistant_turn_gets_user_turn(self, client: AnthropicClient) -> None:
        client._async_client.messages.create.return_value = self._text_response()

        await client.call_async(messages=[
            {"role": "user", "content": "task"},
            {"role": "assistant", "content": "navigator result"},
        ])

        messages = client._async_client.messages.create.await_args.kwargs["messages"]
        assert messages[-1] == {"role": "user", "content": CONTINUE_PROMPT}
        assert messages[:2] == [
            {"role": "user", "content": "task"},
            {"role": "assistant", "content": "navigator result"},
        ]
