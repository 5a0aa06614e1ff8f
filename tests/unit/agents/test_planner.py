"""
tests/unit/agents/test_planner.py

Unit tests for LLMPlanner, the transcript and the agent prompts.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from pagepilot.agents.planner import LLMPlanner
from pagepilot.agents.prompts import build_navigator_system_prompt
from pagepilot.agents.transcript import Transcript
from pagepilot.data_models.agent_outputs import PlanOutput
from pagepilot.data_models.messages import Actor
from pagepilot.data_models.settings import GeneralSettings


class TestLLMPlanner:
    """Tests for LLMPlanner."""

    @pytest.mark.asyncio
    async def test_plan_is_recorded(self, transcript: Transcript) -> None:
        transcript.add_message(Actor.USER, "Find the cheapest flight")
        client = MagicMock()
        client.call_structured = AsyncMock(return_value=PlanOutput(
            observation="On the search page",
            done=False,
            next_steps="Fill in the form",
        ))
        planner = LLMPlanner(client, transcript)

        plan = await planner.run_planning_pass()

        assert planner.is_task_complete(plan) is False
        assert transcript.messages[-1].actor == Actor.PLANNER
        assert "Fill in the form" in transcript.messages[-1].content
        kwargs = client.call_structured.await_args.kwargs
        assert kwargs["response_model"] is PlanOutput
        assert kwargs["messages"] == [{"role": "user", "content": "[user] Find the cheapest flight"}]

    @pytest.mark.asyncio
    async def test_final_answer_recorded_when_done(self, transcript: Transcript) -> None:
        client = MagicMock()
        client.call_structured = AsyncMock(return_value=PlanOutput(observation="x", done=True, final_answer="42"))
        planner = LLMPlanner(client, transcript)

        plan = await planner.run_planning_pass()

        assert planner.is_task_complete(plan) is True
        assert transcript.messages[-1].content == "42"


class TestTranscript:
    """Tests for the append-only transcript."""

    def test_messages_are_ordered_and_immutable(self, transcript: Transcript) -> None:
        transcript.add_message(Actor.USER, "a")
        transcript.add_message(Actor.NAVIGATOR, "b")
        assert [m.content for m in transcript.messages] == ["a", "b"]
        assert isinstance(transcript.messages, tuple)

    def test_observers(self, transcript: Transcript) -> None:
        observer = MagicMock()
        remove = transcript.observe(observer)
        message = transcript.add_message(Actor.USER, "a")
        remove()
        transcript.add_message(Actor.USER, "b")
        observer.assert_called_once_with(message)

    def test_llm_messages_merge_consecutive_roles(self, transcript: Transcript) -> None:
        transcript.add_message(Actor.USER, "task")
        transcript.add_message(Actor.PLANNER, "plan")
        transcript.add_message(Actor.NAVIGATOR, "did it")
        assert transcript.to_llm_messages() == [
            {"role": "user", "content": "[user] task"},
            {"role": "assistant", "content": "[planner] plan\n\n[navigator] did it"},
        ]


class TestNavigatorPrompt:
    """Tests for build_navigator_system_prompt."""

    def test_max_actions_filled_in(self) -> None:
        prompt = build_navigator_system_prompt(GeneralSettings(max_actions_per_step=4))
        assert "At most 4 actions" in prompt
        assert "{max_actions}" not in prompt

    def test_code_section_only_when_allowed(self) -> None:
        assert "## Code Execution" not in build_navigator_system_prompt(GeneralSettings())
        with_code = build_navigator_system_prompt(GeneralSettings(allow_code_generation=True))
        assert "## Code Execution" in with_code
        assert "{success: boolean, output?: string, error?: string}" in with_code
