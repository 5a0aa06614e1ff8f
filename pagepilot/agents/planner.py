"""
pagepilot/agents/planner.py

Planning pass: decides whether the task is complete and what to do next.

Contains:
- AbstractPlanner: contract used by the TaskExecutor
- LLMPlanner: planner backed by an LLM with structured output
"""

from abc import ABC, abstractmethod

from pagepilot.agents.prompts import PLANNER_SYSTEM_PROMPT
from pagepilot.agents.transcript import Transcript
from pagepilot.data_models.agent_outputs import PlanOutput
from pagepilot.data_models.messages import Actor
from pagepilot.llms.llm_client import LLMClient
from pagepilot.utils.logger import get_logger

logger = get_logger(name=__name__)


class AbstractPlanner(ABC):
    """Planner contract used by the executor."""

    @abstractmethod
    async def run_planning_pass(self) -> PlanOutput:
        """Produce a plan from the current conversation state. May raise."""

    def is_task_complete(self, plan: PlanOutput) -> bool:
        """Whether the plan declares the ultimate task finished."""
        return bool(plan.done)


class LLMPlanner(AbstractPlanner):
    """
    Planner that asks an LLM for a PlanOutput over the shared transcript.

    The plan is appended to the transcript as a planner message so the
    navigator sees it on its next pass.
    """

    def __init__(self, llm_client: LLMClient, transcript: Transcript) -> None:
        self._llm_client = llm_client
        self._transcript = transcript

    async def run_planning_pass(self) -> PlanOutput:
        plan = await self._llm_client.call_structured(
            response_model=PlanOutput,
            messages=self._transcript.to_llm_messages(),
            system_prompt=PLANNER_SYSTEM_PROMPT,
        )
        self._transcript.add_message(Actor.PLANNER, self._render(plan))
        logger.info("Plan created (done=%s)", plan.done)
        return plan

    @staticmethod
    def _render(plan: PlanOutput) -> str:
        if plan.done:
            return plan.final_answer or plan.observation
        parts = [plan.observation]
        if plan.challenges:
            parts.append(f"Challenges: {plan.challenges}")
        if plan.next_steps:
            parts.append(f"Next steps: {plan.next_steps}")
        return "\n".join(parts)
