"""
pagepilot/agents/navigator.py

Execution pass: asks the LLM for actions and runs them against the page.

Contains:
- AbstractNavigator: contract used by the TaskExecutor
- run_execute_code_action: the execute_code action, recording the code it ran
- LLMNavigator: navigator backed by an LLM with structured output
"""

from abc import ABC, abstractmethod
from typing import Callable

from pagepilot.agents.prompts import build_navigator_system_prompt
from pagepilot.agents.transcript import Transcript
from pagepilot.browser.abstract_page import AbstractBrowserPage
from pagepilot.data_models.agent_outputs import (
    ActionResult,
    DoneAction,
    ExecuteCodeAction,
    GoToUrlAction,
    NavigatorAction,
    NavigatorOutput,
)
from pagepilot.data_models.messages import Actor
from pagepilot.data_models.settings import GeneralSettings
from pagepilot.llms.llm_client import LLMClient
from pagepilot.utils.code_provenance import format_code_error, format_code_execution_result
from pagepilot.utils.logger import get_logger

logger = get_logger(name=__name__)


class AbstractNavigator(ABC):
    """Navigator contract used by the executor."""

    @abstractmethod
    async def run_execution_pass(self) -> bool:
        """
        Run one batch of browser actions.

        Returns:
            True if the navigator declared the task done. May raise.
        """


async def run_execute_code_action(
    page: AbstractBrowserPage,
    transcript: Transcript,
    code: str,
) -> ActionResult:
    """
    Run code in the page and record the outcome in the transcript.

    Every branch (success, reported failure, unexpected exception) appends a
    navigator message whose content carries the exact code in an
    executed-code block, so the code can later be saved as a favorite.

    Args:
        page: Page to run the code in.
        transcript: Transcript receiving the outcome message.
        code: JavaScript function expression.

    Returns:
        The action result; `content` is the recorded message.
    """
    try:
        result = await page.execute_code(code)
    except Exception as e:
        logger.exception("execute_code could not run: %s", e)
        content = format_code_error(code, e)
        transcript.add_message(Actor.NAVIGATOR, content)
        return ActionResult(success=False, content=content, error=str(e))

    content = format_code_execution_result(result, code)
    transcript.add_message(Actor.NAVIGATOR, content)
    if result.success:
        return ActionResult(success=True, content=content)
    logger.info("execute_code reported failure: %s", result.error)
    return ActionResult(success=False, content=content, error=result.error)


class LLMNavigator(AbstractNavigator):
    """
    Navigator that asks an LLM for a NavigatorOutput and runs its actions in order.

    At most `settings.max_actions_per_step` actions run per pass. Remaining
    actions are dropped after a done action, after a navigation, or when
    should_stop() turns true.
    """

    def __init__(
        self,
        llm_client: LLMClient,
        page: AbstractBrowserPage,
        transcript: Transcript,
        settings: GeneralSettings,
        should_stop: Callable[[], bool] | None = None,
    ) -> None:
        self._llm_client = llm_client
        self._page = page
        self._transcript = transcript
        self._settings = settings
        self._should_stop = should_stop or (lambda: False)
        self._system_prompt = build_navigator_system_prompt(settings)

    async def run_execution_pass(self) -> bool:
        output = await self._llm_client.call_structured(
            response_model=NavigatorOutput,
            messages=self._transcript.to_llm_messages(),
            system_prompt=self._system_prompt,
        )
        logger.info("Navigator next goal: %s", output.next_goal)

        actions = output.actions[: self._settings.max_actions_per_step]
        if len(output.actions) > len(actions):
            logger.warning(
                "Navigator returned %d actions, running the first %d",
                len(output.actions), len(actions),
            )

        for index, action in enumerate(actions):
            if self._should_stop():
                logger.info("Stop requested, skipping %d remaining action(s)", len(actions) - index)
                break
            result = await self._run_action(action)
            if result.is_done:
                return True
            if isinstance(action, GoToUrlAction) and result.success and index < len(actions) - 1:
                logger.info("Page changed, deferring %d action(s) to the next step", len(actions) - index - 1)
                break
        return False

    async def _run_action(self, action: NavigatorAction) -> ActionResult:
        if isinstance(action, ExecuteCodeAction):
            if not self._settings.allow_code_generation:
                content = "Code execution is disabled in settings"
                self._transcript.add_message(Actor.NAVIGATOR, content)
                return ActionResult(success=False, content=content, error=content)
            logger.info("Executing code: %s", action.intent)
            return await run_execute_code_action(self._page, self._transcript, action.code)

        if isinstance(action, GoToUrlAction):
            try:
                await self._page.navigate(action.url)
            except Exception as e:
                logger.error("Navigation to %s failed: %s", action.url, e)
                content = f"Failed to navigate to {action.url}: {e}"
                self._transcript.add_message(Actor.NAVIGATOR, content)
                return ActionResult(success=False, content=content, error=str(e))
            content = f"Navigated to {action.url}"
            self._transcript.add_message(Actor.NAVIGATOR, content)
            return ActionResult(success=True, content=content)

        if isinstance(action, DoneAction):
            self._transcript.add_message(Actor.NAVIGATOR, action.text)
            return ActionResult(is_done=True, success=action.success, content=action.text)

        raise ValueError(f"Unsupported navigator action: {action!r}")
