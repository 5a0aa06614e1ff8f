"""
pagepilot/agents/executor.py

Drives one task to a terminal state by alternating planning and execution passes.

Contains:
- ExecutorConfig: loop bounds (step ceiling, planning interval, validation mode)
- TaskExecutor: the step loop and its lifecycle
"""

import asyncio
from typing import Callable, NamedTuple, Sequence

from pagepilot.agents.navigator import AbstractNavigator
from pagepilot.agents.planner import AbstractPlanner
from pagepilot.agents.task_classifier import is_client_side_js_task
from pagepilot.data_models.orchestration import (
    ExecutionEvent,
    ExecutionFailure,
    ExecutionPhase,
    ExecutionResult,
    ExecutionState,
    PlanCreatedEvent,
    StepLoopState,
    StepStartedEvent,
    TaskFinishedEvent,
)
from pagepilot.data_models.settings import GeneralSettings
from pagepilot.utils.logger import get_logger

logger = get_logger(name=__name__)


class ExecutorConfig(NamedTuple):
    """
    Loop bounds for a TaskExecutor run.
    """
    max_steps: int = 100            # Iteration ceiling, applies on every path
    planning_interval: int = 3      # Plan on steps 1, 1+k, 1+2k, ...
    validate_output: bool = False   # Navigator "done" must be confirmed by the next planning pass

    @classmethod
    def from_settings(cls, settings: GeneralSettings, validate_output: bool = False) -> "ExecutorConfig":
        return cls(
            max_steps=settings.max_steps,
            planning_interval=settings.planning_interval,
            validate_output=validate_output,
        )


class TaskExecutor:
    """
    Runs the step loop for the last task of a task sequence.

    Each iteration optionally runs a planning pass, then an execution pass.
    Tasks recognized as pure in-page JavaScript (with fast JS mode on) skip
    planning entirely. Cancellation is cooperative and is observed between
    passes; a pass already in flight is allowed to finish.

    One instance runs one task: run() may only be awaited once.
    """

    def __init__(
        self,
        tasks: Sequence[str],
        settings: GeneralSettings,
        navigator: AbstractNavigator,
        planner: AbstractPlanner | None = None,
        config: ExecutorConfig | None = None,
        emit_event_callable: Callable[[ExecutionEvent], None] | None = None,
    ) -> None:
        """
        Initialize the executor.

        Args:
            tasks: Task texts of the session; the last one is executed.
            settings: Settings snapshot. Read once, never written.
            navigator: Runs the execution pass.
            planner: Runs the planning pass. None disables planning.
            config: Loop bounds. Defaults to the bounds in settings.
            emit_event_callable: Receives lifecycle events as they happen.

        Raises:
            ValueError: If tasks is empty or the loop bounds are out of range.
        """
        if not tasks:
            raise ValueError("TaskExecutor needs at least one task")

        self._config = config or ExecutorConfig.from_settings(settings)
        if self._config.planning_interval < 1:
            raise ValueError(f"planning_interval must be at least 1, got {self._config.planning_interval}")
        if self._config.max_steps < 0:
            raise ValueError(f"max_steps must not be negative, got {self._config.max_steps}")

        self._task = tasks[-1]
        self._navigator = navigator
        self._planner = planner
        self._emit_event_callable = emit_event_callable

        # Fixed for the whole run
        self._fast_js_mode_enabled = settings.fast_js_mode_enabled
        self._js_only_for_this_task = self._fast_js_mode_enabled and is_client_side_js_task(self._task)

        self._state = ExecutionState.IDLE
        self._cancel_event = asyncio.Event()

    ## Properties

    @property
    def task(self) -> str:
        return self._task

    @property
    def state(self) -> ExecutionState:
        return self._state

    @property
    def fast_js_mode_enabled(self) -> bool:
        return self._fast_js_mode_enabled

    @property
    def js_only_for_this_task(self) -> bool:
        return self._js_only_for_this_task

    @property
    def is_cancelled(self) -> bool:
        return self._cancel_event.is_set()

    @property
    def planning_applies(self) -> bool:
        """Whether planning passes can run at all for this task."""
        return self._planner is not None and not self._js_only_for_this_task

    ## Public API

    def cancel(self) -> None:
        """Request cancellation. Takes effect at the next check between passes."""
        if not self._cancel_event.is_set():
            logger.info("Cancellation requested for task: %s", self._task)
        self._cancel_event.set()

    async def run(self) -> ExecutionResult:
        """
        Drive the task to a terminal state.

        Pass failures do not propagate: they end the run in the FAILED state
        and are reported in the result (see ExecutionResult.raise_for_failure).

        Returns:
            The final state, step count and failure details if any.

        Raises:
            RuntimeError: If run() was already awaited on this instance.
        """
        if self._state != ExecutionState.IDLE:
            raise RuntimeError("TaskExecutor.run() can only be awaited once per instance")
        self._state = ExecutionState.LOOPING

        logger.info(
            "Starting task (js_only=%s, max_steps=%d): %s",
            self._js_only_for_this_task, self._config.max_steps, self._task,
        )

        loop_state = StepLoopState()
        planning_passes = 0
        execution_passes = 0
        failure: ExecutionFailure | None = None
        phase = ExecutionPhase.PLANNING
        final_state = ExecutionState.MAX_STEPS_REACHED

        try:
            while loop_state.step < self._config.max_steps:
                loop_state.step += 1

                if self.is_cancelled:
                    final_state = ExecutionState.CANCELLED
                    break

                will_plan = self._should_plan(loop_state)
                logger.debug("Step %d/%d (plan=%s)", loop_state.step, self._config.max_steps, will_plan)
                self._emit(StepStartedEvent(task=self._task, step=loop_state.step, will_plan=will_plan))

                # Planning pass
                if will_plan:
                    phase = ExecutionPhase.PLANNING
                    plan = await self._planner.run_planning_pass()
                    planning_passes += 1
                    loop_state.latest_plan = plan
                    loop_state.navigator_just_finished = False
                    task_complete = self._planner.is_task_complete(plan)
                    self._emit(PlanCreatedEvent(task=self._task, step=loop_state.step, task_complete=task_complete))
                    if task_complete:
                        loop_state.done = True
                        final_state = ExecutionState.COMPLETED
                        break

                if self.is_cancelled:
                    final_state = ExecutionState.CANCELLED
                    break

                # Execution pass
                phase = ExecutionPhase.EXECUTION
                navigator_done = await self._navigator.run_execution_pass()
                execution_passes += 1
                if navigator_done:
                    if self._config.validate_output and self.planning_applies:
                        logger.debug("Navigator reported done at step %d, validating with planner", loop_state.step)
                        loop_state.navigator_just_finished = True
                    else:
                        loop_state.done = True
                        final_state = ExecutionState.COMPLETED
                        break

                if self.is_cancelled:
                    final_state = ExecutionState.CANCELLED
                    break

        except Exception as e:
            logger.exception("Task failed at step %d during %s pass: %s", loop_state.step, phase.value, e)
            failure = ExecutionFailure(step=loop_state.step, phase=phase, error=str(e) or type(e).__name__)
            final_state = ExecutionState.FAILED

        self._state = final_state
        self._log_outcome(loop_state.step)
        self._emit(TaskFinishedEvent(task=self._task, step=loop_state.step, state=final_state, failure=failure))

        return ExecutionResult(
            task=self._task,
            state=final_state,
            steps=loop_state.step,
            js_only=self._js_only_for_this_task,
            planning_passes=planning_passes,
            execution_passes=execution_passes,
            failure=failure,
        )

    ## Internal methods

    def _should_plan(self, loop_state: StepLoopState) -> bool:
        if not self.planning_applies:
            return False
        on_interval = (loop_state.step - 1) % self._config.planning_interval == 0
        return on_interval or loop_state.navigator_just_finished

    def _log_outcome(self, step: int) -> None:
        if self._state == ExecutionState.COMPLETED:
            logger.info("Task completed at step %d", step)
        elif self._state == ExecutionState.CANCELLED:
            logger.info("Task cancelled at step %d", step)
        elif self._state == ExecutionState.MAX_STEPS_REACHED:
            logger.warning("Task reached the step ceiling (%d) without completing", step)

    def _emit(self, event: ExecutionEvent) -> None:
        """Deliver an event. A failing receiver is logged and never fails the task."""
        if self._emit_event_callable is None:
            return
        try:
            self._emit_event_callable(event)
        except Exception as e:
            logger.exception("Event receiver failed on %s: %s", event.type, e)
