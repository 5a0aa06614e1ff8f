"""
tests/unit/agents/test_executor.py

Unit tests for the TaskExecutor step loop.
"""

from collections.abc import Callable

import pytest

from pagepilot.agents.executor import ExecutorConfig, TaskExecutor
from pagepilot.agents.navigator import AbstractNavigator
from pagepilot.agents.planner import AbstractPlanner
from pagepilot.data_models.agent_outputs import PlanOutput
from pagepilot.data_models.orchestration import (
    ExecutionEvent,
    ExecutionPhase,
    ExecutionState,
    PlanCreatedEvent,
    StepStartedEvent,
    TaskFinishedEvent,
)
from pagepilot.data_models.settings import GeneralSettings
from pagepilot.utils.exceptions import TaskExecutionError

JS_TASK = "Use JavaScript to change the page background to red"
MULTI_STEP_TASK = "Search for flights to Paris then book the cheapest one"


class ScriptedPlanner(AbstractPlanner):
    """Planner returning `done` from a script; records the steps it ran on."""

    def __init__(self, done_on_calls: set[int] | None = None, fail_on_call: int | None = None) -> None:
        self.calls = 0
        self.done_on_calls = done_on_calls or set()
        self.fail_on_call = fail_on_call

    async def run_planning_pass(self) -> PlanOutput:
        self.calls += 1
        if self.calls == self.fail_on_call:
            raise RuntimeError("planner exploded")
        return PlanOutput(observation=f"plan {self.calls}", done=self.calls in self.done_on_calls)


class ScriptedNavigator(AbstractNavigator):
    """Navigator returning `done` from a script; can cancel its executor mid-pass."""

    def __init__(
        self,
        done_on_calls: set[int] | None = None,
        fail_on_call: int | None = None,
        on_call: Callable[[int], None] | None = None,
    ) -> None:
        self.calls = 0
        self.done_on_calls = done_on_calls or set()
        self.fail_on_call = fail_on_call
        self.on_call = on_call

    async def run_execution_pass(self) -> bool:
        self.calls += 1
        if self.on_call is not None:
            self.on_call(self.calls)
        if self.calls == self.fail_on_call:
            raise ConnectionError("page went away")
        return self.calls in self.done_on_calls


def make_executor(
    task: str = MULTI_STEP_TASK,
    settings: GeneralSettings | None = None,
    planner: AbstractPlanner | None = None,
    navigator: AbstractNavigator | None = None,
    config: ExecutorConfig | None = None,
    events: list[ExecutionEvent] | None = None,
) -> TaskExecutor:
    return TaskExecutor(
        tasks=["an earlier task", task],
        settings=settings or GeneralSettings(),
        navigator=navigator or ScriptedNavigator(),
        planner=planner,
        config=config or ExecutorConfig(max_steps=10, planning_interval=3),
        emit_event_callable=events.append if events is not None else None,
    )


class TestSetup:
    """Decisions fixed at construction."""

    def test_last_task_is_current(self) -> None:
        assert make_executor(task="second").task == "second"

    def test_empty_tasks_rejected(self) -> None:
        with pytest.raises(ValueError):
            TaskExecutor(tasks=[], settings=GeneralSettings(), navigator=ScriptedNavigator())

    @pytest.mark.parametrize(
        "allow_code_generation, fast_js_mode, task, expected",
        [
            (True, True, JS_TASK, True),
            (False, True, JS_TASK, False),
            (True, False, JS_TASK, False),
            (True, True, MULTI_STEP_TASK, False),
        ],
    )
    def test_js_only_decision(self, allow_code_generation: bool, fast_js_mode: bool, task: str, expected: bool) -> None:
        settings = GeneralSettings(allow_code_generation=allow_code_generation, fast_js_mode=fast_js_mode)
        executor = make_executor(task=task, settings=settings)
        assert executor.js_only_for_this_task is expected
        assert executor.fast_js_mode_enabled is (allow_code_generation and fast_js_mode)

    def test_config_defaults_from_settings(self) -> None:
        executor = TaskExecutor(
            tasks=["t"],
            settings=GeneralSettings(max_steps=7, planning_interval=2),
            navigator=ScriptedNavigator(),
        )
        assert executor._config == ExecutorConfig(max_steps=7, planning_interval=2, validate_output=False)

    @pytest.mark.parametrize(
        "config",
        [
            ExecutorConfig(max_steps=10, planning_interval=0),
            ExecutorConfig(max_steps=10, planning_interval=-1),
            ExecutorConfig(max_steps=-1, planning_interval=3),
        ],
    )
    def test_out_of_range_config_rejected(self, config: ExecutorConfig) -> None:
        with pytest.raises(ValueError):
            make_executor(config=config)


class TestFastPath:
    """JS-only tasks never plan."""

    @pytest.mark.asyncio
    async def test_js_only_task_never_invokes_planner(self) -> None:
        planner = ScriptedPlanner(done_on_calls={1})
        navigator = ScriptedNavigator(done_on_calls={4})
        settings = GeneralSettings(allow_code_generation=True, fast_js_mode=True)

        result = await make_executor(task=JS_TASK, settings=settings, planner=planner, navigator=navigator).run()

        assert planner.calls == 0
        assert result.state == ExecutionState.COMPLETED
        assert result.js_only is True
        assert result.steps == 4
        assert result.planning_passes == 0

    @pytest.mark.asyncio
    async def test_js_only_task_still_bounded_by_max_steps(self) -> None:
        planner = ScriptedPlanner()
        navigator = ScriptedNavigator()
        settings = GeneralSettings(allow_code_generation=True, fast_js_mode=True)

        result = await make_executor(
            task=JS_TASK,
            settings=settings,
            planner=planner,
            navigator=navigator,
            config=ExecutorConfig(max_steps=5, planning_interval=1),
        ).run()

        assert result.state == ExecutionState.MAX_STEPS_REACHED
        assert result.steps == 5
        assert navigator.calls == 5
        assert planner.calls == 0

    @pytest.mark.asyncio
    async def test_fast_js_without_code_generation_plans(self) -> None:
        planner = ScriptedPlanner(done_on_calls={1})
        settings = GeneralSettings(allow_code_generation=False, fast_js_mode=True)

        result = await make_executor(task=JS_TASK, settings=settings, planner=planner).run()

        assert planner.calls == 1
        assert result.state == ExecutionState.COMPLETED
        assert result.js_only is False


class TestPlanningSchedule:
    """Planning runs on the interval and after a navigator 'done'."""

    @pytest.mark.asyncio
    async def test_plans_on_interval(self) -> None:
        events: list[ExecutionEvent] = []
        planner = ScriptedPlanner()
        navigator = ScriptedNavigator()

        result = await make_executor(
            planner=planner,
            navigator=navigator,
            config=ExecutorConfig(max_steps=7, planning_interval=3),
            events=events,
        ).run()

        planned_steps = [e.step for e in events if isinstance(e, StepStartedEvent) and e.will_plan]
        assert planned_steps == [1, 4, 7]
        assert planner.calls == 3
        assert navigator.calls == 7
        assert result.state == ExecutionState.MAX_STEPS_REACHED

    @pytest.mark.asyncio
    async def test_plan_complete_skips_execution(self) -> None:
        planner = ScriptedPlanner(done_on_calls={2})
        navigator = ScriptedNavigator()

        result = await make_executor(
            planner=planner,
            navigator=navigator,
            config=ExecutorConfig(max_steps=10, planning_interval=2),
        ).run()

        assert result.state == ExecutionState.COMPLETED
        assert result.steps == 3
        assert navigator.calls == 2

    @pytest.mark.asyncio
    async def test_no_planner_configured(self) -> None:
        navigator = ScriptedNavigator(done_on_calls={2})
        result = await make_executor(planner=None, navigator=navigator).run()
        assert result.state == ExecutionState.COMPLETED
        assert result.planning_passes == 0
        assert result.execution_passes == 2


class TestCompletion:
    """Navigator-reported completion."""

    @pytest.mark.asyncio
    async def test_navigator_done_completes(self) -> None:
        events: list[ExecutionEvent] = []
        planner = ScriptedPlanner()
        navigator = ScriptedNavigator(done_on_calls={2})

        result = await make_executor(planner=planner, navigator=navigator, events=events).run()

        assert result.state == ExecutionState.COMPLETED
        assert result.is_successful
        assert result.steps == 2
        assert isinstance(events[-1], TaskFinishedEvent)
        assert events[-1].state == ExecutionState.COMPLETED

    @pytest.mark.asyncio
    async def test_validate_output_defers_to_planner(self) -> None:
        """With validation on, a navigator 'done' triggers a planning pass on the next step."""
        events: list[ExecutionEvent] = []
        planner = ScriptedPlanner(done_on_calls={2})
        navigator = ScriptedNavigator(done_on_calls={2})

        result = await make_executor(
            planner=planner,
            navigator=navigator,
            config=ExecutorConfig(max_steps=10, planning_interval=5, validate_output=True),
            events=events,
        ).run()

        planned_steps = [e.step for e in events if isinstance(e, PlanCreatedEvent)]
        assert planned_steps == [1, 3]
        assert result.state == ExecutionState.COMPLETED
        assert result.steps == 3
        assert navigator.calls == 2

    @pytest.mark.asyncio
    async def test_validate_output_rejected_keeps_going(self) -> None:
        planner = ScriptedPlanner()
        navigator = ScriptedNavigator(done_on_calls={1})

        result = await make_executor(
            planner=planner,
            navigator=navigator,
            config=ExecutorConfig(max_steps=4, planning_interval=10, validate_output=True),
        ).run()

        assert result.state == ExecutionState.MAX_STEPS_REACHED
        assert planner.calls == 2  # step 1 (interval) and step 2 (validation)

    @pytest.mark.asyncio
    async def test_validate_output_without_planner_completes(self) -> None:
        navigator = ScriptedNavigator(done_on_calls={1})
        result = await make_executor(
            navigator=navigator,
            config=ExecutorConfig(max_steps=4, planning_interval=1, validate_output=True),
        ).run()
        assert result.state == ExecutionState.COMPLETED
        assert result.steps == 1


class TestCancellation:
    """Cooperative cancellation."""

    @pytest.mark.asyncio
    async def test_cancel_before_run(self) -> None:
        navigator = ScriptedNavigator()
        executor = make_executor(navigator=navigator)
        executor.cancel()

        result = await executor.run()

        assert result.state == ExecutionState.CANCELLED
        assert navigator.calls == 0

    @pytest.mark.asyncio
    async def test_cancel_during_execution_pass_lets_it_finish(self) -> None:
        executor: TaskExecutor | None = None

        def cancel_on_second_call(call: int) -> None:
            if call == 2:
                executor.cancel()

        planner = ScriptedPlanner()
        navigator = ScriptedNavigator(on_call=cancel_on_second_call)
        executor = make_executor(planner=planner, navigator=navigator)

        result = await executor.run()

        assert result.state == ExecutionState.CANCELLED
        assert result.steps == 2
        assert navigator.calls == 2
        assert executor.state == ExecutionState.CANCELLED

    @pytest.mark.asyncio
    async def test_done_wins_over_cancel_in_same_pass(self) -> None:
        executor: TaskExecutor | None = None
        navigator = ScriptedNavigator(done_on_calls={1}, on_call=lambda _: executor.cancel())
        executor = make_executor(navigator=navigator)

        result = await executor.run()

        assert result.state == ExecutionState.COMPLETED


class TestFailure:
    """Pass failures end the run in FAILED with step and phase."""

    @pytest.mark.asyncio
    async def test_execution_failure(self) -> None:
        navigator = ScriptedNavigator(fail_on_call=3)
        result = await make_executor(planner=ScriptedPlanner(), navigator=navigator).run()

        assert result.state == ExecutionState.FAILED
        assert result.failure is not None
        assert (result.failure.step, result.failure.phase) == (3, ExecutionPhase.EXECUTION)
        assert "page went away" in result.failure.error

        with pytest.raises(TaskExecutionError, match="step 3 during execution pass"):
            result.raise_for_failure()

    @pytest.mark.asyncio
    async def test_planning_failure(self) -> None:
        planner = ScriptedPlanner(fail_on_call=2)
        navigator = ScriptedNavigator()
        result = await make_executor(
            planner=planner,
            navigator=navigator,
            config=ExecutorConfig(max_steps=10, planning_interval=2),
        ).run()

        assert result.state == ExecutionState.FAILED
        assert (result.failure.step, result.failure.phase) == (3, ExecutionPhase.PLANNING)
        assert navigator.calls == 2

    @pytest.mark.asyncio
    async def test_failure_is_not_retried(self) -> None:
        navigator = ScriptedNavigator(fail_on_call=1)
        await make_executor(navigator=navigator).run()
        assert navigator.calls == 1

    @pytest.mark.asyncio
    async def test_failing_event_receiver_does_not_fail_task(self) -> None:
        def receiver(event: ExecutionEvent) -> None:
            raise RuntimeError("ui closed")

        planner = ScriptedPlanner()
        navigator = ScriptedNavigator(done_on_calls={2})
        executor = TaskExecutor(
            tasks=[MULTI_STEP_TASK],
            settings=GeneralSettings(),
            navigator=navigator,
            planner=planner,
            config=ExecutorConfig(max_steps=10, planning_interval=3),
            emit_event_callable=receiver,
        )

        result = await executor.run()

        assert result.state == ExecutionState.COMPLETED
        assert result.failure is None
        assert (planner.calls, navigator.calls) == (1, 2)


class TestLifecycle:
    """One executor runs one task once."""

    @pytest.mark.asyncio
    async def test_run_twice_rejected(self) -> None:
        executor = make_executor(navigator=ScriptedNavigator(done_on_calls={1}))
        await executor.run()
        with pytest.raises(RuntimeError):
            await executor.run()

    @pytest.mark.asyncio
    async def test_state_transitions(self) -> None:
        executor = make_executor(navigator=ScriptedNavigator(done_on_calls={1}))
        assert executor.state == ExecutionState.IDLE
        await executor.run()
        assert executor.state == ExecutionState.COMPLETED
        assert executor.state.is_terminal
