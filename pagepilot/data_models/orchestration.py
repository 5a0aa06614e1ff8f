"""
pagepilot/data_models/orchestration.py

Data models for the task executor: lifecycle states, per-run step-loop
state, emitted events and the final result.
"""

from enum import StrEnum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from pagepilot.utils.exceptions import TaskExecutionError


class ExecutionState(StrEnum):
    """Lifecycle of a single task execution."""
    IDLE = "idle"                             # constructed, run() not awaited yet
    LOOPING = "looping"                       # step loop in progress
    COMPLETED = "completed"                   # planner or navigator reported the task done
    CANCELLED = "cancelled"                   # cancellation observed at a boundary
    FAILED = "failed"                         # a pass raised
    MAX_STEPS_REACHED = "max_steps_reached"   # step ceiling hit without completion

    @property
    def is_terminal(self) -> bool:
        return self not in (ExecutionState.IDLE, ExecutionState.LOOPING)


class ExecutionPhase(StrEnum):
    """Which pass of an iteration was running."""
    PLANNING = "planning"
    EXECUTION = "execution"


class StepLoopState(BaseModel):
    """
    Mutable state owned by one executor run; discarded when the loop exits.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    step: int = Field(default=0, ge=0, description="Iterations started so far")
    navigator_just_finished: bool = Field(
        default=False,
        description="Previous execution pass reported done (pending planner validation)",
    )
    done: bool = Field(default=False)
    latest_plan: Any | None = Field(default=None, description="Output of the most recent planning pass")


class ExecutionFailure(BaseModel):
    """Attributable description of a fatal pass failure."""
    step: int = Field(description="Step during which the pass failed")
    phase: ExecutionPhase = Field(description="Pass that failed")
    error: str = Field(description="Error message")

    def to_exception(self) -> TaskExecutionError:
        """Build the matching TaskExecutionError."""
        return TaskExecutionError(step=self.step, phase=self.phase.value, message=self.error)


class ExecutionResult(BaseModel):
    """What a finished run reports to its caller."""
    task: str
    state: ExecutionState
    steps: int = Field(description="Iterations started before the loop exited")
    js_only: bool = Field(description="Whether the JS fast path applied to this task")
    planning_passes: int = Field(default=0)
    execution_passes: int = Field(default=0)
    failure: ExecutionFailure | None = Field(default=None)

    @property
    def is_successful(self) -> bool:
        return self.state == ExecutionState.COMPLETED

    def raise_for_failure(self) -> None:
        """Raise TaskExecutionError if the run failed."""
        if self.failure is not None:
            raise self.failure.to_exception()


## Events emitted while the executor runs

class ExecutionEvent(BaseModel):
    """Base class for executor events."""
    type: str
    task: str
    step: int


class StepStartedEvent(ExecutionEvent):
    """Emitted at the start of every iteration."""
    type: Literal["step_started"] = "step_started"
    will_plan: bool = Field(description="Whether a planning pass runs this iteration")


class PlanCreatedEvent(ExecutionEvent):
    """Emitted after a planning pass."""
    type: Literal["plan_created"] = "plan_created"
    task_complete: bool


class TaskFinishedEvent(ExecutionEvent):
    """Emitted once when the loop reaches a terminal state."""
    type: Literal["task_finished"] = "task_finished"
    state: ExecutionState
    failure: ExecutionFailure | None = None


ExecutionEventUnion = Annotated[
    Union[StepStartedEvent, PlanCreatedEvent, TaskFinishedEvent],
    Field(discriminator="type"),
]

execution_event_adapter: TypeAdapter[ExecutionEventUnion] = TypeAdapter(ExecutionEventUnion)
