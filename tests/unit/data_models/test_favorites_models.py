"""
tests/unit/data_models/test_favorites_models.py

Unit tests for the favorites and orchestration data models.
"""

import pytest
from pydantic import ValidationError

from pagepilot.data_models.favorites import CodeFavorite, FavoritesCollection
from pagepilot.data_models.orchestration import (
    ExecutionFailure,
    ExecutionPhase,
    ExecutionResult,
    ExecutionState,
    PlanCreatedEvent,
    TaskFinishedEvent,
    execution_event_adapter,
)
from pagepilot.utils.exceptions import TaskExecutionError


class TestFavoritesCollection:
    """Tests for FavoritesCollection validation."""

    def test_next_id_must_exceed_ids(self) -> None:
        favorite = CodeFavorite(id=3, name="a", code="() => 1", url_pattern="*")
        with pytest.raises(ValidationError):
            FavoritesCollection(next_id=3, favorites=[favorite])

    def test_loads_camel_case_record(self) -> None:
        collection = FavoritesCollection.model_validate({
            "nextId": 2,
            "favorites": [{
                "id": 1, "name": "a", "code": "() => 1", "urlPattern": "*", "useCount": 4, "createdAt": 1_700_000_000_000,
            }],
        })
        assert collection.favorites[0].use_count == 4
        assert collection.favorites[0].url_pattern == "*"


class TestExecutionModels:
    """Tests for executor result and event models."""

    def test_failure_to_exception(self) -> None:
        failure = ExecutionFailure(step=4, phase=ExecutionPhase.PLANNING, error="timeout")
        error = failure.to_exception()
        assert isinstance(error, TaskExecutionError)
        assert (error.step, error.phase) == (4, "planning")
        assert str(error) == "Task failed at step 4 during planning pass: timeout"

    def test_successful_result_does_not_raise(self) -> None:
        result = ExecutionResult(task="t", state=ExecutionState.COMPLETED, steps=1, js_only=False)
        assert result.is_successful
        result.raise_for_failure()

    @pytest.mark.parametrize("state", list(ExecutionState))
    def test_terminal_states(self, state: ExecutionState) -> None:
        assert state.is_terminal is (state not in (ExecutionState.IDLE, ExecutionState.LOOPING))

    def test_event_union_dispatches_on_type(self) -> None:
        event = execution_event_adapter.validate_python(
            {"type": "plan_created", "task": "t", "step": 2, "task_complete": True}
        )
        assert isinstance(event, PlanCreatedEvent)
        finished = execution_event_adapter.validate_json(
            TaskFinishedEvent(task="t", step=3, state=ExecutionState.CANCELLED).model_dump_json()
        )
        assert isinstance(finished, TaskFinishedEvent)
        assert finished.state == ExecutionState.CANCELLED
