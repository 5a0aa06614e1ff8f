"""
pagepilot/data_models/agent_outputs.py

Structured outputs requested from the LLM by the planner and the navigator.
"""

from typing import Literal, Union

from pydantic import BaseModel, Field


class PlanOutput(BaseModel):
    """Planner response for one planning pass."""
    observation: str = Field(description="What the planner sees in the current state and history")
    done: bool = Field(description="Whether the ultimate task is fully accomplished")
    challenges: str = Field(default="", description="Potential obstacles")
    next_steps: str = Field(default="", description="The next 2-3 high-level steps, empty when done")
    final_answer: str = Field(default="", description="Answer to the user when done, empty otherwise")
    reasoning: str = Field(default="", description="Why these steps were chosen")


class ExecuteCodeAction(BaseModel):
    """Run a JavaScript function in the page."""
    type: Literal["execute_code"] = "execute_code"
    intent: str = Field(description="One sentence describing what the code does")
    code: str = Field(description="A function expression returning {success, output?, error?}")


class GoToUrlAction(BaseModel):
    """Navigate the current tab."""
    type: Literal["go_to_url"] = "go_to_url"
    intent: str = Field(description="Why the navigation is needed")
    url: str = Field(description="Absolute URL to open")


class DoneAction(BaseModel):
    """Declare the task finished."""
    type: Literal["done"] = "done"
    text: str = Field(description="Final message for the user")
    success: bool = Field(default=True, description="Whether the task was accomplished")


# Plain union: the Literal `type` fields keep validation unambiguous and the
# generated schema stays a simple anyOf for structured-output APIs.
NavigatorAction = Union[ExecuteCodeAction, GoToUrlAction, DoneAction]


class NavigatorOutput(BaseModel):
    """Navigator response for one execution pass."""
    evaluation_previous_goal: str = Field(default="", description="Success/Failed/Unknown with a short reason")
    next_goal: str = Field(default="", description="What the actions below should achieve")
    actions: list[NavigatorAction] = Field(default_factory=list, description="Actions to run in order")


class ActionResult(BaseModel):
    """Outcome of a single navigator action."""
    is_done: bool = Field(default=False)
    success: bool = Field(default=True)
    content: str | None = Field(default=None, description="Text recorded in the transcript")
    error: str | None = Field(default=None)
