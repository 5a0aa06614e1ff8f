"""
pagepilot/data_models/settings.py

General settings persisted by the settings storage.

Field names are snake_case in Python and camelCase on disk, so records
written by older versions (missing newer keys) still validate with defaults.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class GeneralSettings(BaseModel):
    """
    User-tunable agent behaviour.

    `fast_js_mode` only has an effect while `allow_code_generation` is on;
    use `fast_js_mode_enabled` rather than reading the raw flag.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    allow_code_generation: bool = Field(
        default=False,
        description="Master switch for any in-page code execution",
    )
    fast_js_mode: bool = Field(
        default=False,
        description="Skip the planner for tasks that are pure in-page JavaScript",
    )
    max_steps: int = Field(
        default=100,
        ge=1,
        description="Maximum executor iterations per task",
    )
    max_actions_per_step: int = Field(
        default=10,
        ge=1,
        description="Maximum navigator actions per execution pass",
    )
    planning_interval: int = Field(
        default=3,
        ge=1,
        description="Run the planner every N steps",
    )

    @property
    def fast_js_mode_enabled(self) -> bool:
        """Whether the JS fast path may be used at all."""
        return self.fast_js_mode and self.allow_code_generation
