"""
pagepilot/data_models/code_execution.py

Result of running a snippet in the page.
"""

from pydantic import BaseModel, Field


class CodeExecutionResult(BaseModel):
    """
    Outcome reported by the page for a code-execution request.

    Mirrors the `{success, output?, error?}` object the snippet itself returns.
    """
    success: bool = Field(description="Whether the code reported success")
    output: str | None = Field(default=None, description="Human-readable output on success")
    error: str | None = Field(default=None, description="Error description on failure")
