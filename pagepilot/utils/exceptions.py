"""
pagepilot/utils/exceptions.py

Custom exceptions for the project.
"""

from __future__ import annotations


class LLMStructuredOutputError(Exception):
    """
    Exception raised when LLM structured output parsing fails.
    """
    pass


class StorageWriteError(Exception):
    """
    Exception raised when the persistence layer rejects a write.

    The in-memory view of the record is left exactly as it was before the
    failed read-modify-write.
    """

    def __init__(self, key: str, cause: Exception | None = None) -> None:
        self.key = key
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Failed to persist storage key '{key}'{detail}")


class TaskExecutionError(Exception):
    """
    Exception raised when a planning or execution pass fails unrecoverably.

    Carries the step number and the phase that failed so the caller can
    report an attributable message to the user.
    """

    def __init__(self, step: int, phase: str, message: str) -> None:
        self.step = step
        self.phase = phase
        self.message = message
        super().__init__(f"Task failed at step {step} during {phase} pass: {message}")
