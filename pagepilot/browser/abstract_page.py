"""
pagepilot/browser/abstract_page.py

Abstract browser tab the navigator acts on.
"""

from abc import ABC, abstractmethod

from pagepilot.data_models.code_execution import CodeExecutionResult


class AbstractBrowserPage(ABC):
    """
    A single browser tab.

    execute_code() reports script failures through the returned result and
    only raises when the code could not be delivered to the page at all
    (transport failure, closed tab, timeout).
    """

    @abstractmethod
    async def execute_code(self, code: str) -> CodeExecutionResult:
        """
        Run a JavaScript function expression in the page and report its outcome.

        Args:
            code: A function expression (e.g. `() => ({success: true})`), possibly async.

        Returns:
            What the code reported, or a failed result if it threw.
        """

    @abstractmethod
    async def navigate(self, url: str) -> None:
        """Open url in this tab and wait for it to load."""

    @abstractmethod
    async def get_current_url(self) -> str | None:
        """Return the tab's current URL, or None if unknown."""
