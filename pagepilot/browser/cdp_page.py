"""
pagepilot/browser/cdp_page.py

Browser page driven over the Chrome DevTools Protocol.
"""

import asyncio
import json
from typing import Any

import websocket

from pagepilot.browser.abstract_page import AbstractBrowserPage
from pagepilot.config import Config
from pagepilot.data_models.code_execution import CodeExecutionResult
from pagepilot.utils.logger import get_logger
from pagepilot.utils.web_socket_utils import get_page_ws_url, recv_until, send_and_wait, send_cmd

logger = get_logger(name=__name__)


class CDPBrowserPage(AbstractBrowserPage):
    """
    One Chrome tab controlled through its DevTools websocket.

    The websocket is blocking, so every command runs in a worker thread and
    commands are serialized with a lock.
    """

    def __init__(self, ws: websocket.WebSocket, timeout: float | None = None) -> None:
        self._ws = ws
        self._timeout = timeout if timeout is not None else Config.CODE_TIMEOUT
        self._lock = asyncio.Lock()

    @classmethod
    def connect(
        cls,
        remote_debugging_address: str | None = None,
        timeout: float | None = None,
    ) -> "CDPBrowserPage":
        """Attach to the first page tab of a Chrome started with --remote-debugging-port."""
        address = remote_debugging_address or Config.REMOTE_DEBUGGING_ADDRESS
        ws_url = get_page_ws_url(address)
        ws = websocket.create_connection(ws_url, timeout=timeout or Config.CODE_TIMEOUT)
        logger.info("Connected to page at %s", ws_url)
        page = cls(ws, timeout=timeout)
        send_and_wait(ws, "Page.enable", timeout=page._timeout)
        send_and_wait(ws, "Runtime.enable", timeout=page._timeout)
        return page

    def close(self) -> None:
        self._ws.close()

    ## AbstractBrowserPage

    async def execute_code(self, code: str) -> CodeExecutionResult:
        reply = await self._command(
            "Runtime.evaluate",
            {
                "expression": f"({code})()",
                "returnByValue": True,
                "awaitPromise": True,
                "userGesture": True,
            },
        )
        if "error" in reply:
            # Protocol-level error: the code never ran
            raise RuntimeError(f"Runtime.evaluate error: {reply['error']}")

        result = reply.get("result", {})
        if "exceptionDetails" in result:
            return CodeExecutionResult(success=False, error=self._describe_exception(result["exceptionDetails"]))

        value = result.get("result", {}).get("value")
        return self._to_execution_result(value)

    async def navigate(self, url: str) -> None:
        reply = await self._command("Page.navigate", {"url": url}, wait_for_load=True)
        error_text = reply.get("result", {}).get("errorText")
        if "error" in reply or error_text:
            raise RuntimeError(f"Navigation to {url} failed: {reply.get('error') or error_text}")
        logger.info("Navigated to %s", url)

    async def get_current_url(self) -> str | None:
        reply = await self._command(
            "Runtime.evaluate",
            {"expression": "window.location.href", "returnByValue": True},
        )
        value = reply.get("result", {}).get("result", {}).get("value")
        return value if isinstance(value, str) else None

    ## Internal methods

    async def _command(
        self,
        method: str,
        params: dict[str, Any],
        wait_for_load: bool = False,
    ) -> dict[str, Any]:
        async with self._lock:
            return await asyncio.to_thread(self._command_sync, method, params, wait_for_load)

    def _command_sync(self, method: str, params: dict[str, Any], wait_for_load: bool) -> dict[str, Any]:
        msg_id = send_cmd(self._ws, method, params)
        reply = recv_until(self._ws, lambda m: m.get("id") == msg_id, self._timeout)
        if wait_for_load and "error" not in reply and not reply.get("result", {}).get("errorText"):
            recv_until(self._ws, lambda m: m.get("method") == "Page.loadEventFired", self._timeout)
        return reply

    @staticmethod
    def _describe_exception(details: dict[str, Any]) -> str:
        exception = details.get("exception") or {}
        return exception.get("description") or details.get("text") or "Uncaught exception"

    @staticmethod
    def _to_execution_result(value: Any) -> CodeExecutionResult:
        """Interpret the value returned by the code's function."""
        if isinstance(value, dict) and "success" in value:
            output = value.get("output")
            if output is not None and not isinstance(output, str):
                output = json.dumps(output)
            error = value.get("error")
            return CodeExecutionResult(
                success=bool(value["success"]),
                output=output,
                error=str(error) if error is not None else None,
            )
        # Functions that don't follow the {success, output, error} convention
        if value is None:
            return CodeExecutionResult(success=True)
        return CodeExecutionResult(
            success=True,
            output=value if isinstance(value, str) else json.dumps(value),
        )
