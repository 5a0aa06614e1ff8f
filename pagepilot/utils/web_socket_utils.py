"""
pagepilot/utils/web_socket_utils.py

Helpers for talking to Chrome over the DevTools Protocol.
"""

import itertools
import json
import time
from typing import Any, Callable

import requests
import websocket

from pagepilot.utils.logger import get_logger

logger = get_logger(name=__name__)


_message_ids = itertools.count(1)


def get_page_ws_url(remote_debugging_address: str, timeout: float = 5.0) -> str:
    """
    Return the DevTools websocket URL of the first open page tab.

    Args:
        remote_debugging_address: e.g. http://127.0.0.1:9222
        timeout: HTTP timeout in seconds.

    Raises:
        RuntimeError: If no page target is open.
        requests.RequestException: If the debugging endpoint is unreachable.
    """
    resp = requests.get(f"{remote_debugging_address.rstrip('/')}/json", timeout=timeout)
    resp.raise_for_status()
    for target in resp.json():
        if target.get("type") == "page" and target.get("webSocketDebuggerUrl"):
            logger.debug("Using page target %s (%s)", target.get("id"), target.get("url"))
            return target["webSocketDebuggerUrl"]
    raise RuntimeError(f"No page target found at {remote_debugging_address}")


def send_cmd(ws: websocket.WebSocket, method: str, params: dict[str, Any] | None = None) -> int:
    """Send a CDP command and return its message id."""
    msg_id = next(_message_ids)
    msg: dict[str, Any] = {"id": msg_id, "method": method}
    if params:
        msg["params"] = params
    ws.send(json.dumps(msg))
    return msg_id


def recv_until(
    ws: websocket.WebSocket,
    predicate: Callable[[dict[str, Any]], bool],
    timeout: float = 15.0,
) -> dict[str, Any]:
    """
    Read messages until one satisfies predicate, discarding the others.

    Raises:
        TimeoutError: If no matching message arrives in time.
    """
    deadline = time.time() + timeout
    while time.time() < deadline:
        raw = ws.recv()
        if not raw:
            continue
        data = json.loads(raw)
        if predicate(data):
            return data
    raise TimeoutError("Timed out waiting for a CDP message")


def send_and_wait(
    ws: websocket.WebSocket,
    method: str,
    params: dict[str, Any] | None = None,
    timeout: float = 15.0,
) -> dict[str, Any]:
    """Send a CDP command and return its reply."""
    msg_id = send_cmd(ws, method, params)
    return recv_until(ws, lambda m: m.get("id") == msg_id, timeout)
