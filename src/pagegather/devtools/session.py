"""CDP socket session over one WebSocket to one page.

Commands are JSON messages with an incrementing ``id``; a single reader task
matches responses to pending futures and fans protocol events out to
listeners registered with ``on()``.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from collections import defaultdict
from collections.abc import Callable
from typing import Any

from websockets.exceptions import ConnectionClosed

from pagegather.exceptions import ProtocolError, ProtocolTimeoutError

logger = logging.getLogger(__name__)

EventHandler = Callable[[dict[str, Any]], None]


class CdpSession:
    """A live DevTools protocol session over an open WebSocket.

    Args:
        websocket: An open client connection from ``websockets``.
        url: The socket URL, kept for logging.
        command_timeout: Seconds to wait for a command response.
    """

    def __init__(self, websocket: Any, *, url: str = "", command_timeout: float = 30.0) -> None:
        self._ws = websocket
        self.url = url
        self._command_timeout = command_timeout
        self._next_id = 0
        self._pending: dict[int, asyncio.Future[dict[str, Any]]] = {}
        self._listeners: dict[str, list[EventHandler]] = defaultdict(list)
        self._reader: asyncio.Task[None] | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> None:
        """Start the reader task. Must be called from a running event loop."""
        if self._reader is None:
            self._reader = asyncio.get_running_loop().create_task(self._read_loop())

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def send(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """Send a protocol command and return its ``result`` payload.

        Raises:
            ProtocolError: The browser answered with an error, the socket
                closed, or no answer arrived within the timeout.
        """
        if self._closed:
            raise ProtocolError(method, "session is closed")

        self._next_id += 1
        msg_id = self._next_id
        future: asyncio.Future[dict[str, Any]] = asyncio.get_running_loop().create_future()
        self._pending[msg_id] = future

        message: dict[str, Any] = {"id": msg_id, "method": method}
        if params:
            message["params"] = params

        wait = timeout if timeout is not None else self._command_timeout
        try:
            await self._ws.send(json.dumps(message))
            response = await asyncio.wait_for(future, wait)
        except asyncio.TimeoutError as exc:
            raise ProtocolTimeoutError(method, f"no response within {wait:.1f}s") from exc
        except ConnectionClosed as exc:
            raise ProtocolError(method, "socket closed") from exc
        finally:
            self._pending.pop(msg_id, None)

        if "error" in response:
            error = response["error"] or {}
            raise ProtocolError(method, error.get("message", "unknown protocol error"), error.get("code"))
        return response.get("result", {})

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def on(self, event: str, handler: EventHandler) -> None:
        self._listeners[event].append(handler)

    def off(self, event: str, handler: EventHandler) -> None:
        handlers = self._listeners.get(event)
        if handlers and handler in handlers:
            handlers.remove(handler)

    async def wait_for_event(
        self,
        event: str,
        *,
        timeout: float,
        predicate: Callable[[dict[str, Any]], bool] | None = None,
    ) -> dict[str, Any]:
        """Wait for the next *event* whose params satisfy *predicate*.

        Raises:
            asyncio.TimeoutError: The event did not arrive in time.
        """
        future: asyncio.Future[dict[str, Any]] = asyncio.get_running_loop().create_future()

        def _handler(params: dict[str, Any]) -> None:
            if not future.done() and (predicate is None or predicate(params)):
                future.set_result(params)

        self.on(event, _handler)
        try:
            return await asyncio.wait_for(future, timeout)
        finally:
            self.off(event, _handler)

    def _dispatch(self, event: str, params: dict[str, Any]) -> None:
        for handler in list(self._listeners.get(event, ())):
            try:
                handler(params)
            except Exception:
                logger.exception("Listener for %s failed", event)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def _read_loop(self) -> None:
        try:
            async for raw in self._ws:
                try:
                    message = json.loads(raw)
                except ValueError:
                    logger.warning("Dropping non-JSON protocol frame from %s", self.url)
                    continue
                if "id" in message:
                    future = self._pending.get(message["id"])
                    if future is not None and not future.done():
                        future.set_result(message)
                elif "method" in message:
                    self._dispatch(message["method"], message.get("params") or {})
        except ConnectionClosed:
            logger.debug("Socket %s closed", self.url)
        finally:
            for msg_id, future in list(self._pending.items()):
                if not future.done():
                    future.set_exception(ProtocolError("", f"socket closed before response to command {msg_id}"))

    async def close(self) -> None:
        """Close the socket and stop the reader. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        await self._ws.close()
        if self._reader is not None:
            self._reader.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._reader
        logger.debug("CDP session closed: %s", self.url)
