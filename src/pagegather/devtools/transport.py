"""Transport capability used by ``DevtoolsConnection``.

The connection composes a ``Transport`` instead of extending one, so the
discovery logic does not depend on any particular HTTP or WebSocket library.
``HttpTransport`` is the real implementation: ``httpx`` for the
``/json/*`` endpoints and ``websockets`` for the page socket.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol, runtime_checkable

import httpx
from websockets.asyncio.client import connect
from websockets.exceptions import WebSocketException

from pagegather.devtools.session import CdpSession
from pagegather.exceptions import DevtoolsConnectionError

logger = logging.getLogger(__name__)


@runtime_checkable
class Transport(Protocol):
    """What a connection needs from the remote-debugging endpoint."""

    hostname: str

    async def list_endpoints(self) -> Any:
        """Return the raw page listing (normally a list of dicts)."""
        ...

    async def activate(self, target_id: str) -> None:
        """Bring *target_id* to the foreground."""
        ...

    async def open_socket(self, ws_url: str) -> CdpSession:
        """Open a protocol session on *ws_url*."""
        ...


class HttpTransport:
    """DevTools HTTP + WebSocket transport.

    Args:
        hostname: Debugging host. Defaults to ``settings.devtools.hostname``.
        port: Debugging port. Defaults to ``settings.devtools.port``.
        client: Optional shared ``httpx.AsyncClient`` (tests inject one
            backed by ``httpx.MockTransport``).
    """

    def __init__(
        self,
        hostname: str | None = None,
        port: int | None = None,
        *,
        http_timeout: float | None = None,
        command_timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        from pagegather.settings import get_settings

        s = get_settings()
        self.hostname: str = hostname or s.devtools.hostname
        self.port: int = port or s.devtools.port
        self._http_timeout: float = http_timeout or s.devtools.http_timeout_sec
        self._command_timeout: float = command_timeout or s.devtools.command_timeout_sec
        self._client = client

    @property
    def base_url(self) -> str:
        return f"http://{self.hostname}:{self.port}"

    async def list_endpoints(self) -> Any:
        return await self._run_json_command("list")

    async def activate(self, target_id: str) -> None:
        await self._run_json_command(f"activate/{target_id}")

    async def open_socket(self, ws_url: str) -> CdpSession:
        try:
            websocket = await connect(ws_url, max_size=None, open_timeout=self._http_timeout)
        except (OSError, WebSocketException, asyncio.TimeoutError) as exc:
            raise DevtoolsConnectionError(f"Could not open DevTools socket {ws_url}: {exc}") from exc

        session = CdpSession(websocket, url=ws_url, command_timeout=self._command_timeout)
        session.start()
        logger.info("Connected to %s", ws_url)
        return session

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _run_json_command(self, command: str) -> Any:
        """GET ``/json/<command>``; returns parsed JSON, or the raw text if the body is not JSON."""
        url = f"{self.base_url}/json/{command}"
        try:
            if self._client is not None:
                resp = await self._client.get(url, timeout=self._http_timeout)
            else:
                async with httpx.AsyncClient(timeout=self._http_timeout) as client:
                    resp = await client.get(url)
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise DevtoolsConnectionError(
                f"DevTools endpoint {url} returned HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise DevtoolsConnectionError(f"DevTools endpoint {url} unreachable: {exc}") from exc

        try:
            return resp.json()
        except ValueError:
            return resp.text
