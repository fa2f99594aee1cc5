"""Connection adapter: find (or be told) which page to attach to, then open a socket."""

from __future__ import annotations

import logging
from collections.abc import Mapping

from pagegather.devtools.session import CdpSession
from pagegather.devtools.transport import Transport
from pagegather.exceptions import DevtoolsConnectionError, NoOpenTargetError
from pagegather.models.config import PageTarget

logger = logging.getLogger(__name__)


class DevtoolsConnection:
    """Attaches to a single page through a ``Transport``.

    Two modes:

    * ``connect()``: discovery. Lists open pages, activates the first one
      and opens a socket to it.
    * ``connect_to_page()``: direct attach. The caller already knows the
      page id and debug port; no listing and no activation happen.
    """

    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    @property
    def hostname(self) -> str:
        return self._transport.hostname

    async def connect(self) -> CdpSession:
        """Connect to the first open page.

        Raises:
            NoOpenTargetError: The listing is empty or not a list.
            DevtoolsConnectionError: The first entry cannot be attached to,
                or the HTTP/socket layer failed.
        """
        tabs = await self._transport.list_endpoints()
        if not isinstance(tabs, list) or not tabs:
            raise NoOpenTargetError()

        first_tab = tabs[0]
        if not isinstance(first_tab, Mapping) or not first_tab.get("id"):
            raise NoOpenTargetError()
        ws_url = first_tab.get("webSocketDebuggerUrl")
        if not ws_url:
            raise DevtoolsConnectionError(
                f"Page {first_tab['id']} has no webSocketDebuggerUrl (is another client attached?)"
            )

        # Foreground first; background tabs throttle timers and rendering.
        await self._transport.activate(first_tab["id"])
        logger.info("Activated page %s (%s)", first_tab["id"], first_tab.get("url", ""))
        return await self._transport.open_socket(ws_url)

    async def connect_to_page(self, page_id: str, debug_port: int) -> CdpSession:
        """Attach directly to *page_id* on *debug_port*.

        Raises:
            ParameterError: Either value is missing or invalid. Raised before
                any network call.
        """
        target = PageTarget.from_devtools_info({"page_id": page_id, "debug_port": debug_port})
        ws_url = f"ws://{self.hostname}:{target.debug_port}/devtools/page/{target.page_id}"
        return await self._transport.open_socket(ws_url)
