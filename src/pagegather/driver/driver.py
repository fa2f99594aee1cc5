"""CDP-backed driver: the concrete ``DriverSession`` used for real runs."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from pagegather.driver import emulation
from pagegather.driver.navigation import classify_page_load_error, load_page
from pagegather.exceptions import ArtifactCollectionError, ProtocolError
from pagegather.gatherers import get_gatherer
from pagegather.models.config import LoadFailureMode, PageTarget
from pagegather.models.results import ArtifactError, PassResult

if TYPE_CHECKING:
    from pagegather.devtools.connection import DevtoolsConnection
    from pagegather.devtools.session import CdpSession
    from pagegather.gather.context import GatherOptions, PassContext

logger = logging.getLogger(__name__)


class ExecutionContext:
    """Evaluates JavaScript in the page's main world."""

    def __init__(self, driver: Driver) -> None:
        self._driver = driver

    async def evaluate(self, function_source: str, args: Sequence[Any] = ()) -> Any:
        """Call the function declared by *function_source* with *args* and return its value."""
        arg_list = ", ".join(json.dumps(a) for a in args)
        return await self.evaluate_expression(f"({function_source.strip()})({arg_list})")

    async def evaluate_expression(self, expression: str) -> Any:
        """Evaluate *expression*, awaiting a returned promise.

        Raises:
            ProtocolError: The expression threw in the page.
        """
        response = await self._driver.send(
            "Runtime.evaluate",
            {"expression": expression, "returnByValue": True, "awaitPromise": True},
        )
        details = response.get("exceptionDetails")
        if details:
            exception = details.get("exception") or {}
            text = exception.get("description") or details.get("text") or "evaluation failed"
            raise ProtocolError("Runtime.evaluate", text)
        return (response.get("result") or {}).get("value")


class Fetcher:
    """Request interception through the ``Fetch`` domain.

    Turned on per pass by ``PassConfig.intercept_requests`` (gatherers may
    also enable it from ``before_pass``); the orchestrator turns it off after
    every pass that completes.

    While enabled, every paused request is continued unchanged.
    """

    def __init__(self, driver: Driver) -> None:
        self._driver = driver
        self._enabled = False
        self._in_flight: set[asyncio.Task[Any]] = set()

    @property
    def enabled(self) -> bool:
        return self._enabled

    async def enable_request_interception(self, patterns: Sequence[str] = ("*",)) -> None:
        if self._enabled:
            return
        self._driver.session.on("Fetch.requestPaused", self._on_request_paused)
        await self._driver.send("Fetch.enable", {"patterns": [{"urlPattern": p} for p in patterns]})
        self._enabled = True

    async def disable_request_interception(self) -> None:
        if not self._enabled:
            return
        self._enabled = False
        self._driver.session.off("Fetch.requestPaused", self._on_request_paused)
        await self._driver.send("Fetch.disable")

    def _on_request_paused(self, params: dict[str, Any]) -> None:
        task = asyncio.ensure_future(
            self._driver.send("Fetch.continueRequest", {"requestId": params["requestId"]})
        )
        self._in_flight.add(task)
        task.add_done_callback(self._request_settled)

    def _request_settled(self, task: asyncio.Task[Any]) -> None:
        self._in_flight.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.debug("Fetch.continueRequest failed: %s", task.exception())


class Driver:
    """Drives one page over a ``DevtoolsConnection``.

    Args:
        connection: The connection adapter.
        target: When given, ``connect()`` attaches straight to this page;
            otherwise it discovers the first open page.
    """

    def __init__(self, connection: DevtoolsConnection, target: PageTarget | None = None) -> None:
        self._connection = connection
        self._target = target
        self._session: CdpSession | None = None
        self.execution_context = ExecutionContext(self)
        self.fetcher = Fetcher(self)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def session(self) -> CdpSession:
        if self._session is None:
            raise RuntimeError("Driver not connected. Call connect() first.")
        return self._session

    async def connect(self) -> None:
        if self._session is not None:
            return
        if self._target is not None:
            self._session = await self._connection.connect_to_page(
                self._target.page_id, self._target.debug_port
            )
        else:
            self._session = await self._connection.connect()

    async def dispose(self) -> None:
        """Close the session. A second call is a no-op."""
        if self._session is None:
            return
        session, self._session = self._session, None
        await session.close()
        logger.info("Driver disposed")

    async def send(self, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        return await self.session.send(method, params)

    # ------------------------------------------------------------------
    # Page-level operations
    # ------------------------------------------------------------------

    async def navigate_to_blank(self, url: str = "about:blank") -> None:
        await self.send("Page.enable")
        await load_page(self, url, timeout=30.0)

    async def get_browser_version(self) -> dict[str, str]:
        version = await self.send("Browser.getVersion")
        return {
            "product": version.get("product", ""),
            "protocol_version": version.get("protocolVersion", ""),
            "user_agent": version.get("userAgent", ""),
            "js_version": version.get("jsVersion", ""),
        }

    async def setup(self, options: GatherOptions, warnings: list[str]) -> None:
        """Run-wide setup: enable domains, emulate, set headers, reset storage."""
        settings = options.settings
        for domain in ("Page", "Network", "Runtime"):
            await self.send(f"{domain}.enable")
        await emulation.begin_emulation(self, settings)
        if settings.extra_headers:
            await self.send("Network.setExtraHTTPHeaders", {"headers": dict(settings.extra_headers)})
        if not settings.disable_storage_reset:
            await emulation.reset_storage(self, options.requested_url, warnings)

    async def run_pass(self, context: PassContext) -> PassResult:
        """Load the page once and collect every gatherer's artifact."""
        pass_config = context.pass_config
        settings = context.settings
        gatherers = [get_gatherer(name) for name in pass_config.gatherers]
        logger.info("Running pass %s (%d gatherers)", pass_config.pass_name, len(gatherers))

        if pass_config.blank_page:
            await self.navigate_to_blank(settings.blank_page_url)
        await self.send(
            "Network.setBlockedURLs",
            {"urls": [*settings.blocked_url_patterns, *pass_config.blocked_url_patterns]},
        )
        await emulation.apply_throttling(self, settings, enabled=pass_config.use_throttling)
        if pass_config.intercept_requests:
            await self.fetcher.enable_request_interception()

        for gatherer in gatherers:
            await gatherer.before_pass(context)

        load = await load_page(
            self,
            context.url,
            timeout=settings.max_wait_for_load_ms / 1000,
            pause_after_load_ms=pass_config.pause_after_load_ms,
        )
        if load.timed_out:
            context.run_warnings.append(
                f"The page loaded too slowly to finish within {settings.max_wait_for_load_ms}ms. "
                "Results may be incomplete."
            )

        page_load_error = None
        if pass_config.load_failure_mode != LoadFailureMode.IGNORE:
            page_load_error = classify_page_load_error(load)

        if page_load_error is not None:
            logger.error("Pass %s: %s %s", pass_config.pass_name, page_load_error.friendly_message, context.url)
            context.run_warnings.append(page_load_error.friendly_message)
            artifacts: dict[str, Any] = {
                g.name: ArtifactError(g.name, page_load_error.friendly_message) for g in gatherers
            }
            return PassResult(artifacts=artifacts, page_load_error=page_load_error, final_url=load.final_url)

        artifacts = {}
        for gatherer in gatherers:
            try:
                artifacts[gatherer.name] = await gatherer.after_pass(context, load)
            except ArtifactCollectionError as exc:
                logger.warning("Gatherer %s failed: %s", gatherer.name, exc)
                artifacts[gatherer.name] = ArtifactError(gatherer.name, str(exc))
        return PassResult(artifacts=artifacts, final_url=load.final_url)
