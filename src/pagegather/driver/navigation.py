"""Page navigation with load tracking, and page-load error classification."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pagegather.models.results import PageLoadError, PageLoadErrorCode

if TYPE_CHECKING:
    from pagegather.driver.driver import Driver

logger = logging.getLogger(__name__)

INTERSTITIAL_PREFIX = "chrome-error://"


@dataclass
class LoadData:
    """What was observed while loading the pass URL."""

    requested_url: str
    final_url: str = ""
    main_document: dict[str, Any] | None = None
    navigation_error: str = ""
    loading_failed: str = ""
    timed_out: bool = False
    request_ids: list[str] = field(default_factory=list)

    @property
    def status_code(self) -> int | None:
        if self.main_document is None:
            return None
        return int(self.main_document.get("status", 0))


def classify_page_load_error(load: LoadData) -> PageLoadError | None:
    """Return the page-load error for *load*, or ``None`` if the page loaded.

    A failed document request wins over an interstitial (a network failure
    always lands on the browser error page), which wins over a missing
    document, which wins over an HTTP error status.
    """
    url = load.requested_url
    network_error = load.navigation_error or load.loading_failed
    if network_error:
        return PageLoadError(
            PageLoadErrorCode.FAILED_DOCUMENT_REQUEST,
            f"The page failed to load reliably ({network_error}).",
            url=url,
        )

    if load.final_url.startswith(INTERSTITIAL_PREFIX):
        return PageLoadError(
            PageLoadErrorCode.CHROME_INTERSTITIAL_ERROR,
            "The browser showed an interstitial instead of the page.",
            url=url,
        )

    if load.main_document is None:
        return PageLoadError(
            PageLoadErrorCode.NO_DOCUMENT_REQUEST,
            "No document request was observed for the page.",
            url=url,
        )

    status = load.status_code or 0
    if status >= 400:
        return PageLoadError(
            PageLoadErrorCode.ERRORED_DOCUMENT_REQUEST,
            "The page responded with an error status.",
            url=url,
            status_code=status,
        )
    return None


async def load_page(
    driver: Driver,
    url: str,
    *,
    timeout: float,
    pause_after_load_ms: int = 0,
) -> LoadData:
    """Navigate the main frame to *url* and wait for its load event.

    A load timeout is recorded on the result rather than raised.
    """
    session = driver.session
    data = LoadData(requested_url=url)
    frame_tree = await driver.send("Page.getFrameTree")
    main_frame_id = frame_tree["frameTree"]["frame"]["id"]

    def _on_request(params: dict[str, Any]) -> None:
        if params.get("type") == "Document" and params.get("frameId") == main_frame_id:
            data.request_ids.append(params["requestId"])

    def _on_response(params: dict[str, Any]) -> None:
        if params.get("requestId") in data.request_ids:
            data.main_document = {**params.get("response", {}), "request_id": params["requestId"]}

    def _on_failed(params: dict[str, Any]) -> None:
        if params.get("requestId") in data.request_ids and not params.get("canceled"):
            data.loading_failed = params.get("errorText", "unknown network error")

    listeners = {
        "Network.requestWillBeSent": _on_request,
        "Network.responseReceived": _on_response,
        "Network.loadingFailed": _on_failed,
    }
    for event, handler in listeners.items():
        session.on(event, handler)

    waiter = asyncio.ensure_future(session.wait_for_event("Page.loadEventFired", timeout=timeout))
    try:
        navigation = await driver.send("Page.navigate", {"url": url})
        if navigation.get("errorText"):
            data.navigation_error = navigation["errorText"]
        else:
            try:
                await waiter
            except asyncio.TimeoutError:
                data.timed_out = True
                logger.warning("Load of %s did not finish within %.1fs", url, timeout)

        if pause_after_load_ms:
            await asyncio.sleep(pause_after_load_ms / 1000)

        data.final_url = await driver.execution_context.evaluate_expression("location.href") or url
    finally:
        if not waiter.done():
            waiter.cancel()
            with contextlib.suppress(asyncio.CancelledError, asyncio.TimeoutError):
                await waiter
        for event, handler in listeners.items():
            session.off(event, handler)

    return data
