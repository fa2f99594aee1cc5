"""Entry point: gather artifacts for one URL from a remote DevTools page.

Usage::

    from pagegather.adapter import gather_page

    result = await gather_page(
        "https://example.com",
        devtools_info={"page_id": "A1B2C3", "debug_port": 9222},
    )
    if result.degraded:
        print(result.page_load_error.friendly_message)
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pagegather.devtools.connection import DevtoolsConnection
from pagegather.devtools.transport import HttpTransport
from pagegather.driver.base import DriverSession
from pagegather.driver.driver import Driver
from pagegather.exceptions import NoPassesConfiguredError
from pagegather.gather.context import GatherOptions
from pagegather.gather.orchestrator import PassOrchestrator
from pagegather.logging_config import configure_logging
from pagegather.models.config import GatherConfig, GatherFlags, PageTarget, default_config
from pagegather.runner import Runner, run

logger = logging.getLogger(__name__)


async def gather_artifacts_from_browser(
    requested_url: str,
    config: GatherConfig,
    connection: DevtoolsConnection,
    *,
    target: PageTarget | None = None,
    driver: DriverSession | None = None,
    should_dispose_driver: bool = False,
) -> dict[str, Any]:
    """Run *config*'s passes against the page and return the artifact record.

    Args:
        requested_url: URL every pass loads.
        config: Run settings and the ordered pass list.
        connection: Connection adapter for the debugging endpoint.
        target: Direct-attach descriptor; discovery mode when ``None``.
        driver: Pre-built driver (tests pass a double); built from
            *connection* and *target* when ``None``.
        should_dispose_driver: Close the session after a successful run.

    Raises:
        NoPassesConfiguredError: *config* has no passes.
    """
    if not config.passes:
        raise NoPassesConfiguredError()
    driver = driver or Driver(connection, target)
    options = GatherOptions(driver=driver, requested_url=requested_url, settings=config.settings)
    orchestrator = PassOrchestrator()
    try:
        return await orchestrator.run(config.passes, options, should_dispose_driver)
    except Exception:
        # Let the disposal scheduled by the failed run finish before the
        # caller's event loop can shut down.
        await orchestrator.wait_for_cleanup()
        raise


async def gather_page(
    url: str,
    flags: GatherFlags | None = None,
    config: GatherConfig | None = None,
    devtools_info: Mapping[str, Any] | None = None,
    *,
    runner: Runner | None = None,
    driver: DriverSession | None = None,
) -> Any:
    """Gather artifacts for *url* and hand them to *runner*.

    Args:
        url: The URL to audit.
        flags: Per-invocation overrides (log level, host/port, settings).
        config: Passes and settings; ``default_config()`` when ``None``.
        devtools_info: ``{"page_id", "debug_port"}`` to attach directly to a
            known page. When ``None`` the first open page is used.
        runner: Consumer of the gather function; ``pagegather.runner.run``
            when ``None``.
        driver: Driver override, mainly for tests.

    Raises:
        ParameterError: *devtools_info* is given but incomplete. Raised
            before any connection attempt.
    """
    from pagegather.settings import get_settings

    target = PageTarget.from_devtools_info(devtools_info) if devtools_info is not None else None
    flags = flags or GatherFlags()
    settings = get_settings()

    configure_logging(flags.log_level or settings.gather.log_level, json_format=settings.gather.log_format == "json")

    config = config or default_config()
    config = config.model_copy(update={"settings": flags.apply_to(config.settings)})
    connection = DevtoolsConnection(HttpTransport(flags.hostname, flags.port))
    should_dispose = settings.gather.dispose_driver if flags.dispose_driver is None else flags.dispose_driver

    async def gather_fn(*, requested_url: str) -> dict[str, Any]:
        return await gather_artifacts_from_browser(
            requested_url,
            config,
            connection,
            target=target,
            driver=driver,
            should_dispose_driver=should_dispose,
        )

    logger.info("Gathering %s (%s)", url, f"page {target.page_id}" if target else "first open page")
    return await (runner or run)(gather_fn, url)
