"""Pass orchestrator: runs the ordered passes of one gather over a single driver.

Run states, in order::

    CONNECTING -> PRIMING -> PROBING -> SETTING_UP -> RUNNING_PASS (per pass)
        -> [DISPOSED] -> FINALIZING -> DONE

Any exception moves the run to FAILED, schedules disposal without waiting for
it, and re-raises the original exception.

Each pass ends on one of two edges. CONTINUE runs the one-time first-pass
population (first pass only) and disables request interception.
FATAL_BREAK (a page-load error on a ``fatal`` pass) records the error and
stops immediately; that pass gets neither population nor interception
cleanup.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from enum import Enum
from typing import Any

from pagegather.driver.base import DriverSession
from pagegather.exceptions import NoPassesConfiguredError
from pagegather.gather.accumulator import merge_artifacts
from pagegather.gather.base_artifacts import (
    BaseArtifactsBuilder,
    BaseStage,
    finalize_base_artifacts,
    initialize_base_artifacts,
    populate_base_artifacts,
)
from pagegather.gather.benchmark import get_benchmark_index
from pagegather.gather.context import GatherOptions, PassContext
from pagegather.models.config import PassConfig
from pagegather.models.results import PageLoadError, PassResult
from pagegather.timing import TimingLog

logger = logging.getLogger(__name__)


class RunState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    PRIMING = "priming"
    PROBING = "probing"
    SETTING_UP = "setting_up"
    RUNNING_PASS = "running_pass"
    DISPOSED = "disposed"
    FINALIZING = "finalizing"
    DONE = "done"
    FAILED = "failed"


class PassOutcome(str, Enum):
    CONTINUE = "continue"
    FATAL_BREAK = "fatal_break"


def classify_pass(pass_config: PassConfig, result: PassResult) -> PassOutcome:
    """FATAL_BREAK only when the pass saw a page-load error and its config says ``fatal``."""
    if result.page_load_error is not None and pass_config.is_fatal_on_load_failure:
        return PassOutcome.FATAL_BREAK
    return PassOutcome.CONTINUE


async def dispose_driver(driver: DriverSession) -> None:
    """Dispose *driver*, logging rather than raising if that fails."""
    try:
        await driver.dispose()
    except Exception as exc:
        logger.error("Driver disposal failed: %s", exc)


class PassOrchestrator:
    """Sequences passes over one driver and returns the merged artifact record.

    One instance serves one run at a time; concurrent runs need their own
    orchestrator and their own driver.
    """

    def __init__(self, timing: TimingLog | None = None) -> None:
        self.state = RunState.IDLE
        self.history: list[RunState] = []
        self.pass_outcomes: list[tuple[str, PassOutcome]] = []
        self._timing = timing or TimingLog()
        self._cleanup_tasks: set[asyncio.Task[None]] = set()

    def _transition(self, state: RunState) -> None:
        logger.debug("Gather run: %s -> %s", self.state.value, state.value)
        self.state = state
        self.history.append(state)

    async def run(
        self,
        pass_configs: Sequence[PassConfig],
        options: GatherOptions,
        should_dispose_driver: bool = False,
    ) -> dict[str, Any]:
        """Run every pass in order and return ``{**base_artifacts, **artifacts}``.

        A fatal page-load error does not raise: the partial record is returned
        with ``page_load_error`` set.

        Raises:
            NoPassesConfiguredError: *pass_configs* is empty.
            Exception: Whatever a driver operation raised, unchanged.
        """
        if not pass_configs:
            raise NoPassesConfiguredError()

        driver = options.driver
        artifacts: dict[str, Any] = {}
        disposed = False

        try:
            self._transition(RunState.CONNECTING)
            await driver.connect()

            # Leave whatever page the browser was on before emulation and
            # interception are configured.
            self._transition(RunState.PRIMING)
            await driver.navigate_to_blank(options.settings.blank_page_url)

            base = BaseArtifactsBuilder()
            base.apply(BaseStage.INITIAL, await initialize_base_artifacts(options))

            self._transition(RunState.PROBING)
            benchmark_index = await get_benchmark_index(driver.execution_context, self._timing)
            base.apply(BaseStage.BENCHMARK, {"benchmark_index": benchmark_index})

            self._transition(RunState.SETTING_UP)
            with self._timing.measure("pagegather:gather:setupDriver"):
                await driver.setup(options, base.run_warnings)

            is_first_pass = True
            for pass_config in pass_configs:
                self._transition(RunState.RUNNING_PASS)
                context = PassContext(
                    driver=driver,
                    url=options.requested_url,
                    settings=options.settings,
                    pass_config=pass_config,
                    base_artifacts=base,
                    run_warnings=base.run_warnings,
                )
                with self._timing.measure(f"pagegather:gather:runPass-{pass_config.pass_name}"):
                    result = await driver.run_pass(context)

                artifacts = merge_artifacts(artifacts, result.artifacts)
                if result.final_url:
                    base.record_final_url(result.final_url)

                outcome = classify_pass(pass_config, result)
                self.pass_outcomes.append((pass_config.pass_name, outcome))
                if outcome is PassOutcome.FATAL_BREAK:
                    self._end_on_fatal_load_error(base, pass_config, result.page_load_error)
                    break

                if is_first_pass:
                    base.apply(BaseStage.FIRST_PASS, await populate_base_artifacts(context))
                    is_first_pass = False

                await driver.fetcher.disable_request_interception()

            if should_dispose_driver:
                await dispose_driver(driver)
                disposed = True
                self._transition(RunState.DISPOSED)

            self._transition(RunState.FINALIZING)
            base.apply(BaseStage.FINAL, finalize_base_artifacts(base, self._timing))
            self._transition(RunState.DONE)
            return {**base.build(), **artifacts}
        except BaseException:
            # Cancellation included. Disposal is not awaited so its own failure
            # cannot replace the error being raised.
            self._transition(RunState.FAILED)
            if not disposed:
                self._schedule_disposal(driver)
            raise

    def _end_on_fatal_load_error(
        self, base: BaseArtifactsBuilder, pass_config: PassConfig, error: PageLoadError
    ) -> None:
        """FATAL_BREAK edge: record the error; no interception cleanup for this pass."""
        base.record_page_load_error(error)
        logger.error(
            "Pass %s hit a fatal page-load error (%s); skipping remaining passes",
            pass_config.pass_name,
            error.code.value,
        )

    # ------------------------------------------------------------------
    # Best-effort cleanup on the error path
    # ------------------------------------------------------------------

    def _schedule_disposal(self, driver: DriverSession) -> None:
        task = asyncio.ensure_future(dispose_driver(driver))
        self._cleanup_tasks.add(task)
        task.add_done_callback(self._cleanup_tasks.discard)

    async def wait_for_cleanup(self) -> None:
        """Wait for any disposal scheduled by a failed run."""
        if self._cleanup_tasks:
            await asyncio.gather(*self._cleanup_tasks, return_exceptions=True)
