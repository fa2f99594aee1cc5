"""Unit tests for the pass orchestrator.

The driver is a ``MagicMock`` from the ``make_driver`` fixture; each test
chooses the ``PassResult`` sequence ``run_pass`` returns.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from pagegather.exceptions import NoPassesConfiguredError, ProtocolError
from pagegather.gather.context import GatherOptions
from pagegather.gather.orchestrator import PassOrchestrator, PassOutcome, RunState
from pagegather.models.config import LoadFailureMode, PassConfig, RunSettings
from pagegather.models.results import PageLoadError, PageLoadErrorCode, PassResult


URL = "https://example.com/"

BASE_KEYS = {
    "fetch_time",
    "settings",
    "urls",
    "host_user_agent",
    "host_form_factor",
    "benchmark_index",
    "network_user_agent",
    "run_warnings",
    "stacks",
    "web_app_manifest",
    "timing",
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _pass(name: str, mode: LoadFailureMode = LoadFailureMode.FATAL) -> PassConfig:
    return PassConfig(pass_name=name, load_failure_mode=mode)


def _load_error() -> PageLoadError:
    return PageLoadError(PageLoadErrorCode.ERRORED_DOCUMENT_REQUEST, "bad status", url=URL, status_code=500)


def _options(driver) -> GatherOptions:
    return GatherOptions(driver=driver, requested_url=URL, settings=RunSettings())


def _benchmark_calls(driver) -> int:
    return sum(
        1 for call in driver.execution_context.evaluate.await_args_list if "computeBenchmarkIndex" in call.args[0]
    )


# ---------------------------------------------------------------------------
# Merging
# ---------------------------------------------------------------------------


class TestArtifactMerging:
    """Final record is base artifacts plus every pass's artifacts."""

    @pytest.mark.anyio
    async def test_key_set_is_union_and_last_pass_wins(self, make_driver) -> None:
        driver = make_driver(
            [
                PassResult(artifacts={"a": 1, "b": "first"}),
                PassResult(artifacts={"b": "second", "c": 3}),
            ]
        )
        result = await PassOrchestrator().run([_pass("p0"), _pass("p1")], _options(driver))

        assert set(result) == BASE_KEYS | {"a", "b", "c"}
        assert result["b"] == "second"
        assert result["a"] == 1
        assert "page_load_error" not in result

    @pytest.mark.anyio
    async def test_pass_artifacts_override_base_artifact_names(self, make_driver) -> None:
        driver = make_driver([PassResult(artifacts={"benchmark_index": "from-gatherer"})])
        result = await PassOrchestrator().run([_pass("p0")], _options(driver))
        assert result["benchmark_index"] == "from-gatherer"

    @pytest.mark.anyio
    async def test_base_fields_populated(self, make_driver) -> None:
        driver = make_driver([PassResult(artifacts={}, final_url="https://example.com/home")])
        result = await PassOrchestrator().run([_pass("p0")], _options(driver))

        assert result["benchmark_index"] == 1432.5
        assert result["host_form_factor"] == "desktop"
        assert result["network_user_agent"].startswith("Mozilla/5.0 (Linux; Android")
        assert result["urls"] == {"requested_url": URL, "final_url": "https://example.com/home"}
        assert result["stacks"][0]["id"] == "react"
        assert result["web_app_manifest"] is None
        timing_names = [entry["name"] for entry in result["timing"]]
        assert "pagegather:gather:getBenchmarkIndex" in timing_names
        assert "pagegather:gather:runPass-p0" in timing_names


# ---------------------------------------------------------------------------
# Once-per-run steps
# ---------------------------------------------------------------------------


class TestOncePerRun:
    @pytest.mark.anyio
    @pytest.mark.parametrize("pass_count", [1, 2, 5])
    async def test_benchmark_fetched_exactly_once(self, make_driver, pass_count: int) -> None:
        driver = make_driver([PassResult(artifacts={}) for _ in range(pass_count)])
        passes = [_pass(f"p{i}") for i in range(pass_count)]

        await PassOrchestrator().run(passes, _options(driver))

        assert _benchmark_calls(driver) == 1
        assert driver.run_pass.await_count == pass_count

    @pytest.mark.anyio
    async def test_first_pass_population_runs_once_on_first_pass(self, make_driver) -> None:
        driver = make_driver([PassResult(artifacts={}) for _ in range(3)])
        populate = AsyncMock(return_value={"network_user_agent": "UA", "stacks": [], "web_app_manifest": None})

        with patch("pagegather.gather.orchestrator.populate_base_artifacts", populate):
            await PassOrchestrator().run([_pass("p0"), _pass("p1"), _pass("p2")], _options(driver))

        populate.assert_awaited_once()
        context = populate.await_args.args[0]
        assert context.pass_config.pass_name == "p0"

    @pytest.mark.anyio
    async def test_population_follows_non_fatal_load_error(self, make_driver) -> None:
        """A warn-mode failure on p0 still counts as the first pass reached."""
        driver = make_driver(
            [PassResult(artifacts={}, page_load_error=_load_error()), PassResult(artifacts={})]
        )
        populate = AsyncMock(return_value={"network_user_agent": "UA", "stacks": [], "web_app_manifest": None})

        with patch("pagegather.gather.orchestrator.populate_base_artifacts", populate):
            await PassOrchestrator().run(
                [_pass("p0", LoadFailureMode.WARN), _pass("p1")], _options(driver)
            )

        populate.assert_awaited_once()
        assert populate.await_args.args[0].pass_config.pass_name == "p0"

    @pytest.mark.anyio
    async def test_steps_run_in_order(self, make_driver) -> None:
        driver = make_driver([PassResult(artifacts={}), PassResult(artifacts={})])
        orchestrator = PassOrchestrator()

        await orchestrator.run([_pass("p0"), _pass("p1")], _options(driver), should_dispose_driver=True)

        assert orchestrator.history == [
            RunState.CONNECTING,
            RunState.PRIMING,
            RunState.PROBING,
            RunState.SETTING_UP,
            RunState.RUNNING_PASS,
            RunState.RUNNING_PASS,
            RunState.DISPOSED,
            RunState.FINALIZING,
            RunState.DONE,
        ]
        driver.navigate_to_blank.assert_awaited_once_with("about:blank")


# ---------------------------------------------------------------------------
# Page-load failure policy
# ---------------------------------------------------------------------------


class TestLoadFailurePolicy:
    @pytest.mark.anyio
    async def test_fatal_error_stops_remaining_passes(self, make_driver) -> None:
        error = _load_error()
        driver = make_driver(
            [
                PassResult(artifacts={"p0_artifact": "x"}, page_load_error=error),
                PassResult(artifacts={"p1_artifact": "y"}),
            ]
        )
        orchestrator = PassOrchestrator()

        result = await orchestrator.run([_pass("p0"), _pass("p1")], _options(driver))

        assert driver.run_pass.await_count == 1
        assert result["page_load_error"] is error
        assert result["p0_artifact"] == "x"
        assert "p1_artifact" not in result
        # First-pass population never ran.
        assert "stacks" not in result
        assert result["urls"]["final_url"] == URL
        assert orchestrator.pass_outcomes == [("p0", PassOutcome.FATAL_BREAK)]

    @pytest.mark.anyio
    async def test_non_fatal_error_continues(self, make_driver) -> None:
        driver = make_driver(
            [
                PassResult(artifacts={"p0_artifact": "x"}, page_load_error=_load_error()),
                PassResult(artifacts={"p1_artifact": "y"}),
            ]
        )

        result = await PassOrchestrator().run(
            [_pass("p0", LoadFailureMode.WARN), _pass("p1")], _options(driver)
        )

        assert driver.run_pass.await_count == 2
        assert result["p0_artifact"] == "x"
        assert result["p1_artifact"] == "y"
        assert "page_load_error" not in result

    @pytest.mark.anyio
    async def test_fatal_error_on_later_pass_keeps_earlier_artifacts(self, make_driver) -> None:
        driver = make_driver(
            [
                PassResult(artifacts={"a": 1}),
                PassResult(artifacts={"b": 2}, page_load_error=_load_error()),
                PassResult(artifacts={"c": 3}),
            ]
        )

        result = await PassOrchestrator().run([_pass("p0"), _pass("p1"), _pass("p2")], _options(driver))

        assert result["a"] == 1 and result["b"] == 2
        assert "c" not in result
        assert "stacks" in result
        assert result["page_load_error"].status_code == 500


# ---------------------------------------------------------------------------
# Interception cleanup
# ---------------------------------------------------------------------------


class TestInterceptionCleanup:
    @pytest.mark.anyio
    async def test_disabled_once_per_completed_pass(self, make_driver) -> None:
        driver = make_driver([PassResult(artifacts={}) for _ in range(3)])
        await PassOrchestrator().run([_pass("p0"), _pass("p1"), _pass("p2")], _options(driver))
        assert driver.fetcher.disable_request_interception.await_count == 3

    @pytest.mark.anyio
    async def test_skipped_for_fatally_terminating_pass(self, make_driver) -> None:
        driver = make_driver(
            [PassResult(artifacts={}), PassResult(artifacts={}, page_load_error=_load_error())]
        )
        await PassOrchestrator().run([_pass("p0"), _pass("p1")], _options(driver))
        assert driver.fetcher.disable_request_interception.await_count == 1

    @pytest.mark.anyio
    async def test_skipped_when_first_pass_is_fatal(self, make_driver) -> None:
        driver = make_driver([PassResult(artifacts={}, page_load_error=_load_error())])
        await PassOrchestrator().run([_pass("p0")], _options(driver))
        driver.fetcher.disable_request_interception.assert_not_awaited()


# ---------------------------------------------------------------------------
# Shared warnings
# ---------------------------------------------------------------------------


class TestRunWarnings:
    @pytest.mark.anyio
    async def test_setup_and_passes_share_one_list(self, make_driver) -> None:
        driver = make_driver()
        seen: dict[str, list[str]] = {}

        async def _setup(options, warnings):
            seen["setup"] = warnings
            warnings.append("storage warning")

        async def _run_pass(context):
            seen["pass"] = context.run_warnings
            context.run_warnings.append("slow load")
            context.run_warnings.append("storage warning")
            return PassResult(artifacts={})

        driver.setup.side_effect = _setup
        driver.run_pass.side_effect = _run_pass

        result = await PassOrchestrator().run([_pass("p0")], _options(driver))

        assert seen["setup"] is seen["pass"]
        # De-duplicated, first occurrence order kept.
        assert result["run_warnings"] == ["storage warning", "slow load"]


# ---------------------------------------------------------------------------
# Disposal
# ---------------------------------------------------------------------------


class TestDisposal:
    @pytest.mark.anyio
    async def test_disposes_when_requested(self, make_driver) -> None:
        driver = make_driver()
        await PassOrchestrator().run([_pass("p0")], _options(driver), should_dispose_driver=True)
        driver.dispose.assert_awaited_once()

    @pytest.mark.anyio
    async def test_keeps_session_by_default(self, make_driver) -> None:
        driver = make_driver()
        await PassOrchestrator().run([_pass("p0")], _options(driver))
        driver.dispose.assert_not_awaited()

    @pytest.mark.anyio
    async def test_disposal_failure_on_success_path_is_logged(self, make_driver, caplog) -> None:
        driver = make_driver([PassResult(artifacts={"a": 1})])
        driver.dispose.side_effect = RuntimeError("close/abc status: 500")

        result = await PassOrchestrator().run([_pass("p0")], _options(driver), should_dispose_driver=True)

        assert result["a"] == 1
        assert "Driver disposal failed" in caplog.text

    @pytest.mark.anyio
    async def test_error_in_second_of_three_passes(self, make_driver) -> None:
        original = ProtocolError("Page.navigate", "Target closed")
        driver = make_driver()
        driver.run_pass.side_effect = [PassResult(artifacts={"a": 1}), original, PassResult(artifacts={})]
        driver.dispose.side_effect = RuntimeError("dispose also failed")
        orchestrator = PassOrchestrator()

        with pytest.raises(ProtocolError) as exc_info:
            await orchestrator.run([_pass("p0"), _pass("p1"), _pass("p2")], _options(driver))
        await orchestrator.wait_for_cleanup()

        assert exc_info.value is original
        assert driver.run_pass.await_count == 2
        driver.dispose.assert_awaited_once()
        assert orchestrator.state == RunState.FAILED

    @pytest.mark.anyio
    async def test_connect_failure_still_disposes(self, make_driver) -> None:
        driver = make_driver()
        driver.connect.side_effect = ConnectionError("refused")
        orchestrator = PassOrchestrator()

        with pytest.raises(ConnectionError, match="refused"):
            await orchestrator.run([_pass("p0")], _options(driver))
        await orchestrator.wait_for_cleanup()

        driver.run_pass.assert_not_awaited()
        driver.dispose.assert_awaited_once()

    @pytest.mark.anyio
    async def test_no_second_disposal_after_normal_dispose(self, make_driver) -> None:
        driver = make_driver()
        orchestrator = PassOrchestrator()

        with patch(
            "pagegather.gather.orchestrator.finalize_base_artifacts", side_effect=RuntimeError("finalize")
        ):
            with pytest.raises(RuntimeError, match="finalize"):
                await orchestrator.run([_pass("p0")], _options(driver), should_dispose_driver=True)
        await orchestrator.wait_for_cleanup()

        driver.dispose.assert_awaited_once()


class TestPreconditions:
    @pytest.mark.anyio
    async def test_empty_pass_list_rejected_before_io(self, make_driver) -> None:
        driver = make_driver()
        with pytest.raises(NoPassesConfiguredError):
            await PassOrchestrator().run([], _options(driver))
        driver.connect.assert_not_awaited()
