"""pagegather test configuration: shared fixtures for unit tests."""

from __future__ import annotations

import logging
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from pagegather.models.results import PassResult

# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    """Clear the settings LRU cache between tests."""
    from pagegather.settings.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def _restore_root_logger():
    """Undo configure_logging() calls made by the code under test."""
    root = logging.getLogger()
    level, handlers = root.level, list(root.handlers)
    yield
    root.setLevel(level)
    root.handlers[:] = handlers


# ---------------------------------------------------------------------------
# Driver double
# ---------------------------------------------------------------------------

BENCHMARK_INDEX = 1432.5
HOST_UA = "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 Chrome/120.0 Safari/537.36"


def _evaluate(function_source: str, args: Any = ()) -> Any:
    if "computeBenchmarkIndex" in function_source:
        return BENCHMARK_INDEX
    if "detectStacks" in function_source:
        return [{"detector": "js", "id": "react", "version": "18.2.0"}]
    return None


def build_mock_driver(pass_results: list[PassResult] | None = None) -> MagicMock:
    """Return a ``MagicMock`` shaped like ``DriverSession``.

    ``run_pass`` yields *pass_results* in order (one per call).
    """
    driver = MagicMock()
    driver.connect = AsyncMock()
    driver.navigate_to_blank = AsyncMock()
    driver.get_browser_version = AsyncMock(return_value={"user_agent": HOST_UA, "product": "Chrome/120.0"})
    driver.send = AsyncMock(return_value={})
    driver.setup = AsyncMock()
    driver.run_pass = AsyncMock(side_effect=list(pass_results or [PassResult(artifacts={})]))
    driver.dispose = AsyncMock()
    driver.execution_context.evaluate = AsyncMock(side_effect=_evaluate)
    driver.execution_context.evaluate_expression = AsyncMock(return_value="Mozilla/5.0 (Linux; Android 11) Mobile")
    driver.fetcher.disable_request_interception = AsyncMock()
    return driver


@pytest.fixture()
def make_driver():
    """Factory fixture so each test can choose its pass results."""
    return build_mock_driver


# ---------------------------------------------------------------------------
# Pytest markers
# ---------------------------------------------------------------------------


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests that require external services or real I/O")


@pytest.fixture()
def anyio_backend() -> str:
    """The code under test is asyncio-based; run anyio-marked tests on asyncio."""
    return "asyncio"
