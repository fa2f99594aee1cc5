"""Unit tests for emulation, throttling and storage reset."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from pagegather.driver import emulation
from pagegather.models.config import FormFactor, GatherFlags, RunSettings, ScreenEmulation, ThrottlingMethod


def _driver() -> MagicMock:
    driver = MagicMock()
    driver.send = AsyncMock(return_value={})
    return driver


def _calls(driver: MagicMock) -> dict:
    return {c.args[0]: (c.args[1] if len(c.args) > 1 else None) for c in driver.send.await_args_list}


@pytest.mark.parametrize(
    "url, origin",
    [
        ("https://example.com/path?q=1", "https://example.com"),
        ("http://localhost:8080/", "http://localhost:8080"),
        ("about:blank", ""),
        ("", ""),
    ],
)
def test_origin_of(url, origin):
    assert emulation.origin_of(url) == origin


class TestBeginEmulation:
    @pytest.mark.anyio
    async def test_mobile_defaults(self) -> None:
        driver = _driver()
        await emulation.begin_emulation(driver, RunSettings(emulated_user_agent="Mozilla/5.0 (Linux; Android 11)"))

        calls = _calls(driver)
        assert calls["Emulation.setDeviceMetricsOverride"]["mobile"] is True
        assert calls["Emulation.setTouchEmulationEnabled"] == {"enabled": True}
        assert calls["Network.setUserAgentOverride"] == {"userAgent": "Mozilla/5.0 (Linux; Android 11)"}

    @pytest.mark.anyio
    async def test_desktop_form_factor_metrics(self) -> None:
        driver = _driver()
        await emulation.begin_emulation(driver, RunSettings(form_factor=FormFactor.DESKTOP))

        calls = _calls(driver)
        assert calls["Emulation.setDeviceMetricsOverride"] == {
            "width": 1350,
            "height": 940,
            "deviceScaleFactor": 1.0,
            "mobile": False,
        }
        assert calls["Emulation.setTouchEmulationEnabled"] == {"enabled": False}

    @pytest.mark.anyio
    async def test_desktop_flag_switches_metrics(self) -> None:
        driver = _driver()
        settings = GatherFlags(form_factor=FormFactor.DESKTOP).apply_to(RunSettings())

        await emulation.begin_emulation(driver, settings)

        metrics = _calls(driver)["Emulation.setDeviceMetricsOverride"]
        assert metrics["mobile"] is False
        assert metrics["width"] == 1350

    @pytest.mark.anyio
    async def test_disabled_screen_emulation(self) -> None:
        driver = _driver()
        await emulation.begin_emulation(driver, RunSettings(screen_emulation=ScreenEmulation(disabled=True)))
        driver.send.assert_not_awaited()


class TestApplyThrottling:
    @pytest.mark.anyio
    async def test_provided_method_is_noop(self) -> None:
        driver = _driver()
        await emulation.apply_throttling(driver, RunSettings(), enabled=True)
        driver.send.assert_not_awaited()

    @pytest.mark.anyio
    async def test_devtools_throttling_on(self) -> None:
        driver = _driver()
        await emulation.apply_throttling(driver, RunSettings(throttling_method=ThrottlingMethod.DEVTOOLS), enabled=True)

        calls = _calls(driver)
        assert calls["Network.emulateNetworkConditions"]["latency"] == 150.0
        assert calls["Network.emulateNetworkConditions"]["downloadThroughput"] == pytest.approx(1638.4 * 1024 / 8)
        assert calls["Emulation.setCPUThrottlingRate"] == {"rate": 4.0}

    @pytest.mark.anyio
    async def test_devtools_throttling_off(self) -> None:
        driver = _driver()
        await emulation.apply_throttling(driver, RunSettings(throttling_method=ThrottlingMethod.DEVTOOLS), enabled=False)

        calls = _calls(driver)
        assert calls["Network.emulateNetworkConditions"]["latency"] == 0
        assert calls["Emulation.setCPUThrottlingRate"] == {"rate": 1}


@pytest.mark.anyio
async def test_reset_storage_skips_non_http_urls() -> None:
    driver = _driver()
    await emulation.reset_storage(driver, "about:blank", [])
    driver.send.assert_not_awaited()
