"""Device emulation, throttling and storage reset applied through the protocol."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from urllib.parse import urlsplit

from pagegather.exceptions import ProtocolTimeoutError
from pagegather.models.config import RunSettings, ThrottlingMethod

if TYPE_CHECKING:
    from pagegather.driver.base import DriverSession

logger = logging.getLogger(__name__)

_STORAGE_TYPES = ",".join(
    [
        "appcache",
        "cookies",
        "file_systems",
        "indexeddb",
        "local_storage",
        "shader_cache",
        "websql",
        "service_workers",
        "cache_storage",
    ]
)

_NO_THROTTLING = {"offline": False, "latency": 0, "downloadThroughput": 0, "uploadThroughput": 0}


def _kbps_to_bytes_per_sec(kbps: float) -> float:
    return kbps * 1024 / 8


async def begin_emulation(driver: DriverSession, settings: RunSettings) -> None:
    """Apply screen metrics and the user-agent override from *settings*."""
    screen = settings.screen_emulation
    if not screen.disabled:
        await driver.send(
            "Emulation.setDeviceMetricsOverride",
            {
                "width": screen.width,
                "height": screen.height,
                "deviceScaleFactor": screen.device_scale_factor,
                "mobile": screen.mobile,
            },
        )
        await driver.send("Emulation.setTouchEmulationEnabled", {"enabled": screen.mobile})

    if settings.emulated_user_agent:
        await driver.send("Network.setUserAgentOverride", {"userAgent": settings.emulated_user_agent})


async def apply_throttling(driver: DriverSession, settings: RunSettings, *, enabled: bool) -> None:
    """Turn devtools throttling on or off. No-op unless the method is ``devtools``."""
    if settings.throttling_method != ThrottlingMethod.DEVTOOLS:
        return

    if not enabled:
        await driver.send("Network.emulateNetworkConditions", dict(_NO_THROTTLING))
        await driver.send("Emulation.setCPUThrottlingRate", {"rate": 1})
        return

    t = settings.throttling
    await driver.send(
        "Network.emulateNetworkConditions",
        {
            "offline": False,
            "latency": t.rtt_ms,
            "downloadThroughput": _kbps_to_bytes_per_sec(t.download_throughput_kbps),
            "uploadThroughput": _kbps_to_bytes_per_sec(t.upload_throughput_kbps),
        },
    )
    await driver.send("Emulation.setCPUThrottlingRate", {"rate": t.cpu_slowdown_multiplier})


def origin_of(url: str) -> str:
    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        return ""
    return f"{parts.scheme}://{parts.netloc}"


async def reset_storage(driver: DriverSession, url: str, warnings: list[str]) -> None:
    """Clear all storage for the origin of *url*.

    A timeout is not fatal: the run continues with a warning that cached data
    may skew results. Any other protocol error propagates.
    """
    origin = origin_of(url)
    if not origin:
        return
    try:
        await driver.send("Storage.clearDataForOrigin", {"origin": origin, "storageTypes": _STORAGE_TYPES})
    except ProtocolTimeoutError:
        logger.warning("Storage reset for %s timed out", origin)
        warnings.append(
            f"Clearing the browser cache for {origin} timed out. "
            "Stored data may be affecting loading performance."
        )
