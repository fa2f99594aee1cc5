"""Run options and the per-pass context handed to the driver and gatherers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from pagegather.models.config import PassConfig, RunSettings

if TYPE_CHECKING:
    from pagegather.driver.base import DriverSession
    from pagegather.gather.base_artifacts import BaseArtifactsBuilder


@dataclass
class GatherOptions:
    """What one run needs: the driver, the URL to audit, and the run settings."""

    driver: DriverSession
    requested_url: str
    settings: RunSettings


@dataclass
class PassContext:
    """Created fresh for every pass and discarded afterwards.

    ``base_artifacts`` and ``run_warnings`` are shared with the whole run;
    ``run_warnings`` is the very list the builder owns, so appends here show
    up in the final ``run_warnings`` artifact.
    """

    driver: DriverSession
    url: str
    settings: RunSettings
    pass_config: PassConfig
    base_artifacts: BaseArtifactsBuilder
    run_warnings: list[str]
    gather_mode: str = "navigation"
