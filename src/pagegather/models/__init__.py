"""Configuration and result models."""

from pagegather.models.config import (
    DEFAULT_GATHERERS,
    FormFactor,
    GatherConfig,
    GatherFlags,
    LoadFailureMode,
    PageTarget,
    PassConfig,
    RunSettings,
    ScreenEmulation,
    ThrottlingMethod,
    ThrottlingSettings,
    default_config,
)
from pagegather.models.results import ArtifactError, PageLoadError, PageLoadErrorCode, PassResult

__all__ = [
    "DEFAULT_GATHERERS",
    "ArtifactError",
    "FormFactor",
    "GatherConfig",
    "GatherFlags",
    "LoadFailureMode",
    "PageLoadError",
    "PageLoadErrorCode",
    "PageTarget",
    "PassConfig",
    "PassResult",
    "RunSettings",
    "ScreenEmulation",
    "ThrottlingMethod",
    "ThrottlingSettings",
    "default_config",
]
