"""Run, pass and target configuration models.

These are supplied by the caller and are read-only to the orchestrator.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from pagegather.exceptions import ParameterError


class LoadFailureMode(str, Enum):
    """How a pass treats a page-load error.

    ``fatal`` aborts every remaining pass, ``warn`` records a run warning and
    continues, ``ignore`` does not report the error at all.
    """

    FATAL = "fatal"
    WARN = "warn"
    IGNORE = "ignore"


class FormFactor(str, Enum):
    """Device class used for emulation and host classification."""

    MOBILE = "mobile"
    DESKTOP = "desktop"


class ThrottlingMethod(str, Enum):
    """``devtools`` applies protocol-level throttling; ``provided`` leaves the connection alone."""

    DEVTOOLS = "devtools"
    PROVIDED = "provided"


class ScreenEmulation(BaseModel):
    """Device metrics applied through ``Emulation.setDeviceMetricsOverride``."""

    width: int = 412
    height: int = 823
    device_scale_factor: float = 1.75
    mobile: bool = True
    disabled: bool = False

    @classmethod
    def for_form_factor(cls, form_factor: FormFactor) -> ScreenEmulation:
        """Default metrics for *form_factor* (a mid-range phone or a laptop screen)."""
        if form_factor == FormFactor.DESKTOP:
            return cls(width=1350, height=940, device_scale_factor=1.0, mobile=False)
        return cls()


class ThrottlingSettings(BaseModel):
    """Network and CPU throttling parameters (defaults approximate slow 4G)."""

    rtt_ms: float = 150.0
    download_throughput_kbps: float = 1638.4
    upload_throughput_kbps: float = 675.0
    cpu_slowdown_multiplier: float = 4.0


class RunSettings(BaseModel):
    """Settings shared by every pass of one run."""

    form_factor: FormFactor = FormFactor.MOBILE
    screen_emulation: ScreenEmulation = Field(default_factory=ScreenEmulation)
    emulated_user_agent: str = ""
    throttling_method: ThrottlingMethod = ThrottlingMethod.PROVIDED
    throttling: ThrottlingSettings = Field(default_factory=ThrottlingSettings)
    disable_storage_reset: bool = False
    max_wait_for_load_ms: int = Field(default=45_000, gt=0)
    blank_page_url: str = "about:blank"
    blocked_url_patterns: list[str] = Field(default_factory=list)
    extra_headers: dict[str, str] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _screen_from_form_factor(cls, data: Any) -> Any:
        """Without explicit ``screen_emulation``, use the metrics of ``form_factor``."""
        if not isinstance(data, dict) or "screen_emulation" in data:
            return data
        try:
            form_factor = FormFactor(data.get("form_factor", FormFactor.MOBILE))
        except ValueError:
            return data  # field validation reports it
        return {**data, "screen_emulation": ScreenEmulation.for_form_factor(form_factor)}


class PassConfig(BaseModel):
    """Immutable description of one pass."""

    model_config = ConfigDict(frozen=True)

    pass_name: str = "default_pass"
    load_failure_mode: LoadFailureMode = LoadFailureMode.FATAL
    use_throttling: bool = False
    pause_after_load_ms: int = Field(default=0, ge=0)
    blank_page: bool = False
    blocked_url_patterns: tuple[str, ...] = ()
    intercept_requests: bool = False
    gatherers: tuple[str, ...] = ()

    @property
    def is_fatal_on_load_failure(self) -> bool:
        return self.load_failure_mode == LoadFailureMode.FATAL


class GatherConfig(BaseModel):
    """Settings plus the ordered pass list for one run."""

    settings: RunSettings = Field(default_factory=RunSettings)
    passes: list[PassConfig] = Field(default_factory=list)


_FLAG_SETTINGS_FIELDS = ("form_factor", "throttling_method", "disable_storage_reset")


class GatherFlags(BaseModel):
    """Per-invocation overrides. ``None`` means "keep the configured value"."""

    log_level: str | None = None
    hostname: str | None = None
    port: int | None = None
    form_factor: FormFactor | None = None
    throttling_method: ThrottlingMethod | None = None
    disable_storage_reset: bool | None = None
    dispose_driver: bool | None = None

    def apply_to(self, settings: RunSettings) -> RunSettings:
        """Return a copy of *settings* with every non-null flag applied.

        A form-factor override also swaps the screen metrics, unless they were
        customized away from the configured form factor's defaults.
        """
        overrides: dict[str, Any] = {
            name: getattr(self, name)
            for name in _FLAG_SETTINGS_FIELDS
            if getattr(self, name) is not None
        }
        if (
            self.form_factor is not None
            and settings.screen_emulation == ScreenEmulation.for_form_factor(settings.form_factor)
        ):
            overrides["screen_emulation"] = ScreenEmulation.for_form_factor(self.form_factor)
        return settings.model_copy(update=overrides)


class PageTarget(BaseModel):
    """Direct-attach descriptor for a page whose id and debug port are already known."""

    model_config = ConfigDict(frozen=True)

    page_id: str = Field(min_length=1)
    debug_port: int = Field(gt=0, lt=65536)

    @field_validator("page_id")
    @classmethod
    def _strip_page_id(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("page_id must not be blank")
        return value

    @classmethod
    def from_devtools_info(cls, info: Mapping[str, Any] | None) -> PageTarget:
        """Validate a ``{page_id, debug_port}`` mapping.

        Raises:
            ParameterError: *info* is not a mapping, misses a key, or has an
                invalid value.
        """
        if not isinstance(info, Mapping) or "page_id" not in info or "debug_port" not in info:
            raise ParameterError(
                'Param "devtools_info" should be a mapping with keys page_id and debug_port.'
            )
        try:
            return cls(page_id=info["page_id"], debug_port=info["debug_port"])
        except ValidationError as exc:
            raise ParameterError(f"Invalid devtools_info: {exc.errors()[0]['msg']}") from exc


DEFAULT_GATHERERS: tuple[str, ...] = (
    "viewport_dimensions",
    "meta_elements",
    "main_document_content",
)


def default_config() -> GatherConfig:
    """Single fatal pass running every built-in gatherer."""
    return GatherConfig(passes=[PassConfig(pass_name="default_pass", gatherers=DEFAULT_GATHERERS)])
