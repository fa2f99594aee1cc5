"""Base artifacts: the once-per-run part of the artifact record.

Each stage function returns only the fields it contributes and the builder
merges them, refusing to apply any stage twice. The run-warnings list is the
one exception to "return, don't mutate": it is a single list object shared
with every pass context, and the builder keeps that object for the whole run.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any

from pagegather.exceptions import ProtocolError, StageAlreadyAppliedError
from pagegather.models.config import FormFactor
from pagegather.models.results import PageLoadError
from pagegather.timing import TimingLog

if TYPE_CHECKING:
    from pagegather.driver.base import DriverSession
    from pagegather.gather.context import GatherOptions, PassContext

logger = logging.getLogger(__name__)

_DETECT_STACKS_JS = """
function detectStacks() {
  const probes = [
    ['jquery', () => window.jQuery && window.jQuery.fn && window.jQuery.fn.jquery],
    ['react', () => window.React && (window.React.version || 'unknown')],
    ['vue', () => window.Vue && (window.Vue.version || 'unknown')],
    ['angular', () => window.angular && window.angular.version && window.angular.version.full],
    ['next', () => window.next && (window.next.version || 'unknown')],
    ['wordpress', () => window.wp && 'unknown'],
  ];
  const stacks = [];
  for (const [id, probe] of probes) {
    try {
      const version = probe();
      if (version) stacks.push({detector: 'js', id, version: String(version)});
    } catch (e) {}
  }
  return stacks;
}
"""


class BaseStage(str, Enum):
    """Stages that contribute base-artifact fields, each at most once per run."""

    INITIAL = "initial"
    BENCHMARK = "benchmark"
    FIRST_PASS = "first_pass"
    FINAL = "final"


class BaseArtifactsBuilder:
    """Assembles base artifacts for one run."""

    def __init__(self) -> None:
        self.run_warnings: list[str] = []
        self._fields: dict[str, Any] = {}
        self._applied: list[BaseStage] = []

    def apply(self, stage: BaseStage, fields: Mapping[str, Any]) -> None:
        """Merge the fields contributed by *stage*.

        Raises:
            StageAlreadyAppliedError: *stage* was applied before in this run.
        """
        if stage in self._applied:
            raise StageAlreadyAppliedError(stage.value)
        fields = dict(fields)
        warnings = fields.pop("run_warnings", None)
        if warnings is not None:
            # Replace contents, keep the shared list object.
            self.run_warnings[:] = warnings
        self._fields.update(fields)
        self._applied.append(stage)

    def record_final_url(self, url: str) -> None:
        self._fields["urls"] = {**self._fields.get("urls", {}), "final_url": url}

    def record_page_load_error(self, error: PageLoadError) -> None:
        self._fields["page_load_error"] = error

    def get(self, key: str, default: Any = None) -> Any:
        if key == "run_warnings":
            return self.run_warnings
        return self._fields.get(key, default)

    def snapshot(self) -> dict[str, Any]:
        """Current fields, including run warnings, as a new dict."""
        return {**self._fields, "run_warnings": list(self.run_warnings)}

    def build(self) -> dict[str, Any]:
        """Return the finished base artifacts. The final stage must have been applied."""
        if BaseStage.FINAL not in self._applied:
            raise RuntimeError("Base artifacts are not finalized")
        return self.snapshot()


def host_form_factor(user_agent: str) -> FormFactor:
    if "Android" in user_agent or "Mobile" in user_agent:
        return FormFactor.MOBILE
    return FormFactor.DESKTOP


async def initialize_base_artifacts(options: GatherOptions) -> dict[str, Any]:
    """Fields known before any page work: run metadata and the host browser."""
    version = await options.driver.get_browser_version()
    host_user_agent = version.get("user_agent", "")
    return {
        "fetch_time": datetime.now(timezone.utc).isoformat(),
        "settings": options.settings.model_dump(mode="json"),
        "urls": {"requested_url": options.requested_url, "final_url": ""},
        "host_user_agent": host_user_agent,
        "host_form_factor": host_form_factor(host_user_agent).value,
        "benchmark_index": 0.0,
        "network_user_agent": "",
        "run_warnings": [],
    }


async def _fetch_web_app_manifest(driver: DriverSession) -> dict[str, Any] | None:
    try:
        manifest = await driver.send("Page.getAppManifest")
    except ProtocolError as exc:
        logger.warning("Web app manifest unavailable: %s", exc)
        return None
    if not manifest.get("url"):
        return None
    return {
        "url": manifest["url"],
        "raw": manifest.get("data", ""),
        "errors": manifest.get("errors", []),
    }


async def populate_base_artifacts(context: PassContext) -> dict[str, Any]:
    """Environment fields that need a loaded page. Collected once, on the first pass."""
    execution_context = context.driver.execution_context
    network_user_agent = await execution_context.evaluate_expression("navigator.userAgent")
    stacks = await execution_context.evaluate(_DETECT_STACKS_JS)
    return {
        "network_user_agent": network_user_agent or "",
        "stacks": stacks or [],
        "web_app_manifest": await _fetch_web_app_manifest(context.driver),
    }


def finalize_base_artifacts(builder: BaseArtifactsBuilder, timing: TimingLog) -> dict[str, Any]:
    """Close out accumulation-only fields: de-duplicated warnings, final URL, timing."""
    urls = dict(builder.get("urls") or {})
    if builder.get("page_load_error") is not None and not urls.get("final_url"):
        urls["final_url"] = urls.get("requested_url", "")
    return {
        "run_warnings": list(dict.fromkeys(builder.run_warnings)),
        "urls": urls,
        "timing": timing.take_entries(),
    }
