"""Minimal runner: invokes a gather function and wraps its artifact record.

Scoring and report rendering belong to whoever consumes ``RunnerResult``;
nothing here interprets artifacts beyond lifting a few run-level fields.
"""

from __future__ import annotations

import dataclasses
import json
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pagegather.models.results import PageLoadError

GatherFn = Callable[..., Awaitable[dict[str, Any]]]
Runner = Callable[[GatherFn, str], Awaitable[Any]]


@dataclass
class RunnerResult:
    """Artifact record for one URL plus the fields callers check first."""

    requested_url: str
    final_url: str = ""
    fetch_time: str = ""
    artifacts: dict[str, Any] = field(default_factory=dict)
    run_warnings: list[str] = field(default_factory=list)
    page_load_error: PageLoadError | None = None

    @property
    def degraded(self) -> bool:
        """True when a fatal page-load error cut the run short."""
        return self.page_load_error is not None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a plain dict suitable for JSON output."""
        return {
            "requested_url": self.requested_url,
            "final_url": self.final_url,
            "fetch_time": self.fetch_time,
            "run_warnings": list(self.run_warnings),
            "page_load_error": self.page_load_error.to_dict() if self.page_load_error else None,
            "artifacts": to_jsonable(self.artifacts),
        }


def to_jsonable(value: Any) -> Any:
    """Convert artifact values (dataclasses, enums, nested containers) to JSON-safe data."""
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {k: to_jsonable(v) for k, v in dataclasses.asdict(value).items()}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value


def artifacts_to_json(artifacts: dict[str, Any], *, indent: int | None = 2) -> str:
    return json.dumps(to_jsonable(artifacts), indent=indent, default=str)


async def run(gather_fn: GatherFn, requested_url: str) -> RunnerResult:
    """Call ``gather_fn(requested_url=...)`` and wrap the artifacts it returns."""
    artifacts = await gather_fn(requested_url=requested_url)
    urls = artifacts.get("urls") or {}
    return RunnerResult(
        requested_url=requested_url,
        final_url=urls.get("final_url", ""),
        fetch_time=artifacts.get("fetch_time", ""),
        artifacts=artifacts,
        run_warnings=list(artifacts.get("run_warnings", [])),
        page_load_error=artifacts.get("page_load_error"),
    )
