"""Per-pass result models.

``PageLoadError`` is data, not an exception: a pass reports it on its
``PassResult`` and the orchestrator decides from the owning ``PassConfig``
whether it ends the run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class PageLoadErrorCode(str, Enum):
    """Why the main document of a pass failed to load."""

    NO_DOCUMENT_REQUEST = "no_document_request"
    FAILED_DOCUMENT_REQUEST = "failed_document_request"
    ERRORED_DOCUMENT_REQUEST = "errored_document_request"
    CHROME_INTERSTITIAL_ERROR = "chrome_interstitial_error"


@dataclass(frozen=True)
class PageLoadError:
    """A page-load failure detected during a pass."""

    code: PageLoadErrorCode
    message: str
    url: str = ""
    status_code: int | None = None

    @property
    def friendly_message(self) -> str:
        if self.status_code is not None:
            return f"{self.message} (Status code: {self.status_code})"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a plain dict suitable for JSON output."""
        return {
            "code": self.code.value,
            "message": self.message,
            "url": self.url,
            "status_code": self.status_code,
        }


@dataclass(frozen=True)
class ArtifactError:
    """Stands in for an artifact that a gatherer could not produce."""

    gatherer: str
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"gatherer": self.gatherer, "error": self.message}


@dataclass
class PassResult:
    """Output of one pass: named artifacts plus an optional page-load error."""

    artifacts: dict[str, Any] = field(default_factory=dict)
    page_load_error: PageLoadError | None = None
    final_url: str | None = None
