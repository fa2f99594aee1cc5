"""pagegather exception hierarchy.

Page-load failures are *not* exceptions: they travel as ``PageLoadError`` data
on the pass result. Everything here aborts whatever raised it.
"""

from __future__ import annotations


class PageGatherError(Exception):
    """Base exception for all pagegather errors."""


class DevtoolsConnectionError(PageGatherError, ConnectionError):
    """Raised when target discovery or the socket open fails."""


class NoOpenTargetError(DevtoolsConnectionError):
    """Raised when discovery finds no page to attach to."""

    def __init__(self, message: str = "Cannot create new tab, and no tabs already open.") -> None:
        super().__init__(message)


class ParameterError(PageGatherError, ValueError):
    """Raised when caller-supplied parameters are malformed. Raised before any I/O."""


class NoPassesConfiguredError(ParameterError):
    """Raised when a gather run is requested without any pass configuration."""

    def __init__(self, message: str = "No browser artifacts are either provided or requested.") -> None:
        super().__init__(message)


class ProtocolError(PageGatherError):
    """Raised when a DevTools protocol command fails.

    Attributes:
        method: The protocol method that failed (e.g. ``Page.navigate``).
        code: The protocol error code, when the browser returned one.
    """

    def __init__(self, method: str, message: str, code: int | None = None) -> None:
        self.method = method
        self.code = code
        super().__init__(f"{method}: {message}" if method else message)


class ArtifactCollectionError(PageGatherError):
    """Raised by a gatherer that cannot produce its artifact.

    The orchestrating pass records it as an ``ArtifactError`` value instead of
    aborting the run.
    """


class StageAlreadyAppliedError(PageGatherError):
    """Raised when a base-artifact stage is applied twice in one run."""

    def __init__(self, stage: str) -> None:
        self.stage = stage
        super().__init__(f"Base artifact stage '{stage}' was already applied for this run")


class ProtocolTimeoutError(ProtocolError):
    """Raised when a protocol command gets no response in time."""
