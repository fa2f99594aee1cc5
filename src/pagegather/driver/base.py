"""The contract the orchestrator relies on. ``Driver`` is the CDP implementation;
tests substitute ``AsyncMock`` objects shaped like these protocols."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from pagegather.gather.context import GatherOptions, PassContext
    from pagegather.models.results import PassResult


class ExecutionContextLike(Protocol):
    async def evaluate(self, function_source: str, args: Sequence[Any] = ()) -> Any:
        """Call *function_source* in the page with JSON-serializable *args*."""
        ...

    async def evaluate_expression(self, expression: str) -> Any:
        ...


class FetcherLike(Protocol):
    async def disable_request_interception(self) -> None:
        ...


class DriverSession(Protocol):
    """Protocol-level operations a run performs on its page."""

    @property
    def execution_context(self) -> ExecutionContextLike: ...

    @property
    def fetcher(self) -> FetcherLike: ...

    async def connect(self) -> None: ...

    async def navigate_to_blank(self, url: str = "about:blank") -> None: ...

    async def get_browser_version(self) -> dict[str, str]: ...

    async def send(self, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]: ...

    async def setup(self, options: GatherOptions, warnings: list[str]) -> None: ...

    async def run_pass(self, context: PassContext) -> PassResult: ...

    async def dispose(self) -> None: ...
