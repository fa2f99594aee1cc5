"""Gatherer interface."""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pagegather.driver.navigation import LoadData
    from pagegather.gather.context import PassContext


class Gatherer(abc.ABC):
    """Produces one named artifact per pass.

    ``before_pass`` runs before navigation, ``after_pass`` after the page has
    loaded without a page-load error. Raise ``ArtifactCollectionError`` from
    ``after_pass`` when the artifact cannot be produced; anything else aborts
    the run.
    """

    name: str = ""

    async def before_pass(self, context: PassContext) -> None:
        """Prepare instrumentation. Default: nothing."""

    @abc.abstractmethod
    async def after_pass(self, context: PassContext, load: LoadData) -> Any:
        """Return the artifact value."""
