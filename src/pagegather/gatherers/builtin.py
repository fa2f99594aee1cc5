"""Built-in gatherers."""

from __future__ import annotations

import base64
from typing import TYPE_CHECKING, Any

from pagegather.exceptions import ArtifactCollectionError, ProtocolError
from pagegather.gatherers.base import Gatherer

if TYPE_CHECKING:
    from pagegather.driver.navigation import LoadData
    from pagegather.gather.context import PassContext


_VIEWPORT_JS = """
function getViewportDimensions() {
  return {
    innerWidth: window.innerWidth,
    innerHeight: window.innerHeight,
    outerWidth: window.outerWidth,
    outerHeight: window.outerHeight,
    devicePixelRatio: window.devicePixelRatio,
  };
}
"""

_META_ELEMENTS_JS = """
function getMetaElements() {
  return Array.from(document.head ? document.head.querySelectorAll('meta') : []).map(meta => ({
    name: (meta.name || '').toLowerCase(),
    content: meta.content,
    property: meta.getAttribute('property'),
    httpEquiv: meta.httpEquiv ? meta.httpEquiv.toLowerCase() : undefined,
    charset: meta.getAttribute('charset'),
  }));
}
"""


class ViewportDimensions(Gatherer):
    """Window and device-pixel dimensions as the page sees them."""

    name = "viewport_dimensions"

    async def after_pass(self, context: PassContext, load: LoadData) -> dict[str, Any]:
        dimensions = await context.driver.execution_context.evaluate(_VIEWPORT_JS)
        if not isinstance(dimensions, dict):
            raise ArtifactCollectionError("viewport dimensions were not returned")
        values = [v for v in dimensions.values() if v is not None]
        if not all(isinstance(v, (int, float)) for v in values):
            raise ArtifactCollectionError(f"non-numeric viewport dimensions: {dimensions}")
        return dimensions


class MetaElements(Gatherer):
    """Every ``<meta>`` element in the document head."""

    name = "meta_elements"

    async def after_pass(self, context: PassContext, load: LoadData) -> list[dict[str, Any]]:
        elements = await context.driver.execution_context.evaluate(_META_ELEMENTS_JS)
        return elements or []


class MainDocumentContent(Gatherer):
    """Response body of the main document."""

    name = "main_document_content"

    async def after_pass(self, context: PassContext, load: LoadData) -> str:
        if load.main_document is None:
            raise ArtifactCollectionError("no main document response was recorded")
        request_id = load.main_document["request_id"]
        try:
            body = await context.driver.send("Network.getResponseBody", {"requestId": request_id})
        except ProtocolError as exc:
            # Bodies are evicted from the browser's buffer for large or redirected documents.
            raise ArtifactCollectionError(f"main document body unavailable: {exc}") from exc
        if body.get("base64Encoded"):
            return base64.b64decode(body.get("body", "")).decode("utf-8", errors="replace")
        return body.get("body", "")
