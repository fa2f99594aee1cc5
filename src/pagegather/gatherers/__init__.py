"""Gatherer registry. Pass configs name gatherers; the driver resolves them here."""

from __future__ import annotations

from pagegather.exceptions import ParameterError
from pagegather.gatherers.base import Gatherer
from pagegather.gatherers.builtin import MainDocumentContent, MetaElements, ViewportDimensions

_REGISTRY: dict[str, type[Gatherer]] = {
    cls.name: cls for cls in (ViewportDimensions, MetaElements, MainDocumentContent)
}


def register_gatherer(cls: type[Gatherer]) -> type[Gatherer]:
    """Register *cls* under ``cls.name``. Usable as a class decorator."""
    if not cls.name:
        raise ParameterError(f"{cls.__name__} must define a non-empty name")
    _REGISTRY[cls.name] = cls
    return cls


def get_gatherer(name: str) -> Gatherer:
    """Return a fresh instance of the gatherer registered as *name*."""
    try:
        return _REGISTRY[name]()
    except KeyError:
        raise ParameterError(
            f"Unknown gatherer '{name}'. Available: {', '.join(available_gatherers())}"
        ) from None


def available_gatherers() -> list[str]:
    return sorted(_REGISTRY)


__all__ = [
    "Gatherer",
    "MainDocumentContent",
    "MetaElements",
    "ViewportDimensions",
    "available_gatherers",
    "get_gatherer",
    "register_gatherer",
]
