"""pagegather: multi-pass artifact gathering against a remote DevTools page."""

from __future__ import annotations

try:
    from importlib.metadata import version

    __version__ = version("pagegather")
except Exception:
    __version__ = "0.0.0"
