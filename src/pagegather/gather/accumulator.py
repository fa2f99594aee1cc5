"""Merges per-pass artifacts into the run's running total."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any


def merge_artifacts(running: Mapping[str, Any], pass_artifacts: Mapping[str, Any]) -> dict[str, Any]:
    """Return a new mapping of *running* updated with *pass_artifacts*.

    Shallow: a key produced again by a later pass replaces the earlier value
    outright. Neither input is modified.
    """
    merged = dict(running)
    merged.update(pass_artifacts)
    return merged
