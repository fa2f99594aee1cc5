"""Named duration measurements collected into the ``timing`` base artifact."""

from __future__ import annotations

import contextlib
import logging
import time
from collections.abc import Iterator
from dataclasses import asdict, dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TimingEntry:
    """One completed measurement. Times are milliseconds."""

    name: str
    start_time: float
    duration: float


class TimingLog:
    """Collects ``TimingEntry`` records for one run."""

    def __init__(self) -> None:
        self._entries: list[TimingEntry] = []
        self._origin = time.monotonic()

    @contextlib.contextmanager
    def measure(self, name: str, message: str = "") -> Iterator[None]:
        """Time the enclosed block and record it under *name*, even if it raises."""
        if message:
            logger.info(message)
        start = time.monotonic()
        try:
            yield
        finally:
            end = time.monotonic()
            entry = TimingEntry(
                name=name,
                start_time=round((start - self._origin) * 1000, 3),
                duration=round((end - start) * 1000, 3),
            )
            self._entries.append(entry)
            logger.debug("%s took %.1fms", name, entry.duration)

    @property
    def entries(self) -> list[TimingEntry]:
        return list(self._entries)

    def take_entries(self) -> list[dict[str, float | str]]:
        """Return every entry as a dict and reset the log."""
        entries = [asdict(e) for e in self._entries]
        self._entries.clear()
        return entries
