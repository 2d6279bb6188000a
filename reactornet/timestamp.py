"""Whole-second timestamps used for poll return times and log lines."""

from __future__ import annotations

import time
from dataclasses import dataclass


@dataclass(frozen=True, order=True)
class Timestamp:
    """A point in time, counted in whole seconds since the Unix epoch."""

    seconds: int = 0

    @classmethod
    def now(cls) -> Timestamp:
        """Return the current time."""
        return cls(int(time.time()))

    def to_string(self) -> str:
        """Format as local time, ``YYYY/MM/DD HH:MM:SS``."""
        t = time.localtime(self.seconds)
        return (
            f"{t.tm_year:4d}/{t.tm_mon:02d}/{t.tm_mday:02d} "
            f"{t.tm_hour:02d}:{t.tm_min:02d}:{t.tm_sec:02d}"
        )

    def __str__(self) -> str:
        return self.to_string()