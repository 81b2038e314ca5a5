from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """Monotonic time source for the needle scheduler.

    Tick due times and the post-stop feedback delay are both measured against
    ``now()``, so a scripted clock can step a whole activation frame by frame.
    """

    def now(self) -> float:
        """Return monotonic seconds."""


class RealClock:
    """Wall-clock source for the pygame shell; only differences between reads matter."""

    def now(self) -> float:
        return time.monotonic()
