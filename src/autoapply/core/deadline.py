from __future__ import annotations

import time
from collections.abc import Callable

from autoapply.errors import AttemptTimeout


class Deadline:
    """Wall-clock budget for one attempt. Every wait is clamped to what is left."""

    def __init__(self, total_sec: float, clock: Callable[[], float] = time.monotonic):
        self.total_sec = total_sec
        self._clock = clock
        self.started_at = clock()

    @property
    def elapsed_sec(self) -> float:
        return self._clock() - self.started_at

    @property
    def remaining_sec(self) -> float:
        return max(0.0, self.total_sec - self.elapsed_sec)

    @property
    def expired(self) -> bool:
        return self.elapsed_sec >= self.total_sec

    def remaining_ms(self) -> int:
        return int(self.remaining_sec * 1000)

    def check(self) -> None:
        if self.expired:
            raise AttemptTimeout(detail=f"exceeded {self.total_sec:g}s")

    def clamp(self, timeout_ms: int) -> int:
        self.check()
        return max(1, min(timeout_ms, self.remaining_ms()))
