from __future__ import annotations

import pytest

from autoapply.core.deadline import Deadline
from autoapply.errors import AttemptTimeout


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


def test_clamp_never_exceeds_remaining_budget() -> None:
    clock = FakeClock()
    deadline = Deadline(60, clock=clock)

    assert deadline.clamp(30000) == 30000
    clock.now += 50
    assert deadline.clamp(30000) == 10000
    assert deadline.remaining_sec == pytest.approx(10.0)


def test_check_raises_once_budget_is_spent() -> None:
    clock = FakeClock()
    deadline = Deadline(60, clock=clock)
    deadline.check()

    clock.now += 60

    assert deadline.expired
    with pytest.raises(AttemptTimeout) as excinfo:
        deadline.clamp(1000)
    assert excinfo.value.note == "application attempt timed out"
