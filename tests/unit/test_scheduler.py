from __future__ import annotations

from autoapply.core.scheduler import IntervalScheduler


class FakeCoordinator:
    def __init__(self, *, stop_after: int, fail_on: tuple[int, ...] = ()):
        self.stop_after = stop_after
        self.fail_on = fail_on
        self.runs = 0
        self.cancelled = 0
        self.scheduler: IntervalScheduler | None = None

    def run_once(self, user_id: str | None = None):
        self.runs += 1
        if self.runs >= self.stop_after:
            self.scheduler.stop()
        if self.runs in self.fail_on:
            raise RuntimeError("database unavailable")
        return None

    def cancel(self) -> None:
        self.cancelled += 1


def _scheduler(coordinator: FakeCoordinator, run_on_start: bool = True) -> IntervalScheduler:
    scheduler = IntervalScheduler(coordinator, interval_min=1, run_on_start=run_on_start)
    scheduler.interval_sec = 0.01
    coordinator.scheduler = scheduler
    return scheduler


def test_fires_on_start_then_every_interval_until_stopped() -> None:
    coordinator = FakeCoordinator(stop_after=3)

    fired = _scheduler(coordinator).run_forever()

    assert fired == 3
    assert coordinator.runs == 3
    assert coordinator.cancelled == 1


def test_skip_initial_waits_one_interval_first() -> None:
    coordinator = FakeCoordinator(stop_after=1)

    assert _scheduler(coordinator, run_on_start=False).run_forever() == 1


def test_failed_run_does_not_stop_the_schedule() -> None:
    coordinator = FakeCoordinator(stop_after=3, fail_on=(1, 2))

    assert _scheduler(coordinator).run_forever() == 3


def test_stop_is_idempotent_and_cancels_active_run() -> None:
    coordinator = FakeCoordinator(stop_after=99)
    scheduler = _scheduler(coordinator)

    scheduler.stop()
    scheduler.stop()

    assert scheduler.stopped
    assert coordinator.cancelled == 1
    assert scheduler.run_forever() == 0
