from __future__ import annotations

from autoapply.core.coordinator import RunCoordinator

_COORDINATOR: RunCoordinator | None = None


def get_coordinator() -> RunCoordinator:
    global _COORDINATOR
    if _COORDINATOR is None:
        _COORDINATOR = RunCoordinator()
    return _COORDINATOR
