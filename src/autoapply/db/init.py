from __future__ import annotations

from pathlib import Path

from autoapply.config import get_settings
from autoapply.db.base import Base
from autoapply.db.session import engine
from autoapply.db import models  # noqa: F401


def ensure_data_directories() -> None:
    settings = get_settings()
    paths: list[Path] = [settings.data_dir, settings.temp_dir]
    for path in paths:
        path.mkdir(parents=True, exist_ok=True)


def init_database() -> dict[str, int]:
    ensure_data_directories()
    Base.metadata.create_all(bind=engine)
    return {"tables": len(Base.metadata.tables)}
