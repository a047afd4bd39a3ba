from __future__ import annotations

import os
import tempfile
from pathlib import Path

_TEST_ROOT = Path(tempfile.mkdtemp(prefix="autoapply-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_ROOT / 'autoapply-test.db'}"
os.environ["DATA_DIR"] = str(_TEST_ROOT)
os.environ["TEMP_DIR"] = str(_TEST_ROOT / "tmp")
os.environ["APP_ENV"] = "test"
os.environ["LLM_ENABLED"] = "false"
os.environ["OPENAI_API_KEY"] = ""

import pytest  # noqa: E402

from autoapply.db.base import Base  # noqa: E402
from autoapply.db import models  # noqa: E402,F401
from autoapply.db.session import engine  # noqa: E402


@pytest.fixture(autouse=True)
def reset_db() -> None:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
