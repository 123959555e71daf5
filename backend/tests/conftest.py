from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Generator, Optional

import pytest
from alembic import command
from alembic.config import Config


ROOT = Path(__file__).resolve().parents[2]

# Ensure `backend/tsparse` is importable as top-level `tsparse` for tests.
BACKEND_DIR = ROOT / "backend"
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from tsparse.core.db import dispose_engines  # noqa: E402


UTC = timezone.utc

# Wednesday 2025-01-15 10:00:00 UTC
REFERENCE = datetime(2025, 1, 15, 10, 0, tzinfo=UTC)
REFERENCE_EPOCH = 1736935200
TOMORROW_2PM_UTC = 1737036000


def _alembic_config(db_url: str) -> Config:
    cfg = Config(str(ROOT / "backend" / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "backend" / "alembic"))
    cfg.set_main_option("sqlalchemy.url", db_url)
    cfg.attributes["configure_logger"] = False
    return cfg


@pytest.fixture()
def database_url(tmp_path: Path) -> Generator[str, None, None]:
    """Fresh SQLite file upgraded to head."""
    url = f"sqlite:///{tmp_path / 'usage.db'}"
    command.upgrade(_alembic_config(url), "head")
    yield url
    dispose_engines()


@pytest.fixture()
def empty_database_url(tmp_path: Path) -> Generator[str, None, None]:
    """SQLite file with no tables (simulates a missing migration)."""
    yield f"sqlite:///{tmp_path / 'empty.db'}"
    dispose_engines()


class FixedParser:
    """Deterministic stand-in for the date parser: exact text -> epoch."""

    def __init__(self, answers: Optional[dict[str, int]] = None) -> None:
        self.answers = dict(answers or {})
        self.calls: list[str] = []

    def parse(self, text: str, reference: datetime, tz: str = "UTC") -> Optional[int]:
        self.calls.append(text)
        return self.answers.get(text)
