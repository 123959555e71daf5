"""Upgrade Alembic to head (safe migrate; no downgrade).

Usage:
  python scripts/migrate_upgrade_head.py

Reads DATABASE_URL from:
- existing environment
- or `.env` (repo root) / `backend/.env` via tsparse.core.env.load_env_if_present()
- falling back to the local `sqlite:///usage.db`
"""

from __future__ import annotations

import sys
from pathlib import Path

from alembic import command
from alembic.config import Config


ROOT = Path(__file__).resolve().parents[1]
BACKEND_DIR = ROOT / "backend"
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from tsparse.core.config import get_settings  # noqa: E402


def main() -> int:
    url = get_settings().database_url

    cfg = Config(str(BACKEND_DIR / "alembic.ini"))
    cfg.set_main_option("script_location", str(BACKEND_DIR / "alembic"))
    cfg.set_main_option("sqlalchemy.url", url)

    print("Upgrading Alembic to head...")
    command.upgrade(cfg, "head")
    print("PASS: upgraded to head.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
