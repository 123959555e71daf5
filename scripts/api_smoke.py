"""Minimal API smoke to validate access logging, auth and one parse."""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import replace
from pathlib import Path

from fastapi.testclient import TestClient


ROOT = Path(__file__).resolve().parents[1]
BACKEND_DIR = ROOT / "backend"
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from tsparse.core.config import get_settings  # noqa: E402
from tsparse.main import create_app  # noqa: E402


class ListHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.messages: list[str] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.messages.append(record.getMessage())


def main() -> int:
    settings = get_settings()
    if not settings.static_api_key:
        settings = replace(settings, static_api_key=os.environ.get("TSP_SMOKE_KEY", "smoke-key"))

    logger = logging.getLogger("tsparse")
    logger.setLevel(logging.INFO)
    h = ListHandler()
    h_stream = logging.StreamHandler()
    h_stream.setLevel(logging.INFO)
    h_stream.setFormatter(logging.Formatter("%(levelname)s %(message)s"))
    logger.addHandler(h)
    logger.addHandler(h_stream)

    headers = {"x-api-key": settings.static_api_key, "x-api-version": "1"}
    with TestClient(create_app(settings), raise_server_exceptions=True) as c:
        r = c.get("/health")
        print("health:", r.status_code, r.json().get("status"))
        r = c.post("/parse", json={"text": "tomorrow at 2pm", "tz": "UTC"}, headers=headers)
        print("parse:", r.status_code)
        print("x-request-id:", r.headers.get("x-request-id"))
        print("body:", r.text[:300])

    logger.removeHandler(h)
    logger.removeHandler(h_stream)
    print("tsparse logs:", h.messages[-3:])
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
