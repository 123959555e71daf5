from __future__ import annotations

from pathlib import Path

import pytest

from tsparse.cli import main
from tsparse.core.db import dispose_engines


@pytest.fixture(autouse=True)
def _local_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    monkeypatch.setenv("TSP_LLM_PROVIDER", "none")
    monkeypatch.setenv("TSP_PREFS_DATABASE_URL", f"sqlite:///{tmp_path / 'prefs.db'}")
    monkeypatch.delenv("TSP_STATIC_API_KEY", raising=False)
    yield
    dispose_engines()


def test_formats(capsys: pytest.CaptureFixture[str]):
    assert main(["formats"]) == 0
    out = capsys.readouterr().out.splitlines()
    assert len(out) == 7
    assert out[5].startswith("5 F Long Date/Time")


def test_resolve_markup_and_record_pick(capsys: pytest.CaptureFixture[str]):
    assert main(["resolve", "<t:1700000000:F>", "--pick", "1", "--all"]) == 0
    out = capsys.readouterr().out
    assert out.splitlines()[0] == "<t:1700000000:D>"
    assert "existing-markup" in out

    assert main(["stats"]) == 0
    stats = capsys.readouterr().out
    assert "default: Long Date" in stats


def test_resolve_unparseable(capsys: pytest.CaptureFixture[str]):
    assert main(["resolve", "qwzx plorb vvv"]) == 1
    assert "Unable to parse" in capsys.readouterr().out


def test_serve_requires_static_key():
    with pytest.raises(SystemExit):
        main(["serve"])


def test_resolve_survives_unopenable_preference_store(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path, capsys: pytest.CaptureFixture[str]
):
    monkeypatch.setenv("TSP_PREFS_DATABASE_URL", f"sqlite:///{tmp_path / 'missing' / 'dir' / 'prefs.db'}")
    assert main(["resolve", "<t:1700000000:F>", "--pick", "1"]) == 0
    assert capsys.readouterr().out.splitlines()[0] == "<t:1700000000:D>"


def test_resolve_with_zone_directory_name(capsys: pytest.CaptureFixture[str]):
    assert main(["resolve", "<t:1700000000:F>", "--tz", "America", "--all"]) == 0
    assert capsys.readouterr().out.splitlines()[0] == "<t:1700000000:F>"


def test_resolve_next_weekday(capsys: pytest.CaptureFixture[str]):
    assert main(["resolve", "next friday 9am"]) == 0
    assert capsys.readouterr().out.startswith("<t:")
