from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from roastcore.cli import app


runner = CliRunner()


@pytest.fixture(autouse=True)
def quiet(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("LOG_LEVEL", "ERROR")
    monkeypatch.delenv("ROASTCORE_CONFIG", raising=False)


def write_profile(path: Path) -> Path:
    rows = ["time_seconds,target_temp"] + [f"{t},{100 + 0.5 * t}" for t in range(0, 601, 10)]
    path.write_text("\n".join(rows) + "\n", encoding="utf-8")
    return path


def write_session(path: Path, count: int = 50) -> Path:
    rows = ["ts,beanTemp,envTemp,controlMode"] + [f"{1000 + i},{150 + i * 0.3:.2f},{200 + i * 0.1:.2f},auto" for i in range(count)]
    path.write_text("\n".join(rows) + "\n", encoding="utf-8")
    return path


def test_ror_command(tmp_path: Path) -> None:
    profile = write_profile(tmp_path / "profile.csv")
    out = tmp_path / "ror.csv"
    result = runner.invoke(
        app, ["ror", str(profile), "--method", "difference", "--window", "1", "--no-filter-spikes", "--output", str(out)]
    )
    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["landmarks"]["dry_end_time"] == 120.0
    assert payload["stats"]["overall_ror"] == pytest.approx(30.0)
    assert out.exists()


def test_ror_command_rejects_bad_method(tmp_path: Path) -> None:
    profile = write_profile(tmp_path / "profile.csv")
    result = runner.invoke(app, ["ror", str(profile), "--method", "spline"])
    assert result.exit_code != 0


def test_landmarks_command(tmp_path: Path) -> None:
    profile = write_profile(tmp_path / "profile.csv")
    result = runner.invoke(app, ["landmarks", str(profile), "--first-crack", "210"])
    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout)["first_crack_time"] == 210.0


def test_compress_then_decompress(tmp_path: Path) -> None:
    session = write_session(tmp_path / "session.csv")
    packed = tmp_path / "packed.json"
    restored = tmp_path / "restored.csv"
    assert runner.invoke(app, ["compress", str(session), str(packed)]).exit_code == 0
    assert json.loads(packed.read_text(encoding="utf-8"))["state"]["baseTimestamp"] == 1000
    result = runner.invoke(app, ["decompress", str(packed), str(restored)])
    assert result.exit_code == 0, result.output
    assert "50 samples" in result.stdout
    assert len(restored.read_text(encoding="utf-8").strip().splitlines()) == 51


def test_thin_command(tmp_path: Path) -> None:
    session = write_session(tmp_path / "session.csv", count=200)
    result = runner.invoke(app, ["thin", str(session), str(tmp_path / "thin.csv"), "--max-points", "20"])
    assert result.exit_code == 0, result.output
    assert "of 200 samples" in result.stdout


def test_replay_command(tmp_path: Path) -> None:
    session = write_session(tmp_path / "session.csv", count=30)
    result = runner.invoke(app, ["replay", str(session), "--capacity", "10", "--start", "1025", "--end", "1027"])
    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["stats"]["total_points"] == 10
    assert payload["stats"]["oldest_timestamp"] == 1020
    assert payload["window_points"] == 3
    assert payload["compressed_points"] == 10
