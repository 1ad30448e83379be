from __future__ import annotations

from pathlib import Path

import pytest

from roastcore.config import AppConfig, RoRConfig, RuntimeConfig, load_config


def test_defaults(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("ROASTCORE_CONFIG", raising=False)
    cfg = load_config()
    assert cfg.runtime.buffer.capacity == 3000
    assert cfg.runtime.compression.precision == 10
    assert cfg.runtime.ror.method == "regression"
    assert cfg.runtime.ror.smoothing_alpha == 0.2
    assert cfg.runtime.landmarks.first_crack == 196.0


def test_yaml_overrides(tmp_path: Path) -> None:
    path = tmp_path / "roast.yaml"
    path.write_text("buffer:\n  capacity: 600\nror:\n  method: difference\n  window_size: 5\n", encoding="utf-8")
    cfg = AppConfig.load(path)
    assert cfg.runtime.buffer.capacity == 600
    assert cfg.runtime.ror.method == "difference"
    assert cfg.runtime.ror.window_size == 5
    assert cfg.runtime.thinning.max_points == 1000


def test_config_path_from_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = tmp_path / "env.yaml"
    path.write_text("compression:\n  precision: 100\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("ROASTCORE_CONFIG", str(path))
    monkeypatch.setenv("LOG_LEVEL", "debug")
    cfg = load_config()
    assert cfg.runtime.compression.precision == 100
    assert cfg.env.LOG_LEVEL == "DEBUG"


def test_invalid_yaml_values(tmp_path: Path) -> None:
    path = tmp_path / "bad.yaml"
    path.write_text("buffer:\n  capacity: 0\n", encoding="utf-8")
    with pytest.raises(ValueError, match="Invalid config.yaml"):
        AppConfig.load(path)


def test_missing_explicit_file(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        AppConfig.load(tmp_path / "nope.yaml")


def test_ror_band_validation() -> None:
    with pytest.raises(ValueError):
        RoRConfig(min_ror=40.0, max_ror=30.0)
    with pytest.raises(ValueError):
        RoRConfig(smoothing_alpha=0.0)
    with pytest.raises(ValueError):
        RoRConfig(method="polynomial")


def test_runtime_sections_are_independent() -> None:
    a, b = RuntimeConfig(), RuntimeConfig()
    a.ror.window_size = 9
    assert b.ror.window_size == 3
