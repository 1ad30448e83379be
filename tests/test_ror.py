from __future__ import annotations

import pytest

from roastcore.config import RoRConfig
from roastcore.core.models import RoRPoint, TemperaturePoint
from roastcore.core.ror import (
    build_registry,
    calculate_phase_stats,
    calculate_ror,
    exponential_smoothing,
    suppress_spikes,
    windowed_difference,
    windowed_regression,
)


def ramp(seconds: int = 60) -> list[TemperaturePoint]:
    return [TemperaturePoint(time=float(t), temperature=150.0 + 2.0 * t) for t in range(seconds)]


def rors(points: list[RoRPoint]) -> list[float]:
    return [p.ror for p in points]


def test_difference_on_linear_ramp() -> None:
    result = windowed_difference(ramp(), window_size=3)
    assert len(result) == 57
    assert result[0].time == 3.0
    assert all(r == pytest.approx(120.0) for r in rors(result))


def test_regression_on_linear_ramp() -> None:
    result = windowed_regression(ramp(), window_size=3)
    assert len(result) == 57
    assert all(r == pytest.approx(120.0) for r in rors(result))


def test_pipeline_on_linear_ramp() -> None:
    cfg = RoRConfig(method="difference", window_size=3, filter_spikes=False)
    result = calculate_ror(ramp(), cfg)
    assert len(result) == 57
    assert all(r == pytest.approx(120.0) for r in rors(result))


def test_regression_smooths_single_sample_noise() -> None:
    points = ramp(20)
    points[10] = TemperaturePoint(time=10.0, temperature=points[10].temperature + 3.0)
    diff = {p.time: p.ror for p in windowed_difference(points, 4)}
    reg = {p.time: p.ror for p in windowed_regression(points, 4)}
    # The difference method sees the full +3 degree bump when it is a window end
    assert abs(diff[10.0] - 120.0) > abs(reg[10.0] - 120.0)


def test_too_short_inputs() -> None:
    assert windowed_difference(ramp(3), 3) == []
    assert windowed_regression(ramp(3), 3) == []
    assert calculate_ror(ramp(1)) == []
    assert calculate_ror([]) == []


def test_non_positive_time_delta_is_skipped() -> None:
    points = [TemperaturePoint(time=0.0, temperature=100.0)] * 3 + [TemperaturePoint(time=1.0, temperature=101.0)]
    result = windowed_difference(points, window_size=1)
    assert [p.time for p in result] == [1.0]
    assert result[0].ror == pytest.approx(60.0)


def test_regression_skips_degenerate_windows() -> None:
    points = [TemperaturePoint(time=5.0, temperature=100.0 + i) for i in range(6)]
    assert windowed_regression(points, window_size=2) == []


def test_suppress_spikes_clamps_then_medians() -> None:
    points = [RoRPoint(time=float(i), temperature=0.0, ror=r) for i, r in enumerate([10.0, 100.0, 10.0, 10.0])]
    assert rors(suppress_spikes(points, min_ror=-10, max_ror=30)) == [10.0, 10.0, 10.0, 10.0]


def test_suppress_spikes_endpoints_clamped_only() -> None:
    points = [RoRPoint(time=float(i), temperature=0.0, ror=r) for i, r in enumerate([50.0, 5.0, 6.0, -40.0])]
    assert rors(suppress_spikes(points, min_ror=-10, max_ror=30)) == [30.0, 6.0, 5.0, -10.0]


def test_suppress_spikes_short_sequences() -> None:
    assert suppress_spikes([], -10, 30) == []
    two = [RoRPoint(time=0.0, temperature=0.0, ror=45.0), RoRPoint(time=1.0, temperature=0.0, ror=1.0)]
    assert rors(suppress_spikes(two, -10, 30)) == [30.0, 1.0]


def test_exponential_smoothing() -> None:
    points = [RoRPoint(time=float(i), temperature=0.0, ror=r) for i, r in enumerate([0.0, 10.0, 10.0])]
    assert rors(exponential_smoothing(points, alpha=0.5)) == pytest.approx([0.0, 5.0, 7.5])
    assert rors(exponential_smoothing(points, alpha=1.0)) == [0.0, 10.0, 10.0]
    assert exponential_smoothing([], 0.3) == []
    with pytest.raises(ValueError):
        exponential_smoothing(points, alpha=0.0)


def test_default_pipeline_output_is_bounded() -> None:
    # Default config clamps to [-10, 30]; the 120/min ramp pins at the top
    result = calculate_ror(ramp())
    assert result
    assert all(-10.0 <= r <= 30.0 for r in rors(result))


def test_registry_keys() -> None:
    registry = build_registry()
    assert set(registry) == {"difference", "regression"}
    assert registry["regression"].compute is windowed_regression


def test_phase_stats_buckets() -> None:
    points = [RoRPoint(time=float(t), temperature=0.0, ror=r) for t, r in [(10, 20), (20, 18), (40, 12), (60, 8), (80, 4)]]
    stats = calculate_phase_stats(points, dry_end_time=20, first_crack_time=60, drop_time=80)
    assert stats.dry_phase_ror == pytest.approx(19.0)
    assert stats.maillard_phase_ror == pytest.approx(10.0)
    assert stats.development_phase_ror == pytest.approx(4.0)
    assert stats.overall_ror == pytest.approx(12.4)
    assert stats.max_ror == 20
    assert stats.min_ror == 4


def test_empty_dry_phase_falls_back_to_overall_mean() -> None:
    points = [RoRPoint(time=float(t), temperature=0.0, ror=float(t) / 10) for t in range(40, 101, 10)]
    stats = calculate_phase_stats(points, dry_end_time=30)
    assert stats.dry_phase_ror == pytest.approx(stats.overall_ror)
    assert stats.dry_phase_ror != 0


def test_missing_landmarks_fall_back_to_overall_mean() -> None:
    points = [RoRPoint(time=float(t), temperature=0.0, ror=float(t)) for t in range(5)]
    stats = calculate_phase_stats(points)
    assert stats.maillard_phase_ror == stats.overall_ror == pytest.approx(2.0)
    assert stats.development_phase_ror == pytest.approx(2.0)


def test_zero_landmark_time_is_honoured() -> None:
    points = [RoRPoint(time=float(t), temperature=0.0, ror=float(t)) for t in range(5)]
    stats = calculate_phase_stats(points, dry_end_time=0.0)
    assert stats.dry_phase_ror == 0.0


def test_empty_phase_stats() -> None:
    stats = calculate_phase_stats([])
    assert stats.overall_ror == 0.0
    assert stats.max_ror == 0.0
