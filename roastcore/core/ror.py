from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

import numpy as np

from ..config import RoRConfig
from .models import RoastPhaseStats, RoRPoint, TemperaturePoint


DerivativeFunc = Callable[[Sequence[TemperaturePoint], int], List[RoRPoint]]


def windowed_difference(points: Sequence[TemperaturePoint], window_size: int = 3) -> List[RoRPoint]:
    """RoR as the temperature change across ``window_size`` samples, per minute.

    Windows whose time span is not positive are skipped.
    """
    if window_size < 1:
        raise ValueError(f"window_size must be >= 1, got {window_size}")
    if len(points) < window_size + 1:
        return []

    result: List[RoRPoint] = []
    for i in range(window_size, len(points)):
        current = points[i]
        previous = points[i - window_size]
        minutes = (current.time - previous.time) / 60.0
        if minutes <= 0:
            continue
        result.append(
            RoRPoint(
                time=current.time,
                temperature=current.temperature,
                ror=(current.temperature - previous.temperature) / minutes,
            )
        )
    return result


def _regression_slope(times: np.ndarray, temps: np.ndarray) -> Optional[float]:
    if len(times) < 2:
        return None
    dx = times - times.mean()
    sxx = float(np.dot(dx, dx))
    if sxx < 1e-10:
        return None
    slope = float(np.dot(dx, temps - temps.mean())) / sxx
    return slope if math.isfinite(slope) else None


def windowed_regression(points: Sequence[TemperaturePoint], window_size: int = 3) -> List[RoRPoint]:
    """RoR as the least-squares slope over the trailing ``window_size + 1`` samples.

    Fitting a line instead of differencing the window ends averages out
    single-sample sensor noise. Windows with no time variance are skipped.
    """
    if window_size < 1:
        raise ValueError(f"window_size must be >= 1, got {window_size}")
    if len(points) < window_size + 1:
        return []

    times = np.fromiter((p.time for p in points), dtype=float, count=len(points))
    temps = np.fromiter((p.temperature for p in points), dtype=float, count=len(points))

    result: List[RoRPoint] = []
    for i in range(window_size, len(points)):
        lo = i - window_size
        slope = _regression_slope(times[lo : i + 1], temps[lo : i + 1])
        if slope is None:
            continue
        result.append(RoRPoint(time=points[i].time, temperature=points[i].temperature, ror=slope * 60.0))
    return result


@dataclass
class MethodSpec:
    key: str
    compute: DerivativeFunc
    label: str


def build_registry() -> Dict[str, MethodSpec]:
    return {
        "difference": MethodSpec(key="difference", compute=windowed_difference, label="Windowed difference"),
        "regression": MethodSpec(key="regression", compute=windowed_regression, label="Least-squares slope"),
    }


_REGISTRY = build_registry()


def suppress_spikes(points: Sequence[RoRPoint], min_ror: float, max_ror: float) -> List[RoRPoint]:
    """Clamp RoR into ``[min_ror, max_ror]`` then apply a centered 3-point median.

    The first and last samples have no neighbour on one side, so they are
    clamped but not median filtered.
    """
    if not points:
        return []
    rors = np.clip(np.array([p.ror for p in points], dtype=float), min_ror, max_ror)
    if len(rors) >= 3:
        filtered = rors.copy()
        filtered[1:-1] = np.median(np.vstack([rors[:-2], rors[1:-1], rors[2:]]), axis=0)
        rors = filtered
    return [RoRPoint(time=p.time, temperature=p.temperature, ror=float(r)) for p, r in zip(points, rors)]


def exponential_smoothing(points: Sequence[RoRPoint], alpha: float = 0.3) -> List[RoRPoint]:
    """Causal exponential smoothing; ``alpha`` is the weight of the newest sample."""
    if not 0 < alpha <= 1:
        raise ValueError(f"alpha must be in (0, 1], got {alpha}")
    if not points:
        return []

    smoothed: List[RoRPoint] = [RoRPoint(time=points[0].time, temperature=points[0].temperature, ror=points[0].ror)]
    for point in points[1:]:
        ror = alpha * point.ror + (1 - alpha) * smoothed[-1].ror
        smoothed.append(RoRPoint(time=point.time, temperature=point.temperature, ror=ror))
    return smoothed


def calculate_ror(points: Sequence[TemperaturePoint], config: Optional[RoRConfig] = None) -> List[RoRPoint]:
    """Full RoR pipeline: derivative, optional spike suppression, smoothing."""
    cfg = config or RoRConfig()
    if len(points) < 2:
        return []

    method = _REGISTRY[cfg.method]
    ror_points = method.compute(points, cfg.window_size)
    if cfg.filter_spikes:
        ror_points = suppress_spikes(ror_points, cfg.min_ror, cfg.max_ror)
    return exponential_smoothing(ror_points, cfg.smoothing_alpha)


def _mean_ror(points: Sequence[RoRPoint], fallback: float) -> float:
    if not points:
        return fallback
    return sum(p.ror for p in points) / len(points)


def calculate_phase_stats(
    ror_points: Sequence[RoRPoint],
    dry_end_time: Optional[float] = None,
    first_crack_time: Optional[float] = None,
    drop_time: Optional[float] = None,
) -> RoastPhaseStats:
    """Mean RoR per roast phase plus overall mean, max and min.

    Phases are bucketed by time: drying up to dry end, maillard up to first
    crack, development up to drop. A phase with no samples, or without the
    landmarks that bound it, reports the overall mean rather than zero.
    """
    if not ror_points:
        return RoastPhaseStats()

    rors = [p.ror for p in ror_points]
    overall = sum(rors) / len(rors)
    stats = RoastPhaseStats(
        dry_phase_ror=overall,
        maillard_phase_ror=overall,
        development_phase_ror=overall,
        overall_ror=overall,
        max_ror=max(rors),
        min_ror=min(rors),
    )

    if dry_end_time is not None:
        stats.dry_phase_ror = _mean_ror([p for p in ror_points if p.time <= dry_end_time], overall)
    if dry_end_time is not None and first_crack_time is not None:
        stats.maillard_phase_ror = _mean_ror(
            [p for p in ror_points if dry_end_time < p.time <= first_crack_time], overall
        )
    if first_crack_time is not None and drop_time is not None:
        stats.development_phase_ror = _mean_ror(
            [p for p in ror_points if first_crack_time < p.time <= drop_time], overall
        )
    return stats
