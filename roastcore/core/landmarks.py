from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

import numpy as np

from ..config import LandmarkThresholds, RoRConfig
from .models import ProfilePoint, RoastLandmarks, RoastPhaseStats, TemperaturePoint
from .ror import calculate_phase_stats, calculate_ror


def _sorted_by_time(points: Sequence[ProfilePoint]) -> List[ProfilePoint]:
    return sorted(points, key=lambda p: p.time_seconds)


def _curve(points: Sequence[ProfilePoint]) -> Tuple[np.ndarray, np.ndarray]:
    ordered = _sorted_by_time(points)
    return (
        np.array([p.time_seconds for p in ordered], dtype=float),
        np.array([p.target_temp for p in ordered], dtype=float),
    )


def _first_crossing(points: Sequence[ProfilePoint], threshold: float) -> Optional[float]:
    for point in points:
        if point.target_temp >= threshold:
            return point.time_seconds
    return None


def calculate_landmarks(
    profile_points: Sequence[ProfilePoint],
    first_crack_override: Optional[float] = None,
    thresholds: Optional[LandmarkThresholds] = None,
) -> RoastLandmarks:
    """Estimate roast landmarks from a target temperature curve.

    Each landmark is the time of the first point at or above its threshold;
    a curve that never reaches a threshold leaves that landmark unset.
    Development is taken to start at first crack.
    """
    th = thresholds or LandmarkThresholds()
    if not profile_points:
        return RoastLandmarks()

    ordered = _sorted_by_time(profile_points)
    first_crack = (
        first_crack_override if first_crack_override is not None else _first_crossing(ordered, th.first_crack)
    )
    return RoastLandmarks(
        dry_end_time=_first_crossing(ordered, th.dry_end),
        first_crack_time=first_crack,
        second_crack_time=_first_crossing(ordered, th.second_crack),
        development_start=first_crack,
    )


def profile_to_temperature_points(profile_points: Sequence[ProfilePoint]) -> List[TemperaturePoint]:
    return [TemperaturePoint(time=p.time_seconds, temperature=p.target_temp) for p in profile_points]


def target_temperature_at(profile_points: Sequence[ProfilePoint], time_seconds: float) -> Optional[float]:
    """Target temperature at ``time_seconds``, linearly interpolated.

    Times before the first point or after the last one clamp to the end
    values. Returns None for an empty profile.
    """
    if not profile_points:
        return None
    return float(np.interp(time_seconds, *_curve(profile_points)))


def target_rate_of_rise(
    profile_points: Sequence[ProfilePoint], time_seconds: float, window_seconds: float = 30.0
) -> Optional[float]:
    """Planned RoR (degrees per minute) over the window ending at ``time_seconds``."""
    if window_seconds <= 0:
        raise ValueError(f"window_seconds must be > 0, got {window_seconds}")
    if not profile_points:
        return None
    past, current = np.interp([time_seconds - window_seconds, time_seconds], *_curve(profile_points))
    return float(current - past) / (window_seconds / 60.0)


def calculate_profile_phase_stats(
    profile_points: Sequence[ProfilePoint],
    config: Optional[RoRConfig] = None,
    first_crack_override: Optional[float] = None,
    drop_time: Optional[float] = None,
    thresholds: Optional[LandmarkThresholds] = None,
) -> RoastPhaseStats:
    """Phase RoR statistics for a target curve, bucketed by its own landmarks.

    The drop defaults to the last point of the profile.
    """
    if not profile_points:
        return RoastPhaseStats()
    ordered = _sorted_by_time(profile_points)
    ror_points = calculate_ror(profile_to_temperature_points(ordered), config)
    landmarks = calculate_landmarks(ordered, first_crack_override, thresholds)
    return calculate_phase_stats(
        ror_points,
        dry_end_time=landmarks.dry_end_time,
        first_crack_time=landmarks.first_crack_time,
        drop_time=drop_time if drop_time is not None else ordered[-1].time_seconds,
    )
