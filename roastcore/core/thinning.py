from __future__ import annotations

import math
from typing import List, Optional, Sequence

from .models import TelemetrySample


def _moved(current: Optional[float], kept: Optional[float], threshold: float) -> bool:
    if current is None or kept is None:
        # Gaining or losing a channel is a change; missing on both sides is not
        return (current is None) != (kept is None)
    return abs(current - kept) > threshold


def is_significant_change(sample: TelemetrySample, kept: TelemetrySample, change_threshold: float) -> bool:
    return (
        _moved(sample.bean_temp, kept.bean_temp, change_threshold)
        or _moved(sample.env_temp, kept.env_temp, change_threshold)
        or sample.control_mode != kept.control_mode
        or sample.heater_enable != kept.heater_enable
    )


def thin(
    samples: Sequence[TelemetrySample],
    max_points: int = 1000,
    change_threshold: float = 0.5,
) -> List[TelemetrySample]:
    """Downsample ``samples`` to at most ``max_points`` for display.

    Walks the input at a fixed stride and keeps a stride sample only when it
    differs significantly from the last sample kept. The first and last
    samples are always kept, so flat stretches can thin out well below the cap.
    """
    if max_points < 2:
        raise ValueError(f"max_points must be >= 2, got {max_points}")
    if len(samples) <= max_points:
        return list(samples)

    step = math.ceil(len(samples) / max_points)
    thinned: List[TelemetrySample] = [samples[0]]
    for i in range(step, len(samples) - step, step):
        if is_significant_change(samples[i], thinned[-1], change_threshold):
            thinned.append(samples[i])
    thinned.append(samples[-1])
    return thinned
