from __future__ import annotations

import json
import logging
import math
from typing import Dict, List, Optional, Sequence, Tuple

from .models import CompressedSample, CompressionState, TelemetrySample


logger = logging.getLogger(__name__)

# Temperature-like channels, delta coded against the previous sample
_DELTA_CHANNELS: Tuple[Tuple[str, str], ...] = (
    ("bean_temp", "bt"),
    ("env_temp", "et"),
    ("setpoint", "sp"),
)

# Small integers, flags and gains: copied through as-is
_COPY_CHANNELS: Tuple[Tuple[str, str], ...] = (
    ("fan_pwm", "f"),
    ("heater_pwm", "h"),
    ("control_mode", "cm"),
    ("heater_enable", "he"),
    ("kp", "kp"),
    ("ki", "ki"),
    ("kd", "kd"),
)


def quantize(value: float, precision: float) -> float:
    """Round half-up to the nearest ``1 / precision``."""
    return math.floor(value * precision + 0.5) / precision


def _reference_values(sample: Optional[TelemetrySample]) -> Dict[str, Optional[float]]:
    return {attr: (getattr(sample, attr) if sample is not None else None) for attr, _ in _DELTA_CHANNELS}


def encode(
    samples: Sequence[TelemetrySample],
    precision: float = 1,
    state: Optional[CompressionState] = None,
) -> Tuple[List[CompressedSample], CompressionState]:
    """Delta encode ``samples``.

    With no ``state`` (or a state without a last sample) the batch is fresh:
    its first sample carries absolute values and offsets are measured from its
    timestamp. Passing the state returned by a previous call resumes that
    delta chain and keeps its base timestamp.

    Deltas are taken against the value the decoder will reconstruct, not the
    raw previous reading, so rounding error stays within one step instead of
    accumulating along the batch.
    """
    if precision <= 0:
        raise ValueError(f"precision must be > 0, got {precision}")
    if not samples:
        return [], state if state is not None else CompressionState()

    anchor = state.last_sample if state is not None else None
    base = state.base_timestamp if anchor is not None else samples[0].timestamp
    reference = _reference_values(anchor)

    compressed: List[CompressedSample] = []
    for sample in samples:
        point = CompressedSample(t=quantize(sample.timestamp - base, precision))

        for attr, key in _DELTA_CHANNELS:
            value = getattr(sample, attr)
            if value is None:
                reference[attr] = None
                continue
            previous = reference[attr]
            if previous is None:
                encoded = quantize(value, precision)
                reference[attr] = encoded
            else:
                encoded = quantize(value - previous, precision)
                reference[attr] = previous + encoded
            setattr(point, key, encoded)

        for attr, key in _COPY_CHANNELS:
            value = getattr(sample, attr)
            if value is not None:
                setattr(point, key, value)
        if sample.rate_of_rise is not None:
            point.r = quantize(sample.rate_of_rise, precision)

        compressed.append(point)

    logger.debug(f"Encoded {len(compressed)} samples (base={base}, resumed={anchor is not None})")
    return compressed, CompressionState(
        base_timestamp=base,
        last_sample=samples[-1],
        anchor_sample=anchor,
    )


def decode(compressed: Sequence[CompressedSample], state: CompressionState) -> List[TelemetrySample]:
    """Rebuild absolute samples from :func:`encode` output and its state.

    A channel missing from a compressed sample decodes as absent; it is never
    filled with zero or carried forward.
    """
    if not compressed:
        return []

    reference = _reference_values(state.anchor_sample)
    decoded: List[TelemetrySample] = []
    for point in compressed:
        sample = TelemetrySample(timestamp=state.base_timestamp + point.t)

        for attr, key in _DELTA_CHANNELS:
            delta = getattr(point, key)
            if delta is None:
                reference[attr] = None
                continue
            previous = reference[attr]
            value = delta if previous is None else previous + delta
            setattr(sample, attr, value)
            reference[attr] = value

        for attr, key in _COPY_CHANNELS:
            value = getattr(point, key)
            if value is not None:
                setattr(sample, attr, value)
        if point.r is not None:
            sample.rate_of_rise = point.r

        decoded.append(sample)
    return decoded


def _json_size(records: Sequence[dict]) -> int:
    return len(json.dumps(list(records), separators=(",", ":")))


def compression_ratio(original: Sequence[TelemetrySample], compressed: Sequence[CompressedSample]) -> float:
    """Serialized size of ``compressed`` relative to ``original`` (lower is better)."""
    original_size = _json_size([s.to_dict() for s in original])
    compressed_size = _json_size([c.to_dict() for c in compressed])
    return compressed_size / original_size


def estimate_memory_usage(samples: Sequence[TelemetrySample]) -> int:
    """Approximate footprint in bytes of ``samples`` in their wire form."""
    return sum(len(json.dumps(s.to_dict(), separators=(",", ":")).encode("utf-8")) for s in samples)
