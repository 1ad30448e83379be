from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Dict, Mapping, Optional, Tuple, Union


ControlMode = Union[int, str]

# (attribute, wire key, accepted aliases). Absent channels stay None.
_CHANNELS: Tuple[Tuple[str, str, Tuple[str, ...]], ...] = (
    ("bean_temp", "beanTemp", ("bean_temp",)),
    ("env_temp", "envTemp", ("env_temp",)),
    ("setpoint", "setpoint", ()),
    ("fan_pwm", "fanPWM", ("fan_pwm",)),
    ("heater_pwm", "heaterPWM", ("heater_pwm",)),
    ("control_mode", "controlMode", ("control_mode",)),
    ("heater_enable", "heaterEnable", ("heater_enable",)),
    ("rate_of_rise", "rateOfRise", ("rate_of_rise",)),
    ("kp", "Kp", ("kp",)),
    ("ki", "Ki", ("ki",)),
    ("kd", "Kd", ("kd",)),
)


@dataclass
class TelemetrySample:
    """One telemetry point from the roaster.

    Every channel is optional: ``None`` means the channel was not sampled on
    this tick, which is not the same as a reading of zero.
    """

    timestamp: float
    bean_temp: Optional[float] = None
    env_temp: Optional[float] = None
    setpoint: Optional[float] = None
    fan_pwm: Optional[float] = None
    heater_pwm: Optional[float] = None
    control_mode: Optional[ControlMode] = None
    heater_enable: Optional[Union[bool, int]] = None
    rate_of_rise: Optional[float] = None
    kp: Optional[float] = None
    ki: Optional[float] = None
    kd: Optional[float] = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "TelemetrySample":
        """Build a sample from a producer message.

        Accepts camelCase and snake_case channel names. ``ts`` is taken as
        seconds; a bare ``timestamp`` is epoch milliseconds as sent by the
        device bridge.
        """
        if payload.get("ts") is not None:
            ts = float(payload["ts"])
        elif payload.get("timestamp") is not None:
            ts = float(payload["timestamp"]) / 1000.0
        else:
            raise ValueError("telemetry payload has no 'ts' or 'timestamp'")

        values: Dict[str, Any] = {}
        for attr, wire, aliases in _CHANNELS:
            for key in (wire, *aliases):
                if payload.get(key) is not None:
                    values[attr] = payload[key]
                    break
        return cls(timestamp=ts, **values)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"ts": self.timestamp}
        for attr, wire, _ in _CHANNELS:
            value = getattr(self, attr)
            if value is not None:
                out[wire] = value
        return out


@dataclass
class CompressedSample:
    """Delta-encoded form of a :class:`TelemetrySample`.

    ``t`` is the offset from the batch base timestamp; ``bt``, ``et`` and
    ``sp`` are deltas from the preceding sample (absolute when there is no
    preceding value). The remaining fields are copies.
    """

    t: float
    bt: Optional[float] = None
    et: Optional[float] = None
    sp: Optional[float] = None
    f: Optional[float] = None
    h: Optional[float] = None
    cm: Optional[ControlMode] = None
    he: Optional[Union[bool, int]] = None
    r: Optional[float] = None
    kp: Optional[float] = None
    ki: Optional[float] = None
    kd: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CompressedSample":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass(frozen=True)
class CompressionState:
    """Resumable delta-coding state, owned and passed back in by the caller.

    ``last_sample`` is the last absolute sample encoded and is where the next
    batch resumes. ``anchor_sample`` is the reference the batch's first deltas
    were taken against (``None`` for a fresh batch); the decoder starts its
    chain from it.
    """

    base_timestamp: float = 0.0
    last_sample: Optional[TelemetrySample] = None
    anchor_sample: Optional[TelemetrySample] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "baseTimestamp": self.base_timestamp,
            "lastSample": self.last_sample.to_dict() if self.last_sample else None,
            "anchorSample": self.anchor_sample.to_dict() if self.anchor_sample else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CompressionState":
        last = data.get("lastSample")
        anchor = data.get("anchorSample")
        return cls(
            base_timestamp=float(data.get("baseTimestamp", 0.0)),
            last_sample=TelemetrySample.from_payload(last) if last else None,
            anchor_sample=TelemetrySample.from_payload(anchor) if anchor else None,
        )


@dataclass
class TemperaturePoint:
    time: float  # seconds
    temperature: float


@dataclass
class RoRPoint:
    time: float
    temperature: float
    ror: float  # degrees per minute


@dataclass
class ProfilePoint:
    """A point on a target roast curve."""

    time_seconds: float
    target_temp: float


@dataclass
class RoastLandmarks:
    dry_end_time: Optional[float] = None
    first_crack_time: Optional[float] = None
    second_crack_time: Optional[float] = None
    development_start: Optional[float] = None


@dataclass
class RoastPhaseStats:
    dry_phase_ror: float = 0.0
    maillard_phase_ror: float = 0.0
    development_phase_ror: float = 0.0
    overall_ror: float = 0.0
    max_ror: float = 0.0
    min_ror: float = 0.0
