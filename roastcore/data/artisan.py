from __future__ import annotations

import ast
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..core.models import ProfilePoint


class ArtisanParseError(ValueError):
    """Raised when a file is neither JSON nor a Python-literal Artisan log."""


@dataclass
class ArtisanPoint:
    time: float  # seconds from charge
    bean_temp: Optional[float] = None
    env_temp: Optional[float] = None


@dataclass
class RoastEvent:
    name: str
    type: str  # CHARGE | TP | DRY | FCs | FCe | SCs | DROP
    time: float
    bean_temp: Optional[float] = None
    env_temp: Optional[float] = None


@dataclass
class ArtisanProfile:
    title: str
    roast_date: str
    total_time: float
    points: List[ArtisanPoint] = field(default_factory=list)
    events: List[RoastEvent] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_profile_points(self) -> List[ProfilePoint]:
        """Bean temperature curve as a target profile; points without BT are dropped."""
        return [
            ProfilePoint(time_seconds=p.time, target_temp=p.bean_temp)
            for p in self.points
            if p.bean_temp is not None
        ]

    def event_time(self, event_type: str) -> Optional[float]:
        for event in self.events:
            if event.type == event_type:
                return event.time
        return None


# Artisan's computed-event prefixes, in roast order
_EVENTS = (
    ("CHARGE", "Charge"),
    ("TP", "Turning Point"),
    ("DRY", "Dry End"),
    ("FCs", "First Crack Start"),
    ("FCe", "First Crack End"),
    ("SCs", "Second Crack Start"),
    ("DROP", "Drop"),
)


def _load(content: str) -> Dict[str, Any]:
    try:
        data = json.loads(content)
    except json.JSONDecodeError:
        # Older .alog files are a Python dict repr
        try:
            data = ast.literal_eval(content)
        except (ValueError, SyntaxError) as exc:
            raise ArtisanParseError("Unable to parse Artisan profile file format") from exc
    if not isinstance(data, dict):
        raise ArtisanParseError(f"Artisan profile must be a mapping, got {type(data).__name__}")
    return data


def _reading(values: List[Any], index: int) -> Optional[float]:
    # Artisan marks missing readings with -1
    if index >= len(values) or values[index] is None or values[index] == -1:
        return None
    return float(values[index])


def parse_artisan_profile(content: str) -> ArtisanProfile:
    data = _load(content)
    timex = data.get("timex") or []
    temp1 = data.get("temp1") or []  # environment temperature (ET)
    temp2 = data.get("temp2") or []  # bean temperature (BT)
    computed = data.get("computed") or {}

    points = [
        ArtisanPoint(time=float(t), bean_temp=_reading(temp2, i), env_temp=_reading(temp1, i))
        for i, t in enumerate(timex)
    ]

    events: List[RoastEvent] = []
    for key, name in _EVENTS:
        if f"{key}_time" not in computed:
            continue
        events.append(
            RoastEvent(
                name=name,
                type=key,
                # CHARGE_time is an absolute index in some versions; charge is t=0 by definition
                time=0.0 if key == "CHARGE" else float(computed[f"{key}_time"]),
                bean_temp=computed.get(f"{key}_BT"),
                env_temp=computed.get(f"{key}_ET"),
            )
        )

    weight = data.get("weight") or []
    total_time = computed.get("totaltime")
    if total_time is None:
        total_time = max((p.time for p in points), default=0.0)

    return ArtisanProfile(
        title=data.get("title") or "Imported Profile",
        roast_date=data.get("roastdate") or "",
        total_time=float(total_time),
        points=points,
        events=events,
        metadata={
            "operator": data.get("operator") or "",
            "roaster_type": data.get("roastertype") or "",
            "beans": data.get("beans") or "",
            "weight": weight[0] if weight else None,
            "total_ror": computed.get("total_ror"),
            "dry_phase_ror": computed.get("dry_phase_ror"),
            "mid_phase_ror": computed.get("mid_phase_ror"),
            "finish_phase_ror": computed.get("finish_phase_ror"),
        },
    )
