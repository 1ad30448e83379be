from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Sequence, Tuple

import pandas as pd

from ..core.models import CompressedSample, CompressionState, ProfilePoint, TelemetrySample
from .artisan import parse_artisan_profile


def _records(df: pd.DataFrame) -> List[Dict[str, Any]]:
    # NaN cells are channels that were not sampled; drop them rather than zero-fill
    clean = df.astype(object).where(pd.notna(df), None)
    return [{k: v for k, v in row.items() if v is not None} for row in clean.to_dict(orient="records")]


def load_samples(path: Path) -> List[TelemetrySample]:
    """Read telemetry samples from a CSV file or a JSON array of records.

    Columns use the wire names (``ts``, ``beanTemp``, ``envTemp``, ...) or
    their snake_case forms. A ``timestamp`` column is read as seconds.
    """
    path = Path(path)
    if path.suffix.lower() == ".json":
        df = pd.read_json(path, orient="records", convert_dates=False, keep_default_dates=False)
    else:
        df = pd.read_csv(path)
    if "ts" not in df.columns and "timestamp" in df.columns:
        df = df.rename(columns={"timestamp": "ts"})
    if "ts" not in df.columns:
        raise ValueError(f"{path}: no 'ts' or 'timestamp' column")
    return [TelemetrySample.from_payload(rec) for rec in _records(df)]


def load_profile(path: Path) -> List[ProfilePoint]:
    """Read a target curve from a CSV (``time_seconds,target_temp``) or an Artisan ``.alog``."""
    path = Path(path)
    if path.suffix.lower() == ".alog":
        return parse_artisan_profile(path.read_text(encoding="utf-8")).to_profile_points()

    df = pd.read_csv(path)
    df = df.rename(columns={"time": "time_seconds", "temperature": "target_temp"})
    missing = {"time_seconds", "target_temp"} - set(df.columns)
    if missing:
        raise ValueError(f"{path}: missing columns {sorted(missing)}")
    df = df.dropna(subset=["time_seconds", "target_temp"])
    return [
        ProfilePoint(time_seconds=float(t), target_temp=float(temp))
        for t, temp in zip(df["time_seconds"], df["target_temp"])
    ]


def samples_to_frame(samples: Sequence[TelemetrySample]) -> pd.DataFrame:
    return pd.DataFrame([s.to_dict() for s in samples])


def write_compressed(path: Path, compressed: Sequence[CompressedSample], state: CompressionState) -> None:
    payload = {"state": state.to_dict(), "compressed": [c.to_dict() for c in compressed]}
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(payload, fh, separators=(",", ":"))


def read_compressed(path: Path) -> Tuple[List[CompressedSample], CompressionState]:
    with open(path, "r", encoding="utf-8") as fh:
        payload = json.load(fh)
    state = CompressionState.from_dict(payload.get("state") or {})
    return [CompressedSample.from_dict(c) for c in payload.get("compressed") or []], state
