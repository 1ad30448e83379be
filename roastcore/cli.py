from __future__ import annotations

import json
import logging
from dataclasses import asdict
from pathlib import Path
from typing import Any, Optional

import pandas as pd
import typer
from pydantic import ValidationError

from .config import AppConfig, RoRConfig, load_config
from .core.codec import compression_ratio, decode, encode
from .core.landmarks import calculate_landmarks, profile_to_temperature_points
from .core.registry import DeviceBufferRegistry
from .core.ror import calculate_phase_stats, calculate_ror
from .core.thinning import thin as thin_samples
from .data.loaders import load_profile, load_samples, read_compressed, samples_to_frame, write_compressed
from .utils.logging import setup_logging


app = typer.Typer(add_completion=False, help="Roaster telemetry tools: RoR, compression, thinning.")
logger = logging.getLogger(__name__)

ConfigOption = typer.Option(None, "--config", help="YAML config (defaults to ./config.yaml)")


def _bootstrap(config_path: Optional[Path]) -> AppConfig:
    cfg = load_config(config_path)
    setup_logging(cfg.env.LOG_LEVEL)
    return cfg


def _echo_json(data: Any) -> None:
    typer.echo(json.dumps(data, indent=2, default=str))


@app.command()
def ror(
    profile: Path = typer.Argument(..., exists=True, help="Profile CSV (time_seconds,target_temp) or .alog"),
    method: Optional[str] = typer.Option(None, help="difference | regression"),
    window: Optional[int] = typer.Option(None, help="Derivative window in samples"),
    alpha: Optional[float] = typer.Option(None, help="Smoothing weight of the newest sample"),
    filter_spikes: Optional[bool] = typer.Option(None, "--filter-spikes/--no-filter-spikes"),
    first_crack: Optional[float] = typer.Option(None, help="Override first crack time (s)"),
    drop: Optional[float] = typer.Option(None, help="Drop time (s); defaults to the last point"),
    output: Optional[Path] = typer.Option(None, help="Write per-sample RoR to this CSV"),
    config: Optional[Path] = ConfigOption,
) -> None:
    """Compute RoR and phase statistics for a temperature curve."""
    cfg = _bootstrap(config)
    overrides = {
        k: v
        for k, v in {
            "method": method,
            "window_size": window,
            "smoothing_alpha": alpha,
            "filter_spikes": filter_spikes,
        }.items()
        if v is not None
    }
    try:
        ror_cfg = RoRConfig(**{**cfg.runtime.ror.model_dump(), **overrides})
    except ValidationError as ve:
        raise typer.BadParameter(str(ve)) from ve

    points = sorted(load_profile(profile), key=lambda p: p.time_seconds)
    if not points:
        typer.echo("Profile has no points", err=True)
        raise typer.Exit(code=1)
    ror_points = calculate_ror(profile_to_temperature_points(points), ror_cfg)
    landmarks = calculate_landmarks(points, first_crack, cfg.runtime.landmarks)
    stats = calculate_phase_stats(
        ror_points,
        dry_end_time=landmarks.dry_end_time,
        first_crack_time=landmarks.first_crack_time,
        drop_time=drop if drop is not None else points[-1].time_seconds,
    )
    logger.info(f"Computed {len(ror_points)} RoR samples from {len(points)} points", extra={"method": ror_cfg.method})

    if output is not None:
        pd.DataFrame([asdict(p) for p in ror_points]).to_csv(output, index=False)
    _echo_json({"landmarks": asdict(landmarks), "stats": asdict(stats), "samples": len(ror_points)})


@app.command()
def landmarks(
    profile: Path = typer.Argument(..., exists=True),
    first_crack: Optional[float] = typer.Option(None, help="Override first crack time (s)"),
    config: Optional[Path] = ConfigOption,
) -> None:
    """Estimate dry end, first and second crack from a target curve."""
    cfg = _bootstrap(config)
    found = calculate_landmarks(load_profile(profile), first_crack, cfg.runtime.landmarks)
    _echo_json(asdict(found))


@app.command()
def compress(
    samples: Path = typer.Argument(..., exists=True, help="Telemetry CSV or JSON records"),
    output: Path = typer.Argument(..., help="Compressed JSON output"),
    precision: Optional[float] = typer.Option(None, help="Rounding steps per unit"),
    config: Optional[Path] = ConfigOption,
) -> None:
    """Delta encode a telemetry file."""
    cfg = _bootstrap(config)
    data = load_samples(samples)
    compressed, state = encode(data, precision or cfg.runtime.compression.precision)
    write_compressed(output, compressed, state)
    ratio = compression_ratio(data, compressed) if data else 1.0
    logger.info(f"Compressed {len(data)} samples", extra={"ratio": round(ratio, 3)})
    typer.echo(f"{len(compressed)} samples written to {output} (ratio {ratio:.2%})")


@app.command()
def decompress(
    compressed: Path = typer.Argument(..., exists=True),
    output: Path = typer.Argument(..., help="CSV output"),
    config: Optional[Path] = ConfigOption,
) -> None:
    """Rebuild absolute samples from a compressed JSON file."""
    _bootstrap(config)
    points, state = read_compressed(compressed)
    decoded = decode(points, state)
    samples_to_frame(decoded).to_csv(output, index=False)
    typer.echo(f"{len(decoded)} samples written to {output}")


@app.command()
def thin(
    samples: Path = typer.Argument(..., exists=True),
    output: Path = typer.Argument(..., help="CSV output"),
    max_points: Optional[int] = typer.Option(None, help="Upper bound on output points"),
    threshold: Optional[float] = typer.Option(None, help="Temperature change worth keeping"),
    config: Optional[Path] = ConfigOption,
) -> None:
    """Downsample a telemetry file for display."""
    cfg = _bootstrap(config)
    data = load_samples(samples)
    kept = thin_samples(
        data,
        max_points if max_points is not None else cfg.runtime.thinning.max_points,
        threshold if threshold is not None else cfg.runtime.thinning.change_threshold,
    )
    samples_to_frame(kept).to_csv(output, index=False)
    typer.echo(f"Kept {len(kept)} of {len(data)} samples")


@app.command()
def replay(
    samples: Path = typer.Argument(..., exists=True),
    device: str = typer.Option("roaster", help="Device id to replay into"),
    capacity: Optional[int] = typer.Option(None, help="Ring buffer capacity"),
    start: Optional[float] = typer.Option(None, help="Range start (s)"),
    end: Optional[float] = typer.Option(None, help="Range end (s)"),
    config: Optional[Path] = ConfigOption,
) -> None:
    """Push a recorded session through a device ring buffer and report its state."""
    cfg = _bootstrap(config)
    registry = DeviceBufferRegistry(
        capacity=capacity or cfg.runtime.buffer.capacity,
        precision=cfg.runtime.compression.precision,
    )
    for sample in load_samples(samples):
        registry.push(device, sample)

    window = registry.get_device_data(device, start, end)
    compressed, _ = registry.compress_pending(device)
    _echo_json(
        {
            "stats": asdict(registry.stats(device)),
            "window_points": len(window),
            "compressed_points": len(compressed),
        }
    )


if __name__ == "__main__":
    app()
