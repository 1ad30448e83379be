from __future__ import annotations

from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BufferConfig(BaseModel):
    capacity: int = Field(3000, ge=1, description="Samples retained per device (~50 min at 1 Hz)")


class CompressionConfig(BaseModel):
    precision: float = Field(10, gt=0, description="Rounding steps per unit; 10 keeps 0.1 degree")


class ThinningConfig(BaseModel):
    max_points: int = Field(1000, ge=2, description="Upper bound on points sent to a chart")
    change_threshold: float = Field(
        0.5, ge=0, description="Temperature move (degrees) that makes a stride sample worth keeping"
    )


class RoRConfig(BaseModel):
    """Rate of Rise pipeline settings.

    Defaults follow common Artisan practice: a short regression window,
    clamping to a plausible band and light exponential smoothing.
    """

    window_size: int = Field(3, ge=1, description="Samples between the ends of the derivative window")
    method: Literal["difference", "regression"] = Field(
        "regression", description="Derivative estimator (see roastcore.core.ror.build_registry)"
    )
    filter_spikes: bool = True
    max_ror: float = Field(30.0, description="Upper clamp, degrees per minute")
    min_ror: float = Field(-10.0, description="Lower clamp, degrees per minute")
    smoothing_alpha: float = Field(0.2, gt=0, le=1, description="Weight of the newest RoR sample")

    @model_validator(mode="after")
    def _check_band(self) -> "RoRConfig":
        if self.min_ror > self.max_ror:
            raise ValueError(f"min_ror ({self.min_ror}) must not exceed max_ror ({self.max_ror})")
        return self


class LandmarkThresholds(BaseModel):
    dry_end: float = Field(160.0, description="End of drying phase")
    first_crack: float = Field(196.0, description="Estimated first crack")
    second_crack: float = Field(224.0, description="Estimated second crack")


class RuntimeConfig(BaseModel):
    buffer: BufferConfig = Field(default_factory=BufferConfig)
    compression: CompressionConfig = Field(default_factory=CompressionConfig)
    thinning: ThinningConfig = Field(default_factory=ThinningConfig)
    ror: RoRConfig = Field(default_factory=RoRConfig)
    landmarks: LandmarkThresholds = Field(default_factory=LandmarkThresholds)


class EnvSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    LOG_LEVEL: str = "INFO"
    ROASTCORE_CONFIG: Optional[str] = None

    @field_validator("LOG_LEVEL")
    @classmethod
    def _upper(cls, v: str) -> str:
        return v.upper()


class AppConfig(BaseModel):
    env: EnvSettings
    runtime: RuntimeConfig

    @staticmethod
    def load(config_path: Optional[Path] = None) -> "AppConfig":
        env = EnvSettings()  # loads from environment and .env

        runtime = RuntimeConfig()
        if config_path is None and env.ROASTCORE_CONFIG:
            config_path = Path(env.ROASTCORE_CONFIG)
        if config_path is None:
            default_path = Path("config.yaml")
            config_path = default_path if default_path.exists() else None

        if config_path and Path(config_path).exists():
            with open(config_path, "r", encoding="utf-8") as fh:
                raw = yaml.safe_load(fh) or {}
            try:
                runtime = RuntimeConfig(**raw)
            except ValidationError as ve:
                raise ValueError(f"Invalid config.yaml: {ve}") from ve
        elif config_path:
            raise ValueError(f"Config file not found: {config_path}")

        return AppConfig(env=env, runtime=runtime)


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load merged configuration from environment and optional YAML."""

    return AppConfig.load(config_path)
