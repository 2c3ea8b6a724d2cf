"""
Configuration using pydantic-settings.
Defaults can be overridden through AOA_* environment variables or a .env file;
arguments passed at the call site always win over settings.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AOASettings(BaseSettings):
    """Defaults for DI/AOA runs."""

    model_config = SettingsConfigDict(
        env_prefix="AOA_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    probabilities: list[float] = Field(
        default=[0.95], description="Quantile probabilities of the training DI used as thresholds"
    )
    threshold_method: str = Field(default="quantile", description="Threshold rule (quantile|whisker)")
    chunk_size: int = Field(default=1024, ge=1, description="Rows per distance chunk")
    compute_lpd: bool = Field(default=False, description="Also compute local point density")

    log_level: str = Field(default="info", description="Log level")
    log_format: str = Field(default="console", description="Log format (json|console)")

    @field_validator("probabilities")
    @classmethod
    def check_probabilities(cls, v: list[float]) -> list[float]:
        if not v:
            raise ValueError("at least one probability is required")
        for p in v:
            if not 0.0 <= p <= 1.0:
                raise ValueError(f"probability {p} is outside [0, 1]")
        return v

    @field_validator("threshold_method")
    @classmethod
    def check_method(cls, v: str) -> str:
        v = v.lower()
        if v not in ("quantile", "whisker"):
            raise ValueError(f"unknown threshold method: {v}")
        return v


@lru_cache
def get_settings() -> AOASettings:
    """Cached settings instance."""
    return AOASettings()
