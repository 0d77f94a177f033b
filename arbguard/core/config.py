"""
Configuration management for ArbGuard.

Supports:
- Runtime settings: environment variables / .env file
- Detection thresholds: YAML config (config/config.yaml)

Detection thresholds are fixed at construction time and are not
mutable while an engine is running.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from arbguard.core.errors import ConfigurationError
from arbguard.core.fixedpoint import WAD, to_wad


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==============================================
    # Environment
    # ==============================================
    arbguard_env: str = Field(default="local", description="Environment: local/cloud")
    log_level: str = Field(default="INFO")

    # ==============================================
    # Database
    # ==============================================
    database_url: str = Field(default="sqlite:///data/arbguard.db")
    persist_ledger: bool = Field(default=True, description="Write ledger through to the database")

    # ==============================================
    # Runtime Config
    # ==============================================
    cycle_interval_seconds: int = Field(default=12, description="Seconds between detection cycles")
    history_size: int = Field(default=10, description="Observations kept in the rolling history")
    detector_name: str = Field(default="arbguard", description="Detector recorded on accepted opportunities")
    mock_seed: int = Field(default=42, description="Seed for the synthetic price source")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v = v.upper()
        if v not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v

    @field_validator("cycle_interval_seconds", "history_size")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"Must be positive, got {v}")
        return v

    @property
    def is_local(self) -> bool:
        return self.arbguard_env == "local"


class DetectionConfig(BaseModel):
    """
    Thresholds for the condition chain.

    Liquidity and profit figures are 18-decimal fixed-point integers.
    Use from_yaml() to build one from human-unit YAML values.
    """

    model_config = ConfigDict(frozen=True)

    min_price_gap_bps: int = 50
    min_liquidity: int = 1000 * WAD
    gas_units: int = 300_000
    assumed_asset_price: int = 3000
    max_gas_cost: int = 10 * WAD
    min_reserve_ratio: int = 10
    max_reserve_ratio: int = 10_000
    reserve_unit: int = WAD
    persistence_window: int = 2
    max_tracked_pairs: Optional[int] = None

    @field_validator("persistence_window", "reserve_unit", "gas_units")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"Must be positive, got {v}")
        return v

    @field_validator("min_price_gap_bps", "min_liquidity", "max_gas_cost", "assumed_asset_price")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"Must not be negative, got {v}")
        return v

    @field_validator("max_tracked_pairs")
    @classmethod
    def validate_max_tracked(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v <= 0:
            raise ValueError(f"max_tracked_pairs must be positive, got {v}")
        return v

    @model_validator(mode="after")
    def validate_ratio_bounds(self) -> "DetectionConfig":
        if self.min_reserve_ratio > self.max_reserve_ratio:
            raise ValueError(
                f"min_reserve_ratio ({self.min_reserve_ratio}) exceeds "
                f"max_reserve_ratio ({self.max_reserve_ratio})"
            )
        return self

    @classmethod
    def from_yaml(cls, section: Optional[dict[str, Any]]) -> "DetectionConfig":
        """
        Build from the `detection` section of config.yaml.

        `min_liquidity` and `max_gas_cost` are given in whole units there.

        Raises:
            ConfigurationError: On invalid values
        """
        data = dict(section or {})
        for key in ("min_liquidity", "max_gas_cost"):
            if key in data:
                data[key] = to_wad(data[key])

        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid detection config: {e}",
                details={"section": section},
            ) from e


class ConfigLoader:
    """
    Configuration loader that supports multiple sources.

    - local: Load from .env file
    - cloud: Environment variables only
    """

    def __init__(self, env: Optional[str] = None):
        self.env = env or os.getenv("ARBGUARD_ENV", "local")

    def load(self) -> Settings:
        """Load settings based on environment."""
        if self.env == "local":
            return Settings()
        return Settings(_env_file=None)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    loader = ConfigLoader()
    return loader.load()


def find_project_root() -> Optional[Path]:
    """Find project root (where pyproject.toml is)."""
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / "pyproject.toml").exists():
            return parent
    return None


def load_yaml_config(config_path: Optional[str] = None) -> dict[str, Any]:
    """
    Load YAML configuration file.

    Args:
        config_path: Path to config file. Defaults to config/config.yaml

    Returns:
        Configuration dictionary
    """
    if config_path is None:
        root = find_project_root()
        if root is not None:
            config_path = str(root / "config" / "config.yaml")
        else:
            config_path = "config/config.yaml"

    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_detection_config(config: Optional[dict[str, Any]] = None) -> DetectionConfig:
    """Get DetectionConfig from a loaded YAML dict (or the default file)."""
    if config is None:
        config = load_yaml_config()
    return DetectionConfig.from_yaml(config.get("detection"))
