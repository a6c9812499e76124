"""
Shooting Pulse - Configuration

Settings are layered, lowest precedence first:

1. Model defaults below
2. configs/environments/base.yaml
3. configs/environments/{environment}.yaml
4. SP_* environment variables, "__" separating nested keys
   (SP_MODELING__CONFIDENCE_LEVEL=0.9)

Per-dataset source settings live in configs/datasets/{dataset}.yaml and are
read as plain dictionaries with get_dataset_config().

Usage:
    from shooting_pulse.shared.config import get_config

    config = get_config()  # Uses SP_ENVIRONMENT env var
    config = get_config("prod")

    level = config.modeling.confidence_level
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENVIRONMENTS = ("dev", "prod")

# =============================================================================
# Configuration Models
# =============================================================================


class ProjectConfig(BaseModel):
    name: str = "shooting-pulse"
    version: str = "0.1.0"
    description: str = "NYPD shooting incident aggregation and forecasting"


class LoggingConfig(BaseModel):
    """Handler settings applied by the runner script."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class OpenDataConfig(BaseModel):
    """NYC Open Data endpoint."""

    base_url: str = "https://data.cityofnewyork.us/api/views"
    timeout_seconds: int = 120


class APIsConfig(BaseModel):
    nyc_open_data: OpenDataConfig = Field(default_factory=OpenDataConfig)


class ModelingConfig(BaseModel):
    """Regression and forecast settings."""

    confidence_level: float = 0.95
    # Empty: the two years after the last observed year
    forecast_years: list[int] = Field(default_factory=list)

    @field_validator("confidence_level")
    @classmethod
    def validate_confidence_level(cls, v: float) -> float:
        if not 0.0 < v < 1.0:
            raise ValueError(f"Invalid confidence_level: {v}. Must be in (0, 1)")
        return v


class Settings(BaseSettings):
    """Validated Shooting Pulse configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SP_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    environment: Literal["dev", "prod"] = "dev"

    project: ProjectConfig = Field(default_factory=ProjectConfig)
    apis: APIsConfig = Field(default_factory=APIsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    modeling: ModelingConfig = Field(default_factory=ModelingConfig)

    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        if v not in ENVIRONMENTS:
            raise ValueError(f"Invalid environment: {v}. Must be one of: {ENVIRONMENTS}")
        return v


# =============================================================================
# Loading
# =============================================================================


def _get_config_dir() -> Path:
    """Locate configs/: SP_CONFIG_DIR, then the source checkout, then the cwd."""
    candidates = [
        Path(__file__).resolve().parents[2] / "configs",
        Path.cwd() / "configs",
    ]
    if os.getenv("SP_CONFIG_DIR"):
        candidates.insert(0, Path(os.environ["SP_CONFIG_DIR"]))

    for candidate in candidates:
        if candidate.is_dir():
            return candidate

    raise FileNotFoundError(
        f"Could not find a configs directory (looked in {[str(c) for c in candidates]}). "
        "Set SP_CONFIG_DIR or run from the project root."
    )


def _load_yaml_file(path: Path) -> dict[str, Any]:
    """YAML mapping at path, or {} when the file is missing or empty."""
    if not path.is_file():
        return {}
    return yaml.safe_load(path.read_text()) or {}


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """New dict with override's keys merged into base, recursing into nested dicts."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(merged.get(key), dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _load_environment_yaml(environment: str) -> dict[str, Any]:
    """base.yaml with {environment}.yaml merged on top."""
    env_dir = _get_config_dir() / "environments"

    overlay = _load_yaml_file(env_dir / f"{environment}.yaml")
    overlay.pop("_inherit", None)

    merged = _deep_merge(_load_yaml_file(env_dir / "base.yaml"), overlay)
    merged["environment"] = environment
    return merged


def _env_overrides() -> dict[str, Any]:
    """Values set through SP_* environment variables, nested like the YAML."""
    # The environment name comes from get_config's argument, not from here.
    return Settings().model_dump(exclude_unset=True, exclude={"environment"})


@lru_cache(maxsize=4)
def get_config(environment: str | None = None) -> Settings:
    """
    Get configuration for an environment.

    Args:
        environment: "dev" or "prod"; defaults to SP_ENVIRONMENT, then "dev"

    Returns:
        Settings, cached per environment until reload_config()
    """
    if environment is None:
        environment = os.getenv("SP_ENVIRONMENT", "dev")

    return Settings(**_deep_merge(_load_environment_yaml(environment), _env_overrides()))


def reload_config(environment: str | None = None) -> Settings:
    """Drop cached settings and dataset configs, then load again."""
    get_config.cache_clear()
    get_dataset_config.cache_clear()
    return get_config(environment)


@lru_cache(maxsize=16)
def get_dataset_config(dataset: str) -> dict[str, Any]:
    """
    Per-dataset settings from configs/datasets/{dataset}.yaml.

    Returns an empty dict when the dataset has no configuration file.
    """
    return _load_yaml_file(_get_config_dir() / "datasets" / f"{dataset}.yaml")


def is_production() -> bool:
    return get_config().environment == "prod"
