"""
Configuration management using Pydantic models loaded from YAML.
"""

import os
from pathlib import Path

import pendulum
import yaml
from pydantic import BaseModel, Field, field_validator

from .domain.models import SCHEDULING_TIMEZONE, ensure_fixed_offset

GOOGLE_MAPS_API_KEY_ENV = "GOOGLE_MAPS_API_KEY"
DEFAULT_DATA_FILE = Path(__file__).parent / "adapters" / "sample_data.json"


class DefaultsConfig(BaseModel):
    """Default settings for availability queries."""
    duration_minutes: int = 60
    past_tolerance_minutes: int = 5

    @field_validator("duration_minutes")
    @classmethod
    def validate_duration(cls, value: int) -> int:
        """Ensure service duration is positive."""
        if value <= 0:
            raise ValueError("duration_minutes must be greater than zero")
        return value

    @field_validator("past_tolerance_minutes")
    @classmethod
    def validate_tolerance(cls, value: int) -> int:
        if value < 0:
            raise ValueError("past_tolerance_minutes must not be negative")
        return value


class GeocodingConfig(BaseModel):
    """Google Maps geocoding settings. An empty key disables geocoding."""
    api_key: str = ""
    region_suffix: str = "Vienna, Austria"
    timeout_seconds: float = 10.0

    def get_api_key(self) -> str:
        """Configured key, falling back to the GOOGLE_MAPS_API_KEY environment variable."""
        return self.api_key or os.environ.get(GOOGLE_MAPS_API_KEY_ENV, "")


class AppConfig(BaseModel):
    """Application configuration."""
    timezone: str = SCHEDULING_TIMEZONE
    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)
    geocoding: GeocodingConfig = Field(default_factory=GeocodingConfig)
    data_file: Path = DEFAULT_DATA_FILE

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Ensure the scheduling clock names a known, fixed-offset timezone."""
        try:
            pendulum.timezone(value)
        except Exception as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return ensure_fixed_offset(value)

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        config = cls(**data)

        # Relative data files are resolved against the config file location
        if not config.data_file.is_absolute():
            config = config.model_copy(
                update={"data_file": (config_path.parent / config.data_file).resolve()}
            )

        return config


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
