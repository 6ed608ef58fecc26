"""
Configuration management using Pydantic models loaded from YAML.
"""

import os
from pathlib import Path
from typing import Optional

import pendulum
import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.models import SchedulingConstraints

OPENROUTER_API_KEY_ENV = "OPENROUTER_API_KEY"


def _validate_hour(name: str, value: int) -> int:
    if not 0 <= value <= 23:
        raise ValueError(f"{name} must be between 0 and 23, got {value}")
    return value


class GoogleConfig(BaseModel):
    """Google OAuth client and calendar settings."""
    client_secrets_file: Path = Path("credentials.json")
    token_file: Path = Field(
        default_factory=lambda: Path.home() / ".calendar_filler_token.json"
    )
    calendar_id: str = "primary"

    @field_validator("client_secrets_file", "token_file")
    @classmethod
    def expand_user(cls, value: Path) -> Path:
        return value.expanduser()


class TitleGeneratorConfig(BaseModel):
    """Settings for the AI title generation service (OpenRouter)."""
    api_key: Optional[str] = None
    model: str = "z-ai/glm-4.5-air:free"
    endpoint: str = "https://openrouter.ai/api/v1/chat/completions"
    timeout_seconds: float = 30.0

    @field_validator("timeout_seconds")
    @classmethod
    def validate_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeout_seconds must be greater than zero")
        return value

    def resolve_api_key(self) -> Optional[str]:
        """Use the configured key, or the OPENROUTER_API_KEY environment variable."""
        return self.api_key or os.environ.get(OPENROUTER_API_KEY_ENV) or None


class SchedulingConfig(BaseModel):
    """
    Slot search settings.

    The window opens at the batch's earliest start hour and closes at
    ``working_hours_end``. An end hour below the start hour closes the
    window on the next day.
    """
    working_hours_end: int = 21
    search_increment_minutes: int = 15
    max_attempts: int = 50

    @field_validator("working_hours_end")
    @classmethod
    def validate_hour(cls, v: int) -> int:
        """Validate hour is between 0 and 23."""
        return _validate_hour("working_hours_end", v)

    @field_validator("search_increment_minutes", "max_attempts")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("value must be greater than zero")
        return value

    def constraints_for(self, earliest_start_hour: int) -> SchedulingConstraints:
        """Build the constraints for a batch starting at ``earliest_start_hour``."""
        return SchedulingConstraints(
            working_hours_start=earliest_start_hour,
            working_hours_end=self.working_hours_end,
            search_increment_minutes=self.search_increment_minutes,
            max_attempts=self.max_attempts,
        )


class DefaultsConfig(BaseModel):
    """Default settings for event creation."""
    count: int = 5
    earliest_start_hour: int = 8
    user_input: str = "general activities"
    timezone: str = "Asia/Kolkata"

    @field_validator("count")
    @classmethod
    def validate_count(cls, value: int) -> int:
        if not 1 <= value <= 30:
            raise ValueError(f"count must be between 1 and 30, got {value}")
        return value

    @field_validator("earliest_start_hour")
    @classmethod
    def validate_hour(cls, v: int) -> int:
        """Validate hour is between 0 and 23."""
        return _validate_hour("earliest_start_hour", v)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        try:
            pendulum.timezone(value)
        except Exception as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value


class AppConfig(BaseModel):
    """Application configuration."""
    google: GoogleConfig = Field(default_factory=GoogleConfig)
    title_generator: TitleGeneratorConfig = Field(default_factory=TitleGeneratorConfig)
    scheduling: SchedulingConfig = Field(default_factory=SchedulingConfig)
    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)
    list_window_days: int = 30
    delete_window_days: int = 60
    log_level: str = "WARNING"

    @field_validator("list_window_days", "delete_window_days")
    @classmethod
    def validate_window_days(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("window days must be greater than zero")
        return value

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {value}")
        return level

    @model_validator(mode="after")
    def validate_window(self) -> "AppConfig":
        """Reject a default start hour that leaves an empty working window."""
        if self.defaults.earliest_start_hour == self.scheduling.working_hours_end:
            raise ValueError(
                "defaults.earliest_start_hour must differ from scheduling.working_hours_end"
            )
        return self

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

        return cls(**data)

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "AppConfig":
        """
        Load an explicit config file, or the default one when it exists.

        Without an explicit path and without a config.yaml, built-in
        defaults are used.
        """
        if config_path is not None:
            return cls.load_from_yaml(config_path)

        default_path = get_default_config_path()
        if default_path.exists():
            return cls.load_from_yaml(default_path)
        return cls()


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
