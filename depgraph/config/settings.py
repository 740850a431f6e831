"""
Dependency graph engine settings and configuration management.
"""

from enum import Enum
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LogLevel(str, Enum):
    """Log level enumeration."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    TEXT = "text"
    JSON = "json"


class ModelErrorPolicy(str, Enum):
    """What the resolve loop does when a non-root model cannot be loaded."""
    SKIP = "skip"
    ABORT = "abort"


class Settings(BaseSettings):
    """Engine settings with environment variable support (DEPGRAPH_ prefix)."""

    # Logging settings
    log_level: LogLevel = Field(default=LogLevel.INFO, description="Logging level")
    log_format: LogFormat = Field(default=LogFormat.TEXT, description="Console log format")
    log_dir: Optional[str] = Field(default=None, description="Directory for rotating log files, disabled when unset")

    # Resolution settings
    desired_scope: str = Field(default="test", description="Widest scope kept in the finished graph")
    conflict_tie_break: str = Field(default="first", description="Tie-break for equidistant conflicts: first or newest")
    max_concurrent_loads: int = Field(default=8, ge=1, description="Model loads running at once")
    max_resolution_passes: int = Field(default=500, ge=1, description="Upper bound on resolve loop passes")
    resolution_timeout_seconds: Optional[float] = Field(default=None, gt=0, description="Abort resolution after this long")

    # Model loading settings
    model_load_retries: int = Field(default=0, ge=0, description="Retries per failed model load")
    model_load_timeout_seconds: Optional[float] = Field(default=30.0, gt=0, description="Timeout per model load attempt")
    model_error_policy: ModelErrorPolicy = Field(default=ModelErrorPolicy.SKIP, description="skip or abort on load failures")
    repository_dir: Optional[str] = Field(default=None, description="Maven layout directory for the POM loader")

    # Diagnostics
    graphviz_output_dir: Optional[str] = Field(default=None, description="Write Graphviz dot files here when set")

    model_config = SettingsConfigDict(
        env_prefix="DEPGRAPH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("desired_scope")
    @classmethod
    def _check_scope(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in ("compile", "provided", "runtime", "system", "test"):
            raise ValueError(f"Unsupported desired scope: {value}")
        return value

    @field_validator("conflict_tie_break")
    @classmethod
    def _check_tie_break(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in ("first", "newest"):
            raise ValueError(f"Unsupported conflict tie-break: {value}")
        return value

    def get_logging_config(self) -> dict:
        """Keyword arguments for setup_logging."""
        return {
            "log_level": self.log_level.value,
            "json_console": self.log_format == LogFormat.JSON,
            "log_dir": self.log_dir,
        }


# Global settings instance, created on first use
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get engine settings."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings() -> Settings:
    """Reload settings from environment."""
    global _settings
    _settings = Settings()
    return _settings
