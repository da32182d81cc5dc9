"""Configuration management for the capture debug monitor.

This module provides centralized configuration management using Pydantic Settings.
Supports loading from environment variables (.env).
"""

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when there's an issue with application configuration."""

    pass


class PollingSettings(BaseModel):
    """Metrics polling configuration settings."""

    metrics_interval_ms: int = Field(
        default=500, ge=50, le=10000, description="Interval between metrics polls in milliseconds"
    )

    @property
    def metrics_interval_seconds(self) -> float:
        """Polling interval expressed in seconds for asyncio.sleep."""
        return self.metrics_interval_ms / 1000.0


class LogBufferSettings(BaseModel):
    """In-memory log buffer configuration settings."""

    capacity: int = Field(
        default=100, ge=1, le=10000, description="Maximum number of log entries kept in memory"
    )


class EngineSettings(BaseModel):
    """Local capture engine configuration settings."""

    output_dir: str = Field(
        default="debug_audio", description="Directory where debug audio files are written"
    )
    save_audio_files: bool = Field(default=True, description="Persist captured audio as WAV")
    log_audio_buffers: bool = Field(default=True, description="Emit per-buffer log entries")
    log_performance: bool = Field(default=True, description="Emit performance log entries")


class ServerSettings(BaseModel):
    """Panel API server configuration settings."""

    host: str = Field(default="127.0.0.1", description="Server bind address")
    port: int = Field(default=8765, ge=1024, le=65535, description="Server port")


class LoggingSettings(BaseModel):
    """Logging configuration settings."""

    level: str = Field(default="INFO", description="Log level")
    file_path: str | None = Field(default=None, description="Log file path (None for console)")


class Settings(BaseSettings):
    """Main application settings combining all configuration sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # Sub-settings
    polling: PollingSettings = Field(default_factory=PollingSettings)
    logs: LogBufferSettings = Field(default_factory=LogBufferSettings)
    engine: EngineSettings = Field(default_factory=EngineSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    # Global settings
    debug: bool = Field(default=False, description="Enable debug mode")


def load_config() -> Settings:
    """Factory function to load complete application configuration.

    Returns:
        Configured Settings instance

    Raises:
        ConfigurationError: If configuration cannot be loaded
    """
    try:
        return Settings()

    except Exception as e:
        raise ConfigurationError(f"Failed to load configuration: {e}") from e


# Global configuration instance (lazy-loaded)
_config: Settings | None = None


def get_config() -> Settings:
    """Get the global configuration instance (singleton pattern).

    Returns:
        Global Settings instance
    """
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config() -> None:
    """Reset global configuration instance (for testing purposes only).

    This function clears the global configuration singleton, forcing
    get_config() to reload configuration on next call. Intended for
    use in test environments to ensure test isolation.
    """
    global _config
    _config = None
