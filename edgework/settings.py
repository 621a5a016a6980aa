"""
Edgework Settings - Configuration management using Pydantic Settings.

Loads configuration from environment variables and .env files.
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Find project root (where .env file is located)
PROJECT_ROOT = Path(__file__).parent.parent


class EdgeworkSettings(BaseSettings):
    """
    Edgework configuration settings.

    Settings are loaded from:
    1. Environment variables (highest priority)
    2. .env file in current directory
    3. Default values (lowest priority)
    """

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_prefix="EW_",  # All Edgework env vars must start with EW_
    )

    # CDN API Configuration
    api_url: str = Field(
        default="https://cdn.api.stackit.cloud",
        description="Base URL of the CDN API (env: EW_API_URL)",
    )

    api_token: str | None = Field(
        default=None,
        description="Bearer token for the CDN API (env: EW_API_TOKEN)",
    )

    request_timeout: float = Field(
        default=30.0,
        description="Timeout in seconds for a single API request (env: EW_REQUEST_TIMEOUT)",
    )

    # Convergence Configuration
    poll_interval: float = Field(
        default=5.0,
        description="Seconds between status polls while waiting (env: EW_POLL_INTERVAL)",
    )

    create_timeout: float = Field(
        default=3600.0,
        description="Seconds to wait for a new distribution to become ACTIVE (env: EW_CREATE_TIMEOUT)",
    )

    update_timeout: float = Field(
        default=3600.0,
        description="Seconds to wait for an updated distribution to become ACTIVE (env: EW_UPDATE_TIMEOUT)",
    )

    delete_timeout: float = Field(
        default=3600.0,
        description="Seconds to wait for a deleted distribution to disappear (env: EW_DELETE_TIMEOUT)",
    )

    # State Configuration
    state_file: Path = Field(
        default=Path(".edgework") / "state.joblib",
        description="Path of the persisted state file (env: EW_STATE_FILE)",
    )

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR) (env: EW_LOG_LEVEL)",
    )


# Global settings instance
_settings: EdgeworkSettings | None = None


def get_settings() -> EdgeworkSettings:
    """
    Get the global settings instance.

    Creates the settings instance on first call, then returns cached instance.

    Returns:
        EdgeworkSettings instance
    """
    global _settings
    if _settings is None:
        _settings = EdgeworkSettings()
    return _settings


def reload_settings() -> EdgeworkSettings:
    """
    Reload settings from environment/files.

    Useful for testing or when .env file changes.

    Returns:
        Fresh EdgeworkSettings instance
    """
    global _settings
    _settings = EdgeworkSettings()
    return _settings
