"""
FeedPress Configuration System
==============================

Process-level settings (HTTP limits, wiki credentials, storage and logging)
loaded from environment variables with Pydantic models. Environment
variables override Field defaults.

The operator-curated feed list and topic routes are *not* settings; they
live in the stored ``AppConfig`` aggregate managed by ``ConfigRepository``.
"""

from pathlib import Path
from typing import Optional
from enum import Enum

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings

from ..utils.exceptions import ConfigurationError, ErrorCode


class LogLevel(str, Enum):
    """Available log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class FetchSettings(BaseModel):
    """Feed transport limits."""
    request_timeout: int = Field(default=10, ge=1, le=300, description="Per-feed fetch timeout in seconds")
    max_redirects: int = Field(default=5, ge=0, le=20, description="Maximum HTTP redirects per feed")
    parallel_feeds: int = Field(default=10, ge=1, le=100, description="Concurrent feed fetches")
    user_agent: str = Field(default="FeedPress/1.0 (+https://github.com/feedpress/feedpress)")


class WikiSettings(BaseModel):
    """Confluence connection settings."""
    base_url: str = Field(default="", description="Site URL, e.g. https://example.atlassian.net")
    username: Optional[str] = Field(default=None, description="Account e-mail for basic auth")
    api_token: Optional[str] = Field(default=None, description="API token for basic auth")
    request_timeout: int = Field(default=30, ge=5, le=300, description="Wiki request timeout in seconds")

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v):
        return v.rstrip("/")

    def has_credentials(self) -> bool:
        return bool(self.base_url and self.username and self.api_token)


class StorageSettings(BaseModel):
    """Key-value store configuration."""
    path: str = Field(default="data/feedpress.db", description="SQLite store file path")


class LoggingSettings(BaseModel):
    """Logging configuration."""
    level: LogLevel = Field(default=LogLevel.INFO, description="Global log level")
    file_path: Optional[str] = Field(default="logs/feedpress.log", description="Log file path")
    max_file_size_mb: int = Field(default=10, ge=1, le=100, description="Max log file size in MB")
    backup_count: int = Field(default=5, ge=1, le=20, description="Number of log backup files")
    structured_logging: bool = Field(default=False, description="Use structured JSON logging")
    console_logging: bool = Field(default=True, description="Enable console logging")


class FeedPressSettings(BaseSettings):
    """Main application settings."""

    fetch: FetchSettings = Field(default_factory=FetchSettings)
    wiki: WikiSettings = Field(default_factory=WikiSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    app_name: str = Field(default="FeedPress", description="Application name")
    version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Enable debug mode")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "env_nested_delimiter": "__",
        "env_prefix": "FEEDPRESS_",
        "extra": "ignore",
    }

    def validate_configuration(self) -> None:
        """Validate complete configuration.

        Raises:
            ConfigurationError: Listing every problem found
        """
        errors = []

        if not self.wiki.has_credentials():
            errors.append("Missing wiki base_url, username or api_token")

        try:
            Path(self.storage.path).parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            errors.append(f"Invalid storage path: {e}")

        if self.logging.file_path:
            try:
                Path(self.logging.file_path).parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                errors.append(f"Invalid log file path: {e}")

        if errors:
            raise ConfigurationError(
                f"Configuration validation failed: {'; '.join(errors)}",
                error_code=ErrorCode.CONFIG_INVALID,
            )

    def get_effective_log_level(self) -> str:
        """Get effective log level considering debug mode."""
        if self.debug:
            return "DEBUG"
        return self.logging.level.value


def load_settings() -> FeedPressSettings:
    """Load settings from environment variables, ``.env`` and defaults.

    Raises:
        ConfigurationError: If a value fails validation
    """
    from dotenv import load_dotenv
    load_dotenv()

    try:
        return FeedPressSettings()
    except Exception as e:
        raise ConfigurationError(
            f"Failed to initialize settings: {e}",
            error_code=ErrorCode.CONFIG_PARSE_ERROR,
        ) from e


_settings: Optional[FeedPressSettings] = None


def get_settings(reload: bool = False) -> FeedPressSettings:
    """Get the process-wide settings instance.

    Args:
        reload: Force reload of settings

    Returns:
        Cached settings instance
    """
    global _settings

    if _settings is None or reload:
        _settings = load_settings()

    return _settings
