"""
Configuration settings for the Moodle client.

The client itself never reads the environment. Host applications that
want environment-based configuration load MoodleSettings and pass it to
MoodleClient.from_settings() or moodle_client.init(settings=...).
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import DEFAULT_SERVICE


class MoodleSettings(BaseSettings):
    """
    Connection settings for a Moodle site.

    Settings are loaded from environment variables with MOODLE_ prefix.
    Example: MOODLE_WWWROOT, MOODLE_TOKEN, MOODLE_SERVICE, etc.
    """

    model_config = SettingsConfigDict(
        env_prefix="MOODLE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Site
    wwwroot: Optional[str] = Field(
        default=None,
        description="Moodle site URL, e.g. https://moodle.example.com"
    )
    service: str = Field(
        default=DEFAULT_SERVICE,
        description="Web service to request tokens for"
    )

    # Credentials (token takes precedence)
    token: Optional[str] = Field(
        default=None,
        description="Pre-issued web service token"
    )
    username: Optional[str] = Field(
        default=None,
        description="Username for the token exchange"
    )
    password: Optional[str] = Field(
        default=None,
        description="Password for the token exchange"
    )

    # HTTP client settings
    verify: bool = Field(
        default=True,
        description="Verify TLS certificates"
    )
    timeout: float = Field(
        default=30.0,
        description="HTTP request timeout in seconds"
    )


# Singleton instance
_settings: Optional[MoodleSettings] = None


@lru_cache
def _load_settings() -> MoodleSettings:
    return MoodleSettings()


def get_settings() -> MoodleSettings:
    """
    Get Moodle settings singleton.

    Returns the settings set by configure_settings(), or loads them from
    the environment once.
    """
    if _settings is not None:
        return _settings
    return _load_settings()


def configure_settings(
    wwwroot: Optional[str] = None,
    token: Optional[str] = None,
    username: Optional[str] = None,
    password: Optional[str] = None,
    **kwargs,
) -> MoodleSettings:
    """
    Configure Moodle settings programmatically.

    This allows overriding environment variables for testing
    or when settings come from a different source.

    Args:
        wwwroot: Moodle site URL
        token: Web service token
        username: Username for the token exchange
        password: Password for the token exchange
        **kwargs: Additional settings

    Returns:
        Configured MoodleSettings instance
    """
    global _settings

    # Build settings dict, filtering None values
    settings_dict = {
        k: v for k, v in {
            "wwwroot": wwwroot,
            "token": token,
            "username": username,
            "password": password,
            **kwargs,
        }.items() if v is not None
    }

    _settings = MoodleSettings(**settings_dict)
    return _settings


def reset_settings() -> None:
    """Forget configured settings and the cached environment load."""
    global _settings
    _settings = None
    _load_settings.cache_clear()
