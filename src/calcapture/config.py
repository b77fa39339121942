"""Configuration loading for calcapture.

Reads settings from environment variables (with .env support via
python-dotenv).  Provider selection, stored keys and models live in the
settings file (see :mod:`calcapture.settings_store`); the environment only
says where that file is and supplies fallback API keys.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

DEFAULT_SETTINGS_FILE = Path.home() / ".calcapture" / "settings.json"
DEFAULT_REQUEST_TIMEOUT = 60.0

# Provider name -> environment variable holding a fallback API key.
ENV_API_KEYS = {
    "openai": "OPENAI_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "claude": "ANTHROPIC_API_KEY",
}


class ConfigError(Exception):
    """Raised when configuration is missing or invalid."""


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment variables.

    Attributes:
        settings_file: Path of the JSON settings store.
        log_level: Logging level (default ``"INFO"``).
        timezone: IANA timezone name, or ``None`` for the system zone.
        request_timeout: Per-request HTTP timeout in seconds.
        env_api_keys: Fallback API keys per provider, from the environment.
    """

    settings_file: Path = DEFAULT_SETTINGS_FILE
    log_level: str = "INFO"
    timezone: str | None = None
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    env_api_keys: dict[str, str] = field(default_factory=dict)

    def __repr__(self) -> str:
        keys = {name: "***" for name in self.env_api_keys}
        return (
            f"Settings(settings_file={str(self.settings_file)!r}, "
            f"log_level={self.log_level!r}, "
            f"timezone={self.timezone!r}, "
            f"request_timeout={self.request_timeout!r}, "
            f"env_api_keys={keys!r})"
        )


def load_settings() -> Settings:
    """Load and validate settings from environment variables.

    Calls :func:`dotenv.load_dotenv` so a ``.env`` file in the working
    directory is picked up automatically.

    Returns:
        A validated :class:`Settings` instance.

    Raises:
        ConfigError: If ``TIMEZONE`` is not a known IANA zone or
            ``REQUEST_TIMEOUT`` is not a positive number.
    """
    load_dotenv()

    values: dict[str, object] = {}

    settings_file = os.environ.get("CALCAPTURE_SETTINGS_FILE", "").strip()
    if settings_file:
        values["settings_file"] = Path(settings_file).expanduser()

    log_level = os.environ.get("LOG_LEVEL", "").strip()
    if log_level:
        values["log_level"] = log_level

    timezone = os.environ.get("TIMEZONE", "").strip()
    if timezone:
        try:
            ZoneInfo(timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ConfigError(f"Unknown TIMEZONE: {timezone!r}") from exc
        values["timezone"] = timezone

    timeout = os.environ.get("REQUEST_TIMEOUT", "").strip()
    if timeout:
        try:
            seconds = float(timeout)
        except ValueError as exc:
            raise ConfigError(f"REQUEST_TIMEOUT must be a number: {timeout!r}") from exc
        if seconds <= 0:
            raise ConfigError(f"REQUEST_TIMEOUT must be positive: {timeout!r}")
        values["request_timeout"] = seconds

    env_keys = {}
    for provider, env_var in ENV_API_KEYS.items():
        key = os.environ.get(env_var, "").strip()
        if key:
            env_keys[provider] = key
    values["env_api_keys"] = env_keys

    return Settings(**values)  # type: ignore[arg-type]


def current_datetime(settings: Settings) -> datetime:
    """Return "now" as a naive local date-time in the configured zone."""
    if settings.timezone:
        return datetime.now(ZoneInfo(settings.timezone)).replace(tzinfo=None)
    return datetime.now()


def timezone_label(settings: Settings) -> str:
    """Return the name of the configured zone, or the system zone's name."""
    if settings.timezone:
        return settings.timezone
    return datetime.now().astimezone().tzname() or "local time"
