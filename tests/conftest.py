"""Shared fixtures for calcapture tests."""

from __future__ import annotations

import logging
from collections.abc import Generator
from pathlib import Path

import pytest

from calcapture.settings_store import SettingsStore

_ENV_VARS = (
    "CALCAPTURE_SETTINGS_FILE",
    "LOG_LEVEL",
    "TIMEZONE",
    "REQUEST_TIMEOUT",
    "OPENAI_API_KEY",
    "GEMINI_API_KEY",
    "ANTHROPIC_API_KEY",
)


@pytest.fixture()
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    """Remove all calcapture-related environment variables.

    Patches ``load_dotenv`` so a real ``.env`` file cannot re-inject values,
    and points the settings file into *tmp_path*.  Returns that path.
    """
    monkeypatch.setattr("calcapture.config.load_dotenv", lambda *_a, **_kw: None)
    for key in _ENV_VARS:
        monkeypatch.delenv(key, raising=False)
    settings_file = tmp_path / "settings.json"
    monkeypatch.setenv("CALCAPTURE_SETTINGS_FILE", str(settings_file))
    return settings_file


@pytest.fixture()
def monkeypatch_env(clean_env: Path, monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set a fallback Gemini key and a fixed timezone on top of ``clean_env``.

    Returns the dict of variables so tests can inspect or override values.
    """
    env_vars = {
        "CALCAPTURE_SETTINGS_FILE": str(clean_env),
        "GEMINI_API_KEY": "test-gemini-key-12345",
        "TIMEZONE": "America/Vancouver",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    return env_vars


@pytest.fixture()
def store(tmp_path: Path) -> SettingsStore:
    """A settings store backed by a file in *tmp_path*."""
    return SettingsStore(tmp_path / "settings.json")


@pytest.fixture(autouse=True)
def _reset_loggers() -> Generator[None, None, None]:
    """Reset the root and package loggers after each test."""
    root = logging.getLogger()
    package = logging.getLogger("calcapture")
    original_handlers = root.handlers[:]
    original_level = root.level
    package_handlers = package.handlers[:]
    package_level = package.level
    yield
    root.handlers = original_handlers
    root.setLevel(original_level)
    package.handlers = package_handlers
    package.setLevel(package_level)
