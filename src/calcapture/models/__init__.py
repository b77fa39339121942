"""Data models for calcapture."""

from __future__ import annotations

from calcapture.models.event import DEFAULT_TITLE, EventRecord
from calcapture.models.settings import ProviderConfig, StoredSettings

__all__ = [
    "DEFAULT_TITLE",
    "EventRecord",
    "ProviderConfig",
    "StoredSettings",
]
