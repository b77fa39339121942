"""JSON-file settings store.

Holds provider selection, API keys, selected models, the per-provider model
cache, the clock preference and the diagnostic log.  Every mutator is a
read-modify-write of the whole document followed by an atomic file replace,
so concurrent writers resolve as last-writer-wins.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Literal

from pydantic import ValidationError

from calcapture.config import ConfigError
from calcapture.models.settings import ProviderConfig, StoredSettings

logger = logging.getLogger(__name__)

Capability = Literal["ocr", "parse"]


class SettingsStore:
    """Persisted configuration backed by a single JSON file.

    Args:
        path: Location of the settings file.  Parent directories are
            created on first save.
        env_api_keys: Fallback keys per provider, used by
            :meth:`provider_config` when the file has none for a provider.
    """

    def __init__(
        self,
        path: Path,
        env_api_keys: Mapping[str, str] | None = None,
    ) -> None:
        self._path = Path(path)
        self._env_api_keys = dict(env_api_keys or {})

    @property
    def path(self) -> Path:
        return self._path

    # ------------------------------------------------------------------
    # Whole-document access
    # ------------------------------------------------------------------

    def load(self) -> StoredSettings:
        """Read the settings file; a missing file yields the defaults.

        Raises:
            ConfigError: If the file exists but cannot be read or is not a
                valid settings document.
        """
        if not self._path.exists():
            return StoredSettings()
        try:
            text = self._path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ConfigError(f"Cannot read settings file {self._path}: {exc}") from exc
        try:
            data = json.loads(text)
            return StoredSettings.model_validate(data)
        except (json.JSONDecodeError, ValidationError) as exc:
            raise ConfigError(f"Invalid settings file {self._path}: {exc}") from exc

    def save(self, stored: StoredSettings) -> None:
        """Write *stored* atomically (temp file + rename)."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self._path.parent, prefix=".settings-", suffix=".json"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(stored.model_dump_json(indent=2))
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _update(self, **changes: Any) -> StoredSettings:
        updated = self.load().model_copy(update=changes)
        self.save(updated)
        return updated

    # ------------------------------------------------------------------
    # Provider configuration
    # ------------------------------------------------------------------

    def provider_config(self) -> ProviderConfig:
        """Snapshot the current selection for one pipeline run.

        Stored keys win; environment keys fill in providers without one.
        """
        stored = self.load()
        api_keys = dict(self._env_api_keys)
        api_keys.update({name: key for name, key in stored.api_keys.items() if key})
        return ProviderConfig(
            ocr_method=stored.ocr_method,
            parse_method=stored.parse_method,
            api_keys=api_keys,
            ocr_models=dict(stored.ocr_models),
            parse_models=dict(stored.parse_models),
        )

    def save_api_key(self, provider: str, key: str) -> None:
        stored = self.load()
        self._update(api_keys={**stored.api_keys, provider: key.strip()})
        logger.info("API key saved for %s", provider)

    def save_ocr_method(self, method: str) -> None:
        self._update(ocr_method=method)
        logger.info("OCR method set to: %s", method)

    def save_parse_method(self, method: str) -> None:
        self._update(parse_method=method)
        logger.info("Parse method set to: %s", method)

    def save_model_selection(self, provider: str, capability: Capability, model: str) -> None:
        """Record the model used for *capability* (``"ocr"``/``"parse"``)."""
        stored = self.load()
        if capability == "ocr":
            self._update(ocr_models={**stored.ocr_models, provider: model})
        else:
            self._update(parse_models={**stored.parse_models, provider: model})
        logger.info("Saved %s model for %s: %s", capability.upper(), provider, model)

    # ------------------------------------------------------------------
    # Model cache
    # ------------------------------------------------------------------

    def cached_models(self, provider: str) -> list[str]:
        """Return the last fetched list for *provider* (empty if none)."""
        return list(self.load().model_cache.get(provider, []))

    def save_cached_models(self, provider: str, models: list[str]) -> None:
        """Replace the cached list for *provider* with *models*."""
        stored = self.load()
        self._update(model_cache={**stored.model_cache, provider: list(models)})

    # ------------------------------------------------------------------
    # Display preference and diagnostic log
    # ------------------------------------------------------------------

    def use_24_hour(self) -> bool:
        return self.load().use_24_hour

    def set_24_hour(self, enabled: bool) -> None:
        self._update(use_24_hour=enabled)

    def diagnostic_log(self) -> list[str]:
        """Return persisted log lines, newest first."""
        return list(self.load().diagnostic_log)

    def save_diagnostic_log(self, entries: list[str]) -> None:
        self._update(diagnostic_log=list(entries))

    def clear_diagnostic_log(self) -> None:
        self._update(diagnostic_log=[])
