"""Pydantic models for persisted provider configuration.

- :class:`StoredSettings` -- the full document kept by the settings store.
- :class:`ProviderConfig` -- the immutable per-run snapshot the
  orchestrator threads into adapters.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_OCR_METHOD = "gemini-vision"
DEFAULT_PARSE_METHOD = "gemini"


class ProviderConfig(BaseModel):
    """Provider selection, keys and models for a single pipeline run.

    Attributes:
        ocr_method: Selected OCR method (e.g. ``"gemini-vision"``).
        parse_method: Selected parse method (e.g. ``"openai"``).
        api_keys: API key per provider name.
        ocr_models: Selected OCR model per provider name.
        parse_models: Selected parse model per provider name.
    """

    model_config = ConfigDict(frozen=True)

    ocr_method: str = DEFAULT_OCR_METHOD
    parse_method: str = DEFAULT_PARSE_METHOD
    api_keys: dict[str, str] = Field(default_factory=dict)
    ocr_models: dict[str, str] = Field(default_factory=dict)
    parse_models: dict[str, str] = Field(default_factory=dict)

    def api_key(self, provider: str) -> str:
        """Return the key for *provider*, or ``""`` when none is configured."""
        return self.api_keys.get(provider, "").strip()

    def ocr_model(self, provider: str, default: str = "") -> str:
        """Return the selected OCR model for *provider*, else *default*."""
        return self.ocr_models.get(provider) or default

    def parse_model(self, provider: str, default: str = "") -> str:
        """Return the selected parse model for *provider*, else *default*."""
        return self.parse_models.get(provider) or default

    def __repr__(self) -> str:
        keys = {name: "***" for name, key in self.api_keys.items() if key}
        return (
            f"ProviderConfig(ocr_method={self.ocr_method!r}, "
            f"parse_method={self.parse_method!r}, api_keys={keys!r}, "
            f"ocr_models={self.ocr_models!r}, parse_models={self.parse_models!r})"
        )


class StoredSettings(BaseModel):
    """Everything the settings store persists.

    Attributes:
        ocr_method: Selected OCR method.
        parse_method: Selected parse method.
        api_keys: API key per provider.
        ocr_models: Selected OCR model per provider.
        parse_models: Selected parse model per provider.
        model_cache: Last successfully fetched model list per provider.
        use_24_hour: Render times on a 24-hour clock.
        diagnostic_log: Log lines, newest first.
    """

    ocr_method: str = DEFAULT_OCR_METHOD
    parse_method: str = DEFAULT_PARSE_METHOD
    api_keys: dict[str, str] = Field(default_factory=dict)
    ocr_models: dict[str, str] = Field(default_factory=dict)
    parse_models: dict[str, str] = Field(default_factory=dict)
    model_cache: dict[str, list[str]] = Field(default_factory=dict)
    use_24_hour: bool = False
    diagnostic_log: list[str] = Field(default_factory=list)
