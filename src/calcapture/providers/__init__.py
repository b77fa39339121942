"""Provider adapters, one per vendor, each offering OCR and parse."""

from __future__ import annotations

from calcapture.providers.base import (
    ImageInput,
    ProviderAdapter,
    encode_image_png,
    png_base64,
)
from calcapture.providers.claude import ClaudeAdapter
from calcapture.providers.gemini import GeminiAdapter
from calcapture.providers.openai import OpenAIAdapter


def default_adapters(timeout: float | None = None) -> dict[str, ProviderAdapter]:
    """Return a fresh provider-name -> adapter mapping."""
    adapters: list[ProviderAdapter] = [
        OpenAIAdapter(timeout),
        GeminiAdapter(timeout),
        ClaudeAdapter(timeout),
    ]
    return {adapter.name: adapter for adapter in adapters}


__all__ = [
    "ClaudeAdapter",
    "GeminiAdapter",
    "ImageInput",
    "OpenAIAdapter",
    "ProviderAdapter",
    "default_adapters",
    "encode_image_png",
    "png_base64",
]
