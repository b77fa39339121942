"""calcapture: photographed or pasted text to calendar events.

Extracts a structured calendar event from an image (via a vision model OCR
step) or from free-form text, using interchangeable OpenAI, Gemini and
Claude providers.
"""

from __future__ import annotations

from calcapture.catalog import ModelCatalog
from calcapture.exceptions import (
    EmptyResponse,
    MalformedEventJson,
    MalformedProviderResponse,
    MissingCredential,
    PipelineError,
    ProviderError,
    ProviderHttpError,
    ProviderNetworkError,
    UnsupportedMethod,
)
from calcapture.models.event import EventRecord
from calcapture.models.settings import ProviderConfig
from calcapture.normalizer import normalize_event, strip_json_wrapping
from calcapture.pipeline import CaptureResult, Orchestrator, perform_ocr, perform_parse
from calcapture.prompts import OCR_INSTRUCTION, build_parse_prompt
from calcapture.settings_store import SettingsStore

__version__ = "0.1.0"

__all__ = [
    "CaptureResult",
    "EmptyResponse",
    "EventRecord",
    "MalformedEventJson",
    "MalformedProviderResponse",
    "MissingCredential",
    "ModelCatalog",
    "OCR_INSTRUCTION",
    "Orchestrator",
    "PipelineError",
    "ProviderConfig",
    "ProviderError",
    "ProviderHttpError",
    "ProviderNetworkError",
    "SettingsStore",
    "UnsupportedMethod",
    "build_parse_prompt",
    "normalize_event",
    "perform_ocr",
    "perform_parse",
    "strip_json_wrapping",
]
