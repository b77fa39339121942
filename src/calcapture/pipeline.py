"""Pipeline orchestrator for the image/text-to-event workflow.

Resolves a method identifier to a provider adapter, threads the configured
key and model into it, and hands parse answers to the normalizer.  The
orchestrator keeps no state between calls, never retries, and lets every
adapter and normalizer error propagate unchanged.

Blocking calls have ``*_async`` twins that run on a worker thread so an
event loop stays responsive; wrap them in :func:`asyncio.create_task` for a
cancellable handle.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime

from calcapture.exceptions import MissingCredential, UnsupportedMethod
from calcapture.models.event import EventRecord
from calcapture.models.settings import ProviderConfig
from calcapture.normalizer import normalize_event
from calcapture.prompts import build_parse_prompt
from calcapture.providers import ImageInput, ProviderAdapter, default_adapters

logger = logging.getLogger(__name__)

# Method identifier -> provider name.
OCR_METHODS: dict[str, str] = {
    "openai-vision": "openai",
    "gemini-vision": "gemini",
    "claude-vision": "claude",
}
PARSE_METHODS: dict[str, str] = {
    "openai": "openai",
    "gemini": "gemini",
    "claude": "claude",
}


@dataclass(frozen=True)
class CaptureResult:
    """Outcome of an OCR-then-parse run.

    Attributes:
        text: Text recognised in the image (kept so the caller can let the
            user edit it and reprocess).
        event: The parsed event, or ``None`` when OCR found no text.
    """

    text: str
    event: EventRecord | None = None


class Orchestrator:
    """Dispatch OCR and parse operations to provider adapters.

    Args:
        adapters: Provider-name -> adapter mapping.  Defaults to
            :func:`~calcapture.providers.default_adapters`.
        clock: Returns the caller's current local date-time; read once per
            parse call.  Defaults to :meth:`datetime.now`.
        timezone_label: Timezone name stated in the parse prompt.
    """

    def __init__(
        self,
        adapters: Mapping[str, ProviderAdapter] | None = None,
        clock: Callable[[], datetime] | None = None,
        timezone_label: str = "local time",
    ) -> None:
        self._adapters = dict(adapters) if adapters is not None else default_adapters()
        self._clock = clock or datetime.now
        self._timezone_label = timezone_label

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def perform_ocr(self, method: str, image: ImageInput, config: ProviderConfig) -> str:
        """Extract the text in *image* with the OCR *method*.

        Raises:
            UnsupportedMethod: If *method* is unknown (no network call).
            MissingCredential: If the provider has no key (no network call).
            ProviderError: If the provider call fails.
        """
        adapter = self._resolve(method, OCR_METHODS, "OCR provider")
        api_key = self._require_key(adapter, config)
        model = config.ocr_model(adapter.name, adapter.default_ocr_model)

        logger.info("Starting OCR with %s", method)
        text = adapter.ocr(image, api_key, model)
        logger.info("OCR extracted %d chars", len(text))
        return text

    def perform_parse(
        self,
        method: str,
        text: str,
        config: ProviderConfig,
        collapse_location: bool = True,
    ) -> EventRecord:
        """Parse *text* into an event with the parse *method*.

        Args:
            method: Parse method identifier (e.g. ``"gemini"``).
            text: OCR output or user-supplied text.
            config: Provider configuration snapshot for this run.
            collapse_location: Join a two-line location with ``", "``.

        Returns:
            The normalized event.  ``start``/``end`` may both be ``None``.

        Raises:
            UnsupportedMethod: If *method* is unknown (no network call).
            MissingCredential: If the provider has no key (no network call).
            ProviderError: If the provider call fails.
            MalformedEventJson: If the answer is not an event JSON object.
        """
        adapter = self._resolve(method, PARSE_METHODS, "parse provider")
        api_key = self._require_key(adapter, config)
        model = config.parse_model(adapter.name, adapter.default_parse_model)

        logger.info("Parsing text (%d chars) with %s", len(text), method)
        prompt = build_parse_prompt(text, self._clock(), self._timezone_label)
        payload = adapter.parse(prompt, api_key, model)
        event = normalize_event(payload, collapse_location_lines=collapse_location)

        if event.has_dates:
            logger.info("Parsed: %s on %s", event.title, event.start)
        else:
            logger.info("Parsed: %s (no date found)", event.title)
        return event

    def capture(self, image: ImageInput, config: ProviderConfig) -> CaptureResult:
        """OCR *image* with the configured method, then parse the text.

        An image without text is not an error: the result carries the empty
        text and no event.
        """
        text = self.perform_ocr(config.ocr_method, image, config)
        if not text.strip():
            logger.warning("OCR returned empty text")
            return CaptureResult(text=text)
        event = self.perform_parse(config.parse_method, text, config)
        return CaptureResult(text=text, event=event)

    def reprocess(self, text: str, config: ProviderConfig) -> EventRecord:
        """Parse user-edited *text* with the configured parse method."""
        event = self.perform_parse(config.parse_method, text, config)
        logger.info("Reprocessed text successfully")
        return event

    # ------------------------------------------------------------------
    # Async wrappers
    # ------------------------------------------------------------------

    async def perform_ocr_async(
        self, method: str, image: ImageInput, config: ProviderConfig
    ) -> str:
        return await asyncio.to_thread(self.perform_ocr, method, image, config)

    async def perform_parse_async(
        self,
        method: str,
        text: str,
        config: ProviderConfig,
        collapse_location: bool = True,
    ) -> EventRecord:
        return await asyncio.to_thread(
            self.perform_parse, method, text, config, collapse_location
        )

    async def capture_async(self, image: ImageInput, config: ProviderConfig) -> CaptureResult:
        return await asyncio.to_thread(self.capture, image, config)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _resolve(self, method: str, table: Mapping[str, str], kind: str) -> ProviderAdapter:
        provider = table.get(method)
        adapter = self._adapters.get(provider) if provider else None
        if adapter is None:
            logger.error("Unknown %s: %s", kind, method)
            raise UnsupportedMethod(method, kind=kind)
        return adapter

    @staticmethod
    def _require_key(adapter: ProviderAdapter, config: ProviderConfig) -> str:
        api_key = config.api_key(adapter.name)
        if not api_key:
            logger.error("%s API key is missing", adapter.name)
            raise MissingCredential(adapter.name)
        return api_key


# ---------------------------------------------------------------------------
# Module-level convenience
# ---------------------------------------------------------------------------


def perform_ocr(method: str, image: ImageInput, config: ProviderConfig) -> str:
    """Run :meth:`Orchestrator.perform_ocr` on a default orchestrator."""
    return Orchestrator().perform_ocr(method, image, config)


def perform_parse(method: str, text: str, config: ProviderConfig) -> EventRecord:
    """Run :meth:`Orchestrator.perform_parse` on a default orchestrator."""
    return Orchestrator().perform_parse(method, text, config)
