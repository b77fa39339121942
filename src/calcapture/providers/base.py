"""Shared adapter interface for OCR-by-vision and text-parse providers.

Each vendor subclass supplies three things: how to send an OCR request, how
to send a parse request, and how to reduce its response envelope to a flat
string (:meth:`ProviderAdapter.extract_text` /
:meth:`ProviderAdapter.extract_json_payload`).  Credential checks, image
encoding and logging live here so every vendor behaves the same way.
"""

from __future__ import annotations

import base64
import io
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable
from pathlib import Path
from typing import Any, Union

from PIL import Image

from calcapture.exceptions import MalformedProviderResponse, MissingCredential
from calcapture.prompts import OCR_INSTRUCTION

logger = logging.getLogger(__name__)

ImageInput = Union[Image.Image, bytes, bytearray, str, Path]

# Modes PNG can store directly; anything else (CMYK, YCbCr, ...) is converted.
_PNG_MODES = {"1", "L", "LA", "P", "RGB", "RGBA", "I", "I;16"}
# Tried in order; Pillow has no direct conversion for some modes (e.g. "La").
_FALLBACK_MODES = ("RGBA", "RGB", "L")


# ---------------------------------------------------------------------------
# Image encoding
# ---------------------------------------------------------------------------


def encode_image_png(image: ImageInput) -> bytes:
    """Encode *image* as PNG bytes.

    Args:
        image: A Pillow image, raw encoded image bytes, or a file path.

    Returns:
        Lossless PNG bytes.

    Raises:
        OSError: If the bytes or file are not a readable image
            (:class:`PIL.UnidentifiedImageError` is an ``OSError``), or the
            image mode cannot be converted to one PNG stores.
    """
    if isinstance(image, (str, Path)):
        with Image.open(image) as img:
            return _to_png(img)
    if isinstance(image, (bytes, bytearray)):
        with Image.open(io.BytesIO(image)) as img:
            return _to_png(img)
    return _to_png(image)


def png_base64(png: bytes) -> str:
    """Return *png* as a base64 string (no newlines)."""
    return base64.b64encode(png).decode("ascii")


def _to_png(img: Image.Image) -> bytes:
    if img.mode not in _PNG_MODES:
        img = _convert_for_png(img)
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


def _convert_for_png(img: Image.Image) -> Image.Image:
    for mode in _FALLBACK_MODES:
        try:
            return img.convert(mode)
        except ValueError:
            continue
    raise OSError(f"Cannot convert image mode {img.mode!r} to PNG")


# ---------------------------------------------------------------------------
# Envelope helpers
# ---------------------------------------------------------------------------


def dig(envelope: Any, path: Iterable[str | int], provider: str) -> str:
    """Walk *path* (dict keys and list indices) and return the string leaf.

    Raises:
        MalformedProviderResponse: If a key or index is missing, or the leaf
            is not a string.
    """
    node = envelope
    walked: list[str] = []
    for step in path:
        walked.append(str(step))
        try:
            node = node[step]
        except (KeyError, IndexError, TypeError) as exc:
            raise MalformedProviderResponse(
                f"Unexpected {provider} response: missing {'.'.join(walked)}",
                raw_response=repr(envelope)[:500],
                provider=provider,
            ) from exc
    if not isinstance(node, str):
        raise MalformedProviderResponse(
            f"Unexpected {provider} response: {'.'.join(walked)} is not text",
            raw_response=repr(envelope)[:500],
            provider=provider,
        )
    return node


# ---------------------------------------------------------------------------
# Adapter interface
# ---------------------------------------------------------------------------


class ProviderAdapter(ABC):
    """One vendor's implementation of the OCR and parse capabilities.

    Adapters make exactly one outbound call per invocation and never retry.

    Args:
        timeout: Per-request timeout in seconds, or ``None`` for the HTTP
            client's default.
    """

    name: str = ""
    default_ocr_model: str = ""
    default_parse_model: str = ""
    # Substrings marking model names that are not offered after a fetch.
    deprecated_tokens: tuple[str, ...] = ()

    def __init__(self, timeout: float | None = None) -> None:
        self._timeout = timeout

    # ------------------------------------------------------------------
    # Capabilities
    # ------------------------------------------------------------------

    def ocr(self, image: ImageInput, api_key: str, model: str = "") -> str:
        """Extract all text from *image*.

        Raises:
            MissingCredential: If *api_key* is empty (no request is sent).
            ProviderError: For HTTP, network, empty or malformed responses.
        """
        self._require_key(api_key)
        model = model or self.default_ocr_model
        png = encode_image_png(image)
        logger.info(
            "Sending OCR request to %s (model=%s, image=%d bytes)",
            self.name,
            model,
            len(png),
        )
        envelope = self._send_ocr(png, OCR_INSTRUCTION, api_key, model)
        text = self.extract_text(envelope)
        logger.info("OCR from %s returned %d chars", self.name, len(text))
        return text

    def parse(self, prompt: str, api_key: str, model: str = "") -> str:
        """Send the extraction *prompt* and return the JSON-bearing answer.

        Raises:
            MissingCredential: If *api_key* is empty (no request is sent).
            ProviderError: For HTTP, network, empty or malformed responses.
        """
        self._require_key(api_key)
        model = model or self.default_parse_model
        logger.info("Sending parse request to %s (model=%s)", self.name, model)
        logger.debug("Parse prompt for %s:\n%s", self.name, prompt)
        envelope = self._send_parse(prompt, api_key, model)
        payload = self.extract_json_payload(envelope)
        logger.debug("Raw parse payload from %s:\n%s", self.name, payload)
        return payload

    def fetch_models(self, api_key: str) -> list[str]:
        """Return the vendor's model identifiers with deprecated ones removed."""
        self._require_key(api_key)
        return self.filter_models(self.list_models(api_key))

    def filter_models(self, names: Iterable[str]) -> list[str]:
        """Drop names containing any of :attr:`deprecated_tokens`."""
        return [
            name
            for name in names
            if not any(token in name for token in self.deprecated_tokens)
        ]

    # ------------------------------------------------------------------
    # Vendor hooks
    # ------------------------------------------------------------------

    @abstractmethod
    def _send_ocr(self, png: bytes, instruction: str, api_key: str, model: str) -> Any:
        """Send the image and instruction; return the response envelope."""

    @abstractmethod
    def _send_parse(self, prompt: str, api_key: str, model: str) -> Any:
        """Send the prompt as the sole user turn; return the envelope."""

    @abstractmethod
    def list_models(self, api_key: str) -> list[str]:
        """Query the vendor for its model identifiers (unfiltered)."""

    @abstractmethod
    def extract_text(self, envelope: Any) -> str:
        """Reduce an OCR response envelope to plain text."""

    def extract_json_payload(self, envelope: Any) -> str:
        """Reduce a parse response envelope to its JSON-bearing text."""
        return self.extract_text(envelope)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_key(self, api_key: str) -> None:
        if not api_key or not api_key.strip():
            logger.warning("No API key configured for %s", self.name)
            raise MissingCredential(self.name)
