"""Gemini adapter built on the ``google-genai`` SDK.

The SDK handles transport and base64 encoding of inline image parts; this
module maps its exceptions onto the pipeline taxonomy and unwraps the
``candidates[0].content.parts[0].text`` envelope.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types

from calcapture.exceptions import (
    EmptyResponse,
    MalformedProviderResponse,
    ProviderHttpError,
    ProviderNetworkError,
)
from calcapture.providers.base import ProviderAdapter
from calcapture.providers.http import BODY_EXCERPT_LEN

logger = logging.getLogger(__name__)

_MODEL_PREFIX = "models/"


class GeminiAdapter(ProviderAdapter):
    """Calls ``generate_content`` on the Gemini developer API."""

    name = "gemini"
    default_ocr_model = "gemini-2.0-flash"
    default_parse_model = "gemini-2.0-flash"
    deprecated_tokens = ("1.0", "1.5", "pro-vision")

    def _client(self, api_key: str) -> genai.Client:
        http_options = None
        if self._timeout:
            # HttpOptions.timeout is in milliseconds.
            http_options = genai_types.HttpOptions(timeout=int(self._timeout * 1000))
        return genai.Client(api_key=api_key, http_options=http_options)

    def _send_ocr(self, png: bytes, instruction: str, api_key: str, model: str) -> Any:
        contents = [
            instruction,
            genai_types.Part.from_bytes(data=png, mime_type="image/png"),
        ]
        return self._generate(api_key, model, contents)

    def _send_parse(self, prompt: str, api_key: str, model: str) -> Any:
        config = genai_types.GenerateContentConfig(
            response_mime_type="application/json",
        )
        return self._generate(api_key, model, prompt, config)

    def list_models(self, api_key: str) -> list[str]:
        client = self._client(api_key)
        names: list[str] = []
        try:
            for model in client.models.list():
                actions = getattr(model, "supported_actions", None) or []
                if actions and "generateContent" not in actions:
                    continue
                name = model.name or ""
                if name.startswith(_MODEL_PREFIX):
                    name = name[len(_MODEL_PREFIX):]
                if name:
                    names.append(name)
        except genai_errors.APIError as exc:
            raise self._http_error(exc) from exc
        except httpx.HTTPError as exc:
            raise ProviderNetworkError(
                f"gemini request failed: {exc}", provider=self.name
            ) from exc
        return names

    def extract_text(self, envelope: Any) -> str:
        if envelope is None:
            raise EmptyResponse(provider=self.name)
        try:
            text = envelope.candidates[0].content.parts[0].text
        except (AttributeError, IndexError, TypeError) as exc:
            raise MalformedProviderResponse(
                "Unexpected gemini response: missing candidates[0].content.parts[0].text",
                raw_response=repr(envelope)[:BODY_EXCERPT_LEN],
                provider=self.name,
            ) from exc
        if not isinstance(text, str):
            raise MalformedProviderResponse(
                "Unexpected gemini response: first part carries no text",
                raw_response=repr(envelope)[:BODY_EXCERPT_LEN],
                provider=self.name,
            )
        return text

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _generate(
        self,
        api_key: str,
        model: str,
        contents: Any,
        config: genai_types.GenerateContentConfig | None = None,
    ) -> Any:
        client = self._client(api_key)
        try:
            return client.models.generate_content(
                model=model,
                contents=contents,
                config=config,
            )
        except genai_errors.APIError as exc:
            logger.error("Gemini API error: %s", exc)
            raise self._http_error(exc) from exc
        except httpx.HTTPError as exc:
            logger.error("Gemini request failed: %s", exc)
            raise ProviderNetworkError(
                f"gemini request failed: {exc}", provider=self.name
            ) from exc

    def _http_error(self, exc: genai_errors.APIError) -> ProviderHttpError:
        details = exc.details if exc.details is not None else ""
        return ProviderHttpError(
            exc.code,
            exc.message or exc.status or "",
            str(details)[:BODY_EXCERPT_LEN],
            provider=self.name,
        )
