"""OpenAI chat-completions adapter (vision OCR and JSON-mode parsing)."""

from __future__ import annotations

import re
from typing import Any

from calcapture.exceptions import MalformedProviderResponse
from calcapture.providers.base import ProviderAdapter, dig, png_base64
from calcapture.providers.http import get_json, post_json

_CHAT_MODEL_RE = re.compile(r"^(gpt-|o\d)")


class OpenAIAdapter(ProviderAdapter):
    """Talks to ``api.openai.com`` with bearer-token auth.

    Envelope: ``choices[0].message.content``.
    """

    name = "openai"
    default_ocr_model = "gpt-4o-mini"
    default_parse_model = "gpt-4o-mini"
    deprecated_tokens = (
        "gpt-3.5",
        "instruct",
        "audio",
        "realtime",
        "tts",
        "transcribe",
        "search",
        "image",
    )

    chat_url = "https://api.openai.com/v1/chat/completions"
    models_url = "https://api.openai.com/v1/models"
    ocr_max_tokens = 2000

    def _headers(self, api_key: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

    def _send_ocr(self, png: bytes, instruction: str, api_key: str, model: str) -> Any:
        data_url = "data:image/png;base64," + png_base64(png)
        payload = {
            "model": model,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": instruction},
                        {"type": "image_url", "image_url": {"url": data_url}},
                    ],
                }
            ],
            "max_tokens": self.ocr_max_tokens,
        }
        return post_json(self.chat_url, payload, self._headers(api_key), self.name, self._timeout)

    def _send_parse(self, prompt: str, api_key: str, model: str) -> Any:
        payload = {
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
            "response_format": {"type": "json_object"},
        }
        return post_json(self.chat_url, payload, self._headers(api_key), self.name, self._timeout)

    def list_models(self, api_key: str) -> list[str]:
        body = get_json(self.models_url, self._headers(api_key), self.name, self._timeout)
        try:
            return [str(item["id"]) for item in body["data"]]
        except (KeyError, TypeError) as exc:
            raise MalformedProviderResponse(
                "Unexpected openai model list: missing data[].id",
                raw_response=repr(body)[:500],
                provider=self.name,
            ) from exc

    def filter_models(self, names: Any) -> list[str]:
        """Keep chat model families only, then drop deprecated names."""
        return super().filter_models(n for n in names if _CHAT_MODEL_RE.match(n))

    def extract_text(self, envelope: Any) -> str:
        return dig(envelope, ("choices", 0, "message", "content"), self.name)
