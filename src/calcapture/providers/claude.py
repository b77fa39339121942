"""Anthropic messages adapter.

The messages API has no strict-JSON switch, so answers are often wrapped in
fences or ``<json>`` tags; :meth:`ClaudeAdapter.extract_json_payload` strips
them before handing the payload on.
"""

from __future__ import annotations

from typing import Any

from calcapture.exceptions import MalformedProviderResponse
from calcapture.normalizer import strip_json_wrapping
from calcapture.providers.base import ProviderAdapter, dig, png_base64
from calcapture.providers.http import get_json, post_json

ANTHROPIC_VERSION = "2023-06-01"


class ClaudeAdapter(ProviderAdapter):
    """Talks to ``api.anthropic.com``.  Envelope: ``content[0].text``."""

    name = "claude"
    default_ocr_model = "claude-3-haiku-20240307"
    default_parse_model = "claude-3-haiku-20240307"
    deprecated_tokens = ("claude-2", "claude-instant")

    messages_url = "https://api.anthropic.com/v1/messages"
    models_url = "https://api.anthropic.com/v1/models"
    ocr_max_tokens = 2000
    parse_max_tokens = 1024

    def _headers(self, api_key: str) -> dict[str, str]:
        return {
            "x-api-key": api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "Content-Type": "application/json",
        }

    def _send_ocr(self, png: bytes, instruction: str, api_key: str, model: str) -> Any:
        payload = {
            "model": model,
            "max_tokens": self.ocr_max_tokens,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "image",
                            "source": {
                                "type": "base64",
                                "media_type": "image/png",
                                "data": png_base64(png),
                            },
                        },
                        {"type": "text", "text": instruction},
                    ],
                }
            ],
        }
        return post_json(self.messages_url, payload, self._headers(api_key), self.name, self._timeout)

    def _send_parse(self, prompt: str, api_key: str, model: str) -> Any:
        payload = {
            "model": model,
            "max_tokens": self.parse_max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        return post_json(self.messages_url, payload, self._headers(api_key), self.name, self._timeout)

    def list_models(self, api_key: str) -> list[str]:
        body = get_json(
            self.models_url,
            self._headers(api_key),
            self.name,
            self._timeout,
            params={"limit": 100},
        )
        try:
            return [str(item["id"]) for item in body["data"]]
        except (KeyError, TypeError) as exc:
            raise MalformedProviderResponse(
                "Unexpected claude model list: missing data[].id",
                raw_response=repr(body)[:500],
                provider=self.name,
            ) from exc

    def extract_text(self, envelope: Any) -> str:
        return dig(envelope, ("content", 0, "text"), self.name)

    def extract_json_payload(self, envelope: Any) -> str:
        return strip_json_wrapping(self.extract_text(envelope))
