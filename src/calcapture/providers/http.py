"""Thin ``requests`` wrapper shared by the REST-based adapters.

Maps transport and status failures onto the pipeline's error taxonomy.  One
attempt per call; no retries.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import requests

from calcapture.exceptions import (
    EmptyResponse,
    MalformedProviderResponse,
    ProviderHttpError,
    ProviderNetworkError,
)

logger = logging.getLogger(__name__)

BODY_EXCERPT_LEN = 500


def post_json(
    url: str,
    payload: dict[str, Any],
    headers: dict[str, str],
    provider: str,
    timeout: float | None = None,
) -> Any:
    """POST *payload* as JSON and return the decoded response body."""
    return _request("POST", url, provider, timeout, headers=headers, json=payload)


def get_json(
    url: str,
    headers: dict[str, str],
    provider: str,
    timeout: float | None = None,
    params: dict[str, Any] | None = None,
) -> Any:
    """GET *url* and return the decoded response body."""
    return _request("GET", url, provider, timeout, headers=headers, params=params)


def _request(
    method: str,
    url: str,
    provider: str,
    timeout: float | None,
    **kwargs: Any,
) -> Any:
    """Send one request and decode its JSON body.

    Raises:
        ProviderNetworkError: If no HTTP response was received.
        ProviderHttpError: On a non-2xx status.
        EmptyResponse: On a 2xx status with an empty body.
        MalformedProviderResponse: If the body is not JSON.
    """
    try:
        response = requests.request(method, url, timeout=timeout, **kwargs)
    except requests.RequestException as exc:
        logger.error("%s request failed: %s", provider, exc)
        raise ProviderNetworkError(
            f"{provider} request failed: {exc}", provider=provider
        ) from exc

    logger.debug("%s responded with HTTP %d", provider, response.status_code)

    if not response.ok:
        excerpt = (response.text or "")[:BODY_EXCERPT_LEN]
        logger.error(
            "%s API error %d %s: %s",
            provider,
            response.status_code,
            response.reason,
            excerpt,
        )
        raise ProviderHttpError(
            response.status_code,
            response.reason or "",
            excerpt,
            provider=provider,
        )

    body = response.text
    if not body or not body.strip():
        raise EmptyResponse(provider=provider)

    try:
        return json.loads(body)
    except json.JSONDecodeError as exc:
        raise MalformedProviderResponse(
            f"{provider} response is not JSON: {exc}",
            raw_response=body[:BODY_EXCERPT_LEN],
            provider=provider,
        ) from exc
