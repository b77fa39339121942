"""Custom exceptions for the calcapture extraction pipeline.

Every failure the pipeline can surface is a :class:`PipelineError` so callers
can catch one base class and still branch on the concrete kind.

Exception hierarchy::

    PipelineError
    +-- MissingCredential         (no API key for the selected provider)
    +-- UnsupportedMethod         (unknown method or provider identifier)
    +-- ProviderError             (base for failures talking to a vendor)
    |   +-- ProviderHttpError     (non-2xx HTTP status)
    |   +-- ProviderNetworkError  (connection, DNS, timeout)
    |   +-- EmptyResponse         (2xx with an empty body)
    |   +-- MalformedProviderResponse (unexpected envelope shape)
    +-- MalformedEventJson        (payload is not an event JSON object)

None of these are retried automatically.  A result whose ``start`` and
``end`` are both ``None`` is *not* an error.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for all classified pipeline failures."""


class MissingCredential(PipelineError):
    """Raised when no API key is configured for the selected provider.

    Always raised before any network call is attempted.

    Attributes:
        provider: Provider name (e.g. ``"openai"``).
    """

    def __init__(self, provider: str) -> None:
        super().__init__(f"{provider} API key is missing")
        self.provider = provider


class UnsupportedMethod(PipelineError):
    """Raised for an unrecognised OCR/parse method or provider identifier.

    Attributes:
        method: The identifier that could not be resolved.
    """

    def __init__(self, method: str, kind: str = "method") -> None:
        super().__init__(f"Unknown {kind}: {method!r}")
        self.method = method


class ProviderError(PipelineError):
    """Base class for failures while talking to a provider.

    Attributes:
        provider: Provider name the failing call was addressed to.
    """

    def __init__(self, message: str, provider: str = "") -> None:
        super().__init__(message)
        self.provider = provider


class ProviderHttpError(ProviderError):
    """Raised when a provider answers with a non-success HTTP status.

    Attributes:
        code: HTTP status code.
        message: Reason phrase or provider error message.
        body_excerpt: Leading part of the response body, for diagnostics.
    """

    def __init__(
        self,
        code: int,
        message: str = "",
        body_excerpt: str = "",
        provider: str = "",
    ) -> None:
        super().__init__(f"API Error: {code} - {message}", provider=provider)
        self.code = code
        self.message = message
        self.body_excerpt = body_excerpt


class ProviderNetworkError(ProviderError):
    """Raised when the request never produced an HTTP response."""


class EmptyResponse(ProviderError):
    """Raised when a provider returns a success status with an empty body."""

    def __init__(self, provider: str = "") -> None:
        super().__init__("Empty response body", provider=provider)


class MalformedProviderResponse(ProviderError):
    """Raised when the response envelope lacks the expected keys or indices.

    Attributes:
        raw_response: The raw body (or a repr of the SDK object).
    """

    def __init__(self, message: str, raw_response: str = "", provider: str = "") -> None:
        super().__init__(message, provider=provider)
        self.raw_response = raw_response


class MalformedEventJson(PipelineError):
    """Raised when a payload cannot be turned into an event record.

    Covers invalid JSON after fence stripping, non-object JSON, and
    ``start``/``end`` values that are not ``YYYY-MM-DDTHH:MM:SS`` strings.

    Attributes:
        raw_response: The payload that failed to normalize.
    """

    def __init__(self, message: str, raw_response: str = "") -> None:
        super().__init__(message)
        self.raw_response = raw_response
