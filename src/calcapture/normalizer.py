"""Turn a provider's JSON-bearing answer into an :class:`EventRecord`.

Two stages:

1. :func:`strip_json_wrapping` -- removes Markdown code fences and
   ``<json>`` tags that some models add even when asked for raw JSON.
2. :func:`normalize_event` -- parses the cleaned text and applies the field
   defaults and datetime rules.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, time, timedelta
from typing import Any

from calcapture.exceptions import MalformedEventJson
from calcapture.models.event import DEFAULT_TITLE, EventRecord

logger = logging.getLogger(__name__)

# Covers YYYY-MM-DDTHH:MM:SS; anything after (fractions, offsets) is ignored.
_DATETIME_PREFIX_LEN = 19
_DATETIME_FORMAT = "%Y-%m-%dT%H:%M:%S"

_WRAPPER_TOKENS = ("```json", "```", "<json>", "</json>")
_NEWLINES_RE = re.compile(r"\s*(?:\r\n|\r|\n)+\s*")

_DEFAULT_DURATION = timedelta(hours=1)


def strip_json_wrapping(raw: str) -> str:
    """Remove code fences and ``<json>`` tags, then trim whitespace.

    Args:
        raw: Text returned by a provider.

    Returns:
        The text with every ```` ```json ````, ```` ``` ````, ``<json>`` and
        ``</json>`` token removed and surrounding whitespace stripped.
    """
    cleaned = raw
    for token in _WRAPPER_TOKENS:
        cleaned = cleaned.replace(token, "")
    return cleaned.strip()


def collapse_location(location: str) -> str:
    """Join a multi-line location into one comma-separated line."""
    return _NEWLINES_RE.sub(", ", location.strip())


def normalize_event(raw: str, collapse_location_lines: bool = False) -> EventRecord:
    """Parse a provider payload into an :class:`EventRecord`.

    Args:
        raw: JSON-bearing text, possibly wrapped in fences or tags.
        collapse_location_lines: Join a multi-line ``location`` with
            ``", "``.

    Returns:
        The normalized event.  ``start`` and ``end`` are both ``None`` when
        the payload carried no temporal information; that is a valid result.

    Raises:
        MalformedEventJson: If the cleaned text is not a JSON object, or a
            ``start``/``end`` value is not a ``YYYY-MM-DDTHH:MM:SS`` string.
    """
    cleaned = strip_json_wrapping(raw or "")
    if not cleaned:
        raise MalformedEventJson("Empty event payload", raw_response=raw or "")

    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise MalformedEventJson(f"Invalid JSON: {exc}", raw_response=raw) from exc

    if not isinstance(data, dict):
        raise MalformedEventJson(
            f"Expected a JSON object, got {type(data).__name__}", raw_response=raw
        )

    has_time = _parse_bool(data.get("hasTime"), default=True)
    start = _parse_datetime(data.get("start"), "start", raw)
    end = _parse_datetime(data.get("end"), "end", raw)
    start, end = _complete_range(start, end, has_time)

    location = _as_text(data.get("location"))
    if collapse_location_lines:
        location = collapse_location(location)

    event = EventRecord(
        title=_as_text(data.get("title")).strip() or DEFAULT_TITLE,
        start=start,
        end=end,
        location=location,
        has_time=has_time,
        recurrence=_as_text(data.get("recurrence")),
    )
    logger.debug("Normalized event: %r", event)
    return event


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _parse_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
    return default


def _parse_datetime(value: Any, field_name: str, raw: str) -> datetime | None:
    """Parse the leading ``YYYY-MM-DDTHH:MM:SS`` of *value*.

    ``None``, ``""`` and the literal ``"null"`` mean "unknown".
    """
    if value is None:
        return None
    if not isinstance(value, str):
        raise MalformedEventJson(
            f"'{field_name}' must be a string, got {type(value).__name__}",
            raw_response=raw,
        )

    text = value.strip()
    if not text or text.lower() == "null":
        return None

    if len(text) < _DATETIME_PREFIX_LEN:
        raise MalformedEventJson(
            f"'{field_name}' is too short for YYYY-MM-DDTHH:MM:SS: {value!r}",
            raw_response=raw,
        )

    try:
        return datetime.strptime(text[:_DATETIME_PREFIX_LEN], _DATETIME_FORMAT)
    except ValueError as exc:
        raise MalformedEventJson(
            f"'{field_name}' is not a local date-time: {value!r}",
            raw_response=raw,
        ) from exc


def _complete_range(
    start: datetime | None,
    end: datetime | None,
    has_time: bool,
) -> tuple[datetime | None, datetime | None]:
    """Derive the missing side when exactly one of start/end is known."""
    if start is not None and end is None:
        if has_time:
            return start, start + _DEFAULT_DURATION
        return start, datetime.combine(start.date(), time(23, 59, 59))
    if end is not None and start is None:
        if has_time:
            return end - _DEFAULT_DURATION, end
        return datetime.combine(end.date(), time.min), end
    return start, end
