"""Prompt builders for the OCR and parse calls.

The parse prompt is provider-agnostic: every adapter submits exactly the
string returned by :func:`build_parse_prompt`.  The rules it encodes are the
contract :mod:`calcapture.normalizer` relies on (key names, ``null`` for
unknown dates, ``hasTime`` for all-day events, RRULE recurrence).
"""

from __future__ import annotations

from datetime import datetime

OCR_INSTRUCTION = "Extract all text from this image exactly as it appears."


def build_parse_prompt(text: str, now: datetime, timezone_label: str) -> str:
    """Build the event-extraction prompt for a block of text.

    Args:
        text: Text to extract an event from (OCR output or pasted text).
        now: The caller's current local date/time.  Passed in rather than
            read from the clock so the prompt is a pure function of its
            arguments.
        timezone_label: Name of the caller's timezone (e.g.
            ``"America/Vancouver"``), stated so the model never answers in
            UTC.

    Returns:
        The complete prompt string.
    """
    now_str = now.strftime("%Y-%m-%dT%H:%M:%S")
    weekday = now.strftime("%A")

    return f"""\
You are an event extraction assistant.
Current date/time: {now_str} ({weekday}), timezone: {timezone_label}
The current hour is {now.hour}.

Extract event details from the text below into a JSON object with these exact keys:
{{
  "title": "event name",
  "start": "local datetime YYYY-MM-DDTHH:MM:SS, or null",
  "end": "local datetime YYYY-MM-DDTHH:MM:SS, or null",
  "location": "venue name on the first line, street, city, state, zip on the second line",
  "hasTime": true/false,
  "recurrence": "RRULE if repeating, empty string otherwise"
}}

CRITICAL RULES:
1. Return ONLY the JSON object. No markdown, no code fences, no explanations.
2. All times are local to {timezone_label}. Never convert to UTC and never add an offset.
3. Resolve dates in this order of priority:
   a. A day name without a date ("Friday"): use the
      next future occurrence of that weekday. Today does not count if that weekday
      has already passed this week.
   b. A time without a date or day: if the time is after the current hour ({now.hour}),
      use today; otherwise use tomorrow.
   c. A date without a time: set hasTime=false, start = that date at 00:00:00,
      end = that date at 23:59:59.
   d. No date, day or time at all: set start=null and end=null. Never invent a date.
4. If there is a start but no end: add 2 hours for general events, or 1 hour for
   meetings, calls and appointments.
5. Recurrence:
   - "every [weekday]" -> "FREQ=WEEKLY;BYDAY=XX" where XX is MO, TU, WE, TH, FR, SA or SU
   - "every day" / "daily" -> "FREQ=DAILY"
   - "every month" / "monthly" -> "FREQ=MONTHLY"
   - "every year" / "yearly" / "annually" -> "FREQ=YEARLY"
   - no repetition mentioned -> ""
6. Understand natural language: "tomorrow", "next Wednesday", "tonight";
   "lunch" means noon.
7. If no venue or address is present, location is "".
8. If no title is obvious, write a short descriptive one.

Text to parse:
---
{text}
---

JSON:"""
