"""Console rendering of extracted events.

:func:`format_event` returns the text block shown by the CLI;
:func:`print_event` writes it to stdout.  :func:`describe_recurrence` turns
an RRULE body into a short human label.
"""

from __future__ import annotations

import sys
from datetime import datetime

from calcapture.models.event import EventRecord

_BANNER_WIDTH = 60
_SEPARATOR = "=" * _BANNER_WIDTH

_WEEKDAYS = {
    "MO": "Monday",
    "TU": "Tuesday",
    "WE": "Wednesday",
    "TH": "Thursday",
    "FR": "Friday",
    "SA": "Saturday",
    "SU": "Sunday",
}


def describe_recurrence(rrule: str) -> str:
    """Return a human label for *rrule*.

    ``FREQ=WEEKLY;BYDAY=TH`` becomes ``"Every Thursday"``; unknown rules are
    returned unchanged and an empty rule yields ``""``.
    """
    parts = dict(
        part.split("=", 1) for part in rrule.upper().split(";") if "=" in part
    )
    freq = parts.get("FREQ")
    if freq == "DAILY":
        return "Daily"
    if freq == "WEEKLY":
        day = _WEEKDAYS.get(parts.get("BYDAY", "")[:2])
        return f"Every {day}" if day else "Weekly"
    if freq == "MONTHLY":
        return "Monthly"
    if freq == "YEARLY":
        return "Yearly"
    return rrule


def format_event(
    event: EventRecord,
    source_text: str = "",
    use_24_hour: bool = False,
) -> str:
    """Render *event* as a labelled block.

    Args:
        event: The event to show.
        source_text: Text the event was parsed from; shown when non-empty.
        use_24_hour: ``HH:MM`` instead of ``h:MM AM``.

    Returns:
        A multi-line string ready for console display.
    """
    lines: list[str] = [_SEPARATOR, "  CALCAPTURE EVENT", _SEPARATOR]

    if source_text:
        lines.append("")
        lines.append("--- Source text ---")
        lines.extend(f"  {line}" for line in source_text.splitlines())

    lines.append("")
    lines.append(f"  Title:      {event.title}")

    if not event.has_dates:
        lines.append("  When:       No date found")
    elif event.is_all_day:
        lines.append(f"  Date:       {_format_day(event.start)}")
        if event.end and event.start and event.end.date() != event.start.date():
            lines.append(f"  Until:      {_format_day(event.end)}")
        lines.append("  All day:    yes")
    else:
        lines.append(f"  Start:      {_format_moment(event.start, use_24_hour)}")
        lines.append(f"  End:        {_format_moment(event.end, use_24_hour)}")

    if event.location:
        location_lines = event.location.splitlines()
        lines.append(f"  Location:   {location_lines[0]}")
        lines.extend(f"              {line}" for line in location_lines[1:])

    if event.recurrence:
        lines.append(f"  Repeats:    {describe_recurrence(event.recurrence)}")

    lines.append(_SEPARATOR)
    return "\n".join(lines)


def print_event(
    event: EventRecord,
    source_text: str = "",
    use_24_hour: bool = False,
) -> None:
    """Write :func:`format_event` output to stdout."""
    sys.stdout.write(format_event(event, source_text, use_24_hour) + "\n")


def _format_day(moment: datetime | None) -> str:
    return moment.strftime("%a %Y-%m-%d") if moment else "-"


def _format_moment(moment: datetime | None, use_24_hour: bool) -> str:
    if moment is None:
        return "-"
    if use_24_hour:
        return moment.strftime("%a %Y-%m-%d %H:%M")
    clock = moment.strftime("%I:%M %p").lstrip("0")
    return f"{moment.strftime('%a %Y-%m-%d')} {clock}"
