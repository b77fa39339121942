"""Pydantic model for an extracted calendar event.

:class:`EventRecord` is the single output of the parse path.  It is created
by :func:`~calcapture.normalizer.normalize_event` and never mutated after
that; callers that let a user edit the event produce a copy with
:meth:`EventRecord.with_changes`.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field

DEFAULT_TITLE = "Untitled Event"


class EventRecord(BaseModel):
    """A structured calendar event.

    Datetimes are naive and expressed in the caller's local timezone.

    Attributes:
        title: Event title.  Defaults to ``"Untitled Event"``.
        start: Event start, or ``None`` when no temporal information was
            found.
        end: Event end, or ``None`` (together with ``start``).
        location: Venue/address text.  May span two lines unless the
            normalizer collapsed it.
        has_time: ``False`` for date-only (all-day) events.
        recurrence: Empty string or an RRULE body such as
            ``"FREQ=WEEKLY;BYDAY=TH"``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    title: str = DEFAULT_TITLE
    start: datetime | None = None
    end: datetime | None = None
    location: str = ""
    has_time: bool = Field(default=True, alias="hasTime")
    recurrence: str = ""

    @computed_field(alias="isAllDay")  # type: ignore[prop-decorator]
    @property
    def is_all_day(self) -> bool:
        """Whether the event is all-day; always ``not has_time``."""
        return not self.has_time

    @property
    def has_dates(self) -> bool:
        """``False`` when the text carried no temporal information."""
        return self.start is not None and self.end is not None

    def with_changes(self, **changes: Any) -> EventRecord:
        """Return an edited copy, re-validated so the invariants still hold."""
        data = self.model_dump(exclude={"is_all_day"})
        data.update(changes)
        return EventRecord.model_validate(data)

    def to_json_dict(self) -> dict[str, Any]:
        """Serialize with the camelCase keys used in provider payloads."""
        return self.model_dump(mode="json", by_alias=True)
