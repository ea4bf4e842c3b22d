# app/schemas/meeting_series.py
from __future__ import annotations

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class RecurrenceRule(str, Enum):
    """
    How often a meeting series repeats after its anchor.
    """

    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


# --------------------------------------------------------------------------
# Base schema shared by create/read
# --------------------------------------------------------------------------

class MeetingSeriesBase(BaseModel):
    """
    Shared fields used by MeetingSeriesCreate and MeetingSeries.
    """

    title: str = Field(
        ...,
        min_length=1,
        description="Human-readable meeting title.",
        examples=["Platform Weekly Sync"],
    )
    agenda: str | None = Field(
        default=None,
        description="Agenda/template used to seed the notes of a live session.",
    )
    anchor_datetime: datetime = Field(
        ...,
        description="Start of the series (first occurrence). Naive values are treated as UTC.",
        examples=["2025-11-03T10:30:00Z"],
    )
    recurrence_rule: RecurrenceRule = Field(
        default=RecurrenceRule.NONE,
        description="Recurrence period of the series.",
    )
    recurrence_end_date: datetime | None = Field(
        default=None,
        description="No occurrence happens after this timestamp.",
    )
    recurrence_count: int | None = Field(
        default=None,
        ge=1,
        description="Maximum number of occurrences (cancelled ones included).",
    )
    cancelled_dates: set[date] = Field(
        default_factory=set,
        description="Occurrence dates that were cancelled individually.",
    )
    attendee_ids: list[str] = Field(
        default_factory=list,
        description="Ordered set of attendee user ids.",
    )
    calendar_event_id: str | None = Field(
        default=None,
        description="Linked calendar event; finalize requires calendar authorization when set.",
    )

    @model_validator(mode="after")
    def _dedupe_attendees(self) -> "MeetingSeriesBase":
        self.attendee_ids = list(dict.fromkeys(self.attendee_ids))
        return self

    @property
    def is_recurring(self) -> bool:
        return self.recurrence_rule != RecurrenceRule.NONE


class MeetingSeriesCreate(MeetingSeriesBase):
    """
    Schema for creating a new meeting series (POST /series).
    """
    pass


class MeetingSeries(MeetingSeriesBase):
    """
    Full representation of a meeting series, used both as API output and as
    the input of the occurrence/missed-session calculators.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., examples=[1], description="Database identifier of the series.")
    created_by: str | None = Field(default=None, description="Actor that created the series.")
    created_at: datetime | None = Field(default=None, description="Creation timestamp (UTC).")


class CancelOccurrenceRequest(BaseModel):
    """
    Payload for cancelling a single occurrence of a series.
    """

    occurrence_date: date = Field(..., examples=["2025-11-17"])


class OccurrenceList(BaseModel):
    """
    Occurrence dates of a series inside a window.
    """

    series_id: int
    start: date
    end: date
    occurrences: list[date]


class NextOccurrence(BaseModel):
    series_id: int
    as_of: datetime
    next_occurrence: date | None


class MissedSession(BaseModel):
    """
    Most recent occurrence that was neither held nor cancelled.
    """

    series_id: int
    as_of: date
    missed_date: date | None
