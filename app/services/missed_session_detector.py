# app/services/missed_session_detector.py
from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime, timezone

from app.schemas.meeting_series import MeetingSeries
from app.services.occurrence_calculator import iter_occurrences


def most_recent_missed(
    series: MeetingSeries,
    existing_instance_dates: Iterable[date],
    as_of: date | None = None,
) -> date | None:
    """
    Latest past occurrence of ``series`` that was neither finalized nor
    cancelled.

    Rules
    -----
    - Only occurrences strictly before ``as_of`` (default: today in UTC) count.
    - An occurrence is missed iff its date is not in
      ``existing_instance_dates`` and not in the series' cancelled dates.
    - Only the most recent gap is reported, older ones are ignored.
    - Non-recurring series never have missed sessions.
    """
    if not series.is_recurring:
        return None

    if as_of is None:
        as_of = datetime.now(tz=timezone.utc).date()

    held = set(existing_instance_dates)
    missed: date | None = None

    for day in iter_occurrences(series):
        if day >= as_of:
            break
        if day not in held and day not in series.cancelled_dates:
            missed = day

    return missed
