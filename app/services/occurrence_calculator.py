# app/services/occurrence_calculator.py
from __future__ import annotations

import logging
from calendar import monthrange
from collections.abc import Iterator
from datetime import date, datetime, time, timedelta, timezone

from app.schemas.meeting_series import MeetingSeries, RecurrenceRule

logger = logging.getLogger(__name__)

# Upper bound on stepping through a series; ~27 years of daily occurrences.
MAX_STEPS = 10_000


def add_months(d: date, months: int) -> date:
    """
    Shift ``d`` by whole calendar months, clamping the day to the length of
    the target month (Jan 31 + 1 month -> Feb 28/29).
    """
    y = d.year + (d.month - 1 + months) // 12
    m = (d.month - 1 + months) % 12 + 1
    day = min(d.day, monthrange(y, m)[1])
    return date(y, m, day)


def step(rule: RecurrenceRule, anchor: date, index: int) -> date:
    """
    Return the ``index``-th occurrence date (0 = anchor) for ``rule``.

    Every occurrence is measured from the anchor, so a monthly series anchored
    on the 31st comes back to the 31st after a short month.
    """
    if rule == RecurrenceRule.DAILY:
        return anchor + timedelta(days=index)
    if rule == RecurrenceRule.WEEKLY:
        return anchor + timedelta(days=7 * index)
    if rule == RecurrenceRule.MONTHLY:
        return add_months(anchor, index)
    if index == 0:
        return anchor
    raise ValueError(f"Non-recurring rule has no occurrence #{index}")


def as_utc(value: datetime | date) -> datetime:
    """
    Normalize a timestamp to an aware UTC datetime. Naive values are assumed
    to already be UTC; bare dates mean midnight UTC.
    """
    if not isinstance(value, datetime):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def iter_occurrences(series: MeetingSeries) -> Iterator[date]:
    """
    Yield every occurrence date of ``series`` in order, cancelled dates
    included, stopping at the end date, the occurrence count or MAX_STEPS.
    """
    anchor = as_utc(series.anchor_datetime)
    if not series.is_recurring:
        yield anchor.date()
        return

    end = as_utc(series.recurrence_end_date) if series.recurrence_end_date else None
    count = series.recurrence_count

    for index in range(MAX_STEPS):
        if count is not None and index >= count:
            return
        day = step(series.recurrence_rule, anchor.date(), index)
        if end is not None and _at_anchor_time(day, anchor) > end:
            return
        yield day

    logger.warning(
        "Series %s: stopped stepping after %d occurrences", series.id, MAX_STEPS
    )


def next_occurrence(series: MeetingSeries, as_of: datetime | date) -> date | None:
    """
    Next non-cancelled occurrence at or after ``as_of``.

    A non-recurring series only has its anchor, which counts when it is
    strictly in the future. Returns None when the series is exhausted.
    """
    as_of_utc = as_utc(as_of)
    anchor = as_utc(series.anchor_datetime)

    if not series.is_recurring:
        return anchor.date() if anchor > as_of_utc else None

    for day in iter_occurrences(series):
        if _at_anchor_time(day, anchor) < as_of_utc:
            continue
        if day in series.cancelled_dates:
            continue
        return day
    return None


def occurrences_in_range(
    series: MeetingSeries,
    range_start: date,
    range_end: date,
) -> list[date]:
    """
    All non-cancelled occurrence dates within [range_start, range_end].
    """
    if range_end < range_start:
        raise ValueError("range_end must be greater than or equal to range_start")

    result: list[date] = []
    for day in iter_occurrences(series):
        if day > range_end:
            break
        if day < range_start or day in series.cancelled_dates:
            continue
        result.append(day)
    return result


def _at_anchor_time(day: date, anchor: datetime) -> datetime:
    return datetime.combine(day, anchor.timetz())
