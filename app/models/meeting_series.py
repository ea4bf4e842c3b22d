# app/models/meeting_series.py
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Integer, String, Text

from app.db.base import Base


class MeetingSeriesRecord(Base):
    """
    Recurring definition of a meeting: anchor, rule, bounds and exceptions.
    """

    __tablename__ = "meeting_series"

    id = Column(Integer, primary_key=True, index=True)

    title = Column(String(255), nullable=False)
    agenda = Column(Text, nullable=True)

    anchor_datetime = Column(DateTime(timezone=True), nullable=False)
    recurrence_rule = Column(String(16), nullable=False, default="none")
    recurrence_end_date = Column(DateTime(timezone=True), nullable=True)
    recurrence_count = Column(Integer, nullable=True)

    # ISO date strings (YYYY-MM-DD), kept sorted
    cancelled_dates = Column(JSON, nullable=False, default=list)
    attendee_ids = Column(JSON, nullable=False, default=list)

    calendar_event_id = Column(String(255), nullable=True)

    created_by = Column(String(255), nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(tz=timezone.utc),
    )

    def __repr__(self) -> str:
        return (
            f"<MeetingSeriesRecord id={self.id} title={self.title!r} "
            f"rule={self.recurrence_rule}>"
        )
