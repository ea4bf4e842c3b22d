# app/models/meeting_instance.py
from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from app.db.base import Base


class MeetingInstanceRecord(Base):
    """
    Finalized record of one occurrence of a series. Never updated after insert.
    """

    __tablename__ = "meeting_instances"

    id = Column(Integer, primary_key=True, index=True)

    series_id = Column(
        Integer,
        ForeignKey("meeting_series.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    occurrence_date = Column(Date, nullable=False, index=True)
    notes_text = Column(Text, nullable=False, default="")
    task_ids = Column(JSON, nullable=False, default=list)
    finalized_at = Column(DateTime(timezone=True), nullable=False)
    is_asynchronous = Column(Boolean, nullable=False, default=False)
    finalized_by = Column(String(255), nullable=True)

    series = relationship("MeetingSeriesRecord", backref="instances")

    __table_args__ = (
        UniqueConstraint(
            "series_id",
            "occurrence_date",
            name="uq_meeting_instances_series_date",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<MeetingInstanceRecord id={self.id} series_id={self.series_id} "
            f"date={self.occurrence_date} async={self.is_asynchronous}>"
        )
