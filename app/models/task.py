# app/models/task.py
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, Date, DateTime, ForeignKey, Integer, String, Text

from app.db.base import Base


class TaskRecord(Base):
    """
    Action item created from a command line in finalized session notes.
    """

    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)

    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=False, default="")
    due_date = Column(Date, nullable=False)
    priority = Column(String(16), nullable=False, default="Medium")
    status = Column(String(32), nullable=False, default="Not Started")
    assignee_ids = Column(JSON, nullable=False, default=list)
    task_type = Column(String(16), nullable=False, default="direct")
    created_by = Column(String(255), nullable=False)

    series_id = Column(
        Integer,
        ForeignKey("meeting_series.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(tz=timezone.utc),
    )

    def __repr__(self) -> str:
        return f"<TaskRecord id={self.id} title={self.title!r} status={self.status}>"
