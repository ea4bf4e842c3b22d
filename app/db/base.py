# app/db/base.py
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models in the Meeting Series service.
    """
    pass


# Import ORM models so that Base.metadata is aware of them
# This import should stay at the bottom to avoid circular dependencies.
from app.models.meeting_series import MeetingSeriesRecord  # noqa: E402,F401
from app.models.meeting_instance import MeetingInstanceRecord  # noqa: E402,F401
from app.models.task import TaskRecord  # noqa: E402,F401
