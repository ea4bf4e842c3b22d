# app/services/stores.py
from __future__ import annotations

from collections.abc import Sequence
from datetime import date, datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.meeting_instance import MeetingInstanceRecord
from app.models.meeting_series import MeetingSeriesRecord
from app.models.task import TaskRecord
from app.schemas.meeting_instance import MeetingInstanceCreate, MeetingInstanceRead
from app.schemas.meeting_series import MeetingSeries, MeetingSeriesCreate
from app.schemas.task import TaskCreate, TaskRead
from app.services.session_finalizer import (
    DuplicateInstanceError,
    InstanceStore,
    TaskStore,
)


class SqlTaskStore(TaskStore):
    """
    TaskStore backed by the service database.

    Rows are flushed, not committed: the caller owns the transaction so a
    failed finalize can be rolled back as a whole.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def create_task(self, data: TaskCreate) -> int:
        task = TaskRecord(
            title=data.title,
            description=data.description,
            due_date=data.due_date,
            priority=data.priority.value,
            status=data.status.value,
            assignee_ids=list(data.assignee_ids),
            task_type=data.task_type.value,
            created_by=data.created_by,
            series_id=data.series_id,
        )
        self.db.add(task)
        await self.db.flush()
        return task.id

    async def get_tasks(self, task_ids: Sequence[int]) -> list[TaskRead]:
        if not task_ids:
            return []
        result = await self.db.execute(
            select(TaskRecord).where(TaskRecord.id.in_(list(task_ids)))
        )
        by_id = {task.id: task for task in result.scalars().all()}
        return [TaskRead.model_validate(by_id[i]) for i in task_ids if i in by_id]


class SqlInstanceStore(InstanceStore):
    """
    InstanceStore backed by the service database. The unique constraint on
    (series_id, occurrence_date) backs up the finalizer's existence check.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def instance_exists(self, series_id: int, occurrence_date: date) -> bool:
        result = await self.db.execute(
            select(MeetingInstanceRecord.id).where(
                MeetingInstanceRecord.series_id == series_id,
                MeetingInstanceRecord.occurrence_date == occurrence_date,
            )
        )
        return result.first() is not None

    async def create_instance(self, data: MeetingInstanceCreate) -> MeetingInstanceRead:
        instance = MeetingInstanceRecord(**data.model_dump())
        self.db.add(instance)
        try:
            await self.db.flush()
        except IntegrityError as exc:
            raise DuplicateInstanceError(data.series_id, data.occurrence_date) from exc
        return MeetingInstanceRead.model_validate(instance)

    async def list_by_series(self, series_id: int) -> list[MeetingInstanceRead]:
        result = await self.db.execute(
            select(MeetingInstanceRecord)
            .where(MeetingInstanceRecord.series_id == series_id)
            .order_by(MeetingInstanceRecord.occurrence_date.desc())
        )
        return [MeetingInstanceRead.model_validate(i) for i in result.scalars().all()]


class SeriesRepository:
    """
    Read/write access to meeting series. Series editing beyond creation and
    single-occurrence cancellation belongs to the surrounding application.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def create(self, payload: MeetingSeriesCreate, created_by: str | None) -> MeetingSeries:
        record = MeetingSeriesRecord(
            title=payload.title,
            agenda=payload.agenda,
            anchor_datetime=payload.anchor_datetime,
            recurrence_rule=payload.recurrence_rule.value,
            recurrence_end_date=payload.recurrence_end_date,
            recurrence_count=payload.recurrence_count,
            cancelled_dates=sorted(d.isoformat() for d in payload.cancelled_dates),
            attendee_ids=list(payload.attendee_ids),
            calendar_event_id=payload.calendar_event_id,
            created_by=created_by,
        )
        self.db.add(record)
        await self.db.flush()
        return MeetingSeries.model_validate(record)

    async def get(self, series_id: int) -> MeetingSeries | None:
        record = await self.db.get(MeetingSeriesRecord, series_id)
        return MeetingSeries.model_validate(record) if record is not None else None

    async def list_all(self) -> list[MeetingSeries]:
        result = await self.db.execute(
            select(MeetingSeriesRecord).order_by(MeetingSeriesRecord.id)
        )
        return [MeetingSeries.model_validate(r) for r in result.scalars().all()]

    async def cancel_occurrence(self, series_id: int, occurrence_date: date) -> MeetingSeries | None:
        record = await self.db.get(MeetingSeriesRecord, series_id)
        if record is None:
            return None
        dates = set(record.cancelled_dates or [])
        dates.add(occurrence_date.isoformat())
        # JSON columns are not mutation-tracked, assign a new list
        record.cancelled_dates = sorted(dates)
        await self.db.flush()
        return MeetingSeries.model_validate(record)

    async def end_series(self, series_id: int, ended_at: datetime) -> MeetingSeries | None:
        """
        Stop the series at ``ended_at``: no occurrence happens after it.
        Finalized sessions and their tasks are kept.
        """
        record = await self.db.get(MeetingSeriesRecord, series_id)
        if record is None:
            return None
        record.recurrence_end_date = ended_at
        await self.db.flush()
        return MeetingSeries.model_validate(record)
