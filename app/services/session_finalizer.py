# app/services/session_finalizer.py
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime, timezone

from app.schemas.meeting_instance import (
    FinalizeResult,
    MeetingInstanceCreate,
    MeetingInstanceRead,
)
from app.schemas.task import PendingTask, TaskCreate, TaskRead

logger = logging.getLogger(__name__)


class DuplicateInstanceError(RuntimeError):
    """
    Raised when a MeetingInstance already exists for (series_id, occurrence_date).
    """

    def __init__(self, series_id: int, occurrence_date: date) -> None:
        super().__init__(
            f"Session for series {series_id} on {occurrence_date.isoformat()} "
            "has already been finalized."
        )
        self.series_id = series_id
        self.occurrence_date = occurrence_date


class CalendarSyncError(RuntimeError):
    """
    Raised by calendar sync collaborators that prefer raising over reporting.
    """


@dataclass(frozen=True)
class SyncOutcome:
    success: bool
    error: str | None = None


class TaskStore(ABC):
    """Persistence contract for tasks created from session notes."""

    @abstractmethod
    async def create_task(self, data: TaskCreate) -> int:
        """Persist a task and return its id."""

    @abstractmethod
    async def get_tasks(self, task_ids: Sequence[int]) -> list[TaskRead]:
        """Fetch tasks by id, in the given order, skipping unknown ids."""


class InstanceStore(ABC):
    """Persistence contract for finalized sessions."""

    @abstractmethod
    async def instance_exists(self, series_id: int, occurrence_date: date) -> bool:
        ...

    @abstractmethod
    async def create_instance(self, data: MeetingInstanceCreate) -> MeetingInstanceRead:
        """Persist an instance. Raises DuplicateInstanceError on conflict."""

    @abstractmethod
    async def list_by_series(self, series_id: int) -> list[MeetingInstanceRead]:
        ...


class CalendarSync(ABC):
    """Pushes a finalized session onto an external calendar."""

    @abstractmethod
    async def try_sync(self, instance: MeetingInstanceRead) -> SyncOutcome:
        ...


class Clock:
    """Wall clock in UTC. Tests substitute a fixed clock."""

    def now(self) -> datetime:
        return datetime.now(tz=timezone.utc)

    def today(self) -> date:
        return self.now().date()


class SessionFinalizer:
    """
    Turns a session's notes and reviewed pending tasks into a persisted
    MeetingInstance plus the Task records it references.

    Steps
    -----
    1) Reject with DuplicateInstanceError if the occurrence is already
       finalized (guards double submits and retries).
    2) Create one Task per PendingTask, in order, attributed to the actor.
    3) Create the MeetingInstance with the collected task ids.
    4) Optionally sync to the calendar. Failures become ``sync_warning`` and
       never undo steps 2-3.
    """

    def __init__(
        self,
        task_store: TaskStore,
        instance_store: InstanceStore,
        clock: Clock | None = None,
    ) -> None:
        self.task_store = task_store
        self.instance_store = instance_store
        self.clock = clock or Clock()

    async def finalize(
        self,
        series_id: int,
        occurrence_date: date,
        notes_text: str,
        pending_tasks: Sequence[PendingTask],
        actor: str,
        is_asynchronous: bool,
        calendar_sync: CalendarSync | None = None,
    ) -> FinalizeResult:
        if await self.instance_store.instance_exists(series_id, occurrence_date):
            logger.info(
                "Rejecting finalize: series=%s date=%s already finalized",
                series_id,
                occurrence_date,
            )
            raise DuplicateInstanceError(series_id, occurrence_date)

        task_ids: list[int] = []
        for pending in pending_tasks:
            task_id = await self.task_store.create_task(
                TaskCreate.from_pending(pending, actor=actor, series_id=series_id)
            )
            task_ids.append(task_id)

        instance = await self.instance_store.create_instance(
            MeetingInstanceCreate(
                series_id=series_id,
                occurrence_date=occurrence_date,
                notes_text=notes_text,
                task_ids=task_ids,
                finalized_at=self.clock.now(),
                is_asynchronous=is_asynchronous,
                finalized_by=actor,
            )
        )
        logger.info(
            "Finalized series=%s date=%s instance=%s tasks=%d async=%s",
            series_id,
            occurrence_date,
            instance.id,
            len(task_ids),
            is_asynchronous,
        )

        if calendar_sync is None:
            return FinalizeResult(instance=instance)

        try:
            outcome = await calendar_sync.try_sync(instance)
        except CalendarSyncError as exc:
            outcome = SyncOutcome(success=False, error=str(exc))
        except Exception as exc:
            logger.exception("Calendar sync raised for instance=%s", instance.id)
            outcome = SyncOutcome(success=False, error=f"Calendar sync failed: {exc}")

        if not outcome.success:
            warning = outcome.error or "Calendar sync failed."
            logger.warning(
                "Calendar sync failed for instance=%s: %s", instance.id, warning
            )
            return FinalizeResult(instance=instance, sync_warning=warning)

        return FinalizeResult(instance=instance, calendar_synced=True)
