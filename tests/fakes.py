# tests/fakes.py
from datetime import date, datetime, timezone

from app.schemas.meeting_instance import MeetingInstanceCreate, MeetingInstanceRead
from app.schemas.task import TaskCreate, TaskRead, TaskStatus
from app.services.authorization import AuthSignal
from app.services.session_finalizer import (
    CalendarSync,
    Clock,
    DuplicateInstanceError,
    InstanceStore,
    SyncOutcome,
    TaskStore,
)

FIXED_NOW = datetime(2025, 11, 14, 9, 0, tzinfo=timezone.utc)


class FixedClock(Clock):
    def __init__(self, now: datetime = FIXED_NOW):
        self._now = now

    def now(self) -> datetime:
        return self._now


class FakeTaskStore(TaskStore):
    """
    In-memory TaskStore recording every created task.
    """

    def __init__(self):
        self.tasks: dict[int, TaskRead] = {}
        self.created: list[TaskCreate] = []

    async def create_task(self, data: TaskCreate) -> int:
        task_id = len(self.tasks) + 1
        self.created.append(data)
        self.tasks[task_id] = TaskRead(id=task_id, **data.model_dump())
        return task_id

    async def get_tasks(self, task_ids):
        return [self.tasks[i] for i in task_ids if i in self.tasks]

    def complete(self, task_id: int) -> None:
        self.tasks[task_id] = self.tasks[task_id].model_copy(
            update={"status": TaskStatus.COMPLETED}
        )


class FakeInstanceStore(InstanceStore):
    """
    In-memory InstanceStore enforcing one instance per (series, date).
    """

    def __init__(self):
        self.instances: list[MeetingInstanceRead] = []

    async def instance_exists(self, series_id: int, occurrence_date: date) -> bool:
        return any(
            i.series_id == series_id and i.occurrence_date == occurrence_date
            for i in self.instances
        )

    async def create_instance(self, data: MeetingInstanceCreate) -> MeetingInstanceRead:
        if await self.instance_exists(data.series_id, data.occurrence_date):
            raise DuplicateInstanceError(data.series_id, data.occurrence_date)
        instance = MeetingInstanceRead(id=len(self.instances) + 1, **data.model_dump())
        self.instances.append(instance)
        return instance

    async def list_by_series(self, series_id: int):
        return [i for i in self.instances if i.series_id == series_id]


class FakeCalendarSync(CalendarSync):
    def __init__(self, outcome: SyncOutcome | None = None, exc: Exception | None = None):
        self.outcome = outcome or SyncOutcome(success=True)
        self.exc = exc
        self.synced: list[MeetingInstanceRead] = []

    async def try_sync(self, instance: MeetingInstanceRead) -> SyncOutcome:
        self.synced.append(instance)
        if self.exc is not None:
            raise self.exc
        return self.outcome


class FakeAuth(AuthSignal):
    def __init__(self, authorized: bool = False):
        self.authorized = authorized
        self.callbacks = []

    def is_authorized(self, actor_id: str) -> bool:
        return self.authorized

    def on_authorization_completed(self, callback) -> None:
        self.callbacks.append(callback)
