# app/schemas/task.py
from __future__ import annotations

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class TaskPriority(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class TaskStatus(str, Enum):
    NOT_STARTED = "Not Started"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    BLOCKED = "Blocked"


class TaskType(str, Enum):
    DIRECT = "direct"
    TEAM = "team"


class MentionCandidate(BaseModel):
    """
    A user that may be mentioned in session notes.
    """

    id: str
    display_name: str


class PendingTask(BaseModel):
    """
    Unpersisted task descriptor extracted from a command line in the notes.
    """

    title: str = Field(..., min_length=1, examples=["Finalize slides"])
    assignee_ids: list[str] = Field(
        default_factory=list,
        description="Assignees in mention order; repeated mentions are kept.",
    )
    assignee_names: list[str] = Field(
        default_factory=list,
        description="Display names for the preview, aligned with assignee_ids when known.",
    )
    due_date: date = Field(..., examples=["2025-11-20"])
    priority: TaskPriority = TaskPriority.MEDIUM


class TaskCreate(BaseModel):
    """
    Data handed to the TaskStore when a pending task is persisted.
    """

    title: str
    description: str = ""
    due_date: date
    priority: TaskPriority
    status: TaskStatus = TaskStatus.NOT_STARTED
    assignee_ids: list[str]
    task_type: TaskType
    created_by: str
    series_id: int

    @classmethod
    def from_pending(cls, pending: PendingTask, actor: str, series_id: int) -> "TaskCreate":
        return cls(
            title=pending.title,
            due_date=pending.due_date,
            priority=pending.priority,
            assignee_ids=list(pending.assignee_ids),
            task_type=TaskType.TEAM if len(pending.assignee_ids) > 1 else TaskType.DIRECT,
            created_by=actor,
            series_id=series_id,
        )


class TaskRead(BaseModel):
    """
    Public representation of a persisted task.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: str
    due_date: date
    priority: TaskPriority
    status: TaskStatus
    assignee_ids: list[str]
    task_type: TaskType
    created_by: str
    series_id: int | None
    created_at: datetime | None = None


class ParseNotesRequest(BaseModel):
    """
    Payload for the stateless notes preview (POST /notes/parse).
    """

    text: str = Field(..., examples=["/task Finalize slides due:tomorrow @[Priya](u123)"])
    mention_candidates: list[MentionCandidate] = Field(default_factory=list)
    fallback_assignee_ids: list[str] = Field(default_factory=list)
    today: date | None = Field(
        default=None,
        description="Reference date for due: tokens. Defaults to the server's date.",
    )
