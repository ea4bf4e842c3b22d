# app/schemas/meeting_instance.py
from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.task import TaskRead


class MeetingInstanceCreate(BaseModel):
    """
    Data handed to the InstanceStore when a session is finalized.
    """

    series_id: int
    occurrence_date: date
    notes_text: str
    task_ids: list[int]
    finalized_at: datetime
    is_asynchronous: bool = False
    finalized_by: str | None = None


class MeetingInstanceRead(BaseModel):
    """
    Public representation of a finalized session (append-only history).
    """

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., examples=[1])
    series_id: int = Field(..., examples=[1])
    occurrence_date: date = Field(..., examples=["2025-11-14"])
    notes_text: str
    task_ids: list[int] = Field(default_factory=list)
    finalized_at: datetime
    is_asynchronous: bool = Field(
        False,
        description="True for catch-up posts made after the occurrence was missed.",
    )
    finalized_by: str | None = None


class RecallPayload(BaseModel):
    """
    Previous session of a series plus its tasks that are still open.
    """

    instance: MeetingInstanceRead
    pending_tasks: list[TaskRead] = Field(default_factory=list)
    carry_over: list[str] = Field(
        default_factory=list,
        description="One command line per pending task, ready to paste into the new notes.",
        examples=[["/task Send recap @[u123](u123) due:2025-11-20 priority:high"]],
    )


class FinalizeResult(BaseModel):
    """
    Outcome of a successful finalize. ``sync_warning`` carries a non-fatal
    calendar sync failure.
    """

    instance: MeetingInstanceRead
    sync_warning: str | None = None
    calendar_synced: bool = False
