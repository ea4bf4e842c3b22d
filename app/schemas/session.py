# app/schemas/session.py
from __future__ import annotations

from datetime import date
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.meeting_instance import FinalizeResult, RecallPayload
from app.schemas.task import MentionCandidate, PendingTask


class SessionStatus(str, Enum):
    """
    States of the session lifecycle for one series and one actor.
    """

    IDLE = "Idle"
    LIVE_SESSION_ACTIVE = "LiveSessionActive"
    CATCH_UP_ACTIVE = "CatchUpActive"
    SUSPENDED_PENDING_AUTH = "SuspendedPendingAuth"
    FINALIZING = "Finalizing"
    FINALIZED = "Finalized"
    ERROR = "Error"


ACTIVE_STATUSES = frozenset(
    {SessionStatus.LIVE_SESSION_ACTIVE, SessionStatus.CATCH_UP_ACTIVE}
)


class FinalizeParams(BaseModel):
    """
    Finalize arguments captured verbatim while waiting for authorization.
    """

    model_config = ConfigDict(frozen=True)

    notes: str
    tasks: list[PendingTask]
    occurrence_date: date
    is_asynchronous: bool


class SessionState(BaseModel):
    """
    Immutable snapshot of a session. Transitions return a new value.
    """

    model_config = ConfigDict(frozen=True)

    status: SessionStatus = SessionStatus.IDLE
    series_id: int | None = None
    occurrence_date: date | None = None
    notes: str = ""
    preview: list[PendingTask] = Field(default_factory=list)
    recall: RecallPayload | None = None
    pending_finalize: FinalizeParams | None = None
    resume_status: SessionStatus | None = Field(
        default=None,
        description="Active state a session in Error returns to.",
    )
    error: str | None = None
    result: FinalizeResult | None = None


class UpdateNotesRequest(BaseModel):
    notes: str
    mention_candidates: list[MentionCandidate] = Field(default_factory=list)


class FinalizeRequest(BaseModel):
    """
    Optional reviewed task list; the current preview is used when omitted.
    """

    tasks: list[PendingTask] | None = None


class AuthorizationCompleted(BaseModel):
    access_token: str = Field(..., min_length=1)
