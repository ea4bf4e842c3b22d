# app/services/session_lifecycle.py
from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from datetime import date

from app.schemas.meeting_instance import FinalizeResult, RecallPayload
from app.schemas.meeting_series import MeetingSeries
from app.schemas.session import (
    ACTIVE_STATUSES,
    FinalizeParams,
    SessionState,
    SessionStatus,
)
from app.schemas.task import MentionCandidate, PendingTask, TaskStatus
from app.services.authorization import AuthSignal
from app.services.missed_session_detector import most_recent_missed
from app.services.note_command_parser import DEFAULT_DUE_IN_DAYS, build_task_command, parse_notes
from app.services.session_finalizer import (
    CalendarSync,
    Clock,
    DuplicateInstanceError,
    InstanceStore,
    SessionFinalizer,
    TaskStore,
)

logger = logging.getLogger(__name__)

CalendarSyncFactory = Callable[[MeetingSeries, str], CalendarSync | None]

STARTABLE_STATUSES = frozenset({SessionStatus.IDLE, SessionStatus.FINALIZED})


class InvalidTransitionError(ValueError):
    """
    Raised when a transition is requested from a state that does not allow it.
    """


def _require(state: SessionState, allowed: Iterable[SessionStatus], action: str) -> None:
    if state.status not in allowed:
        raise InvalidTransitionError(
            f"Cannot {action} while session is {state.status.value}."
        )


# ---------------------------------------------------------------------------
# Pure transitions
# ---------------------------------------------------------------------------

def seed_notes(series: MeetingSeries) -> str:
    return series.agenda or f"Meeting Notes for {series.title}\n\n"


def begin_session(
    state: SessionState,
    series: MeetingSeries,
    status: SessionStatus,
    occurrence_date: date,
    notes: str,
    recall: RecallPayload | None,
    today: date,
    default_due_in_days: int = DEFAULT_DUE_IN_DAYS,
) -> SessionState:
    _require(state, STARTABLE_STATUSES, "start a session")
    return SessionState(
        status=status,
        series_id=series.id,
        occurrence_date=occurrence_date,
        notes=notes,
        preview=parse_notes(
            notes,
            fallback_assignee_ids=series.attendee_ids,
            today=today,
            default_due_in_days=default_due_in_days,
        ),
        recall=recall,
    )


def recover(state: SessionState) -> SessionState:
    """
    Error -> the active state the session was in before the failure.
    """
    _require(state, {SessionStatus.ERROR}, "dismiss an error")
    return state.model_copy(
        update={"status": state.resume_status, "resume_status": None, "error": None}
    )


def update_notes(
    state: SessionState,
    notes: str,
    fallback_assignee_ids: Sequence[str],
    today: date,
    mention_candidates: Iterable[MentionCandidate] = (),
    default_due_in_days: int = DEFAULT_DUE_IN_DAYS,
) -> SessionState:
    """
    Replace the notes buffer and recompute the task preview.
    """
    if state.status == SessionStatus.ERROR:
        state = recover(state)
    _require(state, ACTIVE_STATUSES, "edit notes")
    preview = parse_notes(
        notes,
        mention_candidates,
        fallback_assignee_ids,
        today=today,
        default_due_in_days=default_due_in_days,
    )
    return state.model_copy(update={"notes": notes, "preview": preview})


def finalize_params(state: SessionState, tasks: Sequence[PendingTask] | None) -> FinalizeParams:
    return FinalizeParams(
        notes=state.notes,
        tasks=list(state.preview if tasks is None else tasks),
        occurrence_date=state.occurrence_date,
        is_asynchronous=state.status == SessionStatus.CATCH_UP_ACTIVE,
    )


def suspend(state: SessionState, params: FinalizeParams) -> SessionState:
    _require(state, ACTIVE_STATUSES, "wait for authorization")
    return state.model_copy(
        update={
            "status": SessionStatus.SUSPENDED_PENDING_AUTH,
            "pending_finalize": params,
            "resume_status": state.status,
        }
    )


def begin_finalizing(state: SessionState) -> SessionState:
    _require(state, ACTIVE_STATUSES, "finalize")
    return state.model_copy(
        update={"status": SessionStatus.FINALIZING, "resume_status": state.status}
    )


def consume_pending(state: SessionState) -> tuple[SessionState, FinalizeParams | None]:
    """
    Take the stored finalize parameters exactly once. Anything other than a
    suspended session with parameters is returned unchanged with None.
    """
    if state.status != SessionStatus.SUSPENDED_PENDING_AUTH or state.pending_finalize is None:
        return state, None
    params = state.pending_finalize
    claimed = state.model_copy(
        update={"status": SessionStatus.FINALIZING, "pending_finalize": None}
    )
    return claimed, params


def finalized(state: SessionState, result: FinalizeResult) -> SessionState:
    _require(state, {SessionStatus.FINALIZING}, "complete finalize")
    return state.model_copy(
        update={
            "status": SessionStatus.FINALIZED,
            "result": result,
            "resume_status": None,
            "error": None,
        }
    )


def fail(state: SessionState, message: str) -> SessionState:
    """
    Move to Error, keeping notes and preview so the user can retry.
    """
    if state.status in ACTIVE_STATUSES:
        resume = state.status
    else:
        resume = state.resume_status or SessionStatus.LIVE_SESSION_ACTIVE
    return state.model_copy(
        update={
            "status": SessionStatus.ERROR,
            "resume_status": resume,
            "pending_finalize": None,
            "error": message,
        }
    )


def cancel(state: SessionState) -> SessionState:
    """
    Discard the in-memory session. Nothing persisted is touched.
    """
    if state.status == SessionStatus.FINALIZING:
        raise InvalidTransitionError("Cannot cancel while session is Finalizing.")
    return SessionState()


def reset(state: SessionState) -> SessionState:
    _require(state, {SessionStatus.FINALIZED}, "reset")
    return SessionState()


# ---------------------------------------------------------------------------
# Controller
# ---------------------------------------------------------------------------

class SessionLifecycleController:
    """
    Runs the I/O between pure transitions: recall loading, missed-session
    detection and finalize. Holds no session state of its own; every method
    takes a SessionState and returns the next one.
    """

    def __init__(
        self,
        finalizer: SessionFinalizer,
        task_store: TaskStore,
        instance_store: InstanceStore,
        auth: AuthSignal,
        clock: Clock | None = None,
        calendar_sync_factory: CalendarSyncFactory | None = None,
        default_due_in_days: int = DEFAULT_DUE_IN_DAYS,
    ) -> None:
        self.finalizer = finalizer
        self.task_store = task_store
        self.instance_store = instance_store
        self.auth = auth
        self.clock = clock or finalizer.clock
        self.calendar_sync_factory = calendar_sync_factory
        self.default_due_in_days = default_due_in_days

    async def load_recall(self, series: MeetingSeries, before: date) -> RecallPayload | None:
        """
        Latest finalized session before ``before`` and its still-open tasks.
        """
        if not series.is_recurring:
            return None

        instances = [
            inst
            for inst in await self.instance_store.list_by_series(series.id)
            if inst.occurrence_date < before
        ]
        if not instances:
            return None

        latest = max(instances, key=lambda inst: inst.finalized_at)
        tasks = await self.task_store.get_tasks(latest.task_ids) if latest.task_ids else []
        open_tasks = [t for t in tasks if t.status != TaskStatus.COMPLETED]
        return RecallPayload(
            instance=latest,
            pending_tasks=open_tasks,
            carry_over=[build_task_command(t) for t in open_tasks],
        )

    async def start_live_session(self, state: SessionState, series: MeetingSeries) -> SessionState:
        _require(state, STARTABLE_STATUSES, "start a live session")
        today = self.clock.today()
        recall = await self.load_recall(series, before=today)
        return begin_session(
            state,
            series,
            SessionStatus.LIVE_SESSION_ACTIVE,
            occurrence_date=today,
            notes=seed_notes(series),
            recall=recall,
            today=today,
            default_due_in_days=self.default_due_in_days,
        )

    async def start_catch_up(
        self,
        state: SessionState,
        series: MeetingSeries,
        as_of: date | None = None,
    ) -> SessionState:
        _require(state, STARTABLE_STATUSES, "start a catch-up")
        today = self.clock.today()
        instances = await self.instance_store.list_by_series(series.id)
        missed = most_recent_missed(
            series,
            [inst.occurrence_date for inst in instances],
            as_of=as_of or today,
        )
        if missed is None:
            raise InvalidTransitionError("No missed session to catch up on.")

        recall = await self.load_recall(series, before=missed)
        return begin_session(
            state,
            series,
            SessionStatus.CATCH_UP_ACTIVE,
            occurrence_date=missed,
            notes="",
            recall=recall,
            today=today,
            default_due_in_days=self.default_due_in_days,
        )

    def update_notes(
        self,
        state: SessionState,
        series: MeetingSeries,
        notes: str,
        mention_candidates: Iterable[MentionCandidate] = (),
    ) -> SessionState:
        return update_notes(
            state,
            notes,
            series.attendee_ids,
            today=self.clock.today(),
            mention_candidates=mention_candidates,
            default_due_in_days=self.default_due_in_days,
        )

    async def request_finalize(
        self,
        state: SessionState,
        series: MeetingSeries,
        actor: str,
        tasks: Sequence[PendingTask] | None = None,
    ) -> SessionState:
        if state.status == SessionStatus.ERROR:
            state = recover(state)
        _require(state, ACTIVE_STATUSES, "finalize")

        if state.status == SessionStatus.CATCH_UP_ACTIVE and not state.notes.strip():
            return fail(state, "Catch-up notes cannot be empty.")

        params = finalize_params(state, tasks)

        if series.calendar_event_id and not self.auth.is_authorized(actor):
            logger.info(
                "Series %s: finalize waiting for calendar authorization of actor=%s",
                series.id,
                actor,
            )
            return suspend(state, params)

        return await self.run_finalize(begin_finalizing(state), series, actor, params)

    async def resume_after_authorization(
        self,
        state: SessionState,
        series: MeetingSeries,
        actor: str,
    ) -> SessionState:
        state, params = consume_pending(state)
        if params is None:
            return state
        return await self.run_finalize(state, series, actor, params)

    async def run_finalize(
        self,
        state: SessionState,
        series: MeetingSeries,
        actor: str,
        params: FinalizeParams,
    ) -> SessionState:
        calendar_sync = (
            self.calendar_sync_factory(series, actor) if self.calendar_sync_factory else None
        )
        try:
            result = await self.finalizer.finalize(
                series_id=series.id,
                occurrence_date=params.occurrence_date,
                notes_text=params.notes,
                pending_tasks=params.tasks,
                actor=actor,
                is_asynchronous=params.is_asynchronous,
                calendar_sync=calendar_sync,
            )
        except DuplicateInstanceError as exc:
            return fail(state, str(exc))
        except Exception as exc:
            logger.exception("Finalize failed for series=%s", series.id)
            return fail(state, f"An error occurred during finalization: {exc}")
        return finalized(state, result)
