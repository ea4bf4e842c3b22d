# app/services/session_service.py
from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import get_settings
from app.schemas.meeting_series import MeetingSeries
from app.schemas.session import SessionState, SessionStatus
from app.services.authorization import AuthorizationBroker
from app.services.calendar_client import CalendarEventSync, build_calendar_client
from app.services.session_finalizer import CalendarSync, Clock, SessionFinalizer
from app.services.session_lifecycle import SessionLifecycleController, consume_pending, fail
from app.services.session_registry import SessionRegistry
from app.services.stores import SeriesRepository, SqlInstanceStore, SqlTaskStore

logger = logging.getLogger(__name__)


def build_controller(
    db: AsyncSession,
    broker: AuthorizationBroker,
    clock: Clock | None = None,
) -> SessionLifecycleController:
    """
    Wire a lifecycle controller to the database-backed stores and the
    calendar of whichever actor finalizes.
    """
    task_store = SqlTaskStore(db)
    instance_store = SqlInstanceStore(db)

    def calendar_sync_for(series: MeetingSeries, actor: str) -> CalendarSync | None:
        if not series.calendar_event_id:
            return None
        token = broker.access_token(actor)
        if token is None:
            return None
        return CalendarEventSync(
            build_calendar_client(token),
            series.calendar_event_id,
            task_store,
            on_unauthorized=lambda: broker.revoke(actor),
        )

    return SessionLifecycleController(
        finalizer=SessionFinalizer(task_store, instance_store, clock=clock),
        task_store=task_store,
        instance_store=instance_store,
        auth=broker,
        clock=clock,
        calendar_sync_factory=calendar_sync_for,
        default_due_in_days=get_settings().DEFAULT_DUE_IN_DAYS,
    )


async def commit_outcome(db: AsyncSession, state: SessionState) -> None:
    """
    Persist a finalize attempt only when it succeeded; partial task rows from
    a failed attempt are rolled back.
    """
    if state.status == SessionStatus.FINALIZED:
        await db.commit()
    else:
        await db.rollback()


async def resume_suspended_sessions(
    registry: SessionRegistry,
    broker: AuthorizationBroker,
    session_factory: async_sessionmaker,
    actor_id: str,
    clock: Clock | None = None,
) -> None:
    """
    AuthSignal callback: finalize every session of ``actor_id`` that was
    waiting for authorization.

    The pending parameters are cleared in the registry before finalize runs,
    so a repeated or late signal finds nothing left to resume.
    """
    for series_id, state in registry.suspended_for(actor_id):
        claimed, params = consume_pending(state)
        if params is None:
            continue
        registry.save(series_id, actor_id, claimed)

        async with session_factory() as db:
            try:
                series = await SeriesRepository(db).get(series_id)
                if series is None:
                    logger.warning("Series %s vanished before resume, dropping session", series_id)
                    registry.save(series_id, actor_id, SessionState())
                    continue

                controller = build_controller(db, broker, clock=clock)
                outcome = await controller.run_finalize(claimed, series, actor_id, params)
                await commit_outcome(db, outcome)
            except Exception as exc:
                logger.exception("Resume failed for series=%s actor=%s", series_id, actor_id)
                await db.rollback()
                outcome = fail(claimed, f"An error occurred during finalization: {exc}")

        registry.save(series_id, actor_id, outcome)
        logger.info(
            "Resumed finalize for series=%s actor=%s -> %s",
            series_id,
            actor_id,
            outcome.status.value,
        )
