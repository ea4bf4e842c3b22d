# app/api/routes/sessions.py
from http import HTTPStatus

from fastapi import APIRouter, Depends, HTTPException, Path
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies.auth import get_actor_id, verify_api_key
from app.api.dependencies.state import get_broker, get_clock, get_registry
from app.api.routes.series import load_series
from app.db.session import get_db
from app.schemas.session import (
    AuthorizationCompleted,
    FinalizeRequest,
    SessionState,
    UpdateNotesRequest,
)
from app.services.authorization import AuthorizationBroker
from app.services.session_finalizer import Clock
from app.services.session_lifecycle import (
    InvalidTransitionError,
    SessionLifecycleController,
    cancel,
    recover,
)
from app.services.session_registry import SessionRegistry
from app.services.session_service import build_controller, commit_outcome

router = APIRouter(
    tags=["Sessions"],
    dependencies=[Depends(verify_api_key)],
)

SERIES_ID = Path(..., description="ID of the series the session belongs to.")


def get_controller(
    db: AsyncSession = Depends(get_db),
    broker: AuthorizationBroker = Depends(get_broker),
    clock: Clock = Depends(get_clock),
) -> SessionLifecycleController:
    return build_controller(db, broker, clock=clock)


def _conflict(exc: InvalidTransitionError) -> HTTPException:
    return HTTPException(status_code=HTTPStatus.CONFLICT, detail=str(exc))


@router.get(
    "/series/{series_id}/session",
    response_model=SessionState,
    summary="Current session of the actor for a series",
    description="Returns the `Idle` state when no session is open.",
)
async def get_session(
    series_id: int = SERIES_ID,
    actor_id: str = Depends(get_actor_id),
    registry: SessionRegistry = Depends(get_registry),
) -> SessionState:
    return registry.get(series_id, actor_id)


@router.post(
    "/series/{series_id}/session/live",
    response_model=SessionState,
    summary="Start a live session",
    description=(
        "Opens a live session for today's occurrence. Notes are seeded from the "
        "series agenda and the previous session's notes plus its open tasks are "
        "returned as `recall`."
    ),
    responses={
        404: {"description": "Series not found."},
        409: {"description": "A session is already open."},
    },
)
async def start_live_session(
    series_id: int = SERIES_ID,
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
    registry: SessionRegistry = Depends(get_registry),
    controller: SessionLifecycleController = Depends(get_controller),
) -> SessionState:
    series = await load_series(db, series_id)
    try:
        state = await controller.start_live_session(registry.get(series_id, actor_id), series)
    except InvalidTransitionError as exc:
        raise _conflict(exc)
    return registry.save(series_id, actor_id, state)


@router.post(
    "/series/{series_id}/session/catch-up",
    response_model=SessionState,
    summary="Start a catch-up for the most recent missed session",
    responses={
        404: {"description": "Series not found."},
        409: {"description": "A session is already open, or nothing was missed."},
    },
)
async def start_catch_up(
    series_id: int = SERIES_ID,
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
    registry: SessionRegistry = Depends(get_registry),
    controller: SessionLifecycleController = Depends(get_controller),
) -> SessionState:
    series = await load_series(db, series_id)
    try:
        state = await controller.start_catch_up(registry.get(series_id, actor_id), series)
    except InvalidTransitionError as exc:
        raise _conflict(exc)
    return registry.save(series_id, actor_id, state)


@router.put(
    "/series/{series_id}/session/notes",
    response_model=SessionState,
    summary="Replace the notes buffer and refresh the task preview",
    description="Call after each edit; parsing is cheap and has no side effects.",
    responses={409: {"description": "No active session."}},
)
async def update_notes(
    payload: UpdateNotesRequest,
    series_id: int = SERIES_ID,
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
    registry: SessionRegistry = Depends(get_registry),
    controller: SessionLifecycleController = Depends(get_controller),
) -> SessionState:
    series = await load_series(db, series_id)
    try:
        state = controller.update_notes(
            registry.get(series_id, actor_id),
            series,
            payload.notes,
            payload.mention_candidates,
        )
    except InvalidTransitionError as exc:
        raise _conflict(exc)
    return registry.save(series_id, actor_id, state)


@router.post(
    "/series/{series_id}/session/finalize",
    response_model=SessionState,
    summary="Finalize the open session",
    description=(
        "Creates the tasks and the finalized session record.\n\n"
        "Outcomes (all returned as the new session state):\n"
        "- `Finalized`: `result` holds the instance and an optional `sync_warning`.\n"
        "- `SuspendedPendingAuth`: the series is linked to a calendar event and the "
        "actor has not authorized calendar access yet; finalize resumes automatically "
        "after `POST /authorization/completed`.\n"
        "- `Error`: e.g. the occurrence was already finalized; notes are kept."
    ),
    responses={409: {"description": "No active session."}},
)
async def finalize_session(
    payload: FinalizeRequest | None = None,
    series_id: int = SERIES_ID,
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
    registry: SessionRegistry = Depends(get_registry),
    controller: SessionLifecycleController = Depends(get_controller),
) -> SessionState:
    series = await load_series(db, series_id)
    tasks = payload.tasks if payload is not None else None
    try:
        state = await controller.request_finalize(
            registry.get(series_id, actor_id), series, actor_id, tasks=tasks
        )
    except InvalidTransitionError as exc:
        raise _conflict(exc)
    await commit_outcome(db, state)
    return registry.save(series_id, actor_id, state)


@router.post(
    "/series/{series_id}/session/dismiss-error",
    response_model=SessionState,
    summary="Return from Error to the active session",
    responses={409: {"description": "Session is not in Error."}},
)
async def dismiss_error(
    series_id: int = SERIES_ID,
    actor_id: str = Depends(get_actor_id),
    registry: SessionRegistry = Depends(get_registry),
) -> SessionState:
    try:
        state = recover(registry.get(series_id, actor_id))
    except InvalidTransitionError as exc:
        raise _conflict(exc)
    return registry.save(series_id, actor_id, state)


@router.delete(
    "/series/{series_id}/session",
    response_model=SessionState,
    summary="Cancel (or close) the session",
    description=(
        "Discards the notes buffer and any pending finalize. Nothing persisted is "
        "touched. Also closes a `Finalized` session so the next one can start."
    ),
    responses={409: {"description": "Session is finalizing."}},
)
async def cancel_session(
    series_id: int = SERIES_ID,
    actor_id: str = Depends(get_actor_id),
    registry: SessionRegistry = Depends(get_registry),
) -> SessionState:
    try:
        state = cancel(registry.get(series_id, actor_id))
    except InvalidTransitionError as exc:
        raise _conflict(exc)
    return registry.save(series_id, actor_id, state)


@router.post(
    "/authorization/completed",
    response_model=list[SessionState],
    summary="Signal completed calendar authorization",
    description=(
        "Stores the actor's calendar access token and resumes every session of the "
        "actor that was waiting for it. Each pending finalize runs exactly once; "
        "repeated signals are no-ops."
    ),
)
async def authorization_completed(
    payload: AuthorizationCompleted,
    actor_id: str = Depends(get_actor_id),
    broker: AuthorizationBroker = Depends(get_broker),
    registry: SessionRegistry = Depends(get_registry),
) -> list[SessionState]:
    suspended = [series_id for series_id, _ in registry.suspended_for(actor_id)]
    await broker.complete(actor_id, payload.access_token)
    return [registry.get(series_id, actor_id) for series_id in suspended]
