# app/api/routes/series.py
from datetime import date as date_type, datetime
from http import HTTPStatus

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies.auth import get_actor_id, verify_api_key
from app.api.dependencies.state import get_clock
from app.db.session import get_db
from app.schemas.meeting_instance import MeetingInstanceRead
from app.schemas.meeting_series import (
    CancelOccurrenceRequest,
    MeetingSeries,
    MeetingSeriesCreate,
    MissedSession,
    NextOccurrence,
    OccurrenceList,
)
from app.services.missed_session_detector import most_recent_missed
from app.services.occurrence_calculator import next_occurrence, occurrences_in_range
from app.services.session_finalizer import Clock
from app.services.stores import SeriesRepository, SqlInstanceStore

router = APIRouter(
    prefix="/series",
    tags=["Series"],
    dependencies=[Depends(verify_api_key)],
)


async def load_series(db: AsyncSession, series_id: int) -> MeetingSeries:
    series = await SeriesRepository(db).get(series_id)
    if series is None:
        raise HTTPException(
            status_code=HTTPStatus.NOT_FOUND,
            detail=f"Series with id {series_id} not found.",
        )
    return series


@router.post(
    "",
    response_model=MeetingSeries,
    status_code=HTTPStatus.CREATED,
    summary="Create a meeting series",
    description=(
        "Register a meeting series: its anchor (first occurrence), recurrence rule "
        "and optional bounds (`recurrence_end_date`, `recurrence_count`).\n\n"
        "A series with `calendar_event_id` requires calendar authorization of the "
        "finalizing user before sessions can be finalized."
    ),
)
async def create_series(
    payload: MeetingSeriesCreate,
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
) -> MeetingSeries:
    series = await SeriesRepository(db).create(payload, created_by=actor_id)
    await db.commit()
    return series


@router.get(
    "",
    response_model=list[MeetingSeries],
    summary="List meeting series",
)
async def list_series(db: AsyncSession = Depends(get_db)) -> list[MeetingSeries]:
    return await SeriesRepository(db).list_all()


@router.get(
    "/{series_id}",
    response_model=MeetingSeries,
    summary="Get a meeting series by ID",
    responses={404: {"description": "Series not found."}},
)
async def get_series(
    series_id: int = Path(..., description="ID of the series."),
    db: AsyncSession = Depends(get_db),
) -> MeetingSeries:
    return await load_series(db, series_id)


@router.post(
    "/{series_id}/cancelled-dates",
    response_model=MeetingSeries,
    summary="Cancel a single occurrence",
    description=(
        "Marks one occurrence date as cancelled. Cancelled occurrences are skipped "
        "by occurrence listings and never reported as missed, but still count "
        "towards `recurrence_count`."
    ),
    responses={404: {"description": "Series not found."}},
)
async def cancel_occurrence(
    payload: CancelOccurrenceRequest,
    series_id: int = Path(..., description="ID of the series."),
    db: AsyncSession = Depends(get_db),
) -> MeetingSeries:
    series = await SeriesRepository(db).cancel_occurrence(series_id, payload.occurrence_date)
    if series is None:
        raise HTTPException(
            status_code=HTTPStatus.NOT_FOUND,
            detail=f"Series with id {series_id} not found.",
        )
    await db.commit()
    return series


@router.post(
    "/{series_id}/end",
    response_model=MeetingSeries,
    summary="End a recurring series",
    description=(
        "Sets `recurrence_end_date` to the current time so no further occurrences "
        "are scheduled. Past sessions and their tasks stay in place."
    ),
    responses={404: {"description": "Series not found."}},
)
async def end_series(
    series_id: int = Path(..., description="ID of the series."),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> MeetingSeries:
    series = await SeriesRepository(db).end_series(series_id, ended_at=clock.now())
    if series is None:
        raise HTTPException(
            status_code=HTTPStatus.NOT_FOUND,
            detail=f"Series with id {series_id} not found.",
        )
    await db.commit()
    return series


@router.get(
    "/{series_id}/next-occurrence",
    response_model=NextOccurrence,
    summary="Next upcoming occurrence",
    responses={404: {"description": "Series not found."}},
)
async def get_next_occurrence(
    series_id: int = Path(..., description="ID of the series."),
    as_of: datetime | None = Query(
        default=None,
        description="Reference timestamp. Defaults to the server's current time (UTC).",
    ),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> NextOccurrence:
    series = await load_series(db, series_id)
    reference = as_of or clock.now()
    return NextOccurrence(
        series_id=series_id,
        as_of=reference,
        next_occurrence=next_occurrence(series, reference),
    )


@router.get(
    "/{series_id}/occurrences",
    response_model=OccurrenceList,
    summary="Occurrences within a date window",
    responses={
        400: {"description": "`end` is before `start`."},
        404: {"description": "Series not found."},
    },
)
async def list_occurrences(
    series_id: int = Path(..., description="ID of the series."),
    start: date_type = Query(..., description="Inclusive start date (YYYY-MM-DD).", examples=["2025-11-01"]),
    end: date_type = Query(..., description="Inclusive end date (YYYY-MM-DD).", examples=["2025-11-30"]),
    db: AsyncSession = Depends(get_db),
) -> OccurrenceList:
    series = await load_series(db, series_id)
    try:
        dates = occurrences_in_range(series, start, end)
    except ValueError as exc:
        raise HTTPException(status_code=HTTPStatus.BAD_REQUEST, detail=str(exc))
    return OccurrenceList(series_id=series_id, start=start, end=end, occurrences=dates)


@router.get(
    "/{series_id}/missed-session",
    response_model=MissedSession,
    summary="Most recent missed session",
    description=(
        "Returns the latest past occurrence that has neither a finalized session "
        "nor a cancellation, or `null`. Only the most recent gap is reported; "
        "it is the one offered for a catch-up post."
    ),
    responses={404: {"description": "Series not found."}},
)
async def get_missed_session(
    series_id: int = Path(..., description="ID of the series."),
    as_of: date_type | None = Query(
        default=None,
        description="Occurrences strictly before this date are considered. Defaults to today.",
    ),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> MissedSession:
    series = await load_series(db, series_id)
    instances = await SqlInstanceStore(db).list_by_series(series_id)
    reference = as_of or clock.today()
    return MissedSession(
        series_id=series_id,
        as_of=reference,
        missed_date=most_recent_missed(
            series, [i.occurrence_date for i in instances], as_of=reference
        ),
    )


@router.get(
    "/{series_id}/instances",
    response_model=list[MeetingInstanceRead],
    summary="Finalized sessions of a series",
    description="History of finalized sessions, most recent occurrence first.",
    responses={404: {"description": "Series not found."}},
)
async def list_instances(
    series_id: int = Path(..., description="ID of the series."),
    db: AsyncSession = Depends(get_db),
) -> list[MeetingInstanceRead]:
    await load_series(db, series_id)
    return await SqlInstanceStore(db).list_by_series(series_id)
