# app/api/routes/notes.py
from fastapi import APIRouter, Depends

from app.api.dependencies.auth import verify_api_key
from app.api.dependencies.state import get_clock
from app.core.config import get_settings
from app.schemas.task import ParseNotesRequest, PendingTask
from app.services.note_command_parser import parse_notes
from app.services.session_finalizer import Clock

router = APIRouter(
    prefix="/notes",
    tags=["Notes"],
    dependencies=[Depends(verify_api_key)],
)


@router.post(
    "/parse",
    response_model=list[PendingTask],
    summary="Preview the tasks contained in notes",
    description=(
        "Stateless preview of the action items in a notes buffer.\n\n"
        "Command lines start with `/task ` or `/` (`//` lines are comments) and may "
        "contain `@[Name](user-id)` mentions, `due:`/`on:` and `priority:`/`p:` tokens. "
        "Malformed tokens fall back to defaults; the endpoint never rejects notes."
    ),
)
async def preview_tasks(
    payload: ParseNotesRequest,
    clock: Clock = Depends(get_clock),
) -> list[PendingTask]:
    return parse_notes(
        payload.text,
        payload.mention_candidates,
        payload.fallback_assignee_ids,
        today=payload.today or clock.today(),
        default_due_in_days=get_settings().DEFAULT_DUE_IN_DAYS,
    )
