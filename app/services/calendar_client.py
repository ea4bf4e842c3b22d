# app/services/calendar_client.py
from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, time, timezone
from typing import Any, Dict, Optional

import httpx

from app.core.config import get_settings
from app.schemas.meeting_instance import MeetingInstanceRead
from app.schemas.task import TaskRead
from app.services.session_finalizer import CalendarSync, SyncOutcome, TaskStore

logger = logging.getLogger(__name__)

DEFAULT_CALENDAR_BASE_URL = "https://www.googleapis.com/calendar/v3"

NOTES_START = "---SYNC-NOTES---"
NOTES_END = "---END-SYNC-NOTES---"
TASKS_START = "---SYNC-TASKS---"
TASKS_END = "---END-SYNC-TASKS---"


class CalendarClientError(RuntimeError):
    """
    Raised when a calendar API call fails in a non-recoverable way.
    ``status_code`` is set when the API answered with an error status.
    """

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class CalendarClient:
    """
    Minimal calendar API client acting on behalf of one user.

    Responsibilities
    ----------------
    - Attach the user's bearer token (obtained through the authorization
      step) to every request.
    - Provide thin GET/PATCH helpers returning JSON payloads.
    - Avoid leaking HTTP client details into the rest of the codebase.
    """

    def __init__(
        self,
        access_token: str,
        base_url: str = DEFAULT_CALENDAR_BASE_URL,
        calendar_id: str = "primary",
        timeout_seconds: float = 10.0,
    ) -> None:
        if not access_token:
            raise ValueError("access_token is required")

        self._access_token = access_token
        self._base_url = base_url.rstrip("/")
        self._calendar_id = calendar_id
        self._timeout_seconds = timeout_seconds

    @property
    def events_path(self) -> str:
        return f"/calendars/{self._calendar_id}/events"

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
    ) -> httpx.Response:
        """
        Issue an authenticated HTTP request relative to the base URL.
        """
        url = f"{self._base_url}/{path.lstrip('/')}"
        headers = {
            "Authorization": f"Bearer {self._access_token}",
            "Accept": "application/json",
        }

        try:
            async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
                resp = await client.request(
                    method=method.upper(),
                    url=url,
                    headers=headers,
                    params=params,
                    json=json,
                )
        except httpx.HTTPError as exc:
            raise CalendarClientError(f"Calendar {method.upper()} failed: {exc}") from exc

        if resp.status_code // 100 != 2:
            raise CalendarClientError(
                f"Calendar {method.upper()} failed (status={resp.status_code}): {resp.text}",
                status_code=resp.status_code,
            )
        return resp

    async def get_json(self, path: str, *, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        resp = await self._request("GET", path, params=params)
        return self._decode(resp, "GET")

    async def patch_json(
        self,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
    ) -> Dict[str, Any]:
        resp = await self._request("PATCH", path, params=params, json=json)
        return self._decode(resp, "PATCH")

    @staticmethod
    def _decode(resp: httpx.Response, method: str) -> Dict[str, Any]:
        try:
            return resp.json()
        except ValueError as exc:
            raise CalendarClientError(
                f"Calendar {method} returned a non-JSON body (status={resp.status_code})"
            ) from exc

    async def find_event_instance(self, event_id: str, occurrence_date) -> Optional[dict]:
        """
        Find the instance of a recurring event on ``occurrence_date``.

        The whole UTC day is searched so the instance is found regardless of
        the event's time zone.
        """
        day_start = datetime.combine(occurrence_date, time.min, tzinfo=timezone.utc)
        day_end = datetime.combine(occurrence_date, time(23, 59, 59), tzinfo=timezone.utc)
        payload = await self.get_json(
            f"{self.events_path}/{event_id}/instances",
            params={"timeMin": day_start.isoformat(), "timeMax": day_end.isoformat()},
        )
        items = payload.get("items", [])
        return items[0] if items else None

    async def update_event_description(self, event_id: str, description: str) -> Dict[str, Any]:
        return await self.patch_json(
            f"{self.events_path}/{event_id}",
            params={"sendUpdates": "all"},
            json={"description": description},
        )


def build_event_description(instance: MeetingInstanceRead, tasks: list[TaskRead]) -> str:
    """
    Minutes and action items written into the calendar event description.
    """
    if tasks:
        task_lines = "\n".join(
            f"- [ ] {t.title} (To: {', '.join(t.assignee_ids) or 'Unassigned'}, "
            f"Due: {t.due_date.isoformat()})"
            for t in tasks
        )
    else:
        task_lines = "No action items were created from this session."

    return (
        f"{NOTES_START}\n{instance.notes_text}\n{NOTES_END}\n\n"
        f"{TASKS_START}\n{task_lines}\n{TASKS_END}"
    )


class CalendarEventSync(CalendarSync):
    """
    CalendarSync that writes a finalized session onto the matching instance
    of the series' calendar event.

    A 401 from the calendar API calls ``on_unauthorized`` so the stale token
    can be dropped; the user is asked to authorize again on the next finalize.
    """

    def __init__(
        self,
        client: CalendarClient,
        event_id: str,
        task_store: TaskStore,
        on_unauthorized: Optional[Callable[[], None]] = None,
    ) -> None:
        self.client = client
        self.event_id = event_id
        self.task_store = task_store
        self.on_unauthorized = on_unauthorized

    async def try_sync(self, instance: MeetingInstanceRead) -> SyncOutcome:
        try:
            event = await self.client.find_event_instance(self.event_id, instance.occurrence_date)
            if event is None or not event.get("id"):
                return SyncOutcome(
                    success=False,
                    error="Could not find the specific meeting instance in your calendar.",
                )
            tasks = await self.task_store.get_tasks(instance.task_ids)
            await self.client.update_event_description(
                event["id"], build_event_description(instance, tasks)
            )
        except CalendarClientError as exc:
            logger.warning("Calendar sync for instance=%s failed: %s", instance.id, exc)
            if exc.status_code == 401 and self.on_unauthorized is not None:
                self.on_unauthorized()
            return SyncOutcome(success=False, error=str(exc))
        except Exception as exc:
            logger.exception("Calendar sync for instance=%s failed unexpectedly", instance.id)
            return SyncOutcome(success=False, error=f"Calendar sync failed: {exc}")

        return SyncOutcome(success=True)


def build_calendar_client(access_token: str) -> CalendarClient:
    """
    Construct a CalendarClient for ``access_token`` using application settings.
    """
    settings = get_settings()
    return CalendarClient(
        access_token=access_token,
        base_url=str(settings.CALENDAR_BASE_URL or DEFAULT_CALENDAR_BASE_URL),
        calendar_id=settings.CALENDAR_ID,
        timeout_seconds=settings.CALENDAR_TIMEOUT_SECONDS,
    )
