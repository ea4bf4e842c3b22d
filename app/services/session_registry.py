# app/services/session_registry.py
from __future__ import annotations

from app.schemas.session import SessionState, SessionStatus

SessionKey = tuple[int, str]


class SessionRegistry:
    """
    In-memory store of open sessions keyed by (series_id, actor_id).

    Sessions are working state only; losing them (e.g. on restart) loses the
    unsaved notes buffer but never persisted history.
    """

    def __init__(self) -> None:
        self._states: dict[SessionKey, SessionState] = {}

    def get(self, series_id: int, actor_id: str) -> SessionState:
        return self._states.get((series_id, actor_id), SessionState())

    def save(self, series_id: int, actor_id: str, state: SessionState) -> SessionState:
        if state.status == SessionStatus.IDLE:
            self._states.pop((series_id, actor_id), None)
        else:
            self._states[(series_id, actor_id)] = state
        return state

    def suspended_for(self, actor_id: str) -> list[tuple[int, SessionState]]:
        """
        Sessions of ``actor_id`` waiting for authorization, as (series_id, state).
        """
        return [
            (series_id, state)
            for (series_id, actor), state in self._states.items()
            if actor == actor_id and state.status == SessionStatus.SUSPENDED_PENDING_AUTH
        ]

    def __len__(self) -> int:
        return len(self._states)
