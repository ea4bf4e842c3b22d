# app/services/authorization.py
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

AuthorizationCallback = Callable[[str], Awaitable[None]]


class AuthSignal(ABC):
    """
    External authorization step required before calendar-linked sessions can
    be finalized.
    """

    @abstractmethod
    def is_authorized(self, actor_id: str) -> bool:
        ...

    @abstractmethod
    def on_authorization_completed(self, callback: AuthorizationCallback) -> None:
        """Register ``callback(actor_id)`` for completed authorizations."""


class AuthorizationBroker(AuthSignal):
    """
    In-process AuthSignal holding calendar access tokens per actor.

    Tokens live in memory for this process only. ``complete()`` is called by
    the host once the user finished the provider's consent flow.
    """

    def __init__(self) -> None:
        self._tokens: dict[str, str] = {}
        self._callbacks: list[AuthorizationCallback] = []

    def is_authorized(self, actor_id: str) -> bool:
        return actor_id in self._tokens

    def access_token(self, actor_id: str) -> str | None:
        return self._tokens.get(actor_id)

    def on_authorization_completed(self, callback: AuthorizationCallback) -> None:
        self._callbacks.append(callback)

    def revoke(self, actor_id: str) -> None:
        self._tokens.pop(actor_id, None)

    async def complete(self, actor_id: str, access_token: str) -> None:
        """
        Store the actor's token and notify every registered callback.
        """
        self._tokens[actor_id] = access_token
        logger.info("Authorization completed for actor=%s", actor_id)
        for callback in list(self._callbacks):
            await callback(actor_id)
