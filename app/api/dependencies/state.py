# app/api/dependencies/state.py
from fastapi import Request

from app.services.authorization import AuthorizationBroker
from app.services.session_finalizer import Clock
from app.services.session_registry import SessionRegistry


def get_registry(request: Request) -> SessionRegistry:
    return request.app.state.session_registry


def get_broker(request: Request) -> AuthorizationBroker:
    return request.app.state.authorization_broker


def get_clock(request: Request) -> Clock:
    return request.app.state.clock
