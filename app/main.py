# app/main.py
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.api.routes import health, notes, series, sessions
from app.core.config import get_settings
from app.core.logging import configure_logging
from app.db.session import AsyncSessionLocal, init_db
from app.services.authorization import AuthorizationBroker
from app.services.session_finalizer import Clock
from app.services.session_registry import SessionRegistry
from app.services.session_service import resume_suspended_sessions


def create_app() -> FastAPI:
    """
    Application factory for the Meeting Series service.
    """
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):  # pragma: no cover
        await init_db()
        yield

    app = FastAPI(
        title=settings.APP_NAME,
        description=(
            "Backend service for recurring meeting series: computes occurrences,\n"
            "detects missed sessions, turns command lines in live notes into tasks\n"
            "and finalizes sessions into an append-only history."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    # Per-app session state and authorization signal
    app.state.clock = Clock()
    app.state.session_registry = SessionRegistry()
    app.state.authorization_broker = AuthorizationBroker()

    async def on_authorization_completed(actor_id: str) -> None:
        await resume_suspended_sessions(
            app.state.session_registry,
            app.state.authorization_broker,
            AsyncSessionLocal,
            actor_id,
            clock=app.state.clock,
        )

    app.state.authorization_broker.on_authorization_completed(on_authorization_completed)

    # Routers
    app.include_router(health.router)
    app.include_router(series.router)
    app.include_router(notes.router)
    app.include_router(sessions.router)

    return app


app = create_app()
