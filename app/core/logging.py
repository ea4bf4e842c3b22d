# app/core/logging.py
import logging
import sys

from app.core.config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    """
    Configure the root logger once for the service.

    Module loggers (``logging.getLogger(__name__)``) propagate to the root
    handler installed here, so calling this again only adjusts the level.
    """
    settings = get_settings()
    resolved = (level or settings.LOG_LEVEL or "INFO").upper()

    root = logging.getLogger()
    if not any(getattr(h, "_meeting_series", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._meeting_series = True  # type: ignore[attr-defined]
        root.addHandler(handler)

    root.setLevel(resolved)
    # SQL echo is controlled by the engine, keep the library quiet otherwise.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
