# tests/conftest.py
import asyncio
import os
from pathlib import Path

TEST_DB_PATH = Path(__file__).resolve().parent / "test_meeting_series.db"

# Must be set before the app (and its cached settings/engine) is imported.
os.environ["DB_URL"] = f"sqlite+aiosqlite:///{TEST_DB_PATH}"
os.environ["APP_ENV"] = "test"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.db.session import reset_db  # noqa: E402
from app.main import create_app  # noqa: E402
from tests.fakes import FixedClock  # noqa: E402

ACTOR_HEADERS = {"X-Actor-Id": "manager-1"}


@pytest.fixture(scope="session")
def client() -> TestClient:
    """
    Shared TestClient fixture for all API tests.

    Uses a throw-away SQLite file and a fixed clock so date-based endpoints
    are deterministic.
    """
    # Start from empty tables even if a previous run left the file behind
    asyncio.run(reset_db())

    app = create_app()
    app.state.clock = FixedClock()
    with TestClient(app) as test_client:
        yield test_client

    if TEST_DB_PATH.exists():
        TEST_DB_PATH.unlink()
