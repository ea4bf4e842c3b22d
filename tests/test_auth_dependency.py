# tests/test_auth_dependency.py
from http import HTTPStatus

from app.api.dependencies import auth as auth_module
from tests.conftest import ACTOR_HEADERS


class DummySettingsProd:
    APP_ENV = "prod"
    API_KEY = "supersecret"


class DummySettingsProdUnconfigured:
    APP_ENV = "prod"
    API_KEY = None


def test_series_endpoint_401_when_key_missing_in_prod(monkeypatch, client):
    """
    In a non-local env with API_KEY set, calling a protected endpoint without
    the X-Api-Key header returns 401.
    """
    monkeypatch.setattr(auth_module, "get_settings", lambda: DummySettingsProd())

    resp = client.get("/series")
    assert resp.status_code == HTTPStatus.UNAUTHORIZED
    assert "invalid or missing" in resp.json()["detail"].lower()


def test_series_endpoint_401_when_key_wrong_in_prod(monkeypatch, client):
    monkeypatch.setattr(auth_module, "get_settings", lambda: DummySettingsProd())

    resp = client.get("/series", headers={"X-Api-Key": "wrong-key"})
    assert resp.status_code == HTTPStatus.UNAUTHORIZED


def test_series_endpoint_200_when_key_correct_in_prod(monkeypatch, client):
    monkeypatch.setattr(auth_module, "get_settings", lambda: DummySettingsProd())

    resp = client.get("/series", headers={"X-Api-Key": "supersecret"})
    assert resp.status_code == HTTPStatus.OK
    assert isinstance(resp.json(), list)


def test_missing_api_key_setting_in_prod_is_a_server_error(monkeypatch, client):
    monkeypatch.setattr(auth_module, "get_settings", lambda: DummySettingsProdUnconfigured())

    resp = client.post("/notes/parse", json={"text": "/task x"})
    assert resp.status_code == HTTPStatus.INTERNAL_SERVER_ERROR


def test_actor_header_required_for_attributed_actions(client):
    resp = client.get("/series/999999/session")
    assert resp.status_code == HTTPStatus.BAD_REQUEST
    assert resp.json()["detail"] == "Missing X-Actor-Id header."

    resp = client.get("/series/999999/session", headers=ACTOR_HEADERS)
    assert resp.status_code == HTTPStatus.OK
    assert resp.json()["status"] == "Idle"
