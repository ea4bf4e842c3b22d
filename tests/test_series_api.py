# tests/test_series_api.py
from http import HTTPStatus

from tests.conftest import ACTOR_HEADERS


def _build_series_payload(
    title: str = "Platform Weekly Sync",
    anchor_datetime: str = "2025-10-30T10:00:00Z",
    recurrence_rule: str = "weekly",
    **extra,
) -> dict:
    payload = {
        "title": title,
        "anchor_datetime": anchor_datetime,
        "recurrence_rule": recurrence_rule,
        "attendee_ids": ["u1", "u2"],
    }
    payload.update(extra)
    return payload


def _create(client, **kwargs) -> dict:
    response = client.post("/series", json=_build_series_payload(**kwargs), headers=ACTOR_HEADERS)
    assert response.status_code == HTTPStatus.CREATED
    return response.json()


def test_create_series_success(client):
    """
    Creating a series returns 201 with the stored object, attributed to the actor.
    """
    data = _create(client, agenda="1. Roadmap", recurrence_count=10)

    assert isinstance(data["id"], int)
    assert data["title"] == "Platform Weekly Sync"
    assert data["recurrence_rule"] == "weekly"
    assert data["recurrence_count"] == 10
    assert data["agenda"] == "1. Roadmap"
    assert data["attendee_ids"] == ["u1", "u2"]
    assert data["created_by"] == "manager-1"


def test_create_series_rejects_invalid_payload(client):
    response = client.post(
        "/series",
        json=_build_series_payload(recurrence_rule="yearly"),
        headers=ACTOR_HEADERS,
    )
    assert response.status_code == HTTPStatus.UNPROCESSABLE_ENTITY

    response = client.post(
        "/series",
        json=_build_series_payload(recurrence_count=0),
        headers=ACTOR_HEADERS,
    )
    assert response.status_code == HTTPStatus.UNPROCESSABLE_ENTITY


def test_get_and_list_series(client):
    created = _create(client, title="Lookup Me")

    single = client.get(f"/series/{created['id']}")
    assert single.status_code == HTTPStatus.OK
    assert single.json()["title"] == "Lookup Me"

    listed = client.get("/series")
    assert listed.status_code == HTTPStatus.OK
    assert created["id"] in [s["id"] for s in listed.json()]


def test_get_series_404(client):
    response = client.get("/series/999999")

    assert response.status_code == HTTPStatus.NOT_FOUND
    assert "not found" in response.json()["detail"]


def test_occurrences_window_skips_cancelled_dates(client):
    created = _create(client)

    cancel = client.post(
        f"/series/{created['id']}/cancelled-dates",
        json={"occurrence_date": "2025-11-06"},
    )
    assert cancel.status_code == HTTPStatus.OK
    assert cancel.json()["cancelled_dates"] == ["2025-11-06"]

    response = client.get(
        f"/series/{created['id']}/occurrences",
        params={"start": "2025-10-01", "end": "2025-11-20"},
    )
    assert response.status_code == HTTPStatus.OK
    assert response.json()["occurrences"] == ["2025-10-30", "2025-11-13", "2025-11-20"]


def test_occurrences_inverted_window_is_400(client):
    created = _create(client)

    response = client.get(
        f"/series/{created['id']}/occurrences",
        params={"start": "2025-11-20", "end": "2025-11-01"},
    )
    assert response.status_code == HTTPStatus.BAD_REQUEST


def test_next_occurrence_defaults_to_clock(client):
    created = _create(client)

    # Fixed clock: 2025-11-14 09:00 UTC
    response = client.get(f"/series/{created['id']}/next-occurrence")
    assert response.status_code == HTTPStatus.OK
    assert response.json()["next_occurrence"] == "2025-11-20"

    response = client.get(
        f"/series/{created['id']}/next-occurrence",
        params={"as_of": "2025-11-20T11:00:00Z"},
    )
    assert response.json()["next_occurrence"] == "2025-11-27"


def test_next_occurrence_null_for_past_one_off(client):
    created = _create(client, recurrence_rule="none", anchor_datetime="2025-11-01T10:00:00Z")

    response = client.get(f"/series/{created['id']}/next-occurrence")

    assert response.status_code == HTTPStatus.OK
    assert response.json()["next_occurrence"] is None


def test_missed_session_reports_latest_gap(client):
    created = _create(client)

    response = client.get(f"/series/{created['id']}/missed-session")
    assert response.status_code == HTTPStatus.OK
    data = response.json()
    assert data["as_of"] == "2025-11-14"
    assert data["missed_date"] == "2025-11-13"

    response = client.get(
        f"/series/{created['id']}/missed-session", params={"as_of": "2025-10-30"}
    )
    assert response.json()["missed_date"] is None


def test_instances_empty_for_new_series(client):
    created = _create(client)

    response = client.get(f"/series/{created['id']}/instances")

    assert response.status_code == HTTPStatus.OK
    assert response.json() == []


def test_end_series_stops_future_occurrences(client):
    """
    Ending a series keeps its past occurrences but schedules nothing after
    the current time.
    """
    created = _create(client)
    assert client.get(f"/series/{created['id']}/next-occurrence").json()["next_occurrence"] == "2025-11-20"

    ended = client.post(f"/series/{created['id']}/end")
    assert ended.status_code == HTTPStatus.OK
    assert ended.json()["recurrence_end_date"].startswith("2025-11-14T09:00:00")

    next_response = client.get(f"/series/{created['id']}/next-occurrence")
    assert next_response.json()["next_occurrence"] is None

    window = client.get(
        f"/series/{created['id']}/occurrences",
        params={"start": "2025-10-01", "end": "2025-11-30"},
    )
    assert window.json()["occurrences"] == ["2025-10-30", "2025-11-06", "2025-11-13"]

    missed = client.get(f"/series/{created['id']}/missed-session")
    assert missed.json()["missed_date"] == "2025-11-13"


def test_end_series_404(client):
    response = client.post("/series/999999/end")

    assert response.status_code == HTTPStatus.NOT_FOUND
