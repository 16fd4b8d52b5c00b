import pytest


def test_add_and_list_schedules(client):
    body = {"day": "Monday", "time": "20:00", "title": "One Piece", "type": "anime", "channel": "Crunchyroll"}
    res = client.post("/api/schedules", json=body)
    assert res.status_code == 201
    assert res.json()["message"] == "Schedule added!"
    schedule_id = res.json()["id"]

    res = client.get("/api/schedules")
    assert res.status_code == 200
    assert res.json() == [{"_id": schedule_id, **body}]


@pytest.mark.parametrize("missing", ["day", "time", "title", "type"])
def test_add_schedule_requires_fields(client, missing):
    body = {"day": "Friday", "time": "18:30", "title": "Dandadan", "type": "anime"}
    body[missing] = ""
    res = client.post("/api/schedules", json=body)
    assert res.status_code == 400
    assert res.json() == {"error": "All fields are required!"}
    assert client.get("/api/schedules").json() == []


def test_list_schedules_empty(client):
    res = client.get("/api/schedules")
    assert res.status_code == 200
    assert res.json() == []


@pytest.mark.parametrize("kwargs", [{}, {"json": ["Monday", "20:00"]}, {"json": "Monday"}])
def test_add_schedule_bad_body_is_client_error(client, kwargs):
    res = client.post("/api/schedules", **kwargs)
    assert res.status_code == 400
    assert res.json() == {"error": "All fields are required!"}
