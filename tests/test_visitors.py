import time
from datetime import datetime, timedelta, timezone

import pytest

from database import VISITORS, start_of_local_day, utcnow


def test_track_visitor_appends_records(client, catalog):
    for _ in range(3):
        res = client.post("/api/track-visitor")
        assert res.status_code == 200
        assert res.json() == {"message": "Visitor Tracked"}
    assert catalog.count_documents(VISITORS) == 3


def test_visitor_view_counts(client, catalog):
    now = utcnow()
    catalog.track_visitor(now)
    catalog.track_visitor(now - timedelta(minutes=10))
    catalog.track_visitor(now - timedelta(days=1))

    expected_today = 2 if now - timedelta(minutes=10) >= start_of_local_day(now) else 1
    assert catalog.visitor_stats(now) == {"total": 3, "today": expected_today, "live": 1}

    res = client.get("/api/visitor-view")
    assert res.status_code == 200
    stats = res.json()
    assert stats["total"] == 3
    assert stats["live"] == 1
    assert stats["today"] in (1, 2)


def test_visitor_view_empty(client):
    assert client.get("/api/visitor-view").json() == {"total": 0, "today": 0, "live": 0}


def test_start_of_local_day():
    now = datetime(2024, 6, 15, 13, 45, 10)
    midnight = start_of_local_day(now)
    assert midnight <= now
    assert now - midnight < timedelta(days=1)
    local = midnight.replace(tzinfo=timezone.utc).astimezone()
    assert (local.hour, local.minute, local.second) == (0, 0, 0)


@pytest.mark.skipif(not hasattr(time, "tzset"), reason="needs time.tzset")
def test_start_of_local_day_across_dst_changes(monkeypatch):
    monkeypatch.setenv("TZ", "EST5EDT,M3.2.0,M11.1.0")
    time.tzset()
    try:
        # spring forward: midnight is still EST
        assert start_of_local_day(datetime(2024, 3, 10, 18, 0)) == datetime(2024, 3, 10, 5, 0)
        # fall back: midnight is still EDT
        assert start_of_local_day(datetime(2024, 11, 3, 18, 0)) == datetime(2024, 11, 3, 4, 0)
    finally:
        monkeypatch.undo()
        time.tzset()
