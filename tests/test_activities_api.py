"""Query API: /api/activities, /session, /stats."""
from datetime import datetime, timedelta, timezone

import pytest

from apps.storefront.database import StoreUninitializedError, utcnow
from apps.storefront.deps import get_activity_repository
from apps.storefront.models.activity_log import ActivityLog
from apps.storefront.routers.activities import parse_limit, parse_rfc3339
from apps.storefront.services.activity_log import PersistenceError


def _seed(repo, n, **kw):
    for i in range(n):
        data = {
            "session_id": "seed",
            "request_id": f"seed-{i}",
            "activity_type": "page_view",
            "path": "/",
            "method": "GET",
            "status_code": 200,
            "user_currency": "USD",
        }
        data.update(kw)
        repo.record(ActivityLog(**data))


def test_recent_default_limit_is_100(client, repo):
    _seed(repo, 105)
    r = client.get("/api/activities")
    assert r.status_code == 200
    assert len(r.json()) == 100


@pytest.mark.parametrize("limit", ["-5", "0", "abc", "2.5", ""])
def test_recent_invalid_limit_falls_back_to_default(client, repo, limit):
    _seed(repo, 105)
    r = client.get("/api/activities", params={"limit": limit})
    assert r.status_code == 200
    assert len(r.json()) == 100


def test_recent_explicit_limit(client, repo):
    _seed(repo, 5)
    r = client.get("/api/activities?limit=3")
    assert [a["request_id"] for a in r.json()] == ["seed-4", "seed-3", "seed-2"]


def test_recent_empty_store_is_empty_array(client):
    r = client.get("/api/activities")
    assert r.status_code == 200
    assert r.json() == []


def test_session_activities_only_for_caller(client, repo):
    _seed(repo, 3, session_id="someone-else")
    client.get("/")
    client.post("/cart", data={"product_id": "SKU1", "quantity": "1"})
    own_session = client.cookies.get("shop_session-id")

    r = client.get("/api/activities/session")
    assert r.status_code == 200
    rows = r.json()
    assert [a["activity_type"] for a in rows] == ["add_to_cart", "page_view"]
    assert all(a["session_id"] == own_session for a in rows)


def test_session_activities_default_limit_is_50(client, repo):
    client.get("/")
    sid = client.cookies.get("shop_session-id")
    _seed(repo, 60, session_id=sid)
    r = client.get("/api/activities/session", params={"limit": "-1"})
    assert len(r.json()) == 50
    assert len(client.get("/api/activities/session?limit=7").json()) == 7


def test_stats_default_window_and_malformed_start(client, repo, activity_store):
    _seed(repo, 2, activity_type="page_view")
    _seed(repo, 1, activity_type="checkout")
    with activity_store.session() as db:
        db.add(ActivityLog(
            session_id="old", request_id="old-1", activity_type="add_to_cart", path="/cart",
            method="POST", status_code=200, user_currency="USD",
            created_at=utcnow() - timedelta(hours=30),
        ))
        db.commit()

    r = client.get("/api/activities/stats")
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("application/json")
    assert r.json() == {"page_view": 2, "checkout": 1}

    # earlier stats requests are themselves recorded as "other"
    bad = client.get("/api/activities/stats", params={"start": "yesterday", "end": "not-a-time"})
    assert bad.status_code == 200
    counts = bad.json()
    assert counts["page_view"] == 2
    assert counts["checkout"] == 1
    assert "add_to_cart" not in counts

    wide_start = (datetime.now(timezone.utc) - timedelta(hours=48)).isoformat()
    wide = client.get("/api/activities/stats", params={"start": wide_start})
    counts = wide.json()
    assert counts["add_to_cart"] == 1
    assert counts["page_view"] == 2
    assert counts["other"] == 2


def test_stats_explicit_window_with_z_suffix(client, repo, activity_store):
    at = datetime(2026, 5, 1, 10, 0, 0)
    with activity_store.session() as db:
        db.add(ActivityLog(
            session_id="s", request_id="r", activity_type="currency_change", path="/setCurrency",
            method="POST", status_code=302, user_currency="USD", created_at=at,
        ))
        db.commit()
    r = client.get(
        "/api/activities/stats",
        params={"start": "2026-05-01T09:00:00Z", "end": "2026-05-01T10:00:00Z"},
    )
    assert r.json() == {"currency_change": 1}


class _BrokenRepo:
    def __init__(self, exc):
        self.exc = exc

    def list_recent(self, limit):
        raise self.exc

    def list_by_session(self, session_id, limit):
        raise self.exc

    def stats_by_type(self, start, end):
        raise self.exc


@pytest.mark.parametrize(
    "url,message",
    [
        ("/api/activities", "failed to get activities"),
        ("/api/activities/session", "failed to get session activities"),
        ("/api/activities/stats", "failed to get activity stats"),
    ],
)
def test_repository_failure_returns_500_envelope(client, url, message):
    from apps.storefront.main import app

    exc = PersistenceError("list recent activities", Exception("database is locked"))
    app.dependency_overrides[get_activity_repository] = lambda: _BrokenRepo(exc)
    r = client.get(url, headers={"X-Request-Id": "trace-500"})
    assert r.status_code == 500
    assert r.headers["content-type"].startswith("application/json")
    body = r.json()
    assert body["code"] == "internal_error"
    assert body["error"] == "internal_error"
    assert body["message"] == message
    assert body["trace_id"] == "trace-500"
    assert "database is locked" in body["detail"]
    assert r.headers["X-Request-Id"] == "trace-500"


def test_uninitialized_store_returns_500(client):
    from apps.storefront.main import app

    app.dependency_overrides[get_activity_repository] = lambda: _BrokenRepo(
        StoreUninitializedError("activity store is not initialized")
    )
    r = client.get("/api/activities")
    assert r.status_code == 500
    assert "not initialized" in r.json()["detail"]


@pytest.mark.parametrize(
    "raw,default,expected",
    [(None, 100, 100), ("", 100, 100), ("10", 100, 10), ("-5", 100, 100), ("0", 50, 50), ("x", 50, 50)],
)
def test_parse_limit(raw, default, expected):
    assert parse_limit(raw, default) == expected


def test_parse_rfc3339():
    assert parse_rfc3339("2026-01-02T03:04:05Z") == datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    assert parse_rfc3339("2026-01-02T03:04:05+02:00").utcoffset() == timedelta(hours=2)
    assert parse_rfc3339("2026-01-02T03:04:05") is None
    assert parse_rfc3339("2026-01-02") is None
    assert parse_rfc3339("garbage") is None
    assert parse_rfc3339(None) is None


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("2026-05-01T09:00:00.5Z", datetime(2026, 5, 1, 9, 0, 0, 500000, tzinfo=timezone.utc)),
        ("2026-05-01T09:00:00.12Z", datetime(2026, 5, 1, 9, 0, 0, 120000, tzinfo=timezone.utc)),
        (
            "2026-05-01T11:00:00.123456789+02:00",
            datetime(2026, 5, 1, 9, 0, 0, 123456, tzinfo=timezone.utc),
        ),
    ],
)
def test_parse_rfc3339_any_fraction_length(raw, expected):
    assert parse_rfc3339(raw) == expected


def test_stats_window_with_short_fraction(client, activity_store):
    with activity_store.session() as db:
        db.add(ActivityLog(
            session_id="s", request_id="r", activity_type="checkout", path="/cart/checkout",
            method="POST", status_code=200, user_currency="USD",
            created_at=datetime(2026, 5, 1, 9, 30, 0),
        ))
        db.commit()
    r = client.get(
        "/api/activities/stats",
        params={"start": "2026-05-01T09:00:00.5Z", "end": "2026-05-01T10:00:00.5Z"},
    )
    assert r.json() == {"checkout": 1}
