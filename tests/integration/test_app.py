"""
HTTP-level tests for the FastAPI app.

Covers:
    - POST /links (201 anonymous & authenticated, 409, 422, bad credentials)
    - GET /links (owner scoping, empty list, auth required)
    - GET /{code} (302 + counting, 404, 410)
    - GET /analytics and /analytics/{code} (dense series, 400, 404 for foreign codes)
"""

from datetime import date, datetime, timedelta, timezone

DEMO_AUTH = ("shortlink_demo", "shortlink_demo")
ADMIN_AUTH = ("shortlink_admin", "shortlink_admin")


def _create(client, auth=None, **payload):
    return client.post("/links", json=payload, auth=auth)


def test_health_returns_ok(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_create_anonymous_link(client):
    resp = _create(client, targetUrl="https://example.com/a/b?c=1")
    assert resp.status_code == 201
    data = resp.json()
    assert data["targetUrl"] == "https://example.com/a/b?c=1"
    assert 6 <= len(data["code"]) <= 8
    assert data["ownerId"] is None
    assert data["createdAt"]
    assert data["shortUrl"].endswith("/" + data["code"])


def test_create_with_custom_code_and_ttl(client):
    resp = _create(client, DEMO_AUTH, targetUrl="https://x.com", customCode="promo", ttlSeconds=3600)
    assert resp.status_code == 201
    data = resp.json()
    assert data["code"] == "promo"
    assert data["ownerId"] == "shortlink_demo"
    created = datetime.fromisoformat(data["createdAt"])
    expires = datetime.fromisoformat(data["expiresAt"])
    assert expires - created == timedelta(hours=1)


def test_custom_code_conflict_returns_409(client):
    assert _create(client, targetUrl="https://x.com", customCode="promo").status_code == 201
    resp = _create(client, targetUrl="https://y.com", customCode="promo")
    assert resp.status_code == 409
    assert "promo" in resp.json()["detail"]


def test_disallowed_scheme_returns_422(client):
    resp = _create(client, targetUrl="javascript:alert(1)")
    assert resp.status_code == 422
    assert "http" in resp.json()["detail"]


def test_bad_custom_code_returns_422(client):
    assert _create(client, targetUrl="https://x.com", customCode="bad code").status_code == 422


def test_huge_ttl_returns_422(client, storage):
    resp = _create(client, targetUrl="https://x.com", ttlSeconds=10**12)
    assert resp.status_code == 422
    assert storage.links == {}


def test_bad_credentials_on_create_return_401(client):
    resp = _create(client, ("shortlink_demo", "nope"), targetUrl="https://x.com")
    assert resp.status_code == 401


def test_redirect_302_and_click_count(client, storage):
    code = _create(client, targetUrl="https://example.com/landing").json()["code"]

    first = client.get(f"/{code}")
    assert first.status_code == 302
    assert first.headers["location"] == "https://example.com/landing"
    assert storage.get(code).click_count == 1

    client.get(f"/{code}")
    assert storage.get(code).click_count == 2


def test_redirect_unknown_returns_404(client):
    assert client.get("/doesNotExist").status_code == 404


def test_redirect_expired_returns_410(client, storage):
    past = datetime.now(timezone.utc) - timedelta(days=2)
    storage.create_if_absent("gone001", "https://x.com", created_at=past, expires_at=past + timedelta(hours=1))
    resp = client.get("/gone001")
    assert resp.status_code == 410
    assert storage.get("gone001").click_count == 0


def test_list_links_scoped_to_owner(client):
    _create(client, DEMO_AUTH, targetUrl="https://a.com")
    _create(client, DEMO_AUTH, targetUrl="https://b.com")
    _create(client, ADMIN_AUTH, targetUrl="https://c.com")
    _create(client, targetUrl="https://anon.com")

    demo = client.get("/links", auth=DEMO_AUTH)
    assert demo.status_code == 200
    assert [l["targetUrl"] for l in demo.json()] == ["https://a.com", "https://b.com"]
    assert [l["targetUrl"] for l in client.get("/links", auth=ADMIN_AUTH).json()] == ["https://c.com"]


def test_list_links_empty_is_not_an_error(client):
    resp = client.get("/links", auth=DEMO_AUTH)
    assert resp.status_code == 200
    assert resp.json() == []


def test_list_links_requires_auth(client):
    assert client.get("/links").status_code == 401


def test_code_analytics_dense_series(client):
    code = _create(client, DEMO_AUTH, targetUrl="https://a.com").json()["code"]
    client.get(f"/{code}")
    client.get(f"/{code}")

    today = datetime.now(timezone.utc).date()
    start = today - timedelta(days=2)
    resp = client.get(
        f"/analytics/{code}",
        params={"start": start.isoformat(), "end": today.isoformat()},
        auth=DEMO_AUTH,
    )
    assert resp.status_code == 200
    assert resp.json() == [
        {"date": (today - timedelta(days=2)).isoformat(), "count": 0},
        {"date": (today - timedelta(days=1)).isoformat(), "count": 0},
        {"date": today.isoformat(), "count": 2},
    ]


def test_owner_analytics_default_window(client):
    code = _create(client, DEMO_AUTH, targetUrl="https://a.com").json()["code"]
    client.get(f"/{code}")
    resp = client.get("/analytics", auth=DEMO_AUTH)
    assert resp.status_code == 200
    series = resp.json()
    assert len(series) == client.app.state.service.aggregator.default_range_days
    assert series[-1] == {"date": datetime.now(timezone.utc).date().isoformat(), "count": 1}
    assert sum(p["count"] for p in series) == 1


def test_analytics_invalid_range_returns_400(client):
    resp = client.get("/analytics", params={"start": "2024-03-05", "end": "2024-03-01"}, auth=DEMO_AUTH)
    assert resp.status_code == 400
    resp = client.get("/analytics", params={"start": "March"}, auth=DEMO_AUTH)
    assert resp.status_code == 400


def test_code_analytics_foreign_or_missing_returns_404(client):
    code = _create(client, ADMIN_AUTH, targetUrl="https://a.com").json()["code"]
    assert client.get(f"/analytics/{code}", auth=DEMO_AUTH).status_code == 404
    assert client.get("/analytics/missing1", auth=DEMO_AUTH).status_code == 404


def test_analytics_requires_auth(client):
    assert client.get("/analytics").status_code == 401
    assert client.get("/analytics/whatever").status_code == 401


def test_owner_analytics_sums_links(client):
    a = _create(client, DEMO_AUTH, targetUrl="https://a.com").json()["code"]
    b = _create(client, DEMO_AUTH, targetUrl="https://b.com").json()["code"]
    for code in (a, a, b):
        client.get(f"/{code}")
    today = date.today().isoformat()
    today_utc = datetime.now(timezone.utc).date().isoformat()
    resp = client.get("/analytics", params={"start": min(today, today_utc), "end": max(today, today_utc)}, auth=DEMO_AUTH)
    assert sum(p["count"] for p in resp.json()) == 3
