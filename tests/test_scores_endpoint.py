# =============================================
# File: tests/test_scores_endpoint.py
# Purpose: Recompute triggers and score read-back over HTTP
# =============================================
import sys, os
sys.path.append(os.path.dirname(os.path.dirname(__file__)))

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from catalog_scoring.db.locks import try_advisory_lock
from catalog_scoring.db.models import utcnow
from catalog_scoring.db.repo import get_engine
from catalog_scoring.services.trending_score import trending_lock_key
from catalog_scoring.utils.metrics import reset as metrics_reset

RECENT = utcnow() - timedelta(days=1)


@pytest.fixture
def client(engine):
    metrics_reset()
    from catalog_scoring.main import app
    app.dependency_overrides[get_engine] = lambda: engine
    yield TestClient(app)
    app.dependency_overrides.clear()


def _catalog(seed):
    phones = [seed.product(f"Phone {i}") for i in range(3)]
    tv = seed.product("TV", product_type="tv")
    for n, pid in zip((30, 20, 10), phones):
        seed.views(pid, n, RECENT)
    seed.views(tv, 5, RECENT)
    return phones, tv


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_recompute_trending_then_read(client, seed):
    phones, tv = _catalog(seed)
    r = client.post("/scores/recompute/trending")
    assert r.status_code == 200
    assert r.json() == {"ok": True, "skipped": False, "updated": 4, "days": 7}

    rows = client.get("/scores/trending", params={"product_type": "smartphone", "limit": 2}).json()
    assert [row["product_id"] for row in rows] == phones[:2]
    assert rows[0]["views_7d"] == 30
    assert rows[0]["product_type"] == "smartphone"

    all_rows = client.get("/scores/trending").json()
    assert len(all_rows) == 4


def test_recompute_hook_single_type_and_all(client, seed):
    phones, tv = _catalog(seed)
    r = client.post("/scores/recompute/hook", params={"product_type": "smartphone", "days": 3})
    assert r.json() == {"ok": True, "skipped": False, "updated": 3, "product_type": "smartphone", "days": 3}

    r = client.post("/scores/recompute/hook")
    body = r.json()
    assert body["updated"] == 4
    assert set(body["results"]) == {"smartphone", "laptop", "tv"}

    rows = client.get("/scores/hook", params={"product_type": "smartphone"}).json()
    assert [row["product_id"] for row in rows] == phones
    scores = [row["hook_score"] for row in rows]
    assert scores == sorted(scores, reverse=True)


def test_skipped_run_is_not_an_error(client, engine, seed):
    _catalog(seed)
    with engine.connect() as conn, try_advisory_lock(conn, trending_lock_key()):
        r = client.post("/scores/recompute/trending")
    assert r.status_code == 200
    assert r.json()["skipped"] is True
    assert r.json()["updated"] == 0


@pytest.mark.parametrize("method,path,params", [
    ("post", "/scores/recompute/popularity", {}),
    ("post", "/scores/recompute/hook", {"product_type": "fridge"}),
    ("get", "/scores/hook", {"product_type": "fridge"}),
])
def test_bad_family_or_type_is_400(client, method, path, params):
    r = getattr(client, method)(path, params=params)
    assert r.status_code == 400


def test_metrics_track_recompute_runs(client, engine, seed):
    _catalog(seed)
    client.post("/scores/recompute/trending")
    with engine.connect() as conn, try_advisory_lock(conn, trending_lock_key()):
        client.post("/scores/recompute/trending")

    m = client.get("/metrics").json()
    trending = m["recompute"]["trending-score"]
    assert trending["runs"] == 2
    assert trending["skipped"] == 1
    assert trending["rows_updated"] == 4
    assert m["counters"]["requests_total"] >= 2
    assert "POST /scores/recompute/trending" in m["performance"]["endpoints"]


def test_metrics_family_filter(client, seed):
    _catalog(seed)
    client.post("/scores/recompute/trending")
    client.post("/scores/recompute/hook", params={"product_type": "tv"})

    m = client.get("/metrics", params={"family": "hook-score"}).json()
    assert set(m["recompute"]) == {"hook-score:tv"}
    assert "trending-score" in m["performance"]["recompute"]
