# =============================================
# File: tests/test_logging.py
# Purpose: Structured JSON request logs and the X-Request-ID header
# =============================================
import sys, os, json
sys.path.append(os.path.dirname(os.path.dirname(__file__)))

import pytest
from fastapi.testclient import TestClient

from catalog_scoring.db.repo import get_engine
from catalog_scoring.utils.ratelimit import reset_rate_limit


@pytest.fixture
def client(monkeypatch, engine):
    # generous limiter
    monkeypatch.setenv("RL_MAX_REQS", "100")
    monkeypatch.setenv("RL_WINDOW_SECONDS", "60")
    reset_rate_limit()

    from catalog_scoring.main import app
    app.dependency_overrides[get_engine] = lambda: engine
    yield TestClient(app)
    app.dependency_overrides.clear()
    reset_rate_limit()


def _find_json_events(caplog, name: str):
    events = []
    for rec in caplog.records:
        try:
            data = json.loads(rec.getMessage())
        except ValueError:
            continue
        if isinstance(data, dict) and data.get("event") == name:
            events.append(data)
    return events


def test_structured_log_on_compare(client, caplog):
    caplog.set_level("INFO", logger="catalog_scoring")
    r = client.post("/compare/rank", json={"devices": [{"id": 1, "name": "A"}, {"id": 2, "name": "B"}], "profile": "x"})
    assert r.status_code == 200

    evt = _find_json_events(caplog, "request.completed")[-1]
    assert evt["path"] == "/compare/rank"
    assert evt["method"] == "POST"
    assert evt["status"] == 200
    assert isinstance(evt["latency_ms"], int)
    assert evt["request_id"] == r.headers["X-Request-ID"]
    # router context
    assert evt["device_count"] == 2
    assert evt["profile"] == "x"
    assert evt["rate_limited"] is False


def test_structured_log_on_recompute(client, caplog):
    caplog.set_level("INFO", logger="catalog_scoring")
    client.post("/scores/recompute/trending")

    evt = _find_json_events(caplog, "request.completed")[-1]
    assert evt["family"] == "trending"
    assert evt["status"] == 200


def test_structured_log_rate_limited(client, caplog, monkeypatch):
    caplog.set_level("INFO", logger="catalog_scoring")
    monkeypatch.setenv("RL_MAX_REQS", "1")

    client.post("/compare/rank", json={"devices": []})
    client.post("/compare/rank", json={"devices": []})

    evt = _find_json_events(caplog, "request.completed")[-1]
    assert evt["status"] == 429
    assert evt["rate_limited"] is True


def test_request_ids_are_unique(client):
    ids = {client.get("/health").headers["X-Request-ID"] for _ in range(3)}
    assert len(ids) == 3


def test_recompute_run_events(engine, seed, caplog):
    from catalog_scoring.db.locks import try_advisory_lock
    from catalog_scoring.services.trending_score import recompute_trending_scores, trending_lock_key

    caplog.set_level("INFO", logger="catalog_scoring")
    seed.product("Phone")
    recompute_trending_scores(engine)
    with engine.connect() as conn, try_advisory_lock(conn, trending_lock_key()):
        recompute_trending_scores(engine)

    done = _find_json_events(caplog, "recompute.completed")[-1]
    assert done["family"] == "trending-score"
    assert done["updated"] == 1
    assert isinstance(done["duration_ms"], int)
    skipped = _find_json_events(caplog, "recompute.skipped")[-1]
    assert skipped["lock_key"] == trending_lock_key()
