# =============================================
# File: catalog_scoring/utils/metrics.py
# Purpose: In-process counters for recompute runs, compare requests and endpoint latency
# =============================================
from __future__ import annotations
from collections import deque
from typing import Any, Deque, Dict, Iterable
import threading
import time

_lock = threading.Lock()

_MAX_SAMPLES = 1000

_COUNTER_NAMES = (
    "requests_total",
    "rate_limit_hits_total",
    "compare_rankings_total",
    "compare_devices_total",
)
_counters: Dict[str, int] = dict.fromkeys(_COUNTER_NAMES, 0)

# family ("hook-score:smartphone", "trending-score") -> {runs, skipped, failed, rows_updated}
_recompute: Dict[str, Dict[str, int]] = {}
_recompute_ms: Dict[str, Deque[float]] = {}
_last_run_at: Dict[str, float] = {}

# "METHOD /path" -> recent latencies (ms)
_endpoint_ms: Dict[str, Deque[float]] = {}
_endpoint_counts: Dict[str, int] = {}


def _samples(store: Dict[str, Deque[float]], key: str) -> Deque[float]:
    return store.setdefault(key, deque(maxlen=_MAX_SAMPLES))


def _summary(values: Iterable[float]) -> Dict[str, float]:
    xs = sorted(values)
    if not xs:
        return {"avg_latency_ms": 0.0, "p95_latency_ms": 0.0}
    return {
        "avg_latency_ms": sum(xs) / len(xs),
        "p95_latency_ms": xs[int(0.95 * (len(xs) - 1))],
    }


def record_recompute(
    family: str,
    *,
    skipped: bool = False,
    failed: bool = False,
    updated: int = 0,
    duration_ms: float | None = None,
) -> None:
    with _lock:
        bucket = _recompute.setdefault(family, {"runs": 0, "skipped": 0, "failed": 0, "rows_updated": 0})
        bucket["runs"] += 1
        bucket["skipped"] += int(skipped)
        bucket["failed"] += int(failed)
        bucket["rows_updated"] += max(0, int(updated))
        if duration_ms is not None:
            _samples(_recompute_ms, family).append(float(duration_ms))
        _last_run_at[family] = time.time()


def record_compare(device_count: int) -> None:
    with _lock:
        _counters["compare_rankings_total"] += 1
        _counters["compare_devices_total"] += max(0, int(device_count))


def record_rate_limit_hit() -> None:
    with _lock:
        _counters["rate_limit_hits_total"] += 1


def record_endpoint(method: str, path: str, latency_ms: float) -> None:
    key = f"{method.upper()} {path}"
    with _lock:
        _counters["requests_total"] += 1
        _endpoint_counts[key] = _endpoint_counts.get(key, 0) + 1
        _samples(_endpoint_ms, key).append(float(latency_ms))


def snapshot() -> Dict[str, Any]:
    with _lock:
        endpoints = {
            key: {"count": float(_endpoint_counts.get(key, 0)), **_summary(buf)}
            for key, buf in _endpoint_ms.items()
        }
        return {
            "counters": dict(_counters),
            "recompute": {k: dict(v) for k, v in _recompute.items()},
            "last_run_at": dict(_last_run_at),
            "performance": {
                "endpoints": endpoints,
                "recompute": {k: _summary(buf) for k, buf in _recompute_ms.items()},
                "generated_at": time.time(),
            },
        }


def reset() -> None:
    with _lock:
        _counters.update(dict.fromkeys(_COUNTER_NAMES, 0))
        for store in (_recompute, _recompute_ms, _last_run_at, _endpoint_ms, _endpoint_counts):
            store.clear()
