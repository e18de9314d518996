# =============================================
# File: catalog_scoring/utils/ratelimit.py
# Purpose: In-memory per-key sliding-window limiter for the compare endpoint
# =============================================

from __future__ import annotations
import math
import os
import threading
import time
from collections import deque
from typing import Deque, Dict

from .envcfg import to_positive_int

# key -> request timestamps inside the current window
_hits: Dict[str, Deque[float]] = {}
_lock = threading.Lock()


class RateLimitExceeded(RuntimeError):
    def __init__(self, key: str, retry_after: int) -> None:
        super().__init__(f"rate limit exceeded for {key}")
        self.key = key
        self.retry_after = retry_after


def _limits() -> tuple[int, int]:
    # read per call so tests and env overrides apply immediately
    return (
        to_positive_int(os.getenv("RL_MAX_REQS"), 60),
        to_positive_int(os.getenv("RL_WINDOW_SECONDS"), 60),
    )


def check_rate_limit(key: str) -> None:
    """Count one request for `key`; raise RateLimitExceeded once the window budget is spent."""
    max_reqs, window_s = _limits()
    now = time.monotonic()
    with _lock:
        dq = _hits.setdefault(key, deque())
        while dq and dq[0] <= now - window_s:
            dq.popleft()
        if len(dq) >= max_reqs:
            retry_after = max(1, math.ceil(dq[0] + window_s - now))
            raise RateLimitExceeded(key, retry_after)
        dq.append(now)


def reset_rate_limit() -> None:
    with _lock:
        _hits.clear()
