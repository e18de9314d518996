# =============================================
# File: catalog_scoring/utils/timing.py
# Purpose: Wall-clock timing for recompute runs and request handlers
# =============================================
from __future__ import annotations
import time
from contextlib import contextmanager
from typing import Callable, Iterator


def elapsed_ms(t0: float) -> int:
    return int((time.perf_counter() - t0) * 1000)


@contextmanager
def timer() -> Iterator[Callable[[], int]]:
    """Yield a callable returning milliseconds elapsed since the block was entered."""
    t0 = time.perf_counter()
    yield lambda: elapsed_ms(t0)
