# =============================================
# File: catalog_scoring/utils/normalize.py
# Purpose: Cohort-relative rescaling, damped velocity and freshness decay
# =============================================
from __future__ import annotations
import math
from typing import Dict, Hashable, Iterable, List, Mapping, Sequence

from .coerce import clamp


def scale_to_max(raw: float, max_value: float) -> float:
    if raw > 0 and max_value > 0:
        return (raw / max_value) * 100.0
    return 0.0


def velocity_raw(recent: float, previous: float, smoothing: float) -> float:
    """
    Damped growth of `recent` over `previous`, floored at 0.
    The additive smoothing keeps previous == 0 finite. smoothing == 0 with
    previous == 0 has no ratio; that case scores 0.
    """
    denominator = previous + smoothing
    if denominator <= 0:
        return 0.0
    return max(0.0, (recent + smoothing) / denominator - 1.0)


def freshness(age_days: float, half_life_days: float) -> float:
    """100 at launch, exponential decay towards 0 with age."""
    if half_life_days <= 0:
        return 0.0
    age = max(0.0, age_days)
    return clamp(100.0 * math.exp(-age / half_life_days), 0.0, 100.0)


def cohort_maxima(rows: Iterable[Mapping[str, float]], cohort_key: str, metrics: Sequence[str]) -> Dict[Hashable, Dict[str, float]]:
    """Pass 1: per-cohort maximum of each metric."""
    maxima: Dict[Hashable, Dict[str, float]] = {}
    for row in rows:
        bucket = maxima.setdefault(row[cohort_key], {m: 0.0 for m in metrics})
        for m in metrics:
            if row[m] > bucket[m]:
                bucket[m] = float(row[m])
    return maxima


def normalize_cohorts(rows: List[Dict[str, float]], cohort_key: str, metrics: Sequence[str], prefix: str = "norm_") -> List[Dict[str, float]]:
    """
    Pass 2: add `<prefix><metric>` to each row, scaled 0-100 against its cohort's maximum.
    A cohort whose metric is 0 everywhere normalizes to 0 for every member.
    """
    maxima = cohort_maxima(rows, cohort_key, metrics)
    for row in rows:
        cohort_max = maxima[row[cohort_key]]
        for m in metrics:
            row[prefix + m] = scale_to_max(float(row[m]), cohort_max[m])
    return rows
