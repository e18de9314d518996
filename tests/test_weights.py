# =============================================
# File: tests/test_weights.py
# Purpose: Weight-set normalization and weighted-average composition
# =============================================
import sys, os
sys.path.append(os.path.dirname(os.path.dirname(__file__)))

import math
import pytest

from catalog_scoring.utils.weights import (
    DEFAULT_BUYER_INTENT_WEIGHTS,
    DEFAULT_HOOK_SCORE_WEIGHTS,
    DEFAULT_TRENDING_WEIGHTS,
    compose,
    normalize_weights,
)


@pytest.mark.parametrize("weights", [
    {"views": 0, "compares": 0, "wishlist": 0},
    {"views": -1, "compares": -2, "wishlist": -3},
    None,
    "not-a-mapping",
])
def test_degenerate_weight_sets_fall_back_to_defaults(weights):
    ws = normalize_weights(weights, DEFAULT_BUYER_INTENT_WEIGHTS)
    assert dict(ws.values) == pytest.approx(dict(DEFAULT_BUYER_INTENT_WEIGHTS))
    assert ws.total == pytest.approx(1.0)


def test_invalid_entry_takes_its_own_default():
    ws = normalize_weights({"views": -5, "compares": float("nan"), "wishlist": 2}, DEFAULT_BUYER_INTENT_WEIGHTS)
    assert ws["views"] == pytest.approx(0.55)
    assert ws["compares"] == pytest.approx(0.3)
    assert ws["wishlist"] == 2
    assert ws.total == pytest.approx(2.85)


def test_numeric_strings_and_unknown_keys():
    ws = normalize_weights({"views": "0.5", "bogus": 10}, DEFAULT_TRENDING_WEIGHTS)
    assert ws["views"] == 0.5
    assert "bogus" not in ws.values


def test_zero_weight_is_kept_when_total_positive():
    ws = normalize_weights({"buyer_intent": 0}, DEFAULT_HOOK_SCORE_WEIGHTS)
    assert ws["buyer_intent"] == 0
    assert ws.total == pytest.approx(0.5)


def test_defaults_are_read_only():
    with pytest.raises(TypeError):
        DEFAULT_TRENDING_WEIGHTS["views"] = 1.0


def test_compose_is_weighted_average():
    ws = normalize_weights(None, DEFAULT_BUYER_INTENT_WEIGHTS)
    assert compose({"views": 100, "compares": 0, "wishlist": 0}, ws) == pytest.approx(55.0)
    assert compose({"views": 100, "compares": 100, "wishlist": 100}, ws) == pytest.approx(100.0)


def test_percentages_and_fractions_compose_the_same():
    scores = {"views": 80, "compares": 40, "velocity": 10}
    as_fraction = normalize_weights({"views": 0.5, "compares": 0.3, "velocity": 0.2}, DEFAULT_TRENDING_WEIGHTS)
    as_percent = normalize_weights({"views": 50, "compares": 30, "velocity": 20}, DEFAULT_TRENDING_WEIGHTS)
    assert compose(scores, as_fraction) == pytest.approx(compose(scores, as_percent))


def test_compose_is_clamped_and_finite():
    ws = normalize_weights(None, DEFAULT_TRENDING_WEIGHTS)
    assert compose({"views": 500, "compares": 500, "velocity": 500}, ws) == 100.0
    assert compose({"views": -50}, ws) == 0.0
    assert math.isfinite(compose({}, normalize_weights({"views": 0, "compares": 0, "velocity": 0}, DEFAULT_TRENDING_WEIGHTS)))
