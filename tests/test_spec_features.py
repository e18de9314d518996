# =============================================
# File: tests/test_spec_features.py
# Purpose: Heuristic feature extraction over loosely-structured spec JSON
# =============================================
import sys, os
sys.path.append(os.path.dirname(os.path.dirname(__file__)))

import pytest

from catalog_scoring.services.compare_ranking import default_chipset_rules
from catalog_scoring.utils.spec_features import (
    count_camera_sensors,
    extract_main_megapixel,
    extract_processor_text,
    feature_scores,
    score_battery,
    score_camera,
    score_chipset,
    score_display,
)

RULES = default_chipset_rules()


@pytest.mark.parametrize("text,expected", [
    ("Qualcomm Snapdragon 8 Gen 3", 95),      # keyword table
    ("Snapdragon 8 Elite for Galaxy", 100),
    ("Snapdragon 8 Gen 5", 96),               # series/gen heuristic, clamped
    ("MediaTek Dimensity 6100+", 58),         # dimensity tiers
    ("Apple A15 Bionic", 78),                 # 74 + (15-14)*4
    ("Google Tensor G4", 74),
    ("Samsung Exynos 2400", 68),
    ("Kirin 9000", 60),                       # nothing matched
    ("", 45),                                 # no processor at all
    ("   ", 45),
])
def test_chipset_scores(text, expected):
    assert score_chipset(text, RULES) == expected


def test_table_order_wins_over_shorter_keyword():
    # "snapdragon 7 gen 3" is listed before the broader "snapdragon 7"
    assert score_chipset("Snapdragon 7 Gen 3", RULES) == 75
    assert score_chipset("Snapdragon 7s Gen 2", RULES) == 72


def test_processor_lookup_order_and_stringified_json():
    device = {
        "performance": '{"chipset": "Dimensity 9300"}',
        "cpu": {"model": "ignored"},
        "processor": "also ignored",
    }
    assert extract_processor_text(device) == "Dimensity 9300"
    assert extract_processor_text({"cpu": {"name": "Intel Core i7"}}) == "Intel Core i7"
    assert extract_processor_text({"processor": "Helio G99"}) == "Helio G99"
    assert extract_processor_text({"performance": "{broken"}) == ""


def test_display_score():
    assert score_display({"refresh_rate": "120Hz", "panel_type": "LTPO AMOLED"}) == 83
    assert score_display({"refreshRate": 60, "panel": "IPS LCD"}) == 44
    assert score_display({"refresh_rate": 240, "type": "OLED"}) == 92
    # stringified block, no panel info
    assert score_display('{"refresh_rate": 90}') == 51


def test_display_missing_fields_use_neutral_defaults():
    assert score_display({}) == 48
    assert score_display("{oops") == 48
    assert score_display(None) == 48


def test_camera_megapixels_and_sensor_count():
    camera = {"rear_camera": {"main": "50 MP", "ultra_wide": "12MP", "telephoto": "10 MP"}}
    assert extract_main_megapixel(camera) == 50
    assert count_camera_sensors(camera) == 3
    assert score_camera(camera) == pytest.approx(50 / 108 * 65 + 3 * 8.75)


def test_camera_caps():
    camera = {"main": "200MP", "rear_camera": ["200MP", "50MP", "12MP", "10MP", "2MP"]}
    # megapixel part capped at 65, sensor part at 35
    assert score_camera(camera) == 100


def test_camera_missing_fields():
    assert score_camera({}) == 34
    assert count_camera_sensors({}) == 1


@pytest.mark.parametrize("battery,expected", [
    ({"capacity": "5,000 mAh"}, 75),
    ({"battery_capacity_mah": 3000}, 25),
    ({"capacity_mah": 4001}, 60),
    ({"mAh": 6000}, 94),
    ({"value": "6500"}, 100),
    ({}, 35),
    ('{"capacity": 5500}', 86),
    ("not json", 35),
])
def test_battery_steps(battery, expected):
    assert score_battery(battery) == expected


def test_empty_device_gets_full_neutral_breakdown():
    assert feature_scores({}, RULES) == {"performance": 45, "display": 48, "camera": 34, "battery": 35}
