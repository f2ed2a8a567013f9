import math

import pytest

import soil
from soil import assess, average_score, parameter_scores, status_for


def test_ideal_sample_is_excellent():
    result = assess(nitrogen=50, phosphorus=30, potassium=250, ph=6.5, moisture=55)

    assert parameter_scores(50, 30, 250, 6.5, 55) == [4, 4, 4, 4, 4]
    assert result.status == "excellent"
    assert result.recommendations == []
    # pH 6.5 sits on the edge of the cereal, nightshade and legume bands; moisture 55 misses leafy greens
    assert result.crop_suggestions == soil.CEREALS + soil.NIGHTSHADES + soil.LEGUMES


def test_depleted_sample_is_poor():
    result = assess(nitrogen=5, phosphorus=5, potassium=50, ph=4.5, moisture=10)

    assert parameter_scores(5, 5, 50, 4.5, 10) == [1, 1, 1, 2, 2]
    assert average_score(5, 5, 50, 4.5, 10) == pytest.approx(1.4)
    assert result.status == "poor"
    assert result.recommendations == [
        soil.ACIDIC,
        soil.LOW_NITROGEN,
        soil.LOW_PHOSPHORUS,
        soil.LOW_POTASSIUM,
        soil.LOW_MOISTURE,
    ]
    assert result.crop_suggestions == ["Millet", "Sorghum"]


def test_alkaline_and_waterlogged():
    result = assess(nitrogen=45, phosphorus=30, potassium=220, ph=8.4, moisture=90)
    assert result.recommendations == [soil.ALKALINE, soil.HIGH_MOISTURE]


@pytest.mark.parametrize("ph", [6.0, 7.0, 8.0])
def test_ph_band_edges_give_no_ph_advice(ph):
    advice = assess(50, 30, 250, ph, 55).recommendations
    assert soil.ACIDIC not in advice
    assert soil.ALKALINE not in advice


@pytest.mark.parametrize("moisture", [20, 50, 80])
def test_moisture_band_edges_give_no_moisture_advice(moisture):
    advice = assess(50, 30, 250, 6.5, moisture).recommendations
    assert soil.LOW_MOISTURE not in advice
    assert soil.HIGH_MOISTURE not in advice


def test_nutrient_advice_thresholds_are_strict():
    assert assess(20, 15, 150, 6.5, 55).recommendations == []
    assert assess(19.9, 14.9, 149.9, 6.5, 55).recommendations == [
        soil.LOW_NITROGEN, soil.LOW_PHOSPHORUS, soil.LOW_POTASSIUM,
    ]


@pytest.mark.parametrize("values, expected", [
    ((40, 25, 200, 7.5, 70), [4, 4, 4, 4, 4]),
    ((20, 15, 150, 8.0, 80), [3, 3, 3, 3, 3]),
    ((10, 8, 100, 5.5, 20), [2, 2, 2, 3, 3]),
    ((9.9, 7.9, 99, 5.4, 19), [1, 1, 1, 2, 2]),
    ((0, 0, 0, 14, 100), [1, 1, 1, 2, 2]),
])
def test_parameter_score_breakpoints(values, expected):
    assert parameter_scores(*values) == expected


@pytest.mark.parametrize("avg, status", [
    (4.0, "excellent"),
    (3.5, "excellent"),
    (3.4, "good"),
    (2.5, "good"),
    (2.4, "fair"),
    (1.5, "fair"),
    (1.4, "poor"),
])
def test_status_thresholds(avg, status):
    assert status_for(avg) == status


def test_leafy_greens_need_wet_nitrogen_rich_soil():
    result = assess(nitrogen=35, phosphorus=20, potassium=160, ph=6.8, moisture=65)
    assert result.crop_suggestions == soil.CEREALS + soil.LEGUMES + soil.LEAFY

    drier = assess(nitrogen=35, phosphorus=20, potassium=160, ph=6.8, moisture=59)
    assert "Lettuce" not in drier.crop_suggestions


def test_nightshades_only_in_slightly_acidic_potash_rich_soil():
    result = assess(nitrogen=10, phosphorus=5, potassium=150, ph=5.8, moisture=30)
    assert result.crop_suggestions == soil.NIGHTSHADES


def test_out_of_range_values_are_scored_not_rejected():
    result = assess(nitrogen=-10, phosphorus=-1, potassium=-5, ph=20, moisture=150)
    assert result.status == "poor"
    assert result.recommendations == [
        soil.ALKALINE, soil.LOW_NITROGEN, soil.LOW_PHOSPHORUS, soil.LOW_POTASSIUM, soil.HIGH_MOISTURE,
    ]
    assert result.crop_suggestions == ["Millet", "Sorghum"]


def test_nan_degrades_to_fallback():
    nan = math.nan
    result = assess(nan, nan, nan, nan, nan)
    assert result.recommendations == []
    assert result.status == "poor"
    assert result.crop_suggestions == ["Millet", "Sorghum"]


def test_assess_is_deterministic():
    first = assess(33, 18, 175, 6.2, 62)
    second = assess(33, 18, 175, 6.2, 62)
    assert first == second
    assert first.model_dump_json() == second.model_dump_json()


@pytest.mark.parametrize("values", [
    (0, 0, 0, 0, 0),
    (100, 100, 500, 14, 100),
    (25, 15, 150, 6.0, 60),
    (12, 9, 120, 9.1, 85),
])
def test_always_a_status_and_at_least_one_crop(values):
    result = assess(*values)
    assert result.status in {"excellent", "good", "fair", "poor"}
    assert len(result.crop_suggestions) >= 1
