"""
Soil Assessment Engine

Turns five soil measurements into a quality status, a list of advisories
and a list of crop suggestions. Pure and deterministic: no I/O, no state.

The engine does not range-check its inputs. Out-of-range values are scored
like any other number, and NaN fails every comparison, which ends in no
advisories, the fallback crops and a low score.
"""
from typing import List, Literal

from pydantic import BaseModel, Field

SoilStatus = Literal["excellent", "good", "fair", "poor"]

ACIDIC = "Soil is acidic. Consider adding lime to increase pH"
ALKALINE = "Soil is alkaline. Consider adding sulfur to decrease pH"
LOW_NITROGEN = "Low nitrogen levels. Consider nitrogen-rich fertilizers"
LOW_PHOSPHORUS = "Low phosphorus levels. Consider phosphate fertilizers"
LOW_POTASSIUM = "Low potassium levels. Consider potash fertilizers"
LOW_MOISTURE = "Low soil moisture. Increase irrigation frequency"
HIGH_MOISTURE = "High soil moisture. Improve drainage to prevent root rot"

CEREALS = ["Rice", "Wheat", "Corn"]
NIGHTSHADES = ["Tomatoes", "Potatoes", "Peppers"]
LEGUMES = ["Beans", "Peas", "Lentils"]
LEAFY = ["Leafy Greens", "Cabbage", "Lettuce"]
HARDY = ["Millet", "Sorghum"]

# (minimum, score) pairs, checked top down; below every minimum scores 1
NITROGEN_BREAKPOINTS = [(40, 4), (20, 3), (10, 2)]
PHOSPHORUS_BREAKPOINTS = [(25, 4), (15, 3), (8, 2)]
POTASSIUM_BREAKPOINTS = [(200, 4), (150, 3), (100, 2)]

# (low, high, score) inclusive bands; outside every band scores 2
PH_BANDS = [(6.0, 7.5, 4), (5.5, 8.0, 3)]
MOISTURE_BANDS = [(40, 70, 4), (20, 80, 3)]

STATUS_THRESHOLDS = [(3.5, "excellent"), (2.5, "good"), (1.5, "fair")]


class Assessment(BaseModel):
    status: SoilStatus
    recommendations: List[str] = Field(default_factory=list)
    crop_suggestions: List[str] = Field(default_factory=list)


def _threshold_score(value: float, breakpoints) -> int:
    for minimum, score in breakpoints:
        if value >= minimum:
            return score
    return 1


def _band_score(value: float, bands) -> int:
    for low, high, score in bands:
        if low <= value <= high:
            return score
    return 2


def recommendations_for(nitrogen: float, phosphorus: float, potassium: float, ph: float, moisture: float) -> List[str]:
    advice: List[str] = []
    if ph < 6.0:
        advice.append(ACIDIC)
    elif ph > 8.0:
        advice.append(ALKALINE)
    if nitrogen < 20:
        advice.append(LOW_NITROGEN)
    if phosphorus < 15:
        advice.append(LOW_PHOSPHORUS)
    if potassium < 150:
        advice.append(LOW_POTASSIUM)
    if moisture < 20:
        advice.append(LOW_MOISTURE)
    elif moisture > 80:
        advice.append(HIGH_MOISTURE)
    return advice


def parameter_scores(nitrogen: float, phosphorus: float, potassium: float, ph: float, moisture: float) -> List[int]:
    """Per-parameter scores in input order: N, P, K, pH, moisture.

    pH and moisture bottom out at 2, the nutrients at 1.
    """
    return [
        _threshold_score(nitrogen, NITROGEN_BREAKPOINTS),
        _threshold_score(phosphorus, PHOSPHORUS_BREAKPOINTS),
        _threshold_score(potassium, POTASSIUM_BREAKPOINTS),
        _band_score(ph, PH_BANDS),
        _band_score(moisture, MOISTURE_BANDS),
    ]


def average_score(nitrogen: float, phosphorus: float, potassium: float, ph: float, moisture: float) -> float:
    scores = parameter_scores(nitrogen, phosphorus, potassium, ph, moisture)
    return sum(scores) / len(scores)


def status_for(avg: float) -> SoilStatus:
    for minimum, status in STATUS_THRESHOLDS:
        if avg >= minimum:
            return status
    return "poor"


def crop_suggestions_for(nitrogen: float, phosphorus: float, potassium: float, ph: float, moisture: float) -> List[str]:
    crops: List[str] = []
    if 6.0 <= ph <= 7.0 and nitrogen >= 25 and phosphorus >= 15:
        crops.extend(CEREALS)
    if 5.5 <= ph <= 6.5 and potassium >= 150:
        crops.extend(NIGHTSHADES)
    if 6.5 <= ph <= 7.5:
        crops.extend(LEGUMES)
    if moisture >= 60 and nitrogen >= 30:
        crops.extend(LEAFY)
    if not crops:
        crops.extend(HARDY)
    return crops


def assess(nitrogen: float, phosphorus: float, potassium: float, ph: float, moisture: float) -> Assessment:
    """Score a soil sample and suggest what to do with it."""
    avg = average_score(nitrogen, phosphorus, potassium, ph, moisture)
    return Assessment(
        status=status_for(avg),
        recommendations=recommendations_for(nitrogen, phosphorus, potassium, ph, moisture),
        crop_suggestions=crop_suggestions_for(nitrogen, phosphorus, potassium, ph, moisture),
    )
