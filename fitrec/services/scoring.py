import math
from typing import Dict, Tuple
from ..schemas.fit import (
    DEFAULT_EASE_TABLE,
    BodyMeasurementProfile,
    EaseTable,
    EaseTarget,
    FitPreference,
    SizeChartEntry,
)


MAX_SCORE = 100.0

# Penalty points per cm of deviation from the target ease (higher = more important)
PENALTY_WEIGHTS = {
    "chest": 4.0,
    "shoulder": 6.0,
    "waist": 3.0,
}


def ease_for(preference: FitPreference, ease_table: EaseTable = DEFAULT_EASE_TABLE) -> EaseTarget:
    return ease_table[FitPreference(preference)]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def score_breakdown(
    body: BodyMeasurementProfile,
    garment: SizeChartEntry,
    preference: FitPreference = FitPreference.REGULAR,
    ease_table: EaseTable = DEFAULT_EASE_TABLE,
) -> Tuple[float, Dict[str, float]]:
    """Return the unrounded, unclamped score and the penalty charged per zone."""
    ease = ease_for(preference, ease_table)

    measured = [
        ("chest", garment.chest, body.chest, ease.chest),
        ("shoulder", garment.shoulder, body.shoulder, ease.shoulder),
    ]
    if garment.waist is not None:
        measured.append(("waist", garment.waist, body.waist, ease.waist))

    penalties: Dict[str, float] = {}
    for metric, g, b, target in measured:
        # Actual slack vs the ease the preference asks for
        deviation = abs((g - b) - target)
        penalties[metric] = deviation * PENALTY_WEIGHTS[metric]

    return MAX_SCORE - sum(penalties.values()), penalties


def score_size(
    body: BodyMeasurementProfile,
    garment: SizeChartEntry,
    preference: FitPreference = FitPreference.REGULAR,
    ease_table: EaseTable = DEFAULT_EASE_TABLE,
) -> int:
    raw, _ = score_breakdown(body, garment, preference, ease_table)
    return _round_half_up(max(0.0, min(MAX_SCORE, raw)))
