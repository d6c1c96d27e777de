import uuid
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple, Union
import structlog
from pydantic import ValidationError

from ..schemas.fit import (
    DEFAULT_EASE_TABLE,
    BodyMeasurementProfile,
    EaseTable,
    FitPreference,
    FitRecommendation,
    FitResult,
    FitStatus,
    FitZone,
    RecommendationType,
    SizeChartEntry,
    SizeFitAnalysis,
)
from .fit_zones import calculate_fit_zones
from .scoring import score_size


logger = structlog.get_logger("fitrec.recommender")


# Lowest score that still earns each band, best first
SCORE_BANDS: List[Tuple[int, RecommendationType]] = [
    (85, RecommendationType.PERFECT),
    (70, RecommendationType.GOOD),
    (50, RecommendationType.ACCEPTABLE),
]

KEY_ALIASES = {
    "shoulder_width": "shoulder",
    "shoulder_to_shoulder": "shoulder",
    "label": "size",
}

ChartRow = Union[SizeChartEntry, Mapping[str, Any]]


def classify_score(score: int) -> RecommendationType:
    for threshold, rec_type in SCORE_BANDS:
        if score >= threshold:
            return rec_type
    return RecommendationType.NOT_RECOMMENDED


def _norm_keys(row: Mapping[str, Any]) -> dict:
    out = {}
    for k, v in row.items():
        k_norm = str(k).lower()
        k_norm = KEY_ALIASES.get(k_norm, k_norm)
        if v is None:
            continue
        # EU / trouser charts label sizes with numbers
        if k_norm == "size" and isinstance(v, (int, float)) and not isinstance(v, bool):
            v = str(v)
        out[k_norm] = v
    return out


def normalize_size_chart(rows: Iterable[ChartRow]) -> Tuple[List[SizeChartEntry], int]:
    """Coerce a raw chart into entries, dropping rows that cannot be scored.

    Returns the usable entries in chart order and the number of rows skipped.
    Duplicated size labels are kept; each row is its own candidate.
    """
    entries: List[SizeChartEntry] = []
    skipped = 0
    for idx, row in enumerate(rows):
        if isinstance(row, SizeChartEntry):
            entries.append(row)
            continue
        if not isinstance(row, Mapping):
            skipped += 1
            logger.warning("size_chart_row_skipped", index=idx, reason="not_a_mapping")
            continue
        try:
            entries.append(SizeChartEntry(**_norm_keys(row)))
        except ValidationError as e:
            skipped += 1
            fields = sorted({str(err["loc"][0]) for err in e.errors() if err["loc"]})
            logger.warning("size_chart_row_skipped", index=idx, size=row.get("size"), invalid_fields=fields)
    return entries, skipped


def _areas(zones: Sequence[FitZone], status: FitStatus) -> List[str]:
    return [z.area.value for z in zones if z.status == status]


def build_explanation(
    recommendation_type: RecommendationType,
    fit_zones: Sequence[FitZone],
    preference: FitPreference = FitPreference.REGULAR,
) -> str:
    tight = _areas(fit_zones, FitStatus.TIGHT)
    loose = _areas(fit_zones, FitStatus.LOOSE)
    pref = FitPreference(preference).value

    if recommendation_type == RecommendationType.PERFECT:
        return f"Perfect fit! All measurements align well with your {pref} fit preference."

    if recommendation_type == RecommendationType.GOOD:
        parts = ["Good fit with minor adjustments."]
        if tight:
            parts.append(f"Slightly tight at {', '.join(tight)}.")
        if loose:
            parts.append(f"Slightly loose at {', '.join(loose)}.")
        return " ".join(parts)

    if recommendation_type == RecommendationType.ACCEPTABLE:
        return "Acceptable fit but not ideal. Consider trying a different size for better comfort."

    if tight:
        return f"Not recommended. Too tight at {', '.join(tight)}."
    if loose:
        return f"Not recommended. Too loose at {', '.join(loose)}."
    return f"Not recommended. Measurements are far from your {pref} fit preference."


def analyze_size(
    body: BodyMeasurementProfile,
    garment: SizeChartEntry,
    preference: FitPreference = FitPreference.REGULAR,
    ease_table: EaseTable = DEFAULT_EASE_TABLE,
) -> SizeFitAnalysis:
    score = score_size(body, garment, preference, ease_table)
    return SizeFitAnalysis(
        size=garment.size,
        score=score,
        fit_zones=calculate_fit_zones(body, garment),
        recommendation_type=classify_score(score),
        preference=FitPreference(preference),
    )


def analyze_all(
    body: BodyMeasurementProfile,
    size_chart: Iterable[ChartRow],
    preference: FitPreference = FitPreference.REGULAR,
    ease_table: EaseTable = DEFAULT_EASE_TABLE,
) -> Tuple[SizeFitAnalysis, ...]:
    """Analyze every usable size, keeping the chart's order."""
    entries, _ = normalize_size_chart(size_chart)
    return tuple(analyze_size(body, e, preference, ease_table) for e in entries)


def pick_best(analyses: Sequence[SizeFitAnalysis]) -> Optional[SizeFitAnalysis]:
    best: Optional[SizeFitAnalysis] = None
    for analysis in analyses:
        # strict comparison keeps the earliest entry on ties
        if best is None or analysis.score > best.score:
            best = analysis
    return best


def best_size(
    body: BodyMeasurementProfile,
    size_chart: Iterable[ChartRow],
    preference: FitPreference = FitPreference.REGULAR,
    ease_table: EaseTable = DEFAULT_EASE_TABLE,
) -> Optional[SizeFitAnalysis]:
    return pick_best(analyze_all(body, size_chart, preference, ease_table))


def zone_confidence(fit_zones: Sequence[FitZone]) -> float:
    if not fit_zones:
        return 0.0
    good = sum(1 for z in fit_zones if z.status == FitStatus.GOOD)
    return good / len(fit_zones)


def recommend(
    body: BodyMeasurementProfile,
    size_chart: Iterable[ChartRow],
    preference: FitPreference = FitPreference.REGULAR,
    ease_table: EaseTable = DEFAULT_EASE_TABLE,
) -> FitRecommendation:
    entries, skipped = normalize_size_chart(size_chart)
    analyses = tuple(analyze_size(body, e, preference, ease_table) for e in entries)
    best = pick_best(analyses)
    confidence = zone_confidence(best.fit_zones) if best else 0.0

    logger.info(
        "fit_recommendation",
        sizes=len(analyses),
        skipped_rows=skipped,
        preference=FitPreference(preference).value,
        best_size=best.size if best else None,
        best_score=best.score if best else None,
        confidence=round(confidence, 3),
    )
    return FitRecommendation(analyses=analyses, best=best, confidence=confidence, skipped_rows=skipped)


def generate_fit_result(
    body: BodyMeasurementProfile,
    size_chart: Iterable[ChartRow],
    preference: FitPreference = FitPreference.REGULAR,
    clothing_item_id: Optional[str] = None,
    ease_table: EaseTable = DEFAULT_EASE_TABLE,
) -> Optional[FitResult]:
    """Summarize the best size as a record a profile store can keep."""
    return fit_result_from(recommend(body, size_chart, preference, ease_table), clothing_item_id)


def fit_result_from(rec: FitRecommendation, clothing_item_id: Optional[str] = None) -> Optional[FitResult]:
    if rec.best is None:
        return None
    return FitResult(
        id=f"fit_{uuid.uuid4().hex[:12]}",
        clothing_item_id=clothing_item_id,
        recommended_size=rec.best.size,
        fit_zones=rec.best.fit_zones,
        confidence_score=rec.confidence,
        explanation=rec.best.explanation,
    )
