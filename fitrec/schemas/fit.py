from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Literal, Optional, Tuple, Union
from pydantic import BaseModel, ConfigDict, Field, computed_field


class FitArea(str, Enum):
    CHEST = "chest"
    WAIST = "waist"
    SHOULDER = "shoulder"
    LENGTH = "length"


class FitStatus(str, Enum):
    TIGHT = "tight"
    GOOD = "good"
    LOOSE = "loose"


class FitPreference(str, Enum):
    SLIM = "slim"
    REGULAR = "regular"
    RELAXED = "relaxed"


class RecommendationType(str, Enum):
    PERFECT = "perfect"
    GOOD = "good"
    ACCEPTABLE = "acceptable"
    NOT_RECOMMENDED = "not-recommended"


class ValueModel(BaseModel):
    model_config = ConfigDict(frozen=True)


class BodyMeasurementProfile(ValueModel):
    """One subject's body in centimeters.

    ``confidence`` is only set when the profile came out of pose detection;
    manually entered profiles leave it as ``None`` and are fully trusted.
    """

    height: float = Field(..., gt=0)
    chest: float = Field(..., gt=0)
    waist: float = Field(..., gt=0)
    shoulder: float = Field(..., gt=0)
    torso_ratio: Optional[float] = None
    confidence: Optional[float] = Field(None, ge=0.0, le=1.0)

    @property
    def trust(self) -> float:
        return 1.0 if self.confidence is None else self.confidence


class SizeChartEntry(ValueModel):
    size: str = Field(..., min_length=1)
    chest: float = Field(..., gt=0)
    length: float = Field(..., gt=0)
    shoulder: float = Field(..., gt=0)
    waist: Optional[float] = Field(None, gt=0)


class FitZone(ValueModel):
    area: FitArea
    status: FitStatus
    # garment minus body, cm; positive = looser garment
    difference: float


class EaseTarget(ValueModel):
    chest: float
    shoulder: float
    waist: float


EaseTable = Dict[FitPreference, EaseTarget]

DEFAULT_EASE_TABLE: EaseTable = {
    FitPreference.SLIM: EaseTarget(chest=3, shoulder=1, waist=4),
    FitPreference.REGULAR: EaseTarget(chest=5, shoulder=2, waist=6),
    FitPreference.RELAXED: EaseTarget(chest=8, shoulder=3, waist=10),
}


class SizeFitAnalysis(ValueModel):
    size: str
    score: int = Field(..., ge=0, le=100)
    fit_zones: Tuple[FitZone, ...]
    recommendation_type: RecommendationType
    preference: FitPreference = FitPreference.REGULAR

    @computed_field  # type: ignore[misc]
    @property
    def explanation(self) -> str:
        from ..services.recommender import build_explanation  # local import, services depend on this module

        return build_explanation(self.recommendation_type, self.fit_zones, self.preference)


class FitRecommendation(ValueModel):
    analyses: Tuple[SizeFitAnalysis, ...] = ()
    best: Optional[SizeFitAnalysis] = None
    confidence: float = 0.0
    skipped_rows: int = 0


class FitResult(ValueModel):
    id: str
    clothing_item_id: Optional[str] = None
    recommended_size: str
    fit_zones: Tuple[FitZone, ...]
    confidence_score: float = Field(..., ge=0.0, le=1.0)
    explanation: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(tz=timezone.utc))


# Pose estimation values

class Landmark(ValueModel):
    x: float
    y: float
    z: float = 0.0
    visibility: Optional[float] = None


class PoseDetection(ValueModel):
    landmarks: Dict[str, Landmark]
    image_width: int = Field(..., gt=0)
    image_height: int = Field(..., gt=0)
    # True when x/y/z are in 0..1 image-relative units
    normalized: bool = True
    confidence: Optional[float] = Field(None, ge=0.0, le=1.0)


class Measured(ValueModel):
    kind: Literal["measured"] = "measured"
    profile: BodyMeasurementProfile


class NoPoseDetected(ValueModel):
    kind: Literal["no_pose"] = "no_pose"
    reason: str = "no_landmarks"
    missing: Tuple[str, ...] = ()


ExtractionResult = Union[Measured, NoPoseDetected]
