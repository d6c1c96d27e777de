from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, Field

from .fit import BodyMeasurementProfile, FitPreference, FitResult, SizeFitAnalysis


class MeasurementInput(BaseModel):
    height: float = Field(..., gt=0)
    chest: float = Field(..., gt=0)
    waist: float = Field(..., gt=0)
    shoulder: float = Field(..., gt=0)
    torso_length: Optional[float] = Field(None, gt=0)
    # Set when the numbers came from /measurements/detect
    confidence: Optional[float] = Field(None, ge=0.0, le=1.0)


class RecommendRequest(BaseModel):
    measurements: MeasurementInput
    # Raw chart rows; rows that cannot be scored are skipped, not rejected
    size_chart: List[Dict[str, Any]] = Field(default_factory=list)
    preference: FitPreference = FitPreference.REGULAR
    unit: Literal["cm", "inch"] = "cm"
    clothing_item_id: Optional[str] = None
    tone: Optional[str] = None


class RecommendResponse(BaseModel):
    recommended_size: Optional[str]
    confidence: float
    best: Optional[SizeFitAnalysis]
    analyses: List[SizeFitAnalysis]
    skipped_rows: int = 0
    # Measurements came from a detection below the trust threshold
    low_confidence: bool = False
    fit_result: Optional[FitResult] = None
    preview_feedback: List[str] = Field(default_factory=list)
    tailor_feedback: str = ""
    unit: str = "cm"


class DetectResponse(BaseModel):
    status: Literal["ok", "low_confidence", "no_pose"]
    token: int
    profile: Optional[BodyMeasurementProfile] = None
    reason: Optional[str] = None
    missing: List[str] = Field(default_factory=list)
    message: str = ""
