import asyncio
import itertools
import math
from typing import Mapping, Optional, Tuple
import structlog
from pydantic import BaseModel

from ..schemas.fit import (
    BodyMeasurementProfile,
    ExtractionResult,
    Landmark,
    Measured,
    NoPoseDetected,
    PoseDetection,
)


logger = structlog.get_logger("fitrec.measurement")


REQUIRED_LANDMARKS: Tuple[str, ...] = (
    "nose",
    "left_shoulder",
    "right_shoulder",
    "left_hip",
    "right_hip",
    "left_ankle",
    "right_ankle",
)

DEFAULT_REFERENCE_HEIGHT_CM = 170.0
MIN_REFERENCE_HEIGHT_CM = 50.0

# Standard tailoring ratios, girth from frontal shoulder width
CHEST_TO_SHOULDER = 2.15
WAIST_TO_SHOULDER = 1.9

AVERAGE_TORSO_RATIO = 0.52
LOW_CONFIDENCE_THRESHOLD = 0.6


def _round_half_up(value: float, ndigits: int = 0) -> float:
    factor = 10 ** ndigits
    return math.floor(value * factor + 0.5) / factor


def _distance(a: Landmark, b: Landmark) -> float:
    dx = b.x - a.x
    dy = b.y - a.y
    dz = b.z - a.z
    return math.sqrt(dx * dx + dy * dy + dz * dz)


def _midpoint(a: Landmark, b: Landmark) -> Landmark:
    # planar midpoint; depth is too noisy to average
    return Landmark(x=(a.x + b.x) / 2, y=(a.y + b.y) / 2)


def to_pixel_space(landmarks: Mapping[str, Landmark], image_width: float, image_height: float) -> dict:
    """Scale normalized (0..1) landmarks to the image's pixel grid.

    Depth is scaled by width, matching how pose models express z.
    """
    return {
        name: Landmark(
            x=lm.x * image_width,
            y=lm.y * image_height,
            z=lm.z * image_width,
            visibility=lm.visibility,
        )
        for name, lm in landmarks.items()
    }


def resolve_reference_height(
    reference_height_cm: Optional[float],
    default_reference_height_cm: float = DEFAULT_REFERENCE_HEIGHT_CM,
) -> float:
    if reference_height_cm is not None and reference_height_cm > MIN_REFERENCE_HEIGHT_CM:
        return float(reference_height_cm)
    return float(default_reference_height_cm)


def estimate_girths(shoulder_cm: float) -> Tuple[float, float]:
    """Estimate (chest, waist) circumference from shoulder width."""
    return shoulder_cm * CHEST_TO_SHOULDER, shoulder_cm * WAIST_TO_SHOULDER


def estimate_torso_length(height_cm: float) -> float:
    return height_cm * AVERAGE_TORSO_RATIO


def torso_ratio(height_cm: float, torso_length_cm: float) -> float:
    return torso_length_cm / height_cm


def manual_profile(
    height: float,
    chest: float,
    waist: float,
    shoulder: float,
    torso_length: Optional[float] = None,
) -> BodyMeasurementProfile:
    """Profile typed in by the user; no detection confidence attached."""
    length = torso_length if torso_length is not None else estimate_torso_length(height)
    return BodyMeasurementProfile(
        height=height,
        chest=chest,
        waist=waist,
        shoulder=shoulder,
        torso_ratio=round(torso_ratio(height, length), 2),
    )


def is_low_confidence(profile: BodyMeasurementProfile, threshold: float = LOW_CONFIDENCE_THRESHOLD) -> bool:
    return profile.confidence is not None and profile.confidence < threshold


def extract_measurements(
    landmarks: Optional[Mapping[str, Landmark]],
    image_width: float,
    image_height: float,
    reference_height_cm: Optional[float] = None,
    confidence: Optional[float] = None,
    normalized: bool = False,
    default_reference_height_cm: float = DEFAULT_REFERENCE_HEIGHT_CM,
) -> ExtractionResult:
    """Turn one pose's landmarks into a calibrated body profile.

    Landmarks are expected in pixel space; pass ``normalized=True`` to have
    0..1 coordinates scaled by the image size first. Calibration comes from
    the reference height, so the result does not depend on image resolution.
    A missing pose is returned as ``NoPoseDetected``, never raised.
    """
    if not landmarks:
        return NoPoseDetected(reason="no_landmarks")

    missing = tuple(name for name in REQUIRED_LANDMARKS if name not in landmarks)
    if missing:
        return NoPoseDetected(reason="missing_landmarks", missing=missing)

    points = to_pixel_space(landmarks, image_width, image_height) if normalized else dict(landmarks)

    # Body height in pixels: nose to each ankle, averaged
    left_px = _distance(points["nose"], points["left_ankle"])
    right_px = _distance(points["nose"], points["right_ankle"])
    body_height_px = (left_px + right_px) / 2
    if body_height_px <= 0:
        return NoPoseDetected(reason="degenerate_pose")

    reference_cm = resolve_reference_height(reference_height_cm, default_reference_height_cm)
    cm_per_px = reference_cm / body_height_px

    shoulder_cm = _distance(points["left_shoulder"], points["right_shoulder"]) * cm_per_px
    chest_cm, waist_cm = estimate_girths(shoulder_cm)

    torso_px = _distance(
        _midpoint(points["left_shoulder"], points["right_shoulder"]),
        _midpoint(points["left_hip"], points["right_hip"]),
    )

    profile = BodyMeasurementProfile(
        height=_round_half_up(reference_cm),
        shoulder=_round_half_up(shoulder_cm),
        chest=_round_half_up(chest_cm),
        waist=_round_half_up(waist_cm),
        torso_ratio=_round_half_up(torso_px / body_height_px, 2),
        confidence=1.0 if confidence is None else confidence,
    )
    return Measured(profile=profile)


def extract_from_detection(
    detection: PoseDetection,
    reference_height_cm: Optional[float] = None,
    default_reference_height_cm: float = DEFAULT_REFERENCE_HEIGHT_CM,
) -> ExtractionResult:
    return extract_measurements(
        detection.landmarks,
        detection.image_width,
        detection.image_height,
        reference_height_cm=reference_height_cm,
        confidence=detection.confidence,
        normalized=detection.normalized,
        default_reference_height_cm=default_reference_height_cm,
    )


class MeasurementOutcome(BaseModel):
    token: int
    result: ExtractionResult


class MeasurementService:
    """Runs photos through a pose provider and the extractor.

    Use as ``async with MeasurementService(provider) as svc`` so the model is
    loaded once and released when the block exits. Each ``measure`` call gets
    a new token; a caller holding an older token can check ``is_current`` and
    drop a result that arrived after a newer request was started.
    """

    def __init__(
        self,
        provider,
        timeout_seconds: Optional[float] = 30.0,
        default_reference_height_cm: float = DEFAULT_REFERENCE_HEIGHT_CM,
    ) -> None:
        self.provider = provider
        self.timeout_seconds = timeout_seconds
        self.default_reference_height_cm = default_reference_height_cm
        self._tokens = itertools.count(1)
        self._latest = 0
        self._loaded = False

    async def __aenter__(self) -> "MeasurementService":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def open(self) -> None:
        if not self._loaded:
            await self.provider.load()
            self._loaded = True

    async def close(self) -> None:
        if self._loaded:
            await self.provider.close()
            self._loaded = False

    @property
    def latest_token(self) -> int:
        return self._latest

    def is_current(self, token: int) -> bool:
        return token == self._latest

    async def measure(self, image_path: str, reference_height_cm: Optional[float] = None) -> MeasurementOutcome:
        token = next(self._tokens)
        self._latest = token
        await self.open()

        try:
            detection = await asyncio.wait_for(self.provider.detect(image_path), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning("pose_detection_timeout", token=token, timeout_s=self.timeout_seconds)
            return MeasurementOutcome(token=token, result=NoPoseDetected(reason="timeout"))

        if detection is None:
            logger.info("pose_not_detected", token=token)
            return MeasurementOutcome(token=token, result=NoPoseDetected(reason="no_landmarks"))

        result = extract_from_detection(detection, reference_height_cm, self.default_reference_height_cm)
        if isinstance(result, Measured):
            logger.info(
                "pose_measured",
                token=token,
                shoulder=result.profile.shoulder,
                chest=result.profile.chest,
                confidence=result.profile.confidence,
            )
        else:
            logger.info("pose_not_measurable", token=token, reason=result.reason, missing=list(result.missing))
        return MeasurementOutcome(token=token, result=result)
