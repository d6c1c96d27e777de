import os
import tempfile
from typing import Optional
import httpx
import structlog
from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile

from ..config import settings
from ..schemas.fit import Measured
from ..schemas.recommend import DetectResponse
from ..security import verify_api_key
from ..services.measurement import MeasurementService, is_low_confidence
from ..services.pose_providers import get_provider


logger = structlog.get_logger("fitrec.measurements")

router = APIRouter(prefix="/measurements", tags=["measurements"], dependencies=[Depends(verify_api_key)])


NO_POSE_MESSAGES = {
    "timeout": "Pose detection timed out. Please try again.",
    "missing_landmarks": "Could not see your whole body. Stand facing the camera with head and feet in frame.",
}


def get_measurement_service(request: Request) -> MeasurementService:
    # One service (and one loaded model) per app; closed on shutdown
    service = getattr(request.app.state, "measurement_service", None)
    if service is None:
        service = MeasurementService(
            get_provider(settings.pose_provider),
            timeout_seconds=settings.pose_timeout_seconds,
            default_reference_height_cm=settings.default_reference_height_cm,
        )
        request.app.state.measurement_service = service
    return service


def _safe_suffix(filename: Optional[str], fallback: str = ".jpg") -> str:
    if not filename:
        return fallback
    suffix = os.path.splitext(os.path.basename(filename))[1]
    return suffix or fallback


@router.post("/detect", response_model=DetectResponse)
async def detect(
    image: UploadFile = File(...),
    height: Optional[float] = Form(None),
    service: MeasurementService = Depends(get_measurement_service),
) -> DetectResponse:
    """Estimate a body profile from a full-body photo.

    ``height`` (cm) calibrates the pixel scale; without it an average adult
    height is assumed. A photo without a usable pose is a normal
    ``no_pose`` response, not an error.
    """
    if image.content_type is None or not image.content_type.startswith("image/"):
        raise HTTPException(status_code=400, detail="Please upload an image file")

    with tempfile.NamedTemporaryFile(delete=False, suffix=_safe_suffix(image.filename)) as tmp:
        tmp.write(await image.read())
        image_path = tmp.name

    try:
        outcome = await service.measure(image_path, reference_height_cm=height)
    except httpx.HTTPError as e:
        logger.error("pose_service_failed", error=str(e))
        raise HTTPException(status_code=502, detail="Pose estimation service failed")
    finally:
        try:
            os.remove(image_path)
        except OSError:
            pass

    result = outcome.result
    if not isinstance(result, Measured):
        return DetectResponse(
            status="no_pose",
            token=outcome.token,
            reason=result.reason,
            missing=list(result.missing),
            message=NO_POSE_MESSAGES.get(result.reason, "Could not detect pose. Please ensure your full body is visible."),
        )

    if is_low_confidence(result.profile, settings.low_confidence_threshold):
        return DetectResponse(
            status="low_confidence",
            token=outcome.token,
            profile=result.profile,
            message="Low confidence detection. Try uploading a clearer full-body photo.",
        )

    return DetectResponse(status="ok", token=outcome.token, profile=result.profile, message="Measurements detected.")
