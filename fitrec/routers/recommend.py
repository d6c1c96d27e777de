from fastapi import APIRouter, Depends
import structlog

from .. import cache
from ..config import settings
from ..schemas.fit import BodyMeasurementProfile
from ..schemas.recommend import RecommendRequest, RecommendResponse
from ..security import verify_api_key
from ..services.llm import TailorLLM
from ..services.measurement import is_low_confidence, manual_profile
from ..services.recommender import fit_result_from, recommend
from ..services.units import chart_to_cm, row_to_cm


logger = structlog.get_logger("fitrec.recommend")

router = APIRouter(prefix="/recommend", tags=["recommend"], dependencies=[Depends(verify_api_key)])


def get_tailor() -> TailorLLM:
    return TailorLLM()


def _body_from(req: RecommendRequest) -> BodyMeasurementProfile:
    m = row_to_cm(req.measurements.model_dump(exclude_none=True), req.unit)
    body = manual_profile(
        height=m["height"],
        chest=m["chest"],
        waist=m["waist"],
        shoulder=m["shoulder"],
        torso_length=m.get("torso_length"),
    )
    if req.measurements.confidence is not None:
        body = body.model_copy(update={"confidence": req.measurements.confidence})
    return body


@router.post("", response_model=RecommendResponse)
async def recommend_size(req: RecommendRequest, tailor: TailorLLM = Depends(get_tailor)) -> RecommendResponse:
    payload = req.model_dump(mode="json")
    cached = cache.get(payload)
    if cached is not None:
        logger.info("recommend_cache_hit")
        rec, response = cached
        # each request gets its own stored-result record
        return response.model_copy(update={"fit_result": fit_result_from(rec, req.clothing_item_id)})

    # The engine only works in cm; convert here
    body = _body_from(req)
    chart = chart_to_cm(req.size_chart, req.unit)

    rec = recommend(body, chart, req.preference)
    low_confidence = is_low_confidence(body, settings.low_confidence_threshold)
    if low_confidence:
        logger.warning("recommend_low_confidence_measurements", confidence=body.confidence)

    feedback = {"preview": [], "final": ""}
    if rec.best is not None:
        feedback = await tailor.generate_feedback(rec.best, body, tone=req.tone)

    response = RecommendResponse(
        recommended_size=rec.best.size if rec.best else None,
        confidence=round(rec.confidence, 3),
        best=rec.best,
        analyses=list(rec.analyses),
        skipped_rows=rec.skipped_rows,
        low_confidence=low_confidence,
        fit_result=None,
        preview_feedback=list(feedback.get("preview") or []),
        tailor_feedback=str(feedback.get("final") or ""),
        unit="cm",
    )
    cache.set(payload, (rec, response))
    return response.model_copy(update={"fit_result": fit_result_from(rec, req.clothing_item_id)})
