import json
from typing import Any, Dict, List
import structlog
from openai import AsyncOpenAI, OpenAIError

from ..config import settings
from ..schemas.fit import BodyMeasurementProfile, FitStatus, SizeFitAnalysis


logger = structlog.get_logger("fitrec.llm")


def _preview(size: str) -> List[str]:
    return [
        f"Analyzing fit for size {size}...",
        "Checking measurements against your profile...",
        "Preparing your personalized fit report...",
    ]


def rule_based_feedback(analysis: SizeFitAnalysis) -> Dict[str, Any]:
    parts = []
    tight = [z.area.value for z in analysis.fit_zones if z.status == FitStatus.TIGHT]
    loose = [z.area.value for z in analysis.fit_zones if z.status == FitStatus.LOOSE]
    if tight:
        parts.append(f"Areas likely tight: {', '.join(tight)}.")
    if loose:
        parts.append(f"Areas with generous ease: {', '.join(loose)}.")
    parts.append(f"Recommended size: {analysis.size}.")
    if tight or loose:
        parts.append("Consider tailoring: take-in where loose; let-out or size up if tight.")
    return {"preview": _preview(analysis.size), "final": " ".join(parts)}


class TailorLLM:
    def __init__(self, api_key: str | None = None) -> None:
        self.api_key = api_key if api_key is not None else settings.openai_api_key
        self.client = AsyncOpenAI(api_key=self.api_key) if self.api_key else None

    async def generate_feedback(
        self,
        analysis: SizeFitAnalysis,
        body: BodyMeasurementProfile,
        tone: str | None = None,
    ) -> Dict[str, Any]:
        # Without a client, produce deterministic rule-based feedback
        if not self.client:
            return rule_based_feedback(analysis)

        prompt = (
            "You are an expert clothing tailor. Given body measurements in cm, the recommended size, "
            "and per-zone differences (garment minus body, positive = looser), "
            "provide your feedback in a JSON object with two keys:\n"
            "1. 'preview': A list of exactly 3 short, distinct sentences (max 15 words each) to be displayed while the user waits.\n"
            "2. 'final': A single detailed paragraph (max 60 words) summarizing the fit. Include what fits well, what is tight/loose, and one specific alteration suggestion.\n"
            "Do not include markdown formatting, just the raw JSON."
        )
        if tone:
            prompt += f"\n\nTone/Style: {tone}"

        content = {
            "recommended_size": analysis.size,
            "score": analysis.score,
            "preference": analysis.preference.value,
            "body_cm": {"chest": body.chest, "waist": body.waist, "shoulder": body.shoulder},
            "zones": [z.model_dump(mode="json") for z in analysis.fit_zones],
        }
        try:
            resp = await self.client.chat.completions.create(
                model="gpt-4o-mini",
                messages=[
                    {"role": "system", "content": prompt},
                    {"role": "user", "content": json.dumps(content)},
                ],
                temperature=0.3,
                max_tokens=250,
                response_format={"type": "json_object"},
            )
            raw_content = (resp.choices[0].message.content or "").strip()
            data = json.loads(raw_content)
        except (OpenAIError, json.JSONDecodeError) as e:
            logger.warning("tailor_feedback_fallback", size=analysis.size, error=str(e))
            return rule_based_feedback(analysis)

        if not isinstance(data, dict) or "final" not in data:
            return rule_based_feedback(analysis)
        if not isinstance(data.get("preview"), list):
            data["preview"] = _preview(analysis.size)
        return data
