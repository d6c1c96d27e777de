from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from fitrec.schemas.fit import BodyMeasurementProfile, SizeChartEntry
from fitrec.services.llm import TailorLLM, rule_based_feedback
from fitrec.services.recommender import analyze_all


BODY = BodyMeasurementProfile(height=175, chest=95, waist=80, shoulder=45)
LARGE = SizeChartEntry(size="L", chest=106, shoulder=50, waist=92, length=72)
MEDIUM = SizeChartEntry(size="M", chest=100, shoulder=47, waist=86, length=70)


def _completion(content: str):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def test_rule_based_feedback_names_loose_zones():
    (analysis,) = analyze_all(BODY, [LARGE])
    fb = rule_based_feedback(analysis)
    assert len(fb["preview"]) == 3
    assert "Areas with generous ease: chest, shoulder, waist." in fb["final"]
    assert "Recommended size: L." in fb["final"]


def test_rule_based_feedback_clean_fit():
    (analysis,) = analyze_all(BODY, [MEDIUM])
    assert rule_based_feedback(analysis)["final"] == "Recommended size: M."


@pytest.mark.asyncio
async def test_no_api_key_uses_rules():
    llm = TailorLLM(api_key="")
    assert llm.client is None
    (analysis,) = analyze_all(BODY, [LARGE])
    fb = await llm.generate_feedback(analysis, BODY)
    assert fb == rule_based_feedback(analysis)


@pytest.mark.asyncio
async def test_llm_response_is_used():
    llm = TailorLLM(api_key="sk-test")
    llm.client = MagicMock()
    llm.client.chat.completions.create = AsyncMock(
        return_value=_completion('{"preview": ["a", "b", "c"], "final": "Fits well across the chest."}')
    )
    (analysis,) = analyze_all(BODY, [MEDIUM])
    fb = await llm.generate_feedback(analysis, BODY, tone="friendly")
    assert fb["final"] == "Fits well across the chest."
    assert fb["preview"] == ["a", "b", "c"]

    kwargs = llm.client.chat.completions.create.call_args.kwargs
    assert "Tone/Style: friendly" in kwargs["messages"][0]["content"]
    assert '"recommended_size": "M"' in kwargs["messages"][1]["content"]


@pytest.mark.asyncio
async def test_bad_llm_json_falls_back():
    llm = TailorLLM(api_key="sk-test")
    llm.client = MagicMock()
    llm.client.chat.completions.create = AsyncMock(return_value=_completion("not json"))
    (analysis,) = analyze_all(BODY, [LARGE])
    fb = await llm.generate_feedback(analysis, BODY)
    assert fb == rule_based_feedback(analysis)


@pytest.mark.asyncio
async def test_llm_preview_that_is_not_a_list_is_replaced():
    llm = TailorLLM(api_key="sk-test")
    llm.client = MagicMock()
    llm.client.chat.completions.create = AsyncMock(
        return_value=_completion('{"preview": "Hang on", "final": "Fits well."}')
    )
    (analysis,) = analyze_all(BODY, [MEDIUM])
    fb = await llm.generate_feedback(analysis, BODY)
    assert fb["final"] == "Fits well."
    assert fb["preview"] == rule_based_feedback(analysis)["preview"]
    assert len(fb["preview"]) == 3
