import pytest

from fitrec import cache
from fitrec import main
from fitrec.routers.recommend import get_tailor
from fitrec.services.llm import TailorLLM


@pytest.fixture(autouse=True)
def _reset_shared_state():
    # rate-limit buckets and response cache are process-wide
    main._buckets.clear()
    cache.clear()
    # keep tests off the network even when OPENAI_API_KEY is exported
    main.app.dependency_overrides[get_tailor] = lambda: TailorLLM(api_key="")
    yield
    main.app.dependency_overrides.clear()
