import pytest
from conftest import CLUSTER_PROMPT, CountingScorer, FakeLLM, FakeMentionSource, make_mention

from analyzers.sentiment_annotator import SentimentAnnotator
from pulse_engine.errors import ConfigurationError
from pulse_engine.pipeline import BrandInsightsPipeline
from scripts.refresh_scheduler import RefreshScheduler
from scripts.session_manager import SessionManager


class BrandSource(FakeMentionSource):
    async def search_public_mentions(self, brand):
        if brand == "broken":
            raise RuntimeError("unexpected")
        return await super().search_public_mentions(brand)


def pipeline_with(scorer, source):
    return BrandInsightsPipeline(
        source,
        FakeLLM({CLUSTER_PROMPT: {}}),
        annotator_factory=lambda brand: SentimentAnnotator(brand, polarity_scorer=scorer),
    )


@pytest.mark.asyncio
async def test_cycles_share_the_annotation_cache(tmp_path):
    scorer = CountingScorer()
    source = FakeMentionSource([make_mention(1, "boots are comfy"), make_mention(2, "laces snapped")])
    scheduler = RefreshScheduler(pipeline_with(scorer, source), ["acme"], session_manager=SessionManager(tmp_path))

    first = await scheduler.run_cycle()
    second = await scheduler.run_cycle()

    assert len(first) == len(second) == 1
    assert len(scorer.texts) == 2
    assert scheduler.cycle_count == 2
    assert len(SessionManager(tmp_path).list_sessions()) == 2


@pytest.mark.asyncio
async def test_fetch_failure_for_one_brand_still_reports_every_brand():
    scheduler = RefreshScheduler(
        pipeline_with(CountingScorer(), BrandSource([make_mention(1, "boots are comfy")])),
        ["broken", "acme"],
    )
    results = await scheduler.run_cycle()
    assert [r.brand for r in results] == ["broken", "acme"]


@pytest.mark.asyncio
async def test_configuration_error_stops_the_cycle():
    source = FakeMentionSource(mention_error=ConfigurationError("X_BEARER_TOKEN environment variable is not set"))
    scheduler = RefreshScheduler(pipeline_with(CountingScorer(), source), ["acme"])
    with pytest.raises(ConfigurationError):
        await scheduler.run_cycle()
