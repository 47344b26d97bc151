"""Brand insights pipeline coordinator.

Sequences fetch -> score -> cache filter -> annotate -> consolidate ->
aggregate -> suggestions -> playbooks -> creatives into one
:class:`BrandInsights`. Sentiment results are always returned; only a
:class:`ConfigurationError` aborts a run.
"""

import asyncio
import logging
import time
from datetime import timedelta
from typing import Callable, List, Optional, Tuple

from analyzers import AnnotationCache, SentimentAnnotator, TopicConsolidator, aggregate_topics, compute_general_sentiment
from analyzers.mention_scorer import score_mentions, sort_by_engagement
from analyzers.sentiment_annotator import VaderPolarityScorer
from generation_engine.actionable_steps import generate_actionable_steps
from generation_engine.creative_orchestrator import CreativeOrchestrator
from generation_engine.models import CreativeBatch, Suggestion
from generation_engine.suggestion_engine import SuggestionEngine
from generation_engine.suggestion_history import InMemorySuggestionHistory, JsonSuggestionHistory

from .config import Settings
from .errors import ConfigurationError
from .models import BrandInsights, BrandVoicePost, GeneralSentiment, Mention, TopicSummary

logger = logging.getLogger(__name__)


class BrandInsightsPipeline:
    """One object per host process; cache and history are injected so runs can share or isolate them."""

    def __init__(
        self,
        mention_source,
        llm_client,
        settings: Optional[Settings] = None,
        cache: Optional[AnnotationCache] = None,
        history=None,
        consolidator: Optional[TopicConsolidator] = None,
        annotator_factory: Optional[Callable[[str], SentimentAnnotator]] = None,
        image_client=None,
        video_client=None,
        enable_actionable_steps: bool = True,
    ):
        self.settings = settings or Settings()
        self.mention_source = mention_source
        self.llm = llm_client
        if cache is None:
            cache = AnnotationCache(max_age=timedelta(hours=self.settings.cache_ttl_hours))
        self.cache = cache
        self.history = history if history is not None else InMemorySuggestionHistory()
        self.consolidator = consolidator or TopicConsolidator(llm_client)
        self.image_client = image_client
        self.video_client = video_client
        self.enable_actionable_steps = enable_actionable_steps
        self.suggestion_engine = SuggestionEngine(llm_client, self.history)

        if annotator_factory is None:
            scorer = VaderPolarityScorer()

            def annotator_factory(brand: str) -> SentimentAnnotator:
                return SentimentAnnotator(brand=brand, polarity_scorer=scorer)

        self.annotator_factory = annotator_factory
        self.logger = logger

    async def _fetch(self, brand: str) -> Tuple[List[Mention], List[BrandVoicePost]]:
        results = await asyncio.gather(
            self.mention_source.search_public_mentions(brand),
            self.mention_source.search_brand_voice(brand),
            return_exceptions=True,
        )
        fetched = []
        for name, result in zip(("mentions", "brand voice"), results):
            if isinstance(result, ConfigurationError):
                raise result
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                self.logger.error(f"❌ Failed to fetch {name} for {brand}: {result}")
                fetched.append([])
            else:
                fetched.append(list(result))
        return fetched[0], fetched[1]

    async def _analyze(self, brand: str, mentions: List[Mention]):
        self.cache.evict_older_than()

        mention_ids = [m.id for m in mentions]
        unanalyzed = set(self.cache.get_unanalyzed(mention_ids))
        new_mentions = [m for m in mentions if m.id in unanalyzed]
        self.logger.info(f"📊 {len(mentions)} mentions, {len(new_mentions)} need annotation, {len(mentions) - len(new_mentions)} cached")

        if new_mentions:
            annotations = self.annotator_factory(brand).annotate(new_mentions)
            annotations = await self.consolidator.consolidate(annotations)
            stored = self.cache.store_batch(annotations)
            self.logger.info(f"Stored {stored} new annotations")

        return self.cache.annotations_for(mention_ids)

    async def _suggest(
        self,
        brand: str,
        summaries: List[TopicSummary],
        general: GeneralSentiment,
        voice: List[BrandVoicePost],
    ) -> List[Suggestion]:
        try:
            return await self.suggestion_engine.generate(brand, summaries, general, voice)
        except ConfigurationError:
            raise
        except Exception as e:
            self.logger.error(f"❌ Suggestion generation failed for {brand}: {e}")
            return []

    async def _creatives(
        self,
        brand: str,
        suggestions: List[Suggestion],
        voice: List[BrandVoicePost],
        ad_format: str,
        wait_for_video: bool,
    ) -> CreativeBatch:
        top = suggestions[: self.settings.creative_suggestions]
        if not top:
            return CreativeBatch()
        try:
            orchestrator = CreativeOrchestrator(
                self.llm,
                image_client=self.image_client,
                video_client=self.video_client,
                ad_format=ad_format,
                wait_for_video=wait_for_video,
            )
            return await orchestrator.run(brand, top, voice)
        except ConfigurationError:
            raise
        except Exception as e:
            self.logger.error(f"❌ Creative generation failed for {brand}: {e}")
            return CreativeBatch()

    async def run(
        self,
        brand: str,
        generate_creatives: bool = True,
        ad_format: Optional[str] = None,
        wait_for_video: Optional[bool] = None,
    ) -> BrandInsights:
        """Run every stage for ``brand`` and return the assembled result."""
        start_time = time.time()
        self.logger.info(f"🚀 Starting brand insights run for '{brand}'")

        mentions, voice = await self._fetch(brand)
        scored = sort_by_engagement(score_mentions(mentions))

        annotations = await self._analyze(brand, scored)
        summaries = aggregate_topics(annotations)
        general = compute_general_sentiment(annotations)
        self.logger.info(f"General sentiment: {general.score} ({general.label}) across {len(summaries)} topics")

        suggestions = await self._suggest(brand, summaries, general, voice)

        steps = {}
        if self.enable_actionable_steps and suggestions:
            steps = await generate_actionable_steps(self.llm, brand, summaries, suggestions, general, voice)

        batch = CreativeBatch()
        if generate_creatives:
            batch = await self._creatives(
                brand,
                suggestions,
                voice,
                ad_format or self.settings.ad_format,
                self.settings.wait_for_video if wait_for_video is None else wait_for_video,
            )

        insights = BrandInsights(
            brand=brand,
            mentions=scored,
            brand_voice_samples=voice,
            annotations=annotations,
            topic_summaries=summaries,
            general_sentiment=general,
            suggestions=suggestions,
            actionable_steps=steps,
            generated_ad_ideas=batch.ad_ideas,
            generated_media=batch.media,
            pending_video_ads=batch.pending_videos,
        )
        self.logger.info(f"✅ Brand insights for '{brand}' completed in {time.time() - start_time:.1f}s")
        return insights


def build_default_pipeline(settings: Optional[Settings] = None, cache: Optional[AnnotationCache] = None) -> BrandInsightsPipeline:
    """Wire real network clients from settings."""
    from fetchers.llm_client import LLMClient
    from fetchers.media_client import ImageClient, VideoClient
    from fetchers.twitter_mention_fetcher import build_mention_source

    settings = settings or Settings.from_env()
    return BrandInsightsPipeline(
        mention_source=build_mention_source(settings),
        llm_client=LLMClient(settings),
        settings=settings,
        cache=cache,
        history=JsonSuggestionHistory(settings.history_path),
        image_client=ImageClient(settings),
        video_client=VideoClient(settings),
    )
