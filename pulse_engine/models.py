"""Core records flowing through the insights pipeline."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from generation_engine.models import AdIdea, GeneratedMedia, Suggestion

SentimentLabel = Literal["positive", "neutral", "negative"]
Intensity = Literal["low", "medium", "high"]
OverallLabel = Literal["very negative", "negative", "neutral", "positive", "very positive"]

_FROZEN = {"frozen": True}


def normalize_topic(topic: str) -> str:
    """Lowercase with collapsed whitespace; the single topic key used everywhere."""
    return " ".join(topic.split()).lower()


class MentionMetrics(BaseModel):
    likes: int = 0
    retweets: int = 0
    replies: int = 0
    quotes: int = 0
    impressions: Optional[int] = None

    model_config = _FROZEN


class Mention(BaseModel):
    """A public post referencing the brand."""

    id: str
    text: str
    author_id: str = ""
    created_at: datetime
    metrics: MentionMetrics = Field(default_factory=MentionMetrics)
    author_followers: Optional[int] = Field(None, description="Author follower count, used by the spam filter")

    model_config = _FROZEN


class ScoredMention(Mention):
    engagement_score: int = Field(..., ge=0, description="likes + 2*replies + 2*quotes + 3*retweets")


class BrandVoicePost(BaseModel):
    """A recent post authored by the brand itself, used as tone reference."""

    id: str
    text: str
    created_at: Optional[datetime] = None
    metrics: Optional[MentionMetrics] = None

    model_config = _FROZEN


class AnnotatedMention(BaseModel):
    mention_id: str
    sentiment: SentimentLabel
    sentiment_score: float = Field(..., ge=0.0, le=1.0, description="0.0 very negative .. 1.0 very positive")
    topics: List[str] = Field(..., min_length=1)
    key_phrase: Optional[str] = None
    is_sarcasm: bool = False
    intensity: Intensity
    analyzed_at: datetime

    model_config = _FROZEN


class IntensityBreakdown(BaseModel):
    low: int = 0
    medium: int = 0
    high: int = 0

    model_config = _FROZEN


class TopicSummary(BaseModel):
    topic: str
    total: int
    positive: int
    neutral: int
    negative: int
    positive_pct: int = Field(..., ge=0, le=100)
    sample_mention_ids: List[str] = Field(default_factory=list, max_length=3)
    intensity_breakdown: IntensityBreakdown = Field(default_factory=IntensityBreakdown)

    model_config = _FROZEN


class GeneralSentiment(BaseModel):
    score: int = Field(50, ge=0, le=100)
    label: OverallLabel = "neutral"

    model_config = _FROZEN


class BrandInsights(BaseModel):
    """Everything one pipeline invocation produced for a brand."""

    brand: str
    mentions: List[ScoredMention] = Field(default_factory=list)
    brand_voice_samples: List[BrandVoicePost] = Field(default_factory=list)
    annotations: List[AnnotatedMention] = Field(default_factory=list)
    topic_summaries: List[TopicSummary] = Field(default_factory=list)
    general_sentiment: GeneralSentiment = Field(default_factory=GeneralSentiment)
    suggestions: List[Suggestion] = Field(default_factory=list)
    actionable_steps: Dict[str, str] = Field(default_factory=dict)
    generated_ad_ideas: List[AdIdea] = Field(default_factory=list)
    generated_media: List[GeneratedMedia] = Field(default_factory=list)
    pending_video_ads: List[AdIdea] = Field(default_factory=list)
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
