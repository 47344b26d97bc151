"""Engagement scoring for raw mentions."""
from __future__ import annotations

from typing import Iterable, List

from pulse_engine.models import Mention, ScoredMention

LIKE_WEIGHT = 1
REPLY_WEIGHT = 2
QUOTE_WEIGHT = 2
RETWEET_WEIGHT = 3


def compute_engagement_score(mention: Mention) -> int:
    """Return ``likes + 2*replies + 2*quotes + 3*retweets``."""
    m = mention.metrics
    return (
        m.likes * LIKE_WEIGHT
        + m.replies * REPLY_WEIGHT
        + m.quotes * QUOTE_WEIGHT
        + m.retweets * RETWEET_WEIGHT
    )


def score_mentions(mentions: Iterable[Mention]) -> List[ScoredMention]:
    """Attach an engagement score to every mention, preserving input order."""
    return [
        ScoredMention(**mention.model_dump(), engagement_score=compute_engagement_score(mention))
        for mention in mentions
    ]


def sort_by_engagement(mentions: Iterable[ScoredMention]) -> List[ScoredMention]:
    """Highest engagement first; equal scores keep fetch order (stable sort)."""
    return sorted(mentions, key=lambda m: m.engagement_score, reverse=True)


def sort_by_recency(mentions: Iterable[ScoredMention]) -> List[ScoredMention]:
    """Newest first; equal timestamps keep fetch order (stable sort)."""
    return sorted(mentions, key=lambda m: m.created_at, reverse=True)
