"""Pure aggregation of annotations into topic summaries and overall sentiment."""
from __future__ import annotations

from typing import Dict, List, Sequence

from pulse_engine.models import (
    AnnotatedMention,
    GeneralSentiment,
    IntensityBreakdown,
    TopicSummary,
    normalize_topic,
)

MAX_SAMPLE_IDS = 3
INTENSITY_WEIGHTS = {"high": 2.0, "medium": 1.3, "low": 1.0}
LABEL_THRESHOLDS = (
    (80, "very positive"),
    (60, "positive"),
    (40, "neutral"),
    (20, "negative"),
)
FALLBACK_TOPIC = "general"


def positive_percentage(positive: int, total: int) -> int:
    return round(positive / total * 100) if total > 0 else 0


def _normalized_topics(annotation: AnnotatedMention) -> List[str]:
    topics: List[str] = []
    for raw_topic in annotation.topics or [FALLBACK_TOPIC]:
        topic = normalize_topic(raw_topic)
        if topic not in topics:
            topics.append(topic)
    return topics


def aggregate_topics(annotations: Sequence[AnnotatedMention]) -> List[TopicSummary]:
    """Build one summary per canonical topic, most-mentioned first.

    Fresh structures on every call: the same input always yields the same output.
    """
    counters: Dict[str, dict] = {}
    for annotation in annotations:
        for topic in _normalized_topics(annotation):
            bucket = counters.setdefault(
                topic,
                {
                    "total": 0,
                    "positive": 0,
                    "neutral": 0,
                    "negative": 0,
                    "samples": [],
                    "intensity": {"low": 0, "medium": 0, "high": 0},
                },
            )
            bucket["total"] += 1
            bucket[annotation.sentiment] += 1
            bucket["intensity"][annotation.intensity] += 1
            if len(bucket["samples"]) < MAX_SAMPLE_IDS:
                bucket["samples"].append(annotation.mention_id)

    summaries = [
        TopicSummary(
            topic=topic,
            total=bucket["total"],
            positive=bucket["positive"],
            neutral=bucket["neutral"],
            negative=bucket["negative"],
            positive_pct=positive_percentage(bucket["positive"], bucket["total"]),
            sample_mention_ids=list(bucket["samples"]),
            intensity_breakdown=IntensityBreakdown(**bucket["intensity"]),
        )
        for topic, bucket in counters.items()
    ]
    # Stable: equal totals keep first-seen order.
    return sorted(summaries, key=lambda s: s.total, reverse=True)


def label_for_score(score: int) -> str:
    for threshold, label in LABEL_THRESHOLDS:
        if score >= threshold:
            return label
    return "very negative"


def annotation_contribution(annotation: AnnotatedMention) -> float:
    """Positivity contribution of one annotation, in [0, 1]."""
    if annotation.sentiment == "neutral":
        score = 0.5
    else:
        # sentiment_score is a positivity scale: negative mentions sit below 0.5.
        score = annotation.sentiment_score
    if annotation.is_sarcasm:
        score = 1 - score
    return score


def compute_general_sentiment(annotations: Sequence[AnnotatedMention]) -> GeneralSentiment:
    """Intensity-weighted brand sentiment on a 0-100 scale (50/neutral when empty)."""
    weighted_sum = 0.0
    total_weight = 0.0
    for annotation in annotations:
        weight = INTENSITY_WEIGHTS[annotation.intensity]
        weighted_sum += annotation_contribution(annotation) * weight
        total_weight += weight

    if total_weight == 0:
        return GeneralSentiment(score=50, label="neutral")

    score = round(100 * weighted_sum / total_weight)
    score = max(0, min(100, score))
    return GeneralSentiment(score=score, label=label_for_score(score))
