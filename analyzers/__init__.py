"""Mention scoring, annotation, topic consolidation, caching and aggregation."""

__all__ = [
    "AnnotationCache",
    "SentimentAnnotator",
    "TopicConsolidator",
    "aggregate_topics",
    "compute_general_sentiment",
    "score_mentions",
]

from .annotation_cache import AnnotationCache
from .mention_scorer import score_mentions
from .sentiment_annotator import SentimentAnnotator
from .topic_aggregator import aggregate_topics, compute_general_sentiment
from .topic_consolidator import TopicConsolidator
