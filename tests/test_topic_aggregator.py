import pytest
from conftest import make_annotation

from analyzers.topic_aggregator import (
    aggregate_topics,
    annotation_contribution,
    compute_general_sentiment,
    label_for_score,
    positive_percentage,
)
from generation_engine.suggestion_history import InMemorySuggestionHistory


@pytest.fixture
def annotations():
    return [
        make_annotation(1, "negative", 0.2, ["shipping"], "high"),
        make_annotation(2, "negative", 0.3, ["Shipping ", "support"], "medium"),
        make_annotation(3, "positive", 0.9, ["design"], "high"),
        make_annotation(4, "neutral", 0.5, ["shipping"], "low"),
        make_annotation(5, "positive", 0.7, ["shipping"], "low"),
        make_annotation(6, "neutral", 0.5, ["design", "design"], "low"),
    ]


def test_summaries_satisfy_count_invariants(annotations):
    summaries = aggregate_topics(annotations)
    for summary in summaries:
        assert summary.positive + summary.neutral + summary.negative == summary.total
        assert 0 <= summary.positive_pct <= 100
        assert summary.positive_pct == positive_percentage(summary.positive, summary.total)
        breakdown = summary.intensity_breakdown
        assert breakdown.low + breakdown.medium + breakdown.high == summary.total


def test_grouping_normalizes_and_orders_by_volume(annotations):
    summaries = aggregate_topics(annotations)
    assert [s.topic for s in summaries] == ["shipping", "design", "support"]

    shipping = summaries[0]
    assert (shipping.total, shipping.positive, shipping.neutral, shipping.negative) == (4, 1, 1, 2)
    assert shipping.positive_pct == 25
    assert shipping.sample_mention_ids == ["1", "2", "4"]
    assert shipping.intensity_breakdown.high == 1

    # A repeated topic on one annotation counts once
    assert summaries[1].total == 2


def test_aggregation_is_idempotent(annotations):
    first = aggregate_topics(annotations)
    second = aggregate_topics(annotations)
    assert [s.model_dump_json() for s in first] == [s.model_dump_json() for s in second]


def test_internal_whitespace_matches_history_key():
    summaries = aggregate_topics([
        make_annotation(1, "negative", 0.2, ["customer support"]),
        make_annotation(2, "negative", 0.3, ["Customer  Support"]),
    ])
    assert [(s.topic, s.total) for s in summaries] == [("customer support", 2)]

    history = InMemorySuggestionHistory()
    history.add_topics(["Customer  Support"])
    assert history.load().recent_topics == [summaries[0].topic]


def test_empty_annotations():
    assert aggregate_topics([]) == []
    general = compute_general_sentiment([])
    assert (general.score, general.label) == (50, "neutral")


def test_positive_percentage_zero_total():
    assert positive_percentage(0, 0) == 0
    assert positive_percentage(2, 3) == 67


@pytest.mark.parametrize(
    "score, label",
    [(100, "very positive"), (80, "very positive"), (79, "positive"), (60, "positive"),
     (59, "neutral"), (40, "neutral"), (39, "negative"), (20, "negative"), (19, "very negative"), (0, "very negative")],
)
def test_label_thresholds(score, label):
    assert label_for_score(score) == label


def test_contribution_rules():
    assert annotation_contribution(make_annotation(1, "neutral", 0.9)) == 0.5
    assert annotation_contribution(make_annotation(1, "positive", 0.8)) == 0.8
    assert annotation_contribution(make_annotation(1, "negative", 0.2)) == 0.2
    assert annotation_contribution(make_annotation(1, "negative", 0.2, is_sarcasm=True)) == pytest.approx(0.8)


def test_general_sentiment_is_intensity_weighted():
    general = compute_general_sentiment([
        make_annotation(1, "negative", 0.0, intensity="high"),
        make_annotation(2, "positive", 1.0, intensity="low"),
    ])
    # (0 * 2.0 + 1 * 1.0) / 3.0
    assert general.score == 33
    assert general.label == "negative"


def test_all_very_negative_mentions_score_low():
    general = compute_general_sentiment([make_annotation(i, "negative", 0.05, intensity="high") for i in range(4)])
    assert general.score == 5
    assert general.label == "very negative"
