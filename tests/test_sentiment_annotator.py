import pytest
from conftest import BASE_TIME, CountingScorer, make_mention

from analyzers.sentiment_annotator import (
    GENERAL_TOPIC,
    SentimentAnnotator,
    VaderPolarityScorer,
    brand_blacklist,
    classify_compound,
    clean_text,
    extract_keywords,
)


@pytest.mark.parametrize(
    "compound, sentiment, intensity",
    [
        (0.05, "positive", "low"),
        (0.049, "neutral", "low"),
        (-0.05, "negative", "low"),
        (0.31, "positive", "medium"),
        (-0.6, "negative", "medium"),
        (0.61, "positive", "high"),
        (-0.95, "negative", "high"),
    ],
)
def test_classify_compound_thresholds(compound, sentiment, intensity):
    result = classify_compound(compound)
    assert result.sentiment == sentiment
    assert result.intensity == intensity


def test_classify_compound_normalizes_into_unit_range():
    assert classify_compound(-1.0).normalized_score == 0.0
    assert classify_compound(1.0).normalized_score == 1.0
    assert classify_compound(0.0).normalized_score == 0.5
    # Out-of-range scores are clamped
    assert classify_compound(3.5).normalized_score == 1.0


def test_clean_text_strips_handles_urls_and_punctuation():
    cleaned = clean_text("@acme your #Checkout is broken!!! https://t.co/abc 100%")
    assert "acme" not in cleaned
    assert "http" not in cleaned
    assert "checkout" in cleaned.split()
    assert "!" not in cleaned and "100" not in cleaned


def test_extract_keywords_filters_stopwords_short_tokens_and_blacklist():
    keywords = extract_keywords("The Acme app is so slow at checkout, so slow", blacklist=["acme"])
    assert keywords == ["app", "slow", "checkout"]


def test_brand_blacklist_includes_variants():
    variants = brand_blacklist("Acme Co")
    assert "acme co" in variants
    assert "acmeco" in variants
    assert "acme" in variants


def test_annotate_single_uses_two_provisional_topics():
    scorer = CountingScorer(default=-0.7)
    annotator = SentimentAnnotator(brand="acme", polarity_scorer=scorer, clock=lambda: BASE_TIME)

    annotation = annotator.annotate_single(make_mention(1, "@acme shipping delays and refund drama again"))

    assert annotation.sentiment == "negative"
    assert annotation.intensity == "high"
    assert annotation.topics == ["shipping", "delays"]
    assert annotation.key_phrase == "shipping"
    assert annotation.is_sarcasm is False
    assert annotation.analyzed_at == BASE_TIME
    assert annotation.sentiment_score == pytest.approx(0.15)


def test_annotate_defaults_to_general_topic_when_nothing_survives():
    annotator = SentimentAnnotator(polarity_scorer=CountingScorer())
    annotation = annotator.annotate_single(make_mention(1, "it is so ok"))
    assert annotation.topics == [GENERAL_TOPIC]
    assert annotation.key_phrase is None


def test_annotate_skips_failing_mention_and_continues():
    class ExplodingScorer(CountingScorer):
        def __call__(self, text):
            if "boom" in text:
                raise ValueError("bad text")
            return super().__call__(text)

    annotator = SentimentAnnotator(polarity_scorer=ExplodingScorer())
    mentions = [make_mention(1, "great jacket"), make_mention(2, "boom"), make_mention(3, "nice boots")]

    annotations = annotator.annotate(mentions)

    assert [a.mention_id for a in annotations] == ["1", "3"]


def test_sentiment_score_always_in_unit_range():
    scorer = VaderPolarityScorer()
    annotator = SentimentAnnotator(brand="acme", polarity_scorer=scorer)
    texts = [
        "I absolutely love love LOVE this, best purchase ever!!!",
        "Worst. Service. Ever. Total scam, overpriced garbage, I hate it",
        "Shipping took forever",
        "The store is on Main Street",
        "",
    ]
    annotations = annotator.annotate([make_mention(i, t) for i, t in enumerate(texts)])

    assert len(annotations) == len(texts)
    for annotation in annotations:
        assert 0.0 <= annotation.sentiment_score <= 1.0


def test_domain_lexicon_makes_slow_shipping_negative():
    scorer = VaderPolarityScorer()
    assert classify_compound(scorer("Shipping took forever")).sentiment == "negative"
    assert classify_compound(scorer("Love the new colorway")).sentiment == "positive"
    assert classify_compound(scorer("Ordered a jacket on Tuesday")).sentiment == "neutral"
