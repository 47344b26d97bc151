"""Lexicon-based sentiment, intensity and keyword annotation for mentions."""

import logging
import re
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional, Sequence

from vaderSentiment.vaderSentiment import SentimentIntensityAnalyzer

from pulse_engine.models import AnnotatedMention, Mention

logger = logging.getLogger(__name__)

POSITIVE_THRESHOLD = 0.05
NEGATIVE_THRESHOLD = -0.05
HIGH_INTENSITY = 0.6
MEDIUM_INTENSITY = 0.3

MAX_PROVISIONAL_TOPICS = 2
MIN_KEYWORD_LENGTH = 3
GENERAL_TOPIC = "general"

# Customer-experience vocabulary the stock VADER lexicon does not score.
DOMAIN_LEXICON = {
    "forever": -1.5,
    "delayed": -1.6,
    "refund": -1.2,
    "backorder": -1.2,
    "backordered": -1.2,
    "restock": 0.8,
    "restocked": 1.2,
    "sold-out": -0.6,
    "overpriced": -2.0,
    "scam": -2.6,
    "ripoff": -2.4,
    "flimsy": -1.8,
    "comfy": 1.9,
}

STOPWORDS = frozenset(
    """
    a about above after again against all almost also am an and any are aren't as at be because been before
    being below between both but by can can't cannot could couldn't did didn't do does doesn't doing don't
    down during each even ever every few for from further get gets getting got had hadn't has hasn't have
    haven't having he her here hers herself him himself his how i i'm i've if in into is isn't it it's its
    itself just know let like made make makes many may me might more most much must my myself need new no
    nor not now of off on once one only or other our ours ourselves out over own really same say said see
    she should shouldn't since so some still such take than that that's the their theirs them themselves
    then there there's these they they're thing things think this those though through to too took under
    until up upon us very via want was wasn't way we we're well were weren't what what's when where which
    while who whom why will with won't would wouldn't yet you you're your yours yourself yourselves
    rt amp via lol omg tbh imo btw gonna wanna yeah today tonight yesterday tomorrow
    """.split()
)

_MENTION_RE = re.compile(r"@\w+")
_URL_RE = re.compile(r"https?://\S+|www\.\S+", re.IGNORECASE)
_NON_WORD_RE = re.compile(r"[^a-z\s'-]")
_DIGIT_RE = re.compile(r"\d+")


@dataclass
class PolarityResult:
    """Lexicon scoring of a single text."""

    compound: float  # -1.0 .. 1.0
    sentiment: str  # positive / neutral / negative
    intensity: str  # low / medium / high
    normalized_score: float  # 0.0 .. 1.0


def classify_compound(compound: float) -> PolarityResult:
    """Map a VADER compound score onto label, intensity and a 0-1 positivity score."""
    compound = max(-1.0, min(1.0, compound))

    if compound >= POSITIVE_THRESHOLD:
        sentiment = "positive"
    elif compound <= NEGATIVE_THRESHOLD:
        sentiment = "negative"
    else:
        sentiment = "neutral"

    magnitude = abs(compound)
    if magnitude > HIGH_INTENSITY:
        intensity = "high"
    elif magnitude > MEDIUM_INTENSITY:
        intensity = "medium"
    else:
        intensity = "low"

    return PolarityResult(
        compound=compound,
        sentiment=sentiment,
        intensity=intensity,
        normalized_score=(compound + 1) / 2,
    )


class VaderPolarityScorer:
    """Callable wrapper around VADER with the domain lexicon applied."""

    def __init__(self, extra_lexicon: Optional[dict] = None):
        self.analyzer = SentimentIntensityAnalyzer()
        self.analyzer.lexicon.update(DOMAIN_LEXICON)
        if extra_lexicon:
            self.analyzer.lexicon.update(extra_lexicon)

    def __call__(self, text: str) -> float:
        return self.analyzer.polarity_scores(text)["compound"]


def clean_text(text: str) -> str:
    """Strip @handles, URLs, digits and punctuation; lower-case the rest."""
    text = _MENTION_RE.sub(" ", text)
    text = _URL_RE.sub(" ", text)
    text = text.lower().replace("#", " ")
    text = _DIGIT_RE.sub(" ", text)
    return _NON_WORD_RE.sub(" ", text)


def extract_keywords(text: str, blacklist: Iterable[str] = ()) -> List[str]:
    """Return candidate keywords in order of appearance, de-duplicated."""
    blocked = STOPWORDS | {word.lower() for word in blacklist}
    keywords: List[str] = []
    for token in clean_text(text).split():
        token = token.strip("'-")
        if len(token) < MIN_KEYWORD_LENGTH or token in blocked or token in keywords:
            continue
        keywords.append(token)
    return keywords


def brand_blacklist(brand: str) -> List[str]:
    """Tokens naming the brand itself, which never make useful topics."""
    base = brand.lower().lstrip("@#").strip()
    if not base:
        return []
    variants = {base, base.replace(" ", ""), f"{base}s", f"{base}'s"}
    variants.update(base.split())
    return sorted(variants)


class SentimentAnnotator:
    """Annotate mentions with polarity, intensity and provisional topics.

    Sarcasm is not detected: ``is_sarcasm`` is always ``False``. Lexicon
    scoring has no reliable signal for it; this is a known limitation.
    """

    def __init__(
        self,
        brand: str = "",
        polarity_scorer: Optional[Callable[[str], float]] = None,
        extra_blacklist: Sequence[str] = (),
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.logger = logger
        self.polarity_scorer = polarity_scorer or VaderPolarityScorer()
        self.blacklist = set(brand_blacklist(brand)) | {w.lower() for w in extra_blacklist}
        self.clock = clock

    def annotate(self, mentions: Sequence[Mention]) -> List[AnnotatedMention]:
        """Annotate every mention; a failing mention is logged and skipped."""
        if not mentions:
            return []

        start_time = time.time()
        self.logger.info(f"Annotating {len(mentions)} mentions with lexicon sentiment...")

        annotated: List[AnnotatedMention] = []
        for mention in mentions:
            try:
                annotated.append(self.annotate_single(mention))
            except Exception as e:
                self.logger.error(f"Failed to annotate mention {getattr(mention, 'id', '?')}: {e}")

        elapsed = time.time() - start_time
        self.logger.info(f"Annotated {len(annotated)}/{len(mentions)} mentions in {elapsed:.2f}s")
        return annotated

    def annotate_single(self, mention: Mention) -> AnnotatedMention:
        polarity = classify_compound(float(self.polarity_scorer(mention.text)))
        keywords = extract_keywords(mention.text, self.blacklist)
        topics = keywords[:MAX_PROVISIONAL_TOPICS] or [GENERAL_TOPIC]

        return AnnotatedMention(
            mention_id=mention.id,
            sentiment=polarity.sentiment,
            sentiment_score=polarity.normalized_score,
            topics=topics,
            key_phrase=keywords[0] if keywords else None,
            is_sarcasm=self._detect_sarcasm(mention.text),
            intensity=polarity.intensity,
            analyzed_at=self.clock(),
        )

    def _detect_sarcasm(self, text: str) -> bool:
        return False
