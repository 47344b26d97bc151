"""Rank topics by urgency and ask the LLM for tone-matched action suggestions."""

import logging
from dataclasses import dataclass
from typing import List, Sequence

from pydantic import ValidationError

from fetchers.llm_client import extract_list
from pulse_engine.models import BrandVoicePost, GeneralSentiment, TopicSummary, normalize_topic

from .models import Suggestion

logger = logging.getLogger(__name__)

SUGGESTION_COUNT = 3
TOP_TOPICS = 10
HIGH_PRIORITY_LIMIT = 5
AMPLIFY_THRESHOLD = 70
SUGGESTION_TEMPERATURE = 0.2


@dataclass
class RankedTopic:
    summary: TopicSummary
    priority_score: float


def priority_score(summary: TopicSummary) -> float:
    """``0.7*(100 - positive_pct) + 30*(high/total)``; negative, intense topics rank first."""
    high_share = summary.intensity_breakdown.high / max(summary.total, 1)
    return 0.7 * (100 - summary.positive_pct) + 30 * high_share


def rank_topics(summaries: Sequence[TopicSummary]) -> List[RankedTopic]:
    ranked = [RankedTopic(summary=s, priority_score=priority_score(s)) for s in summaries]
    return sorted(ranked, key=lambda r: r.priority_score, reverse=True)


def amplification_candidates(summaries: Sequence[TopicSummary]) -> List[TopicSummary]:
    return [s for s in summaries if s.positive_pct > AMPLIFY_THRESHOLD]


def validate_suggestions(raw_items: Sequence) -> List[Suggestion]:
    """Keep schema-valid items only, filling missing ids as ``sug-<n>``."""
    suggestions: List[Suggestion] = []
    for index, item in enumerate(raw_items, 1):
        try:
            suggestion = Suggestion.model_validate(item)
        except ValidationError as e:
            logger.info(f"Dropping invalid suggestion item #{index}: {e.error_count()} validation error(s)")
            continue
        if not suggestion.id:
            suggestion = suggestion.model_copy(update={"id": f"sug-{index}"})
        suggestions.append(suggestion)
    return suggestions


class SuggestionEngine:
    """Generate exactly-three actionable suggestions per pipeline run."""

    def __init__(self, llm_client, history_store):
        self.llm = llm_client
        self.history = history_store
        self.logger = logger

    def select_pool(self, summaries: Sequence[TopicSummary]) -> tuple:
        """Return ``(pool, excluded_topics)``.

        Topics in the recent history are removed; when that empties the pool
        the full list is used and nothing is excluded.
        """
        recent = set(self.history.load().recent_topics)
        available = [s for s in summaries if normalize_topic(s.topic) not in recent]
        if not available:
            if recent:
                self.logger.warning("All topics were in recent history. Falling back to all topics.")
            return sorted(summaries, key=lambda s: s.total, reverse=True), set()
        return sorted(available, key=lambda s: s.total, reverse=True), recent

    def _get_suggestion_prompt(
        self,
        brand: str,
        top_topics: Sequence[TopicSummary],
        general_sentiment: GeneralSentiment,
        voice_samples: Sequence[BrandVoicePost],
    ) -> str:
        voice_context = ""
        if voice_samples:
            voice_lines = "\n".join(f"- {post.text}" for post in voice_samples)
            voice_context = f"These are the brand's recent posts (for tone reference only):\n{voice_lines}\n"

        high_priority = rank_topics(top_topics)[:HIGH_PRIORITY_LIMIT]
        positive = amplification_candidates(top_topics)

        topics_context = "\n".join(
            [
                "TOP TOPICS BY VOLUME (focus suggestions here):",
                *[
                    f"- {t.topic}: {t.total} mentions, {t.positive_pct}% positive, "
                    f"high intensity: {t.intensity_breakdown.high}"
                    for t in top_topics
                ],
                "",
                "HIGH PRIORITY (negative or intense):",
                *[f"- {r.summary.topic}" for r in high_priority],
                "",
                "POSITIVE TOPICS TO AMPLIFY:",
                *[f"- {t.topic}" for t in positive],
            ]
        )

        return f"""{voice_context}
{topics_context}

Overall brand sentiment: {general_sentiment.score}/100 - {general_sentiment.label}

You are a senior social media strategist for {brand}.
Generate exactly {SUGGESTION_COUNT} concrete, actionable suggestions based on the data above.

Rules:
- Prioritize fixing high-priority topics (negative sentiment or high intensity)
- Amplify strong positive topics
- Every suggestion must include a ready-to-post copy (max 280 characters) in the brand's exact voice
- Use only topic names from the lists above for the "topic" field
- Do NOT make suggestions about specific users or handles; focus on themes and product experience

Return ONLY a JSON object with this exact structure:
{{
  "suggestions": [
    {{
      "id": string,
      "title": string,
      "rationale": string,
      "topic": string,
      "priority": "high" | "medium" | "low",
      "suggested_copy": string,
      "tone": "empathetic" | "funny" | "promotional" | "straightforward"
    }}
  ]
}}"""

    async def generate(
        self,
        brand: str,
        topic_summaries: Sequence[TopicSummary],
        general_sentiment: GeneralSentiment,
        voice_samples: Sequence[BrandVoicePost] = (),
    ) -> List[Suggestion]:
        """Generate suggestions and record their topics in the history.

        Errors from the LLM call propagate; the coordinator decides how to degrade.
        """
        if not topic_summaries:
            return []

        pool, excluded = self.select_pool(topic_summaries)
        top_topics = pool[:TOP_TOPICS]
        prompt = self._get_suggestion_prompt(brand, top_topics, general_sentiment, voice_samples)

        self.logger.info(f"Requesting {SUGGESTION_COUNT} suggestions for {brand} from {len(top_topics)} topics")
        result = await self.llm.complete(prompt, json_mode=True, temperature=SUGGESTION_TEMPERATURE)

        suggestions = validate_suggestions(extract_list(result, "suggestions"))
        if excluded:
            kept = [s for s in suggestions if normalize_topic(s.topic) not in excluded]
            if len(kept) < len(suggestions):
                self.logger.info(f"Dropped {len(suggestions) - len(kept)} suggestions on recently used topics")
            suggestions = kept

        if suggestions:
            self.history.add_topics([s.topic for s in suggestions])
            self.logger.info(f"Added {len(suggestions)} topics to exclusion history")

        return suggestions
