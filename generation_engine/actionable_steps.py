"""Per-topic action playbooks built on top of the generated suggestions."""

import logging
from typing import Dict, Sequence

from fetchers.llm_client import extract_list
from pulse_engine.errors import ConfigurationError
from pulse_engine.models import BrandVoicePost, GeneralSentiment, TopicSummary

from .models import Suggestion

logger = logging.getLogger(__name__)

MAX_TOPICS = 8
MAX_VOICE_SAMPLES = 8
MAX_SUGGESTIONS = 6


def _build_prompt(
    brand: str,
    topic_summaries: Sequence[TopicSummary],
    suggestions: Sequence[Suggestion],
    general_sentiment: GeneralSentiment,
    voice_samples: Sequence[BrandVoicePost],
) -> str:
    top_topics = sorted(topic_summaries, key=lambda t: t.total, reverse=True)[:MAX_TOPICS]
    voice_context = "\n".join(f"- {post.text}" for post in voice_samples[:MAX_VOICE_SAMPLES])
    suggestion_context = "\n".join(
        f"- {s.topic}: {s.title} ({s.priority})" for s in suggestions[:MAX_SUGGESTIONS]
    )
    topics_context = "\n".join(
        f"- {t.topic} | mentions:{t.total} | positive:{t.positive_pct}% | intensity-high:{t.intensity_breakdown.high}"
        for t in top_topics
    )

    return f"""You are a lifecycle and social strategist for {brand}.
We have clustered public posts into topics and want a short playbook for each topic to improve favorability.

Overall sentiment: {general_sentiment.score}/100 ({general_sentiment.label})

Brand tone reference (recent posts):
{voice_context or "- (no samples provided)"}

Existing suggestions:
{suggestion_context or "- none yet"}

Topics (prioritize those at the top):
{topics_context}

For EACH topic above, write a focused 3-4 sentence action plan with:
- The opening move (acknowledge pain or amplify win)
- Creative angle + proof to show
- Targeting/retargeting hint (who to show this to)
- CTA wording that fits the tone

Return ONLY JSON with this shape:
{{
  "actionable_steps": [
    {{ "topic": "topic name", "playbook": "3-4 sentences" }}
  ]
}}"""


async def generate_actionable_steps(
    llm_client,
    brand: str,
    topic_summaries: Sequence[TopicSummary],
    suggestions: Sequence[Suggestion],
    general_sentiment: GeneralSentiment,
    voice_samples: Sequence[BrandVoicePost] = (),
) -> Dict[str, str]:
    """Return ``{topic: playbook}``; any non-configuration failure yields ``{}``."""
    if not topic_summaries:
        return {}

    prompt = _build_prompt(brand, topic_summaries, suggestions, general_sentiment, voice_samples)
    try:
        result = await llm_client.complete(prompt, json_mode=True, temperature=0.0)
    except ConfigurationError:
        raise
    except Exception as e:
        logger.error(f"Failed to generate playbooks: {e}")
        return {}

    playbooks: Dict[str, str] = {}
    for item in extract_list(result, "actionable_steps"):
        if not isinstance(item, dict):
            continue
        topic, playbook = item.get("topic"), item.get("playbook")
        if isinstance(topic, str) and topic.strip() and isinstance(playbook, str):
            playbooks[topic.strip()] = playbook.strip()
    return playbooks
