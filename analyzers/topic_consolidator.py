"""LLM-assisted clustering of raw keywords into canonical business topics."""

import logging
import time
from collections import Counter
from typing import Dict, Iterable, List, Sequence

from pulse_engine.errors import ConfigurationError
from pulse_engine.models import AnnotatedMention, normalize_topic

logger = logging.getLogger(__name__)

MAX_KEYWORDS = 60
MIN_TOPICS = 5
MAX_TOPICS = 8
GENERAL_CHATTER = "general chatter"


def count_keywords(annotations: Iterable[AnnotatedMention]) -> Counter:
    """Frequency of every provisional topic across an annotator pass."""
    counts: Counter = Counter()
    for annotation in annotations:
        counts.update(annotation.topics)
    return counts


def identity_mapping(keywords: Iterable[str]) -> Dict[str, str]:
    return {keyword: keyword for keyword in keywords}


class TopicConsolidator:
    """Collapse noisy keyword candidates into a handful of canonical topics.

    One LLM call per pass. On any failure the consolidator degrades to an
    identity mapping so that each raw keyword becomes its own topic.
    """

    def __init__(self, llm_client, max_keywords: int = MAX_KEYWORDS):
        self.llm = llm_client
        self.max_keywords = max_keywords
        self.logger = logger

    def _get_clustering_prompt(self, keyword_counts: List[tuple]) -> str:
        keywords_text = "\n".join(f"- {keyword} ({count} mentions)" for keyword, count in keyword_counts)
        return f"""You are a brand analyst. These keywords were extracted from public social media posts about a brand.

KEYWORDS (with frequency):
{keywords_text}

Group them into {MIN_TOPICS}-{MAX_TOPICS} canonical business topics such as "pricing", "shipping",
"customer support", "product quality", "design". Topic labels must be short, lower-case and human-readable.

Return ONLY a JSON object mapping every keyword above to its topic label:
{{
  "keyword": "topic label"
}}"""

    async def build_mapping(self, keywords: Sequence[str]) -> Dict[str, str]:
        """Return ``{raw_keyword: canonical_topic}`` for the given multiset of keywords.

        Empty input returns an empty mapping without calling the LLM.
        """
        if not keywords:
            return {}

        counts = Counter(keywords)
        top_keywords = counts.most_common(self.max_keywords)
        start_time = time.time()
        self.logger.info(f"Consolidating {len(counts)} distinct keywords (top {len(top_keywords)} sent to LLM)...")

        try:
            result = await self.llm.complete(self._get_clustering_prompt(top_keywords), json_mode=True, temperature=0.0)
        except ConfigurationError:
            raise
        except Exception as e:
            self.logger.warning(f"Topic consolidation failed, falling back to raw keywords: {e}")
            return identity_mapping(counts)

        mapping = self._parse_mapping(result)
        if not mapping:
            self.logger.warning("Topic consolidation returned no usable mapping, falling back to raw keywords")
            return identity_mapping(counts)

        self.logger.info(
            f"Consolidated into {len(set(mapping.values()))} topics in {time.time() - start_time:.1f}s"
        )
        return mapping

    def _parse_mapping(self, result) -> Dict[str, str]:
        if not isinstance(result, dict):
            return {}
        mapping: Dict[str, str] = {}
        for raw, canonical in result.items():
            if isinstance(raw, str) and isinstance(canonical, str) and canonical.strip():
                mapping[normalize_topic(raw)] = normalize_topic(canonical)
        return mapping

    @staticmethod
    def apply_mapping(annotation: AnnotatedMention, mapping: Dict[str, str]) -> AnnotatedMention:
        """Rewrite provisional topics to canonical ones; unmapped keywords become general chatter."""
        topics: List[str] = []
        for keyword in annotation.topics:
            canonical = mapping.get(normalize_topic(keyword), GENERAL_CHATTER)
            if canonical not in topics:
                topics.append(canonical)
        return annotation.model_copy(update={"topics": topics or [GENERAL_CHATTER]})

    async def consolidate(self, annotations: Sequence[AnnotatedMention]) -> List[AnnotatedMention]:
        """Consolidate the topics of one annotator pass."""
        if not annotations:
            return []
        mapping = await self.build_mapping(list(count_keywords(annotations).elements()))
        return [self.apply_mapping(annotation, mapping) for annotation in annotations]
