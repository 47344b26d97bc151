"""Persisted list of recently suggested topics, used to avoid repetition."""
from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Iterable, List

from pulse_engine.models import normalize_topic

from .models import SuggestionHistory

logger = logging.getLogger(__name__)

MAX_RECENT_TOPICS = 20


def merge_topics(new_topics: Iterable[str], existing: Iterable[str], limit: int = MAX_RECENT_TOPICS) -> List[str]:
    """New topics first, then existing ones; normalised, de-duplicated, bounded."""
    merged: List[str] = []
    for topic in list(new_topics) + list(existing):
        if not isinstance(topic, str):
            continue
        normalized = normalize_topic(topic)
        if normalized and normalized not in merged:
            merged.append(normalized)
    return merged[:limit]


class InMemorySuggestionHistory:
    """History kept only for the lifetime of the object."""

    def __init__(self, recent_topics: Iterable[str] = (), limit: int = MAX_RECENT_TOPICS):
        self.limit = limit
        self._topics = merge_topics(recent_topics, [], limit)
        self._lock = threading.Lock()

    def load(self) -> SuggestionHistory:
        return SuggestionHistory(recent_topics=list(self._topics))

    def add_topics(self, topics: Iterable[str]) -> SuggestionHistory:
        with self._lock:
            self._topics = merge_topics(topics, self._topics, self.limit)
            return SuggestionHistory(recent_topics=list(self._topics))

    def clear(self) -> None:
        with self._lock:
            self._topics = []


class JsonSuggestionHistory:
    """History persisted as ``{"recent_topics": [...]}`` in a small JSON file."""

    def __init__(self, path: Path, limit: int = MAX_RECENT_TOPICS):
        self.path = Path(path)
        self.limit = limit
        self._lock = threading.Lock()

    def load(self) -> SuggestionHistory:
        if not self.path.exists():
            return SuggestionHistory()
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            topics = data.get("recent_topics", []) if isinstance(data, dict) else []
            return SuggestionHistory(recent_topics=merge_topics(topics, [], self.limit))
        except (OSError, ValueError) as e:
            logger.warning(f"Could not load suggestion history from {self.path}: {e}")
            return SuggestionHistory()

    def _save(self, history: SuggestionHistory) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(history.model_dump(), f, indent=2)

    def add_topics(self, topics: Iterable[str]) -> SuggestionHistory:
        with self._lock:
            current = self.load()
            updated = SuggestionHistory(recent_topics=merge_topics(topics, current.recent_topics, self.limit))
            self._save(updated)
        return updated

    def clear(self) -> None:
        with self._lock:
            self._save(SuggestionHistory())
