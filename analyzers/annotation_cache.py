"""In-process memo of mention annotations with age-based eviction."""

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Iterable, List, Optional

from pulse_engine.models import AnnotatedMention

logger = logging.getLogger(__name__)

DEFAULT_MAX_AGE = timedelta(hours=3)


class AnnotationCache:
    """Annotations keyed by mention id.

    An entry is either present (valid) or absent (must be recomputed).
    ``store_batch`` never overwrites an existing id; only eviction removes one.
    """

    def __init__(
        self,
        max_age: timedelta = DEFAULT_MAX_AGE,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.max_age = max_age
        self.clock = clock
        self._entries: Dict[str, AnnotatedMention] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, mention_id: str) -> bool:
        return mention_id in self._entries

    def get(self, mention_id: str) -> Optional[AnnotatedMention]:
        return self._entries.get(mention_id)

    def get_unanalyzed(self, mention_ids: Iterable[str]) -> List[str]:
        """Ids not yet present, in input order."""
        with self._lock:
            return [mention_id for mention_id in mention_ids if mention_id not in self._entries]

    def annotations_for(self, mention_ids: Iterable[str]) -> List[AnnotatedMention]:
        """Cached annotations for the given ids, in input order, skipping misses."""
        with self._lock:
            return [self._entries[i] for i in mention_ids if i in self._entries]

    def store_batch(self, annotations: Iterable[AnnotatedMention]) -> int:
        """Insert annotations whose id is not cached yet. Returns the number stored."""
        stored = 0
        with self._lock:
            for annotation in annotations:
                if annotation.mention_id in self._entries:
                    continue
                self._entries[annotation.mention_id] = annotation
                stored += 1
        return stored

    def evict_older_than(self, max_age: Optional[timedelta] = None) -> int:
        """Drop entries analyzed more than ``max_age`` ago. Returns the number evicted."""
        cutoff = self.clock() - (max_age if max_age is not None else self.max_age)
        with self._lock:
            expired = [i for i, entry in self._entries.items() if entry.analyzed_at < cutoff]
            for mention_id in expired:
                del self._entries[mention_id]
        if expired:
            logger.info(f"Evicted {len(expired)} stale annotations from cache")
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
