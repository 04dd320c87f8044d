import json
import os
import re
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

from pydantic import TypeAdapter, ValidationError

from household_categorizer.domain.text import contains_normalized, normalize_text
from household_categorizer.logger import get_logger
from household_categorizer.models import CategorizationResult, Correction, LearnedPattern

from .base import Classifier

logger = get_logger(__name__)

DEFAULT_CACHE_LIMIT = 200
NEW_PATTERN_CONFIDENCE = 0.8
CONFIDENCE_STEP = 0.05
MAX_LEARNED_CONFIDENCE = 0.95
# Patterns at or below this length are kept verbatim
PREFIX_STRIP_MIN_LENGTH = 10

_LEADING_PHRASES = (
    re.compile(r"^payment (to|from) "),
    re.compile(r"^purchase (at|from) "),
    re.compile(r"^withdrawal (at|from) "),
)

_PATTERNS_ADAPTER = TypeAdapter(list[LearnedPattern])


def derive_pattern(description: str) -> str:
    pattern = normalize_text(description)
    if len(pattern) > PREFIX_STRIP_MIN_LENGTH:
        for phrase in _LEADING_PHRASES:
            pattern = phrase.sub("", pattern)
    return pattern


class LearningCache(Classifier):
    """User corrections remembered as description patterns.

    Lookups are first-match in list order. The list is bounded by ``limit``;
    when it overflows the least recently used patterns are dropped.

    Request handlers and import worker threads share one cache. Every
    read-modify-save runs under a re-entrant lock. Usage updates
    made inside ``deferred_saves()`` are written once when the block exits.
    """

    def __init__(self, data_path: str = "learning_cache.json", limit: int = DEFAULT_CACHE_LIMIT):
        self.data_path = data_path
        self.limit = limit
        self._patterns: list[LearnedPattern] = []
        self._lock = threading.RLock()
        self._deferred = 0
        self._dirty = False
        self.load()

    def __len__(self) -> int:
        return len(self._patterns)

    @property
    def patterns(self) -> list[LearnedPattern]:
        with self._lock:
            return [entry.model_copy() for entry in self._patterns]

    def load(self) -> None:
        with self._lock:
            if not os.path.exists(self.data_path):
                self._patterns = []
                return
            try:
                with open(self.data_path, encoding="utf-8") as f:
                    raw = json.load(f)
                self._patterns = _PATTERNS_ADAPTER.validate_python(raw)
            except (OSError, ValueError, ValidationError) as exc:
                logger.warning("[CACHE] Could not load learning cache from %s, starting empty: %s", self.data_path, exc)
                self._patterns = []
                return

            if len(self._patterns) > self.limit:
                self._evict()
        logger.debug("[CACHE] Loaded %d learned patterns.", len(self._patterns))

    def save(self) -> None:
        with self._lock:
            self._dirty = False
            try:
                payload = _PATTERNS_ADAPTER.dump_python(self._patterns, mode="json", by_alias=True)
                with open(self.data_path, "w", encoding="utf-8") as f:
                    json.dump(payload, f, indent=2)
            except (OSError, TypeError, ValueError) as exc:
                logger.error("[CACHE] Failed to save learning cache to %s: %s", self.data_path, exc)

    @contextmanager
    def deferred_saves(self) -> Iterator[None]:
        """Hold back usage-only saves until the outermost block exits."""
        with self._lock:
            self._deferred += 1
        try:
            yield
        finally:
            with self._lock:
                self._deferred -= 1
                if self._deferred == 0 and self._dirty:
                    self.save()

    def lookup(self, description: str) -> LearnedPattern | None:
        with self._lock:
            for entry in self._patterns:
                if contains_normalized(description, entry.pattern):
                    return entry
        return None

    def lookup_for(self, description: str, category: str, subcategory: str) -> LearnedPattern | None:
        with self._lock:
            for entry in self._patterns:
                if (
                    entry.category == category
                    and entry.subcategory == subcategory
                    and contains_normalized(description, entry.pattern)
                ):
                    return entry
        return None

    def touch(self, entry: LearnedPattern) -> None:
        with self._lock:
            entry.frequency += 1
            entry.last_used = datetime.now(timezone.utc)
            if self._deferred:
                self._dirty = True
            else:
                self.save()

    def classify(self, description: str, amount: float = 0.0) -> CategorizationResult | None:
        with self._lock:
            entry = self.lookup(description)
            if entry is None:
                return None

            self.touch(entry)
            return CategorizationResult(
                category=entry.category,
                subcategory=entry.subcategory,
                confidence=entry.confidence,
                source="learned",
            )

    def record(
        self,
        description: str,
        original_category: str,
        original_subcategory: str,
        corrected_category: str,
        corrected_subcategory: str,
    ) -> bool:
        if original_category == corrected_category and original_subcategory == corrected_subcategory:
            return False

        with self._lock:
            existing = self.lookup(description)
            if existing is not None:
                existing.category = corrected_category
                existing.subcategory = corrected_subcategory
                existing.frequency += 1
                existing.last_used = datetime.now(timezone.utc)
                existing.confidence = min(MAX_LEARNED_CONFIDENCE, existing.confidence + CONFIDENCE_STEP)
                logger.info(
                    "[LEARN] Updated pattern '%s' -> %s/%s (confidence %.2f)",
                    existing.pattern,
                    corrected_category,
                    corrected_subcategory,
                    existing.confidence,
                )
            else:
                pattern = derive_pattern(description)
                if not pattern:
                    logger.debug("[LEARN] Description '%s' has no usable text, not learned.", description)
                    return False
                self._patterns.append(LearnedPattern(
                    pattern=pattern,
                    category=corrected_category,
                    subcategory=corrected_subcategory,
                    confidence=NEW_PATTERN_CONFIDENCE,
                    frequency=1,
                ))
                logger.info("[LEARN] New pattern '%s' -> %s/%s", pattern, corrected_category, corrected_subcategory)

            if len(self._patterns) > self.limit:
                self._evict()

            self.save()
            return True

    def learn(self, correction: Correction) -> bool:
        return self.record(
            correction.description,
            correction.original_category,
            correction.original_subcategory,
            correction.corrected_category,
            correction.corrected_subcategory,
        )

    def _evict(self) -> None:
        dropped = len(self._patterns) - self.limit
        self._patterns.sort(key=lambda entry: entry.last_used, reverse=True)
        del self._patterns[self.limit:]
        logger.debug("[CACHE] Evicted %d least recently used patterns.", dropped)

    def clear(self) -> None:
        with self._lock:
            self._patterns = []
            self.save()
