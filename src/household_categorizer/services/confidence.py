from household_categorizer.classifiers.memory import LearningCache
from household_categorizer.classifiers.merchants import MerchantMatcher
from household_categorizer.domain.text import matches_patterns

DEFAULT_CONFIDENCE = 0.5


class ConfidenceScorer:
    """Re-scores an existing category assignment without touching the cache."""

    def __init__(self, cache: LearningCache, matcher: MerchantMatcher, floor: float = DEFAULT_CONFIDENCE):
        self.cache = cache
        self.matcher = matcher
        self.floor = floor

    def score(self, description: str, category: str, subcategory: str) -> float:
        confidence = self.floor

        for mapping in self.matcher.mappings_for(category, subcategory):
            if matches_patterns(description, mapping.patterns):
                confidence = max(confidence, mapping.confidence)

        learned = self.cache.lookup_for(description, category, subcategory)
        if learned is not None:
            confidence = max(confidence, learned.confidence)

        return confidence
