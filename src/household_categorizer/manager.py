import os
from collections.abc import Sequence
from contextlib import AbstractContextManager
from typing import TypeVar

from pydantic import BaseModel

from household_categorizer.classifiers.base import Classifier
from household_categorizer.classifiers.heuristics import AmountHeuristic, expense_keyword_match
from household_categorizer.classifiers.memory import DEFAULT_CACHE_LIMIT, LearningCache
from household_categorizer.classifiers.merchants import MerchantMatcher
from household_categorizer.domain import similarity
from household_categorizer.domain.taxonomy import transaction_type
from household_categorizer.logger import get_logger
from household_categorizer.models import (
    CategorizationResult,
    Correction,
    TransactionCategorization,
)
from household_categorizer.services.confidence import ConfidenceScorer

logger = get_logger(__name__)

TransactionT = TypeVar("TransactionT", bound=BaseModel)

DEFAULT_CONFIDENCE = 0.5


class CategorizerService:
    def __init__(self,
                 cache: LearningCache | None = None,
                 matcher: MerchantMatcher | None = None,
                 data_dir: str = ".",
                 cache_limit: int = DEFAULT_CACHE_LIMIT):

        # 1. Learned patterns (user corrections, highest priority)
        self.cache = cache if cache is not None else LearningCache(
            data_path=os.path.join(data_dir, "learning_cache.json"),
            limit=cache_limit,
        )

        # 2. Static merchant table
        self.matcher = matcher if matcher is not None else MerchantMatcher()

        # 3. Amount sign / keyword heuristic
        self.heuristic = AmountHeuristic()

        self.classifiers: list[Classifier] = [self.cache, self.matcher, self.heuristic]
        self.scorer = ConfidenceScorer(self.cache, self.matcher)

    def _first_hit(self, classifiers: Sequence[Classifier], description: str, amount: float) -> CategorizationResult | None:
        for classifier in classifiers:
            classifier_name = classifier.__class__.__name__
            logger.debug(f"Trying {classifier_name} for: '{description[:50]}'")

            try:
                result = classifier.classify(description, amount)
            except Exception as exc:
                logger.error(f"{classifier_name} failed for '{description[:50]}': {exc}")
                continue

            if result:
                logger.debug(
                    f"{classifier_name} returned: '{result.category}/{result.subcategory}' "
                    f"(confidence: {result.confidence:.2f})"
                )
                return result

        return None

    def suggest(self, description: str, amount: float = 0.0) -> CategorizationResult:
        result = self._first_hit(self.classifiers, description, amount)
        if result:
            return result

        logger.debug(f"No classifier matched for: '{description[:50]}', using default")
        if amount >= 0:
            return CategorizationResult(
                category="Income", subcategory="Salary", confidence=DEFAULT_CONFIDENCE, source="default"
            )
        return CategorizationResult(
            category="Lifestyle", subcategory="Shopping", confidence=DEFAULT_CONFIDENCE, source="default"
        )

    def categorize_transaction(self, description: str, amount: float) -> TransactionCategorization:
        """Category, subcategory and income/expense type for a single line.

        Unlike ``suggest`` this does not guess "Salary" for unknown income and
        reports unknown spending as Other/Uncategorized.
        """
        tx_type = transaction_type(amount)
        result = self._first_hit([self.cache, self.matcher], description, amount)
        if result is None and amount < 0:
            result = expense_keyword_match(description)

        if result:
            return TransactionCategorization(category=result.category, subcategory=result.subcategory, type=tx_type)

        if amount < 0:
            return TransactionCategorization(category="Other", subcategory="Uncategorized", type=tx_type)
        return TransactionCategorization(category="Income", subcategory="Other Income", type=tx_type)

    def score_confidence(self, description: str, category: str, subcategory: str) -> float:
        return self.scorer.score(description, category, subcategory)

    def learn_from_correction(
        self,
        description: str,
        original_category: str,
        original_subcategory: str,
        corrected_category: str,
        corrected_subcategory: str,
    ) -> bool:
        return self.cache.learn(Correction(
            description=description,
            original_category=original_category,
            original_subcategory=original_subcategory,
            corrected_category=corrected_category,
            corrected_subcategory=corrected_subcategory,
        ))

    def find_similar(self, description: str, candidates: Sequence[TransactionT]) -> list[TransactionT]:
        return similarity.find_similar(description, candidates)

    def apply_category_to_similar(self, source: similarity.Categorized, transactions: Sequence[TransactionT]) -> list[TransactionT]:
        return similarity.apply_category_to_similar(source, transactions)

    def deferred_cache_saves(self) -> AbstractContextManager[None]:
        """Batch learning-cache writes caused by lookups, e.g. over one statement."""
        return self.cache.deferred_saves()

    def clear_models(self) -> None:
        """
        Forget all learned corrections.
        """
        self.cache.clear()
        logger.info("Learning cache cleared.")
