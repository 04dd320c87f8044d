from abc import ABC, abstractmethod

from household_categorizer.models import CategorizationResult, Correction


class Classifier(ABC):
    @abstractmethod
    def classify(self, description: str, amount: float = 0.0) -> CategorizationResult | None:
        """Attempt to categorize the transaction."""
        pass

    @abstractmethod
    def learn(self, correction: Correction) -> bool:
        """Learn from a user correction. Returns True when state changed."""
        pass
