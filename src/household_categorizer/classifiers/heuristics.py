from household_categorizer.models import CategorizationResult, Correction

from .base import Classifier

HEURISTIC_CONFIDENCE = 0.7
POSITIVE_AMOUNT_CONFIDENCE = 0.6

# (keywords, category, subcategory), first hit wins
EXPENSE_KEYWORD_LADDER: tuple[tuple[tuple[str, ...], str, str], ...] = (
    (("mortgage", "rent"), "Essentials", "Rent/Mortgage"),
    (("grocery", "supermarket"), "Essentials", "Groceries"),
    (("restaurant", "dining"), "Lifestyle", "Dining Out"),
)


def expense_keyword_match(description: str) -> CategorizationResult | None:
    lowered = (description or "").lower()
    for keywords, category, subcategory in EXPENSE_KEYWORD_LADDER:
        if any(keyword in lowered for keyword in keywords):
            return CategorizationResult(
                category=category,
                subcategory=subcategory,
                confidence=HEURISTIC_CONFIDENCE,
                source="heuristic",
            )
    return None


class AmountHeuristic(Classifier):
    """Falls back on the sign of the amount and a short expense keyword list."""

    def classify(self, description: str, amount: float = 0.0) -> CategorizationResult | None:
        if amount > 0:
            return CategorizationResult(
                category="Income",
                subcategory="Salary",
                confidence=POSITIVE_AMOUNT_CONFIDENCE,
                source="heuristic",
            )
        if amount < 0:
            return expense_keyword_match(description)
        return None

    def learn(self, correction: Correction) -> bool:
        return False
