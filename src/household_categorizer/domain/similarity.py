from collections.abc import Sequence
from typing import Protocol, TypeVar

from pydantic import BaseModel

from household_categorizer.domain.text import normalize_text


class Categorized(Protocol):
    description: str
    category: str
    subcategory: str


DescribedT = TypeVar("DescribedT", bound=BaseModel)


def is_similar(left: str, right: str) -> bool:
    """Normalized containment in either direction."""
    a = normalize_text(left)
    b = normalize_text(right)
    return a in b or b in a


def find_similar(description: str, candidates: Sequence[DescribedT]) -> list[DescribedT]:
    return [candidate for candidate in candidates if is_similar(description, candidate.description)]


def apply_category_to_similar(source: Categorized, transactions: Sequence[DescribedT]) -> list[DescribedT]:
    """Copy the source's category/subcategory onto every similar transaction.

    The source itself is rewritten too when it is part of ``transactions``.
    Inputs are left untouched; matches come back as copies.
    """
    updated: list[DescribedT] = []
    for transaction in transactions:
        if is_similar(source.description, transaction.description):
            updated.append(transaction.model_copy(update={
                "category": source.category,
                "subcategory": source.subcategory,
            }))
        else:
            updated.append(transaction)
    return updated
