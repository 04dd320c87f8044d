import asyncio
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from household_categorizer.api.dependencies import get_service
from household_categorizer.api.schemas import CategorizeRequest, ConfidenceRequest, SubcategoryRequest
from household_categorizer.domain.payment_methods import extract_payment_method
from household_categorizer.domain.taxonomy import CATEGORIES, SUB_CATEGORIES, suggest_subcategory
from household_categorizer.manager import CategorizerService
from household_categorizer.models import CategorizationResult, TransactionCategorization

router = APIRouter()


@router.post("/categorize", response_model=CategorizationResult)
async def categorize(
    req: CategorizeRequest,
    service: Annotated[CategorizerService, Depends(get_service)],
) -> CategorizationResult:
    return await asyncio.to_thread(service.suggest, req.description, req.amount)


@router.post("/categorize/transaction", response_model=TransactionCategorization)
async def categorize_transaction(
    req: CategorizeRequest,
    service: Annotated[CategorizerService, Depends(get_service)],
) -> TransactionCategorization:
    return await asyncio.to_thread(service.categorize_transaction, req.description, req.amount)


@router.post("/confidence")
async def score_confidence(
    req: ConfidenceRequest,
    service: Annotated[CategorizerService, Depends(get_service)],
) -> dict[str, float]:
    return {"confidence": service.score_confidence(req.description, req.category, req.subcategory)}


@router.get("/categories")
async def get_categories() -> dict[str, list[str]]:
    return {category: list(SUB_CATEGORIES[category]) for category in CATEGORIES}


@router.post("/categories/suggest-subcategory")
async def get_subcategory_suggestion(req: SubcategoryRequest) -> dict[str, str]:
    if req.category not in SUB_CATEGORIES:
        raise HTTPException(status_code=404, detail=f"Unknown category: '{req.category}'")
    return {
        "category": req.category,
        "subcategory": suggest_subcategory(req.category, req.description),
    }


@router.get("/payment-method")
async def get_payment_method(description: str) -> dict[str, str | None]:
    return {"payment_method": extract_payment_method(description)}
