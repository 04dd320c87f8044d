import asyncio
from typing import Annotated

from fastapi import APIRouter, Depends

from household_categorizer.api.dependencies import get_pipeline, get_service
from household_categorizer.api.schemas import (
    ApplySimilarRequest,
    LearnBatchRequest,
    LearnRequest,
    SimilarRequest,
)
from household_categorizer.logger import get_logger
from household_categorizer.manager import CategorizerService
from household_categorizer.models import BankTransaction
from household_categorizer.services.importer import ImportPipeline

logger = get_logger(__name__)

router = APIRouter()


@router.post("/learn")
async def learn_correction(
    req: LearnRequest,
    service: Annotated[CategorizerService, Depends(get_service)],
) -> dict[str, str | bool]:
    logger.info(
        "[LEARN] '%s': %s/%s -> %s/%s",
        req.description[:50],
        req.original_category,
        req.original_subcategory,
        req.corrected_category,
        req.corrected_subcategory,
    )
    learned = await asyncio.to_thread(
        service.learn_from_correction,
        req.description,
        req.original_category,
        req.original_subcategory,
        req.corrected_category,
        req.corrected_subcategory,
    )
    return {"status": "success", "learned": learned}


@router.post("/learn/batch")
async def learn_corrections(
    req: LearnBatchRequest,
    pipeline: Annotated[ImportPipeline, Depends(get_pipeline)],
) -> dict[str, str | int]:
    learned = await asyncio.to_thread(pipeline.record_corrections, req.corrections)
    logger.info("[LEARN] %d of %d corrections changed the cache.", learned, len(req.corrections))
    return {"status": "success", "learned": learned}


@router.post("/clear-models")
async def clear_models(
    service: Annotated[CategorizerService, Depends(get_service)],
) -> dict[str, str]:
    await asyncio.to_thread(service.clear_models)
    return {"status": "success", "message": "Learned patterns cleared"}


@router.post("/similar", response_model=list[BankTransaction])
async def find_similar(
    req: SimilarRequest,
    service: Annotated[CategorizerService, Depends(get_service)],
) -> list[BankTransaction]:
    return service.find_similar(req.description, req.transactions)


@router.post("/similar/apply", response_model=list[BankTransaction])
async def apply_to_similar(
    req: ApplySimilarRequest,
    service: Annotated[CategorizerService, Depends(get_service)],
) -> list[BankTransaction]:
    return service.apply_category_to_similar(req.source, req.transactions)
