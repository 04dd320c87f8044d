import asyncio
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from household_categorizer.api.dependencies import get_ledger_optional, get_pipeline
from household_categorizer.api.schemas import ImportConfirmRequest, ImportPreviewRequest
from household_categorizer.core import settings
from household_categorizer.errors import ImportSubmissionError, UnknownBankFormatError
from household_categorizer.integration.ledger import LedgerClient
from household_categorizer.logger import get_logger
from household_categorizer.models import ImportPreview, ImportSummary
from household_categorizer.services.importer import ImportPipeline

logger = get_logger(__name__)

router = APIRouter(prefix="/import")


@router.get("/status")
async def get_import_status(
    ledger: Annotated[LedgerClient | None, Depends(get_ledger_optional)],
) -> dict[str, str | bool]:
    return {
        "ledger_configured": bool(ledger and ledger.configured),
        "default_format": settings.DEFAULT_BANK_FORMAT,
    }


@router.post("/preview", response_model=ImportPreview)
async def preview_import(
    req: ImportPreviewRequest,
    pipeline: Annotated[ImportPipeline, Depends(get_pipeline)],
) -> ImportPreview:
    try:
        return await pipeline.preview_async(
            req.content,
            req.format_name or settings.DEFAULT_BANK_FORMAT,
            has_header=req.has_header,
            mapping=req.mapping,
            existing_ids=frozenset(req.existing_ids),
            delimiter=req.delimiter,
            date_format=req.date_format,
        )
    except UnknownBankFormatError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.post("/confirm", response_model=ImportSummary)
async def confirm_import(
    req: ImportConfirmRequest,
    pipeline: Annotated[ImportPipeline, Depends(get_pipeline)],
) -> ImportSummary:
    records = pipeline.build_records(req.transactions, include_duplicates=frozenset(req.include_duplicates))
    logger.info("[IMPORT] Submitting %d of %d reviewed rows.", len(records), len(req.transactions))

    try:
        summary = await pipeline.submit(records)
    except ImportSubmissionError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    if req.corrections:
        learned = await asyncio.to_thread(pipeline.record_corrections, req.corrections)
        logger.info("[LEARN] %d of %d import corrections changed the cache.", learned, len(req.corrections))
    return summary
