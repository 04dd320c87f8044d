from fastapi import HTTPException, Request

from household_categorizer.integration.ledger import LedgerClient
from household_categorizer.manager import CategorizerService
from household_categorizer.services.importer import ImportPipeline


def get_service(request: Request) -> CategorizerService:
    service = getattr(request.app.state, "service", None)
    if not service:
        raise HTTPException(status_code=500, detail="Service not initialized")
    return service


def get_pipeline(request: Request) -> ImportPipeline:
    pipeline = getattr(request.app.state, "pipeline", None)
    if not pipeline:
        raise HTTPException(status_code=500, detail="Service not initialized")
    return pipeline


def get_ledger_optional(request: Request) -> LedgerClient | None:
    return getattr(request.app.state, "ledger", None)
