import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from household_categorizer.api.routes import categorize, formats, imports, learning
from household_categorizer.classifiers.memory import LearningCache
from household_categorizer.core import settings
from household_categorizer.integration.ledger import LedgerClient
from household_categorizer.logger import get_logger, setup_logging
from household_categorizer.manager import CategorizerService
from household_categorizer.services.csv_parser import StatementParser
from household_categorizer.services.importer import ImportPipeline

logger = get_logger(__name__)


def create_app() -> FastAPI:
    setup_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info("Initializing services...")
        settings.log_environment()

        cache = LearningCache(
            data_path=os.path.join(settings.DATA_DIR, "learning_cache.json"),
            limit=settings.LEARNING_CACHE_LIMIT,
        )
        service = CategorizerService(cache=cache)
        parser = StatementParser(service)
        ledger = LedgerClient()
        if not ledger.configured:
            logger.warning("LEDGER_API_URL not set. Import confirmation will be disabled.")

        pipeline = ImportPipeline(
            service=service,
            parser=parser,
            ledger=ledger,
            detection_threshold=settings.FORMAT_DETECTION_THRESHOLD,
        )

        app.state.service = service
        app.state.ledger = ledger
        app.state.pipeline = pipeline

        logger.info("Services initialized (%d learned patterns).", len(cache))
        yield
        logger.info("Service shutting down.")
        await ledger.aclose()

    app = FastAPI(title="Household Categorizer", lifespan=lifespan)

    app.include_router(categorize.router)
    app.include_router(learning.router)
    app.include_router(formats.router)
    app.include_router(imports.router)

    return app


app = create_app()
