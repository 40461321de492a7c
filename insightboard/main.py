from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from insightboard import database
from insightboard.config import settings
from insightboard.errors import DataIntegrityError, StoreUnavailableError
from insightboard.logging_setup import configure_logging
from insightboard.models import Base
from insightboard.routes import data as data_routes
from insightboard.routes import summary as summary_routes
from insightboard.services.ingest_service import IngestService
from insightboard.services.summary_service import SummaryService

logger = logging.getLogger(__name__)


def _startup() -> None:
    logger.info("[CONFIG] DATABASE_URL=%s", settings.database_url)
    logger.info("[CONFIG] ACCEPT_LABEL_ALIASES=%s", settings.accept_label_aliases)
    logger.info("[CONFIG] RECOMPUTE_ON_STARTUP=%s", settings.recompute_on_startup)

    if settings.recreate_db_on_startup:
        Base.metadata.drop_all(bind=database.engine)
    Base.metadata.create_all(bind=database.engine)

    # Seed sample data for demo (only if DB empty)
    if settings.seed_sample_data:
        ingest = IngestService()
        with database.session_scope() as db:
            if not ingest.has_any_data(db) and os.path.exists(settings.sample_data_path):
                ingest.ingest_file(db, settings.sample_data_path)

    if settings.recompute_on_startup:
        with database.session_scope() as db:
            try:
                SummaryService().recompute(db)
            except (DataIntegrityError, StoreUnavailableError) as e:
                # Keep serving the last good summary; the run is recorded as failed.
                logger.error("[STARTUP] Summary recompute failed: %s", e)


@asynccontextmanager
async def _lifespan(_: FastAPI):
    _startup()
    yield


def create_app() -> FastAPI:
    configure_logging(settings.log_level)
    app = FastAPI(title=settings.app_name, lifespan=_lifespan)

    origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(summary_routes.router)
    app.include_router(data_routes.router)

    @app.get("/healthz")
    def healthz():
        return {"status": "ok"}

    return app


app = create_app()
