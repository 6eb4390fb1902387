"""FastAPI application factory."""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from sqlmodel import SQLModel

from contentsync.api.routes import sync as sync_routes
from contentsync.config import get_settings
from contentsync.db.engine import get_engine
from contentsync.sync.orchestrator import SyncOrchestrator, build_orchestrator


def create_app(engine=None, orchestrator: Optional[SyncOrchestrator] = None) -> FastAPI:
    """
    Build and return the FastAPI app.

    Args:
        engine: SQLAlchemy engine. Defaults to the module-level engine.
        orchestrator: Pre-built orchestrator (tests). Defaults to the four
                      content jobs over the Google client.
    """
    settings = get_settings()
    engine = engine if engine is not None else get_engine()
    orchestrator = orchestrator or build_orchestrator(engine, settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Create tables on startup (idempotent)
        SQLModel.metadata.create_all(engine)
        if settings.sync_on_startup:
            orchestrator.start_periodic(settings.sync_interval_minutes)
        yield
        orchestrator.shutdown()

    app = FastAPI(
        title="Content Sync API",
        description="Google Sheets / Drive to local store reconciliation",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.orchestrator = orchestrator

    app.include_router(sync_routes.router, prefix="/sync", tags=["sync"])

    return app


# Module-level app instance for uvicorn
app = create_app()
