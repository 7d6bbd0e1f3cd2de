"""Account Assignment Engine — FastAPI application factory."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from assignment_engine.adapters.csv_loader.loader import ACCOUNTS_FILE, load_snapshot
from assignment_engine.config import settings
from assignment_engine.infrastructure.api.dependencies import get_store
from assignment_engine.infrastructure.api.routes_accounts import router as accounts_router
from assignment_engine.infrastructure.api.routes_assignments import router as assignments_router
from assignment_engine.infrastructure.api.routes_audit import router as audit_router
from assignment_engine.infrastructure.api.routes_health import router as health_router
from assignment_engine.infrastructure.api.routes_snapshot import router as snapshot_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Seed the in-memory store from the CSV snapshot directory, if present."""
    data_dir = Path(settings.csv_data_path)
    if (data_dir / ACCOUNTS_FILE).exists():
        try:
            snapshot = load_snapshot(data_dir)
            get_store().load(snapshot.accounts, snapshot.reps, snapshot.territory_map)
            logger.info(
                "Seeded store from %s: %d accounts, %d reps",
                data_dir, len(snapshot.accounts), len(snapshot.reps),
            )
        except (OSError, ValueError) as e:
            logger.warning("CSV snapshot not loaded from %s: %s", data_dir, e)
    else:
        logger.info("No CSV snapshot in %s, starting empty", data_dir)
    yield


def create_app() -> FastAPI:
    logging.basicConfig(level=settings.log_level.upper())

    app = FastAPI(
        title="Account Assignment Engine",
        description="Rule-based account to sales rep assignment with hierarchy-aware overrides",
        version="0.1.0",
        debug=settings.debug,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_router, prefix="/api")
    app.include_router(assignments_router, prefix="/api")
    app.include_router(accounts_router, prefix="/api")
    app.include_router(audit_router, prefix="/api")
    app.include_router(snapshot_router, prefix="/api")

    return app


app = create_app()
