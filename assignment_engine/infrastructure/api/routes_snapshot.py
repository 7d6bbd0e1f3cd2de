"""Snapshot endpoints — reload accounts, reps and territories from CSV."""

from __future__ import annotations

import logging
from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException

from assignment_engine.adapters.csv_loader.loader import load_snapshot
from assignment_engine.adapters.persistence.in_memory import InMemoryStore
from assignment_engine.config import settings
from assignment_engine.infrastructure.api.dependencies import get_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/snapshot", tags=["snapshot"])


@router.post("/ingest")
async def ingest_snapshot(data_dir: str | None = None, store: InMemoryStore = Depends(get_store)):
    """Replace the loaded snapshot with the CSV files in *data_dir*.

    Existing proposals are dropped; run a pass afterwards to recompute them.
    """
    path = Path(data_dir or settings.csv_data_path)
    if not path.exists():
        raise HTTPException(status_code=400, detail=f"Data directory not found: {path}")

    try:
        snapshot = load_snapshot(path)
    except (OSError, ValueError) as e:
        logger.exception("Error ingesting CSV snapshot from %s", path)
        raise HTTPException(status_code=422, detail=str(e))

    store.load(snapshot.accounts, snapshot.reps, snapshot.territory_map)
    return {
        "status": "ok",
        "counts": {
            "accounts": len(snapshot.accounts),
            "reps": len(snapshot.reps),
            "territories": len(snapshot.territory_map.mappings),
        },
    }
