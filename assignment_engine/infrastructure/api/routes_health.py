"""Health check endpoint."""

from fastapi import APIRouter, Depends

from assignment_engine.adapters.persistence.in_memory import InMemoryStore
from assignment_engine.infrastructure.api.dependencies import get_store

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(store: InMemoryStore = Depends(get_store)):
    """Report service status and the size of the loaded snapshot."""
    return {
        "status": "ok" if store.accounts and store.reps else "empty",
        "accounts": len(store.accounts),
        "reps": len(store.reps),
        "rules": len(store.rules),
        "service": "Account Assignment Engine",
    }
