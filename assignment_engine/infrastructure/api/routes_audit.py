"""Audit trail endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from assignment_engine.adapters.persistence.in_memory import InMemoryAuditRepository
from assignment_engine.domain.entities.audit_entry import AuditEntry
from assignment_engine.infrastructure.api.dependencies import get_audit_repo

router = APIRouter(prefix="/audit", tags=["audit"])


@router.get("")
async def list_audit_entries(
    account_id: str | None = None,
    audit_repo: InMemoryAuditRepository = Depends(get_audit_repo),
):
    """List audit entries, optionally for one account."""
    if account_id:
        entries = await audit_repo.get_by_account(account_id)
    else:
        entries = await audit_repo.get_all()
    return {
        "total": len(entries),
        "entries": [serialize_audit_entry(e) for e in entries],
    }


def serialize_audit_entry(e: AuditEntry) -> dict:
    return {
        "id": e.id,
        "account_id": e.account_id,
        "action": e.action.value,
        "previous_owner_id": e.previous_owner_id,
        "previous_owner_name": e.previous_owner_name,
        "new_owner_id": e.new_owner_id,
        "new_owner_name": e.new_owner_name,
        "rationale": e.rationale,
        "moved_account_ids": e.moved_account_ids,
        "children_moved": e.children_moved,
        "skipped_locked_ids": e.skipped_locked_ids,
        "unlocked_account_ids": e.unlocked_account_ids,
        "warning_types": [w.value for w in e.warning_types],
        "created_at": e.created_at.isoformat() if e.created_at else None,
    }
