"""Account endpoints — detail view, manual reassignment, lock/unlock."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from assignment_engine.adapters.persistence.in_memory import (
    InMemoryAccountRepository,
    InMemoryProposalRepository,
)
from assignment_engine.application.use_cases.lock_account import LockAccountUseCase
from assignment_engine.application.use_cases.reassign_account import ReassignAccountUseCase
from assignment_engine.domain.entities.account import Account
from assignment_engine.domain.errors import (
    AccountNotFoundError,
    InvalidLockReasonError,
    InvalidManualTargetError,
    InvalidTransitionError,
)
from assignment_engine.domain.policies.confidence_scorer import cre_risk_level
from assignment_engine.domain.policies.hierarchy_cascade import ReassignmentRequest
from assignment_engine.infrastructure.api.dependencies import (
    get_account_repo,
    get_lock_uc,
    get_proposal_repo,
    get_reassign_uc,
)
from assignment_engine.infrastructure.api.routes_audit import serialize_audit_entry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/accounts", tags=["accounts"])


class ReassignRequest(BaseModel):
    new_owner_id: str
    include_children: bool = True
    move_only_this: bool = False
    override_locks: bool = False
    rationale: str | None = None
    confirm: bool = False


class LockRequest(BaseModel):
    locking: bool = True
    reason: str | None = None


@router.get("")
async def list_accounts(account_repo: InMemoryAccountRepository = Depends(get_account_repo)):
    accounts = await account_repo.get_all()
    return {
        "total": len(accounts),
        "accounts": [_serialize_account(a) for a in accounts],
    }


@router.get("/{account_id}")
async def get_account(
    account_id: str,
    account_repo: InMemoryAccountRepository = Depends(get_account_repo),
    proposal_repo: InMemoryProposalRepository = Depends(get_proposal_repo),
):
    """Get one account with its current proposal and CRE risk."""
    account = await account_repo.get_by_id(account_id)
    if not account:
        raise HTTPException(status_code=404, detail="Account not found")

    data = _serialize_account(account)
    proposal = await proposal_repo.get_by_account(account_id)
    data["proposal"] = proposal.as_dict() if proposal else None
    return data


@router.post("/{account_id}/reassign")
async def reassign_account(
    account_id: str,
    body: ReassignRequest,
    uc: ReassignAccountUseCase = Depends(get_reassign_uc),
):
    """Evaluate a manual reassignment; apply it when confirmed or unwarned."""
    request = ReassignmentRequest(
        account_id=account_id,
        new_owner_id=body.new_owner_id,
        include_children=body.include_children,
        move_only_this=body.move_only_this,
        override_locks=body.override_locks,
        rationale=body.rationale,
    )
    try:
        outcome = await uc.execute(request, confirmed=body.confirm)
    except AccountNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidManualTargetError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))

    plan = outcome.plan
    response = {
        "state": plan.state.value,
        "applied": outcome.applied,
        "requires_confirmation": plan.requires_confirmation,
        "target_role": plan.target_role.value,
        "moved_account_ids": plan.moved_ids,
        "skipped_locked_ids": plan.skipped_locked_ids,
        "overridden_lock_ids": plan.overridden_lock_ids,
        "blocking_ids": plan.blocking_ids,
        "warning_types": [w.value for w in plan.warning_types],
        "accounts": [],
        "proposals": [],
        "audit_entry": None,
    }
    if outcome.result is not None:
        response["accounts"] = [_serialize_account(a) for a in outcome.result.accounts]
        response["proposals"] = [p.as_dict() for p in outcome.result.proposals]
        response["audit_entry"] = serialize_audit_entry(outcome.result.audit_entry)
    return response


@router.post("/{account_id}/lock")
async def lock_account(
    account_id: str,
    body: LockRequest,
    uc: LockAccountUseCase = Depends(get_lock_uc),
):
    """Lock an account to its current owner, or unlock it."""
    try:
        result = await uc.execute(account_id, body.locking, body.reason)
    except AccountNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidLockReasonError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return {
        "account": _serialize_account(result.account),
        "proposals": [p.as_dict() for p in result.proposals],
        "audit_entry": serialize_audit_entry(result.audit_entry),
    }


def _serialize_account(a: Account) -> dict:
    return {
        "account_id": a.account_id,
        "name": a.name,
        "is_parent": a.is_parent,
        "ultimate_parent_id": a.ultimate_parent_id,
        "is_customer": a.is_customer,
        "arr": a.arr,
        "hierarchy_arr": a.hierarchy_arr,
        "atr": a.atr,
        "tier": a.tier_number,
        "territory": a.territory,
        "cre_count": a.cre_count,
        "cre_risk": cre_risk_level(a.cre_count).value,
        "renewal_quarter": a.renewal_quarter,
        "current_owner_id": a.current_owner_id,
        "current_owner_name": a.current_owner_name,
        "proposed_owner_id": a.proposed_owner_id,
        "proposed_owner_name": a.proposed_owner_name,
        "locked": a.is_locked,
        "lock_reason": a.lock_reason,
        "has_split_ownership": a.has_split_ownership,
    }
