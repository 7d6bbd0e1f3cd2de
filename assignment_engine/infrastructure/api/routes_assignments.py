"""Assignment pass endpoints — run a full pass, list proposals."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from assignment_engine.adapters.persistence.in_memory import InMemoryProposalRepository
from assignment_engine.application.use_cases.run_assignment_pass import RunAssignmentPassUseCase
from assignment_engine.domain.errors import ConfigurationError
from assignment_engine.infrastructure.api.dependencies import get_proposal_repo, get_run_pass_uc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/assignments", tags=["assignments"])


@router.post("/run")
async def run_pass(uc: RunAssignmentPassUseCase = Depends(get_run_pass_uc)):
    """Recompute every proposal from the loaded snapshot."""
    try:
        result = await uc.execute()
    except ConfigurationError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return {
        "status": "ok",
        "summary": result.summary(),
        "quality": result.quality.as_dict() if result.quality else None,
        "warnings": {
            account_id: [w.as_dict() for w in warnings]
            for account_id, warnings in result.warnings_by_account().items()
        },
        "capacity": {
            rep_id: {
                "customer_arr": state.customer_arr,
                "prospect_arr": state.prospect_arr,
                "account_count": state.account_count,
                "cre_count": state.cre_count,
                "tier1_count": state.tier1_count,
                "tier2_count": state.tier2_count,
            }
            for rep_id, state in sorted(result.capacity.items())
        },
    }


@router.get("")
async def list_proposals(
    unassigned_only: bool = False,
    proposal_repo: InMemoryProposalRepository = Depends(get_proposal_repo),
):
    """List proposals from the latest pass (plus later manual changes)."""
    proposals = await proposal_repo.get_all()
    if unassigned_only:
        proposals = [p for p in proposals if p.is_unassigned]
    return {
        "total": len(proposals),
        "proposals": [p.as_dict() for p in proposals],
    }
