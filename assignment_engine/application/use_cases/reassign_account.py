"""ReassignAccountUseCase — manual reassignment with hierarchy cascade."""

from __future__ import annotations

import logging

from assignment_engine.application.ports.account_repo import AccountRepository
from assignment_engine.application.ports.audit_repo import AuditRepository
from assignment_engine.application.ports.proposal_repo import ProposalRepository
from assignment_engine.application.ports.rep_repo import RepRepository
from assignment_engine.domain.errors import AssignmentEngineError
from assignment_engine.domain.policies.hierarchy_cascade import ReassignmentRequest
from assignment_engine.domain.services.orchestrator import AssignmentOrchestrator, ReassignmentOutcome

logger = logging.getLogger(__name__)


class ReassignAccountUseCase:
    def __init__(
        self,
        orchestrator: AssignmentOrchestrator,
        account_repo: AccountRepository,
        rep_repo: RepRepository,
        proposal_repo: ProposalRepository,
        audit_repo: AuditRepository,
    ):
        self._orchestrator = orchestrator
        self._accounts = account_repo
        self._reps = rep_repo
        self._proposals = proposal_repo
        self._audit = audit_repo

    async def execute(self, request: ReassignmentRequest, confirmed: bool = False) -> ReassignmentOutcome:
        """Evaluate the request; apply and persist it when it needs no further confirmation.

        Domain errors (unknown account, invalid target, illegal transition)
        propagate unchanged after being logged.
        """
        accounts = await self._accounts.get_all()
        reps = await self._reps.get_all()
        stored = {p.account_id: p for p in await self._proposals.get_all()}

        try:
            outcome = self._orchestrator.reassign(accounts, reps, request, confirmed=confirmed, proposals=stored)
        except AssignmentEngineError as e:
            logger.warning("Reassignment of %s rejected: %s", request.account_id, e)
            raise

        if not outcome.applied:
            logger.info(
                "Reassignment of %s not applied (state=%s)",
                request.account_id, outcome.plan.state.value,
            )
            return outcome

        result = outcome.result
        await self._accounts.save_all(accounts)
        await self._proposals.upsert(result.proposals)
        result.audit_entry = await self._audit.save(result.audit_entry)
        logger.info(
            "Account %s → %s (%d moved, action=%s)",
            request.account_id, request.new_owner_id,
            len(result.plan.moved_ids), result.audit_entry.action.value,
        )
        return outcome
