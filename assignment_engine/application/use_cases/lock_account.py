"""LockAccountUseCase — pin an account to its current owner or release it."""

from __future__ import annotations

import logging

from assignment_engine.application.ports.account_repo import AccountRepository
from assignment_engine.application.ports.audit_repo import AuditRepository
from assignment_engine.application.ports.proposal_repo import ProposalRepository
from assignment_engine.application.ports.rep_repo import RepRepository
from assignment_engine.domain.errors import AssignmentEngineError
from assignment_engine.domain.policies.hierarchy_cascade import LockResult
from assignment_engine.domain.services.orchestrator import AssignmentOrchestrator

logger = logging.getLogger(__name__)


class LockAccountUseCase:
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

    async def execute(self, account_id: str, locking: bool, reason: str | None = None) -> LockResult:
        accounts = await self._accounts.get_all()
        reps = await self._reps.get_all()
        stored = {p.account_id: p for p in await self._proposals.get_all()}

        try:
            result = self._orchestrator.set_lock(accounts, reps, account_id, locking, reason, proposals=stored)
        except AssignmentEngineError as e:
            logger.warning("%s of %s rejected: %s", "Lock" if locking else "Unlock", account_id, e)
            raise

        await self._accounts.save_all(accounts)
        await self._proposals.upsert(result.proposals)
        result.audit_entry = await self._audit.save(result.audit_entry)
        logger.info(
            "Account %s %s (%d proposals refreshed)",
            account_id, "locked" if locking else "unlocked", len(result.proposals),
        )
        return result
