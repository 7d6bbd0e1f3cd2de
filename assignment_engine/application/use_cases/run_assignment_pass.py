"""RunAssignmentPassUseCase — load snapshot, run a full pass, persist the results."""

from __future__ import annotations

import logging

from assignment_engine.application.ports.account_repo import AccountRepository
from assignment_engine.application.ports.proposal_repo import ProposalRepository
from assignment_engine.application.ports.rep_repo import RepRepository
from assignment_engine.application.ports.rule_repo import RuleRepository
from assignment_engine.domain.services.orchestrator import AssignmentOrchestrator, PassResult
from assignment_engine.domain.value_objects.capacity_limits import CapacityLimits

logger = logging.getLogger(__name__)


class RunAssignmentPassUseCase:
    """Recompute every proposal from the current snapshot."""

    def __init__(
        self,
        orchestrator: AssignmentOrchestrator,
        account_repo: AccountRepository,
        rep_repo: RepRepository,
        rule_repo: RuleRepository,
        proposal_repo: ProposalRepository,
        limits: CapacityLimits,
    ):
        self._orchestrator = orchestrator
        self._accounts = account_repo
        self._reps = rep_repo
        self._rules = rule_repo
        self._proposals = proposal_repo
        self._limits = limits

    async def execute(self) -> PassResult:
        accounts = await self._accounts.get_all()
        reps = await self._reps.get_all()
        rules = await self._rules.get_rules()
        territory_map = await self._rules.get_territory_map()
        logger.info(
            "Running assignment pass: %d accounts, %d reps, %d rules",
            len(accounts), len(reps), len(rules),
        )

        # The pass is synchronous and runs to completion before anything is saved
        result = self._orchestrator.run_pass(accounts, reps, rules, territory_map, self._limits)

        await self._accounts.save_all(accounts)
        await self._proposals.replace_all(result.proposals)
        logger.info("Pass summary: %s", result.summary())
        return result
