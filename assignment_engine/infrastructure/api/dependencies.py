"""FastAPI dependency injection — wires adapters into use cases."""

from __future__ import annotations

import logging

from fastapi import Depends

from assignment_engine.adapters.persistence.in_memory import (
    InMemoryAccountRepository,
    InMemoryAuditRepository,
    InMemoryProposalRepository,
    InMemoryRepRepository,
    InMemoryRuleRepository,
    InMemoryStore,
)
from assignment_engine.application.use_cases.lock_account import LockAccountUseCase
from assignment_engine.application.use_cases.reassign_account import ReassignAccountUseCase
from assignment_engine.application.use_cases.run_assignment_pass import RunAssignmentPassUseCase
from assignment_engine.config import settings
from assignment_engine.domain.services.orchestrator import AssignmentOrchestrator
from assignment_engine.rule_config import default_rules, load_rules_file

logger = logging.getLogger(__name__)


def _initial_rules():
    if settings.rules_path:
        logger.info("Loading assignment rules from %s", settings.rules_path)
        return load_rules_file(settings.rules_path)
    return default_rules()


# Process-wide store; the app's lifespan seeds it from CSV when data is present
_store = InMemoryStore(rules=_initial_rules())

_orchestrator = AssignmentOrchestrator(
    balance_precedence=settings.balance_precedence,
    follow_rule_priority=settings.balance_follow_rule_priority,
    tie_tolerance_arr=settings.balance_tie_tolerance_arr,
)


def get_store() -> InMemoryStore:
    return _store


def get_orchestrator() -> AssignmentOrchestrator:
    return _orchestrator


def get_account_repo(store: InMemoryStore = Depends(get_store)) -> InMemoryAccountRepository:
    return InMemoryAccountRepository(store)


def get_rep_repo(store: InMemoryStore = Depends(get_store)) -> InMemoryRepRepository:
    return InMemoryRepRepository(store)


def get_proposal_repo(store: InMemoryStore = Depends(get_store)) -> InMemoryProposalRepository:
    return InMemoryProposalRepository(store)


def get_audit_repo(store: InMemoryStore = Depends(get_store)) -> InMemoryAuditRepository:
    return InMemoryAuditRepository(store)


def get_run_pass_uc(
    store: InMemoryStore = Depends(get_store),
    orchestrator: AssignmentOrchestrator = Depends(get_orchestrator),
) -> RunAssignmentPassUseCase:
    return RunAssignmentPassUseCase(
        orchestrator=orchestrator,
        account_repo=InMemoryAccountRepository(store),
        rep_repo=InMemoryRepRepository(store),
        rule_repo=InMemoryRuleRepository(store),
        proposal_repo=InMemoryProposalRepository(store),
        limits=settings.capacity_limits(),
    )


def get_reassign_uc(
    store: InMemoryStore = Depends(get_store),
    orchestrator: AssignmentOrchestrator = Depends(get_orchestrator),
) -> ReassignAccountUseCase:
    return ReassignAccountUseCase(
        orchestrator=orchestrator,
        account_repo=InMemoryAccountRepository(store),
        rep_repo=InMemoryRepRepository(store),
        proposal_repo=InMemoryProposalRepository(store),
        audit_repo=InMemoryAuditRepository(store),
    )


def get_lock_uc(
    store: InMemoryStore = Depends(get_store),
    orchestrator: AssignmentOrchestrator = Depends(get_orchestrator),
) -> LockAccountUseCase:
    return LockAccountUseCase(
        orchestrator=orchestrator,
        account_repo=InMemoryAccountRepository(store),
        rep_repo=InMemoryRepRepository(store),
        proposal_repo=InMemoryProposalRepository(store),
        audit_repo=InMemoryAuditRepository(store),
    )
