"""In-memory repository implementations.

All repositories share one ``InMemoryStore``. Reads hand out copies so that
an operation which fails halfway never leaves the store half-updated; only
``save_all`` / ``replace_all`` / ``upsert`` publish changes.
"""

from __future__ import annotations

import copy
import itertools

from assignment_engine.application.ports.account_repo import AccountRepository
from assignment_engine.application.ports.audit_repo import AuditRepository
from assignment_engine.application.ports.proposal_repo import ProposalRepository
from assignment_engine.application.ports.rep_repo import RepRepository
from assignment_engine.application.ports.rule_repo import RuleRepository
from assignment_engine.domain.entities.account import Account
from assignment_engine.domain.entities.assignment_rule import RuleSet
from assignment_engine.domain.entities.audit_entry import AuditEntry
from assignment_engine.domain.entities.proposal import AssignmentProposal
from assignment_engine.domain.entities.sales_rep import SalesRep
from assignment_engine.domain.value_objects.territory_map import TerritoryMap


class InMemoryStore:
    def __init__(
        self,
        accounts: list[Account] | None = None,
        reps: list[SalesRep] | None = None,
        rules: RuleSet | None = None,
        territory_map: TerritoryMap | None = None,
    ):
        self.accounts: dict[str, Account] = {a.account_id: a for a in accounts or []}
        self.reps: dict[str, SalesRep] = {r.rep_id: r for r in reps or []}
        self.rules = rules or RuleSet()
        self.territory_map = territory_map or TerritoryMap()
        self.proposals: dict[str, AssignmentProposal] = {}
        self.audit: list[AuditEntry] = []
        self._audit_ids = itertools.count(1)

    def load(
        self,
        accounts: list[Account],
        reps: list[SalesRep],
        territory_map: TerritoryMap | None = None,
    ) -> None:
        self.accounts = {a.account_id: a for a in accounts}
        self.reps = {r.rep_id: r for r in reps}
        if territory_map is not None:
            self.territory_map = territory_map
        self.proposals = {}

    def next_audit_id(self) -> int:
        return next(self._audit_ids)


class InMemoryAccountRepository(AccountRepository):
    def __init__(self, store: InMemoryStore):
        self._store = store

    async def get_all(self) -> list[Account]:
        return [copy.copy(self._store.accounts[k]) for k in sorted(self._store.accounts)]

    async def get_by_id(self, account_id: str) -> Account | None:
        account = self._store.accounts.get(account_id)
        return copy.copy(account) if account else None

    async def save_all(self, accounts: list[Account]) -> None:
        for account in accounts:
            self._store.accounts[account.account_id] = copy.copy(account)


class InMemoryRepRepository(RepRepository):
    def __init__(self, store: InMemoryStore):
        self._store = store

    async def get_all(self) -> list[SalesRep]:
        return [copy.copy(self._store.reps[k]) for k in sorted(self._store.reps)]

    async def get_by_id(self, rep_id: str) -> SalesRep | None:
        rep = self._store.reps.get(rep_id)
        return copy.copy(rep) if rep else None


class InMemoryRuleRepository(RuleRepository):
    def __init__(self, store: InMemoryStore):
        self._store = store

    async def get_rules(self) -> RuleSet:
        return self._store.rules

    async def get_territory_map(self) -> TerritoryMap:
        return self._store.territory_map


class InMemoryProposalRepository(ProposalRepository):
    def __init__(self, store: InMemoryStore):
        self._store = store

    async def replace_all(self, proposals: list[AssignmentProposal]) -> None:
        self._store.proposals = {p.account_id: copy.deepcopy(p) for p in proposals}

    async def upsert(self, proposals: list[AssignmentProposal]) -> None:
        for proposal in proposals:
            self._store.proposals[proposal.account_id] = copy.deepcopy(proposal)

    async def get_all(self) -> list[AssignmentProposal]:
        return [copy.deepcopy(self._store.proposals[k]) for k in sorted(self._store.proposals)]

    async def get_by_account(self, account_id: str) -> AssignmentProposal | None:
        proposal = self._store.proposals.get(account_id)
        return copy.deepcopy(proposal) if proposal else None


class InMemoryAuditRepository(AuditRepository):
    def __init__(self, store: InMemoryStore):
        self._store = store

    async def save(self, entry: AuditEntry) -> AuditEntry:
        saved = copy.deepcopy(entry)
        saved.id = self._store.next_audit_id()
        self._store.audit.append(saved)
        return copy.deepcopy(saved)

    async def get_all(self) -> list[AuditEntry]:
        return [copy.deepcopy(e) for e in self._store.audit]

    async def get_by_account(self, account_id: str) -> list[AuditEntry]:
        return [copy.deepcopy(e) for e in self._store.audit if e.account_id == account_id]
