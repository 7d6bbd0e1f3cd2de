"""AssignmentOrchestrator — full recompute pass plus the manual entry points.

A pass is a pure function of its inputs (accounts, reps, rules, territory map
and capacity limits). Everything mutable it needs, the capacity state above
all, is built fresh at the start of the pass and dropped at the end.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field, replace

from assignment_engine.domain.entities.account import Account
from assignment_engine.domain.entities.assignment_rule import (
    CreBalanceRule,
    RuleSet,
    TierBalanceRule,
)
from assignment_engine.domain.entities.proposal import AssignmentProposal, AssignmentWarning
from assignment_engine.domain.entities.sales_rep import SalesRep
from assignment_engine.domain.errors import ConfigurationError
from assignment_engine.domain.policies.account_index import AccountIndex
from assignment_engine.domain.policies.balance_optimizer import (
    DEFAULT_PRECEDENCE,
    KNOWN_METRICS,
    BalanceOptimizer,
    BalanceTargets,
    precedence_from_rules,
)
from assignment_engine.domain.policies.capacity_tracker import CapacityState, CapacityTracker
from assignment_engine.domain.policies.confidence_scorer import finalize
from assignment_engine.domain.policies.hierarchy_cascade import (
    CascadePlan,
    CascadeResult,
    HierarchyCascadeEngine,
    LockResult,
    ReassignmentRequest,
    locked_proposal,
    refresh_hierarchy_split,
    split_warning,
)
from assignment_engine.domain.policies.quality_metrics import (
    QualityComparison,
    calculate_quality,
    compare_quality,
    normal_reps,
)
from assignment_engine.domain.policies.rule_evaluator import PlacementDecision, RuleEvaluator
from assignment_engine.domain.value_objects.capacity_limits import AccountLoad, CapacityLimits
from assignment_engine.domain.value_objects.enums import RuleType, Severity, WarningType
from assignment_engine.domain.value_objects.territory_map import TerritoryMap

logger = logging.getLogger(__name__)


@dataclass
class PlacementUnit:
    """A hierarchy parent with the unlocked children placed together with it."""

    anchor: Account
    members: list[Account]
    load: AccountLoad

    @property
    def arr(self) -> float:
        return self.load.arr


@dataclass
class PassResult:
    proposals: list[AssignmentProposal]
    capacity: dict[str, CapacityState] = field(default_factory=dict)
    quality: QualityComparison | None = None

    def proposal_for(self, account_id: str) -> AssignmentProposal | None:
        for proposal in self.proposals:
            if proposal.account_id == account_id:
                return proposal
        return None

    def warnings_by_account(self) -> dict[str, list[AssignmentWarning]]:
        return {p.account_id: list(p.warnings) for p in self.proposals if p.warnings}

    def unassigned(self) -> list[AssignmentProposal]:
        return [p for p in self.proposals if p.is_unassigned]

    def summary(self) -> dict:
        return {
            "accounts": len(self.proposals),
            "assigned": len(self.proposals) - len(self.unassigned()),
            "unassigned": len(self.unassigned()),
            "by_rule": dict(sorted(Counter(p.rule_applied.value for p in self.proposals).items())),
            "by_confidence": dict(sorted(Counter(p.confidence.value for p in self.proposals).items())),
        }


@dataclass
class ReassignmentOutcome:
    plan: CascadePlan
    result: CascadeResult | None = None

    @property
    def applied(self) -> bool:
        return self.result is not None


class AssignmentOrchestrator:
    def __init__(
        self,
        balance_precedence: tuple[str, ...] | list[str] | None = None,
        follow_rule_priority: bool = False,
        tie_tolerance_arr: float = 0.0,
    ):
        precedence = tuple(balance_precedence or DEFAULT_PRECEDENCE)
        unknown = [m for m in precedence if m not in KNOWN_METRICS]
        if unknown:
            raise ConfigurationError(f"Unknown balance metrics: {', '.join(unknown)}")
        if tie_tolerance_arr < 0:
            raise ConfigurationError("Balance tie tolerance cannot be negative")
        self.balance_precedence = precedence
        self.follow_rule_priority = follow_rule_priority
        self.tie_tolerance_arr = tie_tolerance_arr

    # ── Full pass ──────────────────────────────────────────────────────────

    def run_pass(
        self,
        accounts: list[Account],
        reps: list[SalesRep],
        rules: RuleSet,
        territory_map: TerritoryMap,
        limits: CapacityLimits,
    ) -> PassResult:
        index = AccountIndex(accounts)
        reps_by_id = {rep.rep_id: rep for rep in reps}
        limits = self._effective_limits(rules, limits)
        territory_map = territory_map.merged(rules.territory_mappings())

        tracker = CapacityTracker(limits)
        tracker.initialize(reps)
        proposals: dict[str, AssignmentProposal] = {}

        for account in index.all():
            if not account.is_locked:
                account.proposed_owner_id = None
                account.proposed_owner_name = None

        # Locked accounts are pinned before anything else takes capacity
        locked_loads: list[AccountLoad] = []
        for account in index.all():
            if not account.is_locked:
                continue
            proposals[account.account_id] = self._pin_locked(account, reps_by_id, tracker)
            owner = reps_by_id.get(account.current_owner_id or "")
            if owner is not None and not owner.is_strategic_rep:
                locked_loads.append(account.to_load())

        units = self._build_units(index, reps_by_id)
        normal_reps = [r for r in reps if r.receives_new_accounts and not r.is_strategic_rep]
        targets = BalanceTargets.from_pool(
            [u.load for u in units if not self._is_strategic_unit(u, reps_by_id)] + locked_loads,
            len(normal_reps),
        )
        precedence = precedence_from_rules(rules) if self.follow_rule_priority else self.balance_precedence
        optimizer = BalanceOptimizer(rules, targets, precedence)
        evaluator = RuleEvaluator(reps, rules, territory_map, tracker, optimizer, self.tie_tolerance_arr)

        for unit in sorted(units, key=lambda u: (-u.arr, u.anchor.account_id)):
            decision = evaluator.evaluate(unit.anchor, unit.load)
            extra: list[AssignmentWarning] = []
            if decision.rep is not None:
                tracker.commit(decision.rep.rep_id, unit.load)
                extra = evaluator.post_commit_warnings(decision.rep.rep_id, unit.load)
            proposals[unit.anchor.account_id] = self._proposal(unit.anchor, decision, extra)
            for member in unit.members:
                proposals[member.account_id] = self._member_proposal(member, unit.anchor, decision)

        for parent in index.parents():
            for child_id in refresh_hierarchy_split(index, parent, proposed_only=True):
                proposals[child_id].add_warning(split_warning(parent))

        ordered = [finalize(proposals[a.account_id], a.cre_count) for a in index.all()]
        result = PassResult(
            proposals=ordered,
            capacity=tracker.snapshot(),
            quality=self._quality(index.all(), reps, territory_map, limits),
        )
        logger.info(
            "Assignment pass done: %d accounts, %d units, %d unassigned",
            len(ordered),
            len(units),
            len(result.unassigned()),
        )
        if result.quality is not None:
            logger.info(
                "Book quality: overall score %d -> %d (improvement %+d)",
                result.quality.before.overall_score,
                result.quality.after.overall_score,
                result.quality.overall_improvement,
            )
        return result

    @staticmethod
    def _quality(
        accounts: list[Account],
        reps: list[SalesRep],
        territory_map: TerritoryMap,
        limits: CapacityLimits,
    ) -> QualityComparison | None:
        """Book quality under the current owners against the proposed ones."""
        if not normal_reps(reps):
            return None
        before = calculate_quality(accounts, reps, territory_map, limits, lambda a: a.current_owner_id)
        after = calculate_quality(accounts, reps, territory_map, limits, lambda a: a.proposed_owner_id)
        return compare_quality(before, after)

    @staticmethod
    def _effective_limits(rules: RuleSet, limits: CapacityLimits) -> CapacityLimits:
        cre_rule = rules.first(RuleType.CRE_BALANCE)
        tier_rule = rules.first(RuleType.TIER_BALANCE)
        return limits.with_overrides(
            max_cre_per_rep=cre_rule.conditions.max_cre_per_rep if isinstance(cre_rule, CreBalanceRule) else None,
            max_tier1_per_rep=(
                tier_rule.conditions.max_tier1_per_rep if isinstance(tier_rule, TierBalanceRule) else None
            ),
            max_tier2_per_rep=(
                tier_rule.conditions.max_tier2_per_rep if isinstance(tier_rule, TierBalanceRule) else None
            ),
        )

    @staticmethod
    def _pin_locked(
        account: Account,
        reps_by_id: dict[str, SalesRep],
        tracker: CapacityTracker,
    ) -> AssignmentProposal:
        owner = reps_by_id.get(account.current_owner_id or "")
        account.proposed_owner_id = account.current_owner_id
        account.proposed_owner_name = account.current_owner_name
        if owner is not None:
            tracker.commit(owner.rep_id, account.to_load())
        return locked_proposal(account, owner)

    @staticmethod
    def _is_strategic_unit(unit: PlacementUnit, reps_by_id: dict[str, SalesRep]) -> bool:
        owner = reps_by_id.get(unit.anchor.current_owner_id or "")
        return owner is not None and owner.is_strategic_rep

    @staticmethod
    def _build_units(index: AccountIndex, reps_by_id: dict[str, SalesRep]) -> list[PlacementUnit]:
        def owned_by_strategic(account: Account) -> bool:
            owner = reps_by_id.get(account.current_owner_id or "")
            return owner is not None and owner.is_strategic_rep

        units: list[PlacementUnit] = []
        for account in index.all():
            if account.is_locked:
                continue
            parent = index.parent_of(account)
            if parent is not None and not parent.is_locked:
                if not owned_by_strategic(account) or owned_by_strategic(parent):
                    continue  # placed with its parent

            members: list[Account] = []
            children = index.children_of(account.account_id)
            if parent is None:
                members = [
                    c
                    for c in children
                    if not c.is_locked and (not owned_by_strategic(c) or owned_by_strategic(account))
                ]

            load = account.to_load()
            for member in members:
                load = load.combine(member.to_load())
            if children and len(members) == len(children):
                arr = max(account.hierarchy_arr, load.arr)
            else:
                arr = load.arr
            units.append(PlacementUnit(anchor=account, members=members, load=replace(load, arr=arr)))
        return units

    @staticmethod
    def _proposal(
        account: Account,
        decision: PlacementDecision,
        extra: list[AssignmentWarning],
    ) -> AssignmentProposal:
        rep = decision.rep
        account.proposed_owner_id = rep.rep_id if rep else None
        account.proposed_owner_name = rep.name if rep else None
        proposal = AssignmentProposal(
            account_id=account.account_id,
            proposed_owner_id=account.proposed_owner_id,
            proposed_owner_name=account.proposed_owner_name,
            proposed_owner_region=rep.region if rep else None,
            rule_applied=decision.rule_applied,
            assignment_reason=decision.reason,
        )
        for warning in [*decision.warnings, *extra]:
            proposal.add_warning(warning)
        return proposal

    @staticmethod
    def _member_proposal(member: Account, anchor: Account, decision: PlacementDecision) -> AssignmentProposal:
        rep = decision.rep
        member.proposed_owner_id = rep.rep_id if rep else None
        member.proposed_owner_name = rep.name if rep else None
        proposal = AssignmentProposal(
            account_id=member.account_id,
            proposed_owner_id=member.proposed_owner_id,
            proposed_owner_name=member.proposed_owner_name,
            proposed_owner_region=rep.region if rep else None,
            rule_applied=decision.rule_applied,
            assignment_reason=f"Follows parent {anchor.name}",
        )
        for warning in decision.warnings:
            if warning.type != WarningType.CONTINUITY_BROKEN:
                proposal.add_warning(warning)
        if rep and member.current_owner_id and member.current_owner_id != rep.rep_id:
            previous = member.current_owner_name or member.current_owner_id
            proposal.add_warning(
                AssignmentWarning(
                    type=WarningType.CONTINUITY_BROKEN,
                    severity=Severity.MEDIUM,
                    reason=f"Owner changes from {previous} to {rep.name}",
                )
            )
        return proposal

    # ── Manual entry points ────────────────────────────────────────────────

    def reassign(
        self,
        accounts: list[Account],
        reps: list[SalesRep],
        request: ReassignmentRequest,
        confirmed: bool = False,
        proposals: dict[str, AssignmentProposal] | None = None,
    ) -> ReassignmentOutcome:
        """Evaluate a manual reassignment and apply it when allowed.

        Plans that were cancelled, or that sit in a warned state without
        *confirmed*, are returned unapplied so the caller can surface them.
        """
        engine = HierarchyCascadeEngine(AccountIndex(accounts), reps)
        plan = engine.evaluate(request)
        if plan.is_terminal or (plan.requires_confirmation and not confirmed):
            return ReassignmentOutcome(plan=plan)
        return ReassignmentOutcome(plan=plan, result=engine.apply(plan, confirmed=confirmed, proposals=proposals))

    def set_lock(
        self,
        accounts: list[Account],
        reps: list[SalesRep],
        account_id: str,
        locking: bool,
        reason: str | None = None,
        proposals: dict[str, AssignmentProposal] | None = None,
    ) -> LockResult:
        engine = HierarchyCascadeEngine(AccountIndex(accounts), reps)
        return engine.lock(account_id, locking, reason, proposals=proposals)
