"""RuleEvaluator — the fixed placement waterfall for one account or hierarchy unit.

Order:
  0. Strategic carve-out: accounts owned by a strategic rep stay in the
     strategic pool (current owner, else lowest load), no caps.
  1. Continuity + geography: current owner, same mapped region, fits.
  2. Geography: same-region rep with the most headroom that fits.
  3. Continuity, any geography.
  4. Best available: any rep with the most headroom that fits.
  5. Unassigned with CAPACITY_EXCEEDED.

An unmapped territory skips steps 1 and 2. Reps tied on headroom are handed to
the BalanceOptimizer. The evaluator only proposes; committing load is left to
the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from assignment_engine.domain.entities.account import Account
from assignment_engine.domain.entities.assignment_rule import RuleSet
from assignment_engine.domain.entities.proposal import AssignmentWarning
from assignment_engine.domain.entities.sales_rep import SalesRep
from assignment_engine.domain.policies.balance_optimizer import BalanceOptimizer
from assignment_engine.domain.policies.capacity_tracker import CapacityTracker
from assignment_engine.domain.value_objects.capacity_limits import AccountLoad
from assignment_engine.domain.value_objects.enums import RuleApplied, Severity, WarningType
from assignment_engine.domain.value_objects.territory_map import TerritoryMap, same_region


@dataclass(frozen=True)
class PlacementDecision:
    rep: SalesRep | None
    rule_applied: RuleApplied
    reason: str
    warnings: tuple[AssignmentWarning, ...] = field(default_factory=tuple)

    @property
    def rep_id(self) -> str | None:
        return self.rep.rep_id if self.rep else None


class RuleEvaluator:
    def __init__(
        self,
        reps: list[SalesRep],
        rules: RuleSet,
        territory_map: TerritoryMap,
        tracker: CapacityTracker,
        optimizer: BalanceOptimizer,
        tie_tolerance_arr: float = 0.0,
    ):
        self.reps_by_id = {rep.rep_id: rep for rep in reps}
        self.rules = rules
        self.territory_map = territory_map
        self.tracker = tracker
        self.optimizer = optimizer
        self.tie_tolerance_arr = tie_tolerance_arr

        ordered = sorted(reps, key=lambda r: r.rep_id)
        self._normal_pool = [r for r in ordered if r.receives_new_accounts and not r.is_strategic_rep]
        self._strategic_pool = [r for r in ordered if r.receives_new_accounts and r.is_strategic_rep]

    def mapped_region(self, account: Account) -> str | None:
        return self.territory_map.region_for(account.territory)

    def evaluate(self, account: Account, load: AccountLoad | None = None) -> PlacementDecision:
        """Run the waterfall for *account*; *load* defaults to the account alone."""
        load = load or account.to_load()
        current = self.reps_by_id.get(account.current_owner_id or "")

        if current is not None and current.is_strategic_rep:
            return self._place_strategic(account, current)

        region = self.mapped_region(account)
        owner = current if current is not None and current.is_eligible else None

        # Priority 1
        if region and owner and same_region(owner.region, region) and self.tracker.can_accept(owner.rep_id, load):
            return self._decide(
                account,
                owner,
                RuleApplied.CONTINUITY_GEO,
                f"Kept current owner {owner.name} in region {region}",
            )

        # Priority 2
        if region:
            same_region_reps = [
                r
                for r in self._normal_pool
                if r.rep_id != account.current_owner_id
                and same_region(r.region, region)
                and self.tracker.can_accept(r.rep_id, load)
            ]
            if same_region_reps:
                rep = self._best_by_headroom(same_region_reps, account, load)
                return self._decide(
                    account,
                    rep,
                    RuleApplied.GEOGRAPHY,
                    f"Most capacity headroom in region {region}",
                )

        # Priority 3
        if (
            owner
            and self.tracker.can_accept(owner.rep_id, load)
        ):
            return self._decide(
                account,
                owner,
                RuleApplied.CONTINUITY_ANY_GEO,
                f"Kept current owner {owner.name} across regions",
                region=region,
            )

        # Priority 4
        anywhere = [
            r
            for r in self._normal_pool
            if r.rep_id != account.current_owner_id and self.tracker.can_accept(r.rep_id, load)
        ]
        if anywhere:
            rep = self._best_by_headroom(anywhere, account, load)
            return self._decide(
                account,
                rep,
                RuleApplied.BEST_AVAILABLE,
                "Most capacity headroom in any region",
                region=region,
            )

        return PlacementDecision(
            rep=None,
            rule_applied=RuleApplied.UNASSIGNED,
            reason="No eligible rep has capacity for this account",
            warnings=(
                AssignmentWarning(
                    type=WarningType.CAPACITY_EXCEEDED,
                    severity=Severity.HIGH,
                    reason="Every eligible rep would exceed a capacity limit",
                    details=f"ARR {load.arr:,.0f} across {load.account_count} account(s)",
                ),
            ),
        )

    def post_commit_warnings(self, rep_id: str, load: AccountLoad) -> list[AssignmentWarning]:
        """Concentration warnings once *load* has been committed to *rep_id*."""
        rep = self.reps_by_id.get(rep_id)
        if rep is None or rep.is_strategic_rep:
            return []
        state = self.tracker.load(rep_id)
        limits = self.tracker.limits
        warnings: list[AssignmentWarning] = []
        if (
            load.tier2_accounts
            and limits.max_tier2_per_rep is not None
            and state.tier2_count > limits.max_tier2_per_rep
        ):
            warnings.append(
                AssignmentWarning(
                    type=WarningType.TIER_CONCENTRATION,
                    severity=Severity.MEDIUM,
                    reason=f"{rep.name} holds more than {limits.max_tier2_per_rep} tier 2 accounts",
                    details=f"tier 2 count {state.tier2_count}",
                )
            )
        if load.carries_cre and state.cre_count >= limits.max_cre_per_rep:
            warnings.append(
                AssignmentWarning(
                    type=WarningType.CRE_RISK,
                    severity=Severity.MEDIUM,
                    reason=f"{rep.name} reached the CRE limit of {limits.max_cre_per_rep}",
                    details=f"CRE accounts {state.cre_count}",
                )
            )
        return warnings

    def _place_strategic(self, account: Account, current: SalesRep) -> PlacementDecision:
        if current.is_eligible:
            return self._decide(
                account,
                current,
                RuleApplied.STRATEGIC_CONTINUITY,
                f"Strategic account kept with {current.name}",
            )

        if not self._strategic_pool:
            return PlacementDecision(
                rep=None,
                rule_applied=RuleApplied.UNASSIGNED,
                reason="No eligible strategic rep available",
                warnings=(
                    AssignmentWarning(
                        type=WarningType.STRATEGIC_OVERFLOW,
                        severity=Severity.HIGH,
                        reason=f"Strategic owner {current.name} is unavailable and the strategic pool is empty",
                    ),
                ),
            )

        def strategic_load(rep: SalesRep):
            state = self.tracker.load(rep.rep_id)
            return (state.total_arr, state.account_count, rep.rep_id)

        rep = min(self._strategic_pool, key=strategic_load)
        return self._decide(
            account,
            rep,
            RuleApplied.STRATEGIC_DISTRIBUTION,
            f"Lowest loaded strategic rep {rep.name}",
        )

    def _best_by_headroom(self, candidates: list[SalesRep], account: Account, load: AccountLoad) -> SalesRep:
        headroom = {r.rep_id: self.tracker.headroom(r.rep_id, load.is_customer) for r in candidates}
        best = max(headroom.values())
        tied = [r for r in candidates if best - headroom[r.rep_id] <= self.tie_tolerance_arr]
        return self.optimizer.choose(
            tied,
            load,
            self.tracker,
            tier=account.tier_number,
            quarter=account.renewal_quarter_number,
        )

    def _decide(
        self,
        account: Account,
        rep: SalesRep,
        rule_applied: RuleApplied,
        reason: str,
        region: str | None = None,
    ) -> PlacementDecision:
        warnings: list[AssignmentWarning] = []
        if account.current_owner_id and account.current_owner_id != rep.rep_id:
            previous = account.current_owner_name or account.current_owner_id
            warnings.append(
                AssignmentWarning(
                    type=WarningType.CONTINUITY_BROKEN,
                    severity=Severity.MEDIUM,
                    reason=f"Owner changes from {previous} to {rep.name}",
                )
            )
        if region and not same_region(rep.region, region):
            warnings.append(
                AssignmentWarning(
                    type=WarningType.CROSS_REGION,
                    severity=Severity.LOW,
                    reason=f"{rep.name} is in {rep.region or 'no region'}, account maps to {region}",
                )
            )
        return PlacementDecision(rep=rep, rule_applied=rule_applied, reason=reason, warnings=tuple(warnings))
