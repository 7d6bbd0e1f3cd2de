"""BalanceOptimizer — pure tie-breaker among reps valid at the same waterfall step.

Every candidate gets a deficit per balancing metric (ideal target minus its
current value). Candidates are compared lexicographically on those deficits
in metric precedence order, the fixed tier score and finally the rep id.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from assignment_engine.domain.entities.assignment_rule import (
    CreBalanceRule,
    RuleSet,
    SmartBalanceRule,
    TierBalanceRule,
)
from assignment_engine.domain.entities.sales_rep import SalesRep
from assignment_engine.domain.policies.capacity_tracker import CapacityTracker
from assignment_engine.domain.value_objects.capacity_limits import AccountLoad
from assignment_engine.domain.value_objects.enums import RuleType

METRIC_ARR = "arr"
METRIC_CRE = "cre"
METRIC_TIER = "tier"
METRIC_RENEWAL_QUARTER = "renewal_quarter"

DEFAULT_PRECEDENCE = (METRIC_ARR, METRIC_CRE, METRIC_TIER, METRIC_RENEWAL_QUARTER)
KNOWN_METRICS = frozenset(DEFAULT_PRECEDENCE)

_RULE_METRIC = {
    RuleType.SMART_BALANCE: METRIC_ARR,
    RuleType.CRE_BALANCE: METRIC_CRE,
    RuleType.TIER_BALANCE: METRIC_TIER,
}

TIER1_TO_STRATEGIC_SCORE = 60
LOW_TIER_TO_NORMAL_SCORE = 40
DEFAULT_TIER_SCORE = 20


@dataclass(frozen=True)
class BalanceTargets:
    """Ideal per-rep values: pool totals divided by eligible normal reps."""

    customer_arr: float = 0.0
    prospect_arr: float = 0.0
    cre_accounts: float = 0.0
    tier1_accounts: float = 0.0
    tier2_accounts: float = 0.0
    renewals_by_quarter: dict[int, float] = field(default_factory=dict)

    @classmethod
    def from_pool(cls, loads: list[AccountLoad], rep_count: int) -> BalanceTargets:
        if rep_count <= 0:
            return cls()
        customer_arr = sum(l.arr for l in loads if l.is_customer)
        prospect_arr = sum(l.arr for l in loads if not l.is_customer)
        quarters: dict[int, float] = {}
        for load in loads:
            for quarter, count in load.renewals_by_quarter.items():
                quarters[quarter] = quarters.get(quarter, 0) + count
        return cls(
            customer_arr=customer_arr / rep_count,
            prospect_arr=prospect_arr / rep_count,
            cre_accounts=sum(l.cre_accounts for l in loads) / rep_count,
            tier1_accounts=sum(l.tier1_accounts for l in loads) / rep_count,
            tier2_accounts=sum(l.tier2_accounts for l in loads) / rep_count,
            renewals_by_quarter={q: c / rep_count for q, c in quarters.items()},
        )

    def arr_for(self, is_customer: bool) -> float:
        return self.customer_arr if is_customer else self.prospect_arr


def tier_score(tier: int | None, rep: SalesRep) -> int:
    if tier == 1 and rep.is_strategic_rep:
        return TIER1_TO_STRATEGIC_SCORE
    if tier in (3, 4) and not rep.is_strategic_rep:
        return LOW_TIER_TO_NORMAL_SCORE
    return DEFAULT_TIER_SCORE


def precedence_from_rules(rules: RuleSet) -> tuple[str, ...]:
    """Metric order following configured rule priority; renewal quarter last."""
    order: list[str] = []
    for rule_type in rules.priority_order():
        metric = _RULE_METRIC.get(rule_type)
        if metric and metric not in order:
            order.append(metric)
    for metric in DEFAULT_PRECEDENCE:
        if metric not in order:
            order.append(metric)
    return tuple(order)


class BalanceOptimizer:
    def __init__(
        self,
        rules: RuleSet,
        targets: BalanceTargets,
        precedence: tuple[str, ...] = DEFAULT_PRECEDENCE,
    ):
        self.rules = rules
        self.targets = targets
        self.precedence = precedence

    def choose(
        self,
        candidates: list[SalesRep],
        load: AccountLoad,
        tracker: CapacityTracker,
        tier: int | None = None,
        quarter: int | None = None,
    ) -> SalesRep:
        """Return the single best rep among *candidates* (non-empty).

        *tier* and *quarter* describe the account being placed (the anchor of a
        hierarchy unit), *load* the full delta it adds.
        """
        if not candidates:
            raise ValueError("Cannot balance an empty candidate list")
        if len(candidates) == 1:
            return candidates[0]
        return min(candidates, key=lambda rep: self._sort_key(rep, load, tracker, tier, quarter))

    def _sort_key(
        self,
        rep: SalesRep,
        load: AccountLoad,
        tracker: CapacityTracker,
        tier: int | None,
        quarter: int | None,
    ):
        state = tracker.load(rep.rep_id)
        is_customer = load.is_customer
        smart = self.rules.first(RuleType.SMART_BALANCE, is_customer)
        cre = self.rules.first(RuleType.CRE_BALANCE, is_customer)
        tier_rule = self.rules.first(RuleType.TIER_BALANCE, is_customer)

        # Reps below the SMART_BALANCE minimum are served first
        below_minimum = 0
        if isinstance(smart, SmartBalanceRule) and smart.conditions.min_arr_threshold > 0:
            below_minimum = 0 if state.arr_for(is_customer) < smart.conditions.min_arr_threshold else 1

        deficits: dict[str, float] = {}
        if isinstance(smart, SmartBalanceRule) and smart.weights.arr_weight > 0:
            gap = self.targets.arr_for(is_customer) - state.arr_for(is_customer)
            deficits[METRIC_ARR] = gap * smart.weights.arr_weight
        if isinstance(cre, CreBalanceRule) and cre.weights.cre_weight > 0 and load.carries_cre:
            deficits[METRIC_CRE] = (self.targets.cre_accounts - state.cre_count) * cre.weights.cre_weight
        if isinstance(tier_rule, TierBalanceRule) and tier_rule.weights.tier_weight > 0 and tier in (1, 2):
            if tier == 1:
                gap = self.targets.tier1_accounts - state.tier1_count
            else:
                gap = self.targets.tier2_accounts - state.tier2_count
            deficits[METRIC_TIER] = gap * tier_rule.weights.tier_weight
        if isinstance(smart, SmartBalanceRule) and smart.weights.renewal_weight > 0 and quarter:
            gap = self.targets.renewals_by_quarter.get(quarter, 0.0) - state.renewals_by_quarter.get(quarter, 0)
            deficits[METRIC_RENEWAL_QUARTER] = gap * smart.weights.renewal_weight

        score = tier_score(tier, rep) if tier_rule is not None else 0
        ordered = tuple(-deficits.get(metric, 0.0) for metric in self.precedence)
        return (below_minimum, *ordered, -score, rep.rep_id)
