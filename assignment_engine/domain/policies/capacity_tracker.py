"""CapacityTracker — per-rep running totals for one assignment pass.

The state is an explicit value built fresh by ``initialize`` and owned by the
pass that created it. ``can_accept`` never mutates; only ``commit`` does.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from assignment_engine.domain.entities.sales_rep import SalesRep
from assignment_engine.domain.value_objects.capacity_limits import AccountLoad, CapacityLimits


@dataclass
class CapacityState:
    customer_arr: float = 0.0
    prospect_arr: float = 0.0
    atr: float = 0.0
    account_count: int = 0
    cre_count: int = 0
    tier1_count: int = 0
    tier2_count: int = 0
    renewals_by_quarter: dict[int, int] = field(default_factory=lambda: {1: 0, 2: 0, 3: 0, 4: 0})

    def arr_for(self, is_customer: bool) -> float:
        return self.customer_arr if is_customer else self.prospect_arr

    @property
    def total_arr(self) -> float:
        return self.customer_arr + self.prospect_arr

    def copy(self) -> CapacityState:
        return CapacityState(
            customer_arr=self.customer_arr,
            prospect_arr=self.prospect_arr,
            atr=self.atr,
            account_count=self.account_count,
            cre_count=self.cre_count,
            tier1_count=self.tier1_count,
            tier2_count=self.tier2_count,
            renewals_by_quarter=dict(self.renewals_by_quarter),
        )


class CapacityTracker:
    """Tests and records load against each rep's caps.

    Strategic reps are exempt from every cap; their totals are still kept so
    the strategic pool can be balanced by lowest load.
    """

    def __init__(self, limits: CapacityLimits):
        self.limits = limits
        self._states: dict[str, CapacityState] = {}
        self._strategic: set[str] = set()

    def initialize(self, reps: list[SalesRep]) -> dict[str, CapacityState]:
        self._states = {rep.rep_id: CapacityState() for rep in reps}
        self._strategic = {rep.rep_id for rep in reps if rep.is_strategic_rep}
        return self._states

    def load(self, rep_id: str) -> CapacityState:
        if rep_id not in self._states:
            self._states[rep_id] = CapacityState()
        return self._states[rep_id]

    def headroom(self, rep_id: str, is_customer: bool) -> float:
        return self.limits.hard_cap(is_customer) - self.load(rep_id).arr_for(is_customer)

    def rejection_reason(self, rep_id: str, load: AccountLoad) -> str | None:
        """Name the first cap *load* would break on *rep_id*, or None if it fits."""
        if rep_id in self._strategic:
            return None

        state = self.load(rep_id)
        limits = self.limits
        projected = state.arr_for(load.is_customer) + load.arr

        if projected > limits.variance_cap(load.is_customer):
            return "target variance cap"
        if projected > limits.max_cap(load.is_customer):
            return "max ARR cap"
        if load.carries_cre and state.cre_count + load.cre_accounts > limits.max_cre_per_rep:
            return "CRE cap"
        if (
            load.tier1_accounts
            and limits.max_tier1_per_rep is not None
            and state.tier1_count + load.tier1_accounts > limits.max_tier1_per_rep
        ):
            return "tier 1 cap"
        return None

    def can_accept(self, rep_id: str, load: AccountLoad) -> bool:
        return self.rejection_reason(rep_id, load) is None

    def commit(self, rep_id: str, load: AccountLoad) -> CapacityState:
        state = self.load(rep_id)
        if load.is_customer:
            state.customer_arr += load.arr
        else:
            state.prospect_arr += load.arr
        state.atr += load.atr
        state.account_count += load.account_count
        state.cre_count += load.cre_accounts
        state.tier1_count += load.tier1_accounts
        state.tier2_count += load.tier2_accounts
        for quarter, count in load.renewals_by_quarter.items():
            state.renewals_by_quarter[quarter] = state.renewals_by_quarter.get(quarter, 0) + count
        return state

    def snapshot(self) -> dict[str, CapacityState]:
        return {rep_id: state.copy() for rep_id, state in self._states.items()}
