"""Capacity value objects — scalar caps and per-account load deltas."""

from __future__ import annotations

from dataclasses import dataclass, field, replace

DEFAULT_MAX_CRE_PER_REP = 3
DEFAULT_MAX_TIER1_PER_REP = 5
DEFAULT_MAX_TIER2_PER_REP = 8


@dataclass(frozen=True)
class CapacityLimits:
    """Scalar capacity configuration handed to the engine at pass start."""

    customer_target_arr: float
    customer_max_arr: float
    prospect_target_arr: float
    prospect_max_arr: float
    capacity_variance_percent: float = 10.0
    max_cre_per_rep: int = DEFAULT_MAX_CRE_PER_REP
    max_tier1_per_rep: int | None = DEFAULT_MAX_TIER1_PER_REP
    max_tier2_per_rep: int | None = DEFAULT_MAX_TIER2_PER_REP

    def variance_cap(self, is_customer: bool) -> float:
        target = self.customer_target_arr if is_customer else self.prospect_target_arr
        return target * (1 + self.capacity_variance_percent / 100)

    def max_cap(self, is_customer: bool) -> float:
        return self.customer_max_arr if is_customer else self.prospect_max_arr

    def hard_cap(self, is_customer: bool) -> float:
        """Effective ARR ceiling for a band: both caps must hold at once."""
        return min(self.variance_cap(is_customer), self.max_cap(is_customer))

    def with_overrides(
        self,
        max_cre_per_rep: int | None = None,
        max_tier1_per_rep: int | None = None,
        max_tier2_per_rep: int | None = None,
    ) -> CapacityLimits:
        """Return a copy with rule-level overrides applied (None keeps the value)."""
        changes: dict = {}
        if max_cre_per_rep is not None:
            changes["max_cre_per_rep"] = max_cre_per_rep
        if max_tier1_per_rep is not None:
            changes["max_tier1_per_rep"] = max_tier1_per_rep
        if max_tier2_per_rep is not None:
            changes["max_tier2_per_rep"] = max_tier2_per_rep
        return replace(self, **changes) if changes else self


@dataclass(frozen=True)
class AccountLoad:
    """Load a placement adds to a rep: one account, or a parent with its children."""

    is_customer: bool
    arr: float = 0.0
    atr: float = 0.0
    account_count: int = 1
    cre_accounts: int = 0
    tier1_accounts: int = 0
    tier2_accounts: int = 0
    renewals_by_quarter: dict[int, int] = field(default_factory=dict)

    @property
    def carries_cre(self) -> bool:
        return self.cre_accounts > 0

    def combine(self, other: AccountLoad) -> AccountLoad:
        quarters = dict(self.renewals_by_quarter)
        for quarter, count in other.renewals_by_quarter.items():
            quarters[quarter] = quarters.get(quarter, 0) + count
        return AccountLoad(
            is_customer=self.is_customer,
            arr=self.arr + other.arr,
            atr=self.atr + other.atr,
            account_count=self.account_count + other.account_count,
            cre_accounts=self.cre_accounts + other.cre_accounts,
            tier1_accounts=self.tier1_accounts + other.tier1_accounts,
            tier2_accounts=self.tier2_accounts + other.tier2_accounts,
            renewals_by_quarter=quarters,
        )
