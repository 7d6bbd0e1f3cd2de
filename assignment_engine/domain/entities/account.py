"""Account entity — a customer or prospect in a build, possibly part of a hierarchy."""

from __future__ import annotations

import re
from dataclasses import dataclass

from assignment_engine.domain.value_objects.capacity_limits import AccountLoad

_TIER_DIGIT = re.compile(r"([1-4])")


def parse_tier(raw: str | None) -> int | None:
    """Extract the tier number from strings like "Tier 1", "T2" or "3"."""
    if not raw:
        return None
    match = _TIER_DIGIT.search(raw)
    return int(match.group(1)) if match else None


def parse_quarter(raw: str | None) -> int | None:
    """Renewal quarter from "Q1" / "q3-FY27" style values."""
    if not raw:
        return None
    value = raw.strip().upper()
    if len(value) >= 2 and value[0] == "Q" and value[1] in "1234":
        return int(value[1])
    return None


@dataclass
class Account:
    account_id: str
    name: str
    is_parent: bool = False
    ultimate_parent_id: str | None = None
    is_customer: bool = True
    arr: float = 0.0
    hierarchy_arr: float = 0.0
    atr: float = 0.0
    expansion_tier: str | None = None
    initial_sale_tier: str | None = None
    territory: str | None = None
    cre_count: int = 0
    renewal_quarter: str | None = None
    current_owner_id: str | None = None
    current_owner_name: str | None = None
    proposed_owner_id: str | None = None
    proposed_owner_name: str | None = None
    exclude_from_reassignment: bool = False
    lock_reason: str | None = None
    has_split_ownership: bool = False

    @property
    def is_locked(self) -> bool:
        return self.exclude_from_reassignment

    @property
    def effective_owner_id(self) -> str | None:
        return self.proposed_owner_id or self.current_owner_id

    @property
    def carries_cre(self) -> bool:
        return self.cre_count > 0

    @property
    def tier_number(self) -> int | None:
        # Customers are tiered on expansion potential, prospects on initial sale
        primary, secondary = (
            (self.expansion_tier, self.initial_sale_tier)
            if self.is_customer
            else (self.initial_sale_tier, self.expansion_tier)
        )
        return parse_tier(primary) or parse_tier(secondary)

    @property
    def renewal_quarter_number(self) -> int | None:
        return parse_quarter(self.renewal_quarter)

    def to_load(self, arr: float | None = None) -> AccountLoad:
        quarter = self.renewal_quarter_number
        tier = self.tier_number
        return AccountLoad(
            is_customer=self.is_customer,
            arr=self.arr if arr is None else arr,
            atr=self.atr,
            account_count=1,
            cre_accounts=1 if self.carries_cre else 0,
            tier1_accounts=1 if tier == 1 else 0,
            tier2_accounts=1 if tier == 2 else 0,
            renewals_by_quarter={quarter: 1} if quarter else {},
        )
