"""AssignmentRule — closed family of rule variants keyed by rule type.

Each variant carries its own typed conditions and scoring weights. Raw
configuration is validated into these objects by ``assignment_engine.rule_config``
before any pass runs, so the engine never sees a free-form bag.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from assignment_engine.domain.value_objects.enums import AccountScope, RuleType


@dataclass(frozen=True)
class GeoFirstConditions:
    territory_mappings: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class SmartBalanceConditions:
    min_arr_threshold: float = 0.0


@dataclass(frozen=True)
class SmartBalanceWeights:
    arr_weight: float = 1.0
    renewal_weight: float = 1.0


@dataclass(frozen=True)
class TierBalanceConditions:
    max_tier1_per_rep: int | None = None
    max_tier2_per_rep: int | None = None


@dataclass(frozen=True)
class TierBalanceWeights:
    tier_weight: float = 1.0


@dataclass(frozen=True)
class CreBalanceConditions:
    max_cre_per_rep: int | None = None


@dataclass(frozen=True)
class CreBalanceWeights:
    cre_weight: float = 1.0


@dataclass(frozen=True)
class _RuleBase:
    name: str
    priority: int
    enabled: bool = True
    account_scope: AccountScope = AccountScope.ALL

    def applies_to(self, is_customer: bool) -> bool:
        if not self.enabled:
            return False
        if self.account_scope == AccountScope.CUSTOMERS:
            return is_customer
        if self.account_scope == AccountScope.PROSPECTS:
            return not is_customer
        return True


@dataclass(frozen=True)
class GeoFirstRule(_RuleBase):
    conditions: GeoFirstConditions = field(default_factory=GeoFirstConditions)
    rule_type: RuleType = field(default=RuleType.GEO_FIRST, init=False)


@dataclass(frozen=True)
class ContinuityRule(_RuleBase):
    """Marks continuity in the rule list; the waterfall steps themselves are fixed."""

    rule_type: RuleType = field(default=RuleType.CONTINUITY, init=False)


@dataclass(frozen=True)
class SmartBalanceRule(_RuleBase):
    conditions: SmartBalanceConditions = field(default_factory=SmartBalanceConditions)
    weights: SmartBalanceWeights = field(default_factory=SmartBalanceWeights)
    rule_type: RuleType = field(default=RuleType.SMART_BALANCE, init=False)


@dataclass(frozen=True)
class TierBalanceRule(_RuleBase):
    conditions: TierBalanceConditions = field(default_factory=TierBalanceConditions)
    weights: TierBalanceWeights = field(default_factory=TierBalanceWeights)
    rule_type: RuleType = field(default=RuleType.TIER_BALANCE, init=False)


@dataclass(frozen=True)
class CreBalanceRule(_RuleBase):
    conditions: CreBalanceConditions = field(default_factory=CreBalanceConditions)
    weights: CreBalanceWeights = field(default_factory=CreBalanceWeights)
    rule_type: RuleType = field(default=RuleType.CRE_BALANCE, init=False)


AssignmentRule = Union[GeoFirstRule, ContinuityRule, SmartBalanceRule, TierBalanceRule, CreBalanceRule]


class RuleSet:
    """Ordered, read-only view over the configured rules."""

    def __init__(self, rules: list[AssignmentRule] | None = None):
        self._rules = sorted(rules or [], key=lambda r: (r.priority, r.rule_type.value, r.name))

    def __iter__(self):
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def enabled(self) -> list[AssignmentRule]:
        return [r for r in self._rules if r.enabled]

    def first(self, rule_type: RuleType, is_customer: bool | None = None) -> AssignmentRule | None:
        """First enabled rule of a type, optionally filtered by account scope."""
        for rule in self._rules:
            if rule.rule_type != rule_type or not rule.enabled:
                continue
            if is_customer is None or rule.applies_to(is_customer):
                return rule
        return None

    def territory_mappings(self) -> dict[str, str]:
        mappings: dict[str, str] = {}
        # Lower priority numbers win, so apply in reverse
        for rule in reversed(self.enabled()):
            if isinstance(rule, GeoFirstRule):
                mappings.update(rule.conditions.territory_mappings)
        return mappings

    def priority_order(self) -> list[RuleType]:
        """Enabled rule types in configured priority order, without duplicates."""
        seen: list[RuleType] = []
        for rule in self.enabled():
            if rule.rule_type not in seen:
                seen.append(rule.rule_type)
        return seen
