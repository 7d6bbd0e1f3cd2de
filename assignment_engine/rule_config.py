"""Rule configuration schema — raw rule dicts validated into domain rules.

Each rule type has its own conditions/weights model; the union is tagged on
``rule_type`` so an unknown type or a stray condition key fails validation
instead of being ignored during a pass.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from assignment_engine.domain.entities.assignment_rule import (
    AssignmentRule,
    ContinuityRule,
    CreBalanceConditions,
    CreBalanceRule,
    CreBalanceWeights,
    GeoFirstConditions,
    GeoFirstRule,
    RuleSet,
    SmartBalanceConditions,
    SmartBalanceRule,
    SmartBalanceWeights,
    TierBalanceConditions,
    TierBalanceRule,
    TierBalanceWeights,
)
from assignment_engine.domain.errors import ConfigurationError
from assignment_engine.domain.value_objects.enums import AccountScope

logger = logging.getLogger(__name__)


class _Strict(BaseModel):
    model_config = ConfigDict(extra="forbid")


class GeoFirstConditionsModel(_Strict):
    territory_mappings: dict[str, str] = Field(default_factory=dict)


class SmartBalanceConditionsModel(_Strict):
    min_arr_threshold: float = Field(default=0.0, ge=0)


class SmartBalanceWeightsModel(_Strict):
    arr_weight: float = Field(default=1.0, ge=0)
    renewal_weight: float = Field(default=1.0, ge=0)


class TierBalanceConditionsModel(_Strict):
    max_tier1_per_rep: int | None = Field(default=None, ge=0)
    max_tier2_per_rep: int | None = Field(default=None, ge=0)


class TierBalanceWeightsModel(_Strict):
    tier_weight: float = Field(default=1.0, ge=0)


class CreBalanceConditionsModel(_Strict):
    max_cre_per_rep: int | None = Field(default=None, ge=0)


class CreBalanceWeightsModel(_Strict):
    cre_weight: float = Field(default=1.0, ge=0)


class _RuleModel(_Strict):
    name: str = Field(min_length=1)
    priority: int = Field(ge=1)
    enabled: bool = True
    account_scope: AccountScope = AccountScope.ALL


class GeoFirstRuleModel(_RuleModel):
    rule_type: Literal["GEO_FIRST"]
    conditions: GeoFirstConditionsModel = Field(default_factory=GeoFirstConditionsModel)

    def to_domain(self) -> GeoFirstRule:
        return GeoFirstRule(
            name=self.name,
            priority=self.priority,
            enabled=self.enabled,
            account_scope=self.account_scope,
            conditions=GeoFirstConditions(territory_mappings=dict(self.conditions.territory_mappings)),
        )


class ContinuityRuleModel(_RuleModel):
    rule_type: Literal["CONTINUITY"]

    def to_domain(self) -> ContinuityRule:
        return ContinuityRule(
            name=self.name,
            priority=self.priority,
            enabled=self.enabled,
            account_scope=self.account_scope,
        )


class SmartBalanceRuleModel(_RuleModel):
    rule_type: Literal["SMART_BALANCE"]
    conditions: SmartBalanceConditionsModel = Field(default_factory=SmartBalanceConditionsModel)
    weights: SmartBalanceWeightsModel = Field(default_factory=SmartBalanceWeightsModel)

    def to_domain(self) -> SmartBalanceRule:
        return SmartBalanceRule(
            name=self.name,
            priority=self.priority,
            enabled=self.enabled,
            account_scope=self.account_scope,
            conditions=SmartBalanceConditions(min_arr_threshold=self.conditions.min_arr_threshold),
            weights=SmartBalanceWeights(
                arr_weight=self.weights.arr_weight,
                renewal_weight=self.weights.renewal_weight,
            ),
        )


class TierBalanceRuleModel(_RuleModel):
    rule_type: Literal["TIER_BALANCE"]
    conditions: TierBalanceConditionsModel = Field(default_factory=TierBalanceConditionsModel)
    weights: TierBalanceWeightsModel = Field(default_factory=TierBalanceWeightsModel)

    def to_domain(self) -> TierBalanceRule:
        return TierBalanceRule(
            name=self.name,
            priority=self.priority,
            enabled=self.enabled,
            account_scope=self.account_scope,
            conditions=TierBalanceConditions(
                max_tier1_per_rep=self.conditions.max_tier1_per_rep,
                max_tier2_per_rep=self.conditions.max_tier2_per_rep,
            ),
            weights=TierBalanceWeights(tier_weight=self.weights.tier_weight),
        )


class CreBalanceRuleModel(_RuleModel):
    rule_type: Literal["CRE_BALANCE"]
    conditions: CreBalanceConditionsModel = Field(default_factory=CreBalanceConditionsModel)
    weights: CreBalanceWeightsModel = Field(default_factory=CreBalanceWeightsModel)

    def to_domain(self) -> CreBalanceRule:
        return CreBalanceRule(
            name=self.name,
            priority=self.priority,
            enabled=self.enabled,
            account_scope=self.account_scope,
            conditions=CreBalanceConditions(max_cre_per_rep=self.conditions.max_cre_per_rep),
            weights=CreBalanceWeights(cre_weight=self.weights.cre_weight),
        )


RuleModel = Annotated[
    Union[
        GeoFirstRuleModel,
        ContinuityRuleModel,
        SmartBalanceRuleModel,
        TierBalanceRuleModel,
        CreBalanceRuleModel,
    ],
    Field(discriminator="rule_type"),
]

_rules_adapter = TypeAdapter(list[RuleModel])

DEFAULT_RULES: list[dict[str, Any]] = [
    {"name": "Geography first", "rule_type": "GEO_FIRST", "priority": 1},
    {"name": "Keep current owner", "rule_type": "CONTINUITY", "priority": 2},
    {"name": "Balance ARR", "rule_type": "SMART_BALANCE", "priority": 3},
    {"name": "Balance CRE", "rule_type": "CRE_BALANCE", "priority": 4},
    {"name": "Balance tiers", "rule_type": "TIER_BALANCE", "priority": 5},
]


def load_rules(raw: list[dict[str, Any]]) -> RuleSet:
    """Validate raw rule dicts into a RuleSet.

    Raises:
        ConfigurationError: unsupported rule type, malformed conditions or
            duplicate rule names.
    """
    try:
        models = _rules_adapter.validate_python(raw)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid rule configuration: {e}") from e

    names = [m.name for m in models]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise ConfigurationError(f"Duplicate rule names: {', '.join(duplicates)}")

    rules: list[AssignmentRule] = [m.to_domain() for m in models]
    logger.info("Loaded %d assignment rules (%d enabled)", len(rules), len([r for r in rules if r.enabled]))
    return RuleSet(rules)


def load_rules_file(path: str | Path) -> RuleSet:
    """Read a JSON list of rules from *path*."""
    path = Path(path)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot read rules from {path}: {e}") from e
    if not isinstance(raw, list):
        raise ConfigurationError(f"Rules file {path} must contain a JSON list")
    return load_rules(raw)


def default_rules() -> RuleSet:
    return load_rules(DEFAULT_RULES)
