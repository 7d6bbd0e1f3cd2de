import json

import pytest

from assignment_engine.domain.entities.assignment_rule import ContinuityRule, CreBalanceRule
from assignment_engine.domain.errors import ConfigurationError
from assignment_engine.domain.value_objects.enums import AccountScope, RuleType
from assignment_engine.rule_config import default_rules, load_rules, load_rules_file


def test_default_rules_in_priority_order():
    rules = default_rules()
    assert rules.priority_order() == [
        RuleType.GEO_FIRST,
        RuleType.CONTINUITY,
        RuleType.SMART_BALANCE,
        RuleType.CRE_BALANCE,
        RuleType.TIER_BALANCE,
    ]


def test_typed_conditions_are_loaded():
    rules = load_rules(
        [
            {
                "name": "Customers keep owners",
                "rule_type": "CONTINUITY",
                "priority": 1,
                "account_scope": "customers",
            },
            {
                "name": "CRE",
                "rule_type": "CRE_BALANCE",
                "priority": 2,
                "conditions": {"max_cre_per_rep": 2},
                "weights": {"cre_weight": 0.5},
            },
        ]
    )
    continuity, cre = list(rules)
    assert isinstance(continuity, ContinuityRule)
    assert continuity.account_scope == AccountScope.CUSTOMERS
    assert continuity.applies_to(is_customer=False) is False
    assert isinstance(cre, CreBalanceRule)
    assert cre.conditions.max_cre_per_rep == 2
    assert cre.weights.cre_weight == 0.5


@pytest.mark.parametrize(
    "raw",
    [
        [{"name": "x", "rule_type": "ROUND_ROBIN", "priority": 1}],
        [{"name": "x", "rule_type": "CONTINUITY", "priority": 1, "conditions": {"allow_cross_region": False}}],
        [{"name": "x", "rule_type": "SMART_BALANCE", "priority": 1, "weights": {"arr_weight": -1}}],
        [{"name": "x", "rule_type": "GEO_FIRST", "priority": 0}],
        [{"name": "", "rule_type": "GEO_FIRST", "priority": 1}],
    ],
)
def test_invalid_rules_are_rejected(raw):
    with pytest.raises(ConfigurationError):
        load_rules(raw)


def test_duplicate_names_are_rejected():
    raw = [
        {"name": "dup", "rule_type": "GEO_FIRST", "priority": 1},
        {"name": "dup", "rule_type": "CONTINUITY", "priority": 2},
    ]
    with pytest.raises(ConfigurationError, match="dup"):
        load_rules(raw)


def test_disabled_rules_are_skipped():
    rules = load_rules([{"name": "off", "rule_type": "SMART_BALANCE", "priority": 1, "enabled": False}])
    assert rules.first(RuleType.SMART_BALANCE) is None
    assert len(rules) == 1


def test_load_rules_file(tmp_path):
    path = tmp_path / "rules.json"
    path.write_text(json.dumps([{"name": "geo", "rule_type": "GEO_FIRST", "priority": 1}]))
    assert len(load_rules_file(path)) == 1


def test_load_rules_file_rejects_non_list(tmp_path):
    path = tmp_path / "rules.json"
    path.write_text(json.dumps({"name": "geo"}))
    with pytest.raises(ConfigurationError):
        load_rules_file(path)


def test_load_rules_file_missing(tmp_path):
    with pytest.raises(ConfigurationError):
        load_rules_file(tmp_path / "nope.json")
