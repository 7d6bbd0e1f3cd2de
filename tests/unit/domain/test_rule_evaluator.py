"""Tests for the RuleEvaluator placement waterfall."""

from assignment_engine.domain.entities.account import Account
from assignment_engine.domain.entities.assignment_rule import ContinuityRule, RuleSet
from assignment_engine.domain.entities.sales_rep import SalesRep
from assignment_engine.domain.policies.balance_optimizer import BalanceOptimizer, BalanceTargets
from assignment_engine.domain.policies.capacity_tracker import CapacityTracker
from assignment_engine.domain.policies.confidence_scorer import score_confidence
from assignment_engine.domain.policies.rule_evaluator import RuleEvaluator
from assignment_engine.domain.value_objects.capacity_limits import AccountLoad, CapacityLimits
from assignment_engine.domain.value_objects.enums import Confidence, RuleApplied, Severity, WarningType
from assignment_engine.rule_config import default_rules


def _rep(rep_id: str, region: str = "West", **kwargs) -> SalesRep:
    return SalesRep(rep_id=rep_id, name=f"Rep {rep_id}", region=region, **kwargs)


def _account(account_id: str = "X", arr: float = 100_000, territory: str = "Pacific NW", owner: str | None = None, **kwargs) -> Account:
    return Account(
        account_id=account_id, name=f"Account {account_id}", arr=arr,
        territory=territory, current_owner_id=owner, current_owner_name=owner, **kwargs,
    )


def _evaluator(limits, territory_map, reps, rules=None, tolerance=0.0):
    tracker = CapacityTracker(limits)
    tracker.initialize(reps)
    rules = rules if rules is not None else default_rules()
    optimizer = BalanceOptimizer(rules, BalanceTargets())
    return RuleEvaluator(reps, rules, territory_map, tracker, optimizer, tolerance), tracker


def _types(decision) -> set[WarningType]:
    return {w.type for w in decision.warnings}


# ─── Scenarios ──────────────────────────────────────────────────────


def test_scenario_a_continuity_with_geography(limits, territory_map):
    evaluator, tracker = _evaluator(limits, territory_map, [_rep("R1"), _rep("R2")])
    tracker.commit("R1", AccountLoad(is_customer=True, arr=440_000))  # 40% of the 1.1M cap

    decision = evaluator.evaluate(_account(arr=500_000, owner="R1"))

    assert decision.rep_id == "R1"
    assert decision.rule_applied == RuleApplied.CONTINUITY_GEO
    assert decision.warnings == ()
    assert score_confidence(decision.warnings) == Confidence.HIGH


def _scenario_b_limits():
    return CapacityLimits(
        customer_target_arr=2_000_000, customer_max_arr=2_500_000,
        prospect_target_arr=1_000_000, prospect_max_arr=1_500_000,
    )


def test_scenario_b_owner_full_falls_to_best_available(territory_map):
    evaluator, tracker = _evaluator(_scenario_b_limits(), territory_map, [_rep("R2"), _rep("R4", "East")])
    tracker.commit("R2", AccountLoad(is_customer=True, arr=2_500_000))

    decision = evaluator.evaluate(_account("Y", arr=1_200_000, owner="R2"))

    assert decision.rep_id == "R4"
    assert decision.rule_applied == RuleApplied.BEST_AVAILABLE
    assert WarningType.CROSS_REGION in _types(decision)
    assert WarningType.CONTINUITY_BROKEN in _types(decision)


def test_scenario_b_owner_full_same_region_rep(territory_map):
    evaluator, tracker = _evaluator(
        _scenario_b_limits(), territory_map, [_rep("R2"), _rep("R4", "East"), _rep("R5")],
    )
    tracker.commit("R2", AccountLoad(is_customer=True, arr=2_500_000))

    decision = evaluator.evaluate(_account("Y", arr=1_200_000, owner="R2"))

    assert decision.rep_id == "R5"
    assert decision.rule_applied == RuleApplied.GEOGRAPHY
    assert WarningType.CROSS_REGION not in _types(decision)


def test_scenario_d_cre_cap_skips_full_rep(limits, territory_map):
    evaluator, tracker = _evaluator(limits, territory_map, [_rep("R1"), _rep("R6")])
    for _ in range(3):
        tracker.commit("R1", AccountLoad(is_customer=True, arr=10_000, cre_accounts=1))

    decision = evaluator.evaluate(_account(owner="R1", cre_count=2))

    assert decision.rep_id == "R6"
    assert decision.rule_applied == RuleApplied.GEOGRAPHY


def test_scenario_d_cre_cap_leaves_account_unassigned(limits, territory_map):
    evaluator, tracker = _evaluator(limits, territory_map, [_rep("R1")])
    for _ in range(3):
        tracker.commit("R1", AccountLoad(is_customer=True, arr=10_000, cre_accounts=1))

    decision = evaluator.evaluate(_account(owner="R1", cre_count=1))

    assert decision.rep is None
    assert decision.rule_applied == RuleApplied.UNASSIGNED
    assert decision.warnings[0].type == WarningType.CAPACITY_EXCEEDED
    assert decision.warnings[0].severity == Severity.HIGH


# ─── Waterfall steps ────────────────────────────────────────────────


def test_geography_picks_most_headroom(limits, territory_map):
    evaluator, tracker = _evaluator(limits, territory_map, [_rep("R5"), _rep("R6"), _rep("R7", "East")])
    tracker.commit("R5", AccountLoad(is_customer=True, arr=300_000))

    decision = evaluator.evaluate(_account())

    assert decision.rep_id == "R6"
    assert decision.rule_applied == RuleApplied.GEOGRAPHY
    assert decision.warnings == ()


def test_unmapped_territory_keeps_owner_without_cross_region(limits, territory_map):
    evaluator, _ = _evaluator(limits, territory_map, [_rep("R1"), _rep("R2")])

    decision = evaluator.evaluate(_account(territory="Mars", owner="R1"))

    assert decision.rep_id == "R1"
    assert decision.rule_applied == RuleApplied.CONTINUITY_ANY_GEO
    assert decision.warnings == ()


def test_unmapped_territory_without_owner_is_best_available(limits, territory_map):
    evaluator, _ = _evaluator(limits, territory_map, [_rep("R1"), _rep("R2", "East")])

    decision = evaluator.evaluate(_account(territory=None))

    assert decision.rule_applied == RuleApplied.BEST_AVAILABLE
    assert decision.rep_id == "R1"
    assert decision.warnings == ()


def test_continuity_across_regions_warns(limits, territory_map):
    evaluator, _ = _evaluator(limits, territory_map, [_rep("R7", "East")])

    decision = evaluator.evaluate(_account(owner="R7"))

    assert decision.rep_id == "R7"
    assert decision.rule_applied == RuleApplied.CONTINUITY_ANY_GEO
    assert _types(decision) == {WarningType.CROSS_REGION}
    assert decision.warnings[0].severity == Severity.LOW


def test_cross_region_continuity_holds_when_continuity_rule_disabled(limits, territory_map):
    rules = RuleSet([ContinuityRule(name="off", priority=1, enabled=False)])
    evaluator, _ = _evaluator(limits, territory_map, [_rep("R7", "East"), _rep("R8", "East")], rules=rules)

    decision = evaluator.evaluate(_account(owner="R7"))

    assert decision.rep_id == "R7"
    assert decision.rule_applied == RuleApplied.CONTINUITY_ANY_GEO
    assert _types(decision) == {WarningType.CROSS_REGION}


def test_inactive_owner_is_replaced(limits, territory_map):
    evaluator, _ = _evaluator(limits, territory_map, [_rep("R1", is_active=False), _rep("R5")])

    decision = evaluator.evaluate(_account(owner="R1"))

    assert decision.rep_id == "R5"
    assert _types(decision) == {WarningType.CONTINUITY_BROKEN}


def test_managers_receive_no_new_accounts(limits, territory_map):
    evaluator, _ = _evaluator(limits, territory_map, [_rep("M1", is_manager=True), _rep("R5")])
    assert evaluator.evaluate(_account()).rep_id == "R5"


def test_managers_keep_their_accounts(limits, territory_map):
    evaluator, _ = _evaluator(limits, territory_map, [_rep("M1", is_manager=True), _rep("R5")])
    decision = evaluator.evaluate(_account(owner="M1"))
    assert decision.rep_id == "M1"
    assert decision.rule_applied == RuleApplied.CONTINUITY_GEO


def test_headroom_tolerance_hands_ties_to_optimizer(limits, territory_map):
    reps = [_rep("R5"), _rep("R6")]

    strict, tracker = _evaluator(limits, territory_map, reps, rules=RuleSet([]))
    tracker.commit("R5", AccountLoad(is_customer=True, arr=10_000))
    assert strict.evaluate(_account()).rep_id == "R6"

    tolerant, tracker = _evaluator(limits, territory_map, reps, rules=RuleSet([]), tolerance=50_000)
    tracker.commit("R5", AccountLoad(is_customer=True, arr=10_000))
    # Both within tolerance; with no balancing rules the rep id decides
    assert tolerant.evaluate(_account()).rep_id == "R5"


# ─── Strategic carve-out ────────────────────────────────────────────


def test_strategic_owner_keeps_account_without_caps(limits, territory_map):
    evaluator, _ = _evaluator(limits, territory_map, [_rep("S1", is_strategic_rep=True), _rep("R5")])

    decision = evaluator.evaluate(_account(arr=50_000_000, owner="S1"))

    assert decision.rep_id == "S1"
    assert decision.rule_applied == RuleApplied.STRATEGIC_CONTINUITY


def test_strategic_account_goes_to_lowest_loaded_strategic_rep(limits, territory_map):
    reps = [
        _rep("S1", is_strategic_rep=True, is_active=False),
        _rep("S2", is_strategic_rep=True),
        _rep("S3", is_strategic_rep=True),
        _rep("R5"),
    ]
    evaluator, tracker = _evaluator(limits, territory_map, reps)
    tracker.commit("S2", AccountLoad(is_customer=True, arr=5_000_000))

    decision = evaluator.evaluate(_account(owner="S1"))

    assert decision.rep_id == "S3"
    assert decision.rule_applied == RuleApplied.STRATEGIC_DISTRIBUTION


def test_strategic_overflow_when_pool_is_empty(limits, territory_map):
    reps = [_rep("S1", is_strategic_rep=True, include_in_assignments=False), _rep("R5")]
    evaluator, _ = _evaluator(limits, territory_map, reps)

    decision = evaluator.evaluate(_account(owner="S1"))

    assert decision.rep is None
    assert decision.warnings[0].type == WarningType.STRATEGIC_OVERFLOW
    assert decision.warnings[0].severity == Severity.HIGH


def test_normal_accounts_never_go_to_strategic_reps(limits, territory_map):
    evaluator, _ = _evaluator(limits, territory_map, [_rep("S1", is_strategic_rep=True)])
    assert evaluator.evaluate(_account()).rule_applied == RuleApplied.UNASSIGNED


# ─── Post-commit warnings ───────────────────────────────────────────


def test_tier_concentration_after_commit(limits, territory_map):
    evaluator, tracker = _evaluator(limits.with_overrides(max_tier2_per_rep=1), territory_map, [_rep("R5")])
    load = AccountLoad(is_customer=True, arr=10, tier2_accounts=1)
    tracker.commit("R5", load)
    assert evaluator.post_commit_warnings("R5", load) == []
    tracker.commit("R5", load)
    warnings = evaluator.post_commit_warnings("R5", load)
    assert [w.type for w in warnings] == [WarningType.TIER_CONCENTRATION]


def test_cre_risk_when_rep_reaches_cre_limit(limits, territory_map):
    evaluator, tracker = _evaluator(limits, territory_map, [_rep("R5")])
    load = AccountLoad(is_customer=True, arr=10, cre_accounts=1)
    for _ in range(3):
        tracker.commit("R5", load)
    assert [w.type for w in evaluator.post_commit_warnings("R5", load)] == [WarningType.CRE_RISK]


def test_evaluate_does_not_commit(limits, territory_map):
    evaluator, tracker = _evaluator(limits, territory_map, [_rep("R5")])
    evaluator.evaluate(_account(arr=400_000))
    assert tracker.load("R5").customer_arr == 0
