"""Tests for before/after book quality metrics."""

import pytest

from assignment_engine.domain.entities.account import Account
from assignment_engine.domain.entities.sales_rep import SalesRep
from assignment_engine.domain.policies.quality_metrics import (
    DistributionStats,
    calculate_quality,
    compare_quality,
)
from assignment_engine.domain.value_objects.enums import Severity


def _account(account_id, arr=200_000, owner="R1", territory="Pacific NW", **kwargs):
    return Account(
        account_id=account_id,
        name=f"Account {account_id}",
        arr=arr,
        territory=territory,
        current_owner_id=owner,
        current_owner_name=f"Rep {owner}" if owner else None,
        **kwargs,
    )


@pytest.fixture
def reps():
    return [
        SalesRep(rep_id="R1", name="Rep R1", region="West"),
        SalesRep(rep_id="R2", name="Rep R2", region="West"),
        SalesRep(rep_id="S1", name="Rep S1", is_strategic_rep=True),
        SalesRep(rep_id="OFF", name="Rep OFF", region="West", is_active=False),
    ]


def _current(account):
    return account.current_owner_id


def _proposed(account):
    return account.proposed_owner_id


def test_distribution_stats_use_population_deviation():
    stats = DistributionStats.from_values([100.0, 300.0])

    assert stats.mean == 200.0
    assert stats.std_dev == 100.0
    assert stats.cv == 0.5
    assert stats.spread == 200.0


def test_distribution_stats_of_zeros_and_nothing():
    assert DistributionStats.from_values([0.0, 0.0]).cv == 0.0
    assert DistributionStats.from_values([]) == DistributionStats()


def test_balancing_a_lopsided_book(reps, territory_map, limits):
    accounts = [_account("A", owner="R1"), _account("B", owner="R1")]
    accounts[0].proposed_owner_id = "R1"
    accounts[1].proposed_owner_id = "R2"

    before = calculate_quality(accounts, reps, territory_map, limits, _current)
    after = calculate_quality(accounts, reps, territory_map, limits, _proposed)

    assert before.arr.cv == 1.0
    assert before.distribution_score == 50
    assert before.compliance_score == 100
    assert before.overall_score == 80
    assert [w.metric for w in before.warnings] == ["arr_cv"]
    assert before.warnings[0].severity == Severity.HIGH

    assert after.arr.cv == 0.0
    assert after.continuity_rate == 0.5
    assert after.compliance_score == 80
    assert after.overall_score == 93
    assert after.warnings == []

    comparison = compare_quality(before, after)
    improved = {c.metric: c.improved for c in comparison.changes}
    assert improved == {
        "ARR CV": True,
        "CRE CV": False,
        "Distribution Score": True,
        "Compliance Score": False,
        "Overall Score": True,
    }
    assert comparison.overall_improvement == 20


def test_cre_concentration_zeroes_risk_score(reps, territory_map, limits):
    accounts = [_account(f"C{i}", arr=10_000, cre_count=1) for i in range(4)]

    metrics = calculate_quality(accounts, reps, territory_map, limits, _current)

    assert metrics.reps_over_cre_limit == 1
    assert metrics.risk_score == 0
    cre_warning = next(w for w in metrics.warnings if w.metric == "reps_over_cre_limit")
    assert cre_warning.severity == Severity.HIGH
    assert cre_warning.affected_reps == ("Rep R1",)


def test_compliance_rates(reps, territory_map, limits):
    accounts = [
        _account("STRAT", owner="S1"),
        _account("P", owner="R1", is_parent=True),
        _account("C", owner="R1", ultimate_parent_id="P"),
        _account("FAR", owner="R2", territory="New England"),
    ]
    for account, proposed in zip(accounts, ["R1", "R1", "R2", "R2"]):
        account.proposed_owner_id = proposed

    metrics = calculate_quality(accounts, reps, territory_map, limits, _proposed)

    assert metrics.strategic_compliance == 0.0
    assert metrics.parent_child_alignment == 0.0
    assert metrics.continuity_rate == 0.5
    assert metrics.geography_match_rate == 0.75


def test_renewal_balance_reports_worst_quarter(reps, territory_map, limits):
    accounts = [
        _account("Q1A", renewal_quarter="Q1"),
        _account("Q1B", owner="R2", renewal_quarter="Q1"),
        _account("Q2", renewal_quarter="Q2"),
    ]

    metrics = calculate_quality(accounts, reps, territory_map, limits, _current)

    assert metrics.renewal_cv_by_quarter[1] == 0.0
    assert metrics.renewal_cv_by_quarter[2] == 1.0
    assert metrics.worst_quarter_cv == 1.0
    assert metrics.as_dict()["worst_quarter_cv"] == 1.0


def test_quality_needs_a_normal_rep(territory_map, limits):
    with pytest.raises(ValueError):
        calculate_quality(
            [_account("A", owner="S1")],
            [SalesRep(rep_id="S1", name="Rep S1", is_strategic_rep=True)],
            territory_map,
            limits,
            _current,
        )
