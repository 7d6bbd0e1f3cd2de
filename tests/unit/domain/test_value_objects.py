"""Tests for capacity and territory value objects."""

from assignment_engine.domain.value_objects.capacity_limits import AccountLoad, CapacityLimits
from assignment_engine.domain.value_objects.territory_map import TerritoryMap, same_region


def test_hard_cap_is_the_smaller_cap(limits):
    assert limits.variance_cap(is_customer=True) == 1_100_000
    assert limits.hard_cap(is_customer=True) == 1_100_000


def test_hard_cap_when_max_is_lower():
    limits = CapacityLimits(
        customer_target_arr=1_000_000, customer_max_arr=1_050_000,
        prospect_target_arr=0, prospect_max_arr=0, capacity_variance_percent=20,
    )
    assert limits.hard_cap(is_customer=True) == 1_050_000


def test_with_overrides_keeps_unset_values(limits):
    changed = limits.with_overrides(max_cre_per_rep=1)
    assert changed.max_cre_per_rep == 1
    assert changed.max_tier1_per_rep == limits.max_tier1_per_rep
    assert limits.with_overrides() is limits


def test_account_load_combine():
    a = AccountLoad(is_customer=True, arr=100, cre_accounts=1, renewals_by_quarter={1: 1})
    b = AccountLoad(is_customer=True, arr=50, tier1_accounts=1, renewals_by_quarter={1: 1, 3: 1})
    combined = a.combine(b)
    assert combined.arr == 150
    assert combined.account_count == 2
    assert combined.cre_accounts == 1
    assert combined.tier1_accounts == 1
    assert combined.renewals_by_quarter == {1: 2, 3: 1}


def test_territory_map_unmapped_is_none():
    tm = TerritoryMap({"Pacific NW": "West"})
    assert tm.region_for(" pacific nw ") == "West"
    assert tm.region_for("Mars") is None
    assert tm.region_for(None) is None


def test_territory_map_merged_self_wins():
    tm = TerritoryMap({"Texas": "South"}).merged({"texas": "Central", "Ohio": "East"})
    assert tm.region_for("Texas") == "South"
    assert tm.region_for("Ohio") == "East"


def test_same_region_is_case_insensitive():
    assert same_region("West", " west")
    assert not same_region("West", "East")
    assert not same_region(None, "West")
