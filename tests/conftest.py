"""Pytest configuration and shared fixtures."""

import pytest

from assignment_engine.domain.value_objects.capacity_limits import CapacityLimits
from assignment_engine.domain.value_objects.territory_map import TerritoryMap
from assignment_engine.rule_config import default_rules


@pytest.fixture
def limits():
    # Customer hard cap 1.1M (target 1M + 10%), prospect hard cap 550K
    return CapacityLimits(
        customer_target_arr=1_000_000,
        customer_max_arr=1_200_000,
        prospect_target_arr=500_000,
        prospect_max_arr=600_000,
        capacity_variance_percent=10.0,
        max_cre_per_rep=3,
        max_tier1_per_rep=5,
        max_tier2_per_rep=8,
    )


@pytest.fixture
def territory_map():
    return TerritoryMap({"Pacific NW": "West", "California": "West", "New England": "East"})


@pytest.fixture
def rules():
    return default_rules()
