"""Tests for target count planning."""

import random

import pytest

from conftest import make_category, make_region
from models import Footprint, SpawnerConfig, Vec3
from solvers.planner import (
    DEFAULT_AVERAGE_RADIUS, adjusted_max, attempt_budget, measured_radius,
    plan_target_count, theoretical_capacity,
)

UNIT = Footprint(center=Vec3(0, 0, 0), extents=Vec3(0.5, 0.5, 0.5))


def test_capacity_of_four_by_four_floor():
    region = make_region()
    assert theoretical_capacity(region, 0.6) == 11
    assert theoretical_capacity(region, 0.5) == 16
    assert theoretical_capacity(region, 0.0) == 0


def test_measured_radius_adds_clearance():
    assert measured_radius([UNIT], 0.2) == pytest.approx(0.6)
    wide = Footprint(center=Vec3(0, 0, 0), extents=Vec3(1.0, 0.5, 0.25))
    assert measured_radius([UNIT, wide], 0.0) == pytest.approx((0.5 + 1.0) / 2)
    assert measured_radius([], 0.2) is None


def test_unit_boxes_on_four_by_four_floor():
    region = make_region()
    category = make_category(clearance=0.2, min_count=0, max_count=20)
    config = SpawnerConfig(categories=[category])
    for seed in range(25):
        plan = plan_target_count(region, category, config, random.Random(seed), estimates=[UNIT])
        assert plan.adjusted_max == 11
        assert 0 <= plan.target <= 11


def test_region_smaller_than_any_footprint():
    region = make_region(x1=0.5, z1=0.5)
    category = make_category(clearance=0.2, min_count=3, max_count=20)
    plan = plan_target_count(region, category, SpawnerConfig(categories=[category]),
                             random.Random(0), estimates=[UNIT])
    assert plan.adjusted_max == 0
    assert plan.target == 0


def test_minimum_collapses_to_adjusted_max():
    region = make_region(x1=2.0, z1=2.0)
    category = make_category(clearance=0.0, min_count=10, max_count=20)
    config = SpawnerConfig(categories=[category])
    plan = plan_target_count(region, category, config, random.Random(0), estimates=[UNIT])
    assert plan.adjusted_max == 4
    assert plan.target == 4


def test_target_within_configured_range():
    region = make_region(x1=20.0, z1=20.0)
    category = make_category(min_count=3, max_count=6)
    config = SpawnerConfig(categories=[category])
    seen = set()
    for seed in range(60):
        plan = plan_target_count(region, category, config, random.Random(seed), estimates=[UNIT])
        assert 3 <= plan.target <= 6
        seen.add(plan.target)
    assert len(seen) > 1


def test_absolute_cap_bounds_adjusted_max():
    region = make_region(x1=100.0, z1=100.0)
    category = make_category(min_count=0, max_count=500)
    assert adjusted_max(region, category, 0.5, absolute_cap=100) == 100
    assert adjusted_max(region, category, 0.5, absolute_cap=7) == 7


def test_configured_radius_overrides_measurement():
    region = make_region()
    category = make_category(clearance=0.2, max_count=50)
    config = SpawnerConfig(categories=[category], average_radius=1.0)
    plan = plan_target_count(region, category, config, random.Random(0), estimates=[UNIT])
    assert plan.radius == 1.0
    assert plan.adjusted_max == 4


def test_default_radius_without_estimates():
    region = make_region()
    category = make_category(max_count=50)
    plan = plan_target_count(region, category, SpawnerConfig(categories=[category]), random.Random(0))
    assert plan.radius == DEFAULT_AVERAGE_RADIUS
    assert plan.adjusted_max == 16


def test_attempt_budget():
    assert attempt_budget(5, 20) == 200
    assert attempt_budget(0, 20) == 0
