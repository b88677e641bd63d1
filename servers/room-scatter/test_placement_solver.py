"""Tests for the tiered placement executor."""

import math
import random

from conftest import ScriptedScene, make_category, make_region
from models import Category, RelaxationTier
from solvers.placement_solver import PlacementExecutor
from solvers.planner import EARLY_STOP_FRACTION
from solvers.validation import TOLERANCE, required_separation, validate_ledger
from state import Ledger


def make_executor(scene, config, ledger=None, **kwargs):
    return PlacementExecutor(scene, scene, ledger or Ledger(), config, **kwargs)


def assert_pairwise_separation(ledger):
    items = ledger.items
    for i, earlier in enumerate(items):
        for later in items[i + 1:]:
            a, b = earlier.exact_footprint, later.exact_footprint
            dist = math.hypot(a.center.x - b.center.x, a.center.z - b.center.z)
            assert dist >= required_separation(a, b, later.clearance) - TOLERANCE, (earlier.id, later.id)


def test_unit_boxes_fill_four_by_four_floor(config_factory):
    scene = ScriptedScene()
    config = config_factory([make_category(clearance=0.2, min_count=0, max_count=20)])
    executor = make_executor(scene, config)
    summary = executor.run(make_region())

    result = summary.categories[0]
    assert result.adjusted_max == 11
    assert 0 <= result.target <= 11
    assert result.spawned == len(executor.ledger)
    assert result.attempts <= result.budget
    assert validate_ledger(executor.ledger, make_region())["valid"]
    assert_pairwise_separation(executor.ledger)

    strict = [i for i in executor.ledger if i.tier == RelaxationTier.STRICT]
    for i, a in enumerate(strict):
        for b in strict[i + 1:]:
            pa, pb = a.exact_footprint.center, b.exact_footprint.center
            assert math.hypot(pa.x - pb.x, pa.z - pb.z) >= 1.2 - TOLERANCE


def test_minimum_met_in_roomy_region(config_factory):
    scene = ScriptedScene()
    config = config_factory([make_category(min_count=5, max_count=5)])
    summary = make_executor(scene, config).run(make_region(x1=10, z1=10))
    assert summary.categories[0].status == "complete"
    assert summary.spawned == 5
    assert len(scene.live) == 5


def test_region_too_small_places_nothing(config_factory):
    scene = ScriptedScene()
    config = config_factory([make_category(clearance=0.2, min_count=2)])
    executor = make_executor(scene, config)
    summary = executor.run(make_region(x1=0.5, z1=0.5))
    assert summary.categories[0].status == "infeasible"
    assert summary.spawned == 0
    assert scene.creates == 0
    assert len(executor.ledger) == 0


def test_two_categories_share_the_floor(config_factory):
    scene = ScriptedScene()
    config = config_factory([
        make_category("crates", size=(1.0, 1.0, 1.0), min_count=3, max_count=6, clearance=0.3),
        make_category("barrels", size=(0.6, 1.2, 0.6), min_count=3, max_count=6, clearance=0.1),
    ])
    executor = make_executor(scene, config)
    region = make_region(x1=6, z1=6)
    summary = executor.run(region)

    assert [c.category_id for c in summary.categories] == ["crates", "barrels"]
    assert set(executor.ledger.count_by_category()) <= {"crates", "barrels"}
    assert_pairwise_separation(executor.ledger)
    assert validate_ledger(executor.ledger, region)["valid"]


def test_items_rest_on_raised_floor(config_factory):
    scene = ScriptedScene()
    config = config_factory([make_category(min_count=3, max_count=3)])
    executor = make_executor(scene, config)
    region = make_region(x1=8, z1=8, floor_y=1.25)
    executor.run(region)
    for item in executor.ledger:
        assert abs(item.exact_footprint.min.y - 1.25) < 1e-6
        assert item.position.y == 1.75


def test_empty_category_skipped(config_factory):
    scene = ScriptedScene()
    config = config_factory([Category(id="empty", items=[], min_count=1, max_count=3)])
    summary = make_executor(scene, config).run(make_region())
    assert summary.categories[0].status == "skipped"
    assert scene.creates == 0


def test_instantiation_failures_end_each_attempt(config_factory):
    scene = ScriptedScene(fail_create=True)
    config = config_factory([make_category(min_count=3, max_count=3)])
    executor = make_executor(scene, config)
    result = executor.run(make_region(x1=10, z1=10)).categories[0]

    assert result.status == "partial"
    assert result.spawned == 0
    assert result.instantiation_errors == result.attempts
    assert result.budget == 120
    assert result.attempts == int(result.budget * EARLY_STOP_FRACTION) + 1
    assert len(executor.ledger) == 0


def test_exact_failures_roll_back_instances(config_factory):
    scene = ScriptedScene(exact_shift=50.0)
    config = config_factory([make_category(min_count=2, max_count=2)])
    executor = make_executor(scene, config)
    result = executor.run(make_region()).categories[0]

    assert result.spawned == 0
    assert result.rejected_exact > 0
    assert scene.live == {}
    assert scene.creates == len([e for e in scene.events if e[0] == "destroy"])


def test_tight_region_falls_through_to_forced_tier(config_factory):
    scene = ScriptedScene()
    config = config_factory(
        [make_category(min_count=1, max_count=1, clearance=0.5)],
        random_orientation=False,
        average_radius=0.5,
    )
    executor = make_executor(scene, config)
    result = executor.run(make_region(x1=1.2, z1=1.2)).categories[0]

    assert result.spawned == 1
    item = executor.ledger.items[0]
    assert item.tier == RelaxationTier.FORCED
    assert item.clearance == 0.01
    assert item.id == "crates_001"


def test_superseded_run_commits_nothing(config_factory):
    scene = ScriptedScene()
    config = config_factory([make_category(min_count=2, max_count=2)])
    executor = make_executor(scene, config, is_current=lambda: False)
    summary = executor.run(make_region())
    assert summary.categories[0].status == "superseded"
    assert len(executor.ledger) == 0


def test_estimates_are_memoized(config_factory):
    calls = []

    class CountingScene(ScriptedScene):
        def estimate_footprint(self, template):
            calls.append(template.id)
            return super().estimate_footprint(template)

    scene = CountingScene()
    config = config_factory([make_category(min_count=4, max_count=4, n_items=2)])
    make_executor(scene, config).run(make_region(x1=10, z1=10))
    assert sorted(calls) == ["crates_item0", "crates_item1"]


def test_same_seed_same_layout(config_factory):
    def layout():
        scene = ScriptedScene()
        config = config_factory([make_category(min_count=4, max_count=8)])
        executor = make_executor(scene, config, rng=random.Random(7))
        executor.run(make_region(x1=8, z1=8))
        return [(i.template_id, i.position, i.orientation) for i in executor.ledger]

    assert layout() == layout()


def test_region_too_tight_for_strict_commits_relaxed(config_factory):
    scene = ScriptedScene()
    config = config_factory(
        [make_category(min_count=1, max_count=1, clearance=0.2)],
        random_orientation=False,
        average_radius=0.5,
    )
    executor = make_executor(scene, config)
    result = executor.run(make_region(x1=1.3, z1=1.3)).categories[0]

    assert result.spawned == 1
    item = executor.ledger.items[0]
    assert item.tier == RelaxationTier.RELAXED
    assert item.clearance == 0.1


def test_commit_reuses_aligned_position(config_factory):
    class CountingScene(ScriptedScene):
        position_reads = 0

        def get_position(self, handle):
            self.position_reads += 1
            return super().get_position(handle)

    scene = CountingScene()
    config = config_factory([make_category(min_count=3, max_count=3)])
    executor = make_executor(scene, config)
    executor.run(make_region(x1=8, z1=8))

    assert len(executor.ledger) == 3
    assert scene.position_reads == scene.creates
    for item in executor.ledger:
        assert item.position == scene.live[executor.ledger.handle_for(item.id).name].position


def test_position_read_failure_destroys_instance(config_factory):
    class BrokenPositionScene(ScriptedScene):
        def get_position(self, handle):
            raise RuntimeError("transform unavailable")

    scene = BrokenPositionScene()
    config = config_factory([make_category(min_count=2, max_count=2)])
    executor = make_executor(scene, config)
    result = executor.run(make_region(x1=8, z1=8)).categories[0]

    assert result.spawned == 0
    assert result.instantiation_errors == result.attempts
    assert scene.live == {}
    assert len(executor.ledger) == 0
