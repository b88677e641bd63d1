"""Per-category target count planning.

The target is drawn from the configured [min_count, max_count] range after
clamping the maximum to what the floor can plausibly hold.
"""

import logging
import math
import random
from dataclasses import dataclass
from typing import Iterable, Optional

from models import Category, Footprint, Region, SpawnerConfig

logger = logging.getLogger("room-scatter.planner")

DEFAULT_AVERAGE_RADIUS = 0.5
EARLY_STOP_FRACTION = 0.8
ATTEMPT_MULTIPLIER = 2


@dataclass
class TargetPlan:
    target: int
    adjusted_max: int
    capacity: int
    radius: float


def theoretical_capacity(region: Region, radius: float) -> int:
    """How many objects of the given average radius tile the floor area."""
    footprint_area = (2 * radius) ** 2
    if footprint_area <= 0:
        return 0
    return max(0, math.floor(region.floor_area / footprint_area))


def measured_radius(estimates: Iterable[Footprint], clearance: float) -> Optional[float]:
    """Average half-width of the estimated footprints with the clearance added."""
    radii = [(max(fp.size.x, fp.size.z) + clearance) / 2 for fp in estimates]
    if not radii:
        return None
    return sum(radii) / len(radii)


def adjusted_max(region: Region, category: Category, radius: float, absolute_cap: int) -> int:
    capacity = theoretical_capacity(region, radius)
    return max(0, min(category.max_count, capacity, absolute_cap))


def plan_target_count(
    region: Region,
    category: Category,
    config: SpawnerConfig,
    rng: random.Random,
    estimates: Iterable[Footprint] = (),
) -> TargetPlan:
    """Draw the number of objects to place for a category.

    When the capacity-adjusted maximum is below the category minimum the
    target collapses to the adjusted maximum.
    """
    radius = config.average_radius
    if radius is None:
        radius = measured_radius(estimates, category.clearance) or DEFAULT_AVERAGE_RADIUS

    capacity = theoretical_capacity(region, radius)
    hi = adjusted_max(region, category, radius, config.absolute_cap)
    lo = min(category.min_count, hi)
    target = rng.randint(lo, hi)

    logger.debug(
        "Category %s: capacity=%d radius=%.3f adjusted_max=%d target=%d",
        category.id, capacity, radius, hi, target,
    )
    return TargetPlan(target=target, adjusted_max=hi, capacity=capacity, radius=radius)


def attempt_budget(target: int, per_item_attempt_cap: int) -> int:
    return target * per_item_attempt_cap * ATTEMPT_MULTIPLIER
