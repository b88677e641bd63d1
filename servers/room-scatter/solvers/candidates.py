"""Randomized candidate positions for a footprint inside a region."""

import logging
import random
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple

from models import Footprint, Region, RelaxationTier

logger = logging.getLogger("room-scatter.candidates")

# Clearance used at the FORCED tier; containment is still enforced.
FORCED_CLEARANCE = 0.01


@dataclass(frozen=True)
class SpawnArea:
    """Interval of valid pivot positions on X and Z."""
    min_x: float
    max_x: float
    min_z: float
    max_z: float


def effective_clearance(tier: RelaxationTier, clearance: float) -> float:
    if tier == RelaxationTier.STRICT:
        return clearance
    if tier == RelaxationTier.RELAXED:
        return clearance / 2
    return FORCED_CLEARANCE


def spawn_area(region: Region, footprint: Footprint, clearance: float) -> Optional[SpawnArea]:
    """Pivot positions that keep `footprint` inside the region inset by `clearance`.

    `footprint` is expressed relative to the pivot, so an off-center box
    shifts the interval. Returns None when the interval is empty on either
    axis, meaning the region is too small for this footprint at this
    clearance.
    """
    ext, off = footprint.extents, footprint.center
    min_x = region.min.x + ext.x + clearance - off.x
    max_x = region.max.x - ext.x - clearance - off.x
    min_z = region.min.z + ext.z + clearance - off.z
    max_z = region.max.z - ext.z - clearance - off.z
    if min_x >= max_x or min_z >= max_z:
        return None
    return SpawnArea(min_x, max_x, min_z, max_z)


def iter_candidates(
    area: SpawnArea,
    region: Region,
    rng: random.Random,
    samples: int,
) -> Iterator[Tuple[float, float]]:
    """Yield `samples` uniform draws from `area`, then the region's center."""
    for _ in range(samples):
        yield rng.uniform(area.min_x, area.max_x), rng.uniform(area.min_z, area.max_z)
    center = region.center
    yield center.x, center.z
