"""Data models for room scatter placement.

Y is the vertical axis; X and Z span the floor plane.
"""

import enum
import json
import math
from dataclasses import dataclass, field, asdict
from typing import List, Optional


@dataclass(frozen=True)
class Vec3:
    """Represents a 3D coordinate point or vector."""
    x: float
    y: float
    z: float

    def __add__(self, other: "Vec3") -> "Vec3":
        return Vec3(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other: "Vec3") -> "Vec3":
        return Vec3(self.x - other.x, self.y - other.y, self.z - other.z)

    def as_list(self) -> List[float]:
        return [self.x, self.y, self.z]


@dataclass(frozen=True)
class Region:
    """Axis-aligned floor area and the elevation of its floor plane."""
    min: Vec3
    max: Vec3
    floor_y: float

    def __post_init__(self):
        if not (self.min.x < self.max.x and self.min.z < self.max.z):
            raise ValueError(
                f"Region bounds are degenerate: min={self.min} max={self.max}"
            )

    @property
    def width(self) -> float:
        return self.max.x - self.min.x

    @property
    def depth(self) -> float:
        return self.max.z - self.min.z

    @property
    def floor_area(self) -> float:
        return self.width * self.depth

    @property
    def center(self) -> Vec3:
        return Vec3(
            (self.min.x + self.max.x) / 2,
            (self.min.y + self.max.y) / 2,
            (self.min.z + self.max.z) / 2,
        )


@dataclass(frozen=True)
class Footprint:
    """Axis-aligned bounding box given by its center and half-size."""
    center: Vec3
    extents: Vec3

    @classmethod
    def from_bounds(cls, lo: Vec3, hi: Vec3) -> "Footprint":
        return cls(
            center=Vec3((lo.x + hi.x) / 2, (lo.y + hi.y) / 2, (lo.z + hi.z) / 2),
            extents=Vec3((hi.x - lo.x) / 2, (hi.y - lo.y) / 2, (hi.z - lo.z) / 2),
        )

    @property
    def min(self) -> Vec3:
        return self.center - self.extents

    @property
    def max(self) -> Vec3:
        return self.center + self.extents

    @property
    def size(self) -> Vec3:
        return Vec3(self.extents.x * 2, self.extents.y * 2, self.extents.z * 2)

    def translated(self, offset: Vec3) -> "Footprint":
        return Footprint(center=self.center + offset, extents=self.extents)

    def rotated_y(self, degrees: float) -> "Footprint":
        """AABB of this box after a rotation about the vertical axis through the origin."""
        if degrees % 360 == 0:
            return self
        rad = math.radians(degrees)
        c, s = math.cos(rad), math.sin(rad)
        lo, hi = self.min, self.max
        xs, zs = [], []
        for x in (lo.x, hi.x):
            for z in (lo.z, hi.z):
                xs.append(x * c + z * s)
                zs.append(-x * s + z * c)
        return Footprint.from_bounds(
            Vec3(min(xs), lo.y, min(zs)),
            Vec3(max(xs), hi.y, max(zs)),
        )

    def is_degenerate(self) -> bool:
        """True when the box covers no area on the floor plane."""
        return self.extents.x <= 0 or self.extents.z <= 0


class RelaxationTier(enum.IntEnum):
    """Progressively looser clearance policies, tried in order."""
    STRICT = 0
    RELAXED = 1
    FORCED = 2


@dataclass
class ItemTemplate:
    """Something a category can place: a box of `size` or a mesh file."""
    id: str
    size: Vec3 = Vec3(0.5, 0.5, 0.5)
    pivot: str = "center"  # "center" or "bottom"
    mesh_path: Optional[str] = None

    def __post_init__(self):
        if self.pivot not in ("center", "bottom"):
            raise ValueError(f"Unknown pivot '{self.pivot}' for item {self.id}")


@dataclass
class Category:
    """A weighted group of item templates with a count range and clearance."""
    id: str
    items: List[ItemTemplate]
    min_count: int = 0
    max_count: int = 10
    clearance: float = 0.2

    def __post_init__(self):
        if self.min_count < 0:
            raise ValueError(f"Category {self.id}: min_count must be >= 0")
        if self.max_count < self.min_count:
            raise ValueError(f"Category {self.id}: max_count must be >= min_count")
        if self.clearance < 0:
            raise ValueError(f"Category {self.id}: clearance must be >= 0")


@dataclass(frozen=True)
class PlacedItem:
    """An object committed to the ledger."""
    id: str
    category_id: str
    template_id: str
    position: Vec3
    orientation: float  # degrees about the vertical axis
    exact_footprint: Footprint
    tier: RelaxationTier
    clearance: float  # effective clearance the item was validated with


@dataclass
class SpawnerConfig:
    """Validated spawner configuration."""
    categories: List[Category] = field(default_factory=list)
    per_item_attempt_cap: int = 20
    absolute_cap: int = 100
    average_radius: Optional[float] = None  # None: measure from footprint estimates
    samples_per_tier: int = 10
    random_orientation: bool = True
    debug_visualization: bool = False
    seed: Optional[int] = None

    def __post_init__(self):
        if self.per_item_attempt_cap < 1:
            raise ValueError("per_item_attempt_cap must be >= 1")
        if self.absolute_cap < 0:
            raise ValueError("absolute_cap must be >= 0")
        if self.average_radius is not None and self.average_radius <= 0:
            raise ValueError("average_radius must be > 0")
        if self.samples_per_tier < 0:
            raise ValueError("samples_per_tier must be >= 0")
        ids = [c.id for c in self.categories]
        if len(ids) != len(set(ids)):
            raise ValueError(f"Duplicate category ids: {ids}")
        # Footprint estimates and meshes are cached by template id
        templates = {}
        for category in self.categories:
            for item in category.items:
                if templates.setdefault(item.id, item) != item:
                    raise ValueError(f"Template id '{item.id}' is defined twice with different geometry")


@dataclass
class CategoryResult:
    """Outcome of one category's placement loop."""
    category_id: str
    status: str  # "complete", "partial", "skipped", "infeasible", "superseded"
    target: int = 0
    adjusted_max: int = 0
    spawned: int = 0
    attempts: int = 0
    budget: int = 0
    rejected_estimate: int = 0
    rejected_exact: int = 0
    instantiation_errors: int = 0


@dataclass
class RunSummary:
    """Partial-success report for one placement run."""
    run_id: int
    categories: List[CategoryResult] = field(default_factory=list)

    @property
    def spawned(self) -> int:
        return sum(c.spawned for c in self.categories)

    @property
    def target(self) -> int:
        return sum(c.target for c in self.categories)


def vec3_to_dict(v: Vec3) -> dict:
    return {"x": v.x, "y": v.y, "z": v.z}


def footprint_to_dict(fp: Footprint) -> dict:
    return {
        "center": vec3_to_dict(fp.center),
        "extents": vec3_to_dict(fp.extents),
        "min": vec3_to_dict(fp.min),
        "max": vec3_to_dict(fp.max),
    }


def placed_item_to_dict(item: PlacedItem) -> dict:
    return {
        "id": item.id,
        "category_id": item.category_id,
        "template_id": item.template_id,
        "position": vec3_to_dict(item.position),
        "orientation": item.orientation,
        "exact_footprint": footprint_to_dict(item.exact_footprint),
        "tier": item.tier.name.lower(),
        "clearance": item.clearance,
    }


def region_to_dict(region: Region) -> dict:
    return {
        "min": vec3_to_dict(region.min),
        "max": vec3_to_dict(region.max),
        "floor_y": region.floor_y,
    }


def run_summary_to_dict(summary: RunSummary) -> dict:
    return {
        "run_id": summary.run_id,
        "spawned": summary.spawned,
        "target": summary.target,
        "categories": [asdict(c) for c in summary.categories],
    }


def run_summary_to_json(summary: RunSummary) -> str:
    return json.dumps(run_summary_to_dict(summary), indent=2)


def dict_to_vec3(d) -> Vec3:
    if isinstance(d, (list, tuple)):
        return Vec3(float(d[0]), float(d[1]), float(d[2]))
    return Vec3(x=d["x"], y=d.get("y", 0.0), z=d["z"])


def dict_to_region(d: dict) -> Region:
    lo = dict_to_vec3(d["min"])
    return Region(
        min=lo,
        max=dict_to_vec3(d["max"]),
        floor_y=d.get("floor_y", lo.y),
    )


def dict_to_item_template(d: dict) -> ItemTemplate:
    return ItemTemplate(
        id=d["id"],
        size=dict_to_vec3(d["size"]) if "size" in d else Vec3(0.5, 0.5, 0.5),
        pivot=d.get("pivot", "center"),
        mesh_path=d.get("mesh_path"),
    )


def dict_to_category(d: dict) -> Category:
    return Category(
        id=d["id"],
        items=[dict_to_item_template(i) for i in d.get("items", [])],
        min_count=d.get("min_count", 0),
        max_count=d.get("max_count", 10),
        clearance=d.get("clearance", 0.2),
    )


def dict_to_spawner_config(d: dict) -> SpawnerConfig:
    return SpawnerConfig(
        categories=[dict_to_category(c) for c in d.get("categories", [])],
        per_item_attempt_cap=d.get("per_item_attempt_cap", 20),
        absolute_cap=d.get("absolute_cap", 100),
        average_radius=d.get("average_radius"),
        samples_per_tier=d.get("samples_per_tier", 10),
        random_orientation=d.get("random_orientation", True),
        debug_visualization=d.get("debug_visualization", False),
        seed=d.get("seed"),
    )
