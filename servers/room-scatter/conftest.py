"""Shared fixtures for room-scatter tests."""

import os
import random
import sys
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

import pytest

# Add the server root to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from models import Category, Footprint, ItemTemplate, Region, SpawnerConfig, Vec3
from services.mesh_scene import MeshScene


def make_region(x0=0.0, z0=0.0, x1=4.0, z1=4.0, floor_y=0.0) -> Region:
    return Region(min=Vec3(x0, floor_y, z0), max=Vec3(x1, floor_y + 2.5, z1), floor_y=floor_y)


def make_category(cid="crates", size=(1.0, 1.0, 1.0), min_count=0, max_count=20,
                  clearance=0.2, pivot="center", n_items=1) -> Category:
    items = [
        ItemTemplate(id=f"{cid}_item{i}", size=Vec3(*size), pivot=pivot)
        for i in range(n_items)
    ]
    return Category(id=cid, items=items, min_count=min_count, max_count=max_count, clearance=clearance)


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def region():
    return make_region()


@pytest.fixture
def mesh_scene():
    return MeshScene()


@pytest.fixture
def config_factory():
    def _make(categories, **kwargs):
        kwargs.setdefault("seed", 42)
        return SpawnerConfig(categories=list(categories), **kwargs)
    return _make


@dataclass
class FakeHandle:
    name: str
    template: ItemTemplate
    position: Vec3
    orientation: float


class ScriptedScene:
    """Geometry provider + instantiation service with scriptable misbehaviour.

    Instances are boxes of the template size centered on the pivot, with no
    rotation applied. `exact_shift` offsets every exact measurement on X,
    `fail_create` makes create() raise, and `on_create` is called after each
    successful create with the running create count.
    """

    def __init__(self, exact_shift: float = 0.0, fail_create: bool = False,
                 on_create: Optional[Callable[[int], None]] = None):
        self.exact_shift = exact_shift
        self.fail_create = fail_create
        self.on_create = on_create
        self.live: Dict[str, FakeHandle] = {}
        self.events: List[tuple] = []
        self.creates = 0

    def estimate_footprint(self, template):
        s = template.size
        return Footprint(center=Vec3(0, 0, 0), extents=Vec3(s.x / 2, s.y / 2, s.z / 2))

    def measure_exact_footprint(self, handle):
        s = handle.template.size
        p = handle.position
        return Footprint(
            center=Vec3(p.x + self.exact_shift, p.y, p.z),
            extents=Vec3(s.x / 2, s.y / 2, s.z / 2),
        )

    def create(self, template, position, orientation, parent=None):
        if self.fail_create:
            raise RuntimeError("instantiation failed")
        self.creates += 1
        handle = FakeHandle(f"{template.id}#{self.creates}", template, position, orientation)
        self.live[handle.name] = handle
        self.events.append(("create", handle.name))
        if self.on_create is not None:
            self.on_create(self.creates)
        return handle

    def destroy(self, handle):
        self.live.pop(handle.name, None)
        self.events.append(("destroy", handle.name))

    def get_position(self, handle):
        return handle.position

    def set_position(self, handle, position):
        handle.position = position
