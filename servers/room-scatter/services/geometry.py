"""Interfaces the placement executor needs from the host scene."""

from typing import Any, Optional, Protocol

from models import Footprint, ItemTemplate, Vec3


class GeometryProvider(Protocol):
    def estimate_footprint(self, template: ItemTemplate) -> Footprint:
        """Footprint of a template in its own pivot frame, before any instance exists."""
        ...

    def measure_exact_footprint(self, handle: Any) -> Footprint:
        """World-space footprint of a live instance."""
        ...


class InstantiationService(Protocol):
    def create(self, template: ItemTemplate, position: Vec3, orientation: float,
               parent: Optional[str] = None) -> Any:
        ...

    def destroy(self, handle: Any) -> None:
        ...

    def get_position(self, handle: Any) -> Vec3:
        ...

    def set_position(self, handle: Any, position: Vec3) -> None:
        ...
