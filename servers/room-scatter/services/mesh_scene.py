"""In-memory trimesh scene that hosts placed instances.

Implements both the geometry provider and the instantiation service:
templates become meshes (a box of the template size, or a loaded mesh
file), instances are scene-graph nodes with a translation @ yaw transform,
and exact footprints are the AABB of the transformed vertices.
"""

import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Optional

import numpy as np
import trimesh
import trimesh.transformations

from models import Footprint, ItemTemplate, Vec3

logger = logging.getLogger("room-scatter.mesh_scene")

# Edge length used when a template or instance has no measurable geometry
FALLBACK_SIZE = 0.3
ROOT_NODE = "room_scatter"


@dataclass
class InstanceHandle:
    node_name: str
    template_id: str
    position: Vec3
    orientation: float
    parent: Optional[str] = None


def _transform(position: Vec3, orientation: float) -> np.ndarray:
    rotation = trimesh.transformations.rotation_matrix(math.radians(orientation), [0, 1, 0])
    translation = trimesh.transformations.translation_matrix(position.as_list())
    return translation @ rotation


def _fallback_footprint(center: Vec3) -> Footprint:
    half = FALLBACK_SIZE / 2
    return Footprint(center=center, extents=Vec3(half, half, half))


def _footprint_from_points(points: np.ndarray) -> Footprint:
    lo, hi = points.min(axis=0), points.max(axis=0)
    return Footprint.from_bounds(Vec3(*map(float, lo)), Vec3(*map(float, hi)))


class MeshScene:
    """Scene of placed template instances backed by a trimesh.Scene."""

    def __init__(self):
        self.scene = trimesh.Scene()
        self.scene.graph.update(frame_to=ROOT_NODE, matrix=np.eye(4))
        self._meshes: Dict[str, trimesh.Trimesh] = {}
        self._instances: Dict[str, InstanceHandle] = {}
        self._counter = 0

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------

    def mesh_for(self, template: ItemTemplate) -> trimesh.Trimesh:
        mesh = self._meshes.get(template.id)
        if mesh is not None:
            return mesh

        if template.mesh_path:
            mesh = trimesh.load(template.mesh_path, force="mesh")
            logger.info("Loaded mesh for %s from %s", template.id, template.mesh_path)
        else:
            mesh = trimesh.creation.box(extents=template.size.as_list())

        if template.pivot == "bottom" and len(mesh.vertices):
            mesh.apply_translation([0, -float(mesh.bounds[0][1]), 0])

        self._meshes[template.id] = mesh
        return mesh

    def estimate_footprint(self, template: ItemTemplate) -> Footprint:
        mesh = self.mesh_for(template)
        if not len(mesh.vertices):
            logger.warning("Template %s has no geometry, using %.1fm bounds", template.id, FALLBACK_SIZE)
            return _fallback_footprint(Vec3(0, 0, 0))
        footprint = _footprint_from_points(np.asarray(mesh.vertices))
        if footprint.is_degenerate():
            return _fallback_footprint(footprint.center)
        return footprint

    # ------------------------------------------------------------------
    # Instances
    # ------------------------------------------------------------------

    def create(self, template: ItemTemplate, position: Vec3, orientation: float,
               parent: Optional[str] = None) -> InstanceHandle:
        mesh = self.mesh_for(template)
        self._counter += 1
        node_name = f"{template.id}_{self._counter:04d}"
        parent = parent or ROOT_NODE
        if parent not in self.scene.graph.nodes:
            self.scene.graph.update(frame_from=ROOT_NODE, frame_to=parent, matrix=np.eye(4))

        self.scene.add_geometry(
            mesh,
            node_name=node_name,
            geom_name=node_name,
            parent_node_name=parent,
            transform=_transform(position, orientation),
        )
        handle = InstanceHandle(
            node_name=node_name,
            template_id=template.id,
            position=position,
            orientation=orientation,
            parent=parent,
        )
        self._instances[node_name] = handle
        return handle

    def destroy(self, handle: InstanceHandle) -> None:
        if self._instances.pop(handle.node_name, None) is None:
            return
        self.scene.delete_geometry(handle.node_name)

    def get_position(self, handle: InstanceHandle) -> Vec3:
        return handle.position

    def set_position(self, handle: InstanceHandle, position: Vec3) -> None:
        handle.position = position
        self.scene.graph.update(
            frame_from=handle.parent,
            frame_to=handle.node_name,
            matrix=_transform(position, handle.orientation),
            geometry=handle.node_name,
        )

    def measure_exact_footprint(self, handle: InstanceHandle) -> Footprint:
        mesh = self._meshes[handle.template_id]
        if not len(mesh.vertices):
            return _fallback_footprint(handle.position)
        world, _ = self.scene.graph.get(handle.node_name)
        points = trimesh.transformations.transform_points(np.asarray(mesh.vertices), world)
        return _footprint_from_points(points)

    @property
    def instance_names(self) -> List[str]:
        return list(self._instances)

    def export(self, output_path: str) -> str:
        """Write the populated scene to disk; format follows the file extension."""
        self.scene.export(file_obj=output_path)
        logger.info("Scene with %d instance(s) exported to %s", len(self._instances), output_path)
        return output_path
