"""Room Scatter MCP Server.

Exposes tools for configuring spawn categories, announcing a discovered room,
resetting and regenerating placements, inspecting and validating the ledger,
and rendering or exporting the populated scene.
"""

import json
import os
import sys
import logging
import tempfile
from dataclasses import asdict
from typing import Optional

from mcp.server.fastmcp import FastMCP

# Ensure package root is on path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from models import (
    SpawnerConfig,
    dict_to_region, dict_to_spawner_config,
    placed_item_to_dict, region_to_dict, run_summary_to_dict,
)
from spawner import RoomSpawner
from services.mesh_scene import MeshScene
from services.room_provider import RoomProvider
from solvers.validation import validate_ledger

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
logger = logging.getLogger("room-scatter")

RESULTS_DIR = os.environ.get("RESULTS_DIR", os.path.join(tempfile.gettempdir(), "room-scatter-results"))
os.makedirs(RESULTS_DIR, exist_ok=True)

_seed_env = os.environ.get("ROOM_SCATTER_SEED")
DEFAULT_SEED: Optional[int] = int(_seed_env) if _seed_env else None

# --- Globals ---
mcp = FastMCP("room-scatter")
provider = RoomProvider()
scene = MeshScene()

# Lazy-initialized once a configuration arrives
_spawner: Optional[RoomSpawner] = None


def _get_spawner() -> RoomSpawner:
    global _spawner
    if _spawner is None:
        _spawner = RoomSpawner(SpawnerConfig(seed=DEFAULT_SEED), scene, results_dir=RESULTS_DIR)
    return _spawner


def _on_room_ready(region):
    _get_spawner().on_region_ready(region)


provider.register_room_ready_callback(_on_room_ready)


# ============================================================
# Configuration Tools
# ============================================================

@mcp.tool()
def configure_spawner(config_json: str) -> str:
    """Replace the spawn configuration.

    config_json is a JSON object:
    {
      "categories": [
        {"id": "plants", "min_count": 2, "max_count": 6, "clearance": 0.2,
         "items": [{"id": "fern", "size": [0.4, 0.9, 0.4], "pivot": "bottom"},
                   {"id": "cactus", "mesh_path": "/assets/cactus.glb"}]}
      ],
      "per_item_attempt_cap": 20,
      "absolute_cap": 100,
      "debug_visualization": false,
      "seed": 7
    }

    Existing placements are destroyed. If a room is already known, placement
    re-runs immediately with the new configuration.
    """
    global _spawner
    try:
        data = json.loads(config_json)
    except json.JSONDecodeError as e:
        return json.dumps({"error": f"Invalid JSON: {e}"})

    data.setdefault("seed", DEFAULT_SEED)
    try:
        config = dict_to_spawner_config(data)
    except (KeyError, TypeError, ValueError) as e:
        return json.dumps({"error": f"Invalid configuration: {e}"})

    if _spawner is not None:
        _spawner.reset()
    _spawner = RoomSpawner(config, scene, results_dir=RESULTS_DIR)

    result = {
        "categories": [
            {"id": c.id, "items": [i.id for i in c.items],
             "min_count": c.min_count, "max_count": c.max_count, "clearance": c.clearance}
            for c in config.categories
        ],
    }
    region = provider.get_region_bounds()
    if region is not None:
        summary = _spawner.on_region_ready(region)
        if summary is not None:
            result["summary"] = run_summary_to_dict(summary)
    return json.dumps(result)


# ============================================================
# Room Tools
# ============================================================

@mcp.tool()
def set_room_bounds(region_json: str) -> str:
    """Announce a discovered room and populate it.

    region_json: {"min": {"x": 0, "y": 0, "z": 0}, "max": {"x": 4, "y": 2.7, "z": 4}, "floor_y": 0}
    ("floor_y" defaults to min.y; vectors may also be [x, y, z] arrays)

    Returns the run summary: per category target, spawned count, attempts and status.
    """
    try:
        region = dict_to_region(json.loads(region_json))
    except json.JSONDecodeError as e:
        return json.dumps({"error": f"Invalid JSON: {e}"})
    except (KeyError, TypeError, IndexError, ValueError) as e:
        return json.dumps({"error": f"Invalid region: {e}"})

    if not provider.discover(region):
        return json.dumps({"note": "Room unchanged, placements kept.", "region": region_to_dict(region)})

    summary = _get_spawner().last_summary
    return json.dumps({
        "region": region_to_dict(region),
        "summary": run_summary_to_dict(summary) if summary else None,
    })


@mcp.tool()
def reset_and_regenerate() -> str:
    """Destroy all placed items and re-run placement for the current room."""
    spawner = _get_spawner()
    summary = spawner.reset_and_regenerate()
    if summary is None and spawner.running:
        return json.dumps({"note": "Placement run in progress, regenerating once it finishes.", "deferred": True})
    if summary is None:
        return json.dumps({"warning": "No room available. Call set_room_bounds first.", "placed": 0})
    return json.dumps(run_summary_to_dict(summary))


@mcp.tool()
def clear_room() -> str:
    """Destroy all placed items and forget the current room."""
    spawner = _get_spawner()
    removed = len(spawner.ledger)
    spawner.clear_room()
    provider.clear()
    return json.dumps({"removed": removed})


# ============================================================
# Inspection Tools
# ============================================================

@mcp.tool()
def get_placements() -> str:
    """Get every placed item with its position, orientation and exact footprint."""
    spawner = _get_spawner()
    return json.dumps({
        "region": region_to_dict(spawner.region) if spawner.region else None,
        "count": len(spawner.ledger),
        "by_category": spawner.ledger.count_by_category(),
        "items": [placed_item_to_dict(i) for i in spawner.ledger],
        "last_summary": run_summary_to_dict(spawner.last_summary) if spawner.last_summary else None,
    })


@mcp.tool()
def validate_placements() -> str:
    """Audit placed items for containment, separation and floor contact."""
    spawner = _get_spawner()
    if spawner.region is None:
        return json.dumps({"error": "No room available"})
    return json.dumps(validate_ledger(spawner.ledger, spawner.region))


@mcp.tool()
def render_placements() -> str:
    """Render the placed items as a top-down PNG and return its path."""
    spawner = _get_spawner()
    try:
        path = spawner.render()
    except Exception as e:
        logger.warning("Failed to render placements: %s", e)
        return json.dumps({"error": f"Render failed: {e}"})
    if path is None:
        return json.dumps({"error": "No room available"})
    return json.dumps({"render_path": path, "item_count": len(spawner.ledger)})


@mcp.tool()
def export_placements(output_path: str = "") -> str:
    """Export the populated scene (GLB by default) and return its path."""
    spawner = _get_spawner()
    if not output_path:
        output_path = os.path.join(RESULTS_DIR, "placements.glb")
    os.makedirs(os.path.dirname(output_path) or ".", exist_ok=True)
    try:
        scene.export(output_path)
    except Exception as e:
        logger.warning("Failed to export scene: %s", e)
        return json.dumps({"error": f"Export failed: {e}"})
    return json.dumps({"output_path": output_path, "item_count": len(spawner.ledger)})


@mcp.tool()
def get_config() -> str:
    """Get the active spawn configuration."""
    return json.dumps(asdict(_get_spawner().config))


# ============================================================
# Entry point
# ============================================================

if __name__ == "__main__":
    logger.info("Room-scatter MCP server starting...")
    mcp.run()
