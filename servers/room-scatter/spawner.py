"""Room spawner: ties room discovery, the placement executor and the ledger together."""

import logging
import os
import random
from typing import Optional

from models import Region, RunSummary, SpawnerConfig
from services.geometry import GeometryProvider, InstantiationService
from services.room_provider import RoomProvider
from solvers.placement_solver import PlacementExecutor
from state import Ledger

logger = logging.getLogger("room-scatter.spawner")


class RoomSpawner:
    """Populates the current room and owns everything it placed.

    Runs are single-threaded and never nest. A reset requested while a run is
    in progress invalidates that run (it can no longer commit) and the drain
    plus fresh run happen once it has unwound.
    """

    def __init__(
        self,
        config: SpawnerConfig,
        geometry: GeometryProvider,
        instantiator: Optional[InstantiationService] = None,
        provider: Optional[RoomProvider] = None,
        results_dir: Optional[str] = None,
        parent: Optional[str] = None,
    ):
        self.config = config
        self.geometry = geometry
        self.instantiator = instantiator or geometry
        self.ledger = Ledger()
        self.region: Optional[Region] = None
        self.rng = random.Random(config.seed)
        self.results_dir = results_dir
        self.parent = parent
        self.last_summary: Optional[RunSummary] = None
        self.last_render_path: Optional[str] = None

        self._generation = 0
        self._running = False
        self._pending_regenerate = False

        if provider is not None:
            self.attach(provider)

    def attach(self, provider: RoomProvider) -> None:
        provider.register_room_ready_callback(self.on_region_ready)

    @property
    def running(self) -> bool:
        return self._running

    def on_region_ready(self, region: Region) -> Optional[RunSummary]:
        self.region = region
        return self.reset_and_regenerate()

    def reset(self) -> None:
        """Destroy every placed item. Safe to call repeatedly."""
        self._generation += 1
        self.ledger.reset(destroy=self.instantiator.destroy)

    def reset_and_regenerate(self) -> Optional[RunSummary]:
        if self._running:
            logger.info("Reset requested during a run, regenerating once it stops")
            self._generation += 1
            self._pending_regenerate = True
            return None

        logger.info("Resetting and regenerating placements")
        self.reset()
        if self.region is None:
            logger.warning("Cannot place items - no room available. Discover the room first.")
            return None
        return self._run(self.region)

    def clear_room(self) -> None:
        self.reset()
        self.region = None

    def _run(self, region: Region) -> Optional[RunSummary]:
        generation = self._generation
        executor = PlacementExecutor(
            self.geometry,
            self.instantiator,
            self.ledger,
            self.config,
            rng=self.rng,
            parent=self.parent,
            is_current=lambda: self._generation == generation,
        )
        self._running = True
        try:
            summary = executor.run(region, run_id=generation)
        finally:
            self._running = False

        if self._pending_regenerate:
            self._pending_regenerate = False
            return self.reset_and_regenerate()

        self.last_summary = summary
        if self.config.debug_visualization:
            self.render()
        return summary

    def render(self, output_path: Optional[str] = None) -> Optional[str]:
        """Render the current placements as a top-down PNG."""
        if self.region is None:
            logger.warning("Nothing to render - no room available")
            return None
        # matplotlib is only loaded when rendering
        from rendering.placement_render import render_placements

        if output_path is None:
            output_dir = self.results_dir or os.getcwd()
            output_path = os.path.join(output_dir, f"placements_run{self._generation:03d}.png")
        self.last_render_path = render_placements(
            self.region, self.ledger.items, output_path, categories=self.config.categories,
        )
        return self.last_render_path
