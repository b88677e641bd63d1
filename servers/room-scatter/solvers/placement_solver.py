"""Tiered-relaxation placement of category items on a floor region.

Each item attempt walks

    SelectItem -> EstimateFootprint -> GenerateCandidate -> ValidateEstimate
    -> Instantiate -> AlignToFloor -> ValidateExact -> Commit

A failed validation goes back to GenerateCandidate for the next sample of the
same tier; once a tier's samples run out the attempt escalates
STRICT -> RELAXED -> FORCED. FORCED drops clearance to an epsilon but keeps
region containment. A category stops when its target is met, its attempt
budget runs out, or 80% of that budget is consumed.
"""

import logging
import random
from typing import Any, Callable, Dict, List, Optional, Sequence

from models import (
    Category, CategoryResult, Footprint, ItemTemplate, PlacedItem, Region,
    RelaxationTier, RunSummary, SpawnerConfig, Vec3,
)
from services.geometry import GeometryProvider, InstantiationService
from solvers.candidates import FORCED_CLEARANCE, effective_clearance, iter_candidates, spawn_area
from solvers.planner import EARLY_STOP_FRACTION, attempt_budget, plan_target_count
from solvers.validation import validate_estimate, validate_exact
from state import Ledger

logger = logging.getLogger("room-scatter.placement_solver")


class PlacementExecutor:
    """Runs the placement loop for one run against a shared ledger."""

    def __init__(
        self,
        geometry: GeometryProvider,
        instantiator: InstantiationService,
        ledger: Ledger,
        config: SpawnerConfig,
        rng: Optional[random.Random] = None,
        parent: Optional[str] = None,
        is_current: Optional[Callable[[], bool]] = None,
    ):
        self.geometry = geometry
        self.instantiator = instantiator
        self.ledger = ledger
        self.config = config
        self.rng = rng or random.Random(config.seed)
        self.parent = parent
        self._is_current = is_current or (lambda: True)
        self._estimates: Dict[str, Footprint] = {}
        self._sequence = 0

    # ------------------------------------------------------------------
    # Top-level interface
    # ------------------------------------------------------------------

    def run(self, region: Region, categories: Optional[Sequence[Category]] = None,
            run_id: int = 0) -> RunSummary:
        if categories is None:
            categories = self.config.categories
        summary = RunSummary(run_id=run_id)
        for category in categories:
            if not self._is_current():
                summary.categories.append(CategoryResult(category_id=category.id, status="superseded"))
                continue
            summary.categories.append(self.place_category(region, category))

        logger.info(
            "Run %d placed %d/%d item(s) across %d categories",
            run_id, summary.spawned, summary.target, len(summary.categories),
        )
        return summary

    def estimate(self, template: ItemTemplate) -> Footprint:
        """Footprint estimate for a template, measured once and reused."""
        footprint = self._estimates.get(template.id)
        if footprint is None:
            footprint = self.geometry.estimate_footprint(template)
            self._estimates[template.id] = footprint
        return footprint

    # ------------------------------------------------------------------
    # Category loop
    # ------------------------------------------------------------------

    def place_category(self, region: Region, category: Category) -> CategoryResult:
        if not category.items:
            logger.warning("Category %s has no items. Skipping.", category.id)
            return CategoryResult(category_id=category.id, status="skipped")

        templates = self._feasible_templates(region, category)
        if not templates:
            logger.warning(
                "Region is too small for any item of category %s, even with minimal clearance",
                category.id,
            )
            return CategoryResult(category_id=category.id, status="infeasible")

        plan = plan_target_count(
            region, category, self.config, self.rng,
            estimates=[self.estimate(t) for t in templates],
        )
        budget = attempt_budget(plan.target, self.config.per_item_attempt_cap)
        result = CategoryResult(
            category_id=category.id,
            status="partial",
            target=plan.target,
            adjusted_max=plan.adjusted_max,
            budget=budget,
        )
        logger.info(
            "Attempting to spawn %d item(s) for %s (adjusted from max %d to %d) with clearance %.2f",
            plan.target, category.id, category.max_count, plan.adjusted_max, category.clearance,
        )

        while result.spawned < plan.target and result.attempts < budget:
            if not self._is_current():
                logger.warning("Run superseded by a reset, stopping category %s", category.id)
                result.status = "superseded"
                return result

            if self.attempt_item(region, category, templates, result) is not None:
                result.spawned += 1
            result.attempts += 1

            if result.spawned < plan.target and result.attempts > budget * EARLY_STOP_FRACTION:
                logger.warning(
                    "Approaching maximum attempts (%d/%d) for %s. Stopping.",
                    result.attempts, budget, category.id,
                )
                break

        result.status = "complete" if result.spawned >= plan.target else "partial"
        logger.info(
            "Spawned %d/%d item(s) for %s after %d attempt(s)",
            result.spawned, plan.target, category.id, result.attempts,
        )
        return result

    def _feasible_templates(self, region: Region, category: Category) -> List[ItemTemplate]:
        """Templates that fit the region at the FORCED tier in some orientation."""
        orientations = (0.0, 90.0) if self.config.random_orientation else (0.0,)
        feasible = []
        for template in category.items:
            try:
                local = self.estimate(template)
            except Exception as e:
                logger.error("Could not estimate bounds for %s: %s", template.id, e)
                continue
            if any(spawn_area(region, local.rotated_y(o), FORCED_CLEARANCE) for o in orientations):
                feasible.append(template)
            else:
                logger.warning("Room is too small for item %s", template.id)
        return feasible

    # ------------------------------------------------------------------
    # Item attempt
    # ------------------------------------------------------------------

    def attempt_item(
        self,
        region: Region,
        category: Category,
        templates: Optional[Sequence[ItemTemplate]] = None,
        result: Optional[CategoryResult] = None,
    ) -> Optional[PlacedItem]:
        """One item attempt across all relaxation tiers. Returns the committed item or None."""
        if result is None:
            result = CategoryResult(category_id=category.id, status="partial")
        template = self.rng.choice(list(templates or category.items))
        orientation = self.rng.uniform(0.0, 360.0) if self.config.random_orientation else 0.0
        local = self.estimate(template).rotated_y(orientation)

        for tier in RelaxationTier:
            clearance = effective_clearance(tier, category.clearance)
            area = spawn_area(region, local, clearance)
            if area is None:
                logger.debug("Region too small for %s at tier %s", template.id, tier.name)
                continue

            for x, z in iter_candidates(area, region, self.rng, self.config.samples_per_tier):
                pivot = Vec3(x, region.floor_y, z)
                check = validate_estimate(local.translated(pivot), region, self.ledger, clearance)
                if not check["valid"]:
                    result.rejected_estimate += 1
                    continue

                try:
                    handle, position, exact = self._instantiate(template, pivot, orientation, region)
                except Exception as e:
                    result.instantiation_errors += 1
                    logger.error("Error spawning %s: %s", template.id, e)
                    return None

                check = validate_exact(exact, region, self.ledger, clearance)
                if not check["valid"]:
                    result.rejected_exact += 1
                    logger.warning(
                        "%s failed validation after placement (%s). Destroying.",
                        template.id, "; ".join(check["issues"]),
                    )
                    self._destroy(handle)
                    continue

                if not self._is_current():
                    self._destroy(handle)
                    return None

                return self._commit(category, template, handle, position, orientation, exact, tier, clearance)

            logger.debug("Tier %s exhausted for %s", tier.name, template.id)

        return None

    def _instantiate(self, template: ItemTemplate, pivot: Vec3, orientation: float, region: Region):
        """Create the instance and rest its lowest point on the floor plane."""
        handle = self.instantiator.create(template, pivot, orientation, self.parent)
        try:
            exact = self.geometry.measure_exact_footprint(handle)
            position = self.instantiator.get_position(handle)
            pivot_to_bottom = position.y - exact.min.y
            position = Vec3(position.x, region.floor_y + pivot_to_bottom, position.z)
            self.instantiator.set_position(handle, position)
            exact = self.geometry.measure_exact_footprint(handle)
        except Exception:
            self._destroy(handle)
            raise
        return handle, position, exact

    def _commit(self, category: Category, template: ItemTemplate, handle: Any,
                position: Vec3, orientation: float, exact: Footprint, tier: RelaxationTier,
                clearance: float) -> PlacedItem:
        self._sequence += 1
        item = PlacedItem(
            id=f"{category.id}_{self._sequence:03d}",
            category_id=category.id,
            template_id=template.id,
            position=position,
            orientation=orientation,
            exact_footprint=exact,
            tier=tier,
            clearance=clearance,
        )
        self.ledger.append(item, handle)
        logger.debug("Placed %s (%s) at tier %s", item.id, template.id, tier.name)
        return item

    def _destroy(self, handle: Any) -> None:
        try:
            self.instantiator.destroy(handle)
        except Exception as e:
            logger.error("Failed to destroy instance: %s", e)
