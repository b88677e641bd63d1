"""Top-down debug rendering of placed items using matplotlib.

Generates annotated PNGs with:
- Region outline and the clearance inset of the first category
- Color-coded exact footprints per category
- Item ID labels
- Dotted separation radius around each item
"""

import os
import logging
from typing import Dict, List, Optional, Sequence

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import matplotlib.patches as patches

from models import Category, PlacedItem, Region

logger = logging.getLogger("room-scatter.placement_render")

# Color palette for categories (cycles)
_PALETTE = [
    "#e6194b", "#3cb44b", "#4363d8", "#f58231", "#911eb4",
    "#42d4f4", "#f032e6", "#bfef45", "#fabed4", "#469990",
    "#dcbeff", "#9A6324", "#800000", "#aaffc3", "#808000",
    "#000075", "#a9a9a9",
]


def render_placements(
    region: Region,
    items: Sequence[PlacedItem],
    output_path: str,
    categories: Optional[Sequence[Category]] = None,
    dpi: int = 150,
) -> str:
    """Render the region and its placed items as a top-down PNG."""
    fig, ax = plt.subplots(1, 1, figsize=(10, 10))

    _draw_region(ax, region, categories)

    colors = _category_colors(items, categories)
    for item in items:
        _draw_item(ax, item, colors[item.category_id])

    w, d = region.width, region.depth
    ax.set_aspect("equal")
    ax.set_title(f"Region {w:.1f}m x {d:.1f}m, {len(items)} items")
    ax.set_xlabel("X (m)")
    ax.set_ylabel("Z (m)")
    ax.grid(True, alpha=0.2)

    padding = max(0.3, min(w, d) * 0.05)
    ax.set_xlim(region.min.x - padding, region.max.x + padding)
    ax.set_ylim(region.min.z - padding, region.max.z + padding)

    if categories:
        handles = [
            patches.Patch(color=colors[c.id], label=c.id, alpha=0.5)
            for c in categories if c.id in colors
        ]
        if handles:
            ax.legend(handles=handles, loc="upper right", fontsize=7)

    os.makedirs(os.path.dirname(output_path) or ".", exist_ok=True)
    fig.savefig(output_path, dpi=dpi, bbox_inches="tight")
    plt.close(fig)
    logger.info("Placements rendered to %s", output_path)
    return output_path


def _category_colors(items: Sequence[PlacedItem], categories: Optional[Sequence[Category]]) -> Dict[str, str]:
    ids: List[str] = [c.id for c in categories or []]
    for item in items:
        if item.category_id not in ids:
            ids.append(item.category_id)
    return {cid: _PALETTE[i % len(_PALETTE)] for i, cid in enumerate(ids)}


def _draw_region(ax, region: Region, categories: Optional[Sequence[Category]]):
    """Draw the region rectangle and the inset of the first category's clearance."""
    rect = patches.Rectangle(
        (region.min.x, region.min.z), region.width, region.depth,
        linewidth=2.5, edgecolor="green", facecolor="lightyellow", alpha=0.4,
    )
    ax.add_patch(rect)

    if categories:
        clearance = categories[0].clearance
        iw, idp = region.width - 2 * clearance, region.depth - 2 * clearance
        if iw > 0 and idp > 0:
            inset = patches.Rectangle(
                (region.min.x + clearance, region.min.z + clearance), iw, idp,
                linewidth=1, edgecolor="gold", facecolor="none", linestyle="--",
            )
            ax.add_patch(inset)


def _draw_item(ax, item: PlacedItem, color: str):
    """Draw an item's exact footprint, label and separation radius."""
    fp = item.exact_footprint
    lo, size = fp.min, fp.size

    box = patches.Rectangle(
        (lo.x, lo.z), size.x, size.z, linewidth=1.2, edgecolor=color, facecolor=color, alpha=0.25,
    )
    ax.add_patch(box)

    radius = max(size.x, size.z) / 2
    ring = patches.Circle(
        (fp.center.x, fp.center.z), radius, linewidth=0.6, edgecolor=color,
        facecolor="none", linestyle=":",
    )
    ax.add_patch(ring)

    ax.text(
        fp.center.x, fp.center.z, f"{item.id}\n{item.tier.name.lower()}",
        ha="center", va="center", fontsize=5, fontweight="bold", color="black",
        bbox=dict(boxstyle="round,pad=0.15", facecolor="white", edgecolor=color, alpha=0.85, linewidth=0.5),
    )
