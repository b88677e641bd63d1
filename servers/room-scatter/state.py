"""Placement ledger: the in-memory record of committed items."""

import logging
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from rtree import index as rtree_index

from models import Footprint, PlacedItem

logger = logging.getLogger("room-scatter.state")


class Ledger:
    """Ordered store of placed items and their live instance handles.

    Insertion order is placement order. An rtree over the X/Z bounds of each
    exact footprint backs the proximity queries used by the box-overlap check.
    """

    def __init__(self):
        self._items: List[PlacedItem] = []
        self._handles: Dict[str, Any] = {}
        self._index = rtree_index.Index()

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[PlacedItem]:
        return iter(list(self._items))

    def __contains__(self, item_id: str) -> bool:
        return item_id in self._handles

    @property
    def items(self) -> List[PlacedItem]:
        return list(self._items)

    def append(self, item: PlacedItem, handle: Any = None) -> None:
        if item.id in self._handles:
            raise ValueError(f"Item {item.id} is already in the ledger")
        self._index.insert(len(self._items), _xz_bounds(item.exact_footprint))
        self._items.append(item)
        self._handles[item.id] = handle

    def handle_for(self, item_id: str) -> Optional[Any]:
        return self._handles.get(item_id)

    def nearby(self, bounds: Tuple[float, float, float, float]) -> List[PlacedItem]:
        """Items whose X/Z bounds intersect `bounds` = (min_x, min_z, max_x, max_z)."""
        return [self._items[i] for i in sorted(self._index.intersection(bounds))]

    def count_by_category(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for item in self._items:
            counts[item.category_id] = counts.get(item.category_id, 0) + 1
        return counts

    def reset(self, destroy: Optional[Callable[[Any], None]] = None) -> List[PlacedItem]:
        """Empty the ledger, then destroy every released handle.

        The ledger is cleared in one step before any destroy call runs, so no
        partially reset state is observable. Returns the released items.
        """
        released = list(zip(self._items, (self._handles[i.id] for i in self._items)))
        self._items = []
        self._handles = {}
        self._index = rtree_index.Index()

        if destroy is not None:
            for item, handle in released:
                if handle is None:
                    continue
                try:
                    destroy(handle)
                except Exception as e:
                    logger.error("Failed to destroy %s during reset: %s", item.id, e)
        if released:
            logger.info("Ledger reset, released %d item(s)", len(released))
        return [item for item, _ in released]


def _xz_bounds(fp: Footprint) -> Tuple[float, float, float, float]:
    lo, hi = fp.min, fp.max
    return (lo.x, lo.z, hi.x, hi.z)
