"""Room discovery source with a room-ready callback registry."""

import logging
from typing import Callable, List, Optional

from models import Region

logger = logging.getLogger("room-scatter.room_provider")

RoomReadyCallback = Callable[[Region], None]


class RoomProvider:
    """Holds the current room and notifies subscribers when it is discovered.

    Callbacks fire at most once per discovery cycle: rediscovering the same
    bounds is a no-op, a changed room fires again.
    """

    def __init__(self):
        self._region: Optional[Region] = None
        self._callbacks: List[RoomReadyCallback] = []

    def get_region_bounds(self) -> Optional[Region]:
        return self._region

    def register_room_ready_callback(self, callback: RoomReadyCallback) -> None:
        self._callbacks.append(callback)
        # Late subscribers still see a room that was already discovered
        if self._region is not None:
            callback(self._region)

    def discover(self, region: Region) -> bool:
        """Record a discovered room. Returns True if subscribers were notified."""
        if region == self._region:
            logger.debug("Room unchanged, not re-firing room-ready")
            return False
        self._region = region
        logger.info(
            "Room discovered: (%.2f, %.2f) to (%.2f, %.2f), floor at %.2f",
            region.min.x, region.min.z, region.max.x, region.max.z, region.floor_y,
        )
        for callback in list(self._callbacks):
            callback(region)
        return True

    def clear(self) -> None:
        self._region = None
