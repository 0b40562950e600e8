"""
Pointer-gesture state machine for the crop editor (Qt-free).

``GestureController`` owns the live crop region and turns normalized
display-space pointer positions into region updates::

    idle --down on body--> dragging  --up/cancel--> idle
    idle --down on handle--> resizing --up/cancel--> idle

Every update is computed from the region snapshot taken at pointer-down
plus the *total* pointer delta since then, never from the previous frame,
so rounding and clamping cannot accumulate.  Moves can be queued and
applied once per frame with ``flush()``; the newest position wins.
"""

import logging
from dataclasses import dataclass

from kroppit.config import HANDLE_SIZE
from kroppit.models import (
    CIRCLE, CIRCLE_HANDLES, RECT_HANDLES, CropRegion, Point,
    move_to, nudge, resize_region,
)

logger = logging.getLogger(__name__)

IDLE = "idle"
DRAGGING = "dragging"
RESIZING = "resizing"

BODY = "body"

_CORNERS = ("nw", "ne", "sw", "se")


@dataclass
class GestureState:
    """Transient state of the gesture in progress."""
    mode: str = IDLE
    handle: str | None = None
    pointer_anchor: Point | None = None
    region_at_start: CropRegion | None = None


def handle_positions(region: CropRegion) -> dict[str, Point]:
    """Return display-space centers of the handles available for ``region``'s shape.

    Corners come first so they win hit tests over the edge handles.
    """
    left, top, right, bottom = region.x, region.y, region.right, region.bottom
    mid_x, mid_y = region.center.x, region.center.y
    corners = {
        "nw": Point(left, top),
        "ne": Point(right, top),
        "sw": Point(left, bottom),
        "se": Point(right, bottom),
    }
    if region.shape == CIRCLE:
        return {f"circle-{name}": corners[name] for name in _CORNERS}
    return {
        **corners,
        "n": Point(mid_x, top),
        "s": Point(mid_x, bottom),
        "w": Point(left, mid_y),
        "e": Point(right, mid_y),
    }


class GestureController:
    """Drag/resize state machine bound to one canvas."""

    def __init__(self, bounds: tuple[float, float], region: CropRegion):
        self.bounds = bounds
        self.region = region
        self.state = GestureState()
        self._pending: Point | None = None

    # --- Queries ---

    @property
    def mode(self) -> str:
        return self.state.mode

    @property
    def is_active(self) -> bool:
        return self.state.mode != IDLE

    def hit_test(self, point: Point) -> str | None:
        """Return the handle name under ``point``, ``BODY``, or None."""
        for name, pos in handle_positions(self.region).items():
            if abs(point.x - pos.x) <= HANDLE_SIZE and abs(point.y - pos.y) <= HANDLE_SIZE:
                return name
        if self.region.contains(point):
            return BODY
        return None

    # --- Transitions ---

    def pointer_down(self, point: Point, target: str | None = None) -> bool:
        """Start a gesture at ``point``. Returns False if nothing was hit.

        ``target`` overrides hit testing (a handle name or ``BODY``).
        """
        if target is None:
            target = self.hit_test(point)
            if target is None:
                return False
        allowed = CIRCLE_HANDLES if self.region.shape == CIRCLE else RECT_HANDLES
        if target != BODY and target not in allowed:
            raise ValueError(f"handle {target!r} is not valid for a {self.region.shape} region")

        self.state = GestureState(
            mode=DRAGGING if target == BODY else RESIZING,
            handle=None if target == BODY else target,
            pointer_anchor=point,
            region_at_start=self.region,
        )
        self._pending = None
        logger.debug("Gesture start: %s %s at (%.1f, %.1f)",
                     self.state.mode, self.state.handle or "", point.x, point.y)
        return True

    def queue_move(self, point: Point) -> None:
        """Record the newest pointer position; applied on the next ``flush()``."""
        if self.is_active:
            self._pending = point

    def flush(self) -> bool:
        """Apply the queued pointer position. Returns True if the region changed."""
        if self._pending is None or not self.is_active:
            return False
        point, self._pending = self._pending, None
        new_region = self._region_for(point)
        if new_region == self.region:
            return False
        self.region = new_region
        return True

    def pointer_move(self, point: Point) -> bool:
        """Queue and apply a move immediately."""
        self.queue_move(point)
        return self.flush()

    def pointer_up(self, point: Point | None = None) -> bool:
        """End the gesture, applying the final position first."""
        if point is not None:
            self.queue_move(point)
        changed = self.flush()
        self._end("up")
        return changed

    def pointer_cancel(self) -> bool:
        """End the gesture like pointer-up; the region keeps the last delta."""
        changed = self.flush()
        self._end("cancel")
        return changed

    def reset(self, bounds: tuple[float, float] | None = None, region: CropRegion | None = None) -> None:
        """Drop any in-flight gesture, optionally rebinding canvas and region."""
        if bounds is not None:
            self.bounds = bounds
        if region is not None:
            self.region = region
        self.state = GestureState()
        self._pending = None

    def nudge(self, dx: float, dy: float) -> bool:
        """Keyboard move; ignored while a gesture is active."""
        if self.is_active:
            return False
        new_region = nudge(self.region, dx, dy, self.bounds)
        if new_region == self.region:
            return False
        self.region = new_region
        return True

    # --- Internals ---

    def _end(self, how: str) -> None:
        if self.is_active:
            logger.debug("Gesture %s: %s -> %s", how, self.state.mode, self.region)
        self.state = GestureState()
        self._pending = None

    def _region_for(self, point: Point) -> CropRegion:
        start = self.state.region_at_start
        delta = point - self.state.pointer_anchor
        if self.state.mode == DRAGGING:
            return move_to(start, start.x + delta.x, start.y + delta.y, self.bounds)
        return resize_region(start, self.state.handle, delta, self.bounds)
