"""
Data models and crop-geometry utilities.

CropRegion is the core data structure shared by the gesture controller,
the renderer and the extraction engine.  It lives in *display space*
(canvas pixels of the scaled-down image); ``to_source`` / ``to_display``
convert between that and the original image's pixels.

Every helper below returns a new region that satisfies the invariants:
inside the canvas, at least MIN_CROP_SIZE on each side (or the whole
canvas side when the canvas is smaller), and square when the shape is a
circle.  Bounds are passed as a ``(canvas_w, canvas_h)`` tuple.
"""

from dataclasses import dataclass, replace

from kroppit.config import (
    MIN_CROP_SIZE, DEFAULT_REGION_FRACTION, DEFAULT_REGION_MAX,
    PRESET_FRACTION, LANDSCAPE_HEIGHT_FACTOR, PORTRAIT_WIDTH_FACTOR,
)

RECTANGLE = "rectangle"
CIRCLE = "circle"
SHAPES = (RECTANGLE, CIRCLE)

# Edge and corner handles; the letters name the sides a handle moves
RECT_HANDLES = ("n", "s", "e", "w", "nw", "ne", "sw", "se")
CIRCLE_HANDLES = ("circle-nw", "circle-ne", "circle-sw", "circle-se")

PRESETS = ("square", "landscape", "portrait", "circle")

# Anchor name -> (fraction of free width, fraction of free height)
ANCHORS = {
    "top-left": (0.0, 0.0),
    "top-center": (0.5, 0.0),
    "top-right": (1.0, 0.0),
    "center-left": (0.0, 0.5),
    "center": (0.5, 0.5),
    "center-right": (1.0, 0.5),
    "bottom-left": (0.0, 1.0),
    "bottom-center": (0.5, 1.0),
    "bottom-right": (1.0, 1.0),
}


# =============================================================================
# Data classes
# =============================================================================
@dataclass(frozen=True)
class Point:
    """A point (or a delta) in display or source space."""
    x: float = 0.0
    y: float = 0.0

    def __add__(self, other: "Point") -> "Point":
        return Point(self.x + other.x, self.y + other.y)

    def __sub__(self, other: "Point") -> "Point":
        return Point(self.x - other.x, self.y - other.y)


@dataclass(frozen=True)
class CropRegion:
    """Crop selection. Coordinates are floats; rounding happens at extraction."""
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    shape: str = RECTANGLE

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Point:
        return Point(self.x + self.width / 2, self.y + self.height / 2)

    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def contains(self, point: Point) -> bool:
        """True if ``point`` lies inside the shape (the inscribed disc for circles)."""
        if self.shape == CIRCLE:
            center = self.center
            radius = min(self.width, self.height) / 2
            return (point.x - center.x) ** 2 + (point.y - center.y) ** 2 <= radius ** 2
        return self.x <= point.x <= self.right and self.y <= point.y <= self.bottom


# =============================================================================
# Coordinate transform
# =============================================================================
def _map(value, fn):
    if isinstance(value, CropRegion):
        return replace(
            value,
            x=fn(value.x), y=fn(value.y),
            width=fn(value.width), height=fn(value.height),
        )
    if isinstance(value, Point):
        return Point(fn(value.x), fn(value.y))
    return fn(value)


def to_source(value, scale: float):
    """Map a display-space Point, CropRegion or length to source space."""
    if scale <= 0:
        raise ValueError(f"scale must be positive, got {scale}")
    return _map(value, lambda v: v / scale)


def to_display(value, scale: float):
    """Map a source-space Point, CropRegion or length to display space."""
    if scale <= 0:
        raise ValueError(f"scale must be positive, got {scale}")
    return _map(value, lambda v: v * scale)


def compute_display_scale(img_w: int, img_h: int, max_w: float, max_h: float) -> float:
    """Scale that fits the image inside ``max_w`` x ``max_h``. Never upscales."""
    if img_w <= 0 or img_h <= 0:
        raise ValueError(f"image size must be positive, got {img_w}x{img_h}")
    return min(max_w / img_w, max_h / img_h, 1.0)


def display_size(img_w: int, img_h: int, scale: float) -> tuple[int, int]:
    """Integral canvas size for an image drawn at ``scale``."""
    # The epsilon keeps e.g. 4000 * 0.08 from truncating to 319
    return max(1, int(img_w * scale + 1e-9)), max(1, int(img_h * scale + 1e-9))


# =============================================================================
# Region helpers
# =============================================================================
def _min_sizes(bounds: tuple[float, float]) -> tuple[float, float]:
    """Minimum width/height; a canvas smaller than MIN_CROP_SIZE caps it."""
    canvas_w, canvas_h = bounds
    return min(MIN_CROP_SIZE, canvas_w), min(MIN_CROP_SIZE, canvas_h)


def clamp_region(region: CropRegion, bounds: tuple[float, float]) -> CropRegion:
    """Clamp a region to the canvas, enforcing minimum size and circle symmetry."""
    canvas_w, canvas_h = bounds
    min_w, min_h = _min_sizes(bounds)
    w = max(min_w, min(region.width, canvas_w))
    h = max(min_h, min(region.height, canvas_h))
    if region.shape == CIRCLE:
        w = h = min(w, h)
    x = max(0.0, min(region.x, canvas_w - w))
    y = max(0.0, min(region.y, canvas_h - h))
    return CropRegion(x, y, w, h, region.shape)


def initialize_region(canvas_w: float, canvas_h: float, shape: str = RECTANGLE) -> CropRegion:
    """Centered default region: 70% of each canvas side, capped at 200 px."""
    w = min(canvas_w * DEFAULT_REGION_FRACTION, DEFAULT_REGION_MAX)
    h = min(canvas_h * DEFAULT_REGION_FRACTION, DEFAULT_REGION_MAX)
    if shape == CIRCLE:
        w = h = min(w, h)
    region = CropRegion((canvas_w - w) / 2, (canvas_h - h) / 2, w, h, shape)
    return clamp_region(region, (canvas_w, canvas_h))


def move_to(region: CropRegion, x: float, y: float, bounds: tuple[float, float]) -> CropRegion:
    """Move the region's top-left to (x, y), clamped so it stays on the canvas."""
    canvas_w, canvas_h = bounds
    x = max(0.0, min(x, canvas_w - region.width))
    y = max(0.0, min(y, canvas_h - region.height))
    return replace(region, x=x, y=y)


def nudge(region: CropRegion, dx: float, dy: float, bounds: tuple[float, float]) -> CropRegion:
    return move_to(region, region.x + dx, region.y + dy, bounds)


def resize_region(
    region: CropRegion, handle: str, delta: Point, bounds: tuple[float, float],
) -> CropRegion:
    """Resize ``region`` as if ``handle`` were dragged by ``delta``.

    ``region`` must be the snapshot taken when the gesture started and
    ``delta`` the total pointer movement since then.
    """
    if handle in RECT_HANDLES:
        return _resize_rectangle(region, handle, delta, bounds)
    if handle in CIRCLE_HANDLES:
        return _resize_circle(region, handle, delta, bounds)
    raise ValueError(f"unknown resize handle: {handle!r}")


def _resize_rectangle(
    start: CropRegion, handle: str, delta: Point, bounds: tuple[float, float],
) -> CropRegion:
    canvas_w, canvas_h = bounds
    min_w, min_h = _min_sizes(bounds)
    left, top, right, bottom = start.x, start.y, start.right, start.bottom

    # Each side stops MIN_CROP_SIZE short of the opposite side, then is
    # clipped to the canvas (which shrinks rather than translates)
    if "w" in handle:
        left = max(0.0, min(left + delta.x, right - min_w))
    if "e" in handle:
        right = min(canvas_w, max(right + delta.x, left + min_w))
    if "n" in handle:
        top = max(0.0, min(top + delta.y, bottom - min_h))
    if "s" in handle:
        bottom = min(canvas_h, max(bottom + delta.y, top + min_h))

    return CropRegion(left, top, right - left, bottom - top, start.shape)


def _resize_circle(
    start: CropRegion, handle: str, delta: Point, bounds: tuple[float, float],
) -> CropRegion:
    canvas_w, canvas_h = bounds
    min_side = min(_min_sizes(bounds))
    east = handle.endswith("e")
    south = handle in ("circle-sw", "circle-se")

    # The diagonally opposite corner stays fixed
    anchor_x = start.x if east else start.right
    anchor_y = start.y if south else start.bottom
    corner_x = (start.right if east else start.x) + delta.x
    corner_y = (start.bottom if south else start.y) + delta.y

    extent_w = corner_x - anchor_x if east else anchor_x - corner_x
    extent_h = corner_y - anchor_y if south else anchor_y - corner_y
    size = max(min_side, min(extent_w, extent_h))

    # Room between the anchor and the canvas edges on the handle's side
    room_w = canvas_w - anchor_x if east else anchor_x
    room_h = canvas_h - anchor_y if south else anchor_y
    size = min(size, room_w, room_h)

    x = anchor_x if east else anchor_x - size
    y = anchor_y if south else anchor_y - size
    return CropRegion(x, y, size, size, CIRCLE)


def set_preset(region: CropRegion, bounds: tuple[float, float], preset: str) -> CropRegion:
    """Resize to a named preset, keeping the top-left where it fits."""
    canvas_w, canvas_h = bounds
    max_size = min(canvas_w, canvas_h) * PRESET_FRACTION
    shape = RECTANGLE
    if preset == "square":
        w = h = max_size
    elif preset == "landscape":
        w = canvas_w * PRESET_FRACTION
        h = w * LANDSCAPE_HEIGHT_FACTOR
    elif preset == "portrait":
        h = canvas_h * PRESET_FRACTION
        w = h * PORTRAIT_WIDTH_FACTOR
    elif preset == "circle":
        w = h = max_size
        shape = CIRCLE
    else:
        raise ValueError(f"unknown preset: {preset!r}")

    min_w, min_h = _min_sizes(bounds)
    w = max(min_w, min(w, canvas_w - region.x))
    h = max(min_h, min(h, canvas_h - region.y))
    return clamp_region(CropRegion(region.x, region.y, w, h, shape), bounds)


def set_anchor(region: CropRegion, bounds: tuple[float, float], anchor: str) -> CropRegion:
    """Reposition (without resizing) to one of the nine named canvas anchors."""
    try:
        fx, fy = ANCHORS[anchor]
    except KeyError:
        raise ValueError(f"unknown anchor: {anchor!r}") from None
    canvas_w, canvas_h = bounds
    x = (canvas_w - region.width) * fx
    y = (canvas_h - region.height) * fy
    return move_to(region, x, y, bounds)
