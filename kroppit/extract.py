"""
Crop extraction (Qt-free).

Turns the display-space crop region into a source-resolution bitmap:
a 1:1 sub-copy for rectangles, and the same sub-copy masked to the
inscribed circle (transparent outside) for circles.  The result is
always encoded as PNG so circle transparency survives.

Rounding: output width/height are ``round(region_size / scale)`` (at
least 1 px); the origin is rounded the same way and pulled back inside
the image when the rounded box would overrun the right or bottom edge.
"""

import logging
import math
from dataclasses import dataclass

from PIL import Image

from kroppit.errors import InvalidCropStateError
from kroppit.image_io import encode_png
from kroppit.models import CIRCLE, CropRegion, to_source

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExtractedCrop:
    """Output of one crop action."""
    image: Image.Image
    shape: str
    png_bytes: bytes
    box: tuple[int, int, int, int]  # (left, top, right, bottom) in source pixels

    mime_type = "image/png"

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height


def source_box(region: CropRegion, scale: float, img_w: int, img_h: int) -> tuple[int, int, int, int]:
    """Integer source-space box for a display-space region."""
    src = to_source(region, scale)
    w = min(img_w, max(1, int(round(src.width))))
    h = min(img_h, max(1, int(round(src.height))))
    left = max(0, min(int(round(src.x)), img_w - w))
    top = max(0, min(int(round(src.y)), img_h - h))
    return left, top, left + w, top + h


def circle_mask(width: int, height: int) -> Image.Image:
    """Mask (mode ``L``) that is 255 exactly where
    ``(px - W/2)^2 + (py - H/2)^2 <= (min(W, H)/2)^2``.

    Doubling both sides keeps the test in integers, so pixels lying on
    the radius are included exactly.
    """
    mask = Image.new("L", (width, height), 0)
    diameter_sq = min(width, height) ** 2
    for py in range(height):
        remaining = diameter_sq - (2 * py - height) ** 2
        if remaining < 0:
            continue
        # |2*px - W| <= t  <=>  ceil((W - t) / 2) <= px <= floor((W + t) / 2)
        t = math.isqrt(remaining)
        x0 = (width - t + 1) // 2
        x1 = min(width - 1, (width + t) // 2)
        if x0 <= x1:
            mask.paste(255, (x0, py, x1 + 1, py + 1))
    return mask


def extract(image: Image.Image | None, region: CropRegion | None, scale: float) -> ExtractedCrop:
    """Extract ``region`` (display space) from ``image`` at source resolution."""
    if image is None:
        raise InvalidCropStateError("Please load an image first!")
    if region is None or region.is_empty():
        raise InvalidCropStateError("Please select an area to crop first!")

    box = source_box(region, scale, image.width, image.height)
    cropped = image.crop(box)

    if region.shape == CIRCLE:
        out = Image.new("RGBA", cropped.size, (0, 0, 0, 0))
        out.paste(cropped.convert("RGBA"), (0, 0), circle_mask(*cropped.size))
    else:
        out = cropped

    png = encode_png(out)
    logger.info("Extracted %s crop %dx%d at %s (%d bytes)",
                region.shape, out.width, out.height, box[:2], len(png))
    return ExtractedCrop(image=out, shape=region.shape, png_bytes=png, box=box)
