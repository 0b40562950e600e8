"""
Editor session: one loaded image and everything derived from it.

The session owns the decoded image, its display scale and canvas size,
the gesture controller (which holds the live crop region) and the most
recent extracted crop.  It is Qt-free; the crop widget and main window
drive it and repaint from it.
"""

import logging

from PIL import Image

from kroppit.config import DISPLAY_MAX_WIDTH, DISPLAY_MAX_HEIGHT
from kroppit.errors import InvalidCropStateError
from kroppit.extract import ExtractedCrop, extract
from kroppit.gestures import GestureController
from kroppit.image_io import decode_image
from kroppit.models import (
    RECTANGLE, CropRegion,
    compute_display_scale, display_size, initialize_region,
    set_anchor, set_preset,
)
from kroppit.size_guard import SizeCheck, validate

logger = logging.getLogger(__name__)


class EditorSession:
    """Crop-editing state for a single image."""

    def __init__(self, max_width: float = DISPLAY_MAX_WIDTH, max_height: float = DISPLAY_MAX_HEIGHT):
        self.max_width = max_width
        self.max_height = max_height
        self.image: Image.Image | None = None
        self.scale = 1.0
        self.canvas_size: tuple[int, int] = (0, 0)
        self.gestures = GestureController((0, 0), CropRegion())
        self.extracted: ExtractedCrop | None = None

    # --- Queries ---

    @property
    def has_image(self) -> bool:
        return self.image is not None

    @property
    def region(self) -> CropRegion:
        return self.gestures.region

    @property
    def show_cropped_result(self) -> bool:
        """True while the last crop is shown in place of the live editor."""
        return self.extracted is not None

    # --- Loading ---

    def load_bytes(self, data: bytes, mime_type: str) -> None:
        """Decode and load image bytes. Raises InvalidInputError / DecodeFailureError."""
        self.load_image(decode_image(data, mime_type))

    def load_image(self, image: Image.Image) -> None:
        """Adopt a decoded image: compute scale, canvas and the default region."""
        self.image = image
        self.scale = compute_display_scale(image.width, image.height, self.max_width, self.max_height)
        self.canvas_size = display_size(image.width, image.height, self.scale)
        self.extracted = None
        self.gestures.reset(bounds=self.canvas_size, region=initialize_region(*self.canvas_size))
        logger.info(
            "Loaded image %dx%d, scale %.4f, canvas %dx%d",
            image.width, image.height, self.scale, *self.canvas_size,
        )

    def clear(self) -> None:
        """Forget the image and every derived state."""
        self.image = None
        self.scale = 1.0
        self.canvas_size = (0, 0)
        self.extracted = None
        self.gestures.reset(bounds=(0, 0), region=CropRegion())

    def reset(self) -> None:
        """Back to the default rectangle and the live editor."""
        if not self.has_image:
            return
        self.extracted = None
        self.gestures.reset(region=initialize_region(*self.canvas_size, shape=RECTANGLE))

    # --- Region edits ---

    def set_preset(self, preset: str) -> None:
        if not self.has_image:
            return
        self.gestures.reset(region=set_preset(self.region, self.canvas_size, preset))

    def set_anchor(self, anchor: str) -> None:
        if not self.has_image:
            return
        self.gestures.reset(region=set_anchor(self.region, self.canvas_size, anchor))

    # --- Crop ---

    def crop(self) -> ExtractedCrop:
        """Extract the current region. Raises InvalidCropStateError."""
        if self.gestures.is_active:
            self.gestures.pointer_cancel()
        self.extracted = extract(self.image, self.region, self.scale)
        return self.extracted

    def check_shareable(self) -> SizeCheck:
        """Size-guard the last extracted crop."""
        if self.extracted is None:
            raise InvalidCropStateError("Please crop an image first!")
        return validate(self.extracted.png_bytes, self.extracted.mime_type)
