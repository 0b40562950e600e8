"""
Qt-free image I/O utilities.

Provides helpers to identify and decode user-supplied image bytes
(including PSD), encode PNG output, and pick unique download paths.
Safe to import in worker threads.
"""

import io
import logging
import mimetypes
import time
from pathlib import Path

from PIL import Image, ImageOps, UnidentifiedImageError
from psd_tools import PSDImage

from kroppit.config import PNG_COMPRESS_LEVEL, PSD_MIME_TYPE, DOWNLOAD_NAME_TEMPLATE
from kroppit.errors import DecodeFailureError, InvalidInputError

logger = logging.getLogger(__name__)

# Allow very large images (Pillow's default limit is ~178MP)
Image.MAX_IMAGE_PIXELS = None


def guess_mime_type(path: Path) -> str:
    """Guess a MIME type from the file name. Unknown files are ``application/octet-stream``."""
    if path.suffix.lower() == ".psd":
        return PSD_MIME_TYPE
    mime, _ = mimetypes.guess_type(path.name)
    return mime or "application/octet-stream"


def read_image_source(path: Path) -> tuple[bytes, str]:
    """Read a picked or dropped file, returning ``(bytes, mime_type)``.

    Raises InvalidInputError for non-image files before reading them.
    """
    mime = guess_mime_type(path)
    ensure_image_mime(mime)
    try:
        return path.read_bytes(), mime
    except OSError as exc:
        raise DecodeFailureError(f"Could not read {path.name}: {exc}") from exc


def ensure_image_mime(mime_type: str) -> None:
    if not mime_type or not mime_type.startswith("image/"):
        raise InvalidInputError(
            f"Please select an image file (PNG, JPG, GIF), not {mime_type or 'an unknown type'}"
        )


def _normalize_mode(img: Image.Image) -> Image.Image:
    """Convert to RGB, or RGBA when the image carries transparency."""
    if img.mode in ("RGB", "RGBA"):
        return img
    has_alpha = "A" in img.getbands() or "transparency" in img.info
    return img.convert("RGBA" if has_alpha else "RGB")


def decode_image(data: bytes, mime_type: str) -> Image.Image:
    """Decode image bytes into a fully loaded RGB/RGBA bitmap.

    PSD files are composited with psd-tools; everything else goes through
    Pillow, honouring EXIF orientation.  Animated formats yield their
    first frame.
    """
    ensure_image_mime(mime_type)
    try:
        if mime_type == PSD_MIME_TYPE:
            img = PSDImage.open(io.BytesIO(data)).composite()
        else:
            img = Image.open(io.BytesIO(data))
            img.load()
            img = ImageOps.exif_transpose(img)
    except (UnidentifiedImageError, OSError, ValueError, SyntaxError) as exc:
        raise DecodeFailureError(f"Error loading image: {exc}") from exc
    if img is None or img.width == 0 or img.height == 0:
        raise DecodeFailureError("Error loading image: empty bitmap")
    img = _normalize_mode(img)
    logger.info("Decoded %s image %dx%d (%s)", mime_type, img.width, img.height, img.mode)
    return img


def encode_png(img: Image.Image) -> bytes:
    """Encode a bitmap as PNG bytes."""
    buf = io.BytesIO()
    img.save(buf, "PNG", compress_level=PNG_COMPRESS_LEVEL)
    return buf.getvalue()


def unique_path(out_path: Path) -> Path:
    """Return a unique path by appending -01, -02, etc. if file already exists."""
    if not out_path.exists():
        return out_path
    stem = out_path.stem
    suffix = out_path.suffix
    parent = out_path.parent
    counter = 1
    while True:
        candidate = parent / f"{stem}-{counter:02d}{suffix}"
        if not candidate.exists():
            return candidate
        counter += 1


def save_download(png_bytes: bytes, folder: Path, stamp: int | None = None) -> Path:
    """Write PNG bytes as ``kropped-image-<unix ms>.png`` inside *folder*."""
    if stamp is None:
        stamp = int(time.time() * 1000)
    folder.mkdir(parents=True, exist_ok=True)
    out_path = unique_path(folder / DOWNLOAD_NAME_TEMPLATE.format(stamp=stamp))
    out_path.write_bytes(png_bytes)
    logger.info("Saved %d bytes to %s", len(png_bytes), out_path)
    return out_path
