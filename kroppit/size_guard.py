"""
Shareability check for encoded images.

The share target accepts JPEG, PNG and GIF images under 10 MB.  The check
is advisory: it warns before the upload, and the image host may still
apply limits of its own.
"""

import logging
from dataclasses import dataclass

from kroppit.config import MAX_SHARE_BYTES, SHARE_MIME_TYPES
from kroppit.errors import TooLargeError, UnsupportedFormatError

logger = logging.getLogger(__name__)

TOO_LARGE = "too_large"
UNSUPPORTED_FORMAT = "unsupported_format"


@dataclass(frozen=True)
class SizeCheck:
    ok: bool
    error: str | None = None
    details: str = ""


def _normalize_mime(mime_type: str) -> str:
    mime = (mime_type or "").strip().lower()
    if "/" not in mime:
        mime = f"image/{mime}"
    return mime


def validate(encoded: bytes, mime_type: str) -> SizeCheck:
    """Check an encoded image against the share size limit and format whitelist."""
    mime = _normalize_mime(mime_type)
    if mime not in SHARE_MIME_TYPES:
        return SizeCheck(
            ok=False,
            error=UNSUPPORTED_FORMAT,
            details=f"Unsupported image format: {mime_type}. Only JPG, PNG, and GIF images can be shared.",
        )

    size_mb = len(encoded) / (1024 * 1024)
    if len(encoded) >= MAX_SHARE_BYTES:
        return SizeCheck(
            ok=False,
            error=TOO_LARGE,
            details=(
                f"Image too large to share ({size_mb:.2f} MB). Images must be under "
                f"{MAX_SHARE_BYTES // (1024 * 1024)} MB; try a smaller crop area."
            ),
        )

    logger.debug("Size check passed: %.2f MB, %s", size_mb, mime)
    return SizeCheck(ok=True)


def ensure_shareable(encoded: bytes, mime_type: str) -> None:
    """Like ``validate`` but raises TooLargeError / UnsupportedFormatError."""
    check = validate(encoded, mime_type)
    if check.ok:
        return
    logger.warning("Size check failed: %s", check.details)
    if check.error == TOO_LARGE:
        raise TooLargeError(check.details)
    raise UnsupportedFormatError(check.details)
