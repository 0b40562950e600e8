"""
Application constants and configuration.

Constants here control the crop editor (display box, handle and minimum
sizes, preset proportions), the share pipeline (size limits, caption,
compose URL, upload timeout) and PNG export.  User-tunable values are
loaded at runtime from settings.json via the settings module; the
constants below are their defaults.

The ``config_dir()`` helper returns the platform-appropriate config
directory and is shared by all persistence modules.
"""

import os
import sys
from pathlib import Path

# =============================================================================
# APP IDENTITY & CONFIG DIRECTORY
# =============================================================================
APP_NAME = "kroppit"
APP_TITLE = "Kroppit"


def config_dir() -> Path:
    """Return the platform-appropriate config directory, creating it if needed."""
    if sys.platform == "win32":
        base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        base = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    directory = base / APP_NAME
    directory.mkdir(parents=True, exist_ok=True)
    return directory


# =============================================================================
# CROP EDITOR
# =============================================================================
# Bounding box for the on-screen (display-space) copy of the image
DISPLAY_MAX_WIDTH = 320
DISPLAY_MAX_HEIGHT = 320

# Minimum crop size (display pixels)
MIN_CROP_SIZE = 20

# Default region: fraction of the canvas, capped in display pixels
DEFAULT_REGION_FRACTION = 0.7
DEFAULT_REGION_MAX = 200

# Presets: square/circle use this fraction of the shorter canvas side,
# landscape this fraction of the width, portrait this fraction of the height
PRESET_FRACTION = 0.8
LANDSCAPE_HEIGHT_FACTOR = 0.6  # 16:9-ish
PORTRAIT_WIDTH_FACTOR = 0.75   # 3:4-ish

# Hit radius around resize handles (display pixels)
HANDLE_SIZE = 8

# Nudge amounts (display pixels)
NUDGE_SMALL = 1
NUDGE_LARGE = 10

# Pointer moves are coalesced into one model update per frame
FRAME_INTERVAL_MS = 16

# Overlay policies
OVERLAY_ALWAYS = "always"
OVERLAY_HIDE_WHILE_DRAGGING = "hide-while-dragging"
OVERLAY_POLICIES = [OVERLAY_ALWAYS, OVERLAY_HIDE_WHILE_DRAGGING]

# =============================================================================
# EXPORT & SHARING
# =============================================================================
# PNG compression level (0-9, 9 = maximum compression)
PNG_COMPRESS_LEVEL = 6

DOWNLOAD_NAME_TEMPLATE = "kropped-image-{stamp}.png"

# Platform limit for shared images
MAX_SHARE_BYTES = 10 * 1024 * 1024
SHARE_MIME_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/gif"}

SHARE_TEXT = (
    "Just kropped a perfect photo! 📸 "
    "Try Kroppit - the easiest photo crop tool for Farcaster:"
)
COMPOSE_URL = "https://warpcast.com/~/compose"

UPLOAD_TIMEOUT_S = 15

CLOUDINARY_UPLOAD_URL = "https://api.cloudinary.com/v1_1/{cloud_name}/image/upload"
CLOUDINARY_CLOUD_NAME = "demo"
CLOUDINARY_UPLOAD_PRESET = "unsigned"
CLOUDINARY_FOLDER = "kroppit"

# =============================================================================
# INPUT
# =============================================================================
PSD_MIME_TYPE = "image/vnd.adobe.photoshop"

# Extensions offered by the file picker
IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".bmp", ".webp", ".tiff", ".tif", ".psd"}
