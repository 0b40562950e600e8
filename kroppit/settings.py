"""
Settings persistence: load, save, and validate user settings.

Settings are stored in a JSON file in the user's config directory
(provided by ``config.config_dir()``).  On first launch (or if the file
is missing/corrupt), the file is created from DEFAULT_SETTINGS.  This
module is Qt-free.

The on-disk format uses a versioned envelope::

    {"version": 1, "settings": {"overlay_policy": "always", ...}}

Keys missing from the file take their default; unknown keys are dropped.
"""

import json
import logging
from copy import deepcopy
from pathlib import Path

from kroppit.config import (
    config_dir,
    DISPLAY_MAX_WIDTH, DISPLAY_MAX_HEIGHT,
    OVERLAY_ALWAYS, OVERLAY_POLICIES,
    SHARE_TEXT, UPLOAD_TIMEOUT_S,
    CLOUDINARY_CLOUD_NAME, CLOUDINARY_UPLOAD_PRESET,
)

logger = logging.getLogger(__name__)

_SETTINGS_FILENAME = "settings.json"
_FORMAT_VERSION = 1

DEFAULT_SETTINGS = {
    "display_max_width": DISPLAY_MAX_WIDTH,
    "display_max_height": DISPLAY_MAX_HEIGHT,
    "overlay_policy": OVERLAY_ALWAYS,
    "share_text": SHARE_TEXT,
    "upload_timeout_s": UPLOAD_TIMEOUT_S,
    "cloudinary_cloud_name": CLOUDINARY_CLOUD_NAME,
    "cloudinary_upload_preset": CLOUDINARY_UPLOAD_PRESET,
    "download_dir": "",
}

_POSITIVE_NUMBER_KEYS = ("display_max_width", "display_max_height", "upload_timeout_s")
_NON_EMPTY_STRING_KEYS = ("share_text", "cloudinary_cloud_name", "cloudinary_upload_preset")


def _settings_path() -> Path:
    """Return the full path to settings.json."""
    return config_dir() / _SETTINGS_FILENAME


# =============================================================================
# Validation
# =============================================================================
def validate_settings(data: object) -> list[str]:
    """
    Validate a settings dict.

    Returns a list of error strings (empty means valid).  Only known keys
    are checked; absent keys are fine.
    """
    if not isinstance(data, dict):
        return ["Settings data must be a dict"]

    errors: list[str] = []

    for key in _POSITIVE_NUMBER_KEYS:
        if key not in data:
            continue
        val = data[key]
        if isinstance(val, bool) or not isinstance(val, (int, float)) or val <= 0:
            errors.append(f"{key} must be a positive number, got {val!r}")

    for key in _NON_EMPTY_STRING_KEYS:
        if key in data and (not isinstance(data[key], str) or not data[key].strip()):
            errors.append(f"{key} must be a non-empty string")

    if "overlay_policy" in data and data["overlay_policy"] not in OVERLAY_POLICIES:
        errors.append(
            f"overlay_policy must be one of {', '.join(OVERLAY_POLICIES)}, "
            f"got {data['overlay_policy']!r}"
        )

    if "download_dir" in data and not isinstance(data["download_dir"], str):
        errors.append("download_dir must be a string")

    return errors


def _merged(data: dict) -> dict:
    """Defaults overlaid with the known keys of *data*."""
    settings = deepcopy(DEFAULT_SETTINGS)
    settings.update({k: v for k, v in data.items() if k in DEFAULT_SETTINGS})
    return settings


# =============================================================================
# Load / Save
# =============================================================================
def load_settings() -> dict:
    """
    Load settings from settings.json.

    If the file is missing, corrupt, or fails validation, writes the
    defaults and returns them.
    """
    path = _settings_path()

    if not path.exists():
        logger.info("settings.json not found, creating with defaults at %s", path)
        _write_defaults(path)
        return deepcopy(DEFAULT_SETTINGS)

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Failed to read settings.json (%s), restoring defaults", exc)
        _write_defaults(path)
        return deepcopy(DEFAULT_SETTINGS)

    if not isinstance(raw, dict) or raw.get("version") != _FORMAT_VERSION or "settings" not in raw:
        logger.warning("settings.json version mismatch or missing envelope, restoring defaults")
        _write_defaults(path)
        return deepcopy(DEFAULT_SETTINGS)

    data = raw["settings"]
    errors = validate_settings(data)
    if errors:
        logger.warning(
            "settings.json validation failed:\n  %s\nRestoring defaults.",
            "\n  ".join(errors),
        )
        _write_defaults(path)
        return deepcopy(DEFAULT_SETTINGS)

    unknown = sorted(set(data) - set(DEFAULT_SETTINGS))
    if unknown:
        logger.debug("Ignoring unknown settings: %s", ", ".join(unknown))
    return _merged(data)


def save_settings(settings: dict) -> None:
    """
    Validate and write settings to settings.json in versioned envelope.

    Raises ValueError if validation fails.
    Raises OSError if the file cannot be written.
    """
    errors = validate_settings(settings)
    if errors:
        raise ValueError("Invalid settings:\n  " + "\n  ".join(errors))

    envelope = {"version": _FORMAT_VERSION, "settings": _merged(settings)}
    path = _settings_path()
    path.write_text(json.dumps(envelope, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info("Saved settings to %s", path)


def _write_defaults(path: Path) -> None:
    """Write DEFAULT_SETTINGS to the given path in versioned envelope."""
    try:
        envelope = {"version": _FORMAT_VERSION, "settings": deepcopy(DEFAULT_SETTINGS)}
        path.write_text(
            json.dumps(envelope, indent=2, ensure_ascii=False),
            encoding="utf-8",
        )
    except OSError as exc:
        logger.error("Could not write default settings to %s: %s", path, exc)
