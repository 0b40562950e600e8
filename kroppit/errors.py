"""
Exception hierarchy for Kroppit.

Core modules raise these; the main window catches them at the boundary
and turns them into user-facing notifications.
"""


class KroppitError(Exception):
    """Base class for all errors raised by Kroppit."""


# --- Input ---

class InvalidInputError(KroppitError):
    """Raised when the selected or dropped file is not an image."""


class DecodeFailureError(KroppitError):
    """Raised when image bytes cannot be decoded into a bitmap."""


# --- Cropping ---

class InvalidCropStateError(KroppitError):
    """Raised when a crop is requested without an image or with an empty region."""


# --- Size guard ---

class TooLargeError(KroppitError):
    """Raised when an encoded image exceeds the sharing size limit."""


class UnsupportedFormatError(KroppitError):
    """Raised when an encoded image is not in a shareable format."""


# --- Collaborators ---

class HostUploadError(KroppitError):
    """Raised when the image host fails to accept an upload."""


class ComposerError(KroppitError):
    """Raised when the share composer cannot be opened."""


class ComposerCancelled(KroppitError):
    """Raised when the user dismisses the share composer."""
