"""Kroppit: crop a photo to a rectangle or circle, then download or share it."""

__version__ = "0.1.0"
