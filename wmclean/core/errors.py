"""
Error types raised by the watermark removal core.
"""


class WatermarkRemovalError(Exception):
    """Base class for all watermark removal failures."""


class ValidationError(WatermarkRemovalError):
    """File type or size rejected before any processing."""


class InferenceError(WatermarkRemovalError):
    """The inference engine failed or returned malformed data."""


class GeometryError(WatermarkRemovalError):
    """A computed region or image size violates an internal invariant."""
