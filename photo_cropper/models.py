"""
Data models shared by the geometry core, the crop session and the hosts.

ImageDimensions is fixed for one cropping session.  DisplayTransform is the
committed pan/zoom state; LiveDelta is the uncommitted change from a gesture
in flight and is passed per computation rather than stored in the transform.
CropRectangle is expressed in source-image pixel coordinates.
"""

from dataclasses import dataclass


# =============================================================================
# Errors
# =============================================================================
class CropError(Exception):
    """Base class for crop failures."""


class InvalidCropRegion(CropError, ValueError):
    """The computed rectangle cannot be extracted from the source image."""


class SessionFinalized(CropError):
    """A finalized crop session received a gesture or a second crop request."""


# =============================================================================
# Data classes
# =============================================================================
@dataclass(frozen=True)
class ImageDimensions:
    """Source image size in pixels."""
    width: float
    height: float

    @property
    def aspect(self) -> float:
        """Height over width, the same orientation as AspectPolicy.ratio."""
        return self.height / self.width


@dataclass(frozen=True)
class DisplayTransform:
    """Committed pan offset and zoom scale."""
    offset_x: float = 0.0
    offset_y: float = 0.0
    scale: float = 1.0

    @property
    def is_identity(self) -> bool:
        return self.offset_x == 0 and self.offset_y == 0 and self.scale == 1


@dataclass(frozen=True)
class LiveDelta:
    """In-flight gesture change: drag translation and pinch multiplier."""
    offset_dx: float = 0.0
    offset_dy: float = 0.0
    scale_multiplier: float = 1.0

    @property
    def is_identity(self) -> bool:
        return self.offset_dx == 0 and self.offset_dy == 0 and self.scale_multiplier == 1


NO_DELTA = LiveDelta()


@dataclass(frozen=True)
class CropRectangle:
    """Crop rectangle in source-image pixel coordinates."""
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def as_tuple(self) -> tuple[float, float, float, float]:
        return self.x, self.y, self.width, self.height
