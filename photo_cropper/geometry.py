"""
Crop geometry: map a pan/zoom display state to a source-pixel crop rectangle.

All functions here are pure.  The forward display transform centers the
image in the frame, scales it around the frame center and then translates
it by the pan offset; ``compute_crop_rectangle`` undoes that to find which
part of the source lands inside the frame.

The calculator never clamps the scale itself.  Gesture layers clamp with
``clamp_scale`` before committing; a scale that is zero, negative or not
finite is rejected as InvalidCropRegion instead of producing NaN/Infinity.
"""

import logging
import math

from photo_cropper.models import (
    CropRectangle,
    DisplayTransform,
    ImageDimensions,
    InvalidCropRegion,
    LiveDelta,
    NO_DELTA,
)
from photo_cropper.policies import AspectPolicy

logger = logging.getLogger(__name__)


# =============================================================================
# Frame and extents
# =============================================================================
def compute_frame_size(
    image_dims: ImageDimensions,
    viewport_width: float,
    policy: AspectPolicy,
) -> tuple[float, float]:
    """
    Size of the on-screen crop frame for a given viewport width.

    Fixed policies derive the height from the ratio; the free policy follows
    the image's own aspect.  Non-positive inputs give a zero-size frame.
    """
    if viewport_width <= 0 or image_dims.width <= 0 or image_dims.height <= 0:
        return 0.0, 0.0
    if policy.is_free:
        return viewport_width, viewport_width * image_dims.aspect
    return viewport_width, viewport_width * policy.ratio


def crop_extents(image_dims: ImageDimensions, policy: AspectPolicy) -> tuple[float, float]:
    """
    Full source region the frame maps onto at identity.

    Fixed-ratio shapes are anchored to the image's full width, so the height
    may exceed the image; extraction truncates it at the image edge.
    """
    if policy.is_free:
        return image_dims.width, image_dims.height
    return image_dims.width, image_dims.width * policy.ratio


# =============================================================================
# Transform helpers
# =============================================================================
def reset_transform() -> DisplayTransform:
    """Identity transform: no pan, no zoom."""
    return DisplayTransform()


def clamp_scale(scale: float, min_scale: float, max_scale: float) -> float:
    return max(min_scale, min(scale, max_scale))


def commit_delta(
    transform: DisplayTransform,
    delta: LiveDelta,
    min_scale: float | None = None,
    max_scale: float | None = None,
) -> DisplayTransform:
    """Fold a live delta into the committed transform, clamping scale when limits are given."""
    scale = transform.scale * delta.scale_multiplier
    if min_scale is not None and max_scale is not None:
        scale = clamp_scale(scale, min_scale, max_scale)
    return DisplayTransform(
        offset_x=transform.offset_x + delta.offset_dx,
        offset_y=transform.offset_y + delta.offset_dy,
        scale=scale,
    )


# =============================================================================
# Crop rectangle
# =============================================================================
def clamp_rectangle(rect: CropRectangle, crop_w: float, crop_h: float) -> CropRectangle:
    """Clamp origin to >= 0 and size to the crop extents. Idempotent."""
    return CropRectangle(
        x=max(0.0, rect.x),
        y=max(0.0, rect.y),
        width=min(crop_w, rect.width),
        height=min(crop_h, rect.height),
    )


def compute_crop_rectangle(
    image_dims: ImageDimensions,
    transform: DisplayTransform,
    live_delta: LiveDelta = NO_DELTA,
    policy: AspectPolicy | None = None,
) -> CropRectangle:
    """
    Source-pixel rectangle visible inside the frame.

    Over-panning is tolerated: the origin is clamped to the image instead of
    failing, so a far drag yields a rectangle at the image edge that no
    longer contains what was on screen.

    Raises InvalidCropRegion for a non-positive or non-finite effective
    scale, a non-positive size, or a rectangle starting outside the image.
    """
    if policy is None:
        policy = AspectPolicy.free()

    scale = transform.scale * live_delta.scale_multiplier
    if not math.isfinite(scale) or scale <= 0:
        raise InvalidCropRegion(f"Scale must be positive and finite, got {scale!r}")

    offset_x = transform.offset_x + live_delta.offset_dx
    offset_y = transform.offset_y + live_delta.offset_dy

    crop_w, crop_h = crop_extents(image_dims, policy)

    raw = CropRectangle(
        x=(crop_w - crop_w / scale) / 2 - offset_x / scale,
        y=(crop_h - crop_h / scale) / 2 - offset_y / scale,
        width=crop_w / scale,
        height=crop_h / scale,
    )
    # max()/min() would hide a NaN, so check before clamping
    if not all(math.isfinite(v) for v in raw.as_tuple()):
        raise InvalidCropRegion(f"Crop rectangle is not finite: {raw}")
    rect = clamp_rectangle(raw, crop_w, crop_h)

    if rect.width <= 0 or rect.height <= 0:
        raise InvalidCropRegion(f"Crop rectangle has no area: {rect}")
    if rect.x >= image_dims.width or rect.y >= image_dims.height:
        raise InvalidCropRegion(
            f"Crop rectangle {rect} lies outside the {image_dims.width}x{image_dims.height} image"
        )

    logger.debug(
        "Crop rect for scale=%.4f offset=(%.2f, %.2f) policy=%s: %s",
        scale, offset_x, offset_y, policy.key, rect,
    )
    return rect


def extraction_box(rect: CropRectangle, image_dims: ImageDimensions) -> tuple[int, int, int, int]:
    """
    Whole-pixel ``(left, top, right, bottom)`` box of *rect* within the image.

    The rectangle is intersected with the image bounds, so the part of a
    fixed-ratio crop that extends past the image is dropped.  Raises
    InvalidCropRegion when nothing of the rectangle is left.
    """
    left = max(0, int(round(rect.x)))
    top = max(0, int(round(rect.y)))
    right = min(int(image_dims.width), int(round(rect.right)))
    bottom = min(int(image_dims.height), int(round(rect.bottom)))
    if right <= left or bottom <= top:
        raise InvalidCropRegion(
            f"Crop rectangle {rect} has no pixels inside the "
            f"{image_dims.width}x{image_dims.height} image"
        )
    return left, top, right, bottom
