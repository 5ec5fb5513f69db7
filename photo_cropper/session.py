"""
Crop session: committed pan/zoom state plus the gesture in flight.

One session covers one image in and one crop out.  Drag and pinch updates
replace the live delta (they carry the total change since the gesture
began); ending a gesture folds its part of the delta into the committed
transform.  Nothing here touches Qt, so the same session drives the
desktop editor and the command line.
"""

import logging
from enum import Enum

from PIL import Image

from photo_cropper.config import CLAMP_SCALE_ON_COMMIT, MAX_SCALE, MIN_SCALE
from photo_cropper.geometry import (
    commit_delta,
    compute_crop_rectangle,
    compute_frame_size,
    reset_transform,
)
from photo_cropper.image_io import extract_region
from photo_cropper.models import (
    CropRectangle,
    DisplayTransform,
    ImageDimensions,
    InvalidCropRegion,
    LiveDelta,
    NO_DELTA,
    SessionFinalized,
)
from photo_cropper.policies import AspectPolicy

logger = logging.getLogger(__name__)


class SessionState(Enum):
    IDLE = "idle"                  # identity transform, no gesture
    TRANSFORMING = "transforming"  # gesture in flight
    COMMITTED = "committed"        # gesture ended, delta folded in
    FINALIZED = "finalized"        # crop produced, session closed


class CropSession:
    """Pan/zoom state for cropping one image."""

    def __init__(
        self,
        image_dims: ImageDimensions,
        policy: AspectPolicy | None = None,
        *,
        min_scale: float = MIN_SCALE,
        max_scale: float = MAX_SCALE,
        clamp_scale: bool = CLAMP_SCALE_ON_COMMIT,
    ):
        if image_dims.width <= 0 or image_dims.height <= 0:
            raise ValueError(f"Image dimensions must be positive: {image_dims.width}x{image_dims.height}")
        if not (0 < min_scale <= max_scale):
            raise ValueError(f"Scale limits must satisfy 0 < min <= max: [{min_scale}, {max_scale}]")

        self._dims = image_dims
        self._policy = policy or AspectPolicy.free()
        self._min_scale = min_scale
        self._max_scale = max_scale
        self._clamp_scale = clamp_scale

        self._transform = reset_transform()
        self._delta = NO_DELTA
        self._state = SessionState.IDLE

    # --- Read-only state ---

    @property
    def image_dims(self) -> ImageDimensions:
        return self._dims

    @property
    def policy(self) -> AspectPolicy:
        return self._policy

    @property
    def transform(self) -> DisplayTransform:
        return self._transform

    @property
    def live_delta(self) -> LiveDelta:
        return self._delta

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def effective_scale(self) -> float:
        return self._transform.scale * self._delta.scale_multiplier

    @property
    def effective_offset(self) -> tuple[float, float]:
        return (
            self._transform.offset_x + self._delta.offset_dx,
            self._transform.offset_y + self._delta.offset_dy,
        )

    # --- Gestures ---

    def update_drag(self, dx: float, dy: float) -> None:
        """Set the live drag translation (total since the drag began)."""
        self._ensure_open()
        self._delta = LiveDelta(dx, dy, self._delta.scale_multiplier)
        self._settle()

    def update_pinch(self, multiplier: float) -> None:
        """Set the live pinch multiplier (total since the pinch began)."""
        self._ensure_open()
        self._delta = LiveDelta(self._delta.offset_dx, self._delta.offset_dy, multiplier)
        self._settle()

    def end_drag(self) -> None:
        """Commit only the drag part of the live delta."""
        self._ensure_open()
        drag = LiveDelta(self._delta.offset_dx, self._delta.offset_dy)
        self._transform = commit_delta(self._transform, drag)
        self._delta = LiveDelta(scale_multiplier=self._delta.scale_multiplier)
        self._settle()

    def end_pinch(self) -> None:
        """Commit only the pinch part of the live delta."""
        self._ensure_open()
        pinch = LiveDelta(scale_multiplier=self._delta.scale_multiplier)
        self._transform = commit_delta(self._transform, pinch, *self._scale_limits())
        self._delta = LiveDelta(self._delta.offset_dx, self._delta.offset_dy)
        self._settle()

    def commit(self) -> None:
        """Fold the whole live delta into the committed transform."""
        self._ensure_open()
        self._transform = commit_delta(self._transform, self._delta, *self._scale_limits())
        self._delta = NO_DELTA
        self._settle()

    def cancel(self) -> None:
        """Drop the gesture in flight; the committed transform is unchanged."""
        self._ensure_open()
        self._delta = NO_DELTA
        self._state = SessionState.IDLE if self._transform.is_identity else SessionState.COMMITTED

    def reset(self) -> None:
        """Return to the identity transform, discarding any gesture."""
        self._ensure_open()
        self._transform = reset_transform()
        self._delta = NO_DELTA
        self._state = SessionState.IDLE
        logger.debug("Crop session reset")

    def select_policy(self, policy: AspectPolicy) -> None:
        """Switch crop shape; prior pan/zoom is discarded."""
        self._ensure_open()
        self._policy = policy
        self.reset()
        logger.info("Aspect policy set to %s (%s)", policy.name, policy.key)

    # --- Geometry ---

    def frame_size(self, viewport_width: float) -> tuple[float, float]:
        return compute_frame_size(self._dims, viewport_width, self._policy)

    def crop_rectangle(self) -> CropRectangle:
        """Current crop rectangle, live delta included. Raises InvalidCropRegion."""
        return compute_crop_rectangle(self._dims, self._transform, self._delta, self._policy)

    def finalize(self, image: Image.Image) -> Image.Image:
        """
        Extract the current crop from *image* and close the session.

        On InvalidCropRegion the session stays open so the caller can reset
        and try again.
        """
        self._ensure_open()
        if image.size != (int(self._dims.width), int(self._dims.height)):
            raise ValueError(
                f"Image size {image.size[0]}x{image.size[1]} does not match session "
                f"dimensions {self._dims.width}x{self._dims.height}"
            )
        rect = self.crop_rectangle()
        cropped = extract_region(image, rect)
        self._state = SessionState.FINALIZED
        logger.info("Crop session finalized: %s -> %dx%d", rect, cropped.width, cropped.height)
        return cropped

    def try_finalize(self, image: Image.Image) -> Image.Image | None:
        """Like ``finalize`` but returns None when the crop region is invalid."""
        try:
            return self.finalize(image)
        except InvalidCropRegion as exc:
            logger.warning("Crop rejected: %s", exc)
            return None

    # --- Internals ---

    def _scale_limits(self) -> tuple[float | None, float | None]:
        if self._clamp_scale:
            return self._min_scale, self._max_scale
        return None, None

    def _settle(self) -> None:
        if not self._delta.is_identity:
            self._state = SessionState.TRANSFORMING
        elif self._transform.is_identity:
            self._state = SessionState.IDLE
        else:
            self._state = SessionState.COMMITTED

    def _ensure_open(self) -> None:
        if self._state is SessionState.FINALIZED:
            raise SessionFinalized("Crop session is already finalized")
