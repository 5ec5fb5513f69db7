"""
Unit tests for photo_cropper.session.

Exercises the gesture lifecycle (live delta vs committed transform),
scale clamping on commit, policy switching and finalization.
"""
import pytest

from photo_cropper.models import (
    CropRectangle,
    DisplayTransform,
    ImageDimensions,
    InvalidCropRegion,
    LiveDelta,
    SessionFinalized,
)
from photo_cropper.policies import AspectPolicy
from photo_cropper.session import CropSession, SessionState

SQUARE = AspectPolicy.fixed("Square", 1, 1)
RED = (255, 0, 0)
GREEN = (0, 255, 0)
WHITE = (255, 255, 255)


@pytest.fixture
def session() -> CropSession:
    return CropSession(ImageDimensions(1000, 1000), SQUARE)


class TestSessionConstruction:
    """Tests for CropSession setup"""

    def test_starts_idle_at_identity(self, session):
        assert session.state is SessionState.IDLE
        assert session.transform == DisplayTransform()
        assert session.live_delta == LiveDelta()
        assert session.crop_rectangle() == CropRectangle(0, 0, 1000, 1000)

    def test_defaults_to_free_policy(self):
        session = CropSession(ImageDimensions(1000, 800))
        assert session.policy.is_free
        assert session.crop_rectangle() == CropRectangle(0, 0, 1000, 800)

    def test_rejects_empty_image(self):
        with pytest.raises(ValueError, match="must be positive"):
            CropSession(ImageDimensions(0, 100))

    def test_rejects_bad_scale_limits(self):
        with pytest.raises(ValueError, match="Scale limits"):
            CropSession(ImageDimensions(100, 100), min_scale=0)
        with pytest.raises(ValueError, match="Scale limits"):
            CropSession(ImageDimensions(100, 100), min_scale=2.0, max_scale=1.0)

    def test_frame_size_uses_policy(self, session):
        assert session.frame_size(320) == (320, 320)


class TestGestures:
    """Tests for drag/pinch updates, commits and cancellation"""

    def test_drag_update_is_live_only(self, session):
        session.update_drag(100, 0)
        assert session.state is SessionState.TRANSFORMING
        assert session.transform == DisplayTransform()
        assert session.effective_offset == (100, 0)
        # Live delta shows up in the rectangle while the drag is in flight
        session.update_pinch(2.0)
        assert session.crop_rectangle() == CropRectangle(200, 250, 500, 500)

    def test_identity_updates_do_not_start_transforming(self, session):
        session.update_drag(0, 0)
        assert session.state is SessionState.IDLE
        session.update_pinch(1.0)
        assert session.state is SessionState.IDLE
        session.update_drag(20, 0)
        session.commit()
        session.update_pinch(1.0)
        assert session.state is SessionState.COMMITTED
        # A drag that returns to its start is no longer in flight
        session.update_drag(15, 0)
        session.update_drag(0, 0)
        assert session.state is SessionState.COMMITTED

    def test_drag_updates_replace_each_other(self, session):
        session.update_drag(10, 10)
        session.update_drag(30, -5)
        assert session.live_delta.offset_dx == 30
        assert session.live_delta.offset_dy == -5

    def test_cancel_discards_live_delta(self, session):
        session.update_drag(100, 0)
        session.commit()
        session.update_drag(400, 400)
        session.update_pinch(2.5)
        session.cancel()
        assert session.live_delta == LiveDelta()
        assert session.transform == DisplayTransform(100, 0, 1.0)
        assert session.state is SessionState.COMMITTED

    def test_cancel_from_identity_returns_to_idle(self, session):
        session.update_drag(5, 5)
        session.cancel()
        assert session.state is SessionState.IDLE

    def test_drag_and_pinch_commit_independently(self, session):
        session.update_drag(100, 0)
        session.end_drag()
        session.update_pinch(2.0)
        session.end_pinch()
        assert session.transform == DisplayTransform(100, 0, 2.0)
        assert session.state is SessionState.COMMITTED
        assert session.crop_rectangle() == CropRectangle(200, 250, 500, 500)

    def test_end_drag_keeps_pinch_in_flight(self, session):
        session.update_drag(10, 0)
        session.update_pinch(2.0)
        session.end_drag()
        assert session.transform == DisplayTransform(10, 0, 1.0)
        assert session.live_delta == LiveDelta(scale_multiplier=2.0)
        assert session.state is SessionState.TRANSFORMING
        session.end_pinch()
        assert session.transform == DisplayTransform(10, 0, 2.0)
        assert session.state is SessionState.COMMITTED

    def test_commits_accumulate(self, session):
        for _ in range(2):
            session.update_drag(50, 25)
            session.update_pinch(1.2)
            session.commit()
        assert session.transform.offset_x == 100
        assert session.transform.offset_y == 50
        assert session.transform.scale == pytest.approx(1.44)

    def test_commit_clamps_scale(self, session):
        session.update_pinch(10)
        session.commit()
        assert session.transform.scale == 3.0
        session.update_pinch(0.01)
        session.end_pinch()
        assert session.transform.scale == 0.5

    def test_commit_without_clamp_keeps_scale(self):
        session = CropSession(ImageDimensions(1000, 1000), SQUARE, clamp_scale=False)
        session.update_pinch(10)
        session.commit()
        assert session.transform.scale == 10

    def test_zero_scale_rejected_without_clamp(self):
        session = CropSession(ImageDimensions(1000, 1000), SQUARE, clamp_scale=False)
        session.update_pinch(0)
        session.commit()
        with pytest.raises(InvalidCropRegion):
            session.crop_rectangle()

    def test_reset_returns_to_identity(self, session):
        session.update_drag(300, 10)
        session.update_pinch(2.0)
        session.commit()
        session.update_drag(5, 5)
        session.reset()
        assert session.transform == DisplayTransform()
        assert session.live_delta == LiveDelta()
        assert session.state is SessionState.IDLE
        assert session.crop_rectangle() == CropRectangle(0, 0, 1000, 1000)

    def test_select_policy_resets_transform(self, session):
        session.update_pinch(2.0)
        session.commit()
        portrait = AspectPolicy.fixed("Portrait", 4, 5)
        session.select_policy(portrait)
        assert session.policy == portrait
        assert session.transform == DisplayTransform()
        assert session.crop_rectangle() == CropRectangle(0, 0, 1000, 1250)


class TestFinalize:
    """Tests for finalize / try_finalize"""

    def test_finalize_extracts_framed_region(self, quadrant_image):
        session = CropSession(ImageDimensions(200, 200), SQUARE)
        session.update_pinch(2.0)
        session.commit()
        cropped = session.finalize(quadrant_image)
        assert cropped.size == (100, 100)
        assert cropped.getpixel((0, 0)) == RED
        assert cropped.getpixel((99, 0)) == GREEN
        assert cropped.getpixel((99, 99)) == WHITE
        assert session.state is SessionState.FINALIZED

    def test_finalize_follows_pan(self, quadrant_image):
        session = CropSession(ImageDimensions(200, 200), SQUARE)
        session.update_pinch(2.0)
        session.update_drag(-100, 0)
        session.commit()
        assert session.crop_rectangle() == CropRectangle(100, 50, 100, 100)
        cropped = session.finalize(quadrant_image)
        assert cropped.getpixel((0, 0)) == GREEN

    def test_finalized_session_rejects_gestures(self, quadrant_image):
        session = CropSession(ImageDimensions(200, 200), SQUARE)
        session.finalize(quadrant_image)
        with pytest.raises(SessionFinalized):
            session.update_drag(1, 1)
        with pytest.raises(SessionFinalized):
            session.reset()
        with pytest.raises(SessionFinalized):
            session.finalize(quadrant_image)

    def test_try_finalize_returns_none_on_invalid_region(self, quadrant_image):
        session = CropSession(ImageDimensions(200, 200), SQUARE)
        session.update_drag(-1000, 0)
        session.commit()
        assert session.try_finalize(quadrant_image) is None
        # Session stays open so the caller can reset and retry
        assert session.state is SessionState.COMMITTED
        session.reset()
        assert session.try_finalize(quadrant_image).size == (200, 200)

    def test_finalize_raises_on_invalid_region(self, quadrant_image):
        session = CropSession(ImageDimensions(200, 200), SQUARE, clamp_scale=False)
        session.update_pinch(-1)
        session.commit()
        with pytest.raises(InvalidCropRegion):
            session.finalize(quadrant_image)

    def test_finalize_rejects_mismatched_image(self, quadrant_image):
        session = CropSession(ImageDimensions(300, 300), SQUARE)
        with pytest.raises(ValueError, match="does not match"):
            session.finalize(quadrant_image)
