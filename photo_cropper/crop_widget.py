"""
Pan/zoom crop widget and Qt image helpers.

This module contains everything that touches both Qt **and** image display:
``pil_to_qpixmap``, the background ``ImageLoaderThread`` and the
``PanZoomCropWidget`` editor.  The widget owns no geometry of its own; it
turns mouse, wheel, key and native pinch events into drag/pinch updates on
a ``CropSession`` and paints what the session describes.

Drag distances arrive in widget pixels and are divided by the display
factor (widget pixels per image pixel) before reaching the session, so the
committed offset is in source pixels and the crop matches the frame.
"""

from pathlib import Path

from PIL import Image
from PyQt6.QtWidgets import QWidget, QSizePolicy
from PyQt6.QtCore import Qt, QEvent, QRectF, QPointF, pyqtSignal, QThread
from PyQt6.QtGui import (
    QPainter, QPixmap, QColor, QPen, QBrush, QImage,
    QKeyEvent, QMouseEvent, QPaintEvent, QWheelEvent,
)

from photo_cropper.config import CORNER_DOT_SIZE, NUDGE_LARGE, NUDGE_SMALL, WHEEL_ZOOM_STEP
from photo_cropper.image_io import open_image
from photo_cropper.models import InvalidCropRegion
from photo_cropper.session import CropSession

# Space kept free around the frame (widget pixels)
_FRAME_MARGIN = 20


# =============================================================================
# Qt ↔ PIL helpers
# =============================================================================

def pil_to_qpixmap(pil_img: Image.Image) -> QPixmap:
    """Convert a PIL Image to QPixmap."""
    img_rgba = pil_img.convert("RGBA")
    data = img_rgba.tobytes("raw", "RGBA")
    qimg = QImage(data, img_rgba.width, img_rgba.height, QImage.Format.Format_RGBA8888)
    # QImage borrows the buffer; copy before it goes away
    return QPixmap.fromImage(qimg.copy())


# =============================================================================
# Background image loader
# =============================================================================

class ImageLoaderThread(QThread):
    """Background thread for decoding images (large PSDs take a while)."""
    finished = pyqtSignal(object)  # PIL.Image.Image
    error = pyqtSignal(str)

    def __init__(self, path: Path, parent=None):
        super().__init__(parent)
        self._path = path

    def run(self):
        try:
            self.finished.emit(open_image(self._path))
        except Exception as e:
            self.error.emit(str(e))


# =============================================================================
# Pan/zoom crop widget
# =============================================================================

class PanZoomCropWidget(QWidget):
    """Shows an image inside a fixed-shape frame; drag pans, wheel/pinch zooms."""

    transform_changed = pyqtSignal()

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setMinimumSize(400, 300)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)

        self._pixmap: QPixmap | None = None
        self._session: CropSession | None = None
        self._loading = False

        # Interaction state
        self._dragging = False
        self._drag_start = QPointF()
        self._pinch_total = 1.0

    def set_loading(self, loading: bool):
        """Show/hide loading indicator."""
        self._loading = loading
        self.update()

    def set_session(self, pixmap: QPixmap, session: CropSession):
        """Display *pixmap* (full image resolution) driven by *session*."""
        self._loading = False
        self._pixmap = pixmap
        self._session = session
        self._dragging = False
        self.update()

    def session(self) -> CropSession | None:
        return self._session

    def has_image(self) -> bool:
        return self._pixmap is not None and self._session is not None

    def clear(self):
        self._pixmap = None
        self._session = None
        self._dragging = False
        self.update()

    # --- Frame layout ---

    def frame_rect(self) -> QRectF:
        """Frame position in widget coordinates, centered and fitted to the widget."""
        if not self.has_image():
            return QRectF()
        avail_w = max(1, self.width() - 2 * _FRAME_MARGIN)
        avail_h = max(1, self.height() - 2 * _FRAME_MARGIN)
        fw, fh = self._session.frame_size(avail_w)
        if fh > avail_h:
            fw, fh = self._session.frame_size(avail_w * avail_h / fh)
        return QRectF((self.width() - fw) / 2, (self.height() - fh) / 2, fw, fh)

    def display_factor(self) -> float:
        """Widget pixels per source-image pixel."""
        if not self.has_image():
            return 0.0
        return self.frame_rect().width() / self._session.image_dims.width

    def _to_image_units(self, dx: float, dy: float) -> tuple[float, float]:
        factor = self.display_factor()
        if factor == 0:
            return 0.0, 0.0
        return dx / factor, dy / factor

    # --- Gesture entry points (also used by tests) ---

    def begin_drag(self, pos: QPointF):
        if not self.has_image():
            return
        self._dragging = True
        self._drag_start = QPointF(pos)

    def drag_to(self, pos: QPointF):
        if not self._dragging:
            return
        delta = pos - self._drag_start
        self._session.update_drag(*self._to_image_units(delta.x(), delta.y()))
        self.transform_changed.emit()
        self.update()

    def end_drag(self):
        if not self._dragging:
            return
        self._dragging = False
        self._session.end_drag()
        self.transform_changed.emit()
        self.update()

    def zoom_by_steps(self, steps: float):
        """Zoom by wheel notches; positive zooms in.  Commits immediately."""
        if not self.has_image() or steps == 0:
            return
        self._session.update_pinch(WHEEL_ZOOM_STEP ** steps)
        self._session.end_pinch()
        self.transform_changed.emit()
        self.update()

    def pinch_update(self, total_factor: float):
        if not self.has_image():
            return
        self._session.update_pinch(total_factor)
        self.transform_changed.emit()
        self.update()

    def pinch_end(self):
        if not self.has_image():
            return
        self._session.end_pinch()
        self.transform_changed.emit()
        self.update()

    def nudge(self, dx: float, dy: float):
        """Pan by a fixed amount of widget pixels."""
        if not self.has_image():
            return
        self._session.update_drag(*self._to_image_units(dx, dy))
        self._session.end_drag()
        self.transform_changed.emit()
        self.update()

    def reset_view(self):
        if not self.has_image():
            return
        self._dragging = False
        self._session.reset()
        self.transform_changed.emit()
        self.update()

    # --- Painting ---

    def paintEvent(self, event: QPaintEvent):
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
        painter.fillRect(self.rect(), QColor(0, 0, 0))

        if not self.has_image():
            painter.setPen(QColor(128, 128, 128))
            msg = "Loading image…" if self._loading else "No image loaded"
            painter.drawText(self.rect(), Qt.AlignmentFlag.AlignCenter, msg)
            painter.end()
            return

        frame = self.frame_rect()
        session = self._session
        crop_w = frame.width() / self.display_factor()
        crop_h = frame.height() / self.display_factor()
        scale = session.effective_scale
        off_x, off_y = session.effective_offset

        # Forward transform, in image units: scale around frame center, then pan
        painter.save()
        painter.translate(frame.topLeft())
        painter.scale(self.display_factor(), self.display_factor())
        painter.translate(crop_w / 2 + off_x, crop_h / 2 + off_y)
        painter.scale(scale, scale)
        painter.translate(-crop_w / 2, -crop_h / 2)
        painter.drawPixmap(
            QRectF(0, 0, session.image_dims.width, session.image_dims.height),
            self._pixmap,
            QRectF(self._pixmap.rect()),
        )
        painter.restore()

        # Dim everything outside the frame
        dim = QColor(0, 0, 0, 128)
        full = QRectF(self.rect())
        painter.fillRect(QRectF(full.left(), full.top(), full.width(), frame.top() - full.top()), dim)
        painter.fillRect(QRectF(full.left(), frame.bottom(), full.width(), full.bottom() - frame.bottom()), dim)
        painter.fillRect(QRectF(full.left(), frame.top(), frame.left() - full.left(), frame.height()), dim)
        painter.fillRect(QRectF(frame.right(), frame.top(), full.right() - frame.right(), frame.height()), dim)

        # Frame border
        painter.setPen(QPen(QColor(255, 255, 255), 2))
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawRect(frame)

        # Rule-of-thirds guides
        painter.setPen(QPen(QColor(255, 255, 255, 80), 1, Qt.PenStyle.DashLine))
        for i in range(1, 3):
            x = frame.left() + frame.width() * i / 3
            painter.drawLine(QPointF(x, frame.top()), QPointF(x, frame.bottom()))
            y = frame.top() + frame.height() * i / 3
            painter.drawLine(QPointF(frame.left(), y), QPointF(frame.right(), y))

        # Corner dots
        painter.setPen(QPen(QColor(0, 0, 0), 1))
        painter.setBrush(QBrush(QColor(255, 255, 255)))
        inset = 10
        r = CORNER_DOT_SIZE / 2
        for cx, cy in (
            (frame.left() + inset, frame.top() + inset),
            (frame.right() - inset, frame.top() + inset),
            (frame.left() + inset, frame.bottom() - inset),
            (frame.right() - inset, frame.bottom() - inset),
        ):
            painter.drawEllipse(QPointF(cx, cy), r, r)

        # Crop size label
        try:
            rect = session.crop_rectangle()
        except InvalidCropRegion:
            label = "Out of frame"
        else:
            label = f"{round(rect.width)} × {round(rect.height)}"
        painter.setPen(QColor(255, 255, 255))
        painter.drawText(
            frame.adjusted(0, -20, 0, 0).toRect(),
            Qt.AlignmentFlag.AlignHCenter | Qt.AlignmentFlag.AlignTop,
            label,
        )

        painter.end()

    # --- Mouse interaction ---

    def mousePressEvent(self, event: QMouseEvent):
        if event.button() != Qt.MouseButton.LeftButton or not self.has_image():
            return
        self.begin_drag(event.position())
        self.setCursor(Qt.CursorShape.ClosedHandCursor)

    def mouseMoveEvent(self, event: QMouseEvent):
        self.drag_to(event.position())

    def mouseReleaseEvent(self, event: QMouseEvent):
        if event.button() == Qt.MouseButton.LeftButton:
            self.end_drag()
            self.setCursor(Qt.CursorShape.OpenHandCursor if self.has_image() else Qt.CursorShape.ArrowCursor)

    def wheelEvent(self, event: QWheelEvent):
        self.zoom_by_steps(event.angleDelta().y() / 120)
        event.accept()

    def event(self, event: QEvent) -> bool:
        # Trackpad pinch arrives as a native gesture with incremental values
        if event.type() == QEvent.Type.NativeGesture and self.has_image():
            gesture = event.gestureType()
            if gesture == Qt.NativeGestureType.BeginNativeGesture:
                self._pinch_total = 1.0
                return True
            if gesture == Qt.NativeGestureType.ZoomNativeGesture:
                self._pinch_total *= 1.0 + event.value()
                self.pinch_update(self._pinch_total)
                return True
            if gesture == Qt.NativeGestureType.EndNativeGesture:
                self._pinch_total = 1.0
                self.pinch_end()
                return True
        return super().event(event)

    # --- Keyboard ---

    def keyPressEvent(self, event: QKeyEvent):
        if not self.has_image():
            return
        amount = NUDGE_LARGE if event.modifiers() & Qt.KeyboardModifier.ShiftModifier else NUDGE_SMALL
        key = event.key()
        if key == Qt.Key.Key_Left:
            self.nudge(-amount, 0)
        elif key == Qt.Key.Key_Right:
            self.nudge(amount, 0)
        elif key == Qt.Key.Key_Up:
            self.nudge(0, -amount)
        elif key == Qt.Key.Key_Down:
            self.nudge(0, amount)
        elif key in (Qt.Key.Key_Plus, Qt.Key.Key_Equal):
            self.zoom_by_steps(1)
        elif key == Qt.Key.Key_Minus:
            self.zoom_by_steps(-1)
        elif key == Qt.Key.Key_Escape and self._dragging:
            self._dragging = False
            self._session.cancel()
            self.transform_changed.emit()
            self.update()
        else:
            super().keyPressEvent(event)
