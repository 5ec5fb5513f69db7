"""
Main application window.

Hosts one cropping session at a time: open an image, pick a crop shape,
pan/zoom inside the frame and save the framed region.
"""

import logging
from pathlib import Path

from PIL import Image
from PyQt6.QtWidgets import (
    QMainWindow, QWidget, QVBoxLayout, QHBoxLayout,
    QPushButton, QLabel, QFileDialog, QGroupBox, QMessageBox,
    QStatusBar, QToolBar, QComboBox, QSlider, QApplication,
)
from PyQt6.QtCore import Qt
from PyQt6.QtGui import QAction, QKeySequence, QShortcut

from photo_cropper.config import (
    DEFAULT_POLICY_NAME, IMAGE_EXTENSIONS, PNG_COMPRESS_LEVEL,
    OUTPUT_FORMATS, OUTPUT_FORMAT_DEFAULT,
    JPEG_QUALITY_DEFAULT, JPEG_QUALITY_MIN, JPEG_QUALITY_MAX,
    JPEG_SUBSAMPLING_OPTIONS, JPEG_SUBSAMPLING_DEFAULT, JPEG_SUBSAMPLING_MAP,
)
from photo_cropper.crop_widget import PanZoomCropWidget, ImageLoaderThread, pil_to_qpixmap
from photo_cropper.image_io import extract_region, image_dimensions, save_image
from photo_cropper.models import InvalidCropRegion
from photo_cropper.policies import AspectPolicy, load_policies
from photo_cropper.session import CropSession

logger = logging.getLogger(__name__)


class MainWindow(QMainWindow):
    def __init__(self):
        super().__init__()
        self.setWindowTitle("Crop Photo")
        self.setMinimumSize(700, 500)

        # Screen-aware startup size, clamped to 80% of screen
        preferred_w, preferred_h = 1200, 900
        screen = QApplication.primaryScreen()
        if screen is not None:
            avail = screen.availableGeometry()
            preferred_w = min(preferred_w, int(avail.width() * 0.8))
            preferred_h = min(preferred_h, int(avail.height() * 0.8))
        self.resize(preferred_w, preferred_h)

        self._policies = load_policies()
        self._policy_idx = self._initial_policy_index()
        self._image: Image.Image | None = None
        self._image_path: Path | None = None
        self._loader: ImageLoaderThread | None = None

        self._build_ui()
        self._update_button_states()

    def _initial_policy_index(self) -> int:
        for i, policy in enumerate(self._policies):
            if policy.name == DEFAULT_POLICY_NAME:
                return i
        return 0

    @property
    def current_policy(self) -> AspectPolicy:
        return self._policies[self._policy_idx]

    # =========================================================================
    # UI construction
    # =========================================================================

    def _build_ui(self):
        self._build_toolbar()

        central = QWidget()
        self.setCentralWidget(central)
        main_layout = QHBoxLayout(central)
        main_layout.setContentsMargins(4, 4, 4, 4)

        self._crop_widget = PanZoomCropWidget()
        self._crop_widget.transform_changed.connect(self._update_crop_info)
        main_layout.addWidget(self._crop_widget, stretch=1)

        main_layout.addWidget(self._build_right_panel())

        self._status = QStatusBar()
        self.setStatusBar(self._status)
        self._status.showMessage("Open a photo to begin.")

        # --- Keyboard Shortcuts ---
        QShortcut(QKeySequence(Qt.Key.Key_R), self, self._reset_transform)
        QShortcut(QKeySequence(Qt.Key.Key_Tab), self, self._next_policy)
        QShortcut(QKeySequence(Qt.KeyboardModifier.ShiftModifier | Qt.Key.Key_Tab), self, self._prev_policy)
        QShortcut(QKeySequence(QKeySequence.StandardKey.Open), self, self._open_image)
        QShortcut(QKeySequence(QKeySequence.StandardKey.Save), self, self._crop_and_save)

    def _build_toolbar(self):
        toolbar = QToolBar("Main")
        toolbar.setMovable(False)
        self.addToolBar(toolbar)

        act_open = QAction("📂 Open Photo", self)
        act_open.triggered.connect(self._open_image)
        toolbar.addAction(act_open)

        toolbar.addSeparator()

        act_crop = QAction("✂ Crop && Save", self)
        act_crop.triggered.connect(self._crop_and_save)
        toolbar.addAction(act_crop)
        self._act_crop = act_crop

    def _build_right_panel(self) -> QWidget:
        right_panel = QWidget()
        right_panel.setFixedWidth(240)
        layout = QVBoxLayout(right_panel)
        layout.setContentsMargins(4, 0, 0, 0)

        layout.addWidget(self._build_policy_group())

        self._crop_info_label = QLabel("Crop: —")
        self._crop_info_label.setWordWrap(True)
        layout.addWidget(self._crop_info_label)

        btn_reset = QPushButton("↺ Reset Pan && Zoom")
        btn_reset.clicked.connect(self._reset_transform)
        layout.addWidget(btn_reset)
        self._btn_reset = btn_reset

        layout.addWidget(self._build_export_group())

        hint = QLabel("Drag to move • Wheel or pinch to zoom\nTab changes crop shape")
        hint.setStyleSheet("color: #aaa; font-size: 8pt;")
        layout.addWidget(hint)

        layout.addStretch()
        return right_panel

    def _build_policy_group(self) -> QGroupBox:
        group = QGroupBox("Aspect Ratio")
        group_layout = QVBoxLayout(group)
        self._policy_buttons: list[QPushButton] = []
        for i, policy in enumerate(self._policies):
            label = policy.name if policy.is_free else f"{policy.name} ({policy.key})"
            btn = QPushButton(label)
            btn.setCheckable(True)
            btn.setChecked(i == self._policy_idx)
            btn.clicked.connect(lambda checked, idx=i: self._on_policy_selected(idx))
            group_layout.addWidget(btn)
            self._policy_buttons.append(btn)
        return group

    def _build_export_group(self) -> QGroupBox:
        export_group = QGroupBox("Export Settings")
        export_layout = QVBoxLayout(export_group)

        fmt_row = QHBoxLayout()
        fmt_row.addWidget(QLabel("Format:"))
        self._export_format = QComboBox()
        self._export_format.addItems(OUTPUT_FORMATS)
        self._export_format.setCurrentText(OUTPUT_FORMAT_DEFAULT)
        self._export_format.currentTextChanged.connect(self._on_export_format_changed)
        fmt_row.addWidget(self._export_format)
        export_layout.addLayout(fmt_row)

        quality_row = QHBoxLayout()
        self._jpeg_quality_caption = QLabel("Quality:")
        quality_row.addWidget(self._jpeg_quality_caption)
        self._jpeg_quality_slider = QSlider(Qt.Orientation.Horizontal)
        self._jpeg_quality_slider.setRange(JPEG_QUALITY_MIN, JPEG_QUALITY_MAX)
        self._jpeg_quality_slider.setValue(JPEG_QUALITY_DEFAULT)
        quality_row.addWidget(self._jpeg_quality_slider, stretch=1)
        self._jpeg_quality_label = QLabel(str(JPEG_QUALITY_DEFAULT))
        self._jpeg_quality_label.setFixedWidth(24)
        quality_row.addWidget(self._jpeg_quality_label)
        self._jpeg_quality_slider.valueChanged.connect(
            lambda v: self._jpeg_quality_label.setText(str(v))
        )
        export_layout.addLayout(quality_row)

        sub_row = QHBoxLayout()
        self._jpeg_sub_caption = QLabel("Subsampling:")
        sub_row.addWidget(self._jpeg_sub_caption)
        self._jpeg_subsampling = QComboBox()
        self._jpeg_subsampling.addItems(JPEG_SUBSAMPLING_OPTIONS)
        self._jpeg_subsampling.setCurrentText(JPEG_SUBSAMPLING_DEFAULT)
        sub_row.addWidget(self._jpeg_subsampling)
        export_layout.addLayout(sub_row)

        self._on_export_format_changed(self._export_format.currentText())
        return export_group

    def _on_export_format_changed(self, fmt: str):
        """Show/hide JPEG-specific controls based on selected format."""
        is_jpeg = fmt == "JPEG"
        for w in (
            self._jpeg_quality_caption, self._jpeg_quality_slider, self._jpeg_quality_label,
            self._jpeg_sub_caption, self._jpeg_subsampling,
        ):
            w.setVisible(is_jpeg)

    def _get_export_settings(self) -> dict:
        """Build export settings dict from current UI state."""
        return {
            "format": self._export_format.currentText(),
            "compress_level": PNG_COMPRESS_LEVEL,
            "jpeg_quality": self._jpeg_quality_slider.value(),
            "jpeg_subsampling": JPEG_SUBSAMPLING_MAP[self._jpeg_subsampling.currentText()],
            "jpeg_optimize": True,
        }

    # =========================================================================
    # Image loading
    # =========================================================================

    def _open_image(self):
        patterns = " ".join(f"*{ext}" for ext in sorted(IMAGE_EXTENSIONS))
        path, _ = QFileDialog.getOpenFileName(self, "Open Photo", "", f"Images ({patterns})")
        if path:
            self.load_path(Path(path))

    def load_path(self, path: Path):
        """Decode *path* in the background and start a new session when done."""
        self._image = None
        self._image_path = path
        self._crop_widget.clear()
        self._crop_widget.set_loading(True)
        self._update_button_states()

        if self._loader is not None:
            try:
                self._loader.finished.disconnect()
                self._loader.error.disconnect()
            except (TypeError, RuntimeError):
                pass  # Already disconnected or destroyed
            if self._loader.isRunning():
                self._loader.quit()
                self._loader.wait(500)

        self._loader = ImageLoaderThread(path, self)
        self._loader.finished.connect(lambda img, p=path: self._on_image_loaded(p, img))
        self._loader.error.connect(self._on_image_load_error)
        self._loader.start()

    def _on_image_loaded(self, path: Path, img: Image.Image):
        if path != self._image_path:
            return  # Another image was opened before loading finished
        self._image = img
        self._start_session()
        self._status.showMessage(f"Loaded {path.name} ({img.width}×{img.height})")

    def _on_image_load_error(self, error: str):
        self._crop_widget.set_loading(False)
        self._status.showMessage(f"Failed to load image: {error}")
        logger.warning("Failed to load %s: %s", self._image_path, error)

    def _start_session(self):
        session = CropSession(image_dimensions(self._image), self.current_policy)
        self._crop_widget.set_session(pil_to_qpixmap(self._image), session)
        self._update_crop_info()
        self._update_button_states()

    # =========================================================================
    # Policy selection
    # =========================================================================

    def _on_policy_selected(self, idx: int):
        for i, btn in enumerate(self._policy_buttons):
            btn.setChecked(i == idx)
        self._policy_idx = idx
        session = self._crop_widget.session()
        if session is not None:
            session.select_policy(self.current_policy)
            self._crop_widget.update()
        self._update_crop_info()

    def _next_policy(self):
        self._on_policy_selected((self._policy_idx + 1) % len(self._policies))

    def _prev_policy(self):
        self._on_policy_selected((self._policy_idx - 1) % len(self._policies))

    def _reset_transform(self):
        self._crop_widget.reset_view()
        self._update_crop_info()

    def _update_crop_info(self):
        session = self._crop_widget.session()
        if session is None:
            self._crop_info_label.setText("Crop: —")
            return
        offset_x, offset_y = session.effective_offset
        try:
            rect = session.crop_rectangle()
        except InvalidCropRegion:
            crop_text = "Crop: outside image"
        else:
            crop_text = (
                f"Crop: {round(rect.width)}×{round(rect.height)}\n"
                f"Position: ({round(rect.x)}, {round(rect.y)})"
            )
        self._crop_info_label.setText(
            f"{crop_text}\n"
            f"Zoom: {session.effective_scale:.2f}×\n"
            f"Pan: ({offset_x:.0f}, {offset_y:.0f})"
        )

    def _update_button_states(self):
        has_session = self._crop_widget.has_image()
        self._act_crop.setEnabled(has_session)
        self._btn_reset.setEnabled(has_session)

    # =========================================================================
    # Crop / export
    # =========================================================================

    def _crop_and_save(self):
        session = self._crop_widget.session()
        if session is None or self._image is None:
            return

        export = self._get_export_settings()
        suffix = ".jpg" if export["format"] == "JPEG" else ".png"
        default = self._image_path.with_name(f"{self._image_path.stem}-cropped{suffix}")
        path, _ = QFileDialog.getSaveFileName(self, "Save Cropped Photo", str(default))
        if not path:
            return

        try:
            cropped = extract_region(self._image, session.crop_rectangle())
        except InvalidCropRegion as exc:
            logger.warning("Crop rejected: %s", exc)
            QMessageBox.warning(
                self, "Cannot Crop",
                "The photo has been moved out of the frame, so there is nothing to crop.\n"
                "Pan and zoom have been reset; adjust the photo and try again.",
            )
            session.reset()
            self._crop_widget.update()
            self._update_crop_info()
            return

        # The dialog already confirmed any overwrite
        try:
            out_path = save_image(cropped, Path(path), export, overwrite=True)
        except OSError as exc:
            logger.error("Failed to save %s: %s", path, exc)
            QMessageBox.critical(self, "Error", f"Failed to save {Path(path).name}:\n{exc}")
            # Framing is kept so the user can retry elsewhere
            return

        self._status.showMessage(f"Saved: {out_path}")
        # Crop is done; open a fresh session on the same photo
        self._start_session()
