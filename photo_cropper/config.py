"""
Application constants and configuration.

DEFAULT_POLICIES provides the built-in aspect policies. Runtime policies are
loaded from policies.json via the policies module. All other constants control
gesture limits, editor behaviour and export defaults.

The ``config_dir()`` helper returns the platform-appropriate config
directory used by the policies module.
"""

import os
import sys
from pathlib import Path

# =============================================================================
# APP IDENTITY & CONFIG DIRECTORY
# =============================================================================
APP_NAME = "photo-cropper"

# Overrides the platform config directory (used by tests and portable installs)
CONFIG_DIR_ENV = "PHOTO_CROPPER_CONFIG_DIR"


def config_dir() -> Path:
    """Return the platform-appropriate config directory, creating it if needed."""
    override = os.environ.get(CONFIG_DIR_ENV)
    if override:
        directory = Path(override)
    else:
        if sys.platform == "win32":
            base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
        elif sys.platform == "darwin":
            base = Path.home() / "Library" / "Application Support"
        else:
            base = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
        directory = base / APP_NAME
    directory.mkdir(parents=True, exist_ok=True)
    return directory

# =============================================================================
# DEFAULT POLICIES — Built-in fallback when policies.json is missing or corrupt
# =============================================================================
# A policy without ratio_w/ratio_h is free: the frame follows the image's own shape.
DEFAULT_POLICIES = [
    {"name": "Original"},
    {"name": "Square", "ratio_w": 1, "ratio_h": 1},
    {"name": "Portrait", "ratio_w": 4, "ratio_h": 5},
    {"name": "Landscape", "ratio_w": 5, "ratio_h": 4},
]

DEFAULT_POLICY_NAME = "Square"

# =============================================================================
# GESTURE LIMITS
# =============================================================================
MIN_SCALE = 0.5
MAX_SCALE = 3.0

# Clamp the committed scale to [MIN_SCALE, MAX_SCALE] when a pinch ends
CLAMP_SCALE_ON_COMMIT = True

# Scale multiplier per wheel notch (120 angle-delta units)
WHEEL_ZOOM_STEP = 1.1

# Pan nudge amounts (widget pixels)
NUDGE_SMALL = 1
NUDGE_LARGE = 10

# Corner dot diameter (widget pixels)
CORNER_DOT_SIZE = 6

# =============================================================================
# EXPORT
# =============================================================================
# PNG compression level (0-9, 9 = maximum compression)
PNG_COMPRESS_LEVEL = 9

# JPEG export defaults
JPEG_QUALITY_DEFAULT = 95
JPEG_QUALITY_MIN = 1
JPEG_QUALITY_MAX = 100
JPEG_SUBSAMPLING_OPTIONS = ["4:4:4", "4:2:2", "4:2:0"]
JPEG_SUBSAMPLING_DEFAULT = "4:4:4"

# Map subsampling labels to Pillow integer values
JPEG_SUBSAMPLING_MAP = {"4:4:4": 0, "4:2:2": 1, "4:2:0": 2}

# Output format options
OUTPUT_FORMATS = ["PNG", "JPEG"]
OUTPUT_FORMAT_DEFAULT = "PNG"

# Supported image extensions
IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".bmp", ".tiff", ".tif", ".webp", ".psd"}


def default_export_settings() -> dict:
    """Export settings dict understood by ``image_io.save_image``."""
    return {
        "format": OUTPUT_FORMAT_DEFAULT,
        "compress_level": PNG_COMPRESS_LEVEL,
        "jpeg_quality": JPEG_QUALITY_DEFAULT,
        "jpeg_subsampling": JPEG_SUBSAMPLING_MAP[JPEG_SUBSAMPLING_DEFAULT],
        "jpeg_optimize": True,
    }
