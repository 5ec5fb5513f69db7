"""
Pytest configuration and shared fixtures.

Every test gets its own config directory so policies.json never touches the
user's real settings.
"""

from pathlib import Path

import pytest
from PIL import Image

from photo_cropper.config import CONFIG_DIR_ENV

RED = (255, 0, 0)
GREEN = (0, 255, 0)
BLUE = (0, 0, 255)
WHITE = (255, 255, 255)


@pytest.fixture(autouse=True)
def isolated_config_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point config_dir() at a per-test temporary directory."""
    directory = tmp_path / "config"
    directory.mkdir()
    monkeypatch.setenv(CONFIG_DIR_ENV, str(directory))
    return directory


def make_quadrant_image(width: int, height: int) -> Image.Image:
    """RGB image with red, green, blue and white quadrants (TL, TR, BL, BR)."""
    img = Image.new("RGB", (width, height))
    half_w, half_h = width // 2, height // 2
    img.paste(RED, (0, 0, half_w, half_h))
    img.paste(GREEN, (half_w, 0, width, half_h))
    img.paste(BLUE, (0, half_h, half_w, height))
    img.paste(WHITE, (half_w, half_h, width, height))
    return img


@pytest.fixture
def quadrant_image() -> Image.Image:
    """200x200 quadrant image."""
    return make_quadrant_image(200, 200)


@pytest.fixture
def quadrant_png(tmp_path: Path) -> Path:
    """200x200 quadrant image saved as PNG."""
    path = tmp_path / "photo.png"
    make_quadrant_image(200, 200).save(path)
    return path


@pytest.fixture
def wide_png(tmp_path: Path) -> Path:
    """200x100 quadrant image saved as PNG."""
    path = tmp_path / "wide.png"
    make_quadrant_image(200, 100).save(path)
    return path
