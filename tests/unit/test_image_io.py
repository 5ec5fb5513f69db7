"""
Unit tests for photo_cropper.image_io.

Uses small Pillow-generated images written to tmp_path.
"""
import pytest
from PIL import Image

from photo_cropper.config import default_export_settings
from photo_cropper.image_io import (
    extract_region,
    get_image_size,
    image_dimensions,
    open_image,
    save_image,
    unique_path,
)
from photo_cropper.models import CropRectangle, ImageDimensions, InvalidCropRegion

BLUE = (0, 0, 255)
WHITE = (255, 255, 255)


class TestOpenImage:
    """Tests for open_image / get_image_size / image_dimensions"""

    def test_open_png(self, quadrant_png):
        img = open_image(quadrant_png)
        assert img.size == (200, 200)
        assert image_dimensions(img) == ImageDimensions(200, 200)

    def test_get_image_size(self, wide_png):
        assert get_image_size(wide_png) == (200, 100)

    def test_missing_file(self, tmp_path):
        with pytest.raises(OSError):
            open_image(tmp_path / "missing.png")


class TestExtractRegion:
    """Tests for extract_region"""

    def test_extracts_pixels(self, quadrant_image):
        cropped = extract_region(quadrant_image, CropRectangle(50, 120, 60, 40))
        assert cropped.size == (60, 40)
        assert cropped.getpixel((0, 0)) == BLUE
        assert cropped.getpixel((59, 39)) == WHITE

    def test_tall_fixed_ratio_truncated_at_image_edge(self):
        img = Image.new("RGB", (100, 80))
        cropped = extract_region(img, CropRectangle(0, 0, 100, 125))
        assert cropped.size == (100, 80)

    def test_region_outside_image(self, quadrant_image):
        with pytest.raises(InvalidCropRegion):
            extract_region(quadrant_image, CropRectangle(250, 0, 50, 50))


class TestSaveImage:
    """Tests for save_image and unique_path"""

    def test_png(self, tmp_path, quadrant_image):
        out = save_image(quadrant_image, tmp_path / "out" / "crop", default_export_settings())
        assert out == tmp_path / "out" / "crop.png"
        with Image.open(out) as saved:
            assert saved.format == "PNG"
            assert saved.size == (200, 200)

    def test_jpeg(self, tmp_path):
        export = default_export_settings()
        export["format"] = "JPEG"
        export["jpeg_quality"] = 80
        rgba = Image.new("RGBA", (40, 30), (10, 20, 30, 128))
        out = save_image(rgba, tmp_path / "crop.png", export)
        assert out.suffix == ".jpg"
        with Image.open(out) as saved:
            assert saved.format == "JPEG"
            assert saved.size == (40, 30)

    def test_never_overwrites(self, tmp_path, quadrant_image):
        first = save_image(quadrant_image, tmp_path / "crop.png", default_export_settings())
        second = save_image(quadrant_image, tmp_path / "crop.png", default_export_settings())
        assert first.name == "crop.png"
        assert second.name == "crop-01.png"

    def test_overwrite_writes_exact_path(self, tmp_path, quadrant_image):
        target = tmp_path / "crop.png"
        save_image(Image.new("RGB", (10, 10)), target, default_export_settings())
        out = save_image(quadrant_image, target, default_export_settings(), overwrite=True)
        assert out == target
        assert not (tmp_path / "crop-01.png").exists()
        with Image.open(out) as saved:
            assert saved.size == (200, 200)

    def test_jpeg_suffix_kept(self, tmp_path, quadrant_image):
        export = default_export_settings()
        export["format"] = "JPEG"
        out = save_image(quadrant_image, tmp_path / "crop.JPEG", export, overwrite=True)
        assert out == tmp_path / "crop.JPEG"

    def test_unique_path(self, tmp_path):
        target = tmp_path / "a.png"
        assert unique_path(target) == target
        target.touch()
        (tmp_path / "a-01.png").touch()
        assert unique_path(target) == tmp_path / "a-02.png"
