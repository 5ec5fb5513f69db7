"""
Unit tests for the photo_cropper command line.

Runs the Typer app in-process with CliRunner.
"""
from PIL import Image
from typer.testing import CliRunner

from photo_cropper.cli import app

runner = CliRunner()

RED = (255, 0, 0)


class TestRectCommand:
    """Tests for `rect`"""

    def test_default_square_identity(self, quadrant_png):
        result = runner.invoke(app, ["rect", str(quadrant_png)])
        assert result.exit_code == 0, result.output
        assert result.output.strip() == "0 0 200 200"

    def test_zoom(self, quadrant_png):
        result = runner.invoke(app, ["rect", str(quadrant_png), "--scale", "2"])
        assert result.exit_code == 0, result.output
        assert result.output.strip() == "50 50 100 100"

    def test_zoom_and_pan(self, quadrant_png):
        result = runner.invoke(app, ["rect", str(quadrant_png), "-s", "2", "--offset", "40", "20"])
        assert result.exit_code == 0, result.output
        assert result.output.strip() == "30 40 100 100"

    def test_original_policy(self, wide_png):
        result = runner.invoke(app, ["rect", str(wide_png), "--policy", "original"])
        assert result.exit_code == 0, result.output
        assert result.output.strip() == "0 0 200 100"

    def test_scale_clamped_by_default(self, quadrant_png):
        result = runner.invoke(app, ["rect", str(quadrant_png), "--scale", "10"])
        assert result.exit_code == 0, result.output
        assert result.output.split()[2] == "66.6667"

    def test_zero_scale_without_clamp_fails(self, quadrant_png):
        result = runner.invoke(app, ["rect", str(quadrant_png), "--scale", "0", "--no-clamp"])
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_unknown_policy_fails(self, quadrant_png):
        result = runner.invoke(app, ["rect", str(quadrant_png), "--policy", "panorama"])
        assert result.exit_code == 1
        assert "Unknown aspect policy" in result.output


class TestCropCommand:
    """Tests for `crop`"""

    def test_writes_cropped_png(self, tmp_path, quadrant_png):
        out = tmp_path / "result.png"
        result = runner.invoke(app, ["crop", str(quadrant_png), "-o", str(out), "--scale", "2"])
        assert result.exit_code == 0, result.output
        assert "Saved" in result.output
        with Image.open(out) as saved:
            assert saved.size == (100, 100)
            assert saved.convert("RGB").getpixel((0, 0)) == RED

    def test_default_output_name_and_jpeg(self, quadrant_png):
        result = runner.invoke(app, ["crop", str(quadrant_png), "--format", "jpeg", "-q", "70"])
        assert result.exit_code == 0, result.output
        out = quadrant_png.with_name("photo-cropped.jpg")
        assert out.exists()
        with Image.open(out) as saved:
            assert saved.format == "JPEG"

    def test_panned_out_of_frame_fails(self, tmp_path, quadrant_png):
        out = tmp_path / "never.png"
        result = runner.invoke(app, ["crop", str(quadrant_png), "-o", str(out), "--offset", "-1000", "0"])
        assert result.exit_code == 1
        assert "Error:" in result.output
        assert not out.exists()

    def test_unsupported_format(self, quadrant_png):
        result = runner.invoke(app, ["crop", str(quadrant_png), "--format", "gif"])
        assert result.exit_code == 1
        assert "Unsupported format" in result.output
