"""
Qt-free image I/O utilities.

Provides helpers to open images (including PSD), read dimensions without
full loading, extract a crop region, save with export settings and
generate unique file paths.
"""

import logging
from pathlib import Path

from PIL import Image
from psd_tools import PSDImage

from photo_cropper.geometry import extraction_box
from photo_cropper.models import CropRectangle, ImageDimensions

logger = logging.getLogger(__name__)

# Allow very large images (Pillow's default limit is ~178MP)
Image.MAX_IMAGE_PIXELS = None

# Accepted suffixes per export format; the first is used when replacing
_FORMAT_SUFFIXES = {
    "JPEG": (".jpg", ".jpeg"),
    "PNG": (".png",),
}


def open_image(path: Path) -> Image.Image:
    """Open an image file, using psd-tools for PSD and Pillow for the rest."""
    if path.suffix.lower() == ".psd":
        psd = PSDImage.open(str(path))
        return psd.composite()
    img = Image.open(path)
    img.load()
    return img


def get_image_size(path: Path) -> tuple[int, int]:
    """Get image dimensions without fully loading/compositing."""
    if path.suffix.lower() == ".psd":
        psd = PSDImage.open(str(path))
        return psd.width, psd.height
    with Image.open(path) as img:
        return img.size


def image_dimensions(img: Image.Image) -> ImageDimensions:
    return ImageDimensions(img.width, img.height)


def extract_region(img: Image.Image, rect: CropRectangle) -> Image.Image:
    """
    Cut *rect* out of *img*.

    The rectangle is limited to the image bounds first; raises
    InvalidCropRegion if no pixels remain.
    """
    box = extraction_box(rect, image_dimensions(img))
    logger.debug("Extracting box %s from %dx%d image", box, img.width, img.height)
    return img.crop(box)


def save_image(img: Image.Image, out_path: Path, export: dict, overwrite: bool = False) -> Path:
    """
    Save *img* to *out_path* using the export settings.

    A suffix that does not match the export format is replaced (``.jpeg``
    counts as JPEG).  Unless *overwrite* is set, an existing file is never
    replaced (see ``unique_path``).  Returns the path written.
    """
    fmt = export.get("format", "PNG")
    out_path = _with_format_suffix(out_path, fmt)
    if not overwrite:
        out_path = unique_path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)

    if fmt == "JPEG":
        img.convert("RGB").save(
            str(out_path), "JPEG",
            quality=export.get("jpeg_quality", 95),
            optimize=export.get("jpeg_optimize", True),
            subsampling=export.get("jpeg_subsampling", 0),
        )
    else:
        img.save(str(out_path), "PNG", compress_level=export.get("compress_level", 9))

    logger.info("Saved %dx%d crop to %s", img.width, img.height, out_path)
    return out_path


def _with_format_suffix(out_path: Path, fmt: str) -> Path:
    suffixes = _FORMAT_SUFFIXES.get(fmt, (".png",))
    if out_path.suffix.lower() in suffixes:
        return out_path
    return out_path.with_suffix(suffixes[0])


def unique_path(out_path: Path) -> Path:
    """Return a unique path by appending -01, -02, etc. if file already exists."""
    if not out_path.exists():
        return out_path
    stem = out_path.stem
    suffix = out_path.suffix
    parent = out_path.parent
    counter = 1
    while True:
        candidate = parent / f"{stem}-{counter:02d}{suffix}"
        if not candidate.exists():
            return candidate
        counter += 1
