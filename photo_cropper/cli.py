"""Typer-based command line for cropping without the editor."""

import functools
import logging
from pathlib import Path

import typer
from rich import print

from photo_cropper.config import (
    DEFAULT_POLICY_NAME,
    JPEG_QUALITY_DEFAULT,
    OUTPUT_FORMATS,
    default_export_settings,
)
from photo_cropper.image_io import get_image_size, open_image, save_image
from photo_cropper.models import CropError, ImageDimensions
from photo_cropper.policies import find_policy, load_policies
from photo_cropper.session import CropSession

app = typer.Typer(help="Pan/zoom photo cropper: apply a display transform to a photo")


def _handle_errors(func):
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except CropError as exc:
            typer.echo(f"Error: {exc}", err=True)
            raise typer.Exit(1) from exc
        except (ValueError, OSError) as exc:
            typer.echo(f"Unexpected error: {exc}", err=True)
            raise typer.Exit(1) from exc

    return wrapper


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _build_session(
    dims: ImageDimensions,
    policy_name: str,
    scale: float,
    offset: tuple[float, float],
    clamp: bool,
) -> CropSession:
    """Session with the requested pan/zoom applied as one committed gesture."""
    policy = find_policy(load_policies(), policy_name)
    session = CropSession(dims, policy, clamp_scale=clamp)
    session.update_drag(*offset)
    session.update_pinch(scale)
    session.commit()
    return session


@app.command()
@_handle_errors
def rect(
    image: Path = typer.Argument(..., exists=True, dir_okay=False),
    policy: str = typer.Option(DEFAULT_POLICY_NAME, "--policy", "-p", help="Policy name or W:H"),
    scale: float = typer.Option(1.0, "--scale", "-s"),
    offset: tuple[float, float] = typer.Option((0.0, 0.0), "--offset", help="Pan offset X Y in source pixels"),
    clamp: bool = typer.Option(True, "--clamp/--no-clamp", help="Clamp scale to the configured limits"),
) -> None:
    """Print the crop rectangle as 'x y width height'."""

    w, h = get_image_size(image)
    session = _build_session(ImageDimensions(w, h), policy, scale, offset, clamp)
    r = session.crop_rectangle()
    typer.echo(f"{r.x:g} {r.y:g} {r.width:g} {r.height:g}")


@app.command()
@_handle_errors
def crop(
    image: Path = typer.Argument(..., exists=True, dir_okay=False),
    output: Path | None = typer.Option(None, "--output", "-o", help="Output file (suffix follows format)"),
    policy: str = typer.Option(DEFAULT_POLICY_NAME, "--policy", "-p", help="Policy name or W:H"),
    scale: float = typer.Option(1.0, "--scale", "-s"),
    offset: tuple[float, float] = typer.Option((0.0, 0.0), "--offset", help="Pan offset X Y in source pixels"),
    clamp: bool = typer.Option(True, "--clamp/--no-clamp", help="Clamp scale to the configured limits"),
    fmt: str = typer.Option("PNG", "--format", "-f", help="PNG or JPEG"),
    quality: int = typer.Option(JPEG_QUALITY_DEFAULT, "--quality", "-q", min=1, max=100),
) -> None:
    """Crop IMAGE with the given pan/zoom and save the result."""

    fmt = fmt.upper()
    if fmt not in OUTPUT_FORMATS:
        raise ValueError(f"Unsupported format '{fmt}'. Choose from: {', '.join(OUTPUT_FORMATS)}")

    img = open_image(image)
    session = _build_session(ImageDimensions(img.width, img.height), policy, scale, offset, clamp)
    cropped = session.finalize(img)

    export = default_export_settings()
    export["format"] = fmt
    export["jpeg_quality"] = quality
    out_path = output or image.with_name(f"{image.stem}-cropped")
    written = save_image(cropped, out_path, export)
    print(f"[green]Saved {cropped.width}x{cropped.height} crop to {written}")
