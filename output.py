"""Encode a rendered dashboard buffer and write it to its destination."""
from __future__ import annotations

import logging
import os

from PIL import Image, ImageOps


class OutputError(RuntimeError):
    """The destination could not be opened or written."""


def prepare_image(image: Image.Image, *, grayscale: bool = True, rotation: int = 0) -> Image.Image:
    """Apply the e-ink post-processing: 8-bit grayscale and rotation."""

    prepared = image
    if grayscale:
        if prepared.mode == "RGBA":
            background = Image.new("RGBA", prepared.size, (255, 255, 255, 255))
            prepared = Image.alpha_composite(background, prepared)
        prepared = ImageOps.grayscale(prepared)
    if rotation % 360:
        prepared = prepared.rotate(rotation, expand=True)
    return prepared


def write_image(
    image: Image.Image,
    destination: str,
    *,
    grayscale: bool = True,
    rotation: int = 0,
) -> str:
    """Write *image* as PNG to *destination*.

    The file is written to a temporary sibling first and moved into place,
    so readers never see a half-written image. Raises OutputError.
    """

    prepared = prepare_image(image, grayscale=grayscale, rotation=rotation)
    tmp_path = f"{destination}.tmp"
    try:
        with open(tmp_path, "wb") as fh:
            prepared.save(fh, format="PNG")
            fh.flush()
        os.replace(tmp_path, destination)
    except (OSError, ValueError) as exc:
        try:
            os.remove(tmp_path)
        except OSError:
            pass
        raise OutputError(f"Could not write {destination}: {exc}") from exc

    logging.info("Successfully wrote image %s", destination)
    return destination
