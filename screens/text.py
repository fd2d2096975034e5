"""Font loading, text measurement and badge drawing for the dashboard."""
from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass
from typing import Tuple

from PIL import ImageDraw, ImageFont

from config import FONT_LABEL_FILE, FONT_VALUE_FILE, CanvasConfig

BADGE_MARGIN = 6
HALF_FONT_SCALE = 0.65
LINE_SPACING = 1.1

_ANCHORS = {
    "left": "ls",
    "center": "ms",
    "right": "rs",
}

Color = Tuple[int, int, int, int]


class FontLoadError(RuntimeError):
    """A font face could not be loaded; nothing can be rendered without it."""


@dataclass(frozen=True)
class FontSet:
    large: ImageFont.FreeTypeFont
    half: ImageFont.FreeTypeFont
    medium: ImageFont.FreeTypeFont
    small: ImageFont.FreeTypeFont


def half_font_size(font_large: int) -> int:
    """Reduced large-font size used by the side-by-side HALF cells."""

    return max(1, int(round(font_large * HALF_FONT_SCALE)))


def line_height(size: int) -> int:
    return int(math.ceil(size * LINE_SPACING))


def _load_font(font_dir: str, name: str, size: int) -> ImageFont.FreeTypeFont:
    path = os.path.join(font_dir, name)
    try:
        return ImageFont.truetype(path, size)
    except OSError as exc:
        logging.error("Unable to load font %s at %dpt: %s", path, size, exc)
        raise FontLoadError(f"Unable to load font {path}") from exc


def load_fonts(canvas: CanvasConfig, font_dir: str) -> FontSet:
    """Load the value and label faces at the canvas' configured sizes."""

    return FontSet(
        large=_load_font(font_dir, FONT_VALUE_FILE, canvas.font_large),
        half=_load_font(font_dir, FONT_VALUE_FILE, half_font_size(canvas.font_large)),
        medium=_load_font(font_dir, FONT_LABEL_FILE, canvas.font_medium),
        small=_load_font(font_dir, FONT_VALUE_FILE, canvas.font_small),
    )


def measure(font: ImageFont.FreeTypeFont, text: str) -> int:
    """Advance width of *text* in whole pixels."""

    if not text:
        return 0
    return int(round(font.getlength(text)))


def text_height(font: ImageFont.FreeTypeFont) -> int:
    ascent, _ = font.getmetrics()
    return ascent


def draw_text(
    draw: ImageDraw.ImageDraw,
    font: ImageFont.FreeTypeFont,
    text: str,
    origin: Tuple[int, int],
    align: str = "left",
    *,
    fill: Color,
) -> int:
    """Draw *text* with its baseline at *origin*; returns the drawn width.

    *align* picks which end of the text sits at ``origin[0]``.
    """

    anchor = _ANCHORS.get(align)
    if anchor is None:
        raise ValueError(f"Unknown alignment {align!r}")
    if text:
        draw.text(origin, text, font=font, fill=fill, anchor=anchor)
    return measure(font, text)


def draw_badge(
    draw: ImageDraw.ImageDraw,
    font: ImageFont.FreeTypeFont,
    text: str,
    anchor: Tuple[int, int],
    *,
    fill: Color,
    text_fill: Color,
) -> int:
    """Paint a filled badge whose bottom-right corner sits at *anchor*.

    The text is drawn in *text_fill* on top of the *fill* box so it stays
    legible over anything underneath. Returns the badge width, 0 when the
    text measures nothing and the badge was skipped.
    """

    width = measure(font, text)
    if width <= 0:
        return 0

    ascent, descent = font.getmetrics()
    box_w = width + BADGE_MARGIN
    box_h = ascent + descent + BADGE_MARGIN // 2
    x1, y1 = anchor
    x0 = x1 - box_w
    y0 = y1 - box_h
    draw.rectangle((x0, y0, x1 - 1, y1 - 1), fill=fill)
    draw.text(
        (x0 + BADGE_MARGIN // 2, y1 - descent - BADGE_MARGIN // 4),
        text,
        font=font,
        fill=text_fill,
        anchor="ls",
    )
    return box_w
