#!/usr/bin/env python3
"""
draw_dashboard.py

Sensor dashboard for the e-ink infoscreen, black on white.

Layout (two columns, three rows each):
  • Left column: a double-height cell for the first sensor, hosting the
    current weather icon and the hourly forecast strip, then one normal cell.
  • Right column: two normal cells, then two half-width cells side by side.
  • Every reading cell shows its label, the value with a degree sign and two
    badges: staleness (">5m") and trend ("↑"/"↓").
  • A "last updated" clock sits in the bottom-right corner inside an L-shaped rule.
"""

from __future__ import annotations

import datetime
from typing import Optional, Sequence, Tuple

from PIL import Image, ImageDraw

from config import DISPLAY_TIMEZONE, CanvasConfig
from measurements import Measurement
from screens.icons import IconCache
from screens.layout import CellKind, CellSpec, Separators, layout_cells
from screens.text import FontSet, draw_badge, draw_text, measure, text_height
from utils import log_call, to_local

BACKGROUND = (255, 255, 255, 255)
FOREGROUND = (0, 0, 0, 255)

CELL_MARGIN = 10
BADGE_GAP = 4
BADGE_VISIBLE_WIDTH = 1
FORECAST_SPACING = 6
STAMP_PADDING = 5
DEGREE = "°"

Box = Tuple[int, int, int, int]


def _value_font(cell: CellSpec, fonts: FontSet):
    return fonts.half if cell.kind is CellKind.HALF else fonts.large


def _draw_label(draw: ImageDraw.ImageDraw, measurement: Measurement, cell: CellSpec, fonts: FontSet) -> None:
    x0, y0, _, _ = cell.rect
    baseline = y0 + CELL_MARGIN + text_height(fonts.medium)
    draw_text(draw, fonts.medium, measurement.format_label(), (x0 + CELL_MARGIN, baseline), "left", fill=FOREGROUND)


def _draw_value(
    draw: ImageDraw.ImageDraw,
    measurement: Measurement,
    font,
    center_x: int,
    baseline: int,
) -> None:
    text = measurement.format_value()
    if measurement.empty:
        draw_text(draw, font, text, (center_x, baseline), "center", fill=FOREGROUND)
        return

    # the degree sign hangs off the right edge; the number stays centred
    left = center_x - measure(font, text) // 2
    width = draw_text(draw, font, text, (left, baseline), "left", fill=FOREGROUND)
    draw_text(draw, font, DEGREE, (left + width, baseline), "left", fill=FOREGROUND)


def _draw_badges(
    draw: ImageDraw.ImageDraw,
    measurement: Measurement,
    cell: CellSpec,
    fonts: FontSet,
    reserved: Optional[Box] = None,
) -> None:
    """Age badge in the bottom-right corner, trend badge just left of it."""

    _, _, x1, y1 = cell.rect
    anchor_x = x1 - CELL_MARGIN // 2
    anchor_y = y1 - CELL_MARGIN // 2
    if reserved is not None and x1 == reserved[2] and y1 == reserved[3]:
        anchor_y = min(anchor_y, reserved[1] - CELL_MARGIN // 2)

    age = measurement.format_age()
    if measure(fonts.small, age) > BADGE_VISIBLE_WIDTH:
        width = draw_badge(draw, fonts.small, age, (anchor_x, anchor_y), fill=FOREGROUND, text_fill=BACKGROUND)
        anchor_x -= width + BADGE_GAP

    trend = measurement.format_slope()
    if measure(fonts.small, trend) > BADGE_VISIBLE_WIDTH:
        draw_badge(draw, fonts.small, trend, (anchor_x, anchor_y), fill=FOREGROUND, text_fill=BACKGROUND)


def _draw_cell(
    draw: ImageDraw.ImageDraw,
    measurement: Measurement,
    cell: CellSpec,
    fonts: FontSet,
    reserved: Optional[Box] = None,
) -> None:
    center_x, center_y = cell.center
    _draw_label(draw, measurement, cell, fonts)
    baseline = center_y + cell.label_height // 2 + cell.value_height // 2
    _draw_value(draw, measurement, _value_font(cell, fonts), center_x, baseline)
    _draw_badges(draw, measurement, cell, fonts, reserved)


def _draw_forecast_strip(
    img: Image.Image,
    draw: ImageDraw.ImageDraw,
    hourly: Sequence,
    cell: CellSpec,
    top: int,
    fonts: FontSet,
    icons: Optional[IconCache],
    compact: bool,
    tz,
) -> None:
    if not hourly:
        return

    x0, _, _, _ = cell.rect
    col_w = cell.width // len(hourly)
    label_h = text_height(fonts.medium)

    for idx, point in enumerate(hourly):
        cx = x0 + col_w * idx + col_w // 2
        y = top

        hour_label = to_local(point.at, tz).strftime("%H")
        draw_text(draw, fonts.medium, hour_label, (cx, y + label_h), "center", fill=FOREGROUND)
        y += label_h + FORECAST_SPACING

        icon = icons.resolve(point.icon, "hourly", compact) if icons else None
        if icon is not None:
            img.paste(icon, (cx - icon.width // 2, y), icon)
            y += icon.height + FORECAST_SPACING

        draw_text(draw, fonts.medium, f"{point.temp:.1f}{DEGREE}", (cx, y + label_h), "center", fill=FOREGROUND)


def _draw_double_cell(
    img: Image.Image,
    draw: ImageDraw.ImageDraw,
    measurement: Measurement,
    cell: CellSpec,
    fonts: FontSet,
    weather,
    icons: Optional[IconCache],
    compact: bool,
    tz,
) -> None:
    x0, y0, _, _ = cell.rect
    center_x, _ = cell.center

    _draw_label(draw, measurement, cell, fonts)

    baseline = y0 + cell.height // 4 + cell.value_height // 2
    _draw_value(draw, measurement, fonts.large, center_x, baseline)

    if weather is not None:
        icon = icons.resolve(weather.icon, "current", compact) if icons else None
        if icon is not None:
            img.paste(icon, (x0 + CELL_MARGIN, y0 + CELL_MARGIN + cell.label_height), icon)
        strip_top = baseline + cell.label_height
        _draw_forecast_strip(img, draw, weather.hourly, cell, strip_top, fonts, icons, compact, tz)

    _draw_badges(draw, measurement, cell, fonts)


def _draw_separators(draw: ImageDraw.ImageDraw, separators: Separators) -> None:
    for line in separators.lines():
        draw.line(line, fill=FOREGROUND, width=1)


def _stamp_box(font, width: int, height: int, text: str) -> Box:
    _, descent = font.getmetrics()
    box_w = measure(font, text) + 2 * STAMP_PADDING
    box_h = text_height(font) + descent + 2 * STAMP_PADDING
    return (width - box_w, height - box_h, width, height)


def _draw_updated(draw: ImageDraw.ImageDraw, font, text: str, box: Box) -> None:
    """Clock in the bottom-right corner framed by an L-shaped rule."""

    x0, y0, x1, y1 = box
    _, descent = font.getmetrics()
    draw.rectangle((x0, y0, x1 - 1, y1 - 1), fill=BACKGROUND)
    draw_text(draw, font, text, (x1 - STAMP_PADDING, y1 - STAMP_PADDING - descent), "right", fill=FOREGROUND)
    draw.line((x0, y0, x1 - 1, y0), fill=FOREGROUND, width=1)
    draw.line((x0, y0, x0, y1 - 1), fill=FOREGROUND, width=1)


@log_call
def draw_dashboard(
    measurements: Sequence[Measurement],
    canvas: CanvasConfig,
    weather=None,
    *,
    fonts: FontSet,
    icons: Optional[IconCache] = None,
    now: Optional[datetime.datetime] = None,
    tz=DISPLAY_TIMEZONE,
) -> Image.Image:
    """Compose the dashboard for *canvas* and return the RGBA buffer.

    *weather* is a WeatherSnapshot or ``None``; without it the double cell
    shows only its reading.
    """

    layout = layout_cells(measurements, canvas, weather)
    work = Image.new("RGBA", (layout.width, layout.height), BACKGROUND)
    draw = ImageDraw.Draw(work)

    stamp = to_local(now, tz) if now is not None else datetime.datetime.now(tz)
    stamp_text = stamp.strftime("%H:%M")
    stamp_box = _stamp_box(fonts.small, layout.width, layout.height, stamp_text)

    for measurement, cell in layout.cells:
        if cell.kind is CellKind.DOUBLE:
            _draw_double_cell(
                work,
                draw,
                measurement,
                cell,
                fonts,
                weather if cell.weather else None,
                icons,
                canvas.compact,
                tz,
            )
        else:
            _draw_cell(draw, measurement, cell, fonts, stamp_box)

    _draw_separators(draw, layout.separators)
    _draw_updated(draw, fonts.small, stamp_text, stamp_box)

    img = Image.new("RGBA", (canvas.width, canvas.height), BACKGROUND)
    img.paste(work, (canvas.inset, canvas.inset))
    return img
