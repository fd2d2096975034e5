"""Fixed two-column grid layout for the sensor dashboard.

The template is a declarative sequence of slots filled column-major: every
column is ``ROWS_PER_COLUMN`` rows tall, slots are stacked top to bottom in
template order and the next column starts once a column's rows are used up.
HALF slots take half a row's width, so two of them share one row.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from fractions import Fraction
from typing import Any, List, Optional, Sequence, Tuple

from config import CanvasConfig
from screens.text import half_font_size, line_height

ROWS_PER_COLUMN = 3

Rect = Tuple[int, int, int, int]
Line = Tuple[int, int, int, int]


class LayoutError(ValueError):
    """The measurement list does not fit the cell template."""


class CellKind(enum.Enum):
    NORMAL = "normal"
    DOUBLE = "double"
    HALF = "half"


@dataclass(frozen=True)
class SlotTemplate:
    kind: CellKind
    rows: int = 1
    width: Fraction = Fraction(1)


DEFAULT_TEMPLATE: Tuple[SlotTemplate, ...] = (
    SlotTemplate(CellKind.DOUBLE, rows=2),
    SlotTemplate(CellKind.NORMAL),
    SlotTemplate(CellKind.NORMAL),
    SlotTemplate(CellKind.NORMAL),
    SlotTemplate(CellKind.HALF, width=Fraction(1, 2)),
    SlotTemplate(CellKind.HALF, width=Fraction(1, 2)),
)


@dataclass(frozen=True)
class CellSpec:
    kind: CellKind
    rect: Rect
    column: int
    label_font_size: int
    value_font_size: int
    label_height: int
    value_height: int
    weather: bool = False

    @property
    def width(self) -> int:
        return self.rect[2] - self.rect[0]

    @property
    def height(self) -> int:
        return self.rect[3] - self.rect[1]

    @property
    def center(self) -> Tuple[int, int]:
        x0, y0, x1, y1 = self.rect
        return (x0 + (x1 - x0) // 2, y0 + (y1 - y0) // 2)


@dataclass(frozen=True)
class Separators:
    """Static rulings: one vertical centre line plus per-column dividers."""

    vertical: Line
    horizontal: Tuple[Line, ...] = ()
    extra: Tuple[Line, ...] = ()

    def lines(self) -> Tuple[Line, ...]:
        return (self.vertical,) + self.horizontal + self.extra


@dataclass(frozen=True)
class Layout:
    width: int
    height: int
    cells: Tuple[Tuple[Any, CellSpec], ...]
    separators: Separators


def _column_bounds(width: int) -> List[Tuple[int, int]]:
    split = width // 2
    return [(0, split), (split, width)]


def _row_edge(height: int, row: int) -> int:
    return height * row // ROWS_PER_COLUMN


def _place_slots(
    template: Sequence[SlotTemplate], width: int, height: int
) -> List[Tuple[SlotTemplate, int, Rect]]:
    columns = _column_bounds(width)
    placed: List[Tuple[SlotTemplate, int, Rect]] = []

    column = 0
    row = 0
    row_used = Fraction(0)
    for slot in template:
        if row + slot.rows > ROWS_PER_COLUMN:
            column += 1
            row = 0
            row_used = Fraction(0)
        if column >= len(columns):
            raise LayoutError("Cell template does not fit on the canvas")

        cx0, cx1 = columns[column]
        col_w = cx1 - cx0
        x0 = cx0 + int(col_w * row_used)
        row_used += slot.width
        x1 = cx1 if row_used >= 1 else cx0 + int(col_w * row_used)
        y0 = _row_edge(height, row)
        y1 = _row_edge(height, row + slot.rows)
        placed.append((slot, column, (x0, y0, x1, y1)))

        if row_used >= 1:
            row += slot.rows
            row_used = Fraction(0)
    return placed


def _separators(placed: Sequence[Tuple[SlotTemplate, int, Rect]], width: int, height: int) -> Separators:
    centre = width // 2
    vertical = (centre, 0, centre, height - 1)

    columns = _column_bounds(width)
    horizontal: List[Line] = []
    extra: List[Line] = []
    seen_rows = set()
    for slot, column, (x0, y0, x1, y1) in placed:
        cx0, cx1 = columns[column]
        if y0 > 0 and (column, y0) not in seen_rows:
            seen_rows.add((column, y0))
            horizontal.append((cx0, y0, cx1 - 1, y0))
        if slot.kind is CellKind.HALF and x0 > cx0:
            extra.append((x0, y0, x0, y1 - 1))
    return Separators(vertical=vertical, horizontal=tuple(horizontal), extra=tuple(extra))


def layout_cells(
    measurements: Sequence[Any],
    canvas: CanvasConfig,
    weather: Optional[Any] = None,
    template: Sequence[SlotTemplate] = DEFAULT_TEMPLATE,
) -> Layout:
    """Pair every measurement with its cell geometry.

    Geometry is computed for the drawing area, i.e. the canvas minus its
    inset on every side. Raises LayoutError when the measurement count does
    not equal the template length.
    """

    if len(measurements) != len(template):
        raise LayoutError(
            f"Expected {len(template)} measurements for the cell template, got {len(measurements)}"
        )

    width = canvas.width - 2 * canvas.inset
    height = canvas.height - 2 * canvas.inset
    placed = _place_slots(template, width, height)

    label_size = canvas.font_medium
    cells = []
    for measurement, (slot, column, rect) in zip(measurements, placed):
        value_size = half_font_size(canvas.font_large) if slot.kind is CellKind.HALF else canvas.font_large
        spec = CellSpec(
            kind=slot.kind,
            rect=rect,
            column=column,
            label_font_size=label_size,
            value_font_size=value_size,
            label_height=line_height(label_size),
            value_height=line_height(value_size),
            weather=slot.kind is CellKind.DOUBLE and weather is not None,
        )
        cells.append((measurement, spec))

    return Layout(
        width=width,
        height=height,
        cells=tuple(cells),
        separators=_separators(placed, width, height),
    )
