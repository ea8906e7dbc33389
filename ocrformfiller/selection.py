"""Drag-to-select overlay laid over the rendered PDF page."""

from __future__ import annotations

import logging
from typing import Optional

from PIL import Image, ImageDraw

from .models import BBox, SelectionRect

logger = logging.getLogger(__name__)

MIN_SELECTION_SIZE = 5
STROKE_COLOR = (59, 130, 246, 255)
FILL_COLOR = (59, 130, 246, 38)
STROKE_WIDTH = 3
DASH_PATTERN = (10, 5)
DASH_STEP = 2
DASH_WRAP = 15


class SelectionOverlay:
    """Track a pointer drag in display space and map it to canvas pixels.

    The overlay has the pixel size of the rendered page (``canvas_size``) but
    is shown at ``display_size``. Coordinates fed to the pointer methods are
    relative to the displayed overlay's top-left corner.
    """

    def __init__(self, canvas_size: tuple[int, int], display_size: tuple[float, float]) -> None:
        self.canvas_size = canvas_size
        self.display_size = display_size
        self.active = False
        self.is_selecting = False
        self.start = (0.0, 0.0)
        self.end = (0.0, 0.0)
        self.dash_offset = 0

    @property
    def cursor(self) -> str:
        return "crosshair" if self.active else "default"

    def enable(self) -> None:
        self.active = True

    def disable(self) -> None:
        self.active = False
        self.clear()

    def clear(self) -> None:
        self.is_selecting = False
        self.dash_offset = 0

    def contains(self, x: float, y: float) -> bool:
        width, height = self.display_size
        return 0 <= x <= width and 0 <= y <= height

    def pointer_down(self, x: float, y: float) -> bool:
        if not self.active:
            return False
        self.is_selecting = True
        self.start = (x, y)
        self.end = (x, y)
        return True

    def pointer_move(self, x: float, y: float) -> None:
        if not self.is_selecting:
            return
        self.end = (x, y)
        self.advance_dash()

    def pointer_leave(self) -> None:
        if self.is_selecting:
            self.clear()

    def finish(self, x: Optional[float] = None, y: Optional[float] = None) -> Optional[SelectionRect]:
        """End the drag; returns ``None`` for clicks and slivers."""

        if not self.is_selecting:
            return None
        if x is not None and y is not None:
            self.end = (x, y)
        self.is_selecting = False
        rect = SelectionRect(self.start[0], self.start[1], self.end[0], self.end[1])
        if rect.width < MIN_SELECTION_SIZE or rect.height < MIN_SELECTION_SIZE:
            logger.debug("[PDF-SELECTOR] Ignoring %.1fx%.1f selection", rect.width, rect.height)
            self.clear()
            return None
        return rect

    def scale_factors(self) -> tuple[float, float]:
        canvas_width, canvas_height = self.canvas_size
        display_width, display_height = self.display_size
        return canvas_width / display_width, canvas_height / display_height

    def to_canvas(self, rect: SelectionRect) -> BBox:
        return rect.scaled(*self.scale_factors())

    def advance_dash(self) -> None:
        self.dash_offset += DASH_STEP
        if self.dash_offset > DASH_WRAP:
            self.dash_offset = 0

    def current_rect(self) -> SelectionRect:
        return SelectionRect(self.start[0], self.start[1], self.end[0], self.end[1])

    def draw(self, rect: Optional[SelectionRect] = None) -> Image.Image:
        """Paint the marching-ants rectangle onto a transparent canvas."""

        overlay = Image.new("RGBA", self.canvas_size, (0, 0, 0, 0))
        rect = rect or self.current_rect()
        x, y, width, height = self.to_canvas(rect)
        if width <= 0 or height <= 0:
            return overlay

        draw = ImageDraw.Draw(overlay)
        draw.rectangle((x, y, x + width, y + height), fill=FILL_COLOR)
        corners = [(x, y), (x + width, y), (x + width, y + height), (x, y + height), (x, y)]
        # dash phase carries across corners so the ants run around the border
        phase = -self.dash_offset % sum(DASH_PATTERN)
        for (x0, y0), (x1, y1) in zip(corners, corners[1:]):
            phase = _dashed_segment(draw, (x0, y0), (x1, y1), phase)
        return overlay


def _dashed_segment(draw: ImageDraw.ImageDraw, start: tuple[float, float], end: tuple[float, float], phase: float) -> float:
    dash, gap = DASH_PATTERN
    period = dash + gap
    length = abs(end[0] - start[0]) + abs(end[1] - start[1])
    if length == 0:
        return phase
    unit_x = (end[0] - start[0]) / length
    unit_y = (end[1] - start[1]) / length

    travelled = 0.0
    while travelled < length:
        position = (phase + travelled) % period
        if position < dash:
            step = min(dash - position, length - travelled)
            draw.line(
                (
                    start[0] + unit_x * travelled,
                    start[1] + unit_y * travelled,
                    start[0] + unit_x * (travelled + step),
                    start[1] + unit_y * (travelled + step),
                ),
                fill=STROKE_COLOR,
                width=STROKE_WIDTH,
            )
        else:
            step = min(period - position, length - travelled)
        travelled += step
    return (phase + length) % period


def compose_preview(page: Image.Image, overlay: Image.Image) -> Image.Image:
    base = page.convert("RGBA")
    if overlay.size != base.size:
        overlay = overlay.resize(base.size)
    return Image.alpha_composite(base, overlay).convert("RGB")


__all__ = ["MIN_SELECTION_SIZE", "SelectionOverlay", "compose_preview"]
