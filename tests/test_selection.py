from __future__ import annotations

import sys
from pathlib import Path

import pytest
from PIL import Image

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from ocrformfiller.models import SelectionRect
from ocrformfiller.selection import SelectionOverlay, compose_preview


def _overlay(active: bool = True) -> SelectionOverlay:
    overlay = SelectionOverlay(canvas_size=(1224, 1584), display_size=(612, 792))
    if active:
        overlay.enable()
    return overlay


def test_inactive_overlay_ignores_pointer():
    overlay = _overlay(active=False)

    assert overlay.cursor == "default"
    assert overlay.pointer_down(10, 10) is False
    assert overlay.finish(100, 100) is None


def test_drag_produces_normalised_rect():
    overlay = _overlay()
    assert overlay.cursor == "crosshair"

    overlay.pointer_down(200, 150)
    overlay.pointer_move(120, 100)
    rect = overlay.finish(50, 60)

    assert rect == SelectionRect(200, 150, 50, 60)
    assert (rect.left, rect.top, rect.width, rect.height) == (50, 60, 150, 90)
    assert overlay.is_selecting is False


def test_click_and_slivers_are_discarded():
    overlay = _overlay()

    overlay.pointer_down(10, 10)
    assert overlay.finish(10, 10) is None

    overlay.pointer_down(10, 10)
    assert overlay.finish(200, 14) is None

    overlay.pointer_down(10, 10)
    assert overlay.finish(14, 200) is None

    overlay.pointer_down(10, 10)
    assert overlay.finish(15, 15) is not None


def test_finish_without_coordinates_uses_last_move():
    overlay = _overlay()

    overlay.pointer_down(0, 0)
    overlay.pointer_move(40, 30)

    assert overlay.finish() == SelectionRect(0, 0, 40, 30)


def test_pointer_leave_cancels_drag():
    overlay = _overlay()

    overlay.pointer_down(0, 0)
    overlay.pointer_leave()

    assert overlay.is_selecting is False
    assert overlay.finish(50, 50) is None


def test_to_canvas_scales_display_rect():
    overlay = _overlay()

    box = overlay.to_canvas(SelectionRect(10, 20, 110, 70))

    assert box == pytest.approx((20, 40, 200, 100))


def test_dash_offset_advances_and_wraps():
    overlay = _overlay()
    overlay.pointer_down(0, 0)

    offsets = []
    for step in range(9):
        overlay.pointer_move(step, step)
        offsets.append(overlay.dash_offset)

    assert offsets == [2, 4, 6, 8, 10, 12, 14, 0, 2]


def test_disable_clears_selection_state():
    overlay = _overlay()
    overlay.pointer_down(0, 0)
    overlay.pointer_move(30, 30)

    overlay.disable()

    assert overlay.active is False
    assert overlay.is_selecting is False
    assert overlay.dash_offset == 0


def test_contains_checks_display_bounds():
    overlay = _overlay()

    assert overlay.contains(0, 0)
    assert overlay.contains(612, 792)
    assert not overlay.contains(-1, 10)
    assert not overlay.contains(10, 800)


def test_draw_paints_stroke_inside_canvas():
    overlay = _overlay()

    image = overlay.draw(SelectionRect(10, 10, 110, 60))

    assert image.size == (1224, 1584)
    assert image.mode == "RGBA"
    assert image.getbbox() is not None
    assert image.getpixel((0, 0))[3] == 0
    assert image.getpixel((120, 70))[3] > 0


def test_compose_preview_returns_rgb_page():
    overlay = _overlay()
    page = Image.new("RGB", (1224, 1584), (255, 255, 255))

    preview = compose_preview(page, overlay.draw(SelectionRect(10, 10, 110, 60)))

    assert preview.mode == "RGB"
    assert preview.size == page.size
    assert preview.getpixel((120, 70)) != (255, 255, 255)
