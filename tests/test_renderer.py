from __future__ import annotations

import sys
from pathlib import Path

import fitz
import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from ocrformfiller.renderer import (
    DocumentLoadError,
    FitzRasterizer,
    PdfDocument,
    WheelNavigator,
    compute_display_scale,
    compute_render_scale,
)


def _make_pdf(pages: int = 2) -> bytes:
    document = fitz.open()
    for index in range(pages):
        page = document.new_page(width=612, height=792)
        page.insert_text((72, 72), f"Page {index + 1} PROJECT TITLE")
    data = document.tobytes()
    document.close()
    return data


def test_render_scale_follows_device_pixel_ratio_with_cap():
    assert compute_render_scale(1.0) == 2.0
    assert compute_render_scale(1.25) == 2.5
    assert compute_render_scale(2.0) == 3.0
    assert compute_render_scale(0) == 2.0


def test_display_scale_fits_container_with_minimum_width():
    assert compute_display_scale(612, 644) == pytest.approx(612 / 612)
    assert compute_display_scale(600, 100) == pytest.approx(200 / 600)
    assert compute_display_scale(800, None) == pytest.approx(400 / 800)


def test_pdf_document_opens_bytes_and_reports_pages():
    document = PdfDocument.from_bytes(_make_pdf(3), "plans.pdf")

    assert document.page_count == 3
    assert document.filename == "plans.pdf"
    assert document.page_size(1) == (612.0, 792.0)
    document.close()


def test_pdf_document_rejects_garbage():
    with pytest.raises(DocumentLoadError):
        PdfDocument.from_bytes(b"this is not a pdf at all", "notes.txt")


def test_pdf_document_rejects_empty_upload():
    with pytest.raises(DocumentLoadError, match="empty"):
        PdfDocument.from_bytes(b"", "empty.pdf")


def test_pdf_document_rejects_out_of_range_page():
    document = PdfDocument.from_bytes(_make_pdf(1))
    with pytest.raises(ValueError, match="out of range"):
        document.page_size(2)
    document.close()


def test_fitz_rasterizer_renders_page_with_scales():
    document = PdfDocument.from_bytes(_make_pdf(1))
    page = FitzRasterizer().render_page(document, 1, device_pixel_ratio=1.0, container_width=338)

    assert page.page_number == 1
    assert page.render_scale == 2.0
    assert page.display_scale == pytest.approx(306 / 612)
    assert page.display_width == pytest.approx(306)
    assert page.display_height == pytest.approx(396)
    width, height = page.pixel_size
    assert abs(width - 1224) <= 1
    assert abs(height - 1584) <= 1
    assert page.image.mode == "RGB"
    document.close()


def test_wheel_accumulates_until_threshold():
    wheel = WheelNavigator()
    wheel.attach()

    assert wheel.scroll(100, 1, 3) is None
    assert wheel.scroll(50, 1, 3) == 2
    assert wheel.accumulator == 0


def test_wheel_reversal_replaces_counter():
    wheel = WheelNavigator()
    wheel.attach()

    assert wheel.scroll(120, 2, 3) is None
    assert wheel.scroll(-100, 2, 3) is None
    assert wheel.accumulator == -100
    assert wheel.scroll(-60, 2, 3) == 1


def test_wheel_does_nothing_at_boundaries_or_single_page():
    wheel = WheelNavigator()
    wheel.attach()

    assert wheel.scroll(200, 3, 3) is None
    wheel.detach()
    wheel.attach()
    assert wheel.scroll(-200, 1, 3) is None
    wheel.detach()
    wheel.attach()
    assert wheel.scroll(500, 1, 1) is None


def test_wheel_ignores_events_while_detached():
    wheel = WheelNavigator()

    assert wheel.scroll(400, 1, 3) is None
    wheel.attach()
    wheel.scroll(100, 1, 3)
    wheel.detach()
    assert wheel.accumulator == 0


def test_pdf_document_rejects_password_protected_file():
    document = fitz.open()
    document.new_page().insert_text((72, 72), "Locked")
    data = document.tobytes(encryption=fitz.PDF_ENCRYPT_AES_256, owner_pw="owner", user_pw="user")
    document.close()

    with pytest.raises(DocumentLoadError, match="password protected"):
        PdfDocument.from_bytes(data, "locked.pdf")
