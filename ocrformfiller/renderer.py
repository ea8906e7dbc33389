"""PDF loading, page rasterization and page navigation."""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from typing import Optional, Protocol

import fitz
from PIL import Image

from .extractor import compress_for_ocr, crop_region
from .models import BBox

logger = logging.getLogger(__name__)

BASE_RENDER_SCALE = 2.0
MAX_RENDER_SCALE = 3.0
CONTAINER_PADDING = 32
MIN_DISPLAY_WIDTH = 200
FALLBACK_CONTAINER_WIDTH = 400
WHEEL_THRESHOLD = 150


class DocumentLoadError(Exception):
    """Raised when an uploaded file cannot be opened as a PDF."""


@dataclass(frozen=True)
class RenderedPage:
    """A rasterized page together with the numbers needed to display it."""

    page_number: int
    image: Image.Image
    render_scale: float
    display_scale: float
    display_width: float
    display_height: float

    @property
    def pixel_size(self) -> tuple[int, int]:
        return self.image.size


def compute_render_scale(device_pixel_ratio: float = 1.0) -> float:
    return min((device_pixel_ratio or 1.0) * BASE_RENDER_SCALE, MAX_RENDER_SCALE)


def compute_display_scale(page_width: float, container_width: Optional[float]) -> float:
    """Scale that fits a page of ``page_width`` points into the viewer column."""

    if container_width is None:
        available = FALLBACK_CONTAINER_WIDTH
    else:
        available = max(container_width - CONTAINER_PADDING, MIN_DISPLAY_WIDTH)
    return available / page_width


class PdfDocument:
    """A page-addressable PDF opened from uploaded bytes."""

    def __init__(self, document: fitz.Document, filename: str = "") -> None:
        self._document = document
        self.filename = filename

    @classmethod
    def from_bytes(cls, data: bytes, filename: str = "") -> "PdfDocument":
        if not data:
            raise DocumentLoadError("The uploaded file is empty.")
        try:
            document = fitz.open(stream=data, filetype="pdf")
        except (RuntimeError, ValueError) as exc:
            raise DocumentLoadError(f"Could not read PDF: {exc}") from exc
        if document.needs_pass:
            document.close()
            raise DocumentLoadError("The PDF is password protected.")
        if not document.is_pdf or document.page_count == 0:
            document.close()
            raise DocumentLoadError("The uploaded file does not contain any PDF pages.")
        logger.info("[PDF-GUIDED] Opened '%s' with %d page(s)", filename or "<upload>", document.page_count)
        return cls(document, filename)

    @property
    def page_count(self) -> int:
        return self._document.page_count

    def page_size(self, page_number: int) -> tuple[float, float]:
        rect = self._page(page_number).rect
        return float(rect.width), float(rect.height)

    def rasterize(self, page_number: int, scale: float) -> Image.Image:
        page = self._page(page_number)
        pixmap = page.get_pixmap(matrix=fitz.Matrix(scale, scale), alpha=False)
        return Image.open(io.BytesIO(pixmap.tobytes("png"))).convert("RGB")

    def close(self) -> None:
        self._document.close()

    def _page(self, page_number: int) -> fitz.Page:
        if not 1 <= page_number <= self.page_count:
            raise ValueError(f"Page {page_number} is out of range 1..{self.page_count}")
        return self._document[page_number - 1]


class Rasterizer(Protocol):
    """Rendering, cropping and encoding capability used by the controller."""

    def render_page(
        self,
        document: PdfDocument,
        page_number: int,
        *,
        device_pixel_ratio: float = 1.0,
        container_width: Optional[float] = None,
    ) -> RenderedPage:
        ...

    def crop_region(self, image: Image.Image, box: BBox) -> Image.Image:
        ...

    def compress(self, image: Image.Image) -> bytes:
        ...


class FitzRasterizer:
    """Rasterizer backed by PyMuPDF for pages and Pillow for crops."""

    def render_page(
        self,
        document: PdfDocument,
        page_number: int,
        *,
        device_pixel_ratio: float = 1.0,
        container_width: Optional[float] = None,
    ) -> RenderedPage:
        render_scale = compute_render_scale(device_pixel_ratio)
        page_width, page_height = document.page_size(page_number)
        display_scale = compute_display_scale(page_width, container_width)
        image = document.rasterize(page_number, render_scale)
        return RenderedPage(
            page_number=page_number,
            image=image,
            render_scale=render_scale,
            display_scale=display_scale,
            display_width=page_width * display_scale,
            display_height=page_height * display_scale,
        )

    def crop_region(self, image: Image.Image, box: BBox) -> Image.Image:
        return crop_region(image, box)

    def compress(self, image: Image.Image) -> bytes:
        return compress_for_ocr(image)


class WheelNavigator:
    """Turn accumulated wheel deltas into page changes.

    Deltas in the same direction add up; a reversal replaces the counter with
    the new delta. Once the counter reaches the threshold the page changes and
    the counter starts over.
    """

    def __init__(self, threshold: float = WHEEL_THRESHOLD) -> None:
        self.threshold = threshold
        self.accumulator = 0.0
        self.attached = False

    def attach(self) -> None:
        self.attached = True

    def detach(self) -> None:
        self.attached = False
        self.accumulator = 0.0

    def scroll(self, delta_y: float, current_page: int, total_pages: int) -> Optional[int]:
        """Record a wheel delta and return the page to show, if it changes."""

        if not self.attached or total_pages <= 1:
            return None

        same_direction = (delta_y > 0 and self.accumulator >= 0) or (delta_y < 0 and self.accumulator <= 0)
        if same_direction:
            self.accumulator += delta_y
        else:
            self.accumulator = delta_y

        if abs(self.accumulator) < self.threshold:
            return None
        if self.accumulator > 0 and current_page < total_pages:
            self.accumulator = 0.0
            return current_page + 1
        if self.accumulator < 0 and current_page > 1:
            self.accumulator = 0.0
            return current_page - 1
        return None


__all__ = [
    "DocumentLoadError",
    "FitzRasterizer",
    "PdfDocument",
    "Rasterizer",
    "RenderedPage",
    "WheelNavigator",
    "compute_display_scale",
    "compute_render_scale",
]
