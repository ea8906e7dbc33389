"""Cropping of a selected page region and preparation for OCR upload."""

from __future__ import annotations

import io
import logging
import math

from PIL import Image

from .models import BBox

logger = logging.getLogger(__name__)

MAX_DIMENSION = 2000
MAX_AREA = 4_000_000
JPEG_QUALITY = 85
OCR_IMAGE_MIME = "image/jpeg"


class ExtractionError(Exception):
    """Raised when a region cannot be cut out of the rendered page."""


def crop_region(image: Image.Image, box: BBox) -> Image.Image:
    """Copy the ``(x, y, w, h)`` canvas-pixel box out of ``image``."""

    x, y, width, height = box
    left = max(int(x), 0)
    top = max(int(y), 0)
    right = min(int(x) + int(width), image.width)
    bottom = min(int(y) + int(height), image.height)
    if right <= left or bottom <= top:
        raise ExtractionError(f"Selection {box} lies outside the rendered page {image.size}")
    return image.crop((left, top, right, bottom))


def plan_compressed_size(width: int, height: int) -> tuple[int, int]:
    """Return the upload size for a crop, keeping the aspect ratio."""

    if width > MAX_DIMENSION or height > MAX_DIMENSION:
        ratio = min(MAX_DIMENSION / width, MAX_DIMENSION / height)
    elif width * height > MAX_AREA:
        ratio = math.sqrt(MAX_AREA / (width * height))
    else:
        return width, height
    return max(int(width * ratio), 1), max(int(height * ratio), 1)


def compress_for_ocr(image: Image.Image) -> bytes:
    """Downsample oversized crops and encode as JPEG."""

    target = plan_compressed_size(image.width, image.height)
    if target != image.size:
        logger.info("[OCR] Downsampling selection from %sx%s to %sx%s", image.width, image.height, *target)
        image = image.resize(target, Image.Resampling.LANCZOS)
    if image.mode != "RGB":
        image = image.convert("RGB")

    buffer = io.BytesIO()
    image.save(buffer, "JPEG", quality=JPEG_QUALITY, optimize=True)
    return buffer.getvalue()


__all__ = [
    "ExtractionError",
    "JPEG_QUALITY",
    "MAX_AREA",
    "MAX_DIMENSION",
    "OCR_IMAGE_MIME",
    "compress_for_ocr",
    "crop_region",
    "plan_compressed_size",
]
