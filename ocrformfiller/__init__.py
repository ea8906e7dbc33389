"""OCRFormFiller package."""

from .controller import FillController, Notifier, NullNotifier
from .extractor import ExtractionError, compress_for_ocr, crop_region
from .models import FieldKind, OCRLine, OCRResult, SelectionRect, Severity, TargetField
from .normalizer import format_for_field, normalize_capitalization, reconstruct_lines
from .ocr import OCRError, OCRSettings, OCRSpaceClient
from .renderer import DocumentLoadError, FitzRasterizer, PdfDocument, RenderedPage, WheelNavigator
from .selection import SelectionOverlay

__all__ = [
	"FillController",
	"Notifier",
	"NullNotifier",
	"ExtractionError",
	"compress_for_ocr",
	"crop_region",
	"FieldKind",
	"OCRLine",
	"OCRResult",
	"SelectionRect",
	"Severity",
	"TargetField",
	"format_for_field",
	"normalize_capitalization",
	"reconstruct_lines",
	"OCRError",
	"OCRSettings",
	"OCRSpaceClient",
	"DocumentLoadError",
	"FitzRasterizer",
	"PdfDocument",
	"RenderedPage",
	"WheelNavigator",
	"SelectionOverlay",
]
