"""Service-layer utilities for the OCR Form Filler project."""

from .field_detector import FieldDetector
from .html_filler import DEFAULT_BINDINGS, FieldBinding, HTMLFiller, WriteTarget

__all__ = [
	"FieldDetector",
	"HTMLFiller",
	"FieldBinding",
	"WriteTarget",
	"DEFAULT_BINDINGS",
]
