"""Data models for OCRFormFiller."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


class FieldKind(str, Enum):
    """Formatting families applied to OCR text before it reaches a field."""

    TEXTAREA = "textarea"
    EMAIL = "email"
    PHONE = "phone"
    DATE = "date"
    NUMBER = "number"
    ADDRESS = "address"
    TEXT = "text"


class Severity(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"


BBox = Tuple[float, float, float, float]

ADDRESS_FIELD_NAME = "address"


@dataclass(frozen=True)
class TargetField:
    """One fillable field of the destination form."""

    name: str
    label: str
    form_field_name: str
    field_type: str = "input"
    input_type: str = "text"

    @property
    def short_label(self) -> str:
        return self.label.replace("Select ", "", 1)

    @property
    def is_address(self) -> bool:
        return self.form_field_name == ADDRESS_FIELD_NAME


@dataclass(frozen=True)
class SelectionRect:
    """Finalized drag rectangle in overlay display coordinates."""

    start_x: float
    start_y: float
    end_x: float
    end_y: float

    @property
    def left(self) -> float:
        return min(self.start_x, self.end_x)

    @property
    def top(self) -> float:
        return min(self.start_y, self.end_y)

    @property
    def width(self) -> float:
        return abs(self.end_x - self.start_x)

    @property
    def height(self) -> float:
        return abs(self.end_y - self.start_y)

    def scaled(self, scale_x: float, scale_y: float) -> BBox:
        """Return ``(x, y, w, h)`` after multiplying by the given factors."""

        return (
            self.left * scale_x,
            self.top * scale_y,
            self.width * scale_x,
            self.height * scale_y,
        )


@dataclass(frozen=True)
class OCRLine:
    words: Tuple[str, ...] = ()


@dataclass(frozen=True)
class OCRResult:
    """Recognized text, with per-line words when the service returns an overlay."""

    parsed_text: str
    lines: Optional[Tuple[OCRLine, ...]] = None


@dataclass
class DocumentView:
    """Working state of the loaded PDF."""

    filename: str = ""
    current_page: int = 1
    total_pages: int = 1
    page_scales: dict = field(default_factory=dict)
