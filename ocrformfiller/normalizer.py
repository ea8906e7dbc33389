"""Clean-up of OCR output before it is placed into a form field."""

from __future__ import annotations

import re
from typing import Optional, Sequence

from .models import FieldKind, OCRLine, TargetField

_UPPERCASE_RATIO = 0.8
_SMALL_WORDS = frozenset(
    {"a", "an", "the", "and", "but", "or", "for", "nor", "on", "at", "to", "from", "by", "of", "in"}
)
_WORD_CHUNK_PATTERN = re.compile(r"[A-Za-z0-9_]+|[^A-Za-z0-9_]+")

_EMAIL_PATTERN = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Z|a-z]{2,}\b")
_PHONE_PATTERNS = (
    re.compile(r"(\+?1[-.\s]?)?\(?([0-9]{3})\)?[-.\s]?([0-9]{3})[-.\s]?([0-9]{4})"),
    re.compile(r"\b\d{3}[-.\s]?\d{3}[-.\s]?\d{4}\b", re.ASCII),
    re.compile(r"\(\d{3}\)\s?\d{3}[-.\s]?\d{4}", re.ASCII),
)
_MONTHS = r"(Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)[a-z]*"
_DATE_PATTERNS = (
    re.compile(r"\b\d{1,2}[/-]\d{1,2}[/-]\d{2,4}\b", re.ASCII),
    re.compile(rf"\b\d{{1,2}}\s+{_MONTHS}\s+\d{{4}}\b", re.IGNORECASE | re.ASCII),
    re.compile(rf"\b{_MONTHS}\s+\d{{1,2}},?\s+\d{{4}}\b", re.IGNORECASE | re.ASCII),
    re.compile(r"\b\d{4}[-./]\d{1,2}[-./]\d{1,2}\b", re.ASCII),
)

_EMAIL_NAME_HINTS = ("email",)
_PHONE_NAME_HINTS = ("phone", "tel")
_DATE_NAME_HINTS = ("date", "commencement", "completion")
_NUMBER_NAME_HINTS = ("sqft", "sq_ft", "square")


def reconstruct_lines(lines: Optional[Sequence[OCRLine]], fallback_text: str) -> str:
    """Rebuild text from the word overlay, one output line per OCR line.

    Every line but the last keeps a trailing space before its newline so the
    text still reads as prose once the newlines are collapsed elsewhere.
    """

    if not lines:
        return fallback_text

    rebuilt = []
    for line in lines:
        joined = " ".join(word for word in line.words if word.strip())
        if joined.strip():
            rebuilt.append(joined)

    if not rebuilt:
        return fallback_text
    return _join_with_trailing_spaces(rebuilt)


def reflow_plain_text(text: str) -> str:
    """Apply the trailing-space line convention to flat OCR text."""

    lines = text.split("\n")
    if len(lines) <= 1:
        return text
    return _join_with_trailing_spaces([line.strip() for line in lines])


def _join_with_trailing_spaces(lines: Sequence[str]) -> str:
    last = len(lines) - 1
    return "\n".join(line + " " if index < last else line for index, line in enumerate(lines))


def is_mostly_uppercase(text: str) -> bool:
    letters = sum(1 for ch in text if ch.isascii() and ch.isalpha())
    if not letters:
        return False
    upper = sum(1 for ch in text if ch.isascii() and ch.isupper())
    return upper / letters > _UPPERCASE_RATIO


def normalize_capitalization(text: str) -> str:
    """Turn SHOUTED text into word-initial capitals, leaving other text alone."""

    if not text or not is_mostly_uppercase(text):
        return text

    chunks = _WORD_CHUNK_PATTERN.findall(text.lower())
    result = []
    for index, chunk in enumerate(chunks):
        if index > 0 and chunk.strip() in _SMALL_WORDS:
            result.append(chunk)
        elif chunk[0].isascii() and chunk[0].islower():
            result.append(chunk[0].upper() + chunk[1:])
        else:
            result.append(chunk)
    normalized = "".join(result)
    if is_mostly_uppercase(normalized):
        # only single-letter words left, e.g. initials
        return normalized[:1] + normalized[1:].lower()
    return normalized


def classify_field(target: TargetField) -> FieldKind:
    """Pick the formatting family for a destination field."""

    name = target.form_field_name.lower()
    input_type = (target.input_type or "").lower()

    if target.field_type.lower() == "textarea":
        return FieldKind.TEXTAREA
    if input_type == "email" or any(hint in name for hint in _EMAIL_NAME_HINTS):
        return FieldKind.EMAIL
    if any(hint in name for hint in _PHONE_NAME_HINTS):
        return FieldKind.PHONE
    if any(hint in name for hint in _DATE_NAME_HINTS):
        return FieldKind.DATE
    if input_type == "number" or any(hint in name for hint in _NUMBER_NAME_HINTS):
        return FieldKind.NUMBER
    if "address" in name:
        return FieldKind.ADDRESS
    return FieldKind.TEXT


def _single_line(text: str) -> str:
    return re.sub(r"\s+", " ", text.replace("\n", " "))


def format_textarea(text: str) -> str:
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r"\n[ \t]+", "\n", text)
    text = re.sub(r"[ \t]+\n", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def format_email(text: str) -> str:
    single = _single_line(text)
    match = _EMAIL_PATTERN.search(single)
    if match:
        return match.group(0).strip()
    cleaned = re.sub(r"[^\w@.-]", "", re.sub(r"\s+", "", single), flags=re.ASCII)
    if "@" in cleaned and "." in cleaned:
        return cleaned
    return single.strip()


def format_phone(text: str) -> str:
    single = _single_line(text)
    for pattern in _PHONE_PATTERNS:
        match = pattern.search(single)
        if not match:
            continue
        digits = re.sub(r"[^0-9]", "", match.group(0))
        if len(digits) == 10:
            return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"
        if len(digits) == 11 and digits[0] == "1":
            return f"({digits[1:4]}) {digits[4:7]}-{digits[7:]}"
        return match.group(0).strip()
    return single.strip()


def format_date(text: str) -> str:
    single = _single_line(text)
    for pattern in _DATE_PATTERNS:
        match = pattern.search(single)
        if match:
            return match.group(0).strip()
    return single.strip()


def format_number(text: str) -> str:
    flattened = text.replace("\n", " ")
    digits = re.sub(r"[^0-9]", "", flattened)
    return digits or flattened.strip()


def format_single_line(text: str) -> str:
    return _single_line(text).strip()


_FORMATTERS = {
    FieldKind.TEXTAREA: format_textarea,
    FieldKind.EMAIL: format_email,
    FieldKind.PHONE: format_phone,
    FieldKind.DATE: format_date,
    FieldKind.NUMBER: format_number,
    FieldKind.ADDRESS: format_single_line,
    FieldKind.TEXT: format_single_line,
}


def format_for_field(text: str, target: TargetField) -> str:
    """Fix capitalization, then shape ``text`` for the destination field type."""

    if not text:
        return text
    text = normalize_capitalization(text)
    return _FORMATTERS[classify_field(target)](text)


__all__ = [
    "classify_field",
    "format_for_field",
    "is_mostly_uppercase",
    "normalize_capitalization",
    "reconstruct_lines",
    "reflow_plain_text",
]
