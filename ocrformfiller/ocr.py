"""Client for the OCR.space recognition API."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Optional, Protocol

import requests

from .extractor import OCR_IMAGE_MIME
from .models import OCRLine, OCRResult

logger = logging.getLogger(__name__)

DEFAULT_OCR_URL = "https://api.ocr.space/parse/image"


class OCRError(Exception):
    """Raised when the OCR service cannot produce text for a region."""


class OCRClient(Protocol):
    def recognize(self, image: bytes) -> OCRResult:
        ...


@dataclass(frozen=True)
class OCRSettings:
    api_key: str
    url: str = DEFAULT_OCR_URL
    language: str = "eng"
    engine: str = "2"
    timeout: float = 60.0

    @classmethod
    def from_env(cls, api_key: Optional[str] = None) -> "OCRSettings":
        """Build settings from the environment.

        Args:
            api_key: Optional key. If not provided, uses OCR_SPACE_API_KEY from environment.

        Raises:
            ValueError: If no API key is found.
        """
        key = api_key or os.getenv("OCR_SPACE_API_KEY")
        if not key:
            raise ValueError(
                "OCR.space API key not found. Set OCR_SPACE_API_KEY environment variable "
                "or pass api_key parameter."
            )
        return cls(
            api_key=key,
            url=os.getenv("OCR_SPACE_URL", DEFAULT_OCR_URL),
            language=os.getenv("OCR_LANGUAGE", "eng"),
            engine=os.getenv("OCR_ENGINE", "2"),
            timeout=float(os.getenv("OCR_TIMEOUT", "60")),
        )


class OCRSpaceClient:
    """Send cropped regions to OCR.space and parse the reply."""

    def __init__(self, settings: OCRSettings, session: Optional[requests.Session] = None) -> None:
        self._settings = settings
        self._session = session or requests.Session()

    def recognize(self, image: bytes) -> OCRResult:
        files = {"file": ("selection.jpg", image, OCR_IMAGE_MIME)}
        data = {
            "language": self._settings.language,
            "isOverlayRequired": "true",
            "OCREngine": self._settings.engine,
            "detectOrientation": "true",
        }
        logger.info("[OCR] Sending %d byte region to %s", len(image), self._settings.url)
        try:
            response = self._session.post(
                self._settings.url,
                headers={"apikey": self._settings.api_key},
                files=files,
                data=data,
                timeout=self._settings.timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as exc:
            raise OCRError(str(exc)) from exc
        except ValueError as exc:
            raise OCRError(f"OCR service returned invalid JSON: {exc}") from exc
        return parse_response(payload)


def _error_text(raw: Any) -> str:
    if isinstance(raw, list):
        return " ".join(str(item) for item in raw if item)
    return str(raw) if raw else ""


def parse_response(payload: Any) -> OCRResult:
    """Convert the service JSON into an :class:`OCRResult`."""

    if not isinstance(payload, dict):
        raise OCRError("OCR processing failed")
    if payload.get("IsErroredOnProcessing"):
        raise OCRError(_error_text(payload.get("ErrorMessage")) or "OCR processing failed")

    results = payload.get("ParsedResults") or []
    first = results[0] if results and isinstance(results[0], dict) else {}
    parsed_text = first.get("ParsedText")
    if not isinstance(parsed_text, str) or not parsed_text.strip():
        raise OCRError("No text found in selected region")

    lines = None
    overlay = first.get("TextOverlay") or first.get("WordsOverlay")
    if isinstance(overlay, dict) and isinstance(overlay.get("Lines"), list):
        lines = tuple(_parse_line(line) for line in overlay["Lines"] if isinstance(line, dict))

    return OCRResult(parsed_text=parsed_text.strip(), lines=lines)


def _parse_line(line: dict) -> OCRLine:
    words = line.get("Words")
    if not isinstance(words, list):
        return OCRLine()
    return OCRLine(
        words=tuple(str(word.get("WordText") or "") for word in words if isinstance(word, dict))
    )


__all__ = ["OCRClient", "OCRError", "OCRSettings", "OCRSpaceClient", "parse_response"]
