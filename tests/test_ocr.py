from __future__ import annotations

import sys
from pathlib import Path

import pytest
import requests

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from ocrformfiller.models import OCRLine
from ocrformfiller.ocr import OCRError, OCRSettings, OCRSpaceClient, parse_response


class _FakeResponse:
    def __init__(self, payload=None, status_error=None, json_error=None):
        self._payload = payload
        self._status_error = status_error
        self._json_error = json_error

    def raise_for_status(self):
        if self._status_error is not None:
            raise self._status_error

    def json(self):
        if self._json_error is not None:
            raise self._json_error
        return self._payload


class _FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response


def _ok_payload(text="Hello world", overlay_key="TextOverlay"):
    return {
        "IsErroredOnProcessing": False,
        "ParsedResults": [
            {
                "ParsedText": text,
                overlay_key: {
                    "Lines": [
                        {"Words": [{"WordText": "Hello"}, {"WordText": "world"}]},
                    ]
                },
            }
        ],
    }


def test_from_env_reads_key_and_overrides(monkeypatch):
    monkeypatch.delenv("OCR_LANGUAGE", raising=False)
    monkeypatch.setenv("OCR_SPACE_API_KEY", "secret")
    monkeypatch.setenv("OCR_ENGINE", "1")
    monkeypatch.setenv("OCR_TIMEOUT", "15")

    settings = OCRSettings.from_env()

    assert settings.api_key == "secret"
    assert settings.engine == "1"
    assert settings.timeout == 15.0
    assert settings.language == "eng"


def test_from_env_without_key_raises(monkeypatch):
    monkeypatch.delenv("OCR_SPACE_API_KEY", raising=False)

    with pytest.raises(ValueError, match="OCR_SPACE_API_KEY"):
        OCRSettings.from_env()


def test_recognize_posts_expected_request():
    session = _FakeSession(_FakeResponse(_ok_payload()))
    client = OCRSpaceClient(OCRSettings(api_key="k", url="https://ocr.test/parse"), session=session)

    result = client.recognize(b"jpeg-bytes")

    assert result.parsed_text == "Hello world"
    assert result.lines == (OCRLine(words=("Hello", "world")),)

    url, kwargs = session.calls[0]
    assert url == "https://ocr.test/parse"
    assert kwargs["headers"] == {"apikey": "k"}
    assert kwargs["files"]["file"] == ("selection.jpg", b"jpeg-bytes", "image/jpeg")
    assert kwargs["data"] == {
        "language": "eng",
        "isOverlayRequired": "true",
        "OCREngine": "2",
        "detectOrientation": "true",
    }
    assert kwargs["timeout"] == 60.0


def test_recognize_maps_transport_failures_to_ocr_error():
    session = _FakeSession(error=requests.ConnectionError("network down"))
    client = OCRSpaceClient(OCRSettings(api_key="k"), session=session)

    with pytest.raises(OCRError, match="network down"):
        client.recognize(b"x")


def test_recognize_maps_http_status_to_ocr_error():
    response = _FakeResponse(status_error=requests.HTTPError("403 Client Error"))
    client = OCRSpaceClient(OCRSettings(api_key="k"), session=_FakeSession(response))

    with pytest.raises(OCRError, match="403"):
        client.recognize(b"x")


def test_recognize_maps_bad_json_to_ocr_error():
    response = _FakeResponse(json_error=ValueError("Expecting value"))
    client = OCRSpaceClient(OCRSettings(api_key="k"), session=_FakeSession(response))

    with pytest.raises(OCRError, match="invalid JSON"):
        client.recognize(b"x")


def test_parse_response_reports_service_error_message():
    payload = {"IsErroredOnProcessing": True, "ErrorMessage": ["File failed validation.", "Too small"]}

    with pytest.raises(OCRError, match="File failed validation. Too small"):
        parse_response(payload)


def test_parse_response_without_message_uses_generic_text():
    with pytest.raises(OCRError, match="OCR processing failed"):
        parse_response({"IsErroredOnProcessing": True})


def test_parse_response_with_blank_text_raises():
    with pytest.raises(OCRError, match="No text found in selected region"):
        parse_response({"IsErroredOnProcessing": False, "ParsedResults": [{"ParsedText": "  \r\n"}]})

    with pytest.raises(OCRError, match="No text found"):
        parse_response({"IsErroredOnProcessing": False, "ParsedResults": []})


def test_parse_response_accepts_words_overlay_key():
    result = parse_response(_ok_payload(text="  Hello world \r\n", overlay_key="WordsOverlay"))

    assert result.parsed_text == "Hello world"
    assert result.lines[0].words == ("Hello", "world")


def test_parse_response_without_overlay_has_no_lines():
    result = parse_response({"ParsedResults": [{"ParsedText": "Plain"}]})

    assert result.lines is None
