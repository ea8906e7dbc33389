"""Coordinates the PDF viewer, region selection, OCR and field filling.

All mutable workflow state lives on :class:`FillController`; the UI layer only
forwards pointer, navigation and button events and renders what the
controller exposes. Guided mode walks the destination fields one at a time:
each OCR result is staged until the user confirms it. When the guided
sequence is not running, focusing a field and selecting a region fills that
field directly (ad hoc mode).
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Protocol, Sequence

from PIL import Image

from models.sequence_state import IDLE_STATE, SequencePhase, SequenceState

from .extractor import ExtractionError
from .models import DocumentView, SelectionRect, Severity, TargetField
from .normalizer import format_for_field, normalize_capitalization, reconstruct_lines, reflow_plain_text
from .ocr import OCRClient, OCRError
from .renderer import DocumentLoadError, PdfDocument, Rasterizer, RenderedPage, WheelNavigator
from .selection import SelectionOverlay, compose_preview

logger = logging.getLogger(__name__)

MIN_CROP_PIXELS = 10
VIEWER_PLACEHOLDER = "PDF will appear here"
EXTRACTING_PLACEHOLDER = "Extracting text..."
COMPLETE_PLACEHOLDER = "All fields completed!"
PDF_VIEW = "pdf"
FORM_VIEW = "form"


class Notifier(Protocol):
    def notify(self, severity: str, title: str, message: str) -> None:
        ...


class NullNotifier:
    def notify(self, severity: str, title: str, message: str) -> None:
        return None


class DestinationForm(Protocol):
    def read(self, name: str) -> Optional[str]:
        ...

    def write(self, target: TargetField, value: str) -> bool:
        ...


FieldChangeListener = Callable[[str, str, str], None]
ViewListener = Callable[[str], None]
TargetsProvider = Callable[[], Sequence[TargetField]]


class FillController:
    """Owns the loaded document, selection, OCR guard and field cursor."""

    def __init__(
        self,
        form: DestinationForm,
        targets_provider: TargetsProvider,
        rasterizer: Rasterizer,
        ocr_client: OCRClient,
        *,
        notifier: Optional[Notifier] = None,
        on_field_changed: Optional[FieldChangeListener] = None,
        on_view_change: Optional[ViewListener] = None,
        device_pixel_ratio: float = 1.0,
        container_width: Optional[float] = None,
    ) -> None:
        self.form = form
        self._targets_provider = targets_provider
        self._rasterizer = rasterizer
        self._ocr_client = ocr_client
        self._notifier = notifier or NullNotifier()
        self._on_field_changed = on_field_changed
        self._on_view_change = on_view_change
        self.device_pixel_ratio = device_pixel_ratio
        self.container_width = container_width

        self.document: Optional[PdfDocument] = None
        self.view = DocumentView()
        self.page: Optional[RenderedPage] = None
        self.overlay: Optional[SelectionOverlay] = None
        self.wheel = WheelNavigator()
        self.sequence: SequenceState = IDLE_STATE
        self.focused_field: Optional[TargetField] = None
        self.viewer_message = VIEWER_PLACEHOLDER
        self.placeholder = ""
        self.active_view = PDF_VIEW
        self.ocr_in_progress = False
        self._document_listener_armed = False
        self._session = 0

    # -- document lifecycle -------------------------------------------------

    @property
    def is_loaded(self) -> bool:
        return self.document is not None

    def load_document(self, data: bytes, filename: str = "", *, guided: bool = True) -> bool:
        """Open an uploaded PDF, show page 1 and start the guided sequence."""

        if self.document is not None:
            self.close()

        try:
            document = PdfDocument.from_bytes(data, filename)
        except DocumentLoadError as exc:
            logger.error("[PDF-GUIDED] Error loading PDF '%s': %s", filename, exc)
            self.viewer_message = f"Error: {exc}"
            self._notify(Severity.ERROR, "PDF Error", str(exc))
            return False

        self.document = document
        self.view = DocumentView(filename=filename, current_page=1, total_pages=document.page_count)
        if not self.render_page(1):
            message = self.viewer_message
            self.close()
            self.viewer_message = message
            self._notify(Severity.ERROR, "PDF Error", message)
            return False

        if guided:
            self.sequence = SequenceState.start(tuple(self._targets_provider()))
            self._reset_placeholder()
            if self.sequence.is_active and self.overlay is not None:
                self.overlay.enable()
        return True

    def report_upload_error(self, message: str) -> None:
        logger.error("[PDF-GUIDED] PDF upload error: %s", message)
        self._notify(Severity.ERROR, "Upload Error", message)

    def close(self) -> None:
        """Tear down the document and every piece of selection and field state."""

        self.wheel.detach()
        if self.document is not None:
            self.document.close()
        self.document = None
        self.page = None
        self.overlay = None
        self.view = DocumentView()
        self.sequence = IDLE_STATE
        self.focused_field = None
        self.viewer_message = VIEWER_PLACEHOLDER
        self.placeholder = ""
        self.active_view = PDF_VIEW
        self._document_listener_armed = False
        # responses still in flight belong to the old session and are dropped
        self._session += 1
        logger.info("[PDF-GUIDED] Closed document")

    # -- page navigation ----------------------------------------------------

    def render_page(self, page_number: int) -> bool:
        if self.document is None:
            return False
        try:
            page = self._rasterizer.render_page(
                self.document,
                page_number,
                device_pixel_ratio=self.device_pixel_ratio,
                container_width=self.container_width,
            )
        except (RuntimeError, ValueError) as exc:
            logger.exception("[PDF-GUIDED] Error rendering page %d", page_number)
            self.viewer_message = f"Error: could not render page {page_number}: {exc}"
            return False

        self.page = page
        self.view.current_page = page_number
        self.view.page_scales[page_number] = page.render_scale
        self.overlay = SelectionOverlay(page.pixel_size, (page.display_width, page.display_height))
        self.wheel.attach()
        self.viewer_message = ""
        if self.sequence.is_active or self.focused_field is not None:
            self.overlay.enable()
        return True

    @property
    def has_previous_page(self) -> bool:
        return self.is_loaded and self.view.current_page > 1

    @property
    def has_next_page(self) -> bool:
        return self.is_loaded and self.view.current_page < self.view.total_pages

    def next_page(self) -> bool:
        if not self.has_next_page:
            return False
        return self.render_page(self.view.current_page + 1)

    def previous_page(self) -> bool:
        if not self.has_previous_page:
            return False
        return self.render_page(self.view.current_page - 1)

    def scroll(self, delta_y: float) -> bool:
        target = self.wheel.scroll(delta_y, self.view.current_page, self.view.total_pages)
        if target is None:
            return False
        return self.render_page(target)

    # -- focus (ad hoc mode) ------------------------------------------------

    def focus_field(self, name: str) -> Optional[TargetField]:
        target = self._lookup_target(name)
        self.focused_field = target
        if self.overlay is not None:
            self.overlay.enable()
        return target

    def blur_field(self) -> None:
        if self.overlay is not None and self.overlay.is_selecting:
            return
        self.focused_field = None
        if self.overlay is not None and not self.sequence.is_active:
            self.overlay.disable()

    def _lookup_target(self, name: str) -> TargetField:
        for target in self._targets_provider():
            if target.form_field_name == name:
                return target
        return TargetField(name=name, label=f"Select {name}", form_field_name=name)

    # -- selection ----------------------------------------------------------

    @property
    def selection_enabled(self) -> bool:
        return self.overlay is not None and self.overlay.active

    def _selection_allowed(self) -> bool:
        return self.focused_field is not None or self.sequence.is_active

    def pointer_down(self, x: float, y: float) -> bool:
        if self.overlay is None or not self._selection_allowed():
            return False
        started = self.overlay.pointer_down(x, y)
        if started:
            self._document_listener_armed = True
        return started

    def pointer_move(self, x: float, y: float) -> None:
        if self.overlay is None or not self._selection_allowed():
            return
        self.overlay.pointer_move(x, y)

    def pointer_leave(self) -> None:
        if self.overlay is not None:
            self.overlay.pointer_leave()

    def pointer_up(self, x: float, y: float) -> bool:
        """Release over the overlay; returns True when an OCR round-trip ran."""

        if self.overlay is None or not self.overlay.is_selecting or self.ocr_in_progress:
            return False
        return self._finish_selection(x, y)

    def document_pointer_up(self, x: float, y: float) -> bool:
        """Release anywhere on the page, armed once by each pointer-down.

        ``x``/``y`` are relative to the overlay; points outside it keep the
        last tracked corner.
        """

        if not self._document_listener_armed:
            return False
        self._document_listener_armed = False
        if self.overlay is None or not self.overlay.is_selecting or self.ocr_in_progress:
            return False
        if self.overlay.contains(x, y):
            return self._finish_selection(x, y)
        return self._finish_selection(None, None)

    def _finish_selection(self, x: Optional[float], y: Optional[float]) -> bool:
        assert self.overlay is not None
        if not self._selection_allowed():
            self.overlay.clear()
            return False
        rect = self.overlay.finish(x, y)
        if rect is None:
            return False

        adhoc_target = None if self.sequence.is_active else self.focused_field
        logger.info(
            "[PDF-SELECTOR] Selection finished (%.0fx%.0f), guided=%s",
            rect.width,
            rect.height,
            adhoc_target is None,
        )
        self.ocr_in_progress = True
        try:
            self._extract(rect, adhoc_target)
        finally:
            self.ocr_in_progress = False
        return True

    # -- extraction and OCR -------------------------------------------------

    def _extract(self, rect: SelectionRect, adhoc_target: Optional[TargetField]) -> None:
        overlay, page = self.overlay, self.page
        if overlay is None or page is None:
            logger.warning("[PDF-SELECTOR] Missing page or overlay, skipping extraction")
            return

        box = overlay.to_canvas(rect)
        if box[2] < MIN_CROP_PIXELS or box[3] < MIN_CROP_PIXELS:
            self._notify(Severity.ERROR, "Selection Too Small", "Please select a larger area for OCR.")
            overlay.clear()
            return

        session = self._session
        if adhoc_target is None:
            self.placeholder = EXTRACTING_PLACEHOLDER

        try:
            crop = self._rasterizer.crop_region(page.image, box)
            payload = self._rasterizer.compress(crop)
        except (ExtractionError, OSError) as exc:
            logger.exception("[OCR] Could not prepare selection for OCR")
            self._restore_after_failure(adhoc_target)
            self._notify(Severity.ERROR, "Extraction Error", str(exc) or "Could not read the selected region")
            return

        try:
            result = self._ocr_client.recognize(payload)
        except OCRError as exc:
            logger.error("[OCR] OCR error: %s", exc)
            if session != self._session:
                return
            self._restore_after_failure(adhoc_target)
            self._notify(Severity.ERROR, "OCR Error", str(exc) or "Failed to extract text")
            return

        if session != self._session:
            logger.info("[OCR] Dropping result that arrived after the document was closed")
            return

        if result.lines:
            text = reconstruct_lines(result.lines, result.parsed_text)
        else:
            text = reflow_plain_text(result.parsed_text)

        if adhoc_target is None:
            self._stage_guided_result(text)
        else:
            self._fill_adhoc(adhoc_target, text)

    def _stage_guided_result(self, text: str) -> None:
        current = self.sequence.get_current_field()
        self.sequence = self.sequence.stage_result(normalize_capitalization(text))
        self._reset_placeholder()
        self._rearm_selection()
        if current is not None:
            self._notify(
                Severity.SUCCESS,
                "Text Extracted",
                f'Text extracted. Click "Set {current.short_label}" to apply it, or select again to replace.',
            )

    def _fill_adhoc(self, target: TargetField, text: str) -> None:
        value = format_for_field(text, target)
        if value:
            self._write_field(target, value)
        else:
            logger.info(
                "[PDF-SELECTOR] Empty result, %s keeps %r",
                target.form_field_name,
                self.field_value(target.form_field_name),
            )
        self._rearm_selection()
        self._notify(Severity.SUCCESS, "Text Extracted", "Extracted text has been filled into the field.")

    def _restore_after_failure(self, adhoc_target: Optional[TargetField]) -> None:
        if adhoc_target is None:
            self._reset_placeholder()
        self._rearm_selection()

    def _rearm_selection(self) -> None:
        if self.overlay is None:
            return
        self.overlay.clear()
        if self._selection_allowed():
            self.overlay.enable()

    # -- guided confirmation ------------------------------------------------

    @property
    def staged_text(self) -> Optional[str]:
        return self.sequence.pending_result

    @property
    def confirm_label(self) -> str:
        current = self.sequence.get_current_field()
        return f"Set {current.short_label}" if current is not None else "Set Address"

    @property
    def can_confirm(self) -> bool:
        return self.sequence.phase is SequencePhase.RESULT_PENDING

    def confirm(self) -> bool:
        """Write the staged text into the real field and move to the next one."""

        if not self.can_confirm:
            return False
        current = self.sequence.get_current_field()
        value = self.sequence.pending_result
        if current is None or value is None:
            return False

        self._write_field(current, value)
        self._notify(Severity.SUCCESS, "Field Updated", f"{current.short_label} has been updated in the form.")
        self._switch_view(FORM_VIEW)

        self.sequence = self.sequence.confirm()
        logger.info("[PDF-GUIDED] Confirmed %s (%d/%d)", current.form_field_name, *self.sequence.get_progress())

        if self.sequence.is_complete:
            self.placeholder = COMPLETE_PLACEHOLDER
            if self.overlay is not None:
                self.overlay.disable()
            self._notify(Severity.SUCCESS, "All Fields Complete", "All form fields have been filled from the PDF.")
        else:
            self._switch_view(PDF_VIEW)
            self._reset_placeholder()
            self._rearm_selection()
        return True

    def _write_field(self, target: TargetField, value: str) -> None:
        if not self.form.write(target, value):
            logger.warning("[PDF-GUIDED] Field not found: %s", target.form_field_name)
            return
        if self._on_field_changed is not None:
            for event in ("input", "change"):
                self._on_field_changed(target.form_field_name, value, event)

    # -- presentation helpers -----------------------------------------------

    def field_value(self, name: str) -> Optional[str]:
        """Current value of a destination field, ``None`` when the form lacks it."""

        return self.form.read(name)

    def preview_image(self, rect: Optional[SelectionRect] = None) -> Optional[Image.Image]:
        """Rendered page with ``rect`` (or the drag in progress) painted on top."""

        if self.page is None:
            return None
        if self.overlay is None or (rect is None and not self.overlay.is_selecting):
            return self.page.image
        return compose_preview(self.page.image, self.overlay.draw(rect))

    def _reset_placeholder(self) -> None:
        current = self.sequence.get_current_field()
        if current is not None:
            self.placeholder = current.label
        elif self.sequence.is_complete:
            self.placeholder = COMPLETE_PLACEHOLDER

    def _switch_view(self, view: str) -> None:
        self.active_view = view
        if self._on_view_change is not None:
            self._on_view_change(view)

    def _notify(self, severity: Severity, title: str, message: str) -> None:
        self._notifier.notify(severity.value, title, message)


__all__ = ["FillController", "Notifier", "NullNotifier"]
