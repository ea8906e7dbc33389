"""Streamlit UI for the PDF-to-form OCR filler."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List

import streamlit as st
import streamlit.components.v1 as components
from dotenv import load_dotenv

from ocrformfiller.controller import FORM_VIEW, FillController
from ocrformfiller.models import SelectionRect
from ocrformfiller.ocr import OCRSettings, OCRSpaceClient
from ocrformfiller.renderer import FitzRasterizer
from services import FieldDetector, HTMLFiller

FORMS_DIR = Path(__file__).resolve().parent / "forms"
DEFAULT_FORM_PATH = FORMS_DIR / "project_form.html"
VIEWER_WIDTH = 760
NO_FIELD = "(none)"

load_dotenv()

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

_NOTICE_RENDERERS = {
    "success": st.success,
    "error": st.error,
    "info": st.info,
}


class SessionNotifier:
    """Queue notifications so they survive the rerun that follows a button press."""

    def notify(self, severity: str, title: str, message: str) -> None:
        st.session_state.notices.append({"severity": severity, "title": title, "message": message})


def _record_field_change(name: str, value: str, event: str) -> None:
    if event == "change":
        st.session_state.change_log.append(f"{name} → {value}")


def _record_view_change(view: str) -> None:
    st.session_state.last_view = view


def _init_session_state() -> None:
    defaults = {
        "form_html": None,
        "form_name": None,
        "filler": None,
        "controller": None,
        "uploaded_filename": None,
        "notices": [],
        "change_log": [],
        "last_view": None,
        "uploader_key": 0,
    }
    for key, value in defaults.items():
        if key not in st.session_state:
            st.session_state[key] = value


def _build_controller(form_html: str) -> FillController:
    settings = OCRSettings.from_env()
    filler = HTMLFiller(form_html)
    detector = FieldDetector()
    st.session_state.filler = filler
    return FillController(
        form=filler,
        targets_provider=lambda: detector.extract_targets(filler.render()),
        rasterizer=FitzRasterizer(),
        ocr_client=OCRSpaceClient(settings),
        notifier=SessionNotifier(),
        on_field_changed=_record_field_change,
        on_view_change=_record_view_change,
        container_width=VIEWER_WIDTH,
    )


def _reset_form(form_html: str, form_name: str) -> None:
    controller = st.session_state.controller
    if controller is not None:
        controller.close()
    st.session_state.form_html = form_html
    st.session_state.form_name = form_name
    st.session_state.controller = None
    st.session_state.uploaded_filename = None
    st.session_state.change_log = []


def _render_notices() -> None:
    notices: List[Dict[str, str]] = st.session_state.notices
    for notice in notices:
        render = _NOTICE_RENDERERS.get(notice["severity"], st.info)
        render(f"**{notice['title']}**: {notice['message']}")
    st.session_state.notices = []


def _render_form_source_picker() -> None:
    with st.sidebar:
        st.header("Destination Form")
        st.markdown("Fields marked with `data-scrap=\"true\"` are filled from the PDF.")
        uploaded_form = st.file_uploader("Form HTML (optional)", type=["html", "htm"], key="form_upload")

    if uploaded_form is not None:
        if st.session_state.form_name != uploaded_form.name:
            _reset_form(uploaded_form.getvalue().decode("utf-8", errors="replace"), uploaded_form.name)
    elif st.session_state.form_html is None:
        _reset_form(DEFAULT_FORM_PATH.read_text(encoding="utf-8"), DEFAULT_FORM_PATH.name)


def _render_navigation(controller: FillController) -> None:
    if controller.view.total_pages <= 1:
        return
    prev_col, info_col, next_col = st.columns([1, 2, 1])
    with prev_col:
        if st.button("Previous", disabled=not controller.has_previous_page, key="pdf_prev_page"):
            controller.previous_page()
            st.rerun()
    with info_col:
        st.caption(f"Page {controller.view.current_page} of {controller.view.total_pages}")
    with next_col:
        if st.button("Next", disabled=not controller.has_next_page, key="pdf_next_page"):
            controller.next_page()
            st.rerun()


def _render_selection(controller: FillController) -> None:
    page = controller.page
    if page is None:
        st.info(controller.viewer_message)
        return

    width = int(page.display_width)
    height = int(page.display_height)
    disabled = not controller.selection_enabled

    x_range = st.slider("Horizontal extent", 0, width, (0, min(width, 200)), disabled=disabled, key="sel_x")
    y_range = st.slider("Vertical extent", 0, height, (0, min(height, 40)), disabled=disabled, key="sel_y")
    draft = SelectionRect(x_range[0], y_range[0], x_range[1], y_range[1])

    preview = controller.preview_image(None if disabled else draft)
    st.image(preview, width=width)

    if st.button("Extract text from selection", disabled=disabled, type="primary", key="extract_btn"):
        with st.spinner("Extracting text..."):
            if controller.pointer_down(draft.start_x, draft.start_y):
                controller.pointer_move(draft.end_x, draft.end_y)
                controller.pointer_up(draft.end_x, draft.end_y)
        st.rerun()


def _render_guided_panel(controller: FillController) -> None:
    sequence = controller.sequence
    confirmed, total = sequence.get_progress()
    if total:
        st.progress(confirmed / total, text=f"{confirmed} of {total} fields")

    st.text_area(
        "Current field",
        value=controller.staged_text or "",
        placeholder=controller.placeholder,
        disabled=True,
        key=f"guided_input_{confirmed}_{hash(controller.staged_text)}",
    )
    if controller.can_confirm and st.button(controller.confirm_label, key="set_field_btn"):
        controller.confirm()
        st.rerun()

    if not sequence.is_active:
        targets = FieldDetector().extract_targets(st.session_state.filler.render())
        names = [target.form_field_name for target in targets]
        if not names:
            return
        focused = controller.focused_field.form_field_name if controller.focused_field else None
        choice = st.selectbox(
            "Fill a single field",
            options=[NO_FIELD] + names,
            index=(names.index(focused) + 1) if focused in names else 0,
            key="adhoc_field",
        )
        if choice == NO_FIELD:
            if focused is not None:
                controller.blur_field()
        elif choice != focused:
            controller.focus_field(choice)
            st.rerun()
        else:
            st.caption(f"Current value: {controller.field_value(choice) or '(empty)'}")


def _render_form_preview() -> None:
    filler: HTMLFiller = st.session_state.filler
    if filler is None:
        return
    expanded = st.session_state.last_view == FORM_VIEW
    with st.expander("Destination form", expanded=expanded):
        components.html(filler.render(), height=520, scrolling=True)
        if st.session_state.change_log:
            st.markdown("**Changes**")
            for entry in st.session_state.change_log:
                st.text(entry)


def main() -> None:
    st.set_page_config(page_title="PDF Form Filler", page_icon="📄", layout="wide")
    _init_session_state()
    _render_form_source_picker()

    st.title("Fill a Project From a PDF")
    st.write(
        "Upload the plan set or contract. Drag over the text for each highlighted field, "
        "check the recognized text, then set it into the form."
    )

    if st.session_state.controller is None:
        try:
            st.session_state.controller = _build_controller(st.session_state.form_html)
        except ValueError as exc:
            st.error(str(exc), icon="⚠️")
            return
    controller: FillController = st.session_state.controller

    uploaded_pdf = st.file_uploader(
        "Upload PDF",
        type=["pdf"],
        accept_multiple_files=False,
        key=f"pdf_upload_{st.session_state.uploader_key}",
    )
    if uploaded_pdf is None:
        if controller.is_loaded:
            controller.close()
            st.session_state.uploaded_filename = None
        _render_notices()
        st.info("Upload a PDF to begin.")
        _render_form_preview()
        return

    if st.session_state.uploaded_filename != uploaded_pdf.name:
        st.session_state.uploaded_filename = uploaded_pdf.name
        if uploaded_pdf.type not in (None, "", "application/pdf"):
            controller.report_upload_error(f"{uploaded_pdf.name} is not a PDF file.")
        else:
            controller.load_document(uploaded_pdf.getvalue(), uploaded_pdf.name)

    _render_notices()

    viewer_col, guided_col = st.columns([3, 2])
    with viewer_col:
        header_col, close_col = st.columns([4, 1])
        with header_col:
            st.subheader(controller.view.filename or "PDF")
        with close_col:
            if st.button("Close", key="pdf_close_btn"):
                controller.close()
                st.session_state.uploaded_filename = None
                st.session_state.uploader_key += 1
                st.rerun()
        _render_navigation(controller)
        _render_selection(controller)

    with guided_col:
        _render_guided_panel(controller)
        _render_form_preview()


if __name__ == "__main__":
    main()
