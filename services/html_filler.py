"""Writes OCR results into the destination form markup."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from bs4 import BeautifulSoup, Tag

from ocrformfiller.models import ADDRESS_FIELD_NAME, TargetField

logger = logging.getLogger(__name__)

VALUE = "value"
BUTTON_LABEL = "button-label"


@dataclass(frozen=True)
class WriteTarget:
    """One element (by CSS selector) that receives a field's value."""

    selector: str
    mode: str = VALUE


@dataclass(frozen=True)
class FieldBinding:
    targets: Tuple[WriteTarget, ...]


DEFAULT_BINDINGS: Dict[str, FieldBinding] = {
    ADDRESS_FIELD_NAME: FieldBinding(
        targets=(
            WriteTarget("#address-value"),
            WriteTarget('input[name="address"]'),
            WriteTarget("#address", mode=BUTTON_LABEL),
        )
    ),
}


class HTMLFiller:
    """Hold the destination form and inject confirmed values into it."""

    def __init__(
        self,
        html_template: str,
        bindings: Optional[Dict[str, FieldBinding]] = None,
    ) -> None:
        self._soup = BeautifulSoup(html_template or "", "lxml")
        self._bindings = dict(DEFAULT_BINDINGS if bindings is None else bindings)

    def read(self, name: str) -> Optional[str]:
        """Return the current value of the first control called ``name``."""

        element = self._soup.find(attrs={"name": name})
        if element is None:
            return None
        if element.name == "textarea":
            return element.get_text()
        if element.name == "select":
            selected = element.find("option", selected=True) or element.find("option")
            if selected is None:
                return ""
            return selected.get("value") or selected.get_text(strip=True)
        return element.get("value", "")

    def write(self, target: TargetField, value: str) -> bool:
        """Write ``value`` into every element bound to ``target``.

        Returns False when no element in the form matches.
        """

        written = False
        seen: List[Tag] = []
        for write_target in self._binding_for(target).targets:
            for element in self._soup.select(write_target.selector):
                if any(element is other for other in seen):
                    continue
                seen.append(element)
                if write_target.mode == BUTTON_LABEL:
                    written = self._write_button_label(element, value) or written
                    continue
                self._write_control(element, value)
                written = True

        logger.debug("[PDF-GUIDED] Wrote %s into %d element(s)", target.form_field_name, len(seen))
        return written

    def render(self) -> str:
        return str(self._soup)

    def _binding_for(self, target: TargetField) -> FieldBinding:
        binding = self._bindings.get(target.form_field_name)
        if binding is not None:
            return binding
        return FieldBinding(targets=(WriteTarget(f'[name="{target.form_field_name}"]'),))

    def _write_control(self, element: Tag, value: str) -> None:
        if element.name == "textarea":
            element.string = value
        elif element.name == "select":
            self._fill_select(element, value)
        else:
            element["value"] = value

    def _write_button_label(self, element: Tag, value: str) -> bool:
        label = element.select_one(".button-text")
        if label is None:
            label = next(
                (
                    span
                    for span in element.find_all("span")
                    if not any("icon" in cls for cls in span.get("class", [])) and span.find("svg") is None
                ),
                None,
            )
        if label is None:
            return False
        label.string = value
        return True

    def _fill_select(self, element: Tag, answer: str) -> None:
        for option in element.find_all("option"):
            option_value = option.get("value") or option.get_text(strip=True)
            if option_value == answer:
                option["selected"] = True
            else:
                option.attrs.pop("selected", None)


__all__ = ["DEFAULT_BINDINGS", "FieldBinding", "HTMLFiller", "WriteTarget"]
