"""Discovery of OCR-fillable fields in the destination form."""

from __future__ import annotations

import logging
import re
from typing import List, Optional

from bs4 import BeautifulSoup, Tag

from ocrformfiller.models import ADDRESS_FIELD_NAME, TargetField

logger = logging.getLogger(__name__)

SCRAP_SELECTOR = "[data-scrap='true']"
ADDRESS_VALUE_ID = "address-value"
ADDRESS_LABEL = "Select Address"
_REQUIRED_MARKER = re.compile(r"\s*\*\s*$")


class FieldDetector:
    """Parse the destination form to recover the ordered list of fields to fill."""

    def extract_targets(self, html_content: str) -> List[TargetField]:
        """Return one descriptor per marked field, address first, names unique."""

        soup = BeautifulSoup(html_content or "", "lxml")
        root = self._resolve_form(soup)

        address_field: Optional[TargetField] = None
        others: List[TargetField] = []
        seen = set()
        for element in root.select(SCRAP_SELECTOR):
            name = element.get("name")
            if not name or name in seen:
                continue

            if name == ADDRESS_FIELD_NAME or element.get("id") == ADDRESS_VALUE_ID:
                if address_field is None:
                    address_field = TargetField(
                        name=ADDRESS_FIELD_NAME,
                        label=ADDRESS_LABEL,
                        form_field_name=ADDRESS_FIELD_NAME,
                        field_type="input",
                    )
                    seen.add(ADDRESS_FIELD_NAME)
                continue

            seen.add(name)
            others.append(
                TargetField(
                    name=name,
                    label=self._resolve_label(element, root),
                    form_field_name=name,
                    field_type=element.name.lower(),
                    input_type=self._resolve_input_type(element),
                )
            )

        targets = ([address_field] if address_field else []) + others
        logger.info("[PDF-GUIDED] Built %d field(s) to fill: %s", len(targets), [t.form_field_name for t in targets])
        return targets

    def _resolve_form(self, soup: BeautifulSoup) -> Tag:
        form = soup.select_one("form[data-project-id]") or soup.find("form")
        return form if isinstance(form, Tag) else soup

    def _resolve_input_type(self, element: Tag) -> str:
        if element.name in {"textarea", "select"}:
            return element.name
        return str(element.get("type", "text")).lower()

    def _resolve_label(self, element: Tag, root: Tag) -> str:
        name = element.get("name", "")
        label_tag = None
        element_id = element.get("id")
        if element_id:
            label_tag = root.find("label", attrs={"for": element_id})
        if label_tag is None:
            parent_label = element.find_parent("label")
            if parent_label is not None:
                label_tag = parent_label

        if label_tag is not None:
            text = label_tag.get_text(" ", strip=True)
            if text:
                return "Select " + _REQUIRED_MARKER.sub("", text).strip()
        return "Select " + _humanise(name)


def _humanise(name: str) -> str:
    if not name:
        return "Field"
    return name[0].upper() + re.sub(r"([A-Z])", r" \1", name[1:])


__all__ = ["FieldDetector"]
