"""Guided field sequence state for PDF-to-form filling."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import TYPE_CHECKING, Optional, Tuple

if TYPE_CHECKING:
    from ocrformfiller.models import TargetField


class SequencePhase(str, Enum):
    IDLE = "idle"
    AWAITING_SELECTION = "awaiting_selection"
    RESULT_PENDING = "result_pending"
    COMPLETE = "complete"


@dataclass(frozen=True)
class SequenceState:
    """Immutable snapshot describing the progress of a guided filling session."""

    fields: Tuple[TargetField, ...] = ()
    current_field_index: int = 0
    pending_result: Optional[str] = None
    phase: SequencePhase = SequencePhase.IDLE

    @classmethod
    def start(cls, fields: Tuple[TargetField, ...]) -> "SequenceState":
        """Begin a sequence at the first field, or complete at once when empty."""

        fields = tuple(fields)
        phase = SequencePhase.AWAITING_SELECTION if fields else SequencePhase.COMPLETE
        return cls(fields=fields, phase=phase)

    @property
    def is_active(self) -> bool:
        return self.phase in (SequencePhase.AWAITING_SELECTION, SequencePhase.RESULT_PENDING)

    @property
    def is_complete(self) -> bool:
        return self.phase is SequencePhase.COMPLETE

    def get_current_field(self) -> Optional[TargetField]:
        """Return the field currently awaiting a selection."""

        if 0 <= self.current_field_index < len(self.fields):
            return self.fields[self.current_field_index]
        return None

    def stage_result(self, text: str) -> "SequenceState":
        """Hold OCR text for the current field; a newer selection replaces it."""

        if not self.is_active:
            return self
        return replace(self, pending_result=text, phase=SequencePhase.RESULT_PENDING)

    def confirm(self) -> "SequenceState":
        """Accept the staged text for the current field and advance the cursor."""

        if self.phase is not SequencePhase.RESULT_PENDING or self.pending_result is None:
            return self

        next_index = self.current_field_index + 1
        phase = SequencePhase.AWAITING_SELECTION if next_index < len(self.fields) else SequencePhase.COMPLETE
        return replace(
            self,
            current_field_index=next_index,
            pending_result=None,
            phase=phase,
        )

    def get_progress(self) -> Tuple[int, int]:
        """Return a tuple of (confirmed_fields, total_fields)."""

        return self.current_field_index, len(self.fields)


IDLE_STATE = SequenceState()
