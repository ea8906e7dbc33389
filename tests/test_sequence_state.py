from __future__ import annotations

import subprocess
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from models.sequence_state import IDLE_STATE, SequencePhase, SequenceState
from ocrformfiller.models import TargetField


def _fields(*names: str) -> tuple:
    return tuple(TargetField(name=name, label=f"Select {name}", form_field_name=name) for name in names)


def test_state_module_imports_on_its_own():
    result = subprocess.run(
        [sys.executable, "-c", "import models.sequence_state"],
        cwd=ROOT,
        capture_output=True,
        text=True,
    )

    assert result.returncode == 0, result.stderr


def test_start_with_fields_awaits_first_selection():
    state = SequenceState.start(_fields("address", "title"))

    assert state.phase is SequencePhase.AWAITING_SELECTION
    assert state.is_active
    assert state.get_current_field().form_field_name == "address"
    assert state.get_progress() == (0, 2)


def test_start_without_fields_is_complete():
    state = SequenceState.start(())

    assert state.is_complete
    assert state.get_current_field() is None


def test_stage_replaces_pending_text_and_keeps_cursor():
    state = SequenceState.start(_fields("address", "title"))

    state = state.stage_result("first").stage_result("second")

    assert state.phase is SequencePhase.RESULT_PENDING
    assert state.pending_result == "second"
    assert state.current_field_index == 0


def test_confirm_advances_then_completes():
    state = SequenceState.start(_fields("address", "title"))

    assert state.confirm() is state

    state = state.stage_result("1 Elm St").confirm()
    assert state.phase is SequencePhase.AWAITING_SELECTION
    assert state.pending_result is None
    assert state.get_current_field().form_field_name == "title"

    state = state.stage_result("Title").confirm()
    assert state.is_complete
    assert state.get_progress() == (2, 2)
    assert state.stage_result("late") is state


def test_idle_state_ignores_results():
    assert IDLE_STATE.stage_result("text") is IDLE_STATE
    assert IDLE_STATE.is_active is False
    assert IDLE_STATE.phase is SequencePhase.IDLE
