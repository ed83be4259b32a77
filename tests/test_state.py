from __future__ import annotations

import pytest

from qr_wallet.models import QRRecord
from qr_wallet.state import AppState


@pytest.fixture()
def state() -> AppState:
    state = AppState()
    state.replace_records(
        [
            QRRecord("a", "1", "A", 1),
            QRRecord("b", "2", "B", 2),
            QRRecord("c", "3", "C", 3),
        ]
    )
    return state


def test_toggle_selection(state: AppState):
    state.toggle_selection("a")
    state.toggle_selection("c")
    state.toggle_selection("a")

    assert list(state.selected_ids) == ["c"]
    assert state.selection_mode
    assert state.delete_prompt() == "Are you sure you want to delete 1 QR code(s)?"


def test_move_flags_need_single_selection(state: AppState):
    assert not state.can_move_up and not state.can_move_down

    state.toggle_selection("a")
    assert not state.can_move_up
    assert state.can_move_down
    assert state.single_selected_id == "a"

    state.toggle_selection("b")
    assert state.single_selected_id is None
    assert not state.can_move_down


def test_replace_records_drops_stale_selection(state: AppState):
    state.toggle_selection("a")
    state.toggle_selection("b")

    state.replace_records([record for record in state.records if record.id != "b"])

    assert list(state.selected_ids) == ["a"]


def test_merge_added_ignores_existing(state: AppState):
    existing = state.records[0]
    state.merge_added(existing)
    assert len(state.records) == 3

    state.merge_added(QRRecord("d", "4", "D", 4))
    assert [record.id for record in state.records] == ["a", "b", "c", "d"]
