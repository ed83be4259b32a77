"""Runtime state containers used by the QR Wallet window."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Tuple

from .models import QRRecord


@dataclass(slots=True)
class AppState:
    """Display state shared between UI components.

    ``records`` is a read-only snapshot.  It is only ever replaced wholesale
    with the list returned by a store operation.
    """

    records: Tuple[QRRecord, ...] = ()
    selected_ids: Dict[str, None] = field(default_factory=dict)
    busy: bool = False
    camera_available: bool = False
    qr_available: bool = False

    def replace_records(self, records: Iterable[QRRecord]) -> None:
        self.records = tuple(records)
        present = {record.id for record in self.records}
        self.selected_ids = {key: None for key in self.selected_ids if key in present}

    def merge_added(self, record: QRRecord) -> None:
        """Reconcile the snapshot with the record returned by an add."""

        if all(existing.id != record.id for existing in self.records):
            self.replace_records((*self.records, record))

    @property
    def selection_mode(self) -> bool:
        return bool(self.selected_ids)

    def is_selected(self, record_id: str) -> bool:
        return record_id in self.selected_ids

    def toggle_selection(self, record_id: str) -> None:
        if record_id in self.selected_ids:
            del self.selected_ids[record_id]
        else:
            self.selected_ids[record_id] = None

    def clear_selection(self) -> None:
        self.selected_ids.clear()

    def index_of(self, record_id: str) -> int:
        for index, record in enumerate(self.records):
            if record.id == record_id:
                return index
        return -1

    @property
    def single_selected_id(self) -> Optional[str]:
        if len(self.selected_ids) != 1:
            return None
        return next(iter(self.selected_ids))

    def _single_selected_index(self) -> int:
        record_id = self.single_selected_id
        return -1 if record_id is None else self.index_of(record_id)

    @property
    def can_move_up(self) -> bool:
        return self._single_selected_index() > 0

    @property
    def can_move_down(self) -> bool:
        index = self._single_selected_index()
        return 0 <= index < len(self.records) - 1

    def delete_prompt(self) -> str:
        return f"Are you sure you want to delete {len(self.selected_ids)} QR code(s)?"


__all__ = ["AppState"]
