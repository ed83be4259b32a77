"""File-backed, ordered collection of QR records."""
from __future__ import annotations

import logging
import os
import tempfile
import threading
import uuid
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence

from .errors import InvalidIndexError, RecordsParseError, StorageWriteError
from .models import QRRecord, decode_records, encode_records, now_ms

logger = logging.getLogger(__name__)

DEFAULT_NAME_PREFIX = "QR Code"


def atomic_write_text(path: Path, text: str) -> None:
    """Replace ``path`` with ``text`` without exposing a half-written file.

    Data goes to a temporary sibling first which is then renamed over the
    target.  ``OSError`` propagates to the caller.
    """

    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmpname = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(text)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmpname, path)
    except BaseException:
        try:
            os.unlink(tmpname)
        except FileNotFoundError:
            pass
        raise


def find_by_id(record_id: str, records: Sequence[QRRecord]) -> Optional[QRRecord]:
    for record in records:
        if record.id == record_id:
            return record
    return None


class RecordStore:
    """Sole owner of the durable record list.

    Every mutation takes the caller's current snapshot, computes a new list,
    saves it and returns it.  The passed-in sequence is never modified.
    Calls are serialised through :attr:`lock`; callers that read a snapshot
    and then mutate it should hold the lock across both steps.
    """

    def __init__(
        self,
        path: str | os.PathLike[str],
        *,
        clock: Callable[[], int] = now_ms,
        name_prefix: str = DEFAULT_NAME_PREFIX,
    ):
        self.path = Path(path)
        self._clock = clock
        self._name_prefix = name_prefix
        self.lock = threading.RLock()

    def __repr__(self) -> str:  # pragma: no cover - trivial
        return f"RecordStore({str(self.path)!r})"

    # ---- persistence ---------------------------------------------------

    def load(self) -> List[QRRecord]:
        """Return the stored records, or an empty list if there are none.

        An unreadable file is reported in the log and treated as empty; the
        migration gate is responsible for quarantining it.
        """

        with self.lock:
            try:
                text = self.path.read_text(encoding="utf-8")
            except FileNotFoundError:
                logger.debug("No records file at %s", self.path)
                return []
            except (OSError, UnicodeDecodeError):
                logger.warning("Could not read records file %s", self.path, exc_info=True)
                return []

            try:
                records = decode_records(text, default_created_at=self._clock())
            except RecordsParseError as exc:
                logger.warning("Ignoring unparseable records file %s: %s", self.path, exc)
                return []

        logger.debug("Loaded %d records from %s", len(records), self.path)
        return records

    def save(self, records: Iterable[QRRecord]) -> None:
        """Overwrite the records file with ``records``.

        :raises StorageWriteError: if the records could not be encoded or written.
        """

        records = list(records)
        with self.lock:
            try:
                atomic_write_text(self.path, encode_records(records))
            except (OSError, UnicodeError) as exc:
                logger.exception("Error while writing %s", self.path)
                raise StorageWriteError(msg=str(exc), filename=self.path) from exc
        logger.debug("Saved %d records to %s", len(records), self.path)

    # ---- mutations -----------------------------------------------------

    def add_by_content(self, content: str, current_records: Sequence[QRRecord]) -> QRRecord:
        """Store ``content`` unless an identical one exists.

        Returns the existing record untouched for a duplicate (no write),
        otherwise the newly appended record.
        """

        with self.lock:
            for record in current_records:
                if record.content == content:
                    logger.debug("Content already stored as %s", record.id)
                    return record

            record = QRRecord(
                id=self._new_id(current_records),
                content=content,
                name=f"{self._name_prefix} {len(current_records) + 1}",
                created_at=self._clock(),
            )
            self.save([*current_records, record])
        logger.info("Added %s (%s)", record.id, record.name)
        return record

    def rename_by_id(
        self, record_id: str, new_name: str, current_records: Sequence[QRRecord]
    ) -> List[QRRecord]:
        """Return ``current_records`` with the matching record renamed.

        An unknown ``record_id`` leaves the list as it is.
        """

        with self.lock:
            updated = [
                record.renamed(new_name) if record.id == record_id else record
                for record in current_records
            ]
            self.save(updated)
        return updated

    def delete_by_ids(
        self, ids: Iterable[str], current_records: Sequence[QRRecord]
    ) -> List[QRRecord]:
        to_delete = set(ids)
        with self.lock:
            survivors = [record for record in current_records if record.id not in to_delete]
            self.save(survivors)
        logger.info("Deleted %d records", len(current_records) - len(survivors))
        return survivors

    def reorder(
        self, from_index: int, to_index: int, current_records: Sequence[QRRecord]
    ) -> List[QRRecord]:
        """Move the record at ``from_index`` so it ends up at ``to_index``.

        :raises InvalidIndexError: if either index is outside the list.
        """

        size = len(current_records)
        for label, index in (("from_index", from_index), ("to_index", to_index)):
            if not 0 <= index < size:
                raise InvalidIndexError(f"{label} {index} out of range for {size} records")

        with self.lock:
            updated = list(current_records)
            updated.insert(to_index, updated.pop(from_index))
            self.save(updated)
        return updated

    def move_by_id(
        self, record_id: str, offset: int, current_records: Sequence[QRRecord]
    ) -> List[QRRecord]:
        """Shift a record by ``offset`` positions.

        Moves that would leave the list, and unknown ids, return the list
        unchanged without writing.
        """

        for index, record in enumerate(current_records):
            if record.id == record_id:
                target = index + offset
                if offset and 0 <= target < len(current_records):
                    return self.reorder(index, target, current_records)
                break
        return list(current_records)

    def _new_id(self, current_records: Sequence[QRRecord]) -> str:
        taken = {record.id for record in current_records}
        while True:
            candidate = f"qr_{uuid.uuid4().hex}"
            if candidate not in taken:
                return candidate


__all__ = ["RecordStore", "atomic_write_text", "find_by_id", "DEFAULT_NAME_PREFIX"]
