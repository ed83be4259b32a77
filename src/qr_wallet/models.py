"""Stored data structures and their JSON document format."""
from __future__ import annotations

import json
import time
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping

from .errors import RecordsParseError

RECORDS_KEY = "codes"
"""Top-level key of the records document."""


def now_ms() -> int:
    """Return the wall-clock time in milliseconds since the epoch."""

    return time.time_ns() // 1_000_000


@dataclass(frozen=True, slots=True)
class QRRecord:
    """One stored QR code."""

    id: str
    content: str
    name: str
    created_at: int

    def renamed(self, name: str) -> "QRRecord":
        return QRRecord(self.id, self.content, name, self.created_at)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "content": self.content,
            "name": self.name,
            "timestamp": self.created_at,
        }

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], *, default_created_at: int) -> "QRRecord":
        """Build a record from a decoded JSON object.

        Unknown keys are ignored.  ``createdAt`` is accepted as an alias for
        ``timestamp``; a record without either gets ``default_created_at``.
        """

        values = {}
        for field_name in ("id", "content", "name"):
            value = data.get(field_name)
            if not isinstance(value, str):
                raise RecordsParseError(f"Record field '{field_name}' must be a string")
            values[field_name] = value

        created_at = data.get("timestamp", data.get("createdAt"))
        if created_at is None:
            created_at = default_created_at
        elif isinstance(created_at, bool) or not isinstance(created_at, int):
            raise RecordsParseError("Record field 'timestamp' must be an integer")

        return cls(created_at=created_at, **values)


@dataclass(frozen=True, slots=True)
class VersionMarker:
    """Persisted version information consulted by the migration gate."""

    version_code: int = 0
    version_name: str = ""
    last_migrated: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "versionCode": self.version_code,
            "versionName": self.version_name,
            "lastMigrated": self.last_migrated,
        }

    @classmethod
    def from_json(cls, text: str) -> "VersionMarker":
        try:
            data = json.loads(text)
        except (ValueError, RecursionError) as exc:
            raise ValueError("Version marker is not valid JSON") from exc
        if not isinstance(data, dict):
            raise ValueError("Version marker must be a JSON object")

        version_code = data.get("versionCode", 0)
        if isinstance(version_code, bool) or not isinstance(version_code, int):
            raise ValueError("versionCode must be an integer")
        version_name = data.get("versionName", "")
        last_migrated = data.get("lastMigrated", 0)
        return cls(
            version_code=version_code,
            version_name=str(version_name),
            last_migrated=last_migrated if isinstance(last_migrated, int) else 0,
        )

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)


def encode_records(records: Iterable[QRRecord]) -> str:
    """Serialise ``records`` into the records document, preserving order."""

    document = {RECORDS_KEY: [record.to_dict() for record in records]}
    return json.dumps(document, indent=2, ensure_ascii=False)


def decode_records(text: str, *, default_created_at: int | None = None) -> List[QRRecord]:
    """Parse a records document.

    Both the ``{"codes": [...]}`` wrapper and a bare top-level list are
    accepted.  Any structural problem raises :class:`RecordsParseError`.
    """

    try:
        data = json.loads(text)
    except (ValueError, RecursionError) as exc:
        raise RecordsParseError(f"Records file is not valid JSON: {exc}") from exc

    if isinstance(data, dict):
        entries = data.get(RECORDS_KEY, [])
    else:
        entries = data
    if not isinstance(entries, list):
        raise RecordsParseError("Records document must contain a list of codes")

    fallback = now_ms() if default_created_at is None else default_created_at
    records: List[QRRecord] = []
    for entry in entries:
        if not isinstance(entry, dict):
            raise RecordsParseError("Each stored code must be a JSON object")
        records.append(QRRecord.from_mapping(entry, default_created_at=fallback))
    return records


__all__ = [
    "QRRecord",
    "VersionMarker",
    "RECORDS_KEY",
    "now_ms",
    "encode_records",
    "decode_records",
]
