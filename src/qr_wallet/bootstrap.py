"""Single entry point that prepares the data directory and opens the store."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from .config import AppConfig
from .migration import MigrationGate
from .models import QRRecord, now_ms
from .store import RecordStore

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Wallet:
    """The opened store together with its initial snapshot."""

    config: AppConfig
    gate: MigrationGate
    store: RecordStore
    records: List[QRRecord] = field(default_factory=list)


def open_wallet(
    config: Optional[AppConfig] = None,
    *,
    clock: Callable[[], int] = now_ms,
) -> Wallet:
    """Run the migration gate, then load the records.

    The gate always completes before the first :meth:`RecordStore.load`.
    """

    config = config or AppConfig()
    gate = MigrationGate(config, clock=clock)
    gate.run_if_needed()

    store = RecordStore(config.records_path, clock=clock, name_prefix=config.default_name_prefix)
    records = store.load()
    logger.info("Opened wallet at %s with %d codes", config.data_dir, len(records))
    return Wallet(config=config, gate=gate, store=store, records=records)


__all__ = ["Wallet", "open_wallet"]
