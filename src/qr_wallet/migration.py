"""Startup migration of the wallet's data directory.

The gate compares the version marker written by the last successful pass with
the running ``AppConfig.version_code`` and replays every registered step for
the versions in between.  Steps are forward-only and must leave the records
file loadable: unreadable data is copied to a backup and replaced, never
raised.
"""
from __future__ import annotations

import enum
import logging
import shutil
from typing import Callable, Dict, List, Mapping, Optional, Sequence

from .config import AppConfig
from .errors import RecordsParseError
from .models import VersionMarker, decode_records, encode_records, now_ms
from .store import atomic_write_text

logger = logging.getLogger(__name__)

MigrationStep = Callable[[AppConfig, int], None]
"""A step receives the configuration and the pass's timestamp in ms."""


def ensure_records_file(config: AppConfig, timestamp_ms: int) -> None:
    """Create the records file if missing and quarantine it if corrupt."""

    path = config.records_path
    if not path.exists():
        atomic_write_text(path, encode_records([]))
        logger.info("Created empty records file %s", path)
        return

    try:
        decode_records(path.read_text(encoding="utf-8"))
    except (RecordsParseError, UnicodeDecodeError) as exc:
        logger.warning("Records file %s is corrupt (%s); backing up and resetting", path, exc)
        backup = config.backup_path(timestamp_ms)
        suffix = 1
        while backup.exists():
            backup = backup.with_name(f"{config.backup_prefix}{timestamp_ms}_{suffix}.json")
            suffix += 1
        shutil.copyfile(path, backup)
        atomic_write_text(path, encode_records([]))
        logger.warning("Corrupt records saved to %s", backup)
    else:
        logger.info("Records file %s is valid", path)


MIGRATIONS: Dict[int, List[MigrationStep]] = {
    1: [ensure_records_file],
}
"""Steps to run when crossing into each version."""


class GateState(enum.Enum):
    UNCHECKED = "unchecked"
    CHECKED = "checked"


class MigrationGate:
    """Runs the data migrations at most once for this instance.

    Create one gate per process and call :meth:`run_if_needed` before the
    record store's first load.
    """

    def __init__(
        self,
        config: AppConfig,
        *,
        migrations: Optional[Mapping[int, Sequence[MigrationStep]]] = None,
        clock: Callable[[], int] = now_ms,
    ):
        self._config = config
        self._migrations = MIGRATIONS if migrations is None else migrations
        self._clock = clock
        self.state = GateState.UNCHECKED

    @property
    def checked(self) -> bool:
        return self.state is GateState.CHECKED

    def read_marker(self) -> VersionMarker:
        """Return the stored marker, or version 0 if absent or unreadable."""

        path = self._config.version_path
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return VersionMarker()
        except (OSError, UnicodeDecodeError):
            logger.warning("Error reading version marker %s, using default", path, exc_info=True)
            return VersionMarker()

        try:
            return VersionMarker.from_json(text)
        except ValueError as exc:
            logger.warning("Invalid version marker %s (%s), using default", path, exc)
            return VersionMarker()

    def run_if_needed(self) -> bool:
        """Bring the data directory up to the running version.

        Returns ``True`` if migration steps were executed and recorded.
        """

        if self.checked:
            return False

        try:
            return self._run()
        finally:
            self.state = GateState.CHECKED

    def _run(self) -> bool:
        stored = self.read_marker().version_code
        running = self._config.version_code

        if running == stored:
            logger.debug("Data is up to date (version %d)", running)
            return False
        if running < stored:
            logger.warning(
                "Stored data version %d is newer than running version %d; leaving it untouched",
                stored,
                running,
            )
            return False

        logger.info("Migration needed from version %d to %d", stored, running)
        timestamp = self._clock()
        for version in range(stored + 1, running + 1):
            for step in self._migrations.get(version, ()):
                logger.debug("Running %s for version %d", step.__name__, version)
                try:
                    step(self._config, timestamp)
                except OSError:
                    logger.exception("Migration step %s failed; will retry next start", step.__name__)
                    return False

        marker = VersionMarker(
            version_code=running,
            version_name=self._config.app_version,
            last_migrated=timestamp,
        )
        try:
            atomic_write_text(self._config.version_path, marker.to_json())
        except OSError:
            logger.exception("Error saving version marker %s", self._config.version_path)
            return False

        logger.info("Migration to version %d completed", running)
        return True


__all__ = ["MIGRATIONS", "MigrationGate", "MigrationStep", "GateState", "ensure_records_file"]
