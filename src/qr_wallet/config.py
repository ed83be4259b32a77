"""Configuration data structures for the QR Wallet."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

DATA_DIR_ENV = "QR_WALLET_HOME"
"""Environment variable overriding the wallet's data directory."""


def default_data_dir() -> Path:
    """Return the directory holding the wallet's files.

    ``$QR_WALLET_HOME`` wins when set, otherwise ``~/.qr_wallet`` is used.
    """

    override = os.environ.get(DATA_DIR_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".qr_wallet"


@dataclass(slots=True)
class AppConfig:
    """Static configuration options used across the application."""

    app_name: str = "QR Wallet"
    app_version: str = "1.0.0"
    version_code: int = 1
    data_dir: Path = field(default_factory=default_data_dir)
    records_filename: str = "qr_codes.json"
    version_filename: str = "app_version.json"
    backup_prefix: str = "qr_codes_backup_"
    default_name_prefix: str = "QR Code"
    qr_error_correction: str = "M"
    qr_border: int = 4
    qr_display_size: int = 512
    camera_frame_skip: int = 5
    max_frame_size: int = 1_920
    log_level: str = "INFO"

    @property
    def records_path(self) -> Path:
        return Path(self.data_dir) / self.records_filename

    @property
    def version_path(self) -> Path:
        return Path(self.data_dir) / self.version_filename

    def backup_path(self, timestamp_ms: int) -> Path:
        """Return the quarantine path for a corrupt records file."""

        return Path(self.data_dir) / f"{self.backup_prefix}{timestamp_ms}.json"


@dataclass(slots=True)
class CameraConfig:
    """Runtime camera configuration used by the optional camera worker."""

    width: int = 640
    height: int = 480

    def get_backends(self) -> List[int]:
        """Return a list of OpenCV backend identifiers to try.

        OpenCV is optional.  The function therefore performs the imports lazily
        so that unit tests can run in environments without the camera extra
        installed.
        """

        try:  # pragma: no cover - imported for type side effect only
            import cv2  # type: ignore
        except Exception:  # pragma: no cover - we simply fall back to an empty list
            return []

        try:
            return [cv2.CAP_DSHOW, cv2.CAP_MSMF, cv2.CAP_ANY]
        except AttributeError:  # pragma: no cover - depends on the OpenCV build
            return [0]

    def get_indices(self) -> List[int]:
        """Return candidate camera indices."""

        return [0, 1, 2]


@dataclass(slots=True)
class StyleConfig:
    """Simple grouping of UI styling constants."""

    bg_primary: str = "#2E3440"
    bg_secondary: str = "#3B4252"
    bg_tertiary: str = "#434C5E"
    fg_primary: str = "#D8DEE9"
    fg_secondary: str = "#ECEFF4"
    accent_primary: str = "#88C0D0"
    accent_secondary: str = "#5E81AC"
    warning: str = "#BF616A"
    border: str = "#4C566A"
    font_family: str = "Segoe UI, sans-serif"
    font_size: int = 14
    font_mono: str = "Courier New, monospace"


__all__ = ["AppConfig", "CameraConfig", "StyleConfig", "DATA_DIR_ENV", "default_data_dir"]
