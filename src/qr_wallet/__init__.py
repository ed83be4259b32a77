"""QR Wallet package."""
from __future__ import annotations

from .bootstrap import Wallet, open_wallet
from .config import AppConfig, CameraConfig, StyleConfig
from .errors import InvalidIndexError, QRWalletError, RecordsParseError, StorageWriteError
from .migration import MigrationGate
from .models import QRRecord, VersionMarker
from .qr import QRCodeManager
from .state import AppState
from .store import RecordStore

__all__ = [
    "AppConfig",
    "CameraConfig",
    "StyleConfig",
    "AppState",
    "QRCodeManager",
    "QRRecord",
    "VersionMarker",
    "RecordStore",
    "MigrationGate",
    "Wallet",
    "open_wallet",
    "QRWalletError",
    "RecordsParseError",
    "StorageWriteError",
    "InvalidIndexError",
]

__version__ = "1.0.0"
