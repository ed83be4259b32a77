"""Exceptions raised by the wallet's storage layer."""
from __future__ import annotations

from os import PathLike


class QRWalletError(Exception):
    """Base class for wallet errors."""


class RecordsParseError(QRWalletError, ValueError):
    """The records file exists but does not hold a valid record list."""


class StorageWriteError(QRWalletError):
    """Persisting wallet data failed.

    The in-memory state of the caller is not durable until a later save
    succeeds.
    """

    def __init__(self, msg: str, filename: str | PathLike[str]):
        super().__init__(f"{msg} ({filename})")
        self.msg = msg
        self.filename = str(filename)


class InvalidIndexError(QRWalletError, IndexError):
    """A reorder was requested with a position outside the list."""


__all__ = [
    "QRWalletError",
    "RecordsParseError",
    "StorageWriteError",
    "InvalidIndexError",
]
