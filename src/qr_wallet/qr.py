"""QR code rendering and decoding adapters."""
from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from typing import Optional

from .config import AppConfig

logger = logging.getLogger(__name__)


def _load_segno():
    try:
        import segno  # type: ignore
    except Exception as exc:  # pragma: no cover - depends on environment
        raise RuntimeError("QR generation requires segno; install segno") from exc
    return segno


@dataclass(slots=True)
class QRCodeManager:
    """Render stored contents as QR images and decode scanned images."""

    config: AppConfig

    def is_available(self) -> bool:
        try:
            import segno  # type: ignore  # noqa: F401
        except Exception:
            return False
        return True

    def _make(self, content: str):
        segno = _load_segno()
        return segno.make(content, error=self.config.qr_error_correction, micro=False)

    def scale_for(self, qr, size: int) -> int:
        """Return the largest module scale that keeps the image within ``size``."""

        width, _height = qr.symbol_size(scale=1, border=self.config.qr_border)
        return max(1, size // width)

    def render_png(self, content: str, size: Optional[int] = None) -> bytes:
        """Return PNG bytes of a QR code encoding ``content``.

        The symbol is scaled to fit within ``size`` pixels (defaults to
        ``AppConfig.qr_display_size``).
        """

        size = size or self.config.qr_display_size
        qr = self._make(content)
        buffer = io.BytesIO()
        qr.save(buffer, kind="png", scale=self.scale_for(qr, size), border=self.config.qr_border)
        return buffer.getvalue()

    def save_png(self, content: str, path: str, size: Optional[int] = None) -> None:
        """Write the QR code for ``content`` to ``path`` as a PNG image."""

        with open(path, "wb") as handle:
            handle.write(self.render_png(content, size))

    def to_qpixmap(self, content: str, size: Optional[int] = None):  # pragma: no cover - requires PyQt at runtime
        """Return a ``QPixmap`` of the QR code for ``content``.

        :mod:`PyQt5` is imported lazily to keep the module usable in headless
        test environments.
        """

        try:
            from PyQt5.QtGui import QImage, QPixmap
        except Exception as exc:  # pragma: no cover - depends on environment
            raise RuntimeError("PyQt5 is required to generate a preview pixmap") from exc

        image = QImage()
        if not image.loadFromData(self.render_png(content, size)):
            raise RuntimeError("Failed to load QR image into QImage")

        return QPixmap.fromImage(image)

    @staticmethod
    def decode_qr_payload(data: bytes | bytearray | str) -> str:
        """Return the text carried by a decoded QR symbol."""

        if isinstance(data, str):
            return data
        raw = bytes(data)
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError:
            return raw.decode("latin-1")

    def read_from_file(self, path: str) -> Optional[str]:  # pragma: no cover - requires optional deps
        """Decode QR contents using OpenCV and :mod:`pyzbar` when available."""

        try:
            import cv2  # type: ignore
            from pyzbar import pyzbar  # type: ignore
        except Exception:
            logger.info("Camera extra not installed; cannot decode %s", path)
            return None

        image = cv2.imread(path)
        if image is None:
            return None

        gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
        for processed in (
            gray,
            cv2.GaussianBlur(gray, (5, 5), 0),
            cv2.threshold(gray, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)[1],
        ):
            decoded = pyzbar.decode(processed)
            if decoded:
                return self.decode_qr_payload(decoded[0].data)

        return None


__all__ = ["QRCodeManager"]
