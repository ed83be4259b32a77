"""Application icon helpers."""
from __future__ import annotations


def create_icon(size: int = 64):  # pragma: no cover - requires PyQt at runtime
    """Create a :class:`~PyQt5.QtGui.QIcon` showing three QR finder squares.

    The import is performed lazily so that automated tests do not require a
    graphical backend.
    """

    try:
        from PyQt5.QtGui import QBrush, QColor, QIcon, QPainter, QPixmap
        from PyQt5.QtCore import Qt
    except Exception as exc:  # pragma: no cover - depends on environment
        raise RuntimeError("PyQt5 is required to generate the application icon") from exc

    pixmap = QPixmap(size, size)
    pixmap.fill(Qt.transparent)

    painter = QPainter(pixmap)
    painter.setRenderHint(QPainter.Antialiasing)
    painter.setPen(Qt.NoPen)
    painter.setBrush(QBrush(QColor("#88C0D0")))
    painter.drawRoundedRect(2, 2, size - 4, size - 4, size // 8, size // 8)

    finder = size * 3 // 8
    margin = size // 10
    inner = finder // 3
    for x, y in ((margin, margin), (size - margin - finder, margin), (margin, size - margin - finder)):
        painter.setBrush(QBrush(QColor("#2E3440")))
        painter.drawRect(x, y, finder, finder)
        painter.setBrush(QBrush(QColor("#ECEFF4")))
        painter.drawRect(x + inner // 2, y + inner // 2, finder - inner, finder - inner)
        painter.setBrush(QBrush(QColor("#2E3440")))
        painter.drawRect(x + inner, y + inner, finder - 2 * inner, finder - 2 * inner)
    painter.end()

    return QIcon(pixmap)


__all__ = ["create_icon"]
