"""PyQt5 user interface for the QR Wallet."""
from __future__ import annotations

import logging
from functools import partial
from pathlib import Path
from typing import Any, Callable

from PyQt5.QtCore import QObject, QThread, Qt, pyqtSignal
from PyQt5.QtGui import QImage, QPixmap
from PyQt5.QtWidgets import (
    QApplication,
    QDialog,
    QFileDialog,
    QHBoxLayout,
    QInputDialog,
    QLabel,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from .bootstrap import Wallet, open_wallet
from .config import AppConfig, CameraConfig, StyleConfig
from .errors import QRWalletError
from .icon import create_icon
from .qr import QRCodeManager
from .state import AppState
from .store import find_by_id

logger = logging.getLogger(__name__)

_ID_ROLE = Qt.UserRole


class StoreWorker(QObject):  # pragma: no cover - requires Qt event loop
    """Runs one store operation off the UI thread."""

    finished = pyqtSignal(object)
    error = pyqtSignal(str)

    def __init__(self, operation: Callable[[], Any]):
        super().__init__()
        self._operation = operation

    def run(self) -> None:
        try:
            result = self._operation()
        except QRWalletError as exc:
            self.error.emit(str(exc))
        except OSError as exc:
            logger.exception("Unexpected storage failure")
            self.error.emit(str(exc))
        else:
            self.finished.emit(result)


class CameraWorker(QObject):  # pragma: no cover - requires Qt event loop
    """Background worker that streams frames from the system camera."""

    frame_captured = pyqtSignal(object)
    decoded = pyqtSignal(str)
    status = pyqtSignal(str)
    finished = pyqtSignal()

    def __init__(self, config: AppConfig, camera_config: CameraConfig):
        super().__init__()
        self._config = config
        self._camera_config = camera_config
        self._running = False
        self._cv2 = None
        self._pyzbar = None

    def stop(self) -> None:
        self._running = False

    def run(self) -> None:
        try:
            import cv2  # type: ignore
            from pyzbar import pyzbar  # type: ignore
        except Exception:
            self.status.emit("Camera dependencies not installed")
            self.finished.emit()
            return

        self._cv2 = cv2
        self._pyzbar = pyzbar

        capture = self._open_capture()
        if capture is None:
            self.status.emit("Unable to access camera")
            self.finished.emit()
            return

        self._running = True
        frame_skip = max(1, self._config.camera_frame_skip)
        frame_counter = 0

        self.status.emit("Camera active – align QR code")

        try:
            while self._running:
                success, frame = capture.read()
                if not success or frame is None:
                    self.status.emit("Camera feed unavailable")
                    break

                frame = self._resize_frame(frame)
                self.frame_captured.emit(frame)

                frame_counter += 1
                if frame_counter % frame_skip:
                    continue

                decoded = self._decode_frame(frame)
                if decoded:
                    self.decoded.emit(decoded)
                    break
        finally:
            self._running = False
            capture.release()
            self.finished.emit()

    def _open_capture(self):
        assert self._cv2 is not None
        config = self._camera_config

        default_backend = getattr(self._cv2, "CAP_ANY", 0)
        for backend in config.get_backends() or [default_backend]:
            for index in config.get_indices():
                try:
                    capture = self._cv2.VideoCapture(index, backend)
                except TypeError:
                    capture = self._cv2.VideoCapture(index)
                if not capture or not capture.isOpened():
                    if capture:
                        capture.release()
                    continue

                capture.set(self._cv2.CAP_PROP_FRAME_WIDTH, config.width)
                capture.set(self._cv2.CAP_PROP_FRAME_HEIGHT, config.height)
                return capture
        return None

    def _resize_frame(self, frame):
        assert self._cv2 is not None
        max_dim = max(frame.shape[:2])
        limit = self._config.max_frame_size
        if max_dim <= limit:
            return frame

        scale = limit / float(max_dim)
        new_size = (int(frame.shape[1] * scale), int(frame.shape[0] * scale))
        return self._cv2.resize(frame, new_size)

    def _decode_frame(self, frame):
        assert self._cv2 is not None and self._pyzbar is not None
        gray = self._cv2.cvtColor(frame, self._cv2.COLOR_BGR2GRAY)
        candidates = [
            gray,
            self._cv2.GaussianBlur(gray, (5, 5), 0),
            self._cv2.threshold(
                gray,
                0,
                255,
                self._cv2.THRESH_BINARY + self._cv2.THRESH_OTSU,
            )[1],
        ]

        for processed in candidates:
            decoded = self._pyzbar.decode(processed)
            if decoded:
                return QRCodeManager.decode_qr_payload(decoded[0].data)
        return None


class CameraDialog(QDialog):  # pragma: no cover - requires Qt event loop
    """Preview the camera until a QR code is decoded or the user cancels."""

    def __init__(self, parent: QWidget, config: AppConfig, camera_config: CameraConfig):
        super().__init__(parent)
        self.setWindowTitle("Scan QR Code")
        self.result_text: str | None = None

        self._preview = QLabel("Camera preview will appear here")
        self._preview.setObjectName("qrDisplayLabel")
        self._preview.setAlignment(Qt.AlignCenter)
        self._preview.setMinimumSize(480, 360)
        self._status = QLabel("Initialising camera…")
        self._status.setObjectName("SubtleLabel")
        self._status.setAlignment(Qt.AlignCenter)
        cancel_btn = QPushButton("Cancel")
        cancel_btn.clicked.connect(self.reject)

        layout = QVBoxLayout(self)
        layout.addWidget(self._preview)
        layout.addWidget(self._status)
        layout.addWidget(cancel_btn)

        self._worker = CameraWorker(config, camera_config)
        self._thread = QThread()
        self._worker.moveToThread(self._thread)
        self._thread.started.connect(self._worker.run)
        self._worker.frame_captured.connect(self._on_frame)
        self._worker.decoded.connect(self._on_decoded)
        self._worker.status.connect(self._status.setText)
        self._worker.finished.connect(self._thread.quit)
        self._thread.start()

    def _on_frame(self, frame) -> None:
        import cv2  # type: ignore

        rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        height, width, channel = rgb.shape
        image = QImage(rgb.data, width, height, channel * width, QImage.Format_RGB888)
        pixmap = QPixmap.fromImage(image.copy())
        self._preview.setPixmap(
            pixmap.scaled(self._preview.size(), Qt.KeepAspectRatio, Qt.SmoothTransformation)
        )

    def _on_decoded(self, text: str) -> None:
        self.result_text = text
        self.accept()

    def done(self, result: int) -> None:
        self._worker.stop()
        if self._thread.isRunning():
            self._thread.quit()
            self._thread.wait(1500)
        super().done(result)


class QRCodeDialog(QDialog):  # pragma: no cover - requires Qt event loop
    """Show a stored code full size so it can be scanned from the screen."""

    def __init__(self, parent: QWidget, qr: QRCodeManager, name: str, content: str, size: int):
        super().__init__(parent)
        self.setWindowTitle(name)
        self._qr = qr
        self._content = content

        image = QLabel()
        image.setAlignment(Qt.AlignCenter)
        try:
            image.setPixmap(qr.to_qpixmap(content, size))
        except RuntimeError as exc:
            image.setText(f"QR preview failed: {exc}")

        text = QLineEdit(content)
        text.setReadOnly(True)

        save_btn = QPushButton("Save as PNG")
        save_btn.clicked.connect(self._save_png)
        close_btn = QPushButton("Close")
        close_btn.setObjectName("AccentButton")
        close_btn.clicked.connect(self.accept)

        buttons = QHBoxLayout()
        buttons.addWidget(save_btn)
        buttons.addWidget(close_btn)

        layout = QVBoxLayout(self)
        layout.addWidget(image)
        layout.addWidget(text)
        layout.addLayout(buttons)

    def _save_png(self) -> None:
        path, _ = QFileDialog.getSaveFileName(self, "Save QR Code", "", "PNG Images (*.png)")
        if not path:
            return
        try:
            self._qr.save_png(self._content, path)
        except (OSError, RuntimeError) as exc:
            QMessageBox.critical(self, "Error", f"Save failed: {exc}")


class WalletWindow(QMainWindow):  # pragma: no cover - requires Qt event loop
    def __init__(self, wallet: Wallet, style: StyleConfig, camera_config: CameraConfig):
        super().__init__()
        self._wallet = wallet
        self._config = wallet.config
        self._store = wallet.store
        self._style = style
        self._camera_config = camera_config
        self._qr = QRCodeManager(self._config)
        self._state = AppState(qr_available=self._qr.is_available())
        self._state.replace_records(wallet.records)

        self._store_thread: QThread | None = None
        self._store_worker: StoreWorker | None = None
        self._on_store_done: Callable[[Any], None] | None = None

        self._detect_camera()
        self._setup_ui()
        self._refresh()

    def _detect_camera(self) -> None:
        try:
            import cv2  # type: ignore  # noqa: F401
            from pyzbar import pyzbar  # type: ignore  # noqa: F401
        except Exception:
            self._state.camera_available = False
        else:
            self._state.camera_available = True

    def _setup_ui(self) -> None:
        self.setWindowTitle(f"{self._config.app_name} v{self._config.app_version}")
        self.setGeometry(100, 100, 560, 720)

        try:
            self.setWindowIcon(create_icon())
        except RuntimeError:
            pass

        self._apply_stylesheet()

        central = QWidget()
        layout = QVBoxLayout(central)

        add_row = QHBoxLayout()
        self._scan_btn = QPushButton("Scan with Camera")
        self._scan_btn.setObjectName("AccentButton")
        self._scan_btn.setEnabled(self._state.camera_available)
        self._scan_btn.clicked.connect(self._scan_camera)
        image_btn = QPushButton("Add from Image")
        image_btn.clicked.connect(self._scan_image)
        text_btn = QPushButton("Add Text")
        text_btn.clicked.connect(self._add_text)
        about_btn = QPushButton("About")
        about_btn.clicked.connect(self._show_about)
        for button in (self._scan_btn, image_btn, text_btn, about_btn):
            add_row.addWidget(button)

        self._list = QListWidget()
        self._list.setSelectionMode(QListWidget.NoSelection)
        self._list.itemChanged.connect(self._on_item_changed)
        self._list.itemDoubleClicked.connect(self._on_item_activated)

        self._empty_label = QLabel("No QR codes scanned yet. Add one to get started.")
        self._empty_label.setObjectName("SubtleLabel")
        self._empty_label.setAlignment(Qt.AlignCenter)

        edit_row = QHBoxLayout()
        self._show_btn = QPushButton("Show QR")
        self._show_btn.clicked.connect(self._show_selected)
        self._rename_btn = QPushButton("Rename")
        self._rename_btn.clicked.connect(self._rename_selected)
        self._up_btn = QPushButton("Move Up")
        self._up_btn.clicked.connect(partial(self._move_selected, -1))
        self._down_btn = QPushButton("Move Down")
        self._down_btn.clicked.connect(partial(self._move_selected, 1))
        self._delete_btn = QPushButton("Delete")
        self._delete_btn.setObjectName("DangerButton")
        self._delete_btn.clicked.connect(self._delete_selected)
        self._cancel_btn = QPushButton("Cancel")
        self._cancel_btn.clicked.connect(self._cancel_selection)
        for button in (
            self._show_btn,
            self._rename_btn,
            self._up_btn,
            self._down_btn,
            self._delete_btn,
            self._cancel_btn,
        ):
            edit_row.addWidget(button)

        layout.addLayout(add_row)
        layout.addWidget(self._empty_label)
        layout.addWidget(self._list)
        layout.addLayout(edit_row)
        self.setCentralWidget(central)

        self.show()

    def _apply_stylesheet(self) -> None:
        style = self._style
        self.setStyleSheet(
            f"""
            QMainWindow, QDialog {{ background: {style.bg_primary}; }}
            QWidget {{ color: {style.fg_primary}; font-family: {style.font_family}; font-size: {style.font_size}px; }}
            QListWidget {{ background: {style.bg_secondary}; border: 1px solid {style.border}; border-radius: 8px; padding: 6px; }}
            QListWidget::item {{ padding: 10px; border-bottom: 1px solid {style.border}; }}
            QLineEdit {{ background: {style.bg_primary}; color: {style.fg_secondary}; border: 1px solid {style.border}; border-radius: 4px; padding: 8px; font-family: {style.font_mono}; }}
            QPushButton {{ background: {style.accent_secondary}; color: {style.fg_secondary}; border: none; padding: 10px 14px; border-radius: 4px; font-weight: bold; }}
            QPushButton:disabled {{ background: {style.bg_tertiary}; color: {style.border}; }}
            QPushButton#AccentButton {{ background: {style.accent_primary}; color: {style.bg_primary}; }}
            QPushButton#DangerButton {{ background: {style.warning}; }}
            #SubtleLabel {{ color: #81A1C1; }}
            #qrDisplayLabel {{ border: 2px dashed {style.border}; background: {style.bg_primary}; border-radius: 4px; }}
            """
        )

    # ---- rendering -----------------------------------------------------

    def _refresh(self) -> None:
        state = self._state
        self._list.blockSignals(True)
        self._list.clear()
        for record in state.records:
            item = QListWidgetItem(f"{record.name}\n{record.content}")
            item.setData(_ID_ROLE, record.id)
            item.setFlags(item.flags() | Qt.ItemIsUserCheckable)
            item.setCheckState(Qt.Checked if state.is_selected(record.id) else Qt.Unchecked)
            self._list.addItem(item)
        self._list.blockSignals(False)

        has_records = bool(state.records)
        self._empty_label.setVisible(not has_records)
        self._list.setVisible(has_records)

        single = len(state.selected_ids) == 1
        self._show_btn.setEnabled(single and state.qr_available)
        self._rename_btn.setEnabled(single)
        self._up_btn.setEnabled(state.can_move_up)
        self._down_btn.setEnabled(state.can_move_down)
        self._delete_btn.setEnabled(state.selection_mode)
        self._cancel_btn.setEnabled(state.selection_mode)

    def _on_item_changed(self, item: QListWidgetItem) -> None:
        record_id = item.data(_ID_ROLE)
        if (item.checkState() == Qt.Checked) != self._state.is_selected(record_id):
            self._state.toggle_selection(record_id)
        self._refresh()

    def _on_item_activated(self, item: QListWidgetItem) -> None:
        self._show_record(item.data(_ID_ROLE))

    # ---- store operations ----------------------------------------------

    def _run_store(self, operation: Callable[[], Any], on_done: Callable[[Any], None]) -> None:
        if self._state.busy:
            return
        self._state.busy = True
        self.centralWidget().setEnabled(False)

        thread = QThread()
        worker = StoreWorker(operation)
        worker.moveToThread(thread)

        thread.started.connect(worker.run)
        worker.finished.connect(self._on_store_finished)
        worker.error.connect(self._on_store_error)
        thread.finished.connect(thread.deleteLater)
        self._store_thread = thread
        self._store_worker = worker
        self._on_store_done = on_done
        thread.start()

    def _on_store_finished(self, result: object) -> None:
        callback = self._on_store_done
        self._stop_store()
        if callback is not None:
            callback(result)
        self._refresh()

    def _on_store_error(self, message: str) -> None:
        self._stop_store()
        QMessageBox.critical(self, "Storage Error", f"Changes could not be saved:\n{message}")
        self._refresh()

    def _stop_store(self) -> None:
        if self._store_thread and self._store_thread.isRunning():
            self._store_thread.quit()
            self._store_thread.wait(2000)
        self._store_thread = None
        self._store_worker = None
        self._on_store_done = None
        self._state.busy = False
        self.centralWidget().setEnabled(True)

    def _add_content(self, content: str) -> None:
        snapshot = list(self._state.records)
        self._run_store(
            partial(self._store.add_by_content, content, snapshot),
            self._state.merge_added,
        )

    # ---- actions -------------------------------------------------------

    def _scan_camera(self) -> None:
        dialog = CameraDialog(self, self._config, self._camera_config)
        if dialog.exec_() == QDialog.Accepted and dialog.result_text:
            self._add_content(dialog.result_text)

    def _scan_image(self) -> None:
        path, _ = QFileDialog.getOpenFileName(
            self, "Open QR Image", "", "Images (*.png *.jpg *.jpeg *.bmp)"
        )
        if not path:
            return

        content = self._qr.read_from_file(path)
        if content is None:
            QMessageBox.critical(self, "Error", f"Failed to read QR from {Path(path).name}")
            return
        self._add_content(content)

    def _add_text(self) -> None:
        content, ok = QInputDialog.getText(self, "Add QR Code", "Content:")
        if ok and content:
            self._add_content(content)

    def _rename_selected(self) -> None:
        record_id = self._state.single_selected_id
        if record_id is None:
            return
        record = find_by_id(record_id, self._state.records)
        if record is None:
            return
        name, ok = QInputDialog.getText(self, "Rename QR Code", "Name:", text=record.name)
        if not ok or not name.strip():
            return
        snapshot = list(self._state.records)
        self._run_store(
            partial(self._store.rename_by_id, record_id, name.strip(), snapshot),
            self._state.replace_records,
        )

    def _move_selected(self, offset: int) -> None:
        record_id = self._state.single_selected_id
        if record_id is None:
            return
        snapshot = list(self._state.records)
        self._run_store(
            partial(self._store.move_by_id, record_id, offset, snapshot),
            self._state.replace_records,
        )

    def _delete_selected(self) -> None:
        if not self._state.selection_mode:
            return
        answer = QMessageBox.question(
            self,
            "Delete QR Codes",
            self._state.delete_prompt(),
            QMessageBox.Yes | QMessageBox.Cancel,
        )
        if answer != QMessageBox.Yes:
            return
        ids = list(self._state.selected_ids)
        snapshot = list(self._state.records)

        def done(records: object) -> None:
            self._state.replace_records(records)  # type: ignore[arg-type]
            self._state.clear_selection()

        self._run_store(partial(self._store.delete_by_ids, ids, snapshot), done)

    def _cancel_selection(self) -> None:
        self._state.clear_selection()
        self._refresh()

    def _show_selected(self) -> None:
        record_id = self._state.single_selected_id
        if record_id is not None:
            self._show_record(record_id)

    def _show_record(self, record_id: str) -> None:
        index = self._state.index_of(record_id)
        if index < 0:
            return
        if not self._state.qr_available:
            QMessageBox.warning(self, "Error", "Install 'segno' to display QR codes")
            return
        record = self._state.records[index]
        QRCodeDialog(self, self._qr, record.name, record.content, self._config.qr_display_size).exec_()

    def _show_about(self) -> None:
        QMessageBox.information(
            self,
            "App Information",
            f"{self._config.app_name}\n\nVersion: {self._config.app_version}\n\n"
            "A simple QR code wallet for storing your QR codes locally.\n"
            f"All data is stored in {self._config.data_dir}.",
        )

    def closeEvent(self, event) -> None:  # type: ignore[override]
        if self._store_thread and self._store_thread.isRunning():
            self._store_thread.quit()
            self._store_thread.wait(2000)
        event.accept()


def run() -> int:  # pragma: no cover - requires Qt event loop
    config = AppConfig()
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    wallet = open_wallet(config)

    app = QApplication.instance() or QApplication([])
    app.setApplicationName(config.app_name)
    window = WalletWindow(wallet, StyleConfig(), CameraConfig())
    return app.exec_()


__all__ = ["run", "WalletWindow"]
