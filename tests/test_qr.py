from __future__ import annotations

import sys
import types

import pytest

from qr_wallet.config import AppConfig
from qr_wallet.qr import QRCodeManager


class DummyQR:
    def __init__(self, modules: int = 25):
        self.modules = modules
        self.saved = []

    def symbol_size(self, scale=1, border=None):
        side = (self.modules + 2 * border) * scale
        return side, side

    def save(self, out, **kwargs):
        self.saved.append(kwargs)
        out.write(b"\x89PNG fake")


@pytest.fixture()
def fake_segno(monkeypatch):
    made = []

    def fake_make(content, **kwargs):
        qr = DummyQR()
        made.append((content, kwargs, qr))
        return qr

    monkeypatch.setitem(sys.modules, "segno", types.SimpleNamespace(make=fake_make))
    return made


def test_render_png_scales_to_requested_size(fake_segno):
    manager = QRCodeManager(AppConfig(qr_border=4))

    data = manager.render_png("https://a.example", 512)

    content, kwargs, qr = fake_segno[0]
    assert data == b"\x89PNG fake"
    assert content == "https://a.example"
    assert kwargs["error"] == "M"
    # 25 modules + 2 * 4 border = 33 px per scale unit
    assert qr.saved == [{"kind": "png", "scale": 15, "border": 4}]


def test_render_png_scale_never_below_one(fake_segno):
    QRCodeManager(AppConfig()).render_png("x", 10)

    assert fake_segno[0][2].saved[0]["scale"] == 1


def test_render_png_defaults_to_display_size(fake_segno):
    QRCodeManager(AppConfig(qr_display_size=330, qr_border=4)).render_png("x")

    assert fake_segno[0][2].saved[0]["scale"] == 10


def test_save_png_writes_file(fake_segno, tmp_path):
    path = tmp_path / "qr.png"

    QRCodeManager(AppConfig()).save_png("payload", str(path))

    assert path.read_bytes() == b"\x89PNG fake"


def test_render_real_png_fits_size():
    pytest.importorskip("segno")
    pillow = pytest.importorskip("PIL.Image")
    import io

    data = QRCodeManager(AppConfig()).render_png("https://a.example", 300)

    with pillow.open(io.BytesIO(data)) as image:
        width, height = image.size
    assert width == height
    assert width <= 300


def test_decode_qr_payload_prefers_utf8():
    assert QRCodeManager.decode_qr_payload("Grüße".encode("utf-8")) == "Grüße"


def test_decode_qr_payload_falls_back_to_latin1():
    assert QRCodeManager.decode_qr_payload(b"caf\xe9") == "café"


def test_decode_qr_payload_passes_text_through():
    assert QRCodeManager.decode_qr_payload("plain") == "plain"
