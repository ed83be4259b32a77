from __future__ import annotations

from pathlib import Path

from qr_wallet.bootstrap import open_wallet
from qr_wallet.config import DATA_DIR_ENV, AppConfig, default_data_dir
from qr_wallet.models import VersionMarker


def test_open_wallet_migrates_before_loading(tmp_path):
    config = AppConfig(data_dir=tmp_path, version_code=1)
    config.records_path.write_text("corrupt", encoding="utf-8")

    wallet = open_wallet(config, clock=lambda: 123)

    assert wallet.gate.checked
    assert wallet.records == []
    assert (tmp_path / "qr_codes_backup_123.json").read_text(encoding="utf-8") == "corrupt"
    assert wallet.gate.read_marker() == VersionMarker(1, config.app_version, 123)


def test_open_wallet_loads_existing_records(tmp_path):
    config = AppConfig(data_dir=tmp_path)
    first = open_wallet(config)
    record = first.store.add_by_content("https://a.example", first.records)

    second = open_wallet(config)

    assert second.records == [record]
    assert second.store.path == config.records_path


def test_data_dir_env_override(monkeypatch, tmp_path):
    monkeypatch.setenv(DATA_DIR_ENV, str(tmp_path / "wallet"))

    assert default_data_dir() == tmp_path / "wallet"
    assert AppConfig().records_path == tmp_path / "wallet" / "qr_codes.json"


def test_default_data_dir_under_home(monkeypatch):
    monkeypatch.delenv(DATA_DIR_ENV, raising=False)

    assert default_data_dir() == Path.home() / ".qr_wallet"
