from __future__ import annotations

import json

import pytest

from qr_wallet import migration as migration_module
from qr_wallet.config import AppConfig
from qr_wallet.migration import GateState, MigrationGate, ensure_records_file
from qr_wallet.models import QRRecord, VersionMarker, decode_records
from qr_wallet.store import RecordStore

NOW = 1_700_000_000_000


@pytest.fixture()
def config(tmp_path) -> AppConfig:
    return AppConfig(data_dir=tmp_path, version_code=2, app_version="2.0.0")


def write_marker(config: AppConfig, version_code: int) -> None:
    config.version_path.write_text(
        json.dumps({"versionCode": version_code, "versionName": "old", "lastMigrated": 1}),
        encoding="utf-8",
    )


def backups(config: AppConfig):
    return sorted(config.data_dir.glob(f"{config.backup_prefix}*.json"))


def test_corrupt_records_are_backed_up_and_reset(config: AppConfig):
    original = b"\x89\x00garbage{"
    config.records_path.write_bytes(original)
    gate = MigrationGate(config, clock=lambda: NOW)

    assert gate.run_if_needed() is True

    [backup] = backups(config)
    assert backup.name == f"qr_codes_backup_{NOW}.json"
    assert backup.read_bytes() == original
    assert decode_records(config.records_path.read_text(encoding="utf-8")) == []
    assert RecordStore(config.records_path).load() == []
    assert gate.read_marker() == VersionMarker(2, "2.0.0", NOW)


def test_first_run_creates_records_file(config: AppConfig):
    gate = MigrationGate(config, clock=lambda: NOW)

    assert gate.run_if_needed() is True

    assert config.records_path.exists()
    assert decode_records(config.records_path.read_text(encoding="utf-8")) == []
    assert backups(config) == []
    assert gate.state is GateState.CHECKED


def test_valid_records_are_left_alone(config: AppConfig):
    records = [QRRecord("a", "content", "QR Code 1", 3)]
    RecordStore(config.records_path).save(records)
    before = config.records_path.read_bytes()

    MigrationGate(config, clock=lambda: NOW).run_if_needed()

    assert config.records_path.read_bytes() == before
    assert backups(config) == []


def test_up_to_date_is_noop(config: AppConfig):
    write_marker(config, 2)
    config.records_path.write_text("not json", encoding="utf-8")
    gate = MigrationGate(config, clock=lambda: NOW)

    assert gate.run_if_needed() is False

    assert config.records_path.read_text(encoding="utf-8") == "not json"
    assert gate.checked


def test_downgrade_leaves_data_untouched(config: AppConfig):
    write_marker(config, 5)
    config.records_path.write_text("not json", encoding="utf-8")

    assert MigrationGate(config, clock=lambda: NOW).run_if_needed() is False

    assert config.records_path.read_text(encoding="utf-8") == "not json"
    assert json.loads(config.version_path.read_text(encoding="utf-8"))["versionCode"] == 5


def test_corrupt_marker_counts_as_version_zero(config: AppConfig):
    config.version_path.write_text("{broken", encoding="utf-8")
    gate = MigrationGate(config, clock=lambda: NOW)

    assert gate.read_marker().version_code == 0
    assert gate.run_if_needed() is True
    assert gate.read_marker().version_code == 2


def test_gate_runs_only_once(config: AppConfig):
    calls = []
    gate = MigrationGate(
        config,
        migrations={1: [lambda cfg, ts: calls.append(1)], 2: [lambda cfg, ts: calls.append(2)]},
        clock=lambda: NOW,
    )

    assert gate.run_if_needed() is True
    config.version_path.unlink()
    assert gate.run_if_needed() is False

    assert calls == [1, 2]


def test_steps_run_only_for_crossed_versions(config: AppConfig):
    write_marker(config, 1)
    calls = []
    gate = MigrationGate(
        config,
        migrations={1: [lambda cfg, ts: calls.append(1)], 2: [lambda cfg, ts: calls.append(2)]},
        clock=lambda: NOW,
    )

    gate.run_if_needed()

    assert calls == [2]


def test_failed_step_keeps_old_marker(config: AppConfig):
    def failing(cfg, ts):
        raise OSError("no space left")

    gate = MigrationGate(config, migrations={1: [failing]}, clock=lambda: NOW)

    assert gate.run_if_needed() is False
    assert gate.checked
    assert not config.version_path.exists()


def test_marker_write_failure_is_not_fatal(config: AppConfig, monkeypatch):
    def broken_write(path, text):
        if path == config.version_path:
            raise OSError("read-only")
        path.write_text(text, encoding="utf-8")

    monkeypatch.setattr(migration_module, "atomic_write_text", broken_write)

    assert MigrationGate(config, clock=lambda: NOW).run_if_needed() is False
    assert config.records_path.exists()


def test_backup_name_does_not_clobber_existing(config: AppConfig):
    config.backup_path(NOW).write_text("older backup", encoding="utf-8")
    config.records_path.write_text("[{]", encoding="utf-8")

    ensure_records_file(config, NOW)

    assert config.backup_path(NOW).read_text(encoding="utf-8") == "older backup"
    assert (config.data_dir / f"qr_codes_backup_{NOW}_1.json").read_text(encoding="utf-8") == "[{]"


def test_ensure_records_file_creates_data_dir(tmp_path):
    config = AppConfig(data_dir=tmp_path / "nested" / "wallet")

    ensure_records_file(config, NOW)

    assert config.records_path.exists()


@pytest.mark.parametrize(
    "text",
    [
        '{"codes": [{"id": "i", "content": "c", "name": "n", "timestamp": ' + "1" * 5000 + "}]}",
        "[" * 100_000 + "]" * 100_000,
    ],
)
def test_pathological_json_is_backed_up_and_reset(config: AppConfig, text):
    config.records_path.write_text(text, encoding="utf-8")
    gate = MigrationGate(config, clock=lambda: NOW)

    assert gate.run_if_needed() is True

    [backup] = backups(config)
    assert backup.read_text(encoding="utf-8") == text
    assert RecordStore(config.records_path).load() == []
    assert gate.read_marker().version_code == 2


def test_deeply_nested_marker_counts_as_version_zero(config: AppConfig):
    config.version_path.write_text("[" * 100_000 + "]" * 100_000, encoding="utf-8")

    assert MigrationGate(config, clock=lambda: NOW).read_marker() == VersionMarker()
