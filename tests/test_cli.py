"""Tests del CLI (solo init-schema; run y serve necesitan broker)."""

import pytest

from telemetry_ingest.cli import main


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    monkeypatch.setenv("TELEMETRY_ENV_FILE", str(tmp_path / "missing.env"))
    monkeypatch.setenv("TIMESCALE_CREATE_EXTENSION", "false")


def test_init_schema_succeeds(monkeypatch, tmp_path):
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'store.db'}")

    assert main(["init-schema"]) == 0
    assert (tmp_path / "store.db").exists()


def test_init_schema_unreachable_store_exits_1(monkeypatch, tmp_path):
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'missing' / 'store.db'}")

    assert main(["init-schema"]) == 1


def test_invalid_configuration_exits_1(monkeypatch):
    monkeypatch.setenv("MQTT_QOS", "2")

    assert main(["init-schema"]) == 1
