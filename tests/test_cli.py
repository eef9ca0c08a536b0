"""Tests for the command line interface."""

import pytest
from typer.testing import CliRunner
from yaml import dump

from notebridge import configuration
from notebridge.repository.configuration import CONFIGURATION_REPO
from notebridge.terminal.app import app

runner = CliRunner()


@pytest.fixture
def app_config(tmp_path, monkeypatch):
    """Point the application at a throwaway config file and data directory."""
    config_path = tmp_path / "config" / "config.yaml"
    config_path.parent.mkdir()
    config_path.write_text(dump(configuration.get_default_configuration(), sort_keys=False))
    data_path = tmp_path / "data"

    monkeypatch.setattr(configuration, "APP_CONFIG_PATH", config_path)
    monkeypatch.setattr(configuration, "DATA_PATH", data_path)
    monkeypatch.setattr(configuration, "DATA_NOTE_RECORDS_PATH", data_path / "note_records.yaml")
    monkeypatch.setattr(CONFIGURATION_REPO, "_config", None)
    monkeypatch.setattr(CONFIGURATION_REPO, "is_dirty", False)
    return config_path


def test_sync_and_list_records(tmp_path, app_config, archive_builder):
    archive = tmp_path / "Trip.note"
    archive.write_bytes(
        archive_builder(
            {
                "NotesBean.json": {"noteId": "N1", "noteName": "Trip", "pageCount": 1},
                "1.png": b"page",
            }
        )
    )
    vault_path = tmp_path / "vault"

    result = runner.invoke(app, ["s", str(archive), "--vault", str(vault_path)])

    assert result.exit_code == 0, result.output
    assert "1 synced, 0 failed" in result.output
    assert (vault_path / "Notes" / "Handwritten" / "Trip.md").is_file()

    result = runner.invoke(app, ["records"])
    assert result.exit_code == 0
    assert "N1" in result.output


def test_sync_failure_exit_code(tmp_path, app_config, archive_builder):
    archive = tmp_path / "Random.note"
    archive.write_bytes(archive_builder({"readme.txt": "x"}))

    result = runner.invoke(app, ["sync", str(archive), "--vault", str(tmp_path / "vault")])

    assert result.exit_code == 1
    assert "0 synced, 1 failed" in result.output


def test_sync_without_vault(tmp_path, app_config, archive_builder):
    archive = tmp_path / "Trip.note"
    archive.write_bytes(archive_builder({"NotesBean.json": {}}))

    result = runner.invoke(app, ["sync", str(archive)])

    assert result.exit_code == 1
    assert "No vault given" in result.output


def test_config_set_and_view(app_config):
    result = runner.invoke(app, ["c", "s", "--vault-path", "/somewhere", "--log-level", "debug"])

    assert result.exit_code == 0, result.output
    assert CONFIGURATION_REPO.get_config()["vault_path"] == "/somewhere"
    assert CONFIGURATION_REPO.get_config()["log_level"] == "DEBUG"

    result = runner.invoke(app, ["config", "view"])
    assert result.exit_code == 0
    assert "/somewhere" in result.output
