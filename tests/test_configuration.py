"""Tests for configuration loading and validation."""

from yaml import dump

from notebridge.configuration import get_default_configuration, validate_configuration
from notebridge.repository.configuration import ConfigurationRepository


def test_defaults_are_valid():
    assert validate_configuration(get_default_configuration()) == []


def test_validation_reports_missing_folders():
    config = get_default_configuration()
    config["memo"]["memos_folder"] = ""
    config["ebook"]["highlights_folder"] = ""
    config["ebook"]["annotations_folder"] = ""

    problems = validate_configuration(config)

    assert problems == [
        "ebook.highlights_folder or ebook.annotations_folder must be set",
        "memo.memos_folder must not be empty",
    ]


def test_missing_keys_are_filled_from_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(dump({"vault_path": "/vault", "memo": {"memos_folder": "Memos"}}))

    config = ConfigurationRepository(path).get_config()

    assert config["vault_path"] == "/vault"
    assert config["log_level"] == "INFO"
    assert config["memo"]["memos_folder"] == "Memos"
    assert config["memo"]["extract_images"] is True
    assert config["daily"]["daily_folder"] == "Notes/Daily"
    assert config["memo_package_names"] == ["com.wisky.memo"]


def test_update_and_flush(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(dump(get_default_configuration(), sort_keys=False))
    repository = ConfigurationRepository(path)

    repository.update_config(vault_path="/vault", log_level="debug")
    repository.flush()

    reloaded = ConfigurationRepository(path).get_config()
    assert reloaded["vault_path"] == "/vault"
    assert reloaded["log_level"] == "DEBUG"

    repository.update_config(remove_vault_path=True)
    repository.flush()
    assert ConfigurationRepository(path).get_config()["vault_path"] is None


def test_get_config_returns_a_copy(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(dump(get_default_configuration(), sort_keys=False))
    repository = ConfigurationRepository(path)

    repository.get_config()["memo"]["memos_folder"] = "Elsewhere"

    assert repository.get_config()["memo"]["memos_folder"] == "Notes/Memos"
