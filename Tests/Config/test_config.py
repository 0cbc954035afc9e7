# test_config.py
#
# Imports
import logging
import logging.handlers
import sys
from pathlib import Path
#
# Third-Party Imports
import pytest
from loguru import logger
#
# Local Imports
from pathpicker_sync import config as config_module
from pathpicker_sync.config import (
    DEFAULT_CONFIG_FROM_TOML,
    SyncSettings,
    _get_typed_value,
    deep_merge_dicts,
    get_cli_setting,
    load_settings,
)
from pathpicker_sync.Logging_Config import configure_logging
#
#######################################################################################################################
#
# --- Fixtures ---

@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("PATHPICKER_SYNC_MODE", "PATHPICKER_SYNC_INTERVAL", "PATHPICKER_START_DIRECTORY", "AWS_REGION"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(config_module, "_CONFIG_CACHE", None)


@pytest.fixture
def config_file(tmp_path):
    return tmp_path / "config.toml"


# --- Loading ---

def test_embedded_defaults_parse():
    assert DEFAULT_CONFIG_FROM_TOML["sync"]["mode"] == "simulated"
    assert DEFAULT_CONFIG_FROM_TOML["sync"]["interval_seconds"] == 300
    assert DEFAULT_CONFIG_FROM_TOML["remote"]["table_name"] == "JRECFilePathPickerRecords"


def test_missing_file_is_created_with_defaults(config_file):
    config = load_settings(config_path=config_file)
    assert config_file.exists()
    assert config == DEFAULT_CONFIG_FROM_TOML


def test_user_file_is_merged_over_defaults(config_file):
    config_file.write_text('[sync]\nmode = "live"\n\n[remote]\nregion = "ap-southeast-1"\n', encoding="utf-8")

    config = load_settings(config_path=config_file)

    assert config["sync"]["mode"] == "live"
    assert config["sync"]["interval_seconds"] == 300
    assert config["remote"]["region"] == "ap-southeast-1"
    assert config["remote"]["table_name"] == "JRECFilePathPickerRecords"


def test_broken_toml_falls_back_to_defaults(config_file):
    config_file.write_text("[sync\nmode = ", encoding="utf-8")
    assert load_settings(config_path=config_file) == DEFAULT_CONFIG_FROM_TOML


def test_environment_overrides_file(config_file, monkeypatch, tmp_path):
    monkeypatch.setenv("PATHPICKER_SYNC_MODE", "LIVE")
    monkeypatch.setenv("PATHPICKER_SYNC_INTERVAL", "42")
    monkeypatch.setenv("PATHPICKER_START_DIRECTORY", str(tmp_path))
    monkeypatch.setenv("AWS_REGION", "eu-central-1")

    settings = SyncSettings.from_config(load_settings(config_path=config_file))

    assert settings.mode == "live"
    assert settings.interval_seconds == 42.0
    assert settings.start_directory == tmp_path
    assert settings.region == "eu-central-1"


def test_default_path_is_cached(monkeypatch, tmp_path):
    monkeypatch.setattr(config_module, "DEFAULT_CONFIG_PATH", tmp_path / "cfg" / "config.toml")
    first = load_settings()
    assert load_settings() is first
    assert load_settings(force_reload=True) is not first


def test_get_cli_setting_reads_sections_with_default(monkeypatch, tmp_path):
    config_path = tmp_path / "cfg" / "config.toml"
    config_path.parent.mkdir()
    config_path.write_text('[sync]\nfailed_push_policy = "drop"\n', encoding="utf-8")
    monkeypatch.setattr(config_module, "DEFAULT_CONFIG_PATH", config_path)

    assert get_cli_setting("sync", "failed_push_policy") == "drop"
    assert get_cli_setting("remote", "table_name") == "JRECFilePathPickerRecords"
    assert get_cli_setting("remote", "no_such_key", "fallback") == "fallback"
    assert get_cli_setting("no_such_section", "mode", 3) == 3


def test_deep_merge_does_not_mutate_inputs():
    base = {"a": {"x": 1, "y": 2}, "b": 1}
    update = {"a": {"y": 3}}
    merged = deep_merge_dicts(base, update)
    assert merged == {"a": {"x": 1, "y": 3}, "b": 1}
    assert base["a"]["y"] == 2


@pytest.mark.parametrize("raw, target, expected", [
    ("5", int, 5),
    ("2.5", float, 2.5),
    ("yes", bool, True),
    ("off", bool, False),
    ("not-a-number", int, 7),
])
def test_get_typed_value(raw, target, expected):
    assert _get_typed_value({"k": raw}, "k", 7 if target is int else None, target) == expected


# --- SyncSettings ---

def test_settings_from_defaults(monkeypatch):
    monkeypatch.setattr(config_module, "default_writer", lambda: "os-user")
    settings = SyncSettings.from_config(DEFAULT_CONFIG_FROM_TOML)

    assert settings.is_simulated
    assert settings.interval_seconds == 300.0
    assert settings.failed_push_policy == "retry"
    assert settings.shutdown_timeout_seconds == 10.0
    assert settings.writer == "os-user"
    assert settings.start_directory is None
    assert settings.endpoint_url is None
    assert (settings.read_capacity, settings.write_capacity) == (5, 5)
    assert (settings.schema_poll_interval_seconds, settings.schema_poll_attempts) == (1.0, 10)
    assert settings.metrics_enabled is False


def test_invalid_values_fall_back():
    config = deep_merge_dicts(DEFAULT_CONFIG_FROM_TOML, {
        "general": {"writer": "carol"},
        "sync": {"mode": "cloudy", "failed_push_policy": "maybe", "interval_seconds": -5},
    })
    settings = SyncSettings.from_config(config)
    assert settings.mode == "simulated"
    assert settings.failed_push_policy == "retry"
    assert settings.interval_seconds == 300.0
    assert settings.writer == "carol"


def test_drop_policy_and_live_mode_are_read():
    config = deep_merge_dicts(DEFAULT_CONFIG_FROM_TOML, {
        "sync": {"mode": "live", "failed_push_policy": "drop"},
        "remote": {"endpoint_url": "http://localhost:8000", "profile": "dev"},
    })
    settings = SyncSettings.from_config(config)
    assert not settings.is_simulated
    assert settings.failed_push_policy == "drop"
    assert settings.endpoint_url == "http://localhost:8000"
    assert settings.profile == "dev"


# --- Logging ---

def test_configure_logging_installs_handlers_and_forwards_loguru(tmp_path):
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    log_path = tmp_path / "logs" / "sync.log"
    try:
        configure_logging(DEFAULT_CONFIG_FROM_TOML, log_file_path=log_path)

        assert any(isinstance(h, logging.handlers.RotatingFileHandler) for h in root.handlers)
        assert any(type(h) is logging.StreamHandler for h in root.handlers)

        logger.info("forwarded from loguru")
        for handler in root.handlers:
            handler.flush()
        assert "forwarded from loguru" in Path(log_path).read_text(encoding="utf-8")
    finally:
        for handler in root.handlers[:]:
            root.removeHandler(handler)
            handler.close()
        for handler in saved_handlers:
            root.addHandler(handler)
        root.setLevel(saved_level)
        logger.remove()
        logger.add(sys.stderr)

#
# End of test_config.py
#######################################################################################################################
