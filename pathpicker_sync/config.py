# pathpicker_sync/config.py
# Description: Configuration management for the selection sync engine.
#
# Imports
import copy
import getpass
import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional
#
# Third-Party Imports
from loguru import logger
#
# Local Imports
from pathpicker_sync.Constants import (
    ALL_SYNC_MODES,
    DEFAULT_READ_CAPACITY,
    DEFAULT_REGION,
    DEFAULT_SCHEMA_POLL_ATTEMPTS,
    DEFAULT_SCHEMA_POLL_BACKOFF,
    DEFAULT_SCHEMA_POLL_INTERVAL_SECONDS,
    DEFAULT_SHUTDOWN_TIMEOUT_SECONDS,
    DEFAULT_SYNC_INTERVAL_SECONDS,
    DEFAULT_TABLE_NAME,
    DEFAULT_WRITE_CAPACITY,
    ENV_AWS_REGION,
    ENV_START_DIRECTORY,
    ENV_SYNC_INTERVAL,
    ENV_SYNC_MODE,
    FAILED_PUSH_DROP,
    FAILED_PUSH_RETRY,
    SYNC_MODE_SIMULATED,
)
#
#######################################################################################################################
#
# Functions:

# --- Path to the user's configuration file ---
DEFAULT_CONFIG_PATH = Path.home() / ".config" / "pathpicker_sync" / "config.toml"
BASE_DATA_DIR = Path.home() / ".local" / "share" / "pathpicker_sync"

CONFIG_TOML_CONTENT = f"""
# Configuration for the PathPicker selection sync engine.
# This file was created with default values; edit as needed.

[general]
# Identity recorded as the writer of every local toggle. Empty = current OS user.
writer = ""
# Directory the browsing model opens first. Empty = home directory.
start_directory = ""
log_level = "INFO"

[sync]
# "simulated" never touches the network; "live" talks to DynamoDB.
mode = "{SYNC_MODE_SIMULATED}"
interval_seconds = {DEFAULT_SYNC_INTERVAL_SECONDS}
# "retry": failed pushes stay queued for the next pass.
# "drop": the buffer is emptied after every pass; a failed key is resent only on its next toggle.
failed_push_policy = "{FAILED_PUSH_RETRY}"
shutdown_timeout_seconds = {DEFAULT_SHUTDOWN_TIMEOUT_SECONDS}

[remote]
table_name = "{DEFAULT_TABLE_NAME}"
region = "{DEFAULT_REGION}"
# Set for DynamoDB Local or a VPC endpoint, e.g. "http://localhost:8000"
endpoint_url = ""
# Named AWS profile; empty uses the ambient credential chain.
profile = ""
read_capacity = {DEFAULT_READ_CAPACITY}
write_capacity = {DEFAULT_WRITE_CAPACITY}
schema_poll_interval_seconds = {DEFAULT_SCHEMA_POLL_INTERVAL_SECONDS}
schema_poll_attempts = {DEFAULT_SCHEMA_POLL_ATTEMPTS}
# 1.0 = fixed interval; >1.0 = exponential backoff between polls
schema_poll_backoff = {DEFAULT_SCHEMA_POLL_BACKOFF}

[logging]
log_filename = "pathpicker_sync.log"
log_max_bytes = 10485760
log_backup_count = 5
file_log_level = "INFO"

[metrics]
enabled = false
port = 8000
"""

try:
    DEFAULT_CONFIG_FROM_TOML: Dict[str, Any] = tomllib.loads(CONFIG_TOML_CONTENT)
except tomllib.TOMLDecodeError as e:
    logger.critical(f"FATAL: Could not parse internal CONFIG_TOML_CONTENT: {e}.")
    DEFAULT_CONFIG_FROM_TOML = {}


def deep_merge_dicts(base: Dict, update: Dict) -> Dict:
    """Recursively merges update_dict into base_dict."""
    merged = copy.deepcopy(base)
    for key, value in update.items():
        if isinstance(value, dict) and key in merged and isinstance(merged[key], dict):
            merged[key] = deep_merge_dicts(merged[key], value)
        else:
            merged[key] = value
    return merged


def _get_typed_value(data_dict: Dict, key: str, default: Any, target_type: type = str) -> Any:
    """Helper to get value from dict and cast to type, with logging for type errors."""
    value = data_dict.get(key, default)
    if value is default and default is not None:
        return value
    if value is None:
        return None

    try:
        if target_type == bool:
            if isinstance(value, bool):
                return value
            return str(value).lower() in ['true', '1', 't', 'y', 'yes']
        if target_type == Path:
            return Path(value) if value else default
        return target_type(value)
    except (ValueError, TypeError) as e:
        logger.warning(f"Config key '{key}' has value '{value}' which could not be converted to {target_type}. Using default: '{default}'. Error: {e}")
        return default


def _apply_env_overrides(config: Dict[str, Any]) -> Dict[str, Any]:
    """Environment variables win over the TOML file."""
    overrides: Dict[str, Dict[str, Any]] = {}
    if os.environ.get(ENV_SYNC_MODE):
        overrides.setdefault("sync", {})["mode"] = os.environ[ENV_SYNC_MODE].strip().lower()
    if os.environ.get(ENV_SYNC_INTERVAL):
        overrides.setdefault("sync", {})["interval_seconds"] = os.environ[ENV_SYNC_INTERVAL].strip()
    if os.environ.get(ENV_START_DIRECTORY):
        overrides.setdefault("general", {})["start_directory"] = os.environ[ENV_START_DIRECTORY]
    if os.environ.get(ENV_AWS_REGION):
        overrides.setdefault("remote", {})["region"] = os.environ[ENV_AWS_REGION].strip()
    if overrides:
        logger.info(f"Applying environment overrides for sections: {sorted(overrides)}")
        return deep_merge_dicts(config, overrides)
    return config


# --- Primary Configuration Loading Logic ---
_CONFIG_CACHE: Optional[Dict[str, Any]] = None


def load_settings(force_reload: bool = False, config_path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Loads settings from ~/.config/pathpicker_sync/config.toml (or `config_path`).
    If the file doesn't exist, it's created with default values.
    """
    global _CONFIG_CACHE
    if _CONFIG_CACHE is not None and not force_reload and config_path is None:
        return _CONFIG_CACHE

    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    loaded_config = copy.deepcopy(DEFAULT_CONFIG_FROM_TOML)

    if not path.exists():
        logger.info(f"Config file not found at {path}. Creating with default values.")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                f.write(CONFIG_TOML_CONTENT)
            logger.info(f"Created default config file at {path}")
        except OSError as e:
            logger.error(f"Could not create default config file {path}: {e}. Using internal defaults.")
    else:
        logger.info(f"Attempting to load config from: {path}")
        try:
            with open(path, "rb") as f:
                user_config_from_file = tomllib.load(f)
            loaded_config = deep_merge_dicts(loaded_config, user_config_from_file)
            logger.info(f"Successfully loaded and merged config from {path}")
        except tomllib.TOMLDecodeError as e:
            logger.exception(f"Error decoding TOML config file {path}: {e}. Using internal defaults.")
        except OSError as e:
            logger.exception(f"Could not read config file {path}: {e}. Using internal defaults.")

    loaded_config = _apply_env_overrides(loaded_config)
    if config_path is None:
        _CONFIG_CACHE = loaded_config
    logger.debug(f"load_settings returning config with top-level keys: {list(loaded_config.keys())}")
    return loaded_config


def get_cli_setting(section: str, key: str, default: Any = None) -> Any:
    """Helper to get a specific setting from the loaded configuration."""
    config = load_settings()
    section_data = config.get(section)
    if isinstance(section_data, dict):
        return section_data.get(key, default)
    return default


def get_log_file_path(config: Optional[Dict[str, Any]] = None) -> Path:
    config = config if config is not None else load_settings()
    default_log_filename = DEFAULT_CONFIG_FROM_TOML.get("logging", {}).get("log_filename", "pathpicker_sync.log")
    log_filename = config.get("logging", {}).get("log_filename", default_log_filename)
    log_file_path = BASE_DATA_DIR / log_filename
    try:
        log_file_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.exception(f"Could not create log directory {log_file_path.parent}: {e}")
    return log_file_path


def default_writer() -> str:
    try:
        return getpass.getuser()
    except Exception as e:  # getpass raises OSError/KeyError depending on platform
        logger.warning(f"Could not determine the current user ({e}); using 'unknown'")
        return "unknown"


@dataclass(frozen=True)
class SyncSettings:
    """Typed view of the configuration used to build a SelectionSyncContext."""
    mode: str = SYNC_MODE_SIMULATED
    interval_seconds: float = float(DEFAULT_SYNC_INTERVAL_SECONDS)
    failed_push_policy: str = FAILED_PUSH_RETRY
    shutdown_timeout_seconds: float = DEFAULT_SHUTDOWN_TIMEOUT_SECONDS
    writer: str = "unknown"
    start_directory: Optional[Path] = None
    table_name: str = DEFAULT_TABLE_NAME
    region: str = DEFAULT_REGION
    endpoint_url: Optional[str] = None
    profile: Optional[str] = None
    read_capacity: int = DEFAULT_READ_CAPACITY
    write_capacity: int = DEFAULT_WRITE_CAPACITY
    schema_poll_interval_seconds: float = DEFAULT_SCHEMA_POLL_INTERVAL_SECONDS
    schema_poll_attempts: int = DEFAULT_SCHEMA_POLL_ATTEMPTS
    schema_poll_backoff: float = DEFAULT_SCHEMA_POLL_BACKOFF
    metrics_enabled: bool = False
    metrics_port: int = 8000

    @property
    def is_simulated(self) -> bool:
        return self.mode == SYNC_MODE_SIMULATED

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]] = None) -> "SyncSettings":
        config = config if config is not None else load_settings()
        general = config.get("general", {}) or {}
        sync = config.get("sync", {}) or {}
        remote = config.get("remote", {}) or {}
        metrics = config.get("metrics", {}) or {}

        mode = _get_typed_value(sync, "mode", SYNC_MODE_SIMULATED, str).strip().lower()
        if mode not in ALL_SYNC_MODES:
            logger.warning(f"Unknown sync mode '{mode}'. Falling back to '{SYNC_MODE_SIMULATED}'.")
            mode = SYNC_MODE_SIMULATED

        policy = _get_typed_value(sync, "failed_push_policy", FAILED_PUSH_RETRY, str).strip().lower()
        if policy not in (FAILED_PUSH_RETRY, FAILED_PUSH_DROP):
            logger.warning(f"Unknown failed_push_policy '{policy}'. Falling back to '{FAILED_PUSH_RETRY}'.")
            policy = FAILED_PUSH_RETRY

        interval = _get_typed_value(sync, "interval_seconds", float(DEFAULT_SYNC_INTERVAL_SECONDS), float)
        if interval <= 0:
            logger.warning(f"Sync interval must be positive, got {interval}. Using {DEFAULT_SYNC_INTERVAL_SECONDS}.")
            interval = float(DEFAULT_SYNC_INTERVAL_SECONDS)

        writer = _get_typed_value(general, "writer", "", str).strip() or default_writer()
        start_dir_raw = _get_typed_value(general, "start_directory", "", str).strip()

        return cls(
            mode=mode,
            interval_seconds=interval,
            failed_push_policy=policy,
            shutdown_timeout_seconds=_get_typed_value(sync, "shutdown_timeout_seconds", DEFAULT_SHUTDOWN_TIMEOUT_SECONDS, float),
            writer=writer,
            start_directory=Path(start_dir_raw).expanduser() if start_dir_raw else None,
            table_name=_get_typed_value(remote, "table_name", DEFAULT_TABLE_NAME, str),
            region=_get_typed_value(remote, "region", DEFAULT_REGION, str),
            endpoint_url=_get_typed_value(remote, "endpoint_url", "", str).strip() or None,
            profile=_get_typed_value(remote, "profile", "", str).strip() or None,
            read_capacity=_get_typed_value(remote, "read_capacity", DEFAULT_READ_CAPACITY, int),
            write_capacity=_get_typed_value(remote, "write_capacity", DEFAULT_WRITE_CAPACITY, int),
            schema_poll_interval_seconds=_get_typed_value(remote, "schema_poll_interval_seconds", DEFAULT_SCHEMA_POLL_INTERVAL_SECONDS, float),
            schema_poll_attempts=_get_typed_value(remote, "schema_poll_attempts", DEFAULT_SCHEMA_POLL_ATTEMPTS, int),
            schema_poll_backoff=_get_typed_value(remote, "schema_poll_backoff", DEFAULT_SCHEMA_POLL_BACKOFF, float),
            metrics_enabled=_get_typed_value(metrics, "enabled", False, bool),
            metrics_port=_get_typed_value(metrics, "port", 8000, int),
        )

#
# End of pathpicker_sync/config.py
#######################################################################################################################
