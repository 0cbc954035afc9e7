# Logging_Config.py
# Description: Configuration for logging
#
# Imports
import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Any, Dict, Optional
#
# 3rd-Party Imports
from loguru import logger as loguru_logger
#
# Local Imports
from pathpicker_sync.config import get_log_file_path, load_settings
#
########################################################################################################################
#
# Functions:

_LOG_FORMAT = "%(asctime)s [%(levelname)-8s] %(name)s:%(lineno)d - %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_LOGURU_LEVEL_MAPPING = {
    "TRACE": logging.DEBUG, "DEBUG": logging.DEBUG, "INFO": logging.INFO,
    "SUCCESS": logging.INFO, "WARNING": logging.WARNING, "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def _sink_to_standard_logging(message):
    """Forwards a loguru message to the stdlib logger of the same name."""
    record = message.record
    std_level = _LOGURU_LEVEL_MAPPING.get(record["level"].name, logging.INFO)
    std_logger = logging.getLogger(record["name"])
    if record["exception"]:
        std_logger.log(std_level, record["message"], exc_info=record["exception"])
    else:
        std_logger.log(std_level, record["message"])


def configure_logging(config: Optional[Dict[str, Any]] = None, log_file_path: Optional[Path] = None) -> None:
    """
    Sets up all logging handlers, including Loguru integration.

    Loguru's default stderr sink is replaced by a sink that forwards into standard
    logging, so both loguru and stdlib loggers end up in the same console and
    rotating file handlers.
    """
    config = config if config is not None else load_settings()
    general = config.get("general", {})
    logging_section = config.get("logging", {})

    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("boto3").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    # --- Loguru -> standard logging ---
    loguru_logger.remove()
    loguru_logger.add(_sink_to_standard_logging, format="{message}", level="TRACE")

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        try:
            handler.close()
        except OSError:
            pass  # already closed

    console_level = getattr(logging, str(general.get("log_level", "INFO")).upper(), logging.INFO)
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt=_DATE_FORMAT))
    root_logger.addHandler(console_handler)

    # --- File logging ---
    file_level = console_level
    try:
        log_path = Path(log_file_path) if log_file_path is not None else get_log_file_path(config)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        max_bytes = int(logging_section.get("log_max_bytes", 10485760))
        backup_count = int(logging_section.get("log_backup_count", 5))
        file_level = getattr(logging, str(logging_section.get("file_log_level", "INFO")).upper(), logging.INFO)
        file_handler = logging.handlers.RotatingFileHandler(
            log_path, maxBytes=max_bytes, backupCount=backup_count, encoding='utf-8'
        )
        file_handler.setLevel(file_level)
        file_handler.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt=_DATE_FORMAT))
        root_logger.addHandler(file_handler)
        logging.info(f"Standard Logging: Added RotatingFileHandler (File: '{log_path}', Level: {logging.getLevelName(file_level)}).")
    except (OSError, ValueError) as e:
        logging.warning(f"Could not set up file logging: {e}", exc_info=True)

    root_logger.setLevel(min(console_level, file_level))
    logging.info(f"Logging setup complete. Root logger level: {logging.getLevelName(root_logger.level)}")

#
# End of Logging_Config.py
########################################################################################################################
