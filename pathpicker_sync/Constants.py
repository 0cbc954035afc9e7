# Constants.py
# Description: Constants for the selection sync engine
#
# Imports
#
# 3rd-Party Imports
#
# Local Imports
#
########################################################################################################################
#
# Functions:

# --- Application ---
APP_NAME = "PathPicker-Sync"
APP_VERSION = "1.0.0"

# --- Remote table schema ---
DEFAULT_TABLE_NAME = "JRECFilePathPickerRecords"
KEY_FILEPATH = "filePath"
ATTR_TIMESTAMP = "timestamp"
ATTR_USERNAME = "username"
ATTR_SELECTED = "selected"
TABLE_STATUS_ACTIVE = "ACTIVE"
DEFAULT_READ_CAPACITY = 5
DEFAULT_WRITE_CAPACITY = 5
DEFAULT_REGION = "us-east-1"

# --- Schema readiness polling ---
DEFAULT_SCHEMA_POLL_INTERVAL_SECONDS = 1.0
DEFAULT_SCHEMA_POLL_ATTEMPTS = 10
DEFAULT_SCHEMA_POLL_BACKOFF = 1.0

# --- Sync scheduling ---
SYNC_MODE_SIMULATED = "simulated"
SYNC_MODE_LIVE = "live"
ALL_SYNC_MODES = [SYNC_MODE_SIMULATED, SYNC_MODE_LIVE]
DEFAULT_SYNC_INTERVAL_SECONDS = 5 * 60
DEFAULT_SHUTDOWN_TIMEOUT_SECONDS = 10.0

# --- Failed push policies ---
FAILED_PUSH_RETRY = "retry"
FAILED_PUSH_DROP = "drop"

# --- Observer channels ---
CHANNEL_DIRECTORY_CHANGED = "directory_changed"
CHANNEL_RESOURCE_LIST_CHANGED = "resource_list_changed"
CHANNEL_RECORD_CHANGED = "record_changed"

# --- Environment overrides ---
ENV_SYNC_MODE = "PATHPICKER_SYNC_MODE"
ENV_SYNC_INTERVAL = "PATHPICKER_SYNC_INTERVAL"
ENV_START_DIRECTORY = "PATHPICKER_START_DIRECTORY"
ENV_AWS_REGION = "AWS_REGION"

#
# End of Constants.py
########################################################################################################################
