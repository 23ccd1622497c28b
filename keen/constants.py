# -*- coding: utf-8 -*-
import os
from pathlib import Path

DIR_NAME = ".keen"


def get_user_dir() -> Path:
    """
    Get the user directory for the keen configuration.

    Returns:
        Path: The user directory path.
    """
    path = Path("~", DIR_NAME).expanduser()
    return path


USER_CONFIG_DIR = get_user_dir()

CONFIG_FILE_NAME = "config.ini"
CONFIG_FILE_USER = USER_CONFIG_DIR / CONFIG_FILE_NAME

CONFIG = Path(os.getenv("KEEN_CONFIG_PATH", str(CONFIG_FILE_USER)))

DEFAULT_BASE_URL = "https://api.keen.io"
DEFAULT_API_VERSION = "3.0"

# Overridable per client through the request_timeout setting
REQUEST_TIMEOUT = 30
REQUEST_RETRIES = 3

TEST_ENVIRONMENT = "test"

# Queue defaults
DEFAULT_BATCH_SIZE = 500
DEFAULT_BATCH_TIMEOUT = 5.0
DEFAULT_SEND_INTERVAL_EVENTS = 0
DEFAULT_SEND_INTERVAL_DURATION = 0.0
DEFAULT_MAX_EVENTS_PER_COLLECTION = 10000
DEFAULT_SHUTDOWN_DELAY = 30.0

# Queue bounds
MIN_SEND_INTERVAL_EVENTS = 100
MAX_SEND_INTERVAL_EVENTS = 10000
MIN_SEND_INTERVAL_DURATION = 60.0
MAX_SEND_INTERVAL_DURATION = 60.0 * 60

# Settings keys, as used in config.ini and (upper-cased, KEEN_ prefixed) in the environment
ENV_PREFIX = "KEEN_"

KEEN_SECTION = "keen"
QUEUE_SECTION = "queue"

PROJECT_ID_KEY = "project_id"
READ_KEY_KEY = "read_key"
WRITE_KEY_KEY = "write_key"
MASTER_KEY_KEY = "master_key"
ENVIRONMENT_KEY = "environment"
BASE_URL_KEY = "base_url"
REQUEST_TIMEOUT_KEY = "request_timeout"

BATCH_SIZE_KEY = "batch_size"
BATCH_TIMEOUT_KEY = "batch_timeout"
SEND_INTERVAL_EVENTS_KEY = "send_interval_events"
SEND_INTERVAL_DURATION_KEY = "send_interval_duration"
MAX_EVENTS_PER_COLLECTION_KEY = "max_events_per_collection"
SHUTDOWN_DELAY_KEY = "shutdown_delay"

# Exit codes
EXIT_CODE_OK = 0
EXIT_CODE_FAILURE = 1
EXIT_CODE_INVALID_CONFIG = 65
EXIT_CODE_MISSING_CREDENTIAL = 66
EXIT_CODE_DELIVERY_FAILED = 67
EXIT_CODE_QUEUE_FULL = 68
