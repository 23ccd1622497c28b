"""
Client settings resolution.

Resolution order (first non-None wins):
  1. Keyword overrides passed to ``load_settings``
  2. ``KEEN_*`` environment variables
  3. config.ini ``[keen]`` and ``[queue]`` sections
  4. Built-in defaults
"""

import configparser
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional

from keen.constants import (
    BASE_URL_KEY,
    BATCH_SIZE_KEY,
    BATCH_TIMEOUT_KEY,
    CONFIG,
    DEFAULT_API_VERSION,
    DEFAULT_BASE_URL,
    ENV_PREFIX,
    ENVIRONMENT_KEY,
    KEEN_SECTION,
    MASTER_KEY_KEY,
    MAX_EVENTS_PER_COLLECTION_KEY,
    PROJECT_ID_KEY,
    QUEUE_SECTION,
    READ_KEY_KEY,
    REQUEST_TIMEOUT,
    REQUEST_TIMEOUT_KEY,
    SEND_INTERVAL_DURATION_KEY,
    SEND_INTERVAL_EVENTS_KEY,
    SHUTDOWN_DELAY_KEY,
    TEST_ENVIRONMENT,
    WRITE_KEY_KEY,
)
from keen.errors import ConfigValidationError
from keen.queue.config import QueueConfig

from .log_codes import (
    SETTINGS_CONFIG_LOADED,
    SETTINGS_CONFIG_MISSING,
    SETTINGS_INVALID_VALUE,
    SETTINGS_RESOLVED,
)

logger = logging.getLogger(__name__)


DURATION_UNITS = {
    "ms": 0.001,
    "millisecond": 0.001,
    "milliseconds": 0.001,
    "s": 1.0,
    "second": 1.0,
    "seconds": 1.0,
    "m": 60.0,
    "minute": 60.0,
    "minutes": 60.0,
    "h": 3600.0,
    "hour": 3600.0,
    "hours": 3600.0,
}

DURATION_REGEX = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([a-z]*)\s*$")


def parse_duration(raw: str, setting: str = "duration") -> float:
    """
    Parse a duration such as ``30``, ``500ms``, ``60s``, ``5m``, ``1h`` or
    ``30 seconds`` into seconds. A bare number is seconds.

    Raises:
        ConfigValidationError: If the value cannot be parsed.
    """
    match = DURATION_REGEX.match(str(raw).lower())

    if not match or (match.group(2) and match.group(2) not in DURATION_UNITS):
        raise ConfigValidationError(setting, f"unrecognised duration {raw!r}")

    value, unit = match.groups()
    return float(value) * DURATION_UNITS.get(unit, 1.0)


def parse_int(raw: str, setting: str) -> int:
    try:
        return int(str(raw).strip())
    except ValueError:
        raise ConfigValidationError(setting, f"expected an integer, got {raw!r}")


def parse_str(raw: str, setting: str) -> Optional[str]:
    value = str(raw).strip()
    return value or None


@dataclass
class Settings:
    project_id: Optional[str] = None
    read_key: Optional[str] = None
    write_key: Optional[str] = None
    master_key: Optional[str] = None
    environment: Optional[str] = None
    base_url: str = DEFAULT_BASE_URL
    api_version: str = DEFAULT_API_VERSION
    request_timeout: float = float(REQUEST_TIMEOUT)
    queue: QueueConfig = field(default_factory=QueueConfig)

    @property
    def is_test_environment(self) -> bool:
        """
        Whether the queue bound checks are bypassed.
        """
        return (self.environment or "").strip().lower() == TEST_ENVIRONMENT


# setting -> parser
CLIENT_SETTINGS: Dict[str, Callable[[str, str], Any]] = {
    PROJECT_ID_KEY: parse_str,
    READ_KEY_KEY: parse_str,
    WRITE_KEY_KEY: parse_str,
    MASTER_KEY_KEY: parse_str,
    ENVIRONMENT_KEY: parse_str,
    BASE_URL_KEY: parse_str,
    REQUEST_TIMEOUT_KEY: parse_duration,
}

QUEUE_SETTINGS: Dict[str, Callable[[str, str], Any]] = {
    BATCH_SIZE_KEY: parse_int,
    BATCH_TIMEOUT_KEY: parse_duration,
    SEND_INTERVAL_EVENTS_KEY: parse_int,
    SEND_INTERVAL_DURATION_KEY: parse_duration,
    MAX_EVENTS_PER_COLLECTION_KEY: parse_int,
    SHUTDOWN_DELAY_KEY: parse_duration,
}


def _from_environment(environ: Mapping[str, str]) -> Dict[str, str]:
    values = {}

    for key in (*CLIENT_SETTINGS, *QUEUE_SETTINGS):
        raw = environ.get(f"{ENV_PREFIX}{key.upper()}")
        if raw is not None and raw.strip():
            values[key] = raw

    return values


def _from_config_ini(config_path: Path) -> Dict[str, str]:
    """
    Read raw values from the config.ini file.

    Args:
        config_path (Path): The path to the config.ini file.

    Returns:
        Dict[str, str]: Raw setting values keyed by setting name.
    """
    config = configparser.ConfigParser()
    config_files = config.read(filenames=[config_path])

    if not config_files:
        logger.debug(SETTINGS_CONFIG_MISSING, extra={"config_path": str(config_path)})
        return {}

    values = {}
    for section, keys in ((KEEN_SECTION, CLIENT_SETTINGS), (QUEUE_SECTION, QUEUE_SETTINGS)):
        if not config.has_section(section):
            continue
        for key in keys:
            raw = config[section].get(key, None)
            if raw is not None and raw.strip():
                values[key] = raw

    logger.debug(
        SETTINGS_CONFIG_LOADED,
        extra={"config_path": str(config_path), "keys": sorted(values)},
    )
    return values


def _parse(key: str, raw: Any) -> Any:
    parser = CLIENT_SETTINGS.get(key) or QUEUE_SETTINGS[key]

    # Overrides may already be typed
    if not isinstance(raw, str):
        return raw

    try:
        return parser(raw, key)
    except ConfigValidationError:
        logger.error(SETTINGS_INVALID_VALUE, extra={"setting": key})
        raise


def load_settings(
    config_path: Path = CONFIG,
    environ: Optional[Mapping[str, str]] = None,
    **overrides: Any,
) -> Settings:
    """
    Resolve the effective client settings.

    Args:
        config_path (Path): The path to the config.ini file.
        environ: Environment mapping, ``os.environ`` when omitted.
        **overrides: Explicit setting values, by setting name.

    Returns:
        Settings: The resolved settings. Queue bounds are not checked here.

    Raises:
        ConfigValidationError: If a value cannot be parsed.
        TypeError: If an override names an unknown setting.
    """
    unknown = set(overrides) - set(CLIENT_SETTINGS) - set(QUEUE_SETTINGS)
    if unknown:
        raise TypeError(f"Unknown settings: {', '.join(sorted(unknown))}")

    sources = [
        ("overrides", {k: v for k, v in overrides.items() if v is not None}),
        ("environment", _from_environment(os.environ if environ is None else environ)),
        ("config", _from_config_ini(config_path)),
    ]

    resolved: Dict[str, Any] = {}
    origins: Dict[str, str] = {}

    for source_name, values in sources:
        for key, raw in values.items():
            if key in resolved:
                continue
            resolved[key] = _parse(key, raw)
            origins[key] = source_name

    queue_values = {k: resolved.pop(k) for k in list(resolved) if k in QUEUE_SETTINGS}

    settings = Settings(queue=QueueConfig(**queue_values), **resolved)

    logger.info(SETTINGS_RESOLVED, extra={"sources": origins})
    return settings
