"""
Log codes for configuration-related operations.
"""

CONFIG = "config"

# Settings resolution
SETTINGS = f"{CONFIG}.settings"
SETTINGS_RESOLVED = f"{SETTINGS}.resolved"
SETTINGS_CONFIG_LOADED = f"{SETTINGS}.config_loaded"
SETTINGS_CONFIG_MISSING = f"{SETTINGS}.config_missing"
SETTINGS_INVALID_VALUE = f"{SETTINGS}.invalid_value"
