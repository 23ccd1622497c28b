from .settings import Settings, load_settings, parse_duration

__all__ = [
    "Settings",
    "load_settings",
    "parse_duration",
]
