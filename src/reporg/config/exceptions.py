"""Configuration errors."""


class ConfigError(Exception):
    """Raised for unreadable config files, malformed overrides, or invalid values."""
