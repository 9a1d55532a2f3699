"""Configuration loading, secret encryption and logging setup."""

from podpipe.config.manager import ConfigManager
from podpipe.config.schema import GlobalConfig

__all__ = ["ConfigManager", "GlobalConfig"]
