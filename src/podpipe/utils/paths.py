"""XDG-compliant locations for config, data and logs."""

from pathlib import Path

from platformdirs import user_config_dir, user_data_dir, user_log_dir

APP_NAME = "podpipe"


def get_config_dir() -> Path:
    """Get the Podpipe configuration directory."""
    return Path(user_config_dir(APP_NAME))


def get_data_dir() -> Path:
    """Get the Podpipe data directory."""
    return Path(user_data_dir(APP_NAME))


def get_store_dir() -> Path:
    """Get the default root of the local object store."""
    return get_data_dir() / "store"


def get_config_file() -> Path:
    return get_config_dir() / "config.yaml"


def get_key_file() -> Path:
    return get_config_dir() / ".keyfile"


def get_log_file() -> Path:
    return Path(user_log_dir(APP_NAME)) / "podpipe.log"
