"""Utility functions and helpers for Podpipe."""

from podpipe.utils.errors import (
    AudioMissingError,
    ConfigError,
    ConfigNotFoundError,
    DuplicateSlugError,
    EncryptionError,
    IntegrationError,
    InvalidConfigError,
    InvalidDocumentError,
    InvalidSlugError,
    LockConflictError,
    NotFoundError,
    PodpipeError,
    PreconditionError,
    PublishingError,
    StorageError,
    TranscriptMissingError,
    TransitionDenied,
)
from podpipe.utils.paths import (
    get_config_dir,
    get_config_file,
    get_data_dir,
    get_key_file,
    get_log_file,
    get_store_dir,
)

__all__ = [
    # Errors
    "PodpipeError",
    "ConfigError",
    "InvalidConfigError",
    "ConfigNotFoundError",
    "EncryptionError",
    "StorageError",
    "NotFoundError",
    "InvalidDocumentError",
    "PublishingError",
    "TransitionDenied",
    "LockConflictError",
    "PreconditionError",
    "TranscriptMissingError",
    "AudioMissingError",
    "InvalidSlugError",
    "DuplicateSlugError",
    "IntegrationError",
    # Paths
    "get_config_dir",
    "get_data_dir",
    "get_store_dir",
    "get_config_file",
    "get_key_file",
    "get_log_file",
]
