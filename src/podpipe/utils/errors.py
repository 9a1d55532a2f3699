"""Custom exceptions for Podpipe."""


class PodpipeError(Exception):
    """Base exception for all Podpipe errors."""

    pass


class ConfigError(PodpipeError):
    """Configuration-related errors."""

    pass


class InvalidConfigError(ConfigError):
    """Invalid configuration data."""

    pass


class ConfigNotFoundError(ConfigError):
    """Configuration file not found."""

    pass


class EncryptionError(ConfigError):
    """Encryption/decryption errors."""

    pass


class StorageError(PodpipeError):
    """Object store and document errors."""

    pass


class NotFoundError(StorageError):
    """Requested episode or document does not exist."""

    pass


class InvalidDocumentError(StorageError):
    """Stored document is unparseable or fails record validation."""

    pass


class PublishingError(PodpipeError):
    """Episode lifecycle errors."""

    pass


class TransitionDenied(PublishingError):
    """Attempted status transition is not legal from the current status."""

    def __init__(self, attempted: str, current: str, reason: str | None = None) -> None:
        self.attempted = attempted
        self.current = current
        self.reason = reason
        message = f"Cannot move episode to '{attempted}' from '{current}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class LockConflictError(PublishingError):
    """A valid transcription lock is already held."""

    def __init__(self, episode_id: str, locked_at: object) -> None:
        self.episode_id = episode_id
        self.locked_at = locked_at
        super().__init__(
            f"Episode '{episode_id}' is locked for transcription since {locked_at}"
        )


class PreconditionError(PublishingError):
    """A required artifact is missing for the requested operation."""

    pass


class TranscriptMissingError(PreconditionError):
    """Transcription completion requested but no transcript was uploaded."""

    pass


class AudioMissingError(PreconditionError):
    """Audio file expected in storage but not found."""

    pass


class InvalidSlugError(PublishingError):
    """Slug contains characters other than lowercase letters, digits and hyphens."""

    pass


class DuplicateSlugError(PublishingError):
    """Slug already used by another episode."""

    pass


class IntegrationError(PodpipeError):
    """External collaborator (rebuild hook, social network) failures."""

    pass
