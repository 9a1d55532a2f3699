"""Episode lifecycle: state machine, transcription lock, publication."""

from podpipe.publishing.lock import LOCK_TIMEOUT, QueueItem, SoftLockManager, is_lock_valid
from podpipe.publishing.scheduler import PublishReport, ScheduledPublishCoordinator
from podpipe.publishing.service import PublicationService, validate_slug
from podpipe.publishing.state_machine import EpisodeStateMachine, decide_release_status

__all__ = [
    "LOCK_TIMEOUT",
    "EpisodeStateMachine",
    "PublicationService",
    "PublishReport",
    "QueueItem",
    "ScheduledPublishCoordinator",
    "SoftLockManager",
    "decide_release_status",
    "is_lock_valid",
    "validate_slug",
]
