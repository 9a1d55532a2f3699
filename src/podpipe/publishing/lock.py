"""Time-bounded advisory lock for the transcription hand-off."""

import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from podpipe.episodes.models import DocumentModel, Episode, EpisodeStatus
from podpipe.storage.repository import PodcastRepository
from podpipe.utils.datetime import ensure_utc, now_utc
from podpipe.utils.errors import (
    InvalidDocumentError,
    LockConflictError,
    NotFoundError,
    TransitionDenied,
)

logger = logging.getLogger(__name__)

LOCK_TIMEOUT = timedelta(hours=1)
DEFAULT_QUEUE_MAX_LIMIT = 10


def is_lock_valid(
    locked_at: datetime | None, now: datetime, timeout: timedelta = LOCK_TIMEOUT
) -> bool:
    """A lock counts only while it is younger than the timeout."""
    if locked_at is None:
        return False
    return ensure_utc(now) - ensure_utc(locked_at) < timeout


class QueueItem(DocumentModel):
    """An episode handed to a transcription worker."""

    id: str
    slug: str
    title: str
    audio_url: str
    source_audio_url: str | None = None
    duration: int = 0
    locked_at: datetime

    @classmethod
    def from_episode(cls, episode: Episode, locked_at: datetime) -> "QueueItem":
        return cls(
            id=episode.id,
            slug=episode.slug,
            title=episode.title,
            audio_url=episode.audio_url,
            source_audio_url=episode.source_audio_url,
            duration=episode.duration,
            locked_at=locked_at,
        )


class SoftLockManager:
    """Grants and clears transcription locks on episode records.

    The lock is advisory: it stops two workers from claiming the same
    episode through this manager, nothing more. A lock older than the
    timeout is treated as absent, so a crashed worker's claim expires on
    its own.
    """

    def __init__(
        self,
        repository: PodcastRepository,
        timeout: timedelta = LOCK_TIMEOUT,
        queue_max_limit: int = DEFAULT_QUEUE_MAX_LIMIT,
        clock: Callable[[], datetime] = now_utc,
    ) -> None:
        self.repository = repository
        self.timeout = timeout
        self.queue_max_limit = queue_max_limit
        self.clock = clock

    def is_locked(self, episode: Episode, now: datetime | None = None) -> bool:
        return is_lock_valid(episode.transcription_locked_at, now or self.clock(), self.timeout)

    def _lock(self, episode: Episode, now: datetime) -> None:
        if self.is_locked(episode, now):
            raise LockConflictError(episode.id, episode.transcription_locked_at)
        if episode.status != EpisodeStatus.TRANSCRIBING:
            raise TransitionDenied(
                str(EpisodeStatus.TRANSCRIBING),
                str(episode.status),
                "episode is not waiting for transcription",
            )
        episode.transcription_locked_at = ensure_utc(now)

    async def acquire(self, episode_id: str) -> Episode:
        """Lock an episode for transcription.

        Only episodes already in ``transcribing`` can be locked; the upload
        confirmation is what moves an episode there, never the lock.

        Raises:
            NotFoundError: If the episode does not exist
            LockConflictError: If a valid lock is already held
            TransitionDenied: If the episode is not waiting for transcription
        """
        episode = await self.repository.get_episode(episode_id)
        self._lock(episode, self.clock())
        await self.repository.save_episode(episode)
        logger.info("Acquired transcription lock on %s", episode.id)
        return episode

    async def release(self, episode_id: str) -> Episode:
        """Clear the lock regardless of its age or the episode's status.

        Idempotent; used after completion and for manual recovery.
        """
        episode = await self.repository.get_episode(episode_id)
        if episode.transcription_locked_at is not None:
            episode.transcription_locked_at = None
            await self.repository.save_episode(episode)
            logger.info("Released transcription lock on %s", episode.id)
        return episode

    async def claim_queue(self, limit: int = 1) -> list[QueueItem]:
        """Lock up to ``limit`` episodes waiting for transcription.

        Candidates come from the index's cached status and are confirmed
        against the episode record before locking. Episodes with a valid
        lock are skipped.

        Args:
            limit: Maximum number of episodes, clamped to [1, queue_max_limit]

        Returns:
            Locked episodes, in index order
        """
        limit = max(1, min(limit, self.queue_max_limit))
        index = await self.repository.get_index()
        now = self.clock()

        claimed: list[QueueItem] = []
        for entry in index.episodes:
            if len(claimed) >= limit:
                break
            if entry.status != EpisodeStatus.TRANSCRIBING:
                continue

            try:
                episode = await self.repository.get_episode(entry.id)
            except (NotFoundError, InvalidDocumentError) as e:
                logger.warning("Skipping queue candidate %s: %s", entry.id, e)
                continue

            if episode.status != EpisodeStatus.TRANSCRIBING or self.is_locked(episode, now):
                continue

            self._lock(episode, now)
            await self.repository.save_episode(episode)
            logger.info("Claimed %s for transcription", episode.id)
            claimed.append(QueueItem.from_episode(episode, ensure_utc(now)))

        return claimed
