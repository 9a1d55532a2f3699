"""Episode lifecycle state machine.

Legal transitions:

- draft | failed -> uploading | processing
- uploading | processing -> transcribing, or straight to release when the
  episode skips transcription
- uploading | processing -> failed (audio never arrived)
- transcribing -> release | failed
- failed -> transcribing (retry, needs an audio source)
- scheduled -> published (once due)

where release is draft, scheduled or published depending on publishAt.

The state machine only mutates in-memory records; persisting them is the
caller's job. Any transition not listed raises TransitionDenied and leaves
the record untouched.
"""

import logging
from collections.abc import Callable
from datetime import datetime

from podpipe.episodes.models import Episode, EpisodeStatus
from podpipe.utils.datetime import ensure_utc, now_utc
from podpipe.utils.errors import TransitionDenied

logger = logging.getLogger(__name__)

RESTARTABLE = frozenset({EpisodeStatus.DRAFT, EpisodeStatus.FAILED})
RECEIVING_AUDIO = frozenset({EpisodeStatus.UPLOADING, EpisodeStatus.PROCESSING})


def decide_release_status(publish_at: datetime | None, now: datetime) -> EpisodeStatus:
    """Where an episode goes once its audio (and transcript) is ready.

    No publish time keeps it a draft, a past or present one publishes it,
    a future one schedules it.
    """
    if publish_at is None:
        return EpisodeStatus.DRAFT
    if ensure_utc(publish_at) <= ensure_utc(now):
        return EpisodeStatus.PUBLISHED
    return EpisodeStatus.SCHEDULED


def is_due(episode: Episode, now: datetime) -> bool:
    """True if a scheduled episode's publish time has passed."""
    return (
        episode.status == EpisodeStatus.SCHEDULED
        and episode.publish_at is not None
        and episode.publish_at <= ensure_utc(now)
    )


class EpisodeStateMachine:
    """Applies lifecycle transitions to episode records."""

    def __init__(self, clock: Callable[[], datetime] = now_utc) -> None:
        self.clock = clock

    def require(
        self,
        episode: Episode,
        allowed: frozenset[EpisodeStatus] | set[EpisodeStatus],
        attempted: EpisodeStatus | str,
        reason: str | None = None,
    ) -> None:
        """Raise TransitionDenied unless the episode is in one of ``allowed``."""
        if episode.status not in allowed:
            raise TransitionDenied(str(attempted), str(episode.status), reason)

    def _move(self, episode: Episode, target: EpisodeStatus) -> None:
        previous = episode.status
        episode.status = target
        if previous != target:
            logger.info("Episode %s: %s -> %s", episode.id, previous, target)

    def release(self, episode: Episode, now: datetime | None = None) -> bool:
        """Apply the scheduling decision.

        Returns:
            True if the episode was published
        """
        now = now or self.clock()
        target = decide_release_status(episode.publish_at, now)
        episode.transcription_locked_at = None
        if target == EpisodeStatus.PUBLISHED:
            episode.published_at = ensure_utc(now)
        else:
            episode.published_at = None
        self._move(episode, target)
        return target == EpisodeStatus.PUBLISHED

    def start_upload(self, episode: Episode) -> None:
        self.require(episode, RESTARTABLE, EpisodeStatus.UPLOADING)
        self._move(episode, EpisodeStatus.UPLOADING)

    def start_fetch(self, episode: Episode) -> None:
        self.require(episode, RESTARTABLE, EpisodeStatus.PROCESSING)
        self._move(episode, EpisodeStatus.PROCESSING)

    def fail_audio(self, episode: Episode) -> None:
        """Upload or download of the audio did not complete."""
        self.require(episode, RECEIVING_AUDIO, EpisodeStatus.FAILED)
        self._move(episode, EpisodeStatus.FAILED)

    def confirm_upload(self, episode: Episode, now: datetime | None = None) -> bool:
        """Audio is in place: hand off to transcription, or release directly.

        The transcription lock is left unset; workers acquire it separately.

        Returns:
            True if the episode was published
        """
        self.require(episode, RECEIVING_AUDIO, EpisodeStatus.TRANSCRIBING)
        if episode.skip_transcription:
            return self.release(episode, now)
        episode.transcription_locked_at = None
        self._move(episode, EpisodeStatus.TRANSCRIBING)
        return False

    def complete_transcription(
        self, episode: Episode, transcript_url: str, now: datetime | None = None
    ) -> bool:
        """Record the converted transcript, clear the lock and release.

        Returns:
            True if the episode was published
        """
        self.require(episode, {EpisodeStatus.TRANSCRIBING}, "transcribed")
        episode.transcript_url = transcript_url
        return self.release(episode, now)

    def fail_transcription(self, episode: Episode) -> None:
        self.require(episode, {EpisodeStatus.TRANSCRIBING}, EpisodeStatus.FAILED)
        episode.transcription_locked_at = None
        self._move(episode, EpisodeStatus.FAILED)

    def retry(self, episode: Episode) -> None:
        """Send a failed episode back to transcription.

        Rejected unless the episode has an audio source to transcribe.
        """
        self.require(episode, {EpisodeStatus.FAILED}, EpisodeStatus.TRANSCRIBING)
        if not episode.has_audio_source:
            raise TransitionDenied(
                str(EpisodeStatus.TRANSCRIBING), str(episode.status), "episode has no audio"
            )
        episode.transcription_locked_at = None
        self._move(episode, EpisodeStatus.TRANSCRIBING)

    def publish_due(self, episode: Episode, now: datetime | None = None) -> None:
        """Publish a scheduled episode whose time has come."""
        now = now or self.clock()
        self.require(episode, {EpisodeStatus.SCHEDULED}, EpisodeStatus.PUBLISHED)
        if not is_due(episode, now):
            raise TransitionDenied(
                str(EpisodeStatus.PUBLISHED), str(episode.status), "publish time not reached"
            )
        episode.published_at = ensure_utc(now)
        self._move(episode, EpisodeStatus.PUBLISHED)

    def ensure_can_rename(self, episode: Episode) -> None:
        self.require(
            episode, {EpisodeStatus.DRAFT}, "renamed", "slug can only change while draft"
        )
