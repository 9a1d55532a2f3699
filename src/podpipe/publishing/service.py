"""Publication service: the operations that drive episodes through their lifecycle.

Each operation loads the records it needs, applies one state-machine
transition, saves the episode and then syncs its cached status into the
index. There is no transaction across those two writes.

Example:
    >>> service = PublicationService(PodcastRepository(MemoryObjectStore()))
    >>> episode = await service.create_episode("Pilot", publish_at=now_utc())
    >>> await service.upload_audio(episode.id, mp3_bytes)
"""

import logging
import re
from collections.abc import Callable
from datetime import datetime

import httpx

from podpipe.audio.duration import get_mp3_duration
from podpipe.episodes.models import Episode, EpisodeStatus, ReferenceLink
from podpipe.feed.serializer import generate_feed
from podpipe.integrations.base import (
    NullRebuildTrigger,
    NullSocialPoster,
    RebuildTrigger,
    SocialPoster,
)
from podpipe.publishing.lock import SoftLockManager
from podpipe.publishing.state_machine import EpisodeStateMachine
from podpipe.storage.repository import PodcastRepository, audio_key, transcript_vtt_key
from podpipe.transcript.models import Transcript
from podpipe.transcript.vtt import convert_to_vtt, validate_transcript_data
from podpipe.utils.datetime import now_utc
from podpipe.utils.errors import (
    AudioMissingError,
    DuplicateSlugError,
    IntegrationError,
    InvalidDocumentError,
    InvalidSlugError,
    PodpipeError,
    TranscriptMissingError,
)
from podpipe.utils.retry import (
    DEFAULT_RETRY_CONFIG,
    NonRetryableError,
    RetryableError,
    RetryConfig,
    send_request,
    with_async_retry,
)

logger = logging.getLogger(__name__)

SLUG_PATTERN = re.compile(r"^[a-z0-9][a-z0-9-]*[a-z0-9]$|^[a-z0-9]$")


def validate_slug(slug: str) -> str:
    """Return the slug if it is URL-safe, else raise InvalidSlugError."""
    if not SLUG_PATTERN.match(slug):
        raise InvalidSlugError(
            f"Invalid slug '{slug}': use lowercase letters, digits and inner hyphens"
        )
    return slug


def default_slug(episode_number: int) -> str:
    return f"ep-{episode_number:03d}"


class PublicationService:
    """Drives episodes through upload, transcription and publication."""

    def __init__(
        self,
        repository: PodcastRepository,
        rebuild_trigger: RebuildTrigger | None = None,
        social_poster: SocialPoster | None = None,
        lock_manager: SoftLockManager | None = None,
        clock: Callable[[], datetime] = now_utc,
        http_timeout: float = 30.0,
        retry_config: RetryConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        transcript_language: str | None = None,
    ) -> None:
        self.repository = repository
        self.rebuild_trigger = rebuild_trigger or NullRebuildTrigger()
        self.social_poster = social_poster or NullSocialPoster()
        self.clock = clock
        self.state_machine = EpisodeStateMachine(clock=clock)
        self.lock_manager = lock_manager or SoftLockManager(repository, clock=clock)
        self.http_timeout = http_timeout
        self.retry_config = retry_config or DEFAULT_RETRY_CONFIG
        self._transport = transport
        self.transcript_language = transcript_language

    async def _commit(self, episode: Episode) -> None:
        await self.repository.save_episode(episode)
        await self.repository.sync_index_status(episode)

    async def _slug_taken(self, slug: str) -> bool:
        index = await self.repository.get_index()
        if index.find(slug) is not None:
            return True
        return await self.repository.find_by_slug(slug) is not None

    # Creation

    async def create_episode(
        self,
        title: str,
        slug: str | None = None,
        description: str | None = None,
        publish_at: datetime | None = None,
        skip_transcription: bool = False,
        reference_links: list[ReferenceLink] | None = None,
        social_post_text: str | None = None,
        social_post_enabled: bool = False,
        artwork_url: str | None = None,
    ) -> Episode:
        """Create a draft episode.

        The identifier equals the slug. Without a slug, ``ep-NNN`` is derived
        from the next episode number. Without a description, the default
        description template (if any) is used.

        Raises:
            InvalidSlugError: If the slug is malformed
            DuplicateSlugError: If another episode uses the slug
        """
        index = await self.repository.get_index()
        episode_number = index.next_episode_number()

        slug = validate_slug(slug) if slug else default_slug(episode_number)
        if await self._slug_taken(slug):
            raise DuplicateSlugError(f"Slug '{slug}' is already in use")

        if description is None:
            template = (await self.repository.get_templates()).default
            description = template.content if template else ""

        episode = Episode(
            id=slug,
            slug=slug,
            episode_number=episode_number,
            title=title,
            description=description,
            publish_at=publish_at,
            skip_transcription=skip_transcription,
            reference_links=reference_links or [],
            social_post_text=social_post_text,
            social_post_enabled=social_post_enabled,
            artwork_url=artwork_url,
            created_at=self.clock(),
        )
        await self.repository.save_episode(episode)
        await self.repository.add_index_entry(episode)
        logger.info("Created episode %s (#%d)", episode.id, episode_number)
        return episode

    # Audio

    async def begin_upload(self, episode_id: str, file_size: int = 0) -> Episode:
        """Mark an episode as receiving an upload of ``file_size`` bytes."""
        episode = await self.repository.get_episode(episode_id)
        self.state_machine.start_upload(episode)
        episode.file_size = file_size
        await self._commit(episode)
        return episode

    async def confirm_upload(self, episode_id: str, duration: int | None = None) -> Episode:
        """Finish an upload or fetch once the audio is stored.

        Reads ``episodes/{id}/audio.mp3`` to record its size and, unless a
        duration is supplied, to compute the duration from its frame headers.
        An episode with only an external audio reference keeps its fields.

        Raises:
            TransitionDenied: If the episode is not receiving audio
            AudioMissingError: If no audio is stored or referenced
        """
        episode = await self.repository.get_episode(episode_id)
        self.state_machine.require(
            episode,
            {EpisodeStatus.UPLOADING, EpisodeStatus.PROCESSING},
            EpisodeStatus.TRANSCRIBING,
        )

        data = await self.repository.get_audio(episode.id)
        if data is None and not episode.source_audio_url:
            raise AudioMissingError(f"No audio stored for episode '{episode.id}'")

        if data is not None:
            episode.file_size = len(data)
            episode.audio_url = self.repository.public_url(audio_key(episode.id))
            if duration is None:
                duration = get_mp3_duration(data)
                logger.debug("Computed duration of %s: %ds", episode.id, duration)
        if duration is not None:
            episode.duration = duration

        published = self.state_machine.confirm_upload(episode)
        await self._commit(episode)
        if published:
            await self._after_publish(episode)
        return episode

    async def upload_audio(
        self, episode_id: str, data: bytes, duration: int | None = None
    ) -> Episode:
        """Begin an upload, store the audio and confirm it in one call."""
        await self.begin_upload(episode_id, len(data))
        await self.repository.put_audio(episode_id, data)
        return await self.confirm_upload(episode_id, duration)

    async def _download(self, url: str) -> bytes:
        @with_async_retry(self.retry_config)
        async def fetch() -> bytes:
            async with httpx.AsyncClient(
                timeout=self.http_timeout,
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                response = await send_request(client, "GET", url)
                return response.content

        return await fetch()

    async def fetch_from_url(self, episode_id: str, url: str) -> Episode:
        """Download audio from an external URL and confirm it.

        Raises:
            IntegrationError: If the download fails (the episode is then failed)
        """
        episode = await self.repository.get_episode(episode_id)
        self.state_machine.start_fetch(episode)
        episode.source_audio_url = url
        await self._commit(episode)

        try:
            data = await self._download(url)
        except (RetryableError, NonRetryableError, httpx.HTTPError) as e:
            logger.error("Failed to download audio for %s: %s", episode.id, e)
            self.state_machine.fail_audio(episode)
            await self._commit(episode)
            raise IntegrationError(f"Failed to download {url}: {e}") from e

        await self.repository.put_audio(episode.id, data)
        return await self.confirm_upload(episode.id)

    # Transcription

    async def complete_transcription(self, episode_id: str) -> Episode:
        """Convert the uploaded transcript and release the episode.

        Raises:
            TransitionDenied: If the episode is not in transcription
            TranscriptMissingError: If ``transcript.json`` has not been uploaded
            InvalidDocumentError: If the transcript is malformed
        """
        episode = await self.repository.get_episode(episode_id)
        self.state_machine.require(episode, {EpisodeStatus.TRANSCRIBING}, "transcribed")

        data = await self.repository.get_transcript_data(episode.id)
        if data is None:
            raise TranscriptMissingError(f"No transcript uploaded for episode '{episode.id}'")
        if not validate_transcript_data(data):
            raise InvalidDocumentError(f"Transcript for episode '{episode.id}' is malformed")

        vtt = convert_to_vtt(Transcript.model_validate(data))
        transcript_url = await self.repository.put_vtt(episode.id, vtt)

        published = self.state_machine.complete_transcription(episode, transcript_url)
        await self._commit(episode)
        if published:
            await self._after_publish(episode)
        return episode

    async def fail_transcription(self, episode_id: str) -> Episode:
        episode = await self.repository.get_episode(episode_id)
        self.state_machine.fail_transcription(episode)
        await self._commit(episode)
        return episode

    async def retry_transcription(self, episode_id: str) -> Episode:
        episode = await self.repository.get_episode(episode_id)
        self.state_machine.retry(episode)
        await self._commit(episode)
        return episode

    # Slugs

    async def rename_slug(self, episode_id: str, new_slug: str) -> Episode:
        """Change a draft episode's slug (and identifier).

        Moves every object under ``episodes/{old}/`` and then rewrites the
        record and the index entry under the new identifier.

        Raises:
            TransitionDenied: If the episode is not a draft
            InvalidSlugError: If the slug is malformed
            DuplicateSlugError: If another episode uses the slug
        """
        episode = await self.repository.get_episode(episode_id)
        self.state_machine.ensure_can_rename(episode)
        validate_slug(new_slug)
        if new_slug == episode.slug and new_slug == episode.id:
            return episode
        if await self._slug_taken(new_slug):
            raise DuplicateSlugError(f"Slug '{new_slug}' is already in use")

        old_id = episode.id
        moved = await self.repository.move_episode(old_id, new_slug)

        episode.id = new_slug
        episode.slug = new_slug
        if episode.audio_url:
            episode.audio_url = self.repository.public_url(audio_key(new_slug))
        if episode.transcript_url:
            episode.transcript_url = self.repository.public_url(transcript_vtt_key(new_slug))
        await self.repository.save_episode(episode)

        index = await self.repository.get_index()
        entry = index.find(old_id)
        if entry is not None:
            entry.id = new_slug
            await self.repository.save_index(index)

        logger.info("Renamed episode %s -> %s (%d objects moved)", old_id, new_slug, moved)
        return episode

    # Feed and publication side effects

    async def regenerate_feed(self) -> str:
        """Render the feed from published episodes and store it."""
        index = await self.repository.get_index()
        episodes = await self.repository.list_published_episodes()
        xml = generate_feed(index.podcast, episodes, self.transcript_language)
        await self.repository.save_feed(xml)
        logger.info("Regenerated feed with %d episodes", len(episodes))
        return xml

    async def get_feed(self) -> str:
        """Return the stored feed, generating it if it does not exist yet."""
        xml = await self.repository.get_feed()
        if xml is None:
            xml = await self.regenerate_feed()
        return xml

    async def announce(self, episode: Episode) -> bool:
        """Post about a published episode; failures never propagate.

        Returns:
            True if a post was made and recorded
        """
        try:
            index = await self.repository.get_index()
            posted = await self.social_poster.post_episode(episode, index.podcast.website_url)
            if posted:
                episode.social_posted_at = self.clock()
                await self.repository.save_episode(episode)
        except Exception:
            logger.exception("Social post for %s failed", episode.id)
            return False
        return posted

    async def refresh_site(self) -> bool:
        """Regenerate the feed and request a website rebuild.

        Returns:
            True if the rebuild was triggered
        """
        try:
            await self.regenerate_feed()
        except PodpipeError:
            logger.exception("Feed regeneration failed")
        try:
            return await self.rebuild_trigger.trigger()
        except Exception:
            logger.exception("Website rebuild trigger failed")
            return False

    async def _after_publish(self, episode: Episode) -> None:
        await self.announce(episode)
        await self.refresh_site()

    async def get_episode(self, episode_id: str) -> Episode:
        return await self.repository.get_episode(episode_id)

    async def list_episodes(self) -> list[Episode]:
        return await self.repository.list_episodes()

