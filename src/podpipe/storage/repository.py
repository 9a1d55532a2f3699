"""Mapping between record types and JSON documents in the object store."""

import json
import logging
from typing import Any

from pydantic import ValidationError

from podpipe.episodes.models import (
    Episode,
    EpisodeStatus,
    IndexEntry,
    PodcastIndex,
    PodcastSettings,
    TemplatesIndex,
)
from podpipe.storage.base import ObjectStore
from podpipe.utils.errors import InvalidDocumentError, NotFoundError

logger = logging.getLogger(__name__)

INDEX_KEY = "index.json"
FEED_KEY = "feed.xml"
TEMPLATES_KEY = "templates/descriptions.json"
EPISODES_PREFIX = "episodes/"

JSON_CONTENT_TYPE = "application/json"
FEED_CONTENT_TYPE = "application/rss+xml; charset=utf-8"
AUDIO_CONTENT_TYPE = "audio/mpeg"
VTT_CONTENT_TYPE = "text/vtt; charset=utf-8"


def episode_prefix(episode_id: str) -> str:
    return f"{EPISODES_PREFIX}{episode_id}/"


def meta_key(episode_id: str) -> str:
    return f"{episode_prefix(episode_id)}meta.json"


def audio_key(episode_id: str) -> str:
    return f"{episode_prefix(episode_id)}audio.mp3"


def transcript_json_key(episode_id: str) -> str:
    return f"{episode_prefix(episode_id)}transcript.json"


def transcript_vtt_key(episode_id: str) -> str:
    return f"{episode_prefix(episode_id)}transcript.vtt"


class PodcastRepository:
    """Reads and writes show documents.

    Every document is validated on read; episodes are also checked against
    their record invariants before every write. Episode records and the
    index are separate documents with no transaction between them: a crash
    after ``save_episode`` and before ``sync_index_status`` leaves the
    index's cached status stale until the next transition of that episode.

    Example:
        >>> repo = PodcastRepository(MemoryObjectStore())
        >>> episode = await repo.get_episode("ep-001")
    """

    def __init__(
        self,
        store: ObjectStore,
        public_base_url: str = "",
        default_settings: PodcastSettings | None = None,
    ) -> None:
        """Initialize repository.

        Args:
            store: Backing object store
            public_base_url: Base URL under which stored objects are served
            default_settings: Show settings used while no index exists yet
        """
        self.store = store
        self.public_base_url = public_base_url.rstrip("/")
        self.default_settings = default_settings or PodcastSettings()

    def public_url(self, key: str) -> str:
        """Public address of a stored object."""
        if not self.public_base_url:
            return f"/{key}"
        return f"{self.public_base_url}/{key}"

    async def _read_json(self, key: str) -> Any | None:
        data = await self.store.get(key)
        if data is None:
            return None
        try:
            return json.loads(data)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise InvalidDocumentError(f"Document {key} is not valid JSON: {e}") from e

    async def _write_json(self, key: str, document: Any) -> None:
        payload = json.dumps(document, indent=2, ensure_ascii=False).encode("utf-8")
        await self.store.put(key, payload, JSON_CONTENT_TYPE)

    # Index

    async def get_index(self) -> PodcastIndex:
        """Load the index, or an empty one with default settings if missing."""
        document = await self._read_json(INDEX_KEY)
        if document is None:
            return PodcastIndex(podcast=self.default_settings.model_copy())
        try:
            return PodcastIndex.model_validate(document)
        except ValidationError as e:
            raise InvalidDocumentError(f"Invalid index document: {e}") from e

    async def save_index(self, index: PodcastIndex) -> None:
        await self._write_json(INDEX_KEY, index.to_document())

    async def add_index_entry(self, episode: Episode) -> None:
        index = await self.get_index()
        if index.find(episode.id) is None:
            index.episodes.append(
                IndexEntry(
                    id=episode.id,
                    status=episode.status,
                    episode_number=episode.episode_number,
                )
            )
            await self.save_index(index)

    async def sync_index_status(self, episode: Episode) -> None:
        """Copy an episode's authoritative status into its index entry."""
        index = await self.get_index()
        entry = index.find(episode.id)
        if entry is None:
            logger.warning("Episode %s missing from index, re-adding", episode.id)
            index.episodes.append(
                IndexEntry(
                    id=episode.id,
                    status=episode.status,
                    episode_number=episode.episode_number,
                )
            )
        elif entry.status == episode.status:
            return
        else:
            entry.status = episode.status
        await self.save_index(index)

    # Episodes

    async def get_episode(self, episode_id: str) -> Episode:
        """Load one episode record.

        Raises:
            NotFoundError: If the episode does not exist
            InvalidDocumentError: If the record fails validation
        """
        document = await self._read_json(meta_key(episode_id))
        if document is None:
            raise NotFoundError(f"Episode '{episode_id}' not found")
        try:
            return Episode.model_validate(document)
        except ValidationError as e:
            raise InvalidDocumentError(f"Invalid episode record '{episode_id}': {e}") from e

    async def save_episode(self, episode: Episode) -> None:
        """Write an episode record.

        Raises:
            InvalidDocumentError: If the record breaks an invariant
        """
        problems = episode.invariant_violations()
        if problems:
            raise InvalidDocumentError(
                f"Refusing to save episode '{episode.id}': {'; '.join(problems)}"
            )
        await self._write_json(meta_key(episode.id), episode.to_document())

    async def list_episodes(self, status: EpisodeStatus | None = None) -> list[Episode]:
        """Load all episodes listed in the index, in index order.

        Args:
            status: If given, only entries whose cached status matches are loaded

        Unreadable or missing records are skipped with a warning.
        """
        index = await self.get_index()
        episodes = []
        for entry in index.episodes:
            if status is not None and entry.status != status:
                continue
            try:
                episodes.append(await self.get_episode(entry.id))
            except (NotFoundError, InvalidDocumentError) as e:
                logger.warning("Skipping episode %s: %s", entry.id, e)
        return episodes

    async def find_by_slug(self, slug: str) -> Episode | None:
        for episode in await self.list_episodes():
            if episode.slug == slug or episode.id == slug:
                return episode
        return None

    async def list_published_episodes(self) -> list[Episode]:
        """Published episodes, most recent first."""
        published = [
            episode
            for episode in await self.list_episodes()
            if episode.status == EpisodeStatus.PUBLISHED and episode.published_at is not None
        ]
        published.sort(key=lambda episode: episode.published_at, reverse=True)
        return published

    async def move_episode(self, old_id: str, new_id: str) -> int:
        """Move all of an episode's objects to a new identifier.

        Returns:
            Number of objects moved
        """
        return await self.store.move_prefix(episode_prefix(old_id), episode_prefix(new_id))

    # Blobs

    async def get_audio(self, episode_id: str) -> bytes | None:
        return await self.store.get(audio_key(episode_id))

    async def put_audio(self, episode_id: str, data: bytes) -> str:
        """Store episode audio and return its public URL."""
        key = audio_key(episode_id)
        await self.store.put(key, data, AUDIO_CONTENT_TYPE)
        return self.public_url(key)

    async def get_transcript_data(self, episode_id: str) -> Any | None:
        """Raw transcript document uploaded by the transcriber, or None."""
        return await self._read_json(transcript_json_key(episode_id))

    async def put_transcript_data(self, episode_id: str, document: Any) -> None:
        await self._write_json(transcript_json_key(episode_id), document)

    async def put_vtt(self, episode_id: str, vtt: str) -> str:
        """Store a WebVTT document and return its public URL."""
        key = transcript_vtt_key(episode_id)
        await self.store.put(key, vtt.encode("utf-8"), VTT_CONTENT_TYPE)
        return self.public_url(key)

    # Templates

    async def get_templates(self) -> TemplatesIndex:
        document = await self._read_json(TEMPLATES_KEY)
        if document is None:
            return TemplatesIndex()
        try:
            return TemplatesIndex.model_validate(document)
        except ValidationError as e:
            raise InvalidDocumentError(f"Invalid templates document: {e}") from e

    async def save_templates(self, templates: TemplatesIndex) -> None:
        await self._write_json(TEMPLATES_KEY, templates.to_document())

    # Feed

    async def get_feed(self) -> str | None:
        data = await self.store.get(FEED_KEY)
        return None if data is None else data.decode("utf-8")

    async def save_feed(self, xml: str) -> None:
        await self.store.put(FEED_KEY, xml.encode("utf-8"), FEED_CONTENT_TYPE)
