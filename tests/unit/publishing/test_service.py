"""Tests for PublicationService."""

import json
from datetime import timedelta

import httpx
import pytest

from podpipe.episodes.models import (
    DescriptionTemplate,
    Episode,
    EpisodeStatus,
    PodcastIndex,
    PodcastSettings,
    TemplatesIndex,
)
from podpipe.integrations.base import RebuildTrigger, SocialPoster
from podpipe.publishing.service import PublicationService, default_slug, validate_slug
from podpipe.storage.memory import MemoryObjectStore
from podpipe.storage.repository import PodcastRepository
from podpipe.utils.errors import (
    AudioMissingError,
    DuplicateSlugError,
    IntegrationError,
    InvalidDocumentError,
    InvalidSlugError,
    TranscriptMissingError,
    TransitionDenied,
)
from podpipe.utils.retry import TEST_RETRY_CONFIG

TRANSCRIPT = {
    "language": "en",
    "segments": [{"start": 0, "end": 2.5, "text": "Hello", "speaker": "Host"}],
}


class RecordingTrigger(RebuildTrigger):
    def __init__(self, fail: bool = False) -> None:
        self.calls = 0
        self.fail = fail

    async def trigger(self) -> bool:
        self.calls += 1
        if self.fail:
            raise RuntimeError("hook exploded")
        return True


class RecordingPoster(SocialPoster):
    def __init__(self, result: bool = True) -> None:
        self.posted: list[tuple[str, str]] = []
        self.result = result

    async def post_episode(self, episode: Episode, website_url: str) -> bool:
        self.posted.append((episode.id, website_url))
        return self.result


@pytest.fixture
def trigger() -> RecordingTrigger:
    return RecordingTrigger()


@pytest.fixture
def poster() -> RecordingPoster:
    return RecordingPoster()


@pytest.fixture
def service(repository, clock, trigger, poster) -> PublicationService:
    return PublicationService(
        repository,
        rebuild_trigger=trigger,
        social_poster=poster,
        clock=clock,
        retry_config=TEST_RETRY_CONFIG,
    )


class TestSlugs:
    """Tests for slug helpers."""

    @pytest.mark.parametrize("slug", ["a", "ep-001", "my-first-show", "2024"])
    def test_valid(self, slug: str) -> None:
        assert validate_slug(slug) == slug

    @pytest.mark.parametrize("slug", ["", "-a", "a-", "Upper", "with space", "ep_1", "日本"])
    def test_invalid(self, slug: str) -> None:
        with pytest.raises(InvalidSlugError):
            validate_slug(slug)

    def test_default_slug(self) -> None:
        assert default_slug(7) == "ep-007"
        assert default_slug(1234) == "ep-1234"


class TestCreateEpisode:
    """Tests for create_episode."""

    @pytest.mark.asyncio
    async def test_creates_draft(self, service: PublicationService, repository: PodcastRepository, fixed_now) -> None:
        episode = await service.create_episode("Pilot", slug="pilot")

        assert episode.id == "pilot"
        assert episode.slug == "pilot"
        assert episode.episode_number == 1
        assert episode.status == EpisodeStatus.DRAFT
        assert episode.created_at == fixed_now
        assert await repository.get_episode("pilot") == episode

        index = await repository.get_index()
        assert index.find("pilot").status == EpisodeStatus.DRAFT

    @pytest.mark.asyncio
    async def test_default_slug_follows_numbering(self, service: PublicationService) -> None:
        first = await service.create_episode("One")
        second = await service.create_episode("Two")

        assert first.id == "ep-001"
        assert second.id == "ep-002"
        assert second.episode_number == 2

    @pytest.mark.asyncio
    async def test_duplicate_slug(self, service: PublicationService) -> None:
        await service.create_episode("Pilot", slug="pilot")

        with pytest.raises(DuplicateSlugError):
            await service.create_episode("Again", slug="pilot")

    @pytest.mark.asyncio
    async def test_invalid_slug(self, service: PublicationService) -> None:
        with pytest.raises(InvalidSlugError):
            await service.create_episode("Pilot", slug="Bad Slug")

    @pytest.mark.asyncio
    async def test_default_template_used(self, service: PublicationService, repository: PodcastRepository) -> None:
        await repository.save_templates(
            TemplatesIndex(
                templates=[
                    DescriptionTemplate(name="Std", content="<p>{{REFERENCE_LINKS}}</p>", is_default=True)
                ]
            )
        )

        templated = await service.create_episode("One")
        explicit = await service.create_episode("Two", description="Custom")

        assert templated.description == "<p>{{REFERENCE_LINKS}}</p>"
        assert explicit.description == "Custom"


class TestUpload:
    """Tests for the upload path."""

    @pytest.mark.asyncio
    async def test_upload_computes_duration_and_hands_off(
        self, service: PublicationService, cbr_mp3
    ) -> None:
        await service.create_episode("Pilot", slug="pilot")
        audio = cbr_mp3(3843)

        episode = await service.upload_audio("pilot", audio)

        assert episode.status == EpisodeStatus.TRANSCRIBING
        assert episode.duration == 100
        assert episode.file_size == len(audio)
        assert episode.audio_url == "https://media.example.com/episodes/pilot/audio.mp3"
        assert episode.transcription_locked_at is None

    @pytest.mark.asyncio
    async def test_explicit_duration_wins(self, service: PublicationService, cbr_mp3) -> None:
        await service.create_episode("Pilot", slug="pilot")
        episode = await service.upload_audio("pilot", cbr_mp3(100), duration=999)
        assert episode.duration == 999

    @pytest.mark.asyncio
    async def test_skip_transcription_publishes_with_side_effects(
        self,
        service: PublicationService,
        repository: PodcastRepository,
        trigger: RecordingTrigger,
        poster: RecordingPoster,
        clock,
        cbr_mp3,
    ) -> None:
        await service.create_episode(
            "Pilot",
            slug="pilot",
            publish_at=clock.now - timedelta(hours=1),
            skip_transcription=True,
        )

        episode = await service.upload_audio("pilot", cbr_mp3(100))

        assert episode.status == EpisodeStatus.PUBLISHED
        assert episode.published_at == clock.now
        assert poster.posted == [("pilot", "")]
        assert trigger.calls == 1
        assert "<guid isPermaLink=\"false\">pilot</guid>" in await repository.get_feed()
        stored = await repository.get_episode("pilot")
        assert stored.social_posted_at == clock.now

    @pytest.mark.asyncio
    async def test_skip_transcription_future_is_scheduled(
        self, service: PublicationService, trigger: RecordingTrigger, clock, cbr_mp3
    ) -> None:
        await service.create_episode(
            "Pilot", slug="pilot", publish_at=clock.now + timedelta(days=1), skip_transcription=True
        )

        episode = await service.upload_audio("pilot", cbr_mp3(100))

        assert episode.status == EpisodeStatus.SCHEDULED
        assert trigger.calls == 0

    @pytest.mark.asyncio
    async def test_confirm_without_audio(self, service: PublicationService) -> None:
        await service.create_episode("Pilot", slug="pilot")
        await service.begin_upload("pilot", 100)

        with pytest.raises(AudioMissingError):
            await service.confirm_upload("pilot")

    @pytest.mark.asyncio
    async def test_upload_denied_while_transcribing(self, service: PublicationService, cbr_mp3) -> None:
        await service.create_episode("Pilot", slug="pilot")
        await service.upload_audio("pilot", cbr_mp3(10))

        with pytest.raises(TransitionDenied):
            await service.begin_upload("pilot")


class TestFetch:
    """Tests for fetching audio from an external URL."""

    @pytest.mark.asyncio
    async def test_fetch_success(self, repository: PodcastRepository, clock, cbr_mp3) -> None:
        audio = cbr_mp3(3843)

        def handler(request: httpx.Request) -> httpx.Response:
            assert str(request.url) == "https://cdn.example.com/ep.mp3"
            return httpx.Response(200, content=audio)

        service = PublicationService(
            repository,
            clock=clock,
            retry_config=TEST_RETRY_CONFIG,
            transport=httpx.MockTransport(handler),
        )
        await service.create_episode("Pilot", slug="pilot")

        episode = await service.fetch_from_url("pilot", "https://cdn.example.com/ep.mp3")

        assert episode.status == EpisodeStatus.TRANSCRIBING
        assert episode.source_audio_url == "https://cdn.example.com/ep.mp3"
        assert episode.duration == 100
        assert await repository.get_audio("pilot") == audio

    @pytest.mark.asyncio
    async def test_fetch_failure_marks_failed(self, repository: PodcastRepository, clock) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(503, text="unavailable")

        service = PublicationService(
            repository,
            clock=clock,
            retry_config=TEST_RETRY_CONFIG,
            transport=httpx.MockTransport(handler),
        )
        await service.create_episode("Pilot", slug="pilot")

        with pytest.raises(IntegrationError):
            await service.fetch_from_url("pilot", "https://cdn.example.com/ep.mp3")

        assert len(calls) == TEST_RETRY_CONFIG.max_attempts
        episode = await repository.get_episode("pilot")
        assert episode.status == EpisodeStatus.FAILED
        index = await repository.get_index()
        assert index.find("pilot").status == EpisodeStatus.FAILED

    @pytest.mark.asyncio
    async def test_not_found_is_not_retried(self, repository: PodcastRepository, clock) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(404)

        service = PublicationService(
            repository, clock=clock, retry_config=TEST_RETRY_CONFIG,
            transport=httpx.MockTransport(handler),
        )
        await service.create_episode("Pilot", slug="pilot")

        with pytest.raises(IntegrationError):
            await service.fetch_from_url("pilot", "https://cdn.example.com/missing.mp3")

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_unsupported_scheme_marks_failed(self, repository: PodcastRepository, clock) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            raise httpx.UnsupportedProtocol("Request URL has an unsupported protocol 'ftp://'.")

        service = PublicationService(
            repository, clock=clock, retry_config=TEST_RETRY_CONFIG,
            transport=httpx.MockTransport(handler),
        )
        await service.create_episode("Pilot", slug="pilot")

        with pytest.raises(IntegrationError):
            await service.fetch_from_url("pilot", "ftp://example.com/a.mp3")

        assert len(calls) == 1
        episode = await repository.get_episode("pilot")
        assert episode.status == EpisodeStatus.FAILED
        assert (await repository.get_index()).find("pilot").status == EpisodeStatus.FAILED

    @pytest.mark.asyncio
    async def test_failed_fetch_can_be_retried(self, repository: PodcastRepository, clock, cbr_mp3) -> None:
        audio = cbr_mp3(100)

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "broken.example.com":
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, content=audio)

        service = PublicationService(
            repository, clock=clock, retry_config=TEST_RETRY_CONFIG,
            transport=httpx.MockTransport(handler),
        )
        await service.create_episode("Pilot", slug="pilot")

        with pytest.raises(IntegrationError):
            await service.fetch_from_url("pilot", "https://broken.example.com/a.mp3")
        episode = await service.fetch_from_url("pilot", "https://cdn.example.com/a.mp3")

        assert episode.status == EpisodeStatus.TRANSCRIBING
        assert episode.source_audio_url == "https://cdn.example.com/a.mp3"


class TestTranscription:
    """Tests for transcription completion, failure and retry."""

    async def _ready(self, service: PublicationService, cbr_mp3, **fields) -> Episode:
        await service.create_episode("Pilot", slug="pilot", **fields)
        return await service.upload_audio("pilot", cbr_mp3(100))

    @pytest.mark.asyncio
    async def test_complete_without_transcript(self, service: PublicationService, cbr_mp3) -> None:
        await self._ready(service, cbr_mp3)

        with pytest.raises(TranscriptMissingError):
            await service.complete_transcription("pilot")

    @pytest.mark.asyncio
    async def test_complete_with_malformed_transcript(
        self, service: PublicationService, repository: PodcastRepository, cbr_mp3
    ) -> None:
        await self._ready(service, cbr_mp3)
        await repository.put_transcript_data("pilot", {"segments": [{"start": "x"}]})

        with pytest.raises(InvalidDocumentError):
            await service.complete_transcription("pilot")

        assert (await repository.get_episode("pilot")).status == EpisodeStatus.TRANSCRIBING

    @pytest.mark.asyncio
    async def test_complete_publishes(
        self,
        service: PublicationService,
        repository: PodcastRepository,
        store: MemoryObjectStore,
        trigger: RecordingTrigger,
        clock,
        cbr_mp3,
    ) -> None:
        await self._ready(service, cbr_mp3, publish_at=clock.now)
        await service.lock_manager.acquire("pilot")
        await repository.put_transcript_data("pilot", TRANSCRIPT)

        episode = await service.complete_transcription("pilot")

        assert episode.status == EpisodeStatus.PUBLISHED
        assert episode.transcription_locked_at is None
        assert episode.transcript_url == (
            "https://media.example.com/episodes/pilot/transcript.vtt"
        )
        vtt = store.objects["episodes/pilot/transcript.vtt"].decode()
        assert vtt.startswith("WEBVTT\n\n1\n00:00:00.000 --> 00:00:02.500\n<v Host>Hello</v>")
        assert trigger.calls == 1
        assert "podcast:transcript" in await repository.get_feed()

    @pytest.mark.asyncio
    async def test_complete_without_publish_time_returns_to_draft(
        self, service: PublicationService, repository: PodcastRepository, trigger, cbr_mp3
    ) -> None:
        await self._ready(service, cbr_mp3)
        await repository.put_transcript_data("pilot", TRANSCRIPT)

        episode = await service.complete_transcription("pilot")

        assert episode.status == EpisodeStatus.DRAFT
        assert trigger.calls == 0

    @pytest.mark.asyncio
    async def test_fail_and_retry(self, service: PublicationService, repository: PodcastRepository, cbr_mp3) -> None:
        await self._ready(service, cbr_mp3)
        await service.lock_manager.acquire("pilot")

        failed = await service.fail_transcription("pilot")
        assert failed.status == EpisodeStatus.FAILED
        assert failed.transcription_locked_at is None

        retried = await service.retry_transcription("pilot")
        assert retried.status == EpisodeStatus.TRANSCRIBING
        assert (await repository.get_index()).find("pilot").status == EpisodeStatus.TRANSCRIBING

    @pytest.mark.asyncio
    async def test_retry_without_audio_denied(self, service: PublicationService, repository: PodcastRepository) -> None:
        episode = await service.create_episode("Pilot", slug="pilot")
        episode.status = EpisodeStatus.FAILED
        await repository.save_episode(episode)

        with pytest.raises(TransitionDenied):
            await service.retry_transcription("pilot")


class TestRename:
    """Tests for rename_slug."""

    @pytest.mark.asyncio
    async def test_rename_moves_objects_and_index(
        self, service: PublicationService, repository: PodcastRepository, store: MemoryObjectStore
    ) -> None:
        await service.create_episode("Pilot", slug="pilot")
        await repository.put_transcript_data("pilot", TRANSCRIPT)

        episode = await service.rename_slug("pilot", "first-episode")

        assert episode.id == "first-episode"
        assert episode.slug == "first-episode"
        assert sorted(store.objects) == [
            "episodes/first-episode/meta.json",
            "episodes/first-episode/transcript.json",
            "index.json",
        ]
        index = await repository.get_index()
        assert [entry.id for entry in index.episodes] == ["first-episode"]

    @pytest.mark.asyncio
    async def test_rename_moves_transcript_url(
        self, service: PublicationService, repository: PodcastRepository, store: MemoryObjectStore, cbr_mp3
    ) -> None:
        await service.create_episode("Pilot", slug="pilot")
        await service.upload_audio("pilot", cbr_mp3(100))
        await repository.put_transcript_data("pilot", TRANSCRIPT)
        draft = await service.complete_transcription("pilot")
        assert draft.status == EpisodeStatus.DRAFT

        episode = await service.rename_slug("pilot", "renamed")

        assert episode.audio_url == "https://media.example.com/episodes/renamed/audio.mp3"
        assert episode.transcript_url == "https://media.example.com/episodes/renamed/transcript.vtt"
        assert "episodes/renamed/transcript.vtt" in store.objects
        assert "episodes/pilot/transcript.vtt" not in store.objects
        stored = await repository.get_episode("renamed")
        assert stored.transcript_url == episode.transcript_url

    @pytest.mark.asyncio
    async def test_rename_same_slug_is_noop(self, service: PublicationService) -> None:
        await service.create_episode("Pilot", slug="pilot")
        episode = await service.rename_slug("pilot", "pilot")
        assert episode.id == "pilot"

    @pytest.mark.asyncio
    async def test_rename_to_taken_slug(self, service: PublicationService) -> None:
        await service.create_episode("One", slug="one")
        await service.create_episode("Two", slug="two")

        with pytest.raises(DuplicateSlugError):
            await service.rename_slug("one", "two")

    @pytest.mark.asyncio
    async def test_rename_denied_after_draft(self, service: PublicationService, cbr_mp3) -> None:
        await service.create_episode("Pilot", slug="pilot")
        await service.upload_audio("pilot", cbr_mp3(10))

        with pytest.raises(TransitionDenied):
            await service.rename_slug("pilot", "renamed")


class TestFeedAndSideEffects:
    """Tests for feed access and post-publication collaborators."""

    @pytest.mark.asyncio
    async def test_get_feed_generates_once(
        self, service: PublicationService, repository: PodcastRepository
    ) -> None:
        await repository.save_index(PodcastIndex(podcast=PodcastSettings(title="My Show")))

        xml = await service.get_feed()

        assert "<title>My Show</title>" in xml
        await repository.save_feed("cached")
        assert await service.get_feed() == "cached"

    @pytest.mark.asyncio
    async def test_announce_not_posted(self, repository: PodcastRepository, clock) -> None:
        service = PublicationService(repository, social_poster=RecordingPoster(result=False), clock=clock)
        episode = await service.create_episode("Pilot", slug="pilot")

        assert await service.announce(episode) is False
        assert (await repository.get_episode("pilot")).social_posted_at is None

    @pytest.mark.asyncio
    async def test_announce_swallows_poster_errors(self, repository: PodcastRepository, clock) -> None:
        class ExplodingPoster(SocialPoster):
            async def post_episode(self, episode: Episode, website_url: str) -> bool:
                raise RuntimeError("boom")

        service = PublicationService(repository, social_poster=ExplodingPoster(), clock=clock)
        episode = await service.create_episode("Pilot", slug="pilot")

        assert await service.announce(episode) is False

    @pytest.mark.asyncio
    async def test_refresh_site_survives_trigger_error(self, repository: PodcastRepository, clock) -> None:
        trigger = RecordingTrigger(fail=True)
        service = PublicationService(repository, rebuild_trigger=trigger, clock=clock)

        assert await service.refresh_site() is False
        assert trigger.calls == 1
        assert await repository.get_feed() is not None

    @pytest.mark.asyncio
    async def test_transcript_language_override(self, repository: PodcastRepository, clock, cbr_mp3) -> None:
        service = PublicationService(repository, clock=clock, transcript_language="ja")
        await service.create_episode("Pilot", slug="pilot", publish_at=clock.now)
        await service.upload_audio("pilot", cbr_mp3(10))
        await repository.put_transcript_data("pilot", TRANSCRIPT)

        await service.complete_transcription("pilot")

        feed = await repository.get_feed()
        assert 'type="text/vtt" language="ja"' in feed
        assert json.loads(
            (await repository.store.get("episodes/pilot/transcript.json")).decode()
        ) == TRANSCRIPT
