"""Tests for the scheduled publish run."""

from datetime import timedelta

import pytest

from podpipe.episodes.models import Episode, EpisodeStatus
from podpipe.integrations.base import RebuildTrigger, SocialPoster
from podpipe.publishing.scheduler import PublishReport, ScheduledPublishCoordinator
from podpipe.publishing.service import PublicationService
from podpipe.storage.repository import PodcastRepository
from podpipe.utils.errors import StorageError


class AlwaysPoster(SocialPoster):
    async def post_episode(self, episode: Episode, website_url: str) -> bool:
        return True


class CountingTrigger(RebuildTrigger):
    def __init__(self) -> None:
        self.calls = 0

    async def trigger(self) -> bool:
        self.calls += 1
        return True


@pytest.fixture
def trigger() -> CountingTrigger:
    return CountingTrigger()


@pytest.fixture
def coordinator(repository: PodcastRepository, clock, trigger) -> ScheduledPublishCoordinator:
    return ScheduledPublishCoordinator(
        PublicationService(repository, rebuild_trigger=trigger, clock=clock)
    )


async def add_scheduled(repository: PodcastRepository, episode_id: str, publish_at) -> Episode:
    episode = Episode(
        id=episode_id,
        slug=episode_id,
        title=episode_id,
        audio_url=f"https://media.example.com/episodes/{episode_id}/audio.mp3",
        publish_at=publish_at,
    )
    episode.status = EpisodeStatus.SCHEDULED
    await repository.save_episode(episode)
    await repository.add_index_entry(episode)
    return episode


class TestPublishReport:
    def test_changed(self) -> None:
        assert not PublishReport().changed
        assert PublishReport(published=["a"]).changed
        assert not PublishReport(failed=["a"]).changed


class TestScheduledPublishCoordinator:
    """Tests for ScheduledPublishCoordinator.run."""

    @pytest.mark.asyncio
    async def test_publishes_due_episodes(
        self, coordinator, repository: PodcastRepository, trigger: CountingTrigger, clock
    ) -> None:
        await add_scheduled(repository, "due", clock.now - timedelta(minutes=1))
        await add_scheduled(repository, "later", clock.now + timedelta(days=1))

        report = await coordinator.run()

        assert report.published == ["due"]
        assert report.failed == []
        assert report.rebuild_triggered is True
        assert trigger.calls == 1

        due = await repository.get_episode("due")
        assert due.status == EpisodeStatus.PUBLISHED
        assert due.published_at == clock.now
        assert (await repository.get_episode("later")).status == EpisodeStatus.SCHEDULED

        index = await repository.get_index()
        assert index.find("due").status == EpisodeStatus.PUBLISHED
        assert "<title>due</title>" in await repository.get_feed()

    @pytest.mark.asyncio
    async def test_nothing_due_does_nothing(
        self, coordinator, repository: PodcastRepository, trigger: CountingTrigger, clock
    ) -> None:
        await add_scheduled(repository, "later", clock.now + timedelta(hours=1))

        report = await coordinator.run()

        assert not report.changed
        assert trigger.calls == 0
        assert await repository.get_feed() is None

    @pytest.mark.asyncio
    async def test_rerun_is_idempotent(
        self, coordinator, repository: PodcastRepository, trigger: CountingTrigger, clock
    ) -> None:
        await add_scheduled(repository, "due", clock.now - timedelta(minutes=1))

        await coordinator.run()
        clock.now = clock.now + timedelta(minutes=5)
        second = await coordinator.run()

        assert second.published == []
        assert trigger.calls == 1
        due = await repository.get_episode("due")
        assert due.published_at == clock.now - timedelta(minutes=5)

    @pytest.mark.asyncio
    async def test_single_rebuild_for_many(
        self, coordinator, repository: PodcastRepository, trigger: CountingTrigger, clock
    ) -> None:
        for n in range(3):
            await add_scheduled(repository, f"ep-{n}", clock.now - timedelta(hours=n + 1))

        report = await coordinator.run()

        assert sorted(report.published) == ["ep-0", "ep-1", "ep-2"]
        assert trigger.calls == 1

    @pytest.mark.asyncio
    async def test_failure_does_not_abort_run(
        self,
        coordinator,
        repository: PodcastRepository,
        trigger: CountingTrigger,
        clock,
        monkeypatch,
    ) -> None:
        await add_scheduled(repository, "bad", clock.now - timedelta(hours=2))
        await add_scheduled(repository, "good", clock.now - timedelta(hours=1))

        original_save = repository.save_episode

        async def flaky_save(episode: Episode) -> None:
            if episode.id == "bad":
                raise OSError("disk full")
            await original_save(episode)

        monkeypatch.setattr(repository, "save_episode", flaky_save)

        report = await coordinator.run()

        assert report.failed == ["bad"]
        assert report.published == ["good"]
        assert trigger.calls == 1

    @pytest.mark.asyncio
    async def test_announce_storage_failure_does_not_abort_run(
        self, repository: PodcastRepository, trigger: CountingTrigger, clock, monkeypatch
    ) -> None:
        coordinator = ScheduledPublishCoordinator(
            PublicationService(
                repository, rebuild_trigger=trigger, social_poster=AlwaysPoster(), clock=clock
            )
        )
        await add_scheduled(repository, "bad", clock.now - timedelta(hours=2))
        await add_scheduled(repository, "good", clock.now - timedelta(hours=1))

        original_save = repository.save_episode

        async def save_unless_posted(episode: Episode) -> None:
            if episode.id == "bad" and episode.social_posted_at is not None:
                raise StorageError("store unavailable")
            await original_save(episode)

        monkeypatch.setattr(repository, "save_episode", save_unless_posted)

        report = await coordinator.run()

        assert sorted(report.published) == ["bad", "good"]
        assert report.failed == []
        assert report.rebuild_triggered is True
        assert trigger.calls == 1
        assert (await repository.get_episode("good")).social_posted_at == clock.now
        bad = await repository.get_episode("bad")
        assert bad.status == EpisodeStatus.PUBLISHED
        assert bad.social_posted_at is None

    @pytest.mark.asyncio
    async def test_explicit_now(self, coordinator, repository: PodcastRepository, clock) -> None:
        await add_scheduled(repository, "tomorrow", clock.now + timedelta(days=1))

        report = await coordinator.run(now=clock.now + timedelta(days=2))

        assert report.published == ["tomorrow"]
