"""Wiring of the publication service from configuration."""

from datetime import timedelta

from podpipe.config.schema import GlobalConfig
from podpipe.integrations.base import NullSocialPoster, SocialPoster
from podpipe.integrations.bluesky import BlueskyPoster
from podpipe.integrations.deploy import DeployHookTrigger
from podpipe.publishing.lock import SoftLockManager
from podpipe.publishing.service import PublicationService
from podpipe.storage.base import ObjectStore
from podpipe.storage.local import LocalObjectStore
from podpipe.storage.repository import PodcastRepository
from podpipe.utils.retry import RetryConfig


def build_service(config: GlobalConfig, store: ObjectStore | None = None) -> PublicationService:
    """Create a PublicationService with collaborators configured from ``config``.

    Args:
        config: Loaded configuration (secrets already decrypted)
        store: Object store to use instead of the configured local directory
    """
    if store is None:
        store = LocalObjectStore(config.storage.resolve_root())

    repository = PodcastRepository(
        store,
        public_base_url=config.storage.public_base_url,
        default_settings=config.podcast.to_settings(config.site.website_url),
    )
    retry_config = RetryConfig(max_attempts=config.http.retry_attempts)

    social_poster: SocialPoster = NullSocialPoster()
    if config.social.enabled:
        social_poster = BlueskyPoster(
            config.social.identifier,
            config.social.password,
            service_url=config.social.service_url,
            timeout=config.http.timeout_seconds,
            retry_config=retry_config,
        )

    return PublicationService(
        repository,
        rebuild_trigger=DeployHookTrigger(
            config.site.deploy_hook_url,
            dev_mode=config.site.dev_mode,
            timeout=config.http.timeout_seconds,
            retry_config=retry_config,
        ),
        social_poster=social_poster,
        lock_manager=SoftLockManager(
            repository,
            timeout=timedelta(minutes=config.transcription.lock_timeout_minutes),
            queue_max_limit=config.transcription.queue_max_limit,
        ),
        http_timeout=config.http.timeout_seconds,
        retry_config=retry_config,
        transcript_language=config.transcription.transcript_language,
    )
