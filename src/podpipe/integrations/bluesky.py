"""Episode announcements on Bluesky (AT Protocol)."""

import logging
import re
from typing import Any

import httpx

from podpipe.episodes.models import Episode
from podpipe.feed.description import episode_page_url
from podpipe.integrations.base import SocialPoster
from podpipe.utils.datetime import now_utc
from podpipe.utils.retry import (
    DEFAULT_RETRY_CONFIG,
    NonRetryableError,
    RetryableError,
    RetryConfig,
    send_request,
    with_async_retry,
)

logger = logging.getLogger(__name__)

DEFAULT_SERVICE_URL = "https://bsky.social"
POST_COLLECTION = "app.bsky.feed.post"
LINK_FEATURE = "app.bsky.richtext.facet#link"
EXTERNAL_EMBED = "app.bsky.embed.external"
EMBED_DESCRIPTION_LIMIT = 300

URL_PATTERN = re.compile(r"https?://[^\s　]+")


def detect_url_facets(text: str) -> list[dict[str, Any]]:
    """Build link facets for every URL in the text.

    Facet offsets are byte positions in the UTF-8 encoding of the text, not
    character positions.

    Example:
        >>> detect_url_facets("新着 https://example.com")
        [{'index': {'byteStart': 7, 'byteEnd': 26}, 'features': [...]}]
    """
    facets = []
    for match in URL_PATTERN.finditer(text):
        byte_start = len(text[: match.start()].encode("utf-8"))
        byte_end = byte_start + len(match.group(0).encode("utf-8"))
        facets.append(
            {
                "index": {"byteStart": byte_start, "byteEnd": byte_end},
                "features": [{"$type": LINK_FEATURE, "uri": match.group(0)}],
            }
        )
    return facets


def render_post_text(template: str, episode: Episode, episode_url: str) -> str:
    """Substitute post-text placeholders."""
    return (
        template.replace("{{EPISODE_URL}}", episode_url)
        .replace("{{TITLE}}", episode.title)
        .replace("{{AUDIO_URL}}", episode.playback_url)
    )


def build_post_record(
    text: str,
    episode_url: str | None = None,
    title: str | None = None,
    description: str = "",
) -> dict[str, Any]:
    """Assemble an ``app.bsky.feed.post`` record with facets and a link card."""
    record: dict[str, Any] = {
        "$type": POST_COLLECTION,
        "text": text,
        "createdAt": now_utc().isoformat().replace("+00:00", "Z"),
    }

    facets = detect_url_facets(text)
    if facets:
        record["facets"] = facets

    if episode_url and title:
        record["embed"] = {
            "$type": EXTERNAL_EMBED,
            "external": {
                "uri": episode_url,
                "title": title,
                "description": description[:EMBED_DESCRIPTION_LIMIT],
            },
        }

    return record


class BlueskyPoster(SocialPoster):
    """Posts a per-episode announcement once, after publication.

    The caller records ``social_posted_at`` when this returns True.
    """

    def __init__(
        self,
        identifier: str | None,
        password: str | None,
        service_url: str = DEFAULT_SERVICE_URL,
        timeout: float = 30.0,
        retry_config: RetryConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.identifier = identifier
        self.password = password
        self.service_url = service_url.rstrip("/")
        self.timeout = timeout
        self.retry_config = retry_config or DEFAULT_RETRY_CONFIG
        self._transport = transport

    def _xrpc(self, method: str) -> str:
        return f"{self.service_url}/xrpc/{method}"

    def should_post(self, episode: Episode) -> bool:
        if not self.identifier or not self.password:
            logger.info("Bluesky credentials not configured, not posting %s", episode.id)
            return False
        if not episode.social_post_enabled or not episode.social_post_text:
            logger.info("Bluesky post disabled or empty for %s", episode.id)
            return False
        if episode.social_posted_at is not None:
            logger.info("Episode %s already posted to Bluesky", episode.id)
            return False
        return True

    async def post_episode(self, episode: Episode, website_url: str) -> bool:
        if not self.should_post(episode):
            return False

        episode_url = episode_page_url(website_url, episode)
        text = render_post_text(episode.social_post_text or "", episode, episode_url)
        record = build_post_record(text, episode_url, episode.title, episode.description)

        retry = with_async_retry(self.retry_config)

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                session_response = await retry(send_request)(
                    client,
                    "POST",
                    self._xrpc("com.atproto.server.createSession"),
                    json={"identifier": self.identifier, "password": self.password},
                )
                session = session_response.json()

                post_response = await retry(send_request)(
                    client,
                    "POST",
                    self._xrpc("com.atproto.repo.createRecord"),
                    headers={"Authorization": f"Bearer {session['accessJwt']}"},
                    json={
                        "repo": session["did"],
                        "collection": POST_COLLECTION,
                        "record": record,
                    },
                )
                uri = post_response.json().get("uri")
        except (RetryableError, NonRetryableError, KeyError, ValueError) as e:
            logger.error("Failed to post episode %s to Bluesky: %s", episode.id, e)
            return False

        logger.info("Posted episode %s to Bluesky: %s", episode.id, uri)
        return True
