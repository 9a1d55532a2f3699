"""Description placeholder substitution."""

import html
import re

from podpipe.episodes.models import Episode, ReferenceLink

EPISODE_URL = "{{EPISODE_URL}}"
AUDIO_URL = "{{AUDIO_URL}}"
TRANSCRIPT_URL = "{{TRANSCRIPT_URL}}"
REFERENCE_LINKS = "{{REFERENCE_LINKS}}"

# A block element that wraps nothing but the reference-links placeholder
_WRAPPED_REFERENCE_LINKS = re.compile(
    r"<(p|div)>\s*\{\{REFERENCE_LINKS\}\}\s*</\1>\s*", re.IGNORECASE
)


def escape_html(text: str) -> str:
    """Escape the five reserved HTML characters."""
    return html.escape(text, quote=True).replace("&#x27;", "&#039;")


def episode_page_url(website_url: str, episode: Episode) -> str:
    """Public page of an episode on the show website."""
    slug = episode.slug or episode.id
    return f"{website_url.rstrip('/')}/episodes/{slug}"


def transcript_page_url(website_url: str, episode: Episode) -> str:
    """Public transcript page, or "" when the episode has no transcript."""
    if not episode.transcript_url:
        return ""
    return f"{episode_page_url(website_url, episode)}/transcript"


def format_reference_links(links: list[ReferenceLink]) -> str:
    """Render reference links as one paragraph per link."""
    return "\n".join(
        f'<p>{escape_html(link.title)}<br><a href="{escape_html(link.url)}">'
        f"{escape_html(link.url)}</a></p>"
        for link in links
    )


def substitute_placeholders(description: str, episode: Episode, website_url: str) -> str:
    """Replace description placeholders with episode-specific values.

    With no reference links, the placeholder is removed together with a
    ``<p>`` or ``<div>`` that wraps it alone, so no empty element remains.

    Args:
        description: Description text (HTML allowed)
        episode: Episode the description belongs to
        website_url: Base URL of the show website

    Returns:
        Description with all placeholders resolved
    """
    result = (
        description.replace(TRANSCRIPT_URL, transcript_page_url(website_url, episode))
        .replace(EPISODE_URL, episode_page_url(website_url, episode))
        .replace(AUDIO_URL, episode.playback_url)
    )

    if episode.reference_links:
        return result.replace(REFERENCE_LINKS, format_reference_links(episode.reference_links))

    result = _WRAPPED_REFERENCE_LINKS.sub("", result)
    return result.replace(REFERENCE_LINKS, "")
