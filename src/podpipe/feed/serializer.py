"""RSS 2.0 feed rendering with iTunes and Podcasting 2.0 tags.

The output is byte-for-byte deterministic for the same input: podcast
directories compare GUIDs and enclosures across fetches, so the layout,
GUID precedence and date format must stay stable.
"""

from podpipe.episodes.models import Episode, PodcastSettings
from podpipe.feed.description import substitute_placeholders
from podpipe.utils.datetime import to_rfc2822

ITUNES_NS = "http://www.itunes.com/dtds/podcast-1.0.dtd"
PODCAST_NS = "https://podcastindex.org/namespace/1.0"
CONTENT_NS = "http://purl.org/rss/1.0/modules/content/"

AUDIO_MIME_TYPE = "audio/mpeg"
TRANSCRIPT_MIME_TYPE = "text/vtt"


def escape_xml(text: str) -> str:
    """Escape the five reserved XML characters."""
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&apos;")
    )


def cdata(text: str) -> str:
    """Wrap text in a CDATA section, splitting any embedded terminator."""
    return "<![CDATA[" + text.replace("]]>", "]]]]><![CDATA[>") + "]]>"


def format_itunes_duration(seconds: int) -> str:
    """Render a duration as ``H:MM:SS``, or ``M:SS`` under one hour."""
    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def render_item(
    episode: Episode, podcast: PodcastSettings, transcript_language: str | None = None
) -> str:
    """Render one ``<item>`` element for a published episode."""
    if episode.published_at is None:
        raise ValueError(f"Episode {episode.id} has no publication date")

    description = substitute_placeholders(episode.description, episode, podcast.website_url)

    extra = ""
    if episode.artwork_url:
        extra += f'\n      <itunes:image href="{escape_xml(episode.artwork_url)}"/>'
    if episode.transcript_url:
        language = transcript_language or podcast.language
        extra += (
            f'\n      <podcast:transcript url="{escape_xml(episode.transcript_url)}"'
            f' type="{TRANSCRIPT_MIME_TYPE}" language="{escape_xml(language)}"/>'
        )

    return f"""
    <item>
      <title>{escape_xml(episode.title)}</title>
      <description>{cdata(description)}</description>
      <enclosure
        url="{escape_xml(episode.playback_url)}"
        length="{episode.file_size}"
        type="{AUDIO_MIME_TYPE}"/>
      <guid isPermaLink="false">{escape_xml(episode.guid)}</guid>
      <pubDate>{to_rfc2822(episode.published_at)}</pubDate>
      <itunes:duration>{format_itunes_duration(episode.duration)}</itunes:duration>
      <itunes:explicit>false</itunes:explicit>{extra}
    </item>"""


def generate_feed(
    podcast: PodcastSettings,
    episodes: list[Episode],
    transcript_language: str | None = None,
) -> str:
    """Render the complete feed document.

    Args:
        podcast: Show settings
        episodes: Published episodes, already filtered and ordered by the caller
        transcript_language: Language of transcripts, if not the show language

    Returns:
        Feed XML as a string
    """
    items = "\n".join(render_item(episode, podcast, transcript_language) for episode in episodes)
    explicit = "true" if podcast.explicit else "false"

    return f"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0"
     xmlns:itunes="{ITUNES_NS}"
     xmlns:podcast="{PODCAST_NS}"
     xmlns:content="{CONTENT_NS}">
  <channel>
    <title>{escape_xml(podcast.title)}</title>
    <link>{escape_xml(podcast.website_url)}</link>
    <description>{escape_xml(podcast.description)}</description>
    <language>{escape_xml(podcast.language)}</language>
    <itunes:author>{escape_xml(podcast.author)}</itunes:author>
    <itunes:image href="{escape_xml(podcast.artwork_url)}"/>
    <itunes:category text="{escape_xml(podcast.category)}"/>
    <itunes:explicit>{explicit}</itunes:explicit>
    <itunes:owner>
      <itunes:name>{escape_xml(podcast.author)}</itunes:name>
      <itunes:email>{escape_xml(podcast.email)}</itunes:email>
    </itunes:owner>
{items}
  </channel>
</rss>"""
