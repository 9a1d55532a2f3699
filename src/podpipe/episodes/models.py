"""Record types persisted as JSON documents.

All documents use camelCase keys on disk; Python code uses snake_case
attributes. Models are validated whenever a document is read from storage.
"""

from datetime import datetime
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from podpipe.utils.datetime import ensure_utc, now_utc


class EpisodeStatus(str, Enum):
    """Authoritative lifecycle status of an episode."""

    DRAFT = "draft"
    UPLOADING = "uploading"
    PROCESSING = "processing"
    TRANSCRIBING = "transcribing"
    SCHEDULED = "scheduled"
    PUBLISHED = "published"
    FAILED = "failed"

    def __str__(self) -> str:
        return self.value


class DocumentModel(BaseModel):
    """Base for stored documents (camelCase on disk)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> dict:
        """Serialize for storage."""
        return self.model_dump(mode="json", by_alias=True)


class ReferenceLink(DocumentModel):
    """A link listed under an episode's description."""

    url: str
    title: str


class Episode(DocumentModel):
    """A podcast installment (``episodes/{id}/meta.json``).

    Invariants:
        - ``published_at`` is set if and only if status is ``published``
        - a set ``transcription_locked_at`` implies status ``transcribing``
    """

    id: str
    slug: str = ""
    episode_number: int | None = None
    title: str
    description: str = ""
    duration: int = Field(default=0, ge=0)
    file_size: int = Field(default=0, ge=0)
    audio_url: str = ""
    source_audio_url: str | None = None
    source_guid: str | None = None
    transcript_url: str | None = None
    artwork_url: str | None = None
    skip_transcription: bool = False
    status: EpisodeStatus = EpisodeStatus.DRAFT
    created_at: datetime = Field(default_factory=now_utc)
    publish_at: datetime | None = None
    published_at: datetime | None = None
    transcription_locked_at: datetime | None = None
    social_post_text: str | None = None
    social_post_enabled: bool = False
    social_posted_at: datetime | None = None
    reference_links: list[ReferenceLink] = Field(default_factory=list)

    @field_validator(
        "created_at",
        "publish_at",
        "published_at",
        "transcription_locked_at",
        "social_posted_at",
    )
    @classmethod
    def validate_utc(cls, v: datetime | None) -> datetime | None:
        """Store every timestamp as aware UTC."""
        return ensure_utc(v) if v is not None else None

    @model_validator(mode="after")
    def validate_invariants(self) -> "Episode":
        for problem in self.invariant_violations():
            raise ValueError(problem)
        return self

    def invariant_violations(self) -> list[str]:
        """List broken record invariants (empty when consistent)."""
        problems = []
        if (self.published_at is not None) != (self.status == EpisodeStatus.PUBLISHED):
            problems.append(
                f"publishedAt must be set exactly when status is published "
                f"(status={self.status.value}, publishedAt={self.published_at})"
            )
        if self.transcription_locked_at is not None and self.status != EpisodeStatus.TRANSCRIBING:
            problems.append(
                f"transcriptionLockedAt is set but status is {self.status.value}"
            )
        return problems

    @property
    def has_audio_source(self) -> bool:
        """True if the episode has a stored or externally referenced audio file."""
        return bool(self.audio_url or self.source_audio_url)

    @property
    def playback_url(self) -> str:
        """Audio URL to publish: the stored copy, else the external reference."""
        return self.audio_url or self.source_audio_url or ""

    @property
    def guid(self) -> str:
        """Feed GUID: imported GUID, else slug, else identifier."""
        return self.source_guid or self.slug or self.id


class PodcastSettings(DocumentModel):
    """Show-level metadata rendered into the feed channel."""

    title: str = "Podcast"
    description: str = ""
    author: str = ""
    email: str = ""
    language: str = "en"
    category: str = "Technology"
    artwork_url: str = ""
    website_url: str = ""
    explicit: bool = False
    apple_podcasts_id: str | None = None
    apple_podcasts_url: str | None = None
    spotify_show_id: str | None = None
    spotify_url: str | None = None


class IndexEntry(DocumentModel):
    """Cached pointer to an episode with its last known status."""

    id: str
    status: EpisodeStatus = EpisodeStatus.DRAFT
    episode_number: int | None = None


class PodcastIndex(DocumentModel):
    """Show settings plus the denormalized episode list (``index.json``)."""

    podcast: PodcastSettings = Field(default_factory=PodcastSettings)
    episodes: list[IndexEntry] = Field(default_factory=list)

    def find(self, episode_id: str) -> IndexEntry | None:
        for entry in self.episodes:
            if entry.id == episode_id:
                return entry
        return None

    def next_episode_number(self) -> int:
        numbers = [entry.episode_number or 0 for entry in self.episodes]
        return max(numbers, default=0) + 1


class DescriptionTemplate(DocumentModel):
    """Reusable description skeleton (may contain placeholders)."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str
    content: str
    is_default: bool = False
    created_at: datetime = Field(default_factory=now_utc)
    updated_at: datetime = Field(default_factory=now_utc)


class TemplatesIndex(DocumentModel):
    """Per-show template list (``templates/descriptions.json``)."""

    templates: list[DescriptionTemplate] = Field(default_factory=list)

    @property
    def default(self) -> DescriptionTemplate | None:
        for template in self.templates:
            if template.is_default:
                return template
        return None

    def set_default(self, template_id: str) -> None:
        """Make one template the default and clear the flag on the others."""
        for template in self.templates:
            template.is_default = template.id == template_id
