"""Configuration schema models using Pydantic."""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

from podpipe.episodes.models import PodcastSettings
from podpipe.utils.paths import get_store_dir

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]


class StorageConfig(BaseModel):
    """Object store location and public addressing."""

    root: Path | None = None  # Defaults to the XDG data dir
    public_base_url: str = ""  # e.g. https://media.example.com

    def resolve_root(self) -> Path:
        return (self.root or get_store_dir()).expanduser()


class SiteConfig(BaseModel):
    """Show website and its rebuild hook."""

    website_url: str = ""
    deploy_hook_url: str | None = None
    dev_mode: bool = False  # Never trigger rebuilds when true


class PodcastDefaults(BaseModel):
    """Show settings used until the index document exists."""

    title: str = "Podcast"
    description: str = ""
    author: str = ""
    email: str = ""
    language: str = "en"
    category: str = "Technology"

    def to_settings(self, website_url: str = "") -> PodcastSettings:
        return PodcastSettings(**self.model_dump(), website_url=website_url)


class TranscriptionConfig(BaseModel):
    """Transcription hand-off settings."""

    lock_timeout_minutes: int = Field(default=60, ge=1)
    queue_max_limit: int = Field(default=10, ge=1)
    transcript_language: str | None = None  # Defaults to the show language


class SocialConfig(BaseModel):
    """Bluesky posting credentials."""

    enabled: bool = False
    service_url: str = "https://bsky.social"
    identifier: str | None = None
    password: str | None = None  # Encrypted when stored


class HttpConfig(BaseModel):
    """Outbound HTTP behavior."""

    timeout_seconds: float = Field(default=30.0, gt=0)
    retry_attempts: int = Field(default=3, ge=1)


class GlobalConfig(BaseModel):
    """Global Podpipe configuration."""

    version: str = "1"
    log_level: LogLevel = "INFO"

    storage: StorageConfig = Field(default_factory=StorageConfig)
    site: SiteConfig = Field(default_factory=SiteConfig)
    podcast: PodcastDefaults = Field(default_factory=PodcastDefaults)
    transcription: TranscriptionConfig = Field(default_factory=TranscriptionConfig)
    social: SocialConfig = Field(default_factory=SocialConfig)
    http: HttpConfig = Field(default_factory=HttpConfig)
