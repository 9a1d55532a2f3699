"""Transcript data models."""

from pydantic import BaseModel, Field


class TranscriptSegment(BaseModel):
    """One timed span of speech."""

    start: float = Field(..., ge=0, description="Start time in seconds")
    end: float = Field(..., ge=0, description="End time in seconds")
    text: str
    speaker: str | None = None


class Transcript(BaseModel):
    """Ordered transcript as uploaded by the transcription worker."""

    segments: list[TranscriptSegment] = Field(default_factory=list)
    language: str | None = None

    @property
    def duration_seconds(self) -> float:
        """End time of the last segment (0 for an empty transcript)."""
        if not self.segments:
            return 0.0
        return max(segment.end for segment in self.segments)
