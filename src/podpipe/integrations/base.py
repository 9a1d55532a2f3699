"""Interfaces for collaborators invoked after publication.

Both collaborators are best-effort: implementations log their own failures
and never raise, so a failed rebuild or post cannot undo a publication.
"""

from abc import ABC, abstractmethod

from podpipe.episodes.models import Episode


class RebuildTrigger(ABC):
    """Requests a rebuild of the public website."""

    @abstractmethod
    async def trigger(self) -> bool:
        """Fire the rebuild request.

        Returns:
            True if the request was accepted, False if skipped or failed
        """


class SocialPoster(ABC):
    """Announces a newly published episode."""

    @abstractmethod
    async def post_episode(self, episode: Episode, website_url: str) -> bool:
        """Post about an episode.

        Args:
            episode: Published episode
            website_url: Base URL of the show website

        Returns:
            True if a post was made
        """


class NullRebuildTrigger(RebuildTrigger):
    """Rebuild trigger that does nothing (no hook configured)."""

    async def trigger(self) -> bool:
        return False


class NullSocialPoster(SocialPoster):
    """Social poster that never posts (posting not configured)."""

    async def post_episode(self, episode: Episode, website_url: str) -> bool:
        return False
