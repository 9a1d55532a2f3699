"""External collaborators: website rebuild and social posting."""

from podpipe.integrations.base import (
    NullRebuildTrigger,
    NullSocialPoster,
    RebuildTrigger,
    SocialPoster,
)
from podpipe.integrations.bluesky import BlueskyPoster
from podpipe.integrations.deploy import DeployHookTrigger

__all__ = [
    "BlueskyPoster",
    "DeployHookTrigger",
    "NullRebuildTrigger",
    "NullSocialPoster",
    "RebuildTrigger",
    "SocialPoster",
]
