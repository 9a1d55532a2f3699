"""Periodic release of scheduled episodes."""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from podpipe.publishing.service import PublicationService
from podpipe.publishing.state_machine import is_due

logger = logging.getLogger(__name__)


@dataclass
class PublishReport:
    """Outcome of one scheduled run."""

    published: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    rebuild_triggered: bool = False

    @property
    def changed(self) -> bool:
        return bool(self.published)


class ScheduledPublishCoordinator:
    """Publishes every scheduled episode whose time has come.

    Episodes are processed one at a time. A failure on one episode is logged
    and recorded in the report; the rest are still processed. The feed is
    regenerated and the website rebuilt once per run, and only when something
    was published, so a run with nothing due does nothing.
    """

    def __init__(self, service: PublicationService) -> None:
        self.service = service

    async def run(self, now: datetime | None = None) -> PublishReport:
        now = now or self.service.clock()
        report = PublishReport()
        repository = self.service.repository
        state_machine = self.service.state_machine

        for episode in await repository.list_episodes():
            if not is_due(episode, now):
                continue
            try:
                state_machine.publish_due(episode, now)
                await repository.save_episode(episode)
                await repository.sync_index_status(episode)
            except Exception:
                logger.exception("Failed to publish scheduled episode %s", episode.id)
                report.failed.append(episode.id)
                continue

            report.published.append(episode.id)
            await self.service.announce(episode)

        if report.changed:
            report.rebuild_triggered = await self.service.refresh_site()
            logger.info("Published %d scheduled episode(s)", len(report.published))

        return report
