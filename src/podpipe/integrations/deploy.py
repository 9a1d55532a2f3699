"""Website rebuild via a deploy hook URL."""

import logging

import httpx

from podpipe.integrations.base import RebuildTrigger
from podpipe.utils.retry import (
    DEFAULT_RETRY_CONFIG,
    NonRetryableError,
    RetryableError,
    RetryConfig,
    send_request,
    with_async_retry,
)

logger = logging.getLogger(__name__)


class DeployHookTrigger(RebuildTrigger):
    """POSTs to a static-site host's deploy hook.

    Skipped in dev mode and when no hook is configured. Transient failures are
    retried; anything still failing is logged and reported as False.
    """

    def __init__(
        self,
        hook_url: str | None,
        dev_mode: bool = False,
        timeout: float = 30.0,
        retry_config: RetryConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.hook_url = hook_url
        self.dev_mode = dev_mode
        self.timeout = timeout
        self.retry_config = retry_config or DEFAULT_RETRY_CONFIG
        self._transport = transport

    async def trigger(self) -> bool:
        if self.dev_mode:
            logger.info("Skipping website rebuild (dev mode)")
            return False
        if not self.hook_url:
            logger.info("No deploy hook configured, skipping website rebuild")
            return False

        @with_async_retry(self.retry_config)
        async def post_hook() -> httpx.Response:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                return await send_request(client, "POST", self.hook_url)

        try:
            await post_hook()
        except (RetryableError, NonRetryableError) as e:
            logger.error("Failed to trigger website rebuild: %s", e)
            return False

        logger.info("Website rebuild triggered")
        return True
