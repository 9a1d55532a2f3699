"""Retry utilities for outbound HTTP calls.

Implements exponential backoff with jitter for transient failures of the
rebuild hook, the social network API and audio downloads.
"""

import logging
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import ParamSpec, TypeVar

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")


# Error classification: Which errors should trigger retries?

class RetryableError(Exception):
    """Base class for errors that should trigger retries."""

    pass


class RateLimitError(RetryableError):
    """Remote rate limit exceeded."""

    pass


class ServerError(RetryableError):
    """Server-side error (5xx)."""

    pass


class TransportError(RetryableError):
    """Timeout or connection failure."""

    pass


class NonRetryableError(Exception):
    """Base class for errors that should NOT trigger retries."""

    pass


class AuthenticationError(NonRetryableError):
    """Credentials rejected."""

    pass


class InvalidRequestError(NonRetryableError):
    """Invalid request parameters (4xx)."""

    pass


class RetryConfig:
    """Configuration for retry behavior."""

    def __init__(
        self,
        max_attempts: int = 3,
        max_wait_seconds: float = 30,
        min_wait_seconds: float = 1,
        jitter: bool = True,
    ):
        """Initialize retry configuration.

        Args:
            max_attempts: Maximum number of attempts (including initial)
            max_wait_seconds: Maximum wait time between retries
            min_wait_seconds: Minimum wait time between retries
            jitter: Whether to add jitter to wait times
        """
        self.max_attempts = max_attempts
        self.max_wait_seconds = max_wait_seconds
        self.min_wait_seconds = min_wait_seconds
        self.jitter = jitter


DEFAULT_RETRY_CONFIG = RetryConfig()

# Fast configuration for testing (minimal delays)
TEST_RETRY_CONFIG = RetryConfig(
    max_attempts=3,
    max_wait_seconds=0.01,
    min_wait_seconds=0.001,
    jitter=False,
)


def log_retry_attempt(retry_state: RetryCallState) -> None:
    """Log retry attempts for debugging.

    Args:
        retry_state: Tenacity retry state
    """
    if retry_state.outcome and retry_state.outcome.failed:
        exception = retry_state.outcome.exception()
        logger.warning(
            "Retry attempt %d failed: %s: %s",
            retry_state.attempt_number,
            type(exception).__name__,
            exception,
        )


def with_async_retry(
    config: RetryConfig | None = None,
    retry_on: tuple[type[Exception], ...] = (RateLimitError, ServerError, TransportError),
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Decorator adding retry with exponential backoff to a coroutine function.

    Usage:
        @with_async_retry()
        async def post_hook():
            ...

    Args:
        config: Retry configuration (uses DEFAULT_RETRY_CONFIG if None)
        retry_on: Exception types that trigger another attempt

    Returns:
        Decorated coroutine function
    """
    config = config or DEFAULT_RETRY_CONFIG

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            retrying = AsyncRetrying(
                stop=stop_after_attempt(config.max_attempts),
                wait=wait_exponential(
                    multiplier=config.min_wait_seconds,
                    min=config.min_wait_seconds,
                    max=config.max_wait_seconds,
                )
                + wait_random(0, config.max_wait_seconds if config.jitter else 0),
                retry=retry_if_exception_type(retry_on),
                before_sleep=log_retry_attempt,
                reraise=True,
            )
            async for attempt in retrying:
                with attempt:
                    return await func(*args, **kwargs)
            raise AssertionError("unreachable")  # pragma: no cover

        return wrapper

    return decorator


def classify_http_error(status_code: int, error_message: str = "") -> Exception:
    """Classify an HTTP status into a retryable or non-retryable error.

    Args:
        status_code: HTTP status code
        error_message: Error message from the remote side

    Returns:
        Appropriate exception instance
    """
    if status_code == 429:
        return RateLimitError(f"Rate limit exceeded: {error_message}")

    if 500 <= status_code < 600:
        return ServerError(f"Server error (HTTP {status_code}): {error_message}")

    if status_code == 408:
        return TransportError(f"Request timeout: {error_message}")

    if status_code in (401, 403):
        return AuthenticationError(f"Authentication failed (HTTP {status_code}): {error_message}")

    if 400 <= status_code < 500:
        return InvalidRequestError(f"Invalid request (HTTP {status_code}): {error_message}")

    return NonRetryableError(f"HTTP error {status_code}: {error_message}")


def raise_for_response(response: httpx.Response) -> httpx.Response:
    """Raise a classified error for non-2xx responses."""
    if response.is_success:
        return response
    raise classify_http_error(response.status_code, response.text[:200])


async def send_request(
    client: httpx.AsyncClient, method: str, url: str, **kwargs
) -> httpx.Response:
    """Send a request, mapping httpx failures to classified errors.

    Unusable URLs are not retried; every other transport failure is.
    """
    try:
        response = await client.request(method, url, **kwargs)
    except (httpx.UnsupportedProtocol, httpx.InvalidURL) as e:
        raise InvalidRequestError(f"{method} {url} rejected: {e}") from e
    except httpx.TransportError as e:
        raise TransportError(f"{method} {url} failed: {e}") from e
    return raise_for_response(response)
