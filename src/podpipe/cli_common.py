"""Helpers shared by the CLI command modules."""

import asyncio
import sys
from collections.abc import Coroutine
from typing import Any, NoReturn, TypeVar

from rich.console import Console
from rich.markup import escape

from podpipe.config.manager import ConfigManager
from podpipe.publishing.factory import build_service
from podpipe.publishing.service import PublicationService
from podpipe.utils.errors import PodpipeError

T = TypeVar("T")

console = Console()


def fail(message: str) -> NoReturn:
    """Print an error and exit with status 1."""
    console.print(f"[red]✗[/red] {escape(message)}")
    sys.exit(1)


def run(coro: Coroutine[Any, Any, T]) -> T:
    """Run a coroutine, turning Podpipe errors into a failed exit."""
    try:
        return asyncio.run(coro)
    except PodpipeError as e:
        fail(str(e))


def load_service() -> PublicationService:
    """Build the publication service from the user's configuration."""
    try:
        config = ConfigManager().load_config()
    except PodpipeError as e:
        fail(str(e))
    return build_service(config)
