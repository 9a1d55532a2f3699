"""CLI commands for managing episodes.

This module provides the `podpipe episode` subcommand group, which drives
episodes through upload, transcription and publication.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Annotated

import typer
from rich.markup import escape
from rich.table import Table

from podpipe.cli_common import console, fail, load_service, run
from podpipe.episodes.models import Episode, ReferenceLink
from podpipe.feed.serializer import format_itunes_duration
from podpipe.utils.datetime import ensure_utc

DATETIME_FORMATS = ["%Y-%m-%dT%H:%M:%S%z", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%dT%H:%M", "%Y-%m-%d"]

STATUS_STYLES = {
    "draft": "dim",
    "uploading": "cyan",
    "processing": "cyan",
    "transcribing": "yellow",
    "scheduled": "blue",
    "published": "green",
    "failed": "red",
}

app = typer.Typer(
    name="episode",
    help="Create episodes and drive them through publication",
    no_args_is_help=True,
)


def _print_status(episode: Episode) -> None:
    style = STATUS_STYLES.get(episode.status.value, "white")
    console.print(
        f"[green]✓[/green] [bold]{escape(episode.id)}[/bold] is now "
        f"[{style}]{episode.status.value}[/{style}]"
    )


def _parse_links(values: list[str]) -> list[ReferenceLink]:
    """Parse ``TITLE=URL`` pairs."""
    links = []
    for value in values:
        title, sep, url = value.partition("=")
        if not sep or not url:
            fail(f"Invalid reference link '{value}': expected TITLE=URL")
        links.append(ReferenceLink(title=title.strip(), url=url.strip()))
    return links


@app.command("create")
def create_episode(
    title: Annotated[str, typer.Argument(help="Episode title")],
    slug: Annotated[
        str | None, typer.Option("--slug", "-s", help="URL slug (default ep-NNN)")
    ] = None,
    description: Annotated[
        str | None, typer.Option("--description", "-d", help="Description HTML")
    ] = None,
    publish_at: Annotated[
        datetime | None,
        typer.Option(
            "--publish-at", formats=DATETIME_FORMATS, help="Release time (UTC if no offset)"
        ),
    ] = None,
    skip_transcription: Annotated[
        bool, typer.Option("--skip-transcription", help="Publish without a transcript")
    ] = False,
    link: Annotated[
        list[str] | None, typer.Option("--link", help="Reference link as TITLE=URL (repeatable)")
    ] = None,
    social_text: Annotated[
        str | None,
        typer.Option("--social-text", help="Announcement text ({{EPISODE_URL}}, {{TITLE}})"),
    ] = None,
) -> None:
    """Create a draft episode.

    Examples:
        podpipe episode create "Pilot" --slug pilot --publish-at 2025-01-01T09:00:00
    """
    service = load_service()
    episode = run(
        service.create_episode(
            title,
            slug=slug,
            description=description,
            publish_at=ensure_utc(publish_at) if publish_at else None,
            skip_transcription=skip_transcription,
            reference_links=_parse_links(link or []),
            social_post_text=social_text,
            social_post_enabled=bool(social_text),
        )
    )
    console.print(f"[green]✓[/green] Created episode [bold]{escape(episode.id)}[/bold]")


@app.command("list")
def list_episodes() -> None:
    """List all episodes with their status."""
    service = load_service()
    episodes = run(service.list_episodes())

    if not episodes:
        console.print("[yellow]No episodes yet.[/yellow]")
        console.print("Create one with: podpipe episode create TITLE")
        return

    table = Table(title="Episodes")
    table.add_column("#", justify="right", style="dim")
    table.add_column("ID", style="cyan")
    table.add_column("Title")
    table.add_column("Status")
    table.add_column("Duration", justify="right")
    table.add_column("Publish at", style="dim")

    for episode in episodes:
        style = STATUS_STYLES.get(episode.status.value, "white")
        table.add_row(
            str(episode.episode_number or ""),
            escape(episode.id),
            escape(episode.title),
            f"[{style}]{episode.status.value}[/{style}]",
            format_itunes_duration(episode.duration) if episode.duration else "-",
            episode.publish_at.isoformat() if episode.publish_at else "-",
        )

    console.print(table)


@app.command("show")
def show_episode(
    episode_id: Annotated[str, typer.Argument(help="Episode identifier")],
) -> None:
    """Print an episode record as JSON."""
    service = load_service()
    episode = run(service.get_episode(episode_id))
    typer.echo(json.dumps(episode.to_document(), indent=2, ensure_ascii=False))


@app.command("upload")
def upload_audio(
    episode_id: Annotated[str, typer.Argument(help="Episode identifier")],
    audio_file: Annotated[
        Path, typer.Argument(exists=True, dir_okay=False, readable=True, help="MP3 file")
    ],
    duration: Annotated[
        int | None,
        typer.Option("--duration", min=0, help="Duration in seconds (computed if omitted)"),
    ] = None,
) -> None:
    """Store an episode's audio and hand it to transcription or release."""
    service = load_service()
    episode = run(service.upload_audio(episode_id, audio_file.read_bytes(), duration))
    console.print(f"[dim]Duration: {format_itunes_duration(episode.duration)}[/dim]")
    _print_status(episode)


@app.command("fetch")
def fetch_audio(
    episode_id: Annotated[str, typer.Argument(help="Episode identifier")],
    url: Annotated[str, typer.Argument(help="Audio URL to download")],
) -> None:
    """Download an episode's audio from a URL."""
    service = load_service()
    episode = run(service.fetch_from_url(episode_id, url))
    _print_status(episode)


@app.command("transcript")
def complete_transcription(
    episode_id: Annotated[str, typer.Argument(help="Episode identifier")],
    transcript_file: Annotated[
        Path | None,
        typer.Option(
            "--file", "-f", exists=True, dir_okay=False, help="Transcript JSON to upload first"
        ),
    ] = None,
) -> None:
    """Complete transcription: convert the uploaded transcript and release."""
    data = None
    if transcript_file is not None:
        try:
            data = json.loads(transcript_file.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            fail(f"Invalid JSON in {transcript_file}: {e}")

    service = load_service()

    async def complete() -> Episode:
        if data is not None:
            await service.repository.put_transcript_data(episode_id, data)
        return await service.complete_transcription(episode_id)

    episode = run(complete())
    _print_status(episode)


@app.command("fail")
def fail_transcription(
    episode_id: Annotated[str, typer.Argument(help="Episode identifier")],
) -> None:
    """Mark an episode's transcription as failed."""
    service = load_service()
    _print_status(run(service.fail_transcription(episode_id)))


@app.command("retry")
def retry_transcription(
    episode_id: Annotated[str, typer.Argument(help="Episode identifier")],
) -> None:
    """Send a failed episode back to transcription."""
    service = load_service()
    _print_status(run(service.retry_transcription(episode_id)))


@app.command("rename")
def rename_slug(
    episode_id: Annotated[str, typer.Argument(help="Episode identifier")],
    new_slug: Annotated[str, typer.Argument(help="New slug")],
) -> None:
    """Change a draft episode's slug."""
    service = load_service()
    episode = run(service.rename_slug(episode_id, new_slug))
    console.print(
        f"[green]✓[/green] Renamed [bold]{escape(episode_id)}[/bold] to "
        f"[bold]{escape(episode.id)}[/bold]"
    )
