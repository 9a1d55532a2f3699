"""CLI entry point for Podpipe."""

import json
from pathlib import Path
from typing import Annotated

import typer
from rich.markup import escape
from rich.table import Table

from podpipe import cli_episode
from podpipe.audio.duration import get_mp3_duration
from podpipe.cli_common import console, fail, load_service, run
from podpipe.config.logging import setup_logging
from podpipe.config.manager import ConfigManager
from podpipe.feed.serializer import format_itunes_duration
from podpipe.publishing.scheduler import ScheduledPublishCoordinator
from podpipe.transcript.models import Transcript
from podpipe.transcript.vtt import convert_to_vtt, validate_transcript_data
from podpipe.utils.errors import InvalidConfigError, PodpipeError

app = typer.Typer(
    name="podpipe",
    help="Publish podcast episodes: upload, transcription, scheduling and feeds",
    no_args_is_help=True,
)
lock_app = typer.Typer(name="lock", help="Manage transcription locks", no_args_is_help=True)
queue_app = typer.Typer(name="queue", help="Transcription work queue", no_args_is_help=True)

app.add_typer(cli_episode.app, name="episode")
app.add_typer(lock_app, name="lock")
app.add_typer(queue_app, name="queue")


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable verbose (DEBUG) logging"
    ),
    log_file: Path | None = typer.Option(
        None, "--log-file", help="Write logs to file"
    ),
) -> None:
    """Podpipe - self-hosted podcast publication pipeline."""
    # Initialize logging before any command runs
    setup_logging(verbose=verbose, log_file=log_file)


@app.command("version")
def show_version() -> None:
    """Show version information."""
    from podpipe import __version__

    console.print(f"[bold cyan]Podpipe[/bold cyan] v{__version__}")


@app.command("duration")
def duration_command(
    audio_file: Annotated[
        Path, typer.Argument(exists=True, dir_okay=False, readable=True, help="MP3 file")
    ],
) -> None:
    """Compute the duration of an MP3 file from its frame headers."""
    seconds = get_mp3_duration(audio_file.read_bytes())
    if seconds == 0:
        console.print(f"[yellow]Could not determine duration of {escape(str(audio_file))}[/yellow]")
    console.print(f"{seconds}s ({format_itunes_duration(seconds)})")


@app.command("vtt")
def vtt_command(
    transcript_file: Annotated[
        Path, typer.Argument(exists=True, dir_okay=False, readable=True, help="Transcript JSON")
    ],
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Write WebVTT here instead of stdout")
    ] = None,
) -> None:
    """Convert a transcript JSON document to WebVTT."""
    try:
        data = json.loads(transcript_file.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        fail(f"Invalid JSON in {transcript_file}: {e}")

    if not validate_transcript_data(data):
        fail(f"{transcript_file} is not a valid transcript")

    vtt = convert_to_vtt(Transcript.model_validate(data))

    if output is None:
        typer.echo(vtt)
        return

    output.write_text(vtt, encoding="utf-8")
    console.print(f"[green]✓[/green] Wrote {escape(str(output))}")


@app.command("feed")
def feed_command(
    regenerate: Annotated[
        bool, typer.Option("--regenerate", "-r", help="Rebuild from published episodes")
    ] = False,
) -> None:
    """Print the RSS feed."""
    service = load_service()
    xml = run(service.regenerate_feed() if regenerate else service.get_feed())
    typer.echo(xml)


@app.command("publish-due")
def publish_due_command() -> None:
    """Publish scheduled episodes whose release time has passed.

    Meant to run periodically (e.g. from cron). Does nothing when no
    episode is due.
    """
    service = load_service()
    report = run(ScheduledPublishCoordinator(service).run())

    if not report.published and not report.failed:
        console.print("[dim]Nothing due[/dim]")
        return

    for episode_id in report.published:
        console.print(f"[green]✓[/green] Published [bold]{escape(episode_id)}[/bold]")
    for episode_id in report.failed:
        console.print(f"[red]✗[/red] Failed to publish [bold]{escape(episode_id)}[/bold]")
    if report.rebuild_triggered:
        console.print("[dim]Website rebuild triggered[/dim]")

    if report.failed:
        raise typer.Exit(code=1)


@app.command("config")
def config_command(
    action: str = typer.Argument(..., help="Action: show, or set <key> <value>"),
    key: str | None = typer.Argument(None, help="Dotted config key (for 'set' action)"),
    value: str | None = typer.Argument(None, help="Config value (for 'set' action)"),
) -> None:
    """Manage Podpipe configuration.

    Examples:
        podpipe config show

        podpipe config set site.website_url https://example.com
    """
    try:
        manager = ConfigManager()

        if action == "show":
            config = manager.load_config()

            console.print("\n[bold]Podpipe Configuration[/bold]\n")

            table = Table(show_header=False, box=None)
            table.add_column("Key", style="cyan")
            table.add_column("Value", style="white")

            table.add_row("Config file", str(manager.config_file))
            table.add_row("Store", str(config.storage.resolve_root()))
            table.add_row("Public base URL", config.storage.public_base_url or "-")
            table.add_row("", "")
            table.add_row("Log level", config.log_level)
            table.add_row("Website", config.site.website_url or "-")
            table.add_row("Deploy hook", "✓" if config.site.deploy_hook_url else "✗")
            table.add_row("Dev mode", "✓" if config.site.dev_mode else "✗")
            table.add_row("Lock timeout", f"{config.transcription.lock_timeout_minutes} min")
            table.add_row("Bluesky posting", "✓" if config.social.enabled else "✗")
            table.add_row("Bluesky password", "set" if config.social.password else "not set")

            console.print(table)

        elif action == "set":
            if not key or value is None:
                fail("Usage: podpipe config set <key> <value>")

            config = manager.load_config()
            data = config.model_dump(mode="json")

            section = data
            *parents, leaf = key.split(".")
            for part in parents:
                if not isinstance(section.get(part), dict):
                    fail(f"Unknown config key: {key}")
                section = section[part]
            if leaf not in section:
                fail(f"Unknown config key: {key}")
            section[leaf] = value

            try:
                updated = type(config).model_validate(data)
            except ValueError as e:
                raise InvalidConfigError(f"Invalid value for {key}: {e}") from e
            manager.save_config(updated)

            shown = "********" if leaf == "password" else value
            console.print(
                f"[green]✓[/green] Set [cyan]{escape(key)}[/cyan] = "
                f"[yellow]{escape(shown)}[/yellow]"
            )

        else:
            fail(f"Unknown action: {action}. Valid actions: show, set")

    except PodpipeError as e:
        fail(f"Error: {e}")


@lock_app.command("acquire")
def lock_acquire(
    episode_id: Annotated[str, typer.Argument(help="Episode identifier")],
) -> None:
    """Lock an episode for transcription."""
    service = load_service()
    episode = run(service.lock_manager.acquire(episode_id))
    console.print(
        f"[green]✓[/green] Locked [bold]{escape(episode.id)}[/bold] "
        f"at {episode.transcription_locked_at.isoformat()}"
    )


@lock_app.command("release")
def lock_release(
    episode_id: Annotated[str, typer.Argument(help="Episode identifier")],
) -> None:
    """Clear an episode's transcription lock (manual recovery)."""
    service = load_service()
    episode = run(service.lock_manager.release(episode_id))
    console.print(f"[green]✓[/green] Released lock on [bold]{escape(episode.id)}[/bold]")


@queue_app.command("claim")
def queue_claim(
    limit: Annotated[int, typer.Option("--limit", "-n", help="Maximum episodes to claim")] = 1,
) -> None:
    """Lock episodes waiting for transcription and print them as JSON."""
    service = load_service()
    items = run(service.lock_manager.claim_queue(limit))
    typer.echo(json.dumps([item.to_document() for item in items], indent=2, ensure_ascii=False))


if __name__ == "__main__":
    app()
