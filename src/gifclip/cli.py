"""Command-line interface for gifclip.

Uses Typer for a modern, type-hinted CLI experience.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Optional

import typer
from dotenv import load_dotenv
from pydantic import ValidationError
from rich.console import Console

from gifclip.config import config_dir

# Load environment variables from .env files
# Priority: local .env > ~/.gifclip/.env
load_dotenv()
_user_env = config_dir() / ".env"
if _user_env.exists():
    load_dotenv(_user_env)

from rich.markup import escape
from rich.table import Table

from gifclip import __version__
from gifclip.clip import ClipJob, ClipRequest
from gifclip.config import load_settings, settings_path
from gifclip.downloader import YtDlp, is_url
from gifclip.errors import GifclipError, format_error_for_display
from gifclip.ffmpeg import EncodeSettings, FFmpegWrapper, OutputFormat
from gifclip.logging import LogConfig, LogLevel, configure_logging
from gifclip.subtitles import Padding, find_dialogue, load_srt, resolve_quote, resolve_range
from gifclip.timestamps import format_clock
from gifclip.tools import check_tools, find_ffmpeg, find_ytdlp
from gifclip.wizard import ensure_setup, run_setup

# Create the main Typer app
app = typer.Typer(
    name="gifclip",
    help="Download a video clip and export it as GIF/video with burned-in subtitles.",
    add_completion=False,
    rich_markup_mode="rich",
)

console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"gifclip version {__version__}")
        raise typer.Exit()


def _fail(error: Exception) -> None:
    console.print(f"[red]Error:[/red] {escape(format_error_for_display(error))}")
    raise typer.Exit(1)


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    verbose: Annotated[
        int,
        typer.Option("--verbose", "-V", count=True, help="Increase log output (-VV for debug)."),
    ] = 0,
    quiet: Annotated[
        bool, typer.Option("--quiet", help="Only log errors.")
    ] = False,
    log_file: Annotated[
        Optional[Path], typer.Option("--log-file", help="Also write a debug log to this file.")
    ] = None,
) -> None:
    """gifclip - clip videos by timestamp or by dialogue.

    [bold]clip[/bold]: Cut a clip from a URL or local file and export GIF/WebM/MP4.

    [bold]find[/bold]: Look up dialogue in a subtitle file without downloading anything.
    """
    if quiet:
        level = LogLevel.QUIET
    else:
        level = LogLevel(min(LogLevel.NORMAL + verbose, LogLevel.DEBUG))
    configure_logging(LogConfig(level=level, log_file=log_file))


@app.command()
def clip(
    source: Annotated[str, typer.Argument(help="Video URL or path to a local video file")],
    start: Annotated[
        Optional[str],
        typer.Argument(help='Start timestamp (e.g., "1:30", "00:01:30" or "90")'),
    ] = None,
    end: Annotated[
        Optional[str],
        typer.Argument(help='End timestamp (e.g., "1:35", "00:01:35" or "95")'),
    ] = None,
    quote: Annotated[
        Optional[str],
        typer.Option("--quote", help="Clip the line of dialogue containing this text"),
    ] = None,
    from_quote: Annotated[
        Optional[str],
        typer.Option("--from", help="Start the clip at the line containing this text"),
    ] = None,
    to_quote: Annotated[
        Optional[str],
        typer.Option("--to", help="End the clip at the line containing this text"),
    ] = None,
    pad: Annotated[
        Optional[float],
        typer.Option("--pad", help="Seconds of padding on both sides (default 2.0 quote, 0.5 range)"),
    ] = None,
    pad_before: Annotated[
        Optional[float], typer.Option("--pad-before", help="Seconds of padding before the dialogue")
    ] = None,
    pad_after: Annotated[
        Optional[float], typer.Option("--pad-after", help="Seconds of padding after the dialogue")
    ] = None,
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Output file (auto-generated from the title if omitted)"),
    ] = None,
    output_format: Annotated[
        Optional[OutputFormat], typer.Option("--format", "-f", help="Output format")
    ] = None,
    width: Annotated[
        Optional[int], typer.Option("--width", "-w", help="Width in pixels (height scales proportionally)")
    ] = None,
    fps: Annotated[Optional[int], typer.Option("--fps", help="Frames per second")] = None,
    lang: Annotated[Optional[str], typer.Option("--lang", help="Subtitle language code")] = None,
    no_subs: Annotated[
        bool, typer.Option("--no-subs", help="Don't burn subtitles into the clip")
    ] = False,
    quality: Annotated[
        Optional[int],
        typer.Option("--quality", "-q", help="Quality 1-100, higher is better. For GIF, reduces colors."),
    ] = None,
) -> None:
    """Cut a clip and export it as GIF, WebM or MP4.

    Bounds come from START and END timestamps, from --quote, or from --from
    and --to dialogue matched against the subtitle track.
    """
    try:
        defaults = load_settings()
        request = ClipRequest(
            source=source,
            start=start,
            end=end,
            quote=quote,
            from_quote=from_quote,
            to_quote=to_quote,
            padding=Padding(pad=pad, pad_before=pad_before, pad_after=pad_after),
            output=output,
            encode=EncodeSettings(
                format=output_format or defaults.format,
                width=width if width is not None else defaults.width,
                fps=fps if fps is not None else defaults.fps,
                quality=quality if quality is not None else defaults.quality,
            ),
            lang=lang or defaults.lang,
            no_subs=no_subs,
        )
        mode = request.mode

        remote = is_url(source)
        settings = ensure_setup(console, ("yt-dlp", "ffmpeg") if remote else ("ffmpeg",))
        ffmpeg = FFmpegWrapper(find_ffmpeg(settings))
        ytdlp = YtDlp(find_ytdlp(settings)) if remote else None

        with console.status(f"Generating {request.encode.format.value} ({mode.value} mode)..."):
            result = ClipJob(request, ffmpeg, ytdlp).run()
    except ValidationError as e:
        console.print(f"[red]Error:[/red] Invalid options: {escape(str(e))}")
        raise typer.Exit(1)
    except GifclipError as e:
        _fail(e)

    rng = result.clip_range
    console.print(
        f"Clipped {rng.duration:.1f}s from {format_clock(rng.start)} to {format_clock(rng.end)}"
    )
    if not no_subs and not result.subtitles_burned:
        console.print("[yellow]Warning:[/yellow] No subtitles found, clip has no captions")
    console.print(f"[green]Created:[/green] {escape(str(result.output))}")


@app.command()
def find(
    subtitle_file: Annotated[Path, typer.Argument(help="Path to a .srt subtitle file")],
    query: Annotated[str, typer.Argument(help="Dialogue to look for")],
    to_quote: Annotated[
        Optional[str], typer.Option("--to", help="Resolve a range ending at this dialogue")
    ] = None,
    pad: Annotated[Optional[float], typer.Option("--pad", help="Seconds of padding on both sides")] = None,
    pad_before: Annotated[Optional[float], typer.Option("--pad-before", help="Seconds before")] = None,
    pad_after: Annotated[Optional[float], typer.Option("--pad-after", help="Seconds after")] = None,
) -> None:
    """Resolve dialogue against a subtitle file and show the clip range."""
    try:
        padding = Padding(pad=pad, pad_before=pad_before, pad_after=pad_after)
        entries = load_srt(subtitle_file)

        matches = [("from" if to_quote else "quote", find_dialogue(entries, query))]
        if to_quote:
            matches.append(("to", find_dialogue(entries, to_quote)))
            clip_range = resolve_range(entries, query, to_quote, padding)
        else:
            clip_range = resolve_quote(entries, query, padding)
    except ValidationError as e:
        console.print(f"[red]Error:[/red] Invalid options: {escape(str(e))}")
        raise typer.Exit(1)
    except GifclipError as e:
        _fail(e)

    table = Table(title=f"Dialogue in {escape(subtitle_file.name)}")
    table.add_column("Match", style="cyan")
    table.add_column("Start")
    table.add_column("End")
    table.add_column("Text")
    for role, entry in matches:
        table.add_row(role, format_clock(entry.start), format_clock(entry.end), escape(entry.text))
    console.print(table)

    console.print(
        f"Clip range: {format_clock(clip_range.start)} -> {format_clock(clip_range.end)} "
        f"({clip_range.duration:.2f}s)"
    )


@app.command()
def setup() -> None:
    """Configure where gifclip gets yt-dlp and ffmpeg."""
    try:
        run_setup(console)
    except GifclipError as e:
        _fail(e)


@app.command()
def doctor() -> None:
    """Show which external tools gifclip will use."""
    try:
        settings = load_settings()
    except GifclipError as e:
        _fail(e)

    console.print(f"Settings: {settings_path()}")
    console.print(f"Tool source: [bold]{settings.tool_source.value}[/bold]\n")

    table = Table(title="External Tools")
    table.add_column("Tool", style="cyan")
    table.add_column("Status")
    table.add_column("Source")
    table.add_column("Path")

    missing = False
    for name, info in check_tools(settings).items():
        status = "[green]available[/green]" if info.available else "[red]missing[/red]"
        missing = missing or not info.available
        table.add_row(name, status, info.source, info.path or "-")
    console.print(table)

    if missing:
        console.print("\nRun [bold]gifclip setup[/bold] to configure missing tools.")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
