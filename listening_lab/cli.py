"""Command-line interface for Listening Lab using Typer.

Inspects how a transcript is planned for active-mode practice without a
player attached.

Features:
- `chunks` command printing the chunk plan of a transcript.
- `locate` command resolving the segment and chunk heard at a position.
- Verbose/quiet switches for logging.
"""

import json
import pathlib
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from listening_lab import __version__
from listening_lab.chunking import build_chunks, segments_in_chunk
from listening_lab.config import ChunkingConfig
from listening_lab.tracking import find_active_segment_index, find_chunk_index
from listening_lab.transcript import TranscriptLoadError, TranscriptSegment, load_transcript
from listening_lab.utils.constant import CHUNK_MAX_SEC, CHUNK_MIN_SEC, CHUNK_TARGET_SEC
from listening_lab.utils.logging_config import configure_logging
from listening_lab.utils.timefmt import format_clock


def version_callback(value: bool) -> None:
    """Show the application's version and exit.

    Args:
        value: When True, print the version and exit.

    Raises:
        typer.Exit: Always raised after printing when value is True.
    """
    if value:
        print(f"listening-lab version: {__version__}")
        raise typer.Exit()


app = typer.Typer(
    name="listening-lab",
    help="Plan and inspect active-listening practice chunks for a transcript.",
    add_completion=False,
)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            help="Show the application's version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
) -> None:
    """Show help when no subcommand is given.

    Args:
        ctx: Typer context.
        version: Whether to print version and exit.

    Raises:
        typer.Exit: Raised to terminate after displaying help or version.
    """
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


TranscriptArg = Annotated[
    pathlib.Path,
    typer.Argument(
        help="Transcript JSON: a segment list or a transcript document.",
        exists=True,
        dir_okay=False,
        readable=True,
    ),
]
DurationOpt = Annotated[
    float | None,
    typer.Option(
        "--duration",
        help="Recording duration in seconds (defaults to the last segment end).",
    ),
]
VerboseOpt = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Enable debug logging."),
]
QuietOpt = Annotated[
    bool,
    typer.Option("--quiet", "-q", help="Only log critical errors."),
]


def _load(path: pathlib.Path) -> list[TranscriptSegment]:
    try:
        return load_transcript(path)
    except TranscriptLoadError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc


@app.command()
def chunks(
    transcript: TranscriptArg,
    duration: DurationOpt = None,
    target: Annotated[
        float,
        typer.Option("--target", help="Preferred chunk length in seconds."),
    ] = CHUNK_TARGET_SEC,
    min_seconds: Annotated[
        float,
        typer.Option("--min", help="Shortest chunk accepted on a segment boundary."),
    ] = CHUNK_MIN_SEC,
    max_seconds: Annotated[
        float,
        typer.Option("--max", help="Longest chunk accepted on a segment boundary."),
    ] = CHUNK_MAX_SEC,
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print the chunk plan as JSON."),
    ] = False,
    verbose: VerboseOpt = False,
    quiet: QuietOpt = False,
) -> None:
    """Print the chunk plan of a transcript.

    Examples:
        listening-lab chunks talk.json
        listening-lab chunks talk.json --duration 185 --json
    """
    configure_logging(verbose=verbose, quiet=quiet)
    try:
        config = ChunkingConfig(
            target_seconds=target, min_seconds=min_seconds, max_seconds=max_seconds
        )
    except ValueError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    segments = _load(transcript)
    plan = build_chunks(segments, duration, config)

    if as_json:
        typer.echo(json.dumps([chunk.model_dump() for chunk in plan], indent=2))
        return

    if not plan:
        typer.echo("No chunks: the transcript has no timing and no duration was given.")
        return

    console = Console()
    table = Table(title=f"Chunks: {transcript.name}", show_header=True, header_style="bold magenta")
    table.add_column("#", justify="right")
    table.add_column("Start")
    table.add_column("End")
    table.add_column("Length (s)", justify="right")
    table.add_column("Segments", justify="right")
    for chunk in plan:
        table.add_row(
            str(chunk.index + 1),
            chunk.label_start,
            chunk.label_end,
            f"{chunk.duration:.1f}",
            str(len(segments_in_chunk(segments, chunk))),
        )
    console.print(table)


@app.command()
def locate(
    transcript: TranscriptArg,
    position: Annotated[float, typer.Argument(help="Playback position in seconds.")],
    duration: DurationOpt = None,
    verbose: VerboseOpt = False,
    quiet: QuietOpt = False,
) -> None:
    """Show the segment and chunk heard at POSITION.

    Examples:
        listening-lab locate talk.json 61.5
    """
    configure_logging(verbose=verbose, quiet=quiet)
    segments = _load(transcript)
    plan = build_chunks(segments, duration, ChunkingConfig())
    known_duration = duration if duration is not None else (plan[-1].end if plan else None)

    segment_index = find_active_segment_index(segments, position, known_duration)
    chunk_index = find_chunk_index(plan, position)

    console = Console()
    console.print(f"[bold]Position:[/bold] {format_clock(position)}")
    if chunk_index >= 0:
        chunk = plan[chunk_index]
        console.print(
            f"[bold]Chunk:[/bold] {chunk.index + 1}/{len(plan)} "
            f"({chunk.label_start}-{chunk.label_end})"
        )
    else:
        console.print("[bold]Chunk:[/bold] none")
    if segment_index >= 0:
        console.print(f"[bold]Segment:[/bold] {segment_index + 1}/{len(segments)}")
        console.print(segments[segment_index].text)
    else:
        console.print("[bold]Segment:[/bold] none")


if __name__ == "__main__":
    app()
