"""
chunkscribe.cli - Typer CLI entry point.

Provides subcommands to plan, run and inspect transcription jobs.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from chunkscribe import __version__
from chunkscribe.config import CONFIG_FILENAME, create_default_config, load_config, write_config
from chunkscribe.exceptions import ChunkscribeError
from chunkscribe.logging import configure_logging
from chunkscribe.utils import format_bytes, format_clock

app = typer.Typer(
    name="chunkscribe",
    help="Chunked transcription and topic segmentation.\n\n"
    "Splits long recordings into chunks, transcribes them in parallel "
    "through a speech-to-text API, and segments the transcript into topics.",
    add_completion=False,
)
console = Console()


def find_config_file() -> Path | None:
    """Find chunkscribe.yaml in the current directory or its parents."""
    current = Path.cwd()
    while current != current.parent:
        if (current / CONFIG_FILENAME).exists():
            return current / CONFIG_FILENAME
        current = current.parent
    return None


def version_callback(value: bool) -> None:
    if value:
        console.print(f"chunkscribe {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """chunkscribe - chunked transcription and topic segmentation."""
    pass


@app.command("init")
def init_config(
    path: str = typer.Option(".", "--path", "-d", help="Directory to write chunkscribe.yaml in"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing config"),
) -> None:
    """Write a default chunkscribe.yaml."""
    config_path = Path(path) / CONFIG_FILENAME
    if config_path.exists() and not force:
        console.print(f"[red]Error: {config_path} already exists[/red]")
        raise typer.Exit(1)

    write_config(create_default_config(), config_path)
    console.print(f"[green]✓[/green] Wrote {config_path}")


@app.command("plan")
def plan(
    audio: Path = typer.Argument(..., help="Audio file to plan"),
    chunk_size: int | None = typer.Option(None, "--chunk-size", "-c", help="Chunk size in bytes"),
    config_file: Path | None = typer.Option(None, "--config", help="Path to chunkscribe.yaml"),
) -> None:
    """Show how a file would be split into chunks and batches."""
    from chunkscribe.config import chunk_config_for_size
    from chunkscribe.transcribe.chunks import plan_chunks
    from chunkscribe.validation import check_audio_file

    try:
        overrides = {"chunk_size_bytes": chunk_size} if chunk_size else None
        config = load_config(config_file or find_config_file(), overrides)
        size = check_audio_file(audio)["size_bytes"]
    except (ChunkscribeError, FileNotFoundError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    size_per_chunk, concurrency = chunk_config_for_size(size, config)
    chunks = plan_chunks(size, size_per_chunk)

    table = Table(title=f"Chunk plan: {audio.name}")
    table.add_column("Chunk", style="cyan")
    table.add_column("Batch", style="cyan")
    table.add_column("Bytes", style="green")
    table.add_column("Size", style="green")
    table.add_column("Status", style="yellow")

    for spec in chunks:
        status = "submit" if spec.size >= config.min_chunk_bytes else "[dim]drop (too small)[/dim]"
        table.add_row(
            str(spec.index),
            str(spec.index // concurrency + 1),
            f"{spec.start_byte}-{spec.end_byte}",
            format_bytes(spec.size),
            status,
        )

    console.print(table)
    console.print(
        f"\n{len(chunks)} chunk(s) of ~{format_bytes(size_per_chunk)}, {concurrency} concurrent"
    )


@app.command("topics-range")
def topics_range(
    seconds: float = typer.Argument(..., help="Recording duration in seconds"),
) -> None:
    """Show how many topics are requested for a recording length."""
    from chunkscribe.llm.topics import topic_range_for_duration

    topic_range = topic_range_for_duration(seconds)
    console.print(
        f"{format_clock(seconds)} → [cyan]{topic_range.category}[/cyan]: "
        f"{topic_range.min_topics}-{topic_range.max_topics} topics"
    )


@app.command("run")
def run(
    audio: Path = typer.Argument(..., help="Audio file to transcribe"),
    output: Path = typer.Option(Path("output"), "--output", "-o", help="Object store root directory"),
    bucket: str = typer.Option("results", "--bucket", "-b", help="Bucket to write results to"),
    file_key: str | None = typer.Option(
        None, "--file-key", help="Original file key (defaults to the audio filename)"
    ),
    config_file: Path | None = typer.Option(None, "--config", help="Path to chunkscribe.yaml"),
    language: str | None = typer.Option(None, "--language", "-l", help="Transcript language"),
    no_fallback: bool = typer.Option(
        False, "--no-fallback", help="Fail the job if topic segmentation fails"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Transcribe an audio file and segment it into topics."""
    from chunkscribe.credentials import EnvSecretSource
    from chunkscribe.pipeline import create_clients, run_job
    from chunkscribe.storage import LocalObjectStore, persist_job_result

    configure_logging(verbose)

    try:
        overrides = {"language": language} if language else None
        config = load_config(config_file or find_config_file(), overrides)
        secrets = EnvSecretSource()
        transcription_client, segmentation_client = create_clients(config, secrets)

        result = run_job(
            audio,
            config,
            transcription_client,
            segmentation_client,
            enable_fallback=False if no_fallback else None,
            console=console,
        )

        keys = persist_job_result(
            LocalObjectStore(output),
            bucket,
            result,
            file_key=file_key or audio.name,
            audio_key=audio.name,
            file_extension=audio.suffix.lstrip("."),
        )
    except (ChunkscribeError, FileNotFoundError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    table = Table(title="Chunks")
    table.add_column("Chunk", style="cyan")
    table.add_column("Segments", style="green")
    table.add_column("Duration", style="green")
    table.add_column("Status", style="yellow")
    for r in result.transcription_results:
        if r.success:
            status = "[green]✓ Transcribed[/green]"
        elif r.permanent:
            status = f"[red]Failed permanently: {r.error_detail}[/red]"
        else:
            status = f"[red]Failed after {r.attempts} attempts: {r.error_detail}[/red]"
        table.add_row(str(r.index), str(len(r.segments)), format_clock(r.duration), status)
    console.print(table)

    if result.topic_analysis:
        topics = Table(title="Topics")
        topics.add_column("Start", style="cyan")
        topics.add_column("End", style="cyan")
        topics.add_column("Topic", style="green")
        for seg in result.topic_analysis.segments:
            topics.add_row(seg.start_time, seg.end_time, seg.topic)
        console.print(topics)
    else:
        console.print(f"[yellow]⚠ No topics: {result.analysis_error}[/yellow]")

    console.print(
        f"\n[green]✓[/green] Transcribed {format_clock(result.total_duration)} "
        f"({result.success_ratio:.0%} of chunks)"
    )
    console.print(f"[dim]  {output / bucket / keys['transcription_key']}[/dim]")
    if keys["topics_key"]:
        console.print(f"[dim]  {output / bucket / keys['topics_key']}[/dim]")


@app.command("doctor")
def run_doctor(
    config_file: Path | None = typer.Option(None, "--config", help="Path to chunkscribe.yaml"),
) -> None:
    """Check configuration and credentials."""
    from chunkscribe.credentials import EnvSecretSource, env_var_for
    from chunkscribe.exceptions import DependencyError
    from chunkscribe.validation import check_secret

    console.print("[cyan]Running preflight checks...[/cyan]\n")

    table = Table(title="Environment Status")
    table.add_column("Component", style="cyan")
    table.add_column("Status", style="green")
    table.add_column("Details")

    try:
        config = load_config(config_file or find_config_file())
    except (ChunkscribeError, FileNotFoundError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    table.add_row("Config", "✓ Valid", f"language={config.language}")

    secrets = EnvSecretSource()
    checks = [("Transcription", config.transcription_secret)]
    if config.llm_backend in {"gemini", "openai"} and config.llm_secret:
        checks.append((f"LLM ({config.llm_backend})", config.llm_secret))
    else:
        table.add_row(f"LLM ({config.llm_backend})", "-", "Local backend, no key needed")

    all_passed = True
    for component, name in checks:
        try:
            check_secret(secrets, name)
            table.add_row(component, "✓ Found", env_var_for(name))
        except DependencyError as e:
            table.add_row(component, "✗ Missing", e.install_hint or e.message)
            all_passed = False

    console.print(table)

    if all_passed:
        console.print("\n[green]✓ All checks passed[/green]")
    else:
        console.print("\n[yellow]⚠ Some checks failed[/yellow]")
        raise typer.Exit(1)
