#!/usr/bin/env python3
"""
Command-line interface for the EVTC log analytics pipeline.
"""

import json
import logging
import zipfile
from datetime import datetime
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeRemainingColumn
from rich.table import Table

from .config.loader import load_settings
from .encounters.results import EncounterResult
from .exceptions import DecodeError, EVTCAnalyticsError
from .processing.batch import BatchProcessor
from .processing.pipeline import ProcessedLog, process_log
from .statistics.rotation_json import RotationJsonWriter, RotationSource

# Set up rich console for pretty output
console = Console()

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
    handlers=[RichHandler(console=console, rich_tracebacks=True)],
)
logger = logging.getLogger(__name__)

LOG_SUFFIXES = (".evtc", ".zevtc")


def read_log_file(path: str) -> bytes:
    """
    Read the EVTC bytes of a log file.

    Compressed .zevtc logs are zip archives holding a single log entry.

    Raises:
        DecodeError: If a .zevtc file is not a valid archive
    """
    log_path = Path(path)
    if log_path.suffix.lower() == ".zevtc" or zipfile.is_zipfile(log_path):
        try:
            with zipfile.ZipFile(log_path) as archive:
                names = archive.namelist()
                if not names:
                    raise DecodeError(f"Archive {log_path.name} is empty")
                return archive.read(names[0])
        except zipfile.BadZipFile as e:
            raise DecodeError(f"Invalid log archive {log_path.name}: {e}") from e

    with open(log_path, "rb") as f:
        return f.read()


def find_log_files(directory: Path) -> list:
    """Find all log files below a directory."""
    return sorted(
        str(path) for path in directory.rglob("*") if path.is_file() and path.suffix.lower() in LOG_SUFFIXES
    )


def _result_markup(result: EncounterResult) -> str:
    color = {EncounterResult.SUCCESS: "green", EncounterResult.FAILURE: "red"}.get(result, "dim")
    return f"[{color}]{result.value.capitalize()}[/{color}]"


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option("--config", "config_path", type=click.Path(exists=True), help="YAML configuration file")
@click.pass_context
def cli(ctx, verbose, config_path):
    """EVTC Analytics - arcdps combat log processing"""
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    ctx.ensure_object(dict)
    try:
        ctx.obj["settings"] = load_settings(config_path)
    except EVTCAnalyticsError as e:
        raise click.ClickException(str(e)) from e


@cli.command()
@click.argument("log_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--output", "-o", help="Output file for results")
@click.option("--format", type=click.Choice(["json", "summary"]), default="summary")
@click.pass_context
def parse(ctx, log_file, output, format):
    """Parse a log and show its encounter, phases and statistics."""
    log_path = Path(log_file)
    console.print(f"[bold green]Parsing log:[/bold green] {log_path.name}")

    start_time = datetime.now()
    try:
        processed = process_log(read_log_file(log_file), ctx.obj["settings"])
    except EVTCAnalyticsError as e:
        raise click.ClickException(f"{log_path.name}: {e}") from e
    processing_time = (datetime.now() - start_time).total_seconds()

    if format == "json":
        data = json.dumps(processed.statistics.to_dict(), indent=2)
        if output:
            with open(output, "w") as f:
                f.write(data)
            console.print(f"[green]Exported statistics to {output}[/green]")
        else:
            click.echo(data)
        return

    display_summary(processed, processing_time)


def display_summary(processed: ProcessedLog, processing_time: float):
    """Display the summary of a processed log."""
    statistics = processed.statistics
    log = processed.log

    console.print("\n[bold cyan]═══ Parsing Complete ═══[/bold cyan]")

    stats_table = Table(title="Log", show_header=False)
    stats_table.add_column("Metric", style="cyan")
    stats_table.add_column("Value", style="white")

    stats_table.add_row("Encounter", statistics.encounter_name)
    stats_table.add_row("Result", _result_markup(statistics.encounter_result))
    stats_table.add_row("Duration", f"{statistics.fight_time_ms / 1000:.1f}s")
    stats_table.add_row("Recorded By", statistics.log_author or "-")
    stats_table.add_row("arcdps Version", f"EVTC{statistics.log_version}")
    stats_table.add_row("Total Events", f"{len(log.events):,}")
    stats_table.add_row("Processing Time", f"{processing_time:.2f}s")
    if log.flags.is_degraded:
        flags = ", ".join(f"{key}={value}" for key, value in log.flags.to_dict().items() if value)
        stats_table.add_row("Degraded Data", f"[yellow]{flags}[/yellow]")
    console.print(stats_table)

    phase_table = Table(title="\n[bold]Phases[/bold]")
    phase_table.add_column("Phase", width=16)
    phase_table.add_column("Start", justify="right")
    phase_table.add_column("Duration", justify="right")
    phase_table.add_column("Squad Target DPS", justify="right")
    for phase_stats in statistics.phase_stats:
        start, _ = phase_stats.phase.offset_range(log.fight_start)
        phase_table.add_row(
            phase_stats.phase.name,
            f"{start / 1000:.1f}s",
            f"{phase_stats.duration_ms / 1000:.1f}s",
            f"{phase_stats.squad_target_damage.damage.dps:,.0f}",
        )
    console.print(phase_table)

    if statistics.player_data:
        player_table = Table(title=f"\n[bold]Players ({len(statistics.player_data)})[/bold]")
        player_table.add_column("Grp", style="dim", width=3)
        player_table.add_column("Name", width=24)
        player_table.add_column("Account", width=20)
        player_table.add_column("Spec", width=14)
        player_table.add_column("Target DPS", justify="right")
        player_table.add_column("All DPS", justify="right")
        player_table.add_column("Downs", justify="right")
        player_table.add_column("Deaths", justify="right")

        players = sorted(statistics.player_data, key=lambda p: p.target_damage.total_damage, reverse=True)
        for player in players:
            spec = player.elite_specialization or player.profession
            player_table.add_row(
                str(player.subgroup),
                player.name[:24],
                player.account_name or "-",
                spec.name.capitalize() if spec else "-",
                f"{player.target_damage.dps:,.0f}",
                f"{player.damage.dps:,.0f}",
                str(player.downs) if player.downs else "-",
                str(player.deaths) if player.deaths else "-",
            )
        console.print(player_table)


@cli.command()
@click.argument("log_files", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option("--output", "-o", help="Output file for the rotation model")
@click.pass_context
def rotation(ctx, log_files, output):
    """Export player rotations of one or more logs as the comparison JSON model."""
    sources = []
    for log_file in log_files:
        try:
            processed = process_log(read_log_file(log_file), ctx.obj["settings"])
        except EVTCAnalyticsError as e:
            raise click.ClickException(f"{Path(log_file).name}: {e}") from e
        sources.append(
            RotationSource(
                log=processed.log,
                rotations=processed.rotations,
                log_name=Path(log_file).name,
                encounter_name=processed.encounter_name,
            )
        )

    data = RotationJsonWriter().write(sources)
    if output:
        with open(output, "w", encoding="utf-8") as f:
            f.write(data)
        console.print(f"[green]Exported rotations of {len(sources)} logs to {output}[/green]")
    else:
        click.echo(data)


@cli.command()
@click.argument("directory", type=click.Path(exists=True, file_okay=False))
@click.option(
    "--threads",
    default=None,
    type=int,
    help="Number of worker threads (default: CPU count)",
)
@click.pass_context
def batch(ctx, directory, threads):
    """Process every log below a directory."""
    log_files = find_log_files(Path(directory))
    if not log_files:
        console.print(f"[yellow]No logs found in {directory}[/yellow]")
        return

    processor = BatchProcessor(settings=ctx.obj["settings"], max_workers=threads)
    console.print(f"[cyan]Processing {len(log_files)} logs ({processor.max_workers} threads)[/cyan]")

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
        TimeRemainingColumn(),
        console=console,
    ) as progress:
        task = progress.add_task("[cyan]Processing...", total=len(log_files))
        # Ctrl-C cancels the queued logs inside process() and propagates
        result = processor.process(
            log_files, read_log_file, progress_callback=lambda identity, ok: progress.advance(task)
        )

    table = Table(title=f"\n[bold]Logs ({len(result.processed)})[/bold]")
    table.add_column("File", width=32)
    table.add_column("Encounter", width=24)
    table.add_column("Result", width=10)
    table.add_column("Duration", justify="right")
    table.add_column("Players", justify="right")

    for identity in log_files:
        processed = result.processed.get(identity)
        if processed is None:
            continue
        table.add_row(
            Path(identity).name[:32],
            processed.encounter_name[:24],
            _result_markup(processed.encounter_result),
            f"{processed.statistics.fight_time_ms / 1000:.1f}s",
            str(len(processed.statistics.player_data)),
        )
    console.print(table)

    for failure in result.failures:
        console.print(f"[red]Failed:[/red] {Path(failure.file_identity).name}: {failure.reason}")
    if result.cancelled:
        console.print(f"[yellow]Cancelled: {len(result.cancelled)} logs[/yellow]")


def main():
    """Entry point for the evtc-analytics command."""
    cli()


if __name__ == "__main__":
    main()
