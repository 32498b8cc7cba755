"""
Roundscope CLI - Command Line Interface

Provides commands for:
- Printing a demo's scoreboard and round history
- Exporting a round's replay data
- Generating a default configuration file
"""

import json
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from roundscope import __version__
from roundscope.analysis.models import MatchStats
from roundscope.core.config import (
    generate_default_config,
    get_config,
    load_config,
    set_config,
    setup_logging,
)
from roundscope.core.decoder import DemoDecodeError
from roundscope.service import DemoService, InvalidDemoNameError, RoundNotFoundError

app = typer.Typer(
    name="roundscope",
    help="CS2 demo scoreboards and round replays",
    add_completion=False,
)
console = Console()

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(f"[bold blue]Roundscope[/bold blue] v{__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-V", help="Enable verbose output"),
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Configuration file (YAML, TOML or JSON)",
        exists=True,
        dir_okay=False,
    ),
) -> None:
    """Roundscope - CS2 scoreboards and round replays"""
    if config_file is not None:
        set_config(load_config(config_file))
        setup_logging(get_config().logging)
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)


def _service_for(demo_path: Path) -> DemoService:
    return DemoService(demo_path.parent, config=get_config())


def _print_scoreboard(header: dict, stats: MatchStats) -> None:
    info_table = Table(title="Demo Information", show_header=False)
    info_table.add_column("Property", style="cyan")
    info_table.add_column("Value", style="green")
    info_table.add_row("Map", str(header.get("map_name", "unknown")))
    info_table.add_row("Server", str(header.get("server_name", "")))
    info_table.add_row("Duration", f"{header.get('playback_time', 0.0):.1f} seconds")
    info_table.add_row("Rounds", str(stats.total_rounds))
    console.print(info_table)
    console.print()

    score = stats.to_dict()["score"]
    console.print(
        f"[bold]Score[/bold]  [blue]Started CT[/blue] {score['ct']} - {score['t']} [yellow]Started T[/yellow]\n"
    )

    player_table = Table(title="Scoreboard")
    player_table.add_column("Player", style="cyan")
    player_table.add_column("Side")
    player_table.add_column("K", justify="right")
    player_table.add_column("D", justify="right")
    player_table.add_column("A", justify="right")
    player_table.add_column("K/D", justify="right")
    player_table.add_column("HS%", justify="right")
    player_table.add_column("ADR", justify="right", style="green")
    for player in stats.leaderboard():
        player_table.add_row(
            player.name,
            player.starting_side.label if player.starting_side else "-",
            str(player.kills),
            str(player.deaths),
            str(player.assists),
            f"{player.kd_ratio:.2f}",
            f"{player.headshot_pct:.0f}%",
            f"{player.adr:.1f}",
        )
    console.print(player_table)
    console.print()

    round_table = Table(title="Round History")
    round_table.add_column("Round", justify="right")
    round_table.add_column("Winner")
    round_table.add_column("Credited To")
    round_table.add_column("Reason")
    round_table.add_column("Ticks", style="dim")
    for record in stats.rounds:
        round_table.add_row(
            str(record.round_num),
            record.winner.label,
            f"started {record.scoring_side.label}",
            record.reason_text,
            f"{record.start_tick}-{record.end_tick}",
        )
    console.print(round_table)


@app.command()
def stats(
    demo_path: Path = typer.Argument(
        ...,
        help="Path to the .dem file",
        exists=True,
        dir_okay=False,
        resolve_path=True,
    ),
    json_output: Optional[Path] = typer.Option(
        None,
        "--json",
        "-j",
        help="Also write the statistics as JSON to this file",
    ),
) -> None:
    """
    Show the scoreboard and round history of a demo.

    Round wins are credited to the team by starting side, so the score
    stays correct across halftime and overtime side swaps.
    """
    service = _service_for(demo_path)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task("Parsing demo file...", total=None)
        try:
            header, match = service.get_match(demo_path.name)
        except (DemoDecodeError, InvalidDemoNameError, ImportError) as e:
            console.print(f"[red]Error parsing demo:[/red] {e}")
            raise typer.Exit(1)
        progress.update(task, description="Demo parsed successfully!")

    _print_scoreboard(header, match)

    if json_output:
        with open(json_output, "w") as f:
            json.dump({"header": header, "match_stats": match.to_dict()}, f, indent=2, default=str)
        console.print(f"\n[green]Statistics written to:[/green] {json_output}")


@app.command()
def replay(
    demo_path: Path = typer.Argument(
        ...,
        help="Path to the .dem file",
        exists=True,
        dir_okay=False,
        resolve_path=True,
    ),
    round_num: int = typer.Option(..., "--round", "-r", help="Round number (1-based)"),
    interval: Optional[int] = typer.Option(
        None,
        "--interval",
        "-i",
        help="Sample every Nth tick (default from config)",
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Write the replay data as JSON to this file",
    ),
) -> None:
    """
    Build the replay data for one round.

    Prints a summary; with --output writes positions, kills, shots,
    grenades and bomb events as JSON.
    """
    service = _service_for(demo_path)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task(f"Building replay for round {round_num}...", total=None)
        try:
            round_replay = service.get_replay_for_round(demo_path.name, round_num, interval)
        except RoundNotFoundError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(1)
        except (DemoDecodeError, InvalidDemoNameError, ImportError) as e:
            console.print(f"[red]Error parsing demo:[/red] {e}")
            raise typer.Exit(1)
        progress.update(task, description="Replay built!")

    table = Table(title=f"Round {round_num} Replay", show_header=False)
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Ticks", f"{round_replay.start_tick}-{round_replay.end_tick} (every {round_replay.interval})")
    table.add_row("Duration", f"{round_replay.duration:.1f} seconds")
    table.add_row("Samples", str(len(round_replay.snapshots)))
    table.add_row("Kills", str(len(round_replay.kills)))
    table.add_row("Shots", str(len(round_replay.shots)))
    table.add_row("Grenades", str(len(round_replay.grenades)))
    table.add_row("Bomb events", str(len(round_replay.bomb_events)))
    console.print(table)

    if output:
        with open(output, "w") as f:
            json.dump(round_replay.to_dict(), f)
        console.print(f"\n[green]Replay written to:[/green] {output}")


@app.command()
def config(
    init: Optional[Path] = typer.Option(
        None,
        "--init",
        help="Write a default configuration file to this path",
    ),
) -> None:
    """Generate or show configuration."""
    if init is not None:
        if init.exists():
            console.print(f"[red]File already exists:[/red] {init}")
            raise typer.Exit(1)
        generate_default_config(init)
        console.print(f"[green]Default configuration written to:[/green] {init}")
        return

    current = get_config()
    table = Table(title="Current Configuration", show_header=False)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Tick rate", str(current.replay.tick_rate))
    table.add_row("Bomb fuse", f"{current.replay.fuse_seconds}s")
    table.add_row("Prefetch interval", str(current.replay.prefetch_interval))
    table.add_row("Cache fingerprint", current.cache.fingerprint)
    table.add_row("Cache entries", str(current.cache.max_entries))
    table.add_row("Demos directory", current.api.demos_dir)
    table.add_row("Log level", current.logging.level)
    console.print(table)


if __name__ == "__main__":
    app()
