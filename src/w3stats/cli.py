"""
W3Stats CLI - Command Line Interface for Warcraft III Replay Libraries

Provides commands for:
- Browsing the replay library
- Analyzing single replays and converting whole folders
- Viewing per-player statistics
- Watching the library for new replays
"""

import json
import logging
import platform
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from w3stats import __version__
from w3stats.analysis.preview import build_preview, format_duration
from w3stats.analysis.stats import hero_usage, player_rankings, race_breakdown, win_rate
from w3stats.core.config import (
    configure_logging,
    generate_default_config,
    get_config,
    load_config,
    set_config,
)
from w3stats.core.errors import W3StatsError
from w3stats.infra.cache import ConversionOutcome, ConversionResult
from w3stats.infra.watcher import ReplayWatcher
from w3stats.library.service import ReplayLibrary

app = typer.Typer(
    name="w3stats",
    help="Warcraft III replay library - cached analyses and per-player statistics",
    add_completion=False,
)
console = Console()

logger = logging.getLogger(__name__)


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(f"[bold blue]W3Stats[/bold blue] v{__version__}")
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
    replay_root: Optional[Path] = typer.Option(
        None,
        "--replay-root",
        "-r",
        help="Replay folder (overrides the configured library root)",
        file_okay=False,
    ),
) -> None:
    """W3Stats - Warcraft III Replay Library"""
    config = load_config(config_file) if config_file else get_config()
    if replay_root is not None:
        config.library.replay_root = str(replay_root)
    set_config(config)
    configure_logging(config.logging, verbose=verbose)


def _open_library() -> ReplayLibrary:
    try:
        return ReplayLibrary.from_config(get_config())
    except W3StatsError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


def _format_size(size: Optional[int]) -> str:
    if size is None:
        return ""
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.1f} MB"


def _player_label(player: dict[str, Any]) -> str:
    name = player.get("normalizedName") or player.get("name") or "?"
    race = player.get("raceDetected") or player.get("race") or "?"
    return f"{name} ({race})"


# =============================================================================
# Library Commands
# =============================================================================


@app.command()
def browse(
    path: str = typer.Argument("", help="Folder relative to the replay root"),
) -> None:
    """
    List a folder of the replay library.

    Analyzed replays show their map, duration and winners.
    """
    library = _open_library()
    try:
        listing = library.browse(path)
    except W3StatsError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    title = f"/{listing['currentPath']}" if listing["currentPath"] else "/"
    table = Table(title=f"Replays in {title}")
    table.add_column("Name", style="cyan")
    table.add_column("Size", justify="right")
    table.add_column("Map")
    table.add_column("Duration", justify="right")
    table.add_column("Winners", style="green")

    for item in listing["items"]:
        if item["type"] == "folder":
            table.add_row(f"[bold]{item['name']}/[/bold]", "", "", "", "")
            continue

        preview = item.get("preview")
        if preview is None:
            status = "[dim]not analyzed[/dim]" if not item["hasAnalysis"] else "[red]unreadable[/red]"
            table.add_row(item["name"], _format_size(item["size"]), status, "", "")
            continue

        game = preview["gameInfo"]
        table.add_row(
            item["name"],
            _format_size(item["size"]),
            game["map"],
            format_duration(game["duration"]),
            ", ".join(w.get("normalizedName") or w.get("name") or "?" for w in preview["winners"]),
        )

    console.print(table)
    if not listing["items"]:
        console.print("[yellow]Folder is empty[/yellow]")


@app.command()
def analyze(
    replay: Path = typer.Argument(
        ...,
        help="Replay file (absolute, or relative to the replay root)",
        dir_okay=False,
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the full analysis as JSON"),
) -> None:
    """
    Analyze one replay, reusing its cached analysis when it is fresh.
    """
    library = _open_library()

    try:
        replay_path = replay if replay.is_absolute() else library.resolve_file(str(replay))
        record = library.cache.load(replay_path)
    except W3StatsError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if as_json:
        console.print_json(json.dumps(record))
        return

    preview = build_preview(record, library.aliases, library.map_extensions)
    if preview is None:
        console.print("[yellow]Analysis has no game section to summarize[/yellow]")
        return

    game = preview["gameInfo"]
    console.print(
        Panel(
            f"[cyan]Map:[/cyan] {game['map']}\n"
            f"[cyan]Duration:[/cyan] {format_duration(game['duration'])}\n"
            f"[cyan]Players:[/cyan] {game['playerCount']}\n"
            f"[cyan]Winning team:[/cyan] {game['winnerTeam']}",
            title=f"[bold blue]{replay_path.name}[/bold blue]",
            expand=False,
        )
    )

    table = Table(title="Players")
    table.add_column("Player", style="cyan")
    table.add_column("Team", justify="right")
    table.add_column("Color")
    table.add_column("APM", justify="right")
    table.add_column("Result")

    winner_team = game["winnerTeam"]
    for player in preview["players"]:
        won = player["team"] == winner_team
        table.add_row(
            _player_label(player),
            str(player["team"]),
            player["color"] or "",
            str(player["apm"]),
            "[green]Win[/green]" if won else "[red]Loss[/red]",
        )
    console.print(table)


@app.command()
def convert(
    path: str = typer.Argument("", help="Folder relative to the replay root"),
) -> None:
    """
    Analyze every replay under a folder whose analysis is missing or stale.
    """
    library = _open_library()

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        progress.add_task("Converting replays...", total=None)
        try:
            summary = library.convert(path)
        except W3StatsError as e:
            console.print(f"[red]Error:[/red] {e}")
            raise typer.Exit(1)

    table = Table(title="Conversion Summary", show_header=False)
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Total", str(summary.total))
    table.add_row("Converted", str(summary.converted))
    table.add_row("Up to date", str(summary.skipped))
    table.add_row("Errors", f"[red]{summary.failed}[/red]" if summary.failed else "0")
    console.print(table)


# =============================================================================
# Statistics
# =============================================================================


@app.command()
def stats(
    player: Optional[str] = typer.Option(
        None, "--player", "-p", help="Show the race and hero breakdown of one player"
    ),
    race: Optional[str] = typer.Option(
        None, "--race", help="Restrict hero usage to one race (with --player)"
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the raw aggregates as JSON"),
) -> None:
    """
    Show per-player statistics across every analyzed replay.
    """
    library = _open_library()
    dashboard = library.statistics()

    if as_json:
        console.print_json(json.dumps(dashboard.to_dict()))
        return

    if player is None:
        table = Table(title=f"Player Rankings ({dashboard.total_games} games)")
        table.add_column("#", justify="right")
        table.add_column("Player", style="cyan")
        table.add_column("Wins", justify="right", style="green")
        table.add_column("Losses", justify="right", style="red")
        table.add_column("Games", justify="right")
        table.add_column("Win Rate", justify="right")
        for rank, row in enumerate(player_rankings(dashboard), start=1):
            table.add_row(
                str(rank),
                row["name"],
                str(row["wins"]),
                str(row["losses"]),
                str(row["totalGames"]),
                f"{row['winRate']:.1f}%",
            )
        console.print(table)
        return

    canonical = library.aliases.normalize(player)
    aggregate = dashboard.player_stats.get(canonical)
    if aggregate is None:
        console.print(f"[red]Error:[/red] No games found for player {player}")
        raise typer.Exit(1)

    console.print(
        f"\n[bold blue]{canonical}[/bold blue] - {aggregate.wins}W / {aggregate.losses}L "
        f"({win_rate(aggregate.wins, aggregate.games):.1f}%)\n"
    )

    race_table = Table(title="Races")
    race_table.add_column("Race", style="cyan")
    race_table.add_column("Wins", justify="right", style="green")
    race_table.add_column("Losses", justify="right", style="red")
    race_table.add_column("Win Rate", justify="right")
    for row in race_breakdown(dashboard, canonical):
        race_table.add_row(row["race"], str(row["wins"]), str(row["losses"]), f"{row['winRate']:.1f}%")
    console.print(race_table)

    hero_rows = hero_usage(dashboard, canonical, race)
    if hero_rows:
        hero_table = Table(title=f"Heroes ({race})" if race else "Heroes")
        hero_table.add_column("Hero", style="cyan")
        hero_table.add_column("Games", justify="right")
        hero_table.add_column("Share", justify="right")
        for row in hero_rows:
            hero_table.add_row(row["hero"], str(row["games"]), f"{row['percentage']:.1f}%")
        console.print(hero_table)


# =============================================================================
# Watcher
# =============================================================================


@app.command()
def watch(
    convert_existing: bool = typer.Option(
        True,
        "--convert-existing/--no-convert-existing",
        help="Convert replays already in the library before watching",
    ),
) -> None:
    """
    Watch the replay library and analyze new replays as they appear.
    """
    config = get_config()
    library = _open_library()

    console.print("\n[bold blue]W3Stats[/bold blue] - Watching for replays\n")
    console.print(f"[cyan]Folder:[/cyan] {library.root}")
    console.print("\nPress [bold]Ctrl+C[/bold] to stop...\n")

    watcher = ReplayWatcher(
        library.root,
        library.cache,
        recursive=config.watcher.recursive,
        debounce_seconds=config.watcher.debounce_seconds,
        min_file_size=config.watcher.min_file_size_bytes,
    )

    if convert_existing:
        existing = watcher.scan_existing()
        if existing:
            console.print(f"[yellow]Found {len(existing)} existing replay(s)[/yellow]")
            library.ensure_root()
            summary = library.convert()
            console.print(
                f"Converted {summary.converted}, up to date {summary.skipped}, "
                f"errors {summary.failed}\n"
            )

    @watcher.on_new_replay
    def report(result: ConversionResult) -> None:
        name = result.replay_path.name
        if result.outcome is ConversionOutcome.CONVERTED:
            console.print(f"[green]Analyzed:[/green] {name}")
        elif result.outcome is ConversionOutcome.REUSED:
            console.print(f"[dim]Up to date:[/dim] {name}")
        else:
            console.print(f"[red]Failed:[/red] {name} - {result.error}")

    try:
        watcher.start(blocking=True)
    except KeyboardInterrupt:
        console.print("\n[yellow]Stopping watcher...[/yellow]")
        watcher.stop()


# =============================================================================
# Environment
# =============================================================================


@app.command()
def info() -> None:
    """
    Display information about W3Stats and the configured library.
    """
    config = get_config()

    console.print(f"\n[bold blue]W3Stats[/bold blue] v{__version__}\n")

    table = Table(show_header=False)
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Python", platform.python_version())
    table.add_row("Platform", platform.system())

    root = config.replay_root
    folder_status = "[green]exists[/green]" if root.is_dir() else "[yellow]not found[/yellow]"
    table.add_row("Replay Folder", f"{root} ({folder_status})")
    table.add_row("Decoder", config.decoder.provider or "[yellow]not configured[/yellow]")
    table.add_row("Inline Aliases", str(len(config.players.aliases)))
    if config.players.aliases_file:
        table.add_row("Aliases File", config.players.aliases_file)
    table.add_row("Web Server", f"http://{config.server.host}:{config.server.port}")

    console.print(table)


@app.command("init-config")
def init_config(
    path: Path = typer.Argument(Path("w3stats.yaml"), help="Where to write the config file"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing file"),
) -> None:
    """
    Write a default configuration file.
    """
    if path.exists() and not force:
        console.print(f"[red]Error:[/red] {path} already exists (use --force to overwrite)")
        raise typer.Exit(1)

    generate_default_config(path)
    console.print(f"[green]Wrote default config to[/green] {path}")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
