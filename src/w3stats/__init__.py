"""
W3Stats - Warcraft III Replay Library and Player Statistics

Browses a folder tree of .w3g replays, keeps a JSON analysis next to each
replay, and aggregates per-player win/loss, race and hero statistics across
every analyzed game.

Usage:
    from w3stats import ReplayLibrary, load_config

    library = ReplayLibrary.from_config(load_config())
    library.convert()

    stats = library.statistics()
    for name, player in stats.player_stats.items():
        print(f"{name}: {player.wins}W {player.losses}L")
"""

__version__ = "0.1.0"
__author__ = "W3Stats Contributors"


def __getattr__(name):
    """Lazy import for heavier submodules."""
    if name == "ReplayLibrary":
        from w3stats.library.service import ReplayLibrary
        return ReplayLibrary
    elif name == "AnalysisCache":
        from w3stats.infra.cache import AnalysisCache
        return AnalysisCache
    elif name == "NameAliasTable":
        from w3stats.analysis.identity import NameAliasTable
        return NameAliasTable
    elif name == "aggregate_statistics":
        from w3stats.analysis.stats import aggregate_statistics
        return aggregate_statistics
    elif name == "load_config":
        from w3stats.core.config import load_config
        return load_config
    elif name == "ReplayWatcher":
        from w3stats.infra.watcher import ReplayWatcher
        return ReplayWatcher
    raise AttributeError(f"module 'w3stats' has no attribute '{name}'")


__all__ = [
    "__version__",
    "ReplayLibrary",
    "AnalysisCache",
    "NameAliasTable",
    "aggregate_statistics",
    "load_config",
    "ReplayWatcher",
]
