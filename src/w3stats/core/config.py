"""
Configuration Management for W3Stats

Provides configuration loading from multiple sources:
- Default values
- Configuration files (YAML, TOML, JSON)
- Environment variables
- Command line arguments

Configuration precedence (highest to lowest):
1. Command line arguments
2. Environment variables (W3STATS_*)
3. Configuration file
4. Default values
"""

import json
import logging
import os
import tomllib
from dataclasses import asdict, dataclass, field
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import yaml

from w3stats.core.constants import (
    ANALYSIS_SUFFIX,
    ARTIFACT_JSON_INDENT,
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEFAULT_REPLAY_ROOT,
    MAP_EXTENSIONS,
    REPLAY_SUFFIX,
)

logger = logging.getLogger(__name__)


# ============================================================================
# Configuration Dataclasses
# ============================================================================


@dataclass
class LibraryConfig:
    """Configuration for the replay library on disk."""

    replay_root: str = DEFAULT_REPLAY_ROOT
    replay_suffix: str = REPLAY_SUFFIX
    analysis_suffix: str = ANALYSIS_SUFFIX
    map_extensions: list[str] = field(default_factory=lambda: list(MAP_EXTENSIONS))
    json_indent: int = ARTIFACT_JSON_INDENT

    # Run a bulk conversion over the whole library when the API starts
    convert_on_startup: bool = True


@dataclass
class DecoderConfig:
    """Configuration for the external replay decoder."""

    # Dotted path "package.module:callable"; the callable takes a replay
    # path and returns the decoded record as a dict
    provider: str | None = None


@dataclass
class PlayersConfig:
    """Player identity configuration."""

    # alias -> canonical name, matched case-insensitively
    aliases: dict[str, str] = field(default_factory=dict)

    # Optional JSON file with more aliases; inline aliases win on conflict
    aliases_file: str | None = None


@dataclass
class WatcherConfig:
    """Configuration for the replay folder watcher."""

    min_file_size_bytes: int = 1024
    debounce_seconds: float = 2.0
    recursive: bool = True


@dataclass
class ServerConfig:
    """Configuration for the web server."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    log_level: str = "info"


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: str | None = None
    file_max_bytes: int = 10 * 1024 * 1024  # 10MB
    file_backup_count: int = 5


@dataclass
class W3StatsConfig:
    """Main configuration container."""

    library: LibraryConfig = field(default_factory=LibraryConfig)
    decoder: DecoderConfig = field(default_factory=DecoderConfig)
    players: PlayersConfig = field(default_factory=PlayersConfig)
    watcher: WatcherConfig = field(default_factory=WatcherConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Version of the config format
    config_version: str = "1.0"

    @property
    def replay_root(self) -> Path:
        """Absolute path of the browsing root."""
        return Path(self.library.replay_root).expanduser().resolve()


# ============================================================================
# Configuration Loading
# ============================================================================


def get_default_config_paths() -> list[Path]:
    """Get the default paths to search for configuration files."""
    paths = []

    # Current directory
    paths.append(Path.cwd() / "w3stats.yaml")
    paths.append(Path.cwd() / "w3stats.toml")
    paths.append(Path.cwd() / "w3stats.json")
    paths.append(Path.cwd() / ".w3stats.yaml")

    # User home directory
    home = Path.home()
    xdg_config = os.environ.get("XDG_CONFIG_HOME", str(home / ".config"))
    paths.append(Path(xdg_config) / "w3stats" / "config.yaml")
    paths.append(Path(xdg_config) / "w3stats" / "config.toml")
    paths.append(home / ".w3stats.yaml")

    return paths


def load_yaml_config(path: Path) -> dict[str, Any]:
    """Load configuration from a YAML file."""
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_toml_config(path: Path) -> dict[str, Any]:
    """Load configuration from a TOML file."""
    with open(path, "rb") as f:
        return tomllib.load(f)


def load_json_config(path: Path) -> dict[str, Any]:
    """Load configuration from a JSON file."""
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def load_config_file(path: Path) -> dict[str, Any]:
    """Load configuration from a file, detecting format from extension."""
    if not path.exists():
        return {}

    suffix = path.suffix.lower()
    if suffix in (".yaml", ".yml"):
        return load_yaml_config(path)
    elif suffix == ".toml":
        return load_toml_config(path)
    elif suffix == ".json":
        return load_json_config(path)
    else:
        logger.warning(f"Unknown config file format: {suffix}")
        return {}


ENV_MAPPINGS = {
    "W3STATS_REPLAY_ROOT": ("library", "replay_root"),
    "W3STATS_CONVERT_ON_STARTUP": ("library", "convert_on_startup"),
    "W3STATS_DECODER": ("decoder", "provider"),
    "W3STATS_ALIASES_FILE": ("players", "aliases_file"),
    "W3STATS_HOST": ("server", "host"),
    "W3STATS_PORT": ("server", "port"),
    "W3STATS_LOG_LEVEL": ("logging", "level"),
    "W3STATS_LOG_FILE": ("logging", "file"),
}

# Settings that must stay strings even when they look like numbers
_STRING_SETTINGS = {
    ("library", "replay_root"),
    ("decoder", "provider"),
    ("players", "aliases_file"),
    ("server", "host"),
    ("logging", "file"),
}


def load_env_config() -> dict[str, Any]:
    """Load configuration from environment variables."""
    config: dict[str, Any] = {}

    for env_var, (section, key) in ENV_MAPPINGS.items():
        value: Any = os.environ.get(env_var)
        if value is None:
            continue

        config.setdefault(section, {})

        if (section, key) not in _STRING_SETTINGS:
            # Type conversion
            if value.lower() in ("true", "false"):
                value = value.lower() == "true"
            elif value.isdigit():
                value = int(value)
            else:
                try:
                    value = float(value)
                except ValueError:
                    pass

        config[section][key] = value

    return config


def merge_configs(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge two configuration dictionaries."""
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_configs(result[key], value)
        else:
            result[key] = value

    return result


def dict_to_config(data: dict[str, Any]) -> W3StatsConfig:
    """Convert a dictionary to W3StatsConfig, ignoring unknown keys."""
    config = W3StatsConfig()

    for section_name in ("library", "decoder", "players", "watcher", "server", "logging"):
        section_data = data.get(section_name)
        if not isinstance(section_data, dict):
            continue
        section = getattr(config, section_name)
        for key, value in section_data.items():
            if hasattr(section, key):
                setattr(section, key, value)
            else:
                logger.warning(f"Ignoring unknown config key: {section_name}.{key}")

    return config


def load_config(config_file: Path | None = None, include_env: bool = True) -> W3StatsConfig:
    """
    Load configuration from all sources.

    Args:
        config_file: Explicit path to a config file (optional)
        include_env: Whether to include environment variables

    Returns:
        Merged W3StatsConfig
    """
    config_data: dict[str, Any] = {}

    if config_file:
        config_data = load_config_file(config_file)
        logger.info(f"Loaded config from: {config_file}")
    else:
        for path in get_default_config_paths():
            if path.exists():
                config_data = load_config_file(path)
                logger.info(f"Loaded config from: {path}")
                break

    if include_env:
        config_data = merge_configs(config_data, load_env_config())

    return dict_to_config(config_data)


# ============================================================================
# Configuration Saving
# ============================================================================


def config_to_dict(config: W3StatsConfig) -> dict[str, Any]:
    """Convert W3StatsConfig to a dictionary."""
    return asdict(config)


def save_config(config: W3StatsConfig, path: Path) -> None:
    """
    Save configuration to a file.

    Args:
        config: Configuration to save
        path: Path to save to (YAML or JSON, detected from extension)
    """
    data = config_to_dict(config)
    suffix = path.suffix.lower()

    if suffix in (".yaml", ".yml"):
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
    elif suffix == ".json":
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
    else:
        raise ValueError(f"Unsupported config format for saving: {suffix}")

    logger.info(f"Saved config to: {path}")


# ============================================================================
# Logging Setup
# ============================================================================


def configure_logging(logging_config: LoggingConfig, verbose: bool = False) -> None:
    """Apply the logging section to the root logger."""
    level = logging.DEBUG if verbose else getattr(logging, logging_config.level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=logging_config.format, force=True)

    if logging_config.file:
        handler = RotatingFileHandler(
            logging_config.file,
            maxBytes=logging_config.file_max_bytes,
            backupCount=logging_config.file_backup_count,
            encoding="utf-8",
        )
        handler.setFormatter(logging.Formatter(logging_config.format))
        logging.getLogger().addHandler(handler)


# ============================================================================
# Global Configuration
# ============================================================================

_global_config: W3StatsConfig | None = None


def get_config() -> W3StatsConfig:
    """Get the global configuration, loading it if necessary."""
    global _global_config

    if _global_config is None:
        _global_config = load_config()

    return _global_config


def set_config(config: W3StatsConfig) -> None:
    """Set the global configuration."""
    global _global_config
    _global_config = config


def reset_config() -> None:
    """Reset the global configuration to defaults."""
    global _global_config
    _global_config = None


# ============================================================================
# Configuration Templates
# ============================================================================

DEFAULT_CONFIG_YAML = """# W3Stats Configuration

# Replay library
library:
  replay_root: replay
  replay_suffix: .w3g
  analysis_suffix: .w3g_analysis.json
  json_indent: 2
  convert_on_startup: true

# External replay decoder ("package.module:callable")
decoder:
  # provider: mydecoder.w3g:parse_replay

# Player identity: map name variations to one canonical name
players:
  aliases:
    NekoChan: Neko
  # aliases_file: /path/to/aliases.json

# Replay folder watcher
watcher:
  min_file_size_bytes: 1024
  debounce_seconds: 2.0
  recursive: true

# Web server
server:
  host: 127.0.0.1
  port: 3000
  log_level: info

# Logging settings
logging:
  level: INFO
  # file: /path/to/w3stats.log
"""


def generate_default_config(path: Path) -> None:
    """Generate a default configuration file."""
    suffix = path.suffix.lower()

    if suffix in (".yaml", ".yml"):
        path.write_text(DEFAULT_CONFIG_YAML, encoding="utf-8")
    else:
        save_config(W3StatsConfig(), path)

    logger.info(f"Generated default config at: {path}")
