"""
Configuration Management for Roundscope

Provides configuration loading from multiple sources:
- Default values
- Configuration files (YAML, TOML, JSON)
- Environment variables
- Command line arguments

Configuration precedence (highest to lowest):
1. Command line arguments
2. Environment variables (ROUNDSCOPE_*)
3. Configuration file
4. Default values
"""

import json
import logging
import logging.handlers
import os
import tomllib
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import yaml

from roundscope.core.constants import (
    BOMB_FUSE_SECONDS,
    CS2_TICK_RATE,
    REPLAY_EVENTS,
    SNAPSHOT_FIELDS,
    STATS_EVENTS,
)

logger = logging.getLogger(__name__)


# ============================================================================
# Configuration Dataclasses
# ============================================================================


@dataclass
class DecoderConfig:
    """What to request from the demo decoder."""

    snapshot_fields: list[str] = field(default_factory=lambda: list(SNAPSHOT_FIELDS))
    stats_events: list[str] = field(default_factory=lambda: list(STATS_EVENTS))
    replay_events: list[str] = field(default_factory=lambda: list(REPLAY_EVENTS))


@dataclass
class ReplayConfig:
    """Configuration for replay reconstruction and playback."""

    tick_rate: int = CS2_TICK_RATE
    fuse_seconds: float = BOMB_FUSE_SECONDS

    # Sampling interval (ticks) for single-round replays and ghost prefetch
    default_interval: int = 1
    prefetch_interval: int = 4

    # A player "is firing" when a shot falls in [tick - back, tick + forward]
    shot_window_back: int = 4
    shot_window_forward: int = 1

    # How long a tracer stays visible after a shot
    tracer_ticks: int = 12


@dataclass
class CacheConfig:
    """Configuration for the in-process memo cache."""

    # "sha256" (content hash) or "size" (file size only; stale on same-size edits)
    fingerprint: str = "sha256"
    max_entries: int = 32


@dataclass
class ApiConfig:
    """Configuration for the HTTP boundary."""

    demos_dir: str = "demos"
    cors_origins: list[str] = field(default_factory=lambda: ["*"])


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: str | None = None
    file_max_bytes: int = 10 * 1024 * 1024  # 10MB
    file_backup_count: int = 5


@dataclass
class RoundscopeConfig:
    """Main configuration container."""

    decoder: DecoderConfig = field(default_factory=DecoderConfig)
    replay: ReplayConfig = field(default_factory=ReplayConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    api: ApiConfig = field(default_factory=ApiConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Version of the config format
    config_version: str = "1.0"


_SECTIONS = ("decoder", "replay", "cache", "api", "logging")


# ============================================================================
# Configuration Loading
# ============================================================================


def get_default_config_paths() -> list[Path]:
    """Get the default paths to search for configuration files."""
    paths = []

    # Current directory
    paths.append(Path.cwd() / "roundscope.yaml")
    paths.append(Path.cwd() / "roundscope.toml")
    paths.append(Path.cwd() / "roundscope.json")
    paths.append(Path.cwd() / ".roundscope.yaml")

    # User home directory
    home = Path.home()
    paths.append(home / ".config" / "roundscope" / "config.yaml")
    paths.append(home / ".config" / "roundscope" / "config.toml")
    paths.append(home / ".roundscope.yaml")

    # XDG config directory
    xdg_config = os.environ.get("XDG_CONFIG_HOME", str(home / ".config"))
    paths.append(Path(xdg_config) / "roundscope" / "config.yaml")

    return paths


def load_yaml_config(path: Path) -> dict[str, Any]:
    """Load configuration from a YAML file."""
    with open(path) as f:
        return yaml.safe_load(f) or {}


def load_toml_config(path: Path) -> dict[str, Any]:
    """Load configuration from a TOML file."""
    with open(path, "rb") as f:
        return tomllib.load(f)


def load_json_config(path: Path) -> dict[str, Any]:
    """Load configuration from a JSON file."""
    with open(path) as f:
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


def load_env_config() -> dict[str, Any]:
    """Load configuration from environment variables."""
    config: dict[str, Any] = {}

    env_mappings: dict[str, tuple[str, str, type]] = {
        "ROUNDSCOPE_LOG_LEVEL": ("logging", "level", str),
        "ROUNDSCOPE_LOG_FILE": ("logging", "file", str),
        "ROUNDSCOPE_DEMOS_DIR": ("api", "demos_dir", str),
        "ROUNDSCOPE_TICK_RATE": ("replay", "tick_rate", int),
        "ROUNDSCOPE_PREFETCH_INTERVAL": ("replay", "prefetch_interval", int),
        "ROUNDSCOPE_CACHE_FINGERPRINT": ("cache", "fingerprint", str),
        "ROUNDSCOPE_CACHE_MAX_ENTRIES": ("cache", "max_entries", int),
    }

    for env_var, (section, key, value_type) in env_mappings.items():
        raw = os.environ.get(env_var)
        if raw is None:
            continue
        try:
            value = value_type(raw)
        except ValueError:
            logger.warning(f"Ignoring {env_var}={raw!r}: expected {value_type.__name__}")
            continue
        config.setdefault(section, {})[key] = value

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


def dict_to_config(data: dict[str, Any]) -> RoundscopeConfig:
    """Convert a dictionary to RoundscopeConfig. Unknown keys are ignored."""
    config = RoundscopeConfig()

    for section_name in _SECTIONS:
        values = data.get(section_name)
        if not isinstance(values, dict):
            continue
        section = getattr(config, section_name)
        for key, value in values.items():
            if hasattr(section, key):
                setattr(section, key, value)
            else:
                logger.debug(f"Ignoring unknown config key: {section_name}.{key}")

    if "config_version" in data:
        config.config_version = str(data["config_version"])

    return config


def load_config(config_file: Path | None = None, include_env: bool = True) -> RoundscopeConfig:
    """
    Load configuration from all sources.

    Args:
        config_file: Explicit path to a config file (optional)
        include_env: Whether to include environment variables

    Returns:
        Merged RoundscopeConfig
    """
    config_data: dict[str, Any] = {}

    # Try to find and load a config file
    if config_file:
        config_data = load_config_file(config_file)
        logger.info(f"Loaded config from: {config_file}")
    else:
        for path in get_default_config_paths():
            if path.exists():
                config_data = load_config_file(path)
                logger.info(f"Loaded config from: {path}")
                break

    # Merge environment variables
    if include_env:
        env_config = load_env_config()
        config_data = merge_configs(config_data, env_config)

    return dict_to_config(config_data)


# ============================================================================
# Configuration Saving
# ============================================================================


def save_config(config: RoundscopeConfig, path: Path) -> None:
    """
    Save configuration to a file.

    Args:
        config: Configuration to save
        path: Path to save to (YAML or JSON, detected from extension)
    """
    data = config_to_dict(config)
    suffix = path.suffix.lower()

    if suffix in (".yaml", ".yml"):
        with open(path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)
    elif suffix == ".json":
        with open(path, "w") as f:
            json.dump(data, f, indent=2)
    else:
        raise ValueError(f"Unknown config format: {suffix}")

    logger.info(f"Saved config to: {path}")


def config_to_dict(config: RoundscopeConfig) -> dict[str, Any]:
    """Convert RoundscopeConfig to a dictionary."""
    return asdict(config)


# ============================================================================
# Global Configuration
# ============================================================================

_global_config: RoundscopeConfig | None = None


def get_config() -> RoundscopeConfig:
    """Get the global configuration, loading it if necessary."""
    global _global_config

    if _global_config is None:
        _global_config = load_config()

    return _global_config


def set_config(config: RoundscopeConfig) -> None:
    """Set the global configuration."""
    global _global_config
    _global_config = config


def reset_config() -> None:
    """Reset the global configuration to defaults."""
    global _global_config
    _global_config = None


# ============================================================================
# Logging Setup
# ============================================================================


def setup_logging(config: LoggingConfig) -> None:
    """Configure the root logger from a LoggingConfig."""
    level = getattr(logging, str(config.level).upper(), logging.INFO)
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if config.file:
        handlers.append(
            logging.handlers.RotatingFileHandler(
                config.file,
                maxBytes=config.file_max_bytes,
                backupCount=config.file_backup_count,
            )
        )
    logging.basicConfig(level=level, format=config.format, handlers=handlers, force=True)


# ============================================================================
# Configuration Templates
# ============================================================================

DEFAULT_CONFIG_YAML = """# Roundscope Configuration

# Replay reconstruction settings
replay:
  tick_rate: 64
  fuse_seconds: 40.0
  default_interval: 1
  prefetch_interval: 4  # sampling interval for ghost overlay rounds
  shot_window_back: 4
  shot_window_forward: 1
  tracer_ticks: 12

# Memo cache settings
cache:
  fingerprint: sha256  # sha256 (content hash) or size
  max_entries: 32

# HTTP settings
api:
  demos_dir: demos
  cors_origins: ["*"]

# Logging settings
logging:
  level: INFO
  # file: /path/to/roundscope.log
"""


def generate_default_config(path: Path) -> None:
    """Generate a default configuration file."""
    suffix = path.suffix.lower()

    if suffix in (".yaml", ".yml"):
        path.write_text(DEFAULT_CONFIG_YAML)
    else:
        config = RoundscopeConfig()
        save_config(config, path)

    logger.info(f"Generated default config at: {path}")
