"""
Configuration management for notesweep.

The configuration is stored as a TOML file in the notesweep home directory.
It selects the item store backend and the engine's batch and cache settings.
API keys are never written to the file; they come from the environment.
"""

import os
import tomllib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import tomli_w

from .item_store import DEFAULT_BATCH_SIZE


CONFIG_FILENAME = "notesweep.toml"
CONFIG_VERSION = 1

HOME_ENV = "NOTESWEEP_HOME"
API_URL_ENV = "NOTESWEEP_API_URL"
API_KEY_ENV = "NOTESWEEP_API_KEY"


@dataclass
class RemoteConfig:
    """Connection settings for the remote item API."""
    api_url: str
    api_key: Optional[str] = None


@dataclass
class SweepConfig:
    """Complete notesweep configuration."""
    path: Path
    version: int = CONFIG_VERSION
    created: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    backend: str = "local"
    batch_size: int = DEFAULT_BATCH_SIZE
    max_workers: int = 1

    cache_enabled: bool = True
    cache_ttl: float = 300.0

    remote: Optional[RemoteConfig] = None

    @property
    def config_path(self) -> Path:
        """Path to the TOML config file."""
        return self.path / CONFIG_FILENAME

    @property
    def db_path(self) -> Path:
        """SQLite file used by the local backend."""
        return self.path / "items.db"

    @property
    def cache_dir(self) -> Path:
        return self.path / "cache"

    def exists(self) -> bool:
        """Check if config file exists."""
        return self.config_path.exists()


def get_home_dir() -> Path:
    """Resolve the notesweep home directory (NOTESWEEP_HOME or ~/.notesweep)."""
    home = os.environ.get(HOME_ENV)
    if home:
        return Path(home).expanduser()
    return Path.home() / ".notesweep"


def _apply_env(config: SweepConfig) -> SweepConfig:
    """Overlay remote settings from the environment."""
    api_url = os.environ.get(API_URL_ENV)
    api_key = os.environ.get(API_KEY_ENV)
    if api_url:
        config.remote = RemoteConfig(api_url=api_url, api_key=config.remote.api_key if config.remote else None)
    if api_key and config.remote:
        config.remote.api_key = api_key
    return config


def _validate(config: SweepConfig) -> None:
    if config.batch_size < 1:
        raise ValueError(f"store.batch_size must be at least 1 (got {config.batch_size})")
    if config.max_workers < 1:
        raise ValueError(f"store.max_workers must be at least 1 (got {config.max_workers})")
    if config.backend == "remote" and config.remote is None:
        raise ValueError(
            f"backend = 'remote' needs [remote] api_url in {CONFIG_FILENAME} or {API_URL_ENV}"
        )


def load_config(home: Path) -> SweepConfig:
    """
    Load configuration from a home directory.

    Raises:
        FileNotFoundError: If config doesn't exist
        ValueError: If config is invalid
    """
    config_path = home / CONFIG_FILENAME

    if not config_path.exists():
        raise FileNotFoundError(f"Config not found: {config_path}")

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    store = data.get("store", {})
    version = store.get("version", 1)
    if version > CONFIG_VERSION:
        raise ValueError(f"Config version {version} is newer than supported ({CONFIG_VERSION})")

    cache = data.get("cache", {})
    remote_section = data.get("remote")
    remote = None
    if remote_section and remote_section.get("api_url"):
        remote = RemoteConfig(api_url=remote_section["api_url"])

    config = SweepConfig(
        path=home,
        version=version,
        created=store.get("created", ""),
        backend=store.get("backend", "local"),
        batch_size=int(store.get("batch_size", DEFAULT_BATCH_SIZE)),
        max_workers=int(store.get("max_workers", 1)),
        cache_enabled=bool(cache.get("enabled", True)),
        cache_ttl=float(cache.get("ttl", 300.0)),
        remote=remote,
    )
    _apply_env(config)
    _validate(config)
    return config


def save_config(config: SweepConfig) -> None:
    """
    Save configuration to the home directory.

    Creates the directory if it doesn't exist. The API key is not saved.
    """
    config.path.mkdir(parents=True, exist_ok=True)

    data: dict[str, Any] = {
        "store": {
            "version": config.version,
            "created": config.created,
            "backend": config.backend,
            "batch_size": config.batch_size,
            "max_workers": config.max_workers,
        },
        "cache": {
            "enabled": config.cache_enabled,
            "ttl": config.cache_ttl,
        },
    }
    if config.remote:
        data["remote"] = {"api_url": config.remote.api_url}

    with open(config.config_path, "wb") as f:
        tomli_w.dump(data, f)


def load_or_create_config(home: Optional[Path] = None) -> SweepConfig:
    """
    Load existing config or create a new one with defaults.

    This is the main entry point for config management.
    """
    home = home or get_home_dir()
    if (home / CONFIG_FILENAME).exists():
        return load_config(home)
    config = SweepConfig(path=home)
    save_config(config)
    _apply_env(config)
    return config
