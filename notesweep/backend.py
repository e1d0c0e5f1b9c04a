"""
Pluggable item store factory.

Creates the item store named by configuration. The local backend uses
SQLite, the remote backend the HTTP sync API. External backends register
via the ``notesweep.backends`` entry point group.

External backend packages provide a factory function::

    def create_item_store(config: SweepConfig) -> ItemStoreProtocol:
        ...

and register it in their pyproject.toml::

    [project.entry-points."notesweep.backends"]
    my-backend = "my_package.backend:create_item_store"
"""

from typing import Optional

from .api import Sweeper
from .config import API_KEY_ENV, SweepConfig
from .protocol import ItemStoreProtocol
from .snapshot import SnapshotCache


def create_item_store(config: SweepConfig) -> ItemStoreProtocol:
    """
    Create the item store from configuration.

    ``backend = "local"`` (default) opens the SQLite store in the home
    directory; ``"remote"`` connects to the configured API. Other values are
    loaded from the ``notesweep.backends`` entry point group.
    """
    if config.backend == "local":
        from .item_store import SQLiteItemStore
        return SQLiteItemStore(config.db_path, batch_size=config.batch_size)
    if config.backend == "remote":
        return _create_remote_store(config)
    return _load_backend(config.backend, config)


def create_sweeper(config: SweepConfig, store: Optional[ItemStoreProtocol] = None) -> Sweeper:
    """Build a Sweeper wired to the configured store and snapshot cache."""
    cache = None
    if config.cache_enabled:
        cache = SnapshotCache(config.cache_dir, ttl=config.cache_ttl)
    return Sweeper(
        store if store is not None else create_item_store(config),
        cache=cache,
        max_workers=config.max_workers,
    )


def _create_remote_store(config: SweepConfig) -> ItemStoreProtocol:
    from .remote import RemoteItemStore

    if config.remote is None:
        raise ValueError("Remote backend selected but no api_url configured")
    if not config.remote.api_key:
        raise ValueError(f"Remote backend needs an API key in {API_KEY_ENV}")
    return RemoteItemStore(
        config.remote.api_url,
        config.remote.api_key,
        batch_size=config.batch_size,
    )


def _load_backend(name: str, config: SweepConfig) -> ItemStoreProtocol:
    """Load a backend by entry point name."""
    from importlib.metadata import entry_points

    eps = entry_points(group="notesweep.backends")
    for ep in eps:
        if ep.name == name:
            factory = ep.load()
            return factory(config)

    available = [ep.name for ep in eps]
    if available:
        raise ValueError(
            f"Unknown backend: {name!r}. Available: {available}"
        )
    raise ValueError(
        f"Unknown backend: {name!r}. No backends registered. "
        f"Use 'local' or 'remote', or install a backend package."
    )
