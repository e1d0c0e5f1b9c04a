"""Tests for TOML configuration and the backend factory."""

import pytest

from notesweep.api import Sweeper
from notesweep.backend import create_item_store, create_sweeper
from notesweep.config import (
    CONFIG_FILENAME,
    RemoteConfig,
    SweepConfig,
    get_home_dir,
    load_config,
    load_or_create_config,
    save_config,
)
from notesweep.item_store import SQLiteItemStore


class TestConfig:
    def test_home_from_env(self, isolated_home):
        assert get_home_dir() == isolated_home

    def test_load_or_create_writes_defaults(self, tmp_path):
        config = load_or_create_config(tmp_path)
        assert (tmp_path / CONFIG_FILENAME).exists()
        assert config.backend == "local"
        assert config.batch_size == 150
        assert config.cache_enabled

    def test_roundtrip(self, tmp_path):
        config = SweepConfig(
            path=tmp_path,
            backend="remote",
            batch_size=25,
            max_workers=4,
            cache_enabled=False,
            cache_ttl=60.0,
            remote=RemoteConfig(api_url="https://api.example.com", api_key="never-saved"),
        )
        save_config(config)

        loaded = load_config(tmp_path)

        assert loaded.backend == "remote"
        assert loaded.batch_size == 25
        assert loaded.max_workers == 4
        assert not loaded.cache_enabled
        assert loaded.cache_ttl == 60.0
        assert loaded.remote.api_url == "https://api.example.com"
        assert loaded.remote.api_key is None
        assert "never-saved" not in (tmp_path / CONFIG_FILENAME).read_text()

    def test_env_overrides_remote(self, tmp_path, monkeypatch):
        save_config(SweepConfig(path=tmp_path))
        monkeypatch.setenv("NOTESWEEP_API_URL", "https://env.example.com")
        monkeypatch.setenv("NOTESWEEP_API_KEY", "k")
        loaded = load_config(tmp_path)
        assert loaded.remote.api_url == "https://env.example.com"
        assert loaded.remote.api_key == "k"

    def test_missing_config(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path)

    def test_newer_version_rejected(self, tmp_path):
        (tmp_path / CONFIG_FILENAME).write_text("[store]\nversion = 99\n")
        with pytest.raises(ValueError, match="newer"):
            load_config(tmp_path)

    def test_invalid_batch_size(self, tmp_path):
        (tmp_path / CONFIG_FILENAME).write_text("[store]\nbatch_size = 0\n")
        with pytest.raises(ValueError, match="batch_size"):
            load_config(tmp_path)

    def test_remote_without_url(self, tmp_path):
        (tmp_path / CONFIG_FILENAME).write_text('[store]\nbackend = "remote"\n')
        with pytest.raises(ValueError, match="api_url"):
            load_config(tmp_path)


class TestBackend:
    def test_local_backend(self, tmp_path):
        store = create_item_store(SweepConfig(path=tmp_path, batch_size=10))
        assert isinstance(store, SQLiteItemStore)
        assert store.batch_size == 10
        store.close()

    def test_remote_backend_needs_key(self, tmp_path):
        config = SweepConfig(
            path=tmp_path, backend="remote",
            remote=RemoteConfig(api_url="https://api.example.com"),
        )
        with pytest.raises(ValueError, match="API key"):
            create_item_store(config)

    def test_remote_backend(self, tmp_path):
        from notesweep.remote import RemoteItemStore

        config = SweepConfig(
            path=tmp_path, backend="remote",
            remote=RemoteConfig(api_url="https://api.example.com", api_key="k"),
        )
        store = create_item_store(config)
        assert isinstance(store, RemoteItemStore)
        store.close()

    def test_unknown_backend(self, tmp_path):
        with pytest.raises(ValueError, match="Unknown backend"):
            create_item_store(SweepConfig(path=tmp_path, backend="nope"))

    def test_create_sweeper_with_cache(self, tmp_path):
        config = SweepConfig(path=tmp_path)
        sweeper = create_sweeper(config)
        assert isinstance(sweeper, Sweeper)
        sweeper.add("cached")
        assert [i.title for i in sweeper.get()] == ["cached"]
        assert (config.cache_dir / "Note.snapshot").exists()
        sweeper.close()
