"""Tests for the record store registry, factory and configuration."""

import os
from unittest.mock import patch

import pytest

from crmgraph.config import Config, config
from crmgraph.engine import CRMGraph
from crmgraph.store.memory import InMemoryRecordStore
from crmgraph.store.registry import (
    RecordStoreFactory,
    RecordStoreRegistry,
    RecordStoreRegistryError,
)
from crmgraph.store.sqlite import SQLiteRecordStore


class TestRecordStoreRegistry:
    """Tests for RecordStoreRegistry."""

    def test_builtin_stores_registered(self):
        assert RecordStoreRegistry.is_registered("memory")
        assert RecordStoreRegistry.is_registered("sqlite")
        assert set(RecordStoreRegistry.list_stores()) >= {"memory", "sqlite"}

    def test_get_case_insensitive(self):
        assert RecordStoreRegistry.get("MEMORY") is InMemoryRecordStore
        assert RecordStoreRegistry.get("SQLite") is SQLiteRecordStore

    def test_get_unknown_returns_none(self):
        assert RecordStoreRegistry.get("twenty") is None

    def test_register_and_unregister(self):
        class TempStore(InMemoryRecordStore):
            store_name = "temp"

        RecordStoreRegistry.register("temp", TempStore)
        try:
            assert isinstance(RecordStoreFactory.create("temp"), TempStore)
        finally:
            RecordStoreRegistry.unregister("temp")
        assert not RecordStoreRegistry.is_registered("temp")


class TestRecordStoreFactory:
    """Tests for RecordStoreFactory."""

    def test_create_unknown_raises(self):
        with pytest.raises(RecordStoreRegistryError, match="Unknown record store"):
            RecordStoreFactory.create("nonexistent")

    def test_create_sqlite(self, tmp_path):
        store = RecordStoreFactory.create("sqlite", db_path=tmp_path / "crm.sqlite")
        assert isinstance(store, SQLiteRecordStore)

    def test_from_env_memory(self):
        with patch.object(config, "store", "memory"):
            assert isinstance(RecordStoreFactory.from_env(), InMemoryRecordStore)

    def test_from_env_sqlite_uses_config_path(self, tmp_path):
        db_path = tmp_path / "data" / "crm.sqlite"
        with patch.object(config, "store", "sqlite"), patch.object(config, "db_path", db_path):
            store = RecordStoreFactory.from_env()
        assert isinstance(store, SQLiteRecordStore)
        assert store.db_path == db_path
        assert db_path.exists()

    def test_graph_from_env(self):
        with patch.object(config, "store", "memory"):
            graph = CRMGraph.from_env(page_size=5)
        assert isinstance(graph.store, InMemoryRecordStore)
        assert graph.timeline.page_size == 5


class TestConfig:
    """Tests for environment-driven configuration."""

    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            cfg = Config()
        assert cfg.store == "sqlite"
        assert cfg.log_level == "INFO"
        assert cfg.page_size == 100
        assert cfg.scan_limit == 10000
        assert cfg.fetch_workers == 1
        assert cfg.db_path == cfg.project_root / "data" / "crm.sqlite"

    def test_environment_overrides(self, tmp_path):
        env = {
            "CRMGRAPH_STORE": "memory",
            "CRMGRAPH_DB_PATH": str(tmp_path / "other.sqlite"),
            "CRMGRAPH_PAGE_SIZE": "25",
            "CRMGRAPH_SCAN_LIMIT": "500",
            "CRMGRAPH_FETCH_WORKERS": "4",
        }
        with patch.dict(os.environ, env, clear=True):
            cfg = Config()
        assert cfg.store == "memory"
        assert cfg.db_path == tmp_path / "other.sqlite"
        assert cfg.page_size == 25
        assert cfg.scan_limit == 500
        assert cfg.fetch_workers == 4

    def test_aggregator_defaults_from_config(self):
        with patch.object(config, "page_size", 7), patch.object(config, "fetch_workers", 3):
            graph = CRMGraph(InMemoryRecordStore())
        assert graph.orphans.page_size == 7
        assert graph.pipeline.fetch_workers == 3

    def test_aggregator_requires_store(self):
        with pytest.raises(TypeError):
            CRMGraph(None)
