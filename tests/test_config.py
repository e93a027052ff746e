"""Unit tests for docledger.engine.config — LedgerConfig and loading."""

import pytest

from docledger.engine.config import (
    DatabaseConfig,
    LedgerConfig,
    RegistryConfig,
    get_config,
    get_environment,
    load_config,
)


class TestLedgerConfig:
    """Test LedgerConfig Pydantic model."""

    def test_defaults(self):
        cfg = LedgerConfig()
        assert cfg.environment == "dev"
        assert cfg.registry.administrator == ""
        assert cfg.registry.status == "operational"
        assert cfg.registry.persist_grants is False
        assert cfg.registry.purge_permissions_on_deregister is False
        assert cfg.store.backend == "memory"
        assert cfg.database.url == "sqlite:///docledger.db"
        assert cfg.logging.level == "INFO"
        assert cfg.logging.async_queue.flush_batch_size == 50

    def test_valid_environments(self):
        for env in ("dev", "staging", "prod"):
            assert LedgerConfig(environment=env).environment == env

    def test_invalid_environment(self):
        with pytest.raises(ValueError, match="dev/staging/prod"):
            LedgerConfig(environment="test")

    def test_invalid_backend(self):
        with pytest.raises(ValueError, match="memory/sql"):
            LedgerConfig(store={"backend": "redis"})

    def test_custom_sections(self):
        cfg = LedgerConfig(
            registry=RegistryConfig(administrator="ST1ADMIN", persist_grants=True),
            database=DatabaseConfig(url="postgresql://u:p@db:5432/ledger", pool_size=20),
        )
        assert cfg.registry.administrator == "ST1ADMIN"
        assert cfg.registry.persist_grants is True
        assert cfg.database.pool_size == 20


class TestLoadConfig:
    def test_load_from_file(self, config_file):
        path = config_file(
            "environment: staging\n"
            "registry:\n"
            "  administrator: ST1ADMIN\n"
            "  purge_permissions_on_deregister: true\n"
            "store:\n"
            "  backend: sql\n"
            "database:\n"
            "  url: sqlite:///ledger.db\n"
        )
        cfg = load_config(str(path))
        assert cfg.environment == "staging"
        assert cfg.registry.administrator == "ST1ADMIN"
        assert cfg.registry.purge_permissions_on_deregister is True
        assert cfg.store.backend == "sql"
        assert cfg.database.url == "sqlite:///ledger.db"

    def test_missing_file_returns_defaults(self, tmp_path):
        cfg = load_config(str(tmp_path / "nonexistent.yaml"))
        assert cfg == LedgerConfig()

    def test_empty_file_returns_defaults(self, config_file):
        assert load_config(str(config_file(""))) == LedgerConfig()

    def test_auto_discovery(self, config_file, tmp_path, monkeypatch):
        config_file("registry:\n  administrator: ST1FOUND\n")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        monkeypatch.chdir(nested)
        assert load_config().registry.administrator == "ST1FOUND"

    def test_get_config_caches(self, config_file, monkeypatch, tmp_path):
        config_file("environment: prod\nregistry:\n  administrator: ST1ADMIN\n")
        monkeypatch.chdir(tmp_path)
        first = get_config()
        assert get_config() is first
        assert get_environment() == "prod"
