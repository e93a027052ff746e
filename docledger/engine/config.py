"""
docledger Configuration — Load and validate docledger.yaml at startup.

Usage:
    from docledger.engine.config import load_config, get_config
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator

CONFIG_FILENAME = "docledger.yaml"


# ---------------------------------------------------------------------------
# Pydantic models for docledger.yaml
# ---------------------------------------------------------------------------

class RegistryConfig(BaseModel):
    administrator: str = ""
    status: str = "operational"
    persist_grants: bool = False
    purge_permissions_on_deregister: bool = False


class StoreConfig(BaseModel):
    backend: str = "memory"

    @field_validator("backend")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        if v not in ("memory", "sql"):
            raise ValueError(f"store backend must be memory/sql, got '{v}'")
        return v


class DatabaseConfig(BaseModel):
    url: str = "sqlite:///docledger.db"
    pool_size: int = 10
    max_overflow: int = 20
    pool_timeout: int = 30
    pool_recycle: int = 1800
    pool_pre_ping: bool = True


class LogAsyncQueueConfig(BaseModel):
    flush_interval_ms: int = 100
    flush_batch_size: int = 50
    max_queue_size: int = 10000


class LoggingConfig(BaseModel):
    level: str = "INFO"
    directory: str = ".docledger/logs"
    audit: bool = True
    async_queue: LogAsyncQueueConfig = LogAsyncQueueConfig()


class LedgerConfig(BaseModel):
    """Root model for docledger.yaml."""
    name: str = "docledger"
    environment: str = "dev"

    registry: RegistryConfig = RegistryConfig()
    store: StoreConfig = StoreConfig()
    database: DatabaseConfig = DatabaseConfig()
    logging: LoggingConfig = LoggingConfig()

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        if v not in ("dev", "staging", "prod"):
            raise ValueError(f"environment must be dev/staging/prod, got '{v}'")
        return v


# ---------------------------------------------------------------------------
# Config Loading Functions
# ---------------------------------------------------------------------------

_config: Optional[LedgerConfig] = None


def _find_project_root() -> Path:
    """Find the project root by looking for docledger.yaml."""
    current = Path.cwd()
    for parent in [current, *current.parents]:
        if (parent / CONFIG_FILENAME).exists():
            return parent
    return current


def load_config(config_path: Optional[str] = None) -> LedgerConfig:
    """
    Load and validate docledger.yaml.

    Args:
        config_path: Explicit path to docledger.yaml. If None, auto-discovers.

    Returns:
        Validated LedgerConfig instance.
    """
    global _config

    if config_path is None:
        config_path = str(_find_project_root() / CONFIG_FILENAME)

    path = Path(config_path)
    if not path.exists():
        # Return defaults if no config file
        _config = LedgerConfig()
        return _config

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    _config = LedgerConfig(**raw)
    return _config


def get_config() -> LedgerConfig:
    """Get the currently loaded config, loading if necessary."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def get_environment() -> str:
    """Get the current environment."""
    return get_config().environment
