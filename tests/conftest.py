"""
docledger Test Suite — Shared fixtures and configuration.

Run:  pytest tests/ -v
"""

from __future__ import annotations

import pytest

from docledger.engine.context import caller_context, clear_caller_context
from docledger.engine.height import LedgerHeight
from docledger.registry.service import DocumentRegistry
from docledger.store.memory import MemoryRegistryStore
from docledger.store.sql import SqlRegistryStore

ADMIN = "ST1ADMIN"
OWNER = "ST1OWNER"
VIEWER = "ST2VIEWER"
STRANGER = "ST3STRANGER"

DEED = {
    "title": "Deed 1",
    "file_size": 500,
    "description": "desc",
    "tags": ["land"],
}


@pytest.fixture(autouse=True)
def _isolate_globals():
    """Reset global singletons between tests."""
    import docledger.engine.config as cfg_mod
    import docledger.engine.audit as audit_mod

    cfg_mod._config = None
    clear_caller_context()
    yield
    audit_mod.close_audit_trail()
    clear_caller_context()


@pytest.fixture
def height():
    """Ledger height starting at 100."""
    return LedgerHeight(start=100)


@pytest.fixture
def memory_store():
    return MemoryRegistryStore()


@pytest.fixture
def sql_store(tmp_path):
    store = SqlRegistryStore.from_url(f"sqlite:///{tmp_path / 'registry.db'}")
    yield store
    store.close()


@pytest.fixture(params=["memory", "sql"])
def store(request):
    """Each registry test runs once per backend."""
    return request.getfixturevalue(f"{request.param}_store")


@pytest.fixture
def registry(store, height):
    return DocumentRegistry(store=store, administrator=ADMIN, height_provider=height)


@pytest.fixture
def call(registry):
    """
    Invoke a registry operation as ``principal``:

        call(OWNER, "register", **DEED)
    """
    def _call(principal, operation, *args, **kwargs):
        with caller_context(principal):
            return getattr(registry, operation)(*args, **kwargs)
    return _call


@pytest.fixture
def doc_id(call):
    """A document registered by OWNER."""
    return call(OWNER, "register", **DEED).unwrap()


@pytest.fixture
def config_file(tmp_path):
    """Write a docledger.yaml and return its path."""
    def _write(body: str):
        path = tmp_path / "docledger.yaml"
        path.write_text(body, encoding="utf-8")
        return path
    return _write
