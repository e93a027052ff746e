"""
docledger Runtime — Build a DocumentRegistry from docledger.yaml.

Usage:
    from docledger.runtime import build_registry

    registry = build_registry(load_config("docledger.yaml"), height_provider=node.height)
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from docledger.engine.audit import AuditQueue, open_audit_trail, system_event
from docledger.engine.config import LedgerConfig, get_config
from docledger.engine.context import current_principal
from docledger.engine.errors import DocLedgerConfigError
from docledger.engine.height import HeightProvider, LedgerHeight, MonotonicHeight
from docledger.registry.service import DocumentRegistry
from docledger.store.base import RegistryStore
from docledger.store.memory import MemoryRegistryStore
from docledger.store.sql import SqlRegistryStore

logger = logging.getLogger("docledger.runtime")


def build_store(config: LedgerConfig) -> RegistryStore:
    """Create the store selected by ``store.backend``."""
    if config.store.backend == "sql":
        db = config.database
        return SqlRegistryStore.from_url(
            db.url,
            pool_size=db.pool_size,
            max_overflow=db.max_overflow,
            pool_timeout=db.pool_timeout,
            pool_recycle=db.pool_recycle,
            pool_pre_ping=db.pool_pre_ping,
        )
    return MemoryRegistryStore()


def build_audit_queue(config: LedgerConfig) -> Optional[AuditQueue]:
    """Start the structured audit queue unless ``logging.audit`` is off."""
    if not config.logging.audit:
        return None
    q = config.logging.async_queue
    return open_audit_trail(
        config.logging.directory,
        flush_interval_ms=q.flush_interval_ms,
        flush_batch_size=q.flush_batch_size,
        max_queue_size=q.max_queue_size,
    )


def build_registry(
    config: Optional[LedgerConfig] = None,
    height_provider: Optional[HeightProvider] = None,
    identity_provider: Callable[[], str] = current_principal,
    store: Optional[RegistryStore] = None,
    audit_queue: Optional[AuditQueue] = None,
) -> DocumentRegistry:
    """
    Wire store, height source, identity provider and audit sink into a
    registry according to ``config``.

    Without a height provider a local LedgerHeight starting at 0 is used.
    """
    config = config or get_config()
    if not config.registry.administrator:
        raise DocLedgerConfigError(
            "Registry administrator is not configured (registry.administrator)"
        )
    logging.getLogger("docledger").setLevel(config.logging.level.upper())

    if store is None:
        store = build_store(config)
    if height_provider is None:
        height_provider = LedgerHeight()
    if audit_queue is None:
        audit_queue = build_audit_queue(config)

    registry = DocumentRegistry(
        store=store,
        administrator=config.registry.administrator,
        height_provider=MonotonicHeight(height_provider),
        identity_provider=identity_provider,
        status=config.registry.status,
        persist_grants=config.registry.persist_grants,
        purge_permissions_on_deregister=config.registry.purge_permissions_on_deregister,
        audit_queue=audit_queue,
    )

    if audit_queue is not None:
        audit_queue.push(system_event(
            "registry_started",
            environment=config.environment,
            backend=store.backend,
            persist_grants=config.registry.persist_grants,
        ))
    logger.info(f"Registry ready ({store.backend} store, environment={config.environment})")
    return registry
