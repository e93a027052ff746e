"""
In-process registry store.

Transactions are serialized by a re-entrant lock and stage their writes in
an overlay; the overlay is merged into the shared maps only when the
transaction block exits without raising.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, Generator, Optional

from docledger.registry.models import DocumentRecord, PermissionKey
from docledger.store.base import RegistryStore, StoreTransaction

logger = logging.getLogger("docledger.store.memory")

_DELETED = object()


class MemoryTransaction(StoreTransaction):
    def __init__(self, store: "MemoryRegistryStore"):
        self._store = store
        self._documents: Dict[int, Any] = {}
        self._permissions: Dict[PermissionKey, Any] = {}
        self._counter: Optional[int] = None

    def get_document(self, doc_id: int) -> Optional[DocumentRecord]:
        record = self._documents.get(doc_id, self._store._documents.get(doc_id))
        if record is None or record is _DELETED:
            return None
        return record.model_copy(deep=True)

    def put_document(self, record: DocumentRecord) -> None:
        self._documents[record.doc_id] = record.model_copy(deep=True)

    def delete_document(self, doc_id: int) -> None:
        self._documents[doc_id] = _DELETED

    def get_permission(self, doc_id: int, viewer: str) -> Optional[bool]:
        key = PermissionKey(doc_id, viewer)
        allowed = self._permissions.get(key, self._store._permissions.get(key))
        if allowed is None or allowed is _DELETED:
            return None
        return allowed

    def put_permission(self, doc_id: int, viewer: str, allowed: bool) -> None:
        self._permissions[PermissionKey(doc_id, viewer)] = bool(allowed)

    def delete_permission(self, doc_id: int, viewer: str) -> None:
        self._permissions[PermissionKey(doc_id, viewer)] = _DELETED

    def delete_permissions(self, doc_id: int) -> int:
        keys = {k for k in self._store._permissions if k.doc_id == doc_id}
        keys.update(k for k in self._permissions if k.doc_id == doc_id)
        removed = 0
        for key in keys:
            if self.get_permission(key.doc_id, key.viewer) is not None:
                removed += 1
            self._permissions[key] = _DELETED
        return removed

    def get_counter(self) -> int:
        return self._store._counter if self._counter is None else self._counter

    def set_counter(self, value: int) -> None:
        self._counter = value

    def _apply(self) -> None:
        for doc_id, record in self._documents.items():
            if record is _DELETED:
                self._store._documents.pop(doc_id, None)
            else:
                self._store._documents[doc_id] = record
        for key, allowed in self._permissions.items():
            if allowed is _DELETED:
                self._store._permissions.pop(key, None)
            else:
                self._store._permissions[key] = allowed
        if self._counter is not None:
            self._store._counter = self._counter


class MemoryRegistryStore(RegistryStore):
    """Registry state held in plain dicts, owned by one store instance."""

    backend = "memory"

    def __init__(self):
        self._documents: Dict[int, DocumentRecord] = {}
        self._permissions: Dict[PermissionKey, bool] = {}
        self._counter = 0
        self._lock = threading.RLock()

    @contextmanager
    def transaction(self) -> Generator[MemoryTransaction, None, None]:
        with self._lock:
            tx = MemoryTransaction(self)
            try:
                yield tx
            except Exception:
                logger.debug("Transaction aborted; staged writes discarded")
                raise
            tx._apply()

    def __len__(self) -> int:
        return len(self._documents)

    def __repr__(self) -> str:
        return (
            f"<MemoryRegistryStore documents={len(self._documents)} "
            f"permissions={len(self._permissions)} counter={self._counter}>"
        )
