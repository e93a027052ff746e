"""
Registry store abstraction.

Two logical maps plus one counter:
    documents:   doc_id → DocumentRecord
    permissions: (doc_id, viewer) → bool
    counter:     last allocated doc_id

All access goes through ``RegistryStore.transaction()``. Whatever happens
inside one transaction is applied atomically when the block exits normally
and discarded when it raises; no other transaction interleaves with it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from docledger.registry.models import DocumentRecord


class StoreTransaction(ABC):
    """Read/write view of the store inside one transaction."""

    # -- Document Store ------------------------------------------------------

    @abstractmethod
    def get_document(self, doc_id: int) -> Optional[DocumentRecord]:
        """Return a copy of the record, or None."""

    @abstractmethod
    def put_document(self, record: DocumentRecord) -> None:
        """Insert or replace the record keyed by record.doc_id."""

    @abstractmethod
    def delete_document(self, doc_id: int) -> None:
        ...

    # -- Permission Store ----------------------------------------------------

    @abstractmethod
    def get_permission(self, doc_id: int, viewer: str) -> Optional[bool]:
        ...

    @abstractmethod
    def put_permission(self, doc_id: int, viewer: str, allowed: bool) -> None:
        ...

    @abstractmethod
    def delete_permission(self, doc_id: int, viewer: str) -> None:
        ...

    @abstractmethod
    def delete_permissions(self, doc_id: int) -> int:
        """Remove every entry for doc_id. Returns the number removed."""

    # -- Document Counter ----------------------------------------------------

    @abstractmethod
    def get_counter(self) -> int:
        ...

    @abstractmethod
    def set_counter(self, value: int) -> None:
        ...


class RegistryStore(ABC):
    """Factory of serialized, all-or-nothing transactions."""

    backend: str = "abstract"

    @abstractmethod
    def transaction(self) -> AbstractContextManager[StoreTransaction]:
        ...

    def close(self) -> None:
        """Release backend resources. No-op by default."""
