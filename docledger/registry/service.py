"""
docledger Document Registry — lifecycle and authorization for document records.

Every operation:
1. resolves the caller through the injected identity provider
2. validates its inputs
3. opens exactly one store transaction, checks existence and authorization
   against the stored record, then mutates or reads
4. returns a Result (success value or one Failure)

Existence is always checked before authorization, and both before any write,
so a failed operation never leaves a partial change behind.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, List, Optional, Sequence, Tuple

from docledger.engine.audit import (
    AuditEntry,
    AuditQueue,
    denial_event,
    document_event,
    permission_event,
)
from docledger.engine.context import current_execution_id, current_principal
from docledger.engine.errors import DocLedgerConfigError
from docledger.engine.height import HeightProvider
from docledger.registry.models import (
    MAX_TAGS,
    AuthenticationReport,
    DocumentRecord,
    RegistryStatistics,
)
from docledger.registry.results import Failure, Result
from docledger.registry.validation import (
    lookup_document,
    validate_document_fields,
    validate_tags,
)

if TYPE_CHECKING:
    from docledger.store.base import RegistryStore, StoreTransaction

logger = logging.getLogger("docledger.registry.service")

_AUTH_FAILURES = {
    Failure.OWNERSHIP_REQUIRED,
    Failure.UNAUTHORIZED,
    Failure.ADMIN_ONLY_OPERATION,
}


class DocumentRegistry:
    """
    Shared ledger of document records with owner-gated mutation.

    State lives entirely in the injected store; the administrator principal
    is fixed at construction.
    """

    def __init__(
        self,
        store: RegistryStore,
        administrator: str,
        height_provider: HeightProvider,
        identity_provider: Callable[[], str] = current_principal,
        *,
        status: str = "operational",
        persist_grants: bool = False,
        purge_permissions_on_deregister: bool = False,
        audit_queue: Optional[AuditQueue] = None,
    ):
        if not administrator:
            raise DocLedgerConfigError(
                "Registry administrator is not configured (registry.administrator)"
            )
        self._store = store
        self._administrator = administrator
        self._height = height_provider
        self._identity = identity_provider
        self._status = status
        self._persist_grants = persist_grants
        self._purge_on_deregister = purge_permissions_on_deregister
        self._audit_queue = audit_queue

        if not persist_grants:
            logger.warning(
                "grant_access only checks authorization; permission entries "
                "are not written (registry.persist_grants=false)"
            )

    @property
    def administrator(self) -> str:
        return self._administrator

    @property
    def store(self) -> RegistryStore:
        return self._store

    # -------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------

    def register(
        self,
        title: str,
        file_size: int,
        description: str,
        tags: Sequence[str],
    ) -> Result[int]:
        """Record a new document owned by the caller and return its id."""
        caller = self._identity()
        failure = validate_document_fields(title, file_size, description, tags)
        if failure:
            return self._reject("register", failure, caller)

        with self._store.transaction() as tx:
            height = self._height()
            new_id = tx.get_counter() + 1
            tx.put_document(DocumentRecord(
                doc_id=new_id,
                title=title,
                owner=caller,
                file_size=file_size,
                registration_block=height,
                description=description,
                tags=list(tags),
            ))
            tx.put_permission(new_id, caller, True)
            tx.set_counter(new_id)

        logger.info(f"Registered doc {new_id} for {caller} at height {height}")
        self._audit(document_event(
            "register", new_id, caller, height, execution_id=current_execution_id(),
        ))
        return Result.success(new_id)

    def update(
        self,
        doc_id: int,
        title: str,
        file_size: int,
        description: str,
        tags: Sequence[str],
    ) -> Result[bool]:
        """
        Replace title, file_size, description and tags. Owner and
        registration height are kept.
        """
        caller = self._identity()
        with self._store.transaction() as tx:
            record, failure = self._owned(tx, doc_id, caller)
            if failure is None:
                failure = validate_document_fields(title, file_size, description, tags)
            if failure:
                return self._reject("update", failure, caller, doc_id)

            changed = [
                name for name, value in (
                    ("title", title),
                    ("file_size", file_size),
                    ("description", description),
                    ("tags", list(tags)),
                )
                if getattr(record, name) != value
            ]
            tx.put_document(DocumentRecord.model_validate({
                **record.model_dump(),
                "title": title,
                "file_size": file_size,
                "description": description,
                "tags": list(tags),
            }))
            height = self._height()

        logger.info(f"Updated doc {doc_id} ({', '.join(changed) or 'no changes'})")
        self._audit(document_event(
            "update", doc_id, caller, height,
            execution_id=current_execution_id(), fields_changed=changed,
        ))
        return Result.success(True)

    def deregister(self, doc_id: int) -> Result[bool]:
        """Remove the record permanently. Its id is never handed out again."""
        caller = self._identity()
        with self._store.transaction() as tx:
            _, failure = self._owned(tx, doc_id, caller)
            if failure:
                return self._reject("deregister", failure, caller, doc_id)

            tx.delete_document(doc_id)
            purged = tx.delete_permissions(doc_id) if self._purge_on_deregister else 0
            height = self._height()

        logger.info(f"Deregistered doc {doc_id} (permission entries purged: {purged})")
        self._audit(document_event(
            "deregister", doc_id, caller, height,
            execution_id=current_execution_id(), permissions_purged=purged,
        ))
        return Result.success(True)

    def reassign_ownership(self, doc_id: int, new_owner: str) -> Result[bool]:
        """
        Hand the record to ``new_owner``. Permission entries already granted
        stay as they are.
        """
        caller = self._identity()
        with self._store.transaction() as tx:
            record, failure = self._owned(tx, doc_id, caller)
            if failure:
                return self._reject("reassign_ownership", failure, caller, doc_id)

            tx.put_document(DocumentRecord.model_validate({
                **record.model_dump(), "owner": new_owner,
            }))
            height = self._height()

        logger.info(f"Doc {doc_id} ownership moved from {caller} to {new_owner}")
        self._audit(document_event(
            "reassign_ownership", doc_id, caller, height,
            execution_id=current_execution_id(), new_owner=new_owner,
        ))
        return Result.success(True)

    def extend_tags(self, doc_id: int, additional_tags: Sequence[str]) -> Result[List[str]]:
        """Append tags to the stored sequence and return the combined list."""
        caller = self._identity()
        with self._store.transaction() as tx:
            record, failure = self._owned(tx, doc_id, caller)
            if failure is None and not validate_tags(additional_tags):
                failure = Failure.TAG_VALIDATION_FAILED
            if failure is None and len(record.tags) + len(additional_tags) > MAX_TAGS:
                failure = Failure.TAG_VALIDATION_FAILED
            if failure:
                return self._reject("extend_tags", failure, caller, doc_id)

            combined = list(record.tags) + list(additional_tags)
            tx.put_document(DocumentRecord.model_validate({
                **record.model_dump(), "tags": combined,
            }))
            height = self._height()

        logger.info(f"Doc {doc_id} tags extended to {len(combined)}")
        self._audit(document_event(
            "extend_tags", doc_id, caller, height,
            execution_id=current_execution_id(), fields_changed=["tags"],
        ))
        return Result.success(combined)

    # -------------------------------------------------------------------
    # Permissions
    # -------------------------------------------------------------------

    def grant_access(self, doc_id: int, viewer: str) -> Result[bool]:
        """
        Owner-only. Writes (doc_id, viewer) → allowed only when the registry
        was built with persist_grants=True; otherwise the call is an
        authorization check with no stored effect.
        """
        caller = self._identity()
        with self._store.transaction() as tx:
            _, failure = self._owned(tx, doc_id, caller)
            if failure:
                return self._reject("grant_access", failure, caller, doc_id)
            if self._persist_grants:
                tx.put_permission(doc_id, viewer, True)

        logger.info(
            f"Access to doc {doc_id} granted to {viewer} "
            f"({'persisted' if self._persist_grants else 'not persisted'})"
        )
        self._audit(permission_event(
            "grant", doc_id, caller, viewer, persisted=self._persist_grants,
            execution_id=current_execution_id(),
        ))
        return Result.success(True)

    def revoke_access(self, doc_id: int, viewer: str) -> Result[bool]:
        """Owner-only removal of a viewer's entry. Owners cannot revoke themselves."""
        caller = self._identity()
        with self._store.transaction() as tx:
            _, failure = self._owned(tx, doc_id, caller)
            if failure is None and viewer == caller:
                failure = Failure.ADMIN_ONLY_OPERATION
            if failure:
                return self._reject("revoke_access", failure, caller, doc_id)
            tx.delete_permission(doc_id, viewer)

        logger.info(f"Access to doc {doc_id} revoked for {viewer}")
        self._audit(permission_event(
            "revoke", doc_id, caller, viewer, persisted=True,
            execution_id=current_execution_id(),
        ))
        return Result.success(True)

    def freeze(self, doc_id: int) -> Result[bool]:
        """Owner or administrator check. Nothing is stored."""
        caller = self._identity()
        with self._store.transaction() as tx:
            record = lookup_document(tx, doc_id)
            if record is None:
                return self._reject("freeze", Failure.NOT_FOUND, caller, doc_id)
            if caller not in (record.owner, self._administrator):
                return self._reject("freeze", Failure.ADMIN_ONLY_OPERATION, caller, doc_id)

        logger.info(f"Freeze requested on doc {doc_id} by {caller}")
        return Result.success(True)

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------

    def authenticate(self, doc_id: int, presumed_owner: str) -> Result[AuthenticationReport]:
        """
        Compare ``presumed_owner`` with the stored owner. Only the owner, an
        allowed viewer or the administrator may ask.
        """
        caller = self._identity()
        with self._store.transaction() as tx:
            record = lookup_document(tx, doc_id)
            if record is None:
                return self._reject("authenticate", Failure.NOT_FOUND, caller, doc_id)
            if not self._can_view(tx, record, caller):
                return self._reject("authenticate", Failure.UNAUTHORIZED, caller, doc_id)
            height = self._height()

        match = presumed_owner == record.owner
        return Result.success(AuthenticationReport(
            match=match,
            height=height,
            age=height - record.registration_block,
            verified=match,
        ))

    def get_document(self, doc_id: int) -> Result[DocumentRecord]:
        """Return a copy of the record to the owner, an allowed viewer or the administrator."""
        caller = self._identity()
        with self._store.transaction() as tx:
            record = lookup_document(tx, doc_id)
            if record is None:
                return self._reject("get_document", Failure.NOT_FOUND, caller, doc_id)
            if not self._can_view(tx, record, caller):
                return self._reject("get_document", Failure.UNAUTHORIZED, caller, doc_id)
        return Result.success(record)

    def has_access(self, doc_id: int, viewer: str) -> Result[bool]:
        """Owner-only: does ``viewer`` hold an allowed permission entry."""
        caller = self._identity()
        with self._store.transaction() as tx:
            _, failure = self._owned(tx, doc_id, caller)
            if failure:
                return self._reject("has_access", failure, caller, doc_id)
            allowed = tx.get_permission(doc_id, viewer) is True
        return Result.success(allowed)

    def get_statistics(self) -> Result[RegistryStatistics]:
        caller = self._identity()
        if caller != self._administrator:
            return self._reject("get_statistics", Failure.ADMIN_ONLY_OPERATION, caller)
        with self._store.transaction() as tx:
            total = tx.get_counter()
            height = self._height()
        return Result.success(RegistryStatistics(total=total, height=height, status=self._status))

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------

    def _owned(
        self, tx: StoreTransaction, doc_id: int, caller: str
    ) -> Tuple[Optional[DocumentRecord], Optional[Failure]]:
        record = lookup_document(tx, doc_id)
        if record is None:
            return None, Failure.NOT_FOUND
        if record.owner != caller:
            return record, Failure.OWNERSHIP_REQUIRED
        return record, None

    def _can_view(self, tx: StoreTransaction, record: DocumentRecord, caller: str) -> bool:
        if caller in (record.owner, self._administrator):
            return True
        return tx.get_permission(record.doc_id, caller) is True

    def _reject(
        self,
        operation: str,
        failure: Failure,
        caller: str,
        doc_id: Optional[int] = None,
    ) -> Result:
        if failure in _AUTH_FAILURES:
            logger.warning(f"{operation} denied for {caller} on doc {doc_id}: {failure.value}")
            self._audit(denial_event(
                operation, failure.value, caller,
                doc_id=doc_id,
                execution_id=current_execution_id(),
            ))
        else:
            logger.debug(f"{operation} rejected for {caller} on doc {doc_id}: {failure.value}")
        return Result.fail(failure)

    def _audit(self, entry: AuditEntry) -> None:
        if self._audit_queue is not None:
            self._audit_queue.push(entry)

    def __repr__(self) -> str:
        return f"<DocumentRegistry store={self._store!r} administrator='{self._administrator}'>"
