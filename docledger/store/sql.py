"""
SQLAlchemy-backed registry store.

One session per transaction: commit when the block completes, rollback on
any exception. Transactions on the same store instance are additionally
serialized in-process, and the counter row is read ``FOR UPDATE`` so the
allocation of a new doc_id is the serialization point across processes on
databases that support row locks.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Any, Generator, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from docledger.db.models import COUNTER_ROW_ID, CounterRow, DocumentRow, PermissionRow
from docledger.db.session import init_registry_db, session_scope
from docledger.engine.errors import DocLedgerStoreError
from docledger.registry.models import DocumentRecord
from docledger.store.base import RegistryStore, StoreTransaction

logger = logging.getLogger("docledger.store.sql")


def _to_record(row: DocumentRow) -> DocumentRecord:
    return DocumentRecord(
        doc_id=row.doc_id,
        title=row.title,
        owner=row.owner,
        file_size=row.file_size,
        registration_block=row.registration_block,
        description=row.description,
        tags=list(row.tags),
    )


class SqlTransaction(StoreTransaction):
    def __init__(self, session: Session):
        self._session = session

    def get_document(self, doc_id: int) -> Optional[DocumentRecord]:
        row = self._session.get(DocumentRow, doc_id)
        return _to_record(row) if row is not None else None

    def put_document(self, record: DocumentRecord) -> None:
        row = self._session.get(DocumentRow, record.doc_id)
        if row is None:
            row = DocumentRow(doc_id=record.doc_id)
            self._session.add(row)
        row.title = record.title
        row.owner = record.owner
        row.file_size = record.file_size
        row.registration_block = record.registration_block
        row.description = record.description
        row.tags = list(record.tags)
        self._session.flush()

    def delete_document(self, doc_id: int) -> None:
        row = self._session.get(DocumentRow, doc_id)
        if row is not None:
            self._session.delete(row)
            self._session.flush()

    def get_permission(self, doc_id: int, viewer: str) -> Optional[bool]:
        row = self._session.get(PermissionRow, (doc_id, viewer))
        return bool(row.allowed) if row is not None else None

    def put_permission(self, doc_id: int, viewer: str, allowed: bool) -> None:
        row = self._session.get(PermissionRow, (doc_id, viewer))
        if row is None:
            row = PermissionRow(doc_id=doc_id, viewer=viewer)
            self._session.add(row)
        row.allowed = bool(allowed)
        self._session.flush()

    def delete_permission(self, doc_id: int, viewer: str) -> None:
        row = self._session.get(PermissionRow, (doc_id, viewer))
        if row is not None:
            self._session.delete(row)
            self._session.flush()

    def delete_permissions(self, doc_id: int) -> int:
        result = self._session.execute(
            delete(PermissionRow).where(PermissionRow.doc_id == doc_id)
        )
        return result.rowcount or 0

    def get_counter(self) -> int:
        return self._counter_row().value

    def set_counter(self, value: int) -> None:
        self._counter_row().value = value
        self._session.flush()

    def _counter_row(self) -> CounterRow:
        row = self._session.execute(
            select(CounterRow).where(CounterRow.id == COUNTER_ROW_ID).with_for_update()
        ).scalar_one_or_none()
        if row is None:
            raise DocLedgerStoreError(
                "Registry counter row missing — run `docledger init` first",
                backend="sql",
            )
        return row


class SqlRegistryStore(RegistryStore):
    backend = "sql"

    def __init__(self, session_factory: sessionmaker):
        self._factory = session_factory
        self._lock = threading.RLock()

    @classmethod
    def from_url(cls, url: str, create_tables: bool = True, **engine_kwargs: Any) -> "SqlRegistryStore":
        """Initialise the database at ``url`` and return a store bound to it."""
        return cls(init_registry_db(url, create_tables=create_tables, **engine_kwargs))

    @contextmanager
    def transaction(self) -> Generator[SqlTransaction, None, None]:
        with self._lock:
            try:
                with session_scope(self._factory) as session:
                    yield SqlTransaction(session)
            except SQLAlchemyError as e:
                logger.error(f"SQL transaction rolled back: {e}")
                raise DocLedgerStoreError(
                    f"SQL transaction failed: {e}", backend="sql"
                ) from e

    def close(self) -> None:
        engine = self._factory.kw.get("bind")
        if engine is not None:
            engine.dispose()

    def __repr__(self) -> str:
        return f"<SqlRegistryStore bind={self._factory.kw.get('bind')}>"
