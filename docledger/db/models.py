"""
docledger Tables — Document Store, Permission Store and Document Counter.

Tables:
1. documents          — one row per registered document (deleted on deregister)
2. document_permissions — (doc_id, viewer) → allowed
3. registry_counter   — single row holding the last allocated doc_id
"""

from __future__ import annotations

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    Column,
    Integer,
    String,
)

from docledger.db.base import AuditMixin, Base

COUNTER_ROW_ID = 1


class DocumentRow(Base, AuditMixin):
    __tablename__ = "documents"

    doc_id = Column(BigInteger, primary_key=True, autoincrement=False)
    title = Column(String(64), nullable=False)
    owner = Column(String(255), nullable=False, index=True)
    file_size = Column(BigInteger, nullable=False)
    registration_block = Column(BigInteger, nullable=False)
    description = Column(String(128), nullable=False)
    tags = Column(JSON, nullable=False)

    __table_args__ = (
        CheckConstraint("doc_id > 0", name="ck_documents_doc_id_positive"),
        CheckConstraint(
            "file_size > 0 AND file_size < 1000000000",
            name="ck_documents_file_size_range",
        ),
    )

    def __repr__(self) -> str:
        return f"<DocumentRow doc_id={self.doc_id} owner='{self.owner}'>"


class PermissionRow(Base, AuditMixin):
    __tablename__ = "document_permissions"

    # No FK to documents: entries may outlive their document (see DESIGN.md)
    doc_id = Column(BigInteger, primary_key=True, autoincrement=False)
    viewer = Column(String(255), primary_key=True)
    allowed = Column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<PermissionRow doc_id={self.doc_id} viewer='{self.viewer}' allowed={self.allowed}>"


class CounterRow(Base):
    __tablename__ = "registry_counter"

    id = Column(Integer, primary_key=True, autoincrement=False)
    value = Column(BigInteger, nullable=False, default=0)

    __table_args__ = (
        CheckConstraint("value >= 0", name="ck_registry_counter_non_negative"),
    )
