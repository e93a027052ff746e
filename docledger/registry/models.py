"""
docledger Registry Models — Pydantic definitions for stored and returned data.

DocumentRecord: one entry of the Document Store.
PermissionKey: compound key of the Permission Store.
AuthenticationReport / RegistryStatistics: read-only operation payloads.

Field constraints mirror the validation rules, so a record that breaks the
bounds cannot be constructed, let alone stored.
"""

from __future__ import annotations

from typing import Annotated, List, NamedTuple

from pydantic import BaseModel, Field

MAX_TITLE_LENGTH = 64
MAX_DESCRIPTION_LENGTH = 128
MAX_TAG_LENGTH = 32
MAX_TAGS = 10
# Exclusive upper bound
MAX_FILE_SIZE = 1_000_000_000
# Largest id a BIGINT column holds
MAX_DOC_ID = 2**63 - 1

Tag = Annotated[str, Field(min_length=1, max_length=MAX_TAG_LENGTH)]


class DocumentRecord(BaseModel):
    """
    Registered document metadata.

    ``owner`` is the only principal allowed to mutate or delete the record.
    ``registration_block`` is captured at creation and never rewritten.
    """

    doc_id: int = Field(gt=0, le=MAX_DOC_ID, description="Allocated from the document counter")
    title: str = Field(min_length=1, max_length=MAX_TITLE_LENGTH)
    owner: str = Field(description="Authoritative principal")
    file_size: int = Field(gt=0, lt=MAX_FILE_SIZE, description="Size in bytes")
    registration_block: int = Field(ge=0, description="Ledger height at registration")
    description: str = Field(min_length=1, max_length=MAX_DESCRIPTION_LENGTH)
    tags: List[Tag] = Field(min_length=1, max_length=MAX_TAGS)


class PermissionKey(NamedTuple):
    doc_id: int
    viewer: str


class AuthenticationReport(BaseModel):
    """Outcome of authenticate(): does the presumed owner match the stored one."""

    match: bool
    height: int
    age: int = Field(description="Current height minus registration height")
    verified: bool


class RegistryStatistics(BaseModel):
    total: int = Field(description="Documents ever registered (counter value)")
    height: int
    status: str
