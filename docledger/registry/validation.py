"""
Pure validation helpers shared by every mutating operation.

None of these touch state except ``lookup_document`` and ``registered``,
which only read.
"""

from __future__ import annotations

from typing import Any, Optional

from docledger.registry.models import (
    MAX_DESCRIPTION_LENGTH,
    MAX_DOC_ID,
    MAX_FILE_SIZE,
    MAX_TAG_LENGTH,
    MAX_TAGS,
    MAX_TITLE_LENGTH,
    DocumentRecord,
)
from docledger.registry.results import Failure


def valid_doc_id(doc_id: Any) -> bool:
    """True iff doc_id could have been allocated by the document counter."""
    if isinstance(doc_id, bool) or not isinstance(doc_id, int):
        return False
    return 0 < doc_id <= MAX_DOC_ID


def lookup_document(tx, doc_id: Any) -> Optional[DocumentRecord]:
    """
    Existence check used by every operation that takes a doc_id.

    Ids no counter could have produced never reach the store, so a
    backend cannot fail on them.
    """
    if not valid_doc_id(doc_id):
        return None
    return tx.get_document(doc_id)


def registered(tx, doc_id: Any) -> bool:
    """True iff the Document Store holds an entry for doc_id."""
    return lookup_document(tx, doc_id) is not None


def validate_text(value: Any, max_len: int, min_len: int = 1) -> bool:
    if not isinstance(value, str):
        return False
    return min_len <= len(value) <= max_len


def validate_tag(tag: Any) -> bool:
    return validate_text(tag, MAX_TAG_LENGTH)


def validate_tags(tags: Any) -> bool:
    if not isinstance(tags, (list, tuple)):
        return False
    if not 1 <= len(tags) <= MAX_TAGS:
        return False
    return all(validate_tag(tag) for tag in tags)


def validate_file_size(size: Any) -> bool:
    # bool is an int subclass; True is not a size
    if isinstance(size, bool) or not isinstance(size, int):
        return False
    return 0 < size < MAX_FILE_SIZE


def validate_document_fields(
    title: Any, file_size: Any, description: Any, tags: Any
) -> Optional[Failure]:
    """Return the first failing field's Failure, or None if all pass."""
    if not validate_text(title, MAX_TITLE_LENGTH):
        return Failure.INVALID_TITLE
    if not validate_file_size(file_size):
        return Failure.INVALID_VOLUME
    if not validate_text(description, MAX_DESCRIPTION_LENGTH):
        return Failure.INVALID_TITLE
    if not validate_tags(tags):
        return Failure.TAG_VALIDATION_FAILED
    return None
