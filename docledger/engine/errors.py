"""
docledger Error Hierarchy — Structured exceptions for infrastructure faults.

Registry operations never raise for business failures; they return a
``Result`` carrying a ``Failure`` code. The exceptions below cover what a
``Result`` cannot express (missing caller context, storage outages, bad
configuration) and back ``Result.unwrap()`` for callers that prefer raising.

Hierarchy:
    DocLedgerError
    ├── DocLedgerSecurityError    — Caller not authenticated / access denied
    ├── DocLedgerValidationError  — Field bounds violated
    ├── DocLedgerNotFoundError    — Document id not registered
    ├── DocLedgerStoreError       — Storage backend failure
    └── DocLedgerConfigError      — Configuration error
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional


class DocLedgerError(Exception):
    """
    Base error for all docledger failures.
    All context is serializable to JSON for the audit log.
    """

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.execution_id: Optional[str] = context.get("execution_id")
        self.doc_id: Optional[int] = context.get("doc_id")
        self.operation: Optional[str] = context.get("operation")
        self.failure_code: Optional[int] = context.get("failure_code")
        self.error_type: str = self.__class__.__name__
        self.context: Dict[str, Any] = context
        self.timestamp: str = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize error to JSON-compatible dict for logging."""
        return {
            "error_type": self.error_type,
            "message": self.message,
            "execution_id": self.execution_id,
            "doc_id": self.doc_id,
            "operation": self.operation,
            "failure_code": self.failure_code,
            "timestamp": self.timestamp,
            "context": {
                k: str(v) for k, v in self.context.items()
                if k not in ("execution_id", "doc_id", "operation", "failure_code")
            },
        }

    def to_json(self) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), default=str)

    def __repr__(self) -> str:
        parts = [f"{self.error_type}: {self.message}"]
        if self.operation:
            parts.append(f"operation={self.operation}")
        if self.doc_id is not None:
            parts.append(f"doc_id={self.doc_id}")
        if self.execution_id:
            parts.append(f"execution_id={self.execution_id}")
        return " | ".join(parts)


class DocLedgerSecurityError(DocLedgerError):
    """
    Caller not authenticated, or an authorization failure surfaced via unwrap().
    Includes the principal that was denied.
    """

    def __init__(self, message: str, **context: Any):
        self.principal: Optional[str] = context.get("principal")
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["principal"] = self.principal
        return d


class DocLedgerValidationError(DocLedgerError):
    """Input validation failed (title, file size, description, tags)."""

    def __init__(self, message: str, **context: Any):
        self.field: Optional[str] = context.get("field")
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["field"] = self.field
        return d


class DocLedgerNotFoundError(DocLedgerError):
    """Document id is not registered."""
    pass


class DocLedgerStoreError(DocLedgerError):
    """Storage backend failed while running a transaction."""

    def __init__(self, message: str, **context: Any):
        self.backend: Optional[str] = context.get("backend")
        super().__init__(message, **context)


class DocLedgerConfigError(DocLedgerError):
    """Configuration error — invalid docledger.yaml or missing administrator."""
    pass
