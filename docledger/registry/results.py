"""
Operation results and failure codes.

Registry operations return ``Result`` values rather than raising. Each
``Failure`` carries a stable numeric code for the dispatch layer.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Generic, Optional, Type, TypeVar

from docledger.engine.errors import (
    DocLedgerError,
    DocLedgerNotFoundError,
    DocLedgerSecurityError,
    DocLedgerValidationError,
)

T = TypeVar("T")


class Failure(str, Enum):
    UNAUTHORIZED = "Unauthorized"
    NOT_FOUND = "NotFound"
    OWNERSHIP_REQUIRED = "OwnershipRequired"
    INVALID_TITLE = "InvalidTitle"
    INVALID_VOLUME = "InvalidVolume"
    TAG_VALIDATION_FAILED = "TagValidationFailed"
    ADMIN_ONLY_OPERATION = "AdminOnlyOperation"

    @property
    def code(self) -> int:
        return FAILURE_CODES[self]


FAILURE_CODES: Dict[Failure, int] = {
    Failure.UNAUTHORIZED: 100,
    Failure.NOT_FOUND: 101,
    Failure.OWNERSHIP_REQUIRED: 102,
    Failure.INVALID_TITLE: 103,
    Failure.INVALID_VOLUME: 104,
    Failure.TAG_VALIDATION_FAILED: 105,
    Failure.ADMIN_ONLY_OPERATION: 106,
}

_EXCEPTIONS: Dict[Failure, Type[DocLedgerError]] = {
    Failure.UNAUTHORIZED: DocLedgerSecurityError,
    Failure.NOT_FOUND: DocLedgerNotFoundError,
    Failure.OWNERSHIP_REQUIRED: DocLedgerSecurityError,
    Failure.INVALID_TITLE: DocLedgerValidationError,
    Failure.INVALID_VOLUME: DocLedgerValidationError,
    Failure.TAG_VALIDATION_FAILED: DocLedgerValidationError,
    Failure.ADMIN_ONLY_OPERATION: DocLedgerSecurityError,
}


@dataclass(frozen=True)
class Result(Generic[T]):
    """Either a success value or exactly one Failure."""

    value: Optional[T] = None
    failure: Optional[Failure] = None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def fail(cls, failure: Failure) -> "Result[T]":
        return cls(failure=failure)

    @property
    def ok(self) -> bool:
        return self.failure is None

    def unwrap(self, **context: Any) -> T:
        """Return the value, or raise the DocLedgerError matching the failure."""
        if self.failure is None:
            return self.value  # type: ignore[return-value]
        exc_class = _EXCEPTIONS[self.failure]
        raise exc_class(
            f"Registry operation failed: {self.failure.value}",
            failure_code=self.failure.code,
            failure=self.failure.value,
            **context,
        )

    def to_dict(self) -> Dict[str, Any]:
        if self.failure is not None:
            return {
                "ok": False,
                "failure": self.failure.value,
                "code": self.failure.code,
            }
        value = self.value
        if hasattr(value, "model_dump"):
            value = value.model_dump()
        return {"ok": True, "value": value}
