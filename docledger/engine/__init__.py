"""docledger Engine — Configuration, caller context, height, errors, audit logging."""

from docledger.engine.context import CallerContext, caller_context, current_principal  # noqa: F401
from docledger.engine.height import LedgerHeight, MonotonicHeight  # noqa: F401

__all__ = [
    "CallerContext",
    "caller_context",
    "current_principal",
    "LedgerHeight",
    "MonotonicHeight",
]
