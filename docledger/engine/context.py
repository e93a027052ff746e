"""
docledger Caller Context — Thread-safe caller identity per call.

The authentication layer in front of the registry verifies who is calling
and installs a CallerContext. The registry only ever reads the principal
back out through ``current_principal`` (its default identity provider).

Usage:
    from docledger.engine.context import caller_context

    with caller_context("ST1OWNER"):
        registry.register(...)
"""

from __future__ import annotations

import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, Dict, Generator, Optional

from docledger.engine.errors import DocLedgerSecurityError

# ---------------------------------------------------------------------------
# Thread-safe context variable — one per call
# ---------------------------------------------------------------------------

current_caller_context: ContextVar[Optional["CallerContext"]] = ContextVar(
    "caller_context", default=None
)


@dataclass
class CallerContext:
    """Authenticated principal for the current call."""

    principal: str
    execution_id: str = field(default_factory=lambda: f"exec_{uuid.uuid4().hex[:12]}")
    session_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for logging."""
        return {
            "principal": self.principal,
            "execution_id": self.execution_id,
            "session_id": self.session_id,
        }


def set_caller_context(ctx: CallerContext) -> None:
    """Set the caller context for the current thread/task."""
    current_caller_context.set(ctx)


def get_caller_context() -> Optional[CallerContext]:
    """Get the current caller context. Returns None if not set."""
    return current_caller_context.get()


def require_caller_context() -> CallerContext:
    """Get caller context or raise error if not set."""
    ctx = get_caller_context()
    if ctx is None:
        raise DocLedgerSecurityError(
            "No caller context — caller not authenticated",
            reason="missing_context",
        )
    return ctx


def clear_caller_context() -> None:
    """Clear the caller context (e.g., at the end of a call)."""
    current_caller_context.set(None)


def current_principal() -> str:
    """Identity provider used by DocumentRegistry by default."""
    return require_caller_context().principal


def current_execution_id() -> Optional[str]:
    ctx = get_caller_context()
    return ctx.execution_id if ctx else None


@contextmanager
def caller_context(
    principal: str, session_id: Optional[str] = None
) -> Generator[CallerContext, None, None]:
    """
    Install a CallerContext for the duration of a block, restoring the
    previous one afterwards.
    """
    ctx = CallerContext(principal=principal, session_id=session_id)
    token = current_caller_context.set(ctx)
    try:
        yield ctx
    finally:
        current_caller_context.reset(token)
