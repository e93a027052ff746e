"""
Ledger height providers.

The registry never advances height itself; it asks a zero-argument callable
for the current value. LedgerHeight is a local counter for tests and
single-node deployments, MonotonicHeight guards any other source.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from docledger.engine.errors import DocLedgerError

logger = logging.getLogger("docledger.engine.height")

HeightProvider = Callable[[], int]


class LedgerHeight:
    """Manually advanced height counter. Thread-safe."""

    def __init__(self, start: int = 0):
        if start < 0:
            raise ValueError(f"height cannot be negative, got {start}")
        self._height = start
        self._lock = threading.Lock()

    def __call__(self) -> int:
        with self._lock:
            return self._height

    def advance(self, blocks: int = 1) -> int:
        """Advance by ``blocks`` and return the new height."""
        if blocks < 0:
            raise ValueError("height cannot move backwards")
        with self._lock:
            self._height += blocks
            return self._height

    @property
    def height(self) -> int:
        return self()

    def __repr__(self) -> str:
        return f"<LedgerHeight {self._height}>"


class MonotonicHeight:
    """
    Wraps an external height source and refuses values lower than the
    highest one already observed.
    """

    def __init__(self, source: HeightProvider):
        self._source = source
        self._last: Optional[int] = None
        self._lock = threading.Lock()

    def __call__(self) -> int:
        value = self._source()
        with self._lock:
            if self._last is not None and value < self._last:
                logger.error(f"Height regressed from {self._last} to {value}")
                raise DocLedgerError(
                    f"Ledger height went backwards ({self._last} -> {value})",
                    last_height=self._last,
                    height=value,
                )
            self._last = value
        return value
