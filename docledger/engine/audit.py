"""
docledger Audit Trail — append-only JSONL record of registry activity.

Every entry has the same top-level keys, so the trail can be filtered
without knowing which operation wrote it:

    timestamp, kind, event, principal, doc_id, height, execution_id, details

Kinds:
    document    — register / update / deregister / reassign_ownership / extend_tags
    permission  — grant / revoke
    denial      — OwnershipRequired, Unauthorized or AdminOnlyOperation
    system      — runtime lifecycle (registry_started)

Layout: {directory}/{YYYY-MM-DD}.jsonl, one file per UTC day.

Usage:
    from docledger.engine.audit import open_audit_trail

    queue = open_audit_trail(".docledger/logs")
    registry = DocumentRegistry(..., audit_queue=queue)
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from queue import Empty, Full, Queue
from typing import Any, Dict, Iterable, Iterator, List, Optional

logger = logging.getLogger("docledger.engine.audit")

KINDS = ("document", "permission", "denial", "system")


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class AuditEntry:
    kind: str
    event: str
    principal: Optional[str] = None
    doc_id: Optional[int] = None
    height: Optional[int] = None
    execution_id: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=_utc_now)

    @property
    def day(self) -> str:
        return self.timestamp[:10]

    def to_json(self) -> str:
        return json.dumps(asdict(self), default=str, separators=(",", ":"))


class AuditLog:
    """Daily JSONL files under one directory. Appends are serialized by a lock."""

    def __init__(self, directory: str):
        self._dir = Path(directory)
        self._dir.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    @property
    def directory(self) -> Path:
        return self._dir

    def append(self, entries: Iterable[AuditEntry]) -> int:
        """Write entries to their day's file and return how many were written."""
        by_day: Dict[str, List[str]] = {}
        for entry in entries:
            by_day.setdefault(entry.day, []).append(entry.to_json())

        with self._lock:
            for day, lines in by_day.items():
                with open(self._dir / f"{day}.jsonl", "a", encoding="utf-8") as f:
                    f.write("\n".join(lines))
                    f.write("\n")
        return sum(len(lines) for lines in by_day.values())

    def query(
        self,
        *,
        doc_id: Optional[int] = None,
        principal: Optional[str] = None,
        kind: Optional[str] = None,
        event: Optional[str] = None,
        days: int = 7,
        limit: int = 500,
    ) -> List[Dict[str, Any]]:
        """
        Entries from the last ``days`` UTC days matching every filter given,
        newest first.
        """
        wanted = {
            key: value
            for key, value in (
                ("doc_id", doc_id),
                ("principal", principal),
                ("kind", kind),
                ("event", event),
            )
            if value is not None
        }
        today = datetime.now(timezone.utc).date()

        results: List[Dict[str, Any]] = []
        for offset in range(max(days, 1)):
            if len(results) >= limit:
                break
            path = self._dir / f"{(today - timedelta(days=offset)).isoformat()}.jsonl"
            if not path.exists():
                continue
            matches = [
                entry for entry in self._read(path)
                if all(entry.get(k) == v for k, v in wanted.items())
            ]
            results.extend(reversed(matches))
        return results[:limit]

    @staticmethod
    def _read(path: Path) -> Iterator[Dict[str, Any]]:
        with open(path, "r", encoding="utf-8") as f:
            for lineno, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    yield json.loads(line)
                except json.JSONDecodeError:
                    logger.warning("Skipping corrupt audit line %s:%d", path, lineno)


class AuditQueue:
    """
    Non-blocking hand-off from registry operations to an AuditLog.

    A daemon thread writes entries as they arrive, at most
    ``flush_batch_size`` per write. ``stop()`` writes whatever is still
    queued. A full queue drops the entry instead of blocking the operation.
    """

    def __init__(
        self,
        audit_log: AuditLog,
        flush_interval_ms: int = 100,
        flush_batch_size: int = 50,
        max_queue_size: int = 10000,
    ):
        self._log = audit_log
        self._interval = flush_interval_ms / 1000.0
        self._batch_size = max(flush_batch_size, 1)
        self._queue: Queue[AuditEntry] = Queue(maxsize=max_queue_size)
        self._stopping = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.dropped = 0

    @property
    def audit_log(self) -> AuditLog:
        return self._log

    def start(self) -> None:
        if self._thread is not None:
            return
        self._stopping.clear()
        self._thread = threading.Thread(
            target=self._run, name="docledger-audit", daemon=True
        )
        self._thread.start()

    def push(self, entry: AuditEntry) -> bool:
        try:
            self._queue.put_nowait(entry)
        except Full:
            self.dropped += 1
            logger.warning(f"Audit queue full, dropped {entry.event} (doc {entry.doc_id})")
            return False
        return True

    def stop(self, timeout: float = 5.0) -> None:
        self._stopping.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
        self._write(self._take(None))
        if self.dropped:
            logger.warning(f"Audit queue stopped with {self.dropped} dropped entries")

    def _run(self) -> None:
        while not self._stopping.is_set():
            try:
                first = self._queue.get(timeout=self._interval)
            except Empty:
                continue
            self._write([first] + self._take(self._batch_size - 1))

    def _take(self, limit: Optional[int]) -> List[AuditEntry]:
        batch: List[AuditEntry] = []
        while limit is None or len(batch) < limit:
            try:
                batch.append(self._queue.get_nowait())
            except Empty:
                break
        return batch

    def _write(self, batch: List[AuditEntry]) -> None:
        if not batch:
            return
        try:
            self._log.append(batch)
        except OSError as e:
            logger.error(f"Audit write failed, {len(batch)} entries lost: {e}")


# ---------------------------------------------------------------------------
# Entry builders
# ---------------------------------------------------------------------------

def document_event(
    operation: str,
    doc_id: int,
    principal: str,
    height: int,
    execution_id: Optional[str] = None,
    **details: Any,
) -> AuditEntry:
    return AuditEntry(
        kind="document",
        event=f"document_{operation}",
        principal=principal,
        doc_id=doc_id,
        height=height,
        execution_id=execution_id,
        details=details,
    )


def permission_event(
    operation: str,
    doc_id: int,
    principal: str,
    viewer: str,
    persisted: bool,
    execution_id: Optional[str] = None,
) -> AuditEntry:
    return AuditEntry(
        kind="permission",
        event=f"permission_{operation}",
        principal=principal,
        doc_id=doc_id,
        execution_id=execution_id,
        details={"viewer": viewer, "persisted": persisted},
    )


def denial_event(
    operation: str,
    failure: str,
    principal: str,
    doc_id: Optional[int] = None,
    execution_id: Optional[str] = None,
) -> AuditEntry:
    """An authorization failure; validation failures are not audited."""
    return AuditEntry(
        kind="denial",
        event="access_denied",
        principal=principal,
        doc_id=doc_id,
        execution_id=execution_id,
        details={"operation": operation, "failure": failure},
    )


def system_event(event: str, **details: Any) -> AuditEntry:
    return AuditEntry(kind="system", event=event, details=details)


# ---------------------------------------------------------------------------
# Process-wide trail
# ---------------------------------------------------------------------------

_queue: Optional[AuditQueue] = None


def open_audit_trail(
    directory: str,
    flush_interval_ms: int = 100,
    flush_batch_size: int = 50,
    max_queue_size: int = 10000,
) -> AuditQueue:
    """Start the process-wide audit queue, replacing any running one."""
    global _queue
    close_audit_trail()
    _queue = AuditQueue(
        AuditLog(directory),
        flush_interval_ms=flush_interval_ms,
        flush_batch_size=flush_batch_size,
        max_queue_size=max_queue_size,
    )
    _queue.start()
    return _queue


def get_audit_queue() -> Optional[AuditQueue]:
    return _queue


def close_audit_trail() -> None:
    """Flush and stop the process-wide audit queue, if one is running."""
    global _queue
    if _queue is not None:
        _queue.stop()
        _queue = None
