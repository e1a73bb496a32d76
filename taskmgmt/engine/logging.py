"""
TaskMgmt Logging — Structured JSON file logging with an async flush queue.

Implements:
- FileLogger: Per-area, per-category JSONL files (daily rotation)
- AsyncLogQueue: In-memory queue drained by a background thread
- Entry builders for rules-engine operations, rule violations, API requests

Module loggers (``logging.getLogger("taskmgmt.*")``) are still used for
human-oriented diagnostics; the files written here are the machine-readable
operation trail.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from collections import defaultdict
from datetime import date, datetime, timezone
from pathlib import Path
from queue import Empty, Full, Queue
from typing import Any, Dict, List, Optional

from taskmgmt.engine.context import get_request_context

logger = logging.getLogger("taskmgmt.engine.logging")

# Log areas and the categories each one writes
AREA_CATEGORIES = {
    "projects": ["execution", "violations"],
    "tasks": ["execution", "violations"],
    "comments": ["execution", "violations"],
    "api": ["execution"],
    "system": ["execution"],
}


class LogEntry:
    """A structured log entry destined for a specific file."""

    __slots__ = ("area", "category", "data")

    def __init__(self, area: str, category: str, data: Dict[str, Any]):
        self.area = area
        self.category = category
        self.data = data

    def to_json(self) -> str:
        return json.dumps(self.data, default=str, separators=(",", ":"))


class FileLogger:
    """
    Writes JSON lines to logs/{area}/{category}/{YYYY-MM-DD}.jsonl.

    Thread-safe: one lock per file path.
    """

    def __init__(self, log_dir: str = "logs"):
        self._log_dir = Path(log_dir)
        self._file_locks: Dict[str, threading.Lock] = defaultdict(threading.Lock)
        for area, categories in AREA_CATEGORIES.items():
            for cat in categories:
                (self._log_dir / area / cat).mkdir(parents=True, exist_ok=True)

    @property
    def log_dir(self) -> Path:
        return self._log_dir

    def write(self, entry: LogEntry) -> None:
        self.write_batch([entry])

    def write_batch(self, entries: List[LogEntry]) -> None:
        """Write entries grouped by destination file."""
        grouped: Dict[str, List[LogEntry]] = defaultdict(list)
        for entry in entries:
            grouped[str(self._resolve_path(entry.area, entry.category))].append(entry)

        for file_path, batch in grouped.items():
            with self._file_locks[file_path]:
                with open(file_path, "a", encoding="utf-8") as f:
                    for entry in batch:
                        f.write(entry.to_json())
                        f.write("\n")

    def _resolve_path(self, area: str, category: str) -> Path:
        if area not in AREA_CATEGORIES:
            area = "system"
        directory = self._log_dir / area / category
        directory.mkdir(parents=True, exist_ok=True)
        return directory / f"{date.today().isoformat()}.jsonl"


class AsyncLogQueue:
    """
    Non-blocking producer side, background flushing consumer side.

    The flush thread writes whenever ``flush_batch_size`` entries are waiting
    or ``flush_interval_ms`` has elapsed, whichever comes first.
    """

    def __init__(
        self,
        file_logger: FileLogger,
        flush_interval_ms: int = 100,
        flush_batch_size: int = 50,
        max_queue_size: int = 10000,
    ):
        self._logger = file_logger
        self._flush_interval = flush_interval_ms / 1000.0
        self._flush_batch_size = flush_batch_size
        self._queue: Queue[LogEntry] = Queue(maxsize=max_queue_size)
        self._running = False
        self._flush_thread: Optional[threading.Thread] = None
        self._dropped_count = 0

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._flush_thread = threading.Thread(
            target=self._flush_loop,
            name="taskmgmt-log-flush",
            daemon=True,
        )
        self._flush_thread.start()
        logger.info("Async log queue started")

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the flush thread and write whatever is still queued."""
        self._running = False
        if self._flush_thread and self._flush_thread.is_alive():
            self._flush_thread.join(timeout=timeout)
        self._drain()
        logger.info("Async log queue stopped (dropped: %d)", self._dropped_count)

    def push(self, entry: LogEntry) -> bool:
        """Queue an entry. Returns False if it was dropped because the queue is full."""
        try:
            self._queue.put_nowait(entry)
            return True
        except Full:
            self._dropped_count += 1
            return False

    def _flush_loop(self) -> None:
        while self._running:
            batch = self._collect_batch()
            if batch:
                try:
                    self._logger.write_batch(batch)
                except OSError as e:
                    logger.error("Log flush error: %s", e)
            else:
                time.sleep(self._flush_interval)

    def _collect_batch(self) -> List[LogEntry]:
        batch: List[LogEntry] = []
        deadline = time.monotonic() + self._flush_interval

        while len(batch) < self._flush_batch_size:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            try:
                batch.append(self._queue.get(timeout=min(remaining, 0.01)))
            except Empty:
                if batch:
                    break
        return batch

    def _drain(self) -> None:
        batch: List[LogEntry] = []
        while True:
            try:
                batch.append(self._queue.get_nowait())
            except Empty:
                break
        if batch:
            try:
                self._logger.write_batch(batch)
            except OSError as e:
                logger.error("Log drain error: %s", e)

    @property
    def pending_count(self) -> int:
        return self._queue.qsize()

    @property
    def dropped_count(self) -> int:
        return self._dropped_count


# ---------------------------------------------------------------------------
# Log Entry Builders
# ---------------------------------------------------------------------------

def _base_entry(event: str, level: str, **extra: Any) -> Dict[str, Any]:
    entry: Dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "level": level,
        "event": event,
    }
    ctx = get_request_context()
    if ctx is not None:
        entry["request_id"] = ctx.request_id
        if ctx.user_id is not None:
            entry["user_id"] = str(ctx.user_id)
    entry.update({k: v for k, v in extra.items() if v is not None})
    return entry


def log_operation(
    area: str,
    operation: str,
    entity_id: Any,
    user_id: Any = None,
    fields_changed: Optional[List[str]] = None,
    duration_ms: Optional[float] = None,
) -> LogEntry:
    """A rules-engine mutation that committed successfully."""
    data = _base_entry(
        event=f"{area}_{operation}",
        level="INFO",
        operation=operation,
        entity_id=str(entity_id) if entity_id is not None else None,
        fields_changed=fields_changed or None,
        duration_ms=duration_ms,
    )
    if user_id is not None:
        data["user_id"] = str(user_id)
    return LogEntry(area, "execution", data)


def log_rule_violation(area: str, operation: str, error: Any) -> LogEntry:
    """A domain error raised by a rules engine (conflict, not found, ...)."""
    data = _base_entry(
        event="rule_violation",
        level="WARNING",
        operation=operation,
        error=error.to_dict() if hasattr(error, "to_dict") else str(error),
    )
    return LogEntry(area, "violations", data)


def log_api_request(
    method: str,
    path: str,
    status_code: int,
    duration_ms: float,
) -> LogEntry:
    data = _base_entry(
        event="api_request",
        level="INFO" if status_code < 400 else "ERROR",
        method=method,
        path=path,
        status_code=status_code,
        duration_ms=duration_ms,
    )
    return LogEntry("api", "execution", data)


def log_system_event(
    event: str,
    level: str = "INFO",
    details: Optional[Dict[str, Any]] = None,
) -> LogEntry:
    """Startup, shutdown, schema creation."""
    return LogEntry("system", "execution", _base_entry(event=event, level=level, details=details))


# ---------------------------------------------------------------------------
# Global Log Queue Singleton
# ---------------------------------------------------------------------------

_global_queue: Optional[AsyncLogQueue] = None


def init_logging(
    log_dir: str = "logs",
    level: str = "INFO",
    flush_interval_ms: int = 100,
    flush_batch_size: int = 50,
    max_queue_size: int = 10000,
) -> AsyncLogQueue:
    """Configure the ``taskmgmt`` logger level and start the global queue."""
    global _global_queue
    logging.getLogger("taskmgmt").setLevel(level.upper())
    if _global_queue is not None:
        _global_queue.stop()
    _global_queue = AsyncLogQueue(
        file_logger=FileLogger(log_dir=log_dir),
        flush_interval_ms=flush_interval_ms,
        flush_batch_size=flush_batch_size,
        max_queue_size=max_queue_size,
    )
    _global_queue.start()
    return _global_queue


def get_log_queue() -> Optional[AsyncLogQueue]:
    return _global_queue


def log(entry: LogEntry) -> bool:
    """Push an entry to the global queue. Non-blocking; False when not initialised."""
    if _global_queue is None:
        logger.debug("Log queue not initialized; %s entry dropped", entry.data.get("event"))
        return False
    return _global_queue.push(entry)


def shutdown_logging() -> None:
    """Flush and stop the global log queue."""
    global _global_queue
    if _global_queue:
        _global_queue.stop()
        _global_queue = None
