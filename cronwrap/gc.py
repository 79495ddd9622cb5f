"""Garbage collection of the history store: pruning with optional backup and timing."""

from __future__ import annotations

import os
import time
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path

from cronwrap.durations import format_duration, round_duration
from cronwrap.migrate import backup_file
from cronwrap.retention import RetentionPolicy, prune
from cronwrap.store import Store


@dataclass
class GCOptions:
    """Zero max_age and zero max_records disable the respective eviction."""

    max_age: timedelta = timedelta(0)
    max_records: int = 0
    backup_before_gc: bool = False


@dataclass
class GCResult:
    removed: int = 0
    remaining: int = 0
    backup_path: str = ""
    duration: timedelta = timedelta(0)

    def __str__(self) -> str:
        took = format_duration(round_duration(self.duration, timedelta(milliseconds=1)))
        if self.removed == 0:
            return f"gc: nothing to remove ({self.remaining} records retained, took {took})"
        message = f"gc: removed {self.removed} record(s), {self.remaining} remaining (took {took})"
        if self.backup_path:
            message += f"; backup written to {self.backup_path}"
        return message


def _since(started: float) -> timedelta:
    return timedelta(seconds=time.monotonic() - started)


def gc(path: str | os.PathLike[str], options: GCOptions | None = None) -> GCResult:
    """Prune the store at path according to options; a no-op when no limit is set."""
    options = options or GCOptions()
    if options.max_age == timedelta(0) and options.max_records == 0:
        return GCResult()

    started = time.monotonic()
    store = Store(path)
    before = store.read_all()
    if not before:
        return GCResult(duration=_since(started))

    backup_path = backup_file(store.path) if options.backup_before_gc else ""

    try:
        prune(store, RetentionPolicy(max_age=options.max_age, max_records=options.max_records))
    except Exception:
        if backup_path:
            Path(backup_path).unlink(missing_ok=True)
        raise

    after = store.read_all()
    return GCResult(
        removed=len(before) - len(after),
        remaining=len(after),
        backup_path=backup_path,
        duration=_since(started),
    )