"""Polling for records newly appended to a history store.

Usage::

    watcher = watch(store, WatchOptions(job_name="nightly-backup",
                                        interval=timedelta(seconds=10)))
    for event in watcher:
        print(event.record)

Iteration ends once close() is called, from any thread.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import timedelta
from typing import Iterator

from cronwrap.store import Record, Store

DEFAULT_INTERVAL = timedelta(seconds=5)


@dataclass
class WatchOptions:
    """job_name empty means all jobs; an interval of zero or less means five seconds."""

    job_name: str = ""
    interval: timedelta = timedelta(0)


@dataclass
class WatchEvent:
    record: Record


class Watcher:
    """Iterates over records appended after the watcher was created."""

    def __init__(self, store: Store, options: WatchOptions) -> None:
        self.store = store
        self.job_name = options.job_name
        self.interval = options.interval if options.interval > timedelta(0) else DEFAULT_INTERVAL
        self._seen = {r.id for r in store.read_all()}
        self._closed = threading.Event()

    def __iter__(self) -> Iterator[WatchEvent]:
        while not self._closed.wait(self.interval.total_seconds()):
            try:
                records = self.store.read_all()
            except (OSError, ValueError):
                continue
            for record in records:
                if record.id in self._seen:
                    continue
                if self.job_name and record.job_name != self.job_name:
                    continue
                self._seen.add(record.id)
                if self._closed.is_set():
                    return
                yield WatchEvent(record=record)

    def close(self) -> None:
        """Stop the watcher; running iterations end at their next check."""
        self._closed.set()

    def __enter__(self) -> Watcher:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def watch(store: Store, options: WatchOptions | None = None) -> Watcher:
    """Start watching store; records present now are never emitted."""
    return Watcher(store, options or WatchOptions())