import threading
import time
from datetime import datetime, timedelta, timezone

import pytest

from cronwrap.store import Record, Store
from cronwrap.watch import WatchOptions, watch

FAST = timedelta(milliseconds=50)


@pytest.fixture
def store(tmp_path):
    return Store(tmp_path / "history.jsonl")


def _close_after(watcher, seconds):
    timer = threading.Timer(seconds, watcher.close)
    timer.daemon = True
    timer.start()
    return timer


def test_watch_emits_new_records(store):
    store.append(Record(id="w1", job_name="backup", status="success", started_at=datetime.now(timezone.utc)))
    watcher = watch(store, WatchOptions(interval=FAST))
    store.append(Record(id="w2", job_name="backup", status="success", started_at=datetime.now(timezone.utc)))
    timer = _close_after(watcher, 3.0)

    event = next(iter(watcher), None)
    watcher.close()
    timer.cancel()

    assert event is not None
    assert event.record.id == "w2"


def test_watch_filters_job_name(store):
    watcher = watch(store, WatchOptions(job_name="deploy", interval=FAST))

    def append_later():
        store.append(Record(id="x1", job_name="backup", status="success"))
        store.append(Record(id="x2", job_name="deploy", status="success"))

    threading.Timer(0.08, append_later).start()
    timer = _close_after(watcher, 3.0)

    event = next(iter(watcher), None)
    watcher.close()
    timer.cancel()

    assert event is not None
    assert event.record.job_name == "deploy"


def test_watch_does_not_emit_existing_records(store):
    store.append(Record(id="w1", job_name="backup"))
    watcher = watch(store, WatchOptions(interval=FAST))
    _close_after(watcher, 0.3)
    assert list(watcher) == []


def test_watch_stops_on_close(store):
    watcher = watch(store, WatchOptions(interval=timedelta(milliseconds=30)))
    watcher.close()
    started = time.monotonic()
    assert list(watcher) == []
    assert time.monotonic() - started < 0.5


@pytest.mark.parametrize("interval", [timedelta(0), timedelta(seconds=-1)])
def test_watch_default_interval(store, interval):
    watcher = watch(store, WatchOptions(interval=interval))
    assert watcher.interval == timedelta(seconds=5)