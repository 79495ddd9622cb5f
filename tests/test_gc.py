from datetime import datetime, timedelta, timezone

import pytest

from cronwrap.gc import GCOptions, GCResult, gc
from cronwrap.store import Record, Store


@pytest.fixture
def aged_store(tmp_path):
    path = tmp_path / "history.jsonl"
    store = Store(path)
    now = datetime.now(timezone.utc)
    store.append(Record(job_name="job", started_at=now - timedelta(hours=48)))
    store.append(Record(job_name="job", started_at=now - timedelta(hours=1)))
    return path


def test_gc_without_limits_is_noop(aged_store):
    before = aged_store.read_bytes()
    assert gc(aged_store, GCOptions()) == GCResult()
    assert aged_store.read_bytes() == before


def test_gc_empty_store(tmp_path):
    result = gc(tmp_path / "history.jsonl", GCOptions(max_records=5))
    assert (result.removed, result.remaining, result.backup_path) == (0, 0, "")


def test_gc_by_max_age(aged_store):
    result = gc(aged_store, GCOptions(max_age=timedelta(hours=24)))
    remaining = Store(aged_store).read_all()
    assert result.remaining == len(remaining)
    assert result.removed + result.remaining == 2
    assert all(
        datetime.now(timezone.utc) - r.started_at < timedelta(hours=24) for r in remaining
    )
    assert result.backup_path == ""


def test_gc_writes_backup(aged_store):
    original = aged_store.read_bytes()
    result = gc(aged_store, GCOptions(max_age=timedelta(hours=24), backup_before_gc=True))
    assert result.backup_path == str(aged_store) + ".bak"
    assert (aged_store.parent / "history.jsonl.bak").read_bytes() == original


def test_gc_result_str_nothing_removed():
    text = str(GCResult(remaining=3, duration=timedelta(milliseconds=1500)))
    assert text == "gc: nothing to remove (3 records retained, took 1.5s)"


def test_gc_result_str_with_backup():
    text = str(GCResult(removed=2, remaining=1, backup_path="/tmp/h.bak"))
    assert text.startswith("gc: removed 2 record(s), 1 remaining")
    assert text.endswith("; backup written to /tmp/h.bak")