from datetime import datetime, timedelta, timezone

import pytest

from cronwrap.retention import RetentionPolicy, prune
from cronwrap.store import Record, Store


@pytest.fixture
def store(tmp_path):
    return Store(tmp_path / "history.jsonl")


def seed(store, records):
    for r in records:
        store.append(r)
    return store


def test_prune_by_max_age(store):
    now = datetime.now(timezone.utc)
    records = [
        Record(job_name="job", started_at=now - timedelta(hours=48)),
        Record(job_name="job", started_at=now - timedelta(hours=1)),
    ]
    seed(store, records)
    prune(store, RetentionPolicy(max_age=timedelta(hours=24)))
    remaining = store.read_all()
    assert len(remaining) == 1
    assert int(remaining[0].started_at.timestamp()) == int(records[1].started_at.timestamp())


def test_prune_by_max_records(store):
    now = datetime.now(timezone.utc)
    seed(store, [Record(job_name="job", started_at=now - timedelta(hours=h)) for h in (3, 2, 1)])
    prune(store, RetentionPolicy(max_records=2))
    remaining = store.read_all()
    assert len(remaining) == 2
    assert [r.started_at for r in remaining] == [
        now - timedelta(hours=2),
        now - timedelta(hours=1),
    ]


def test_prune_empty_store(store):
    prune(store, RetentionPolicy(max_age=timedelta(hours=1), max_records=10))
    assert store.read_all() == []
    assert not store.path.exists()


def test_prune_multiple_jobs(store):
    now = datetime.now(timezone.utc)
    seed(store, [
        Record(job_name="a", started_at=now - timedelta(hours=3)),
        Record(job_name="a", started_at=now - timedelta(hours=2)),
        Record(job_name="b", started_at=now - timedelta(hours=3)),
        Record(job_name="b", started_at=now - timedelta(hours=2)),
        Record(job_name="b", started_at=now - timedelta(hours=1)),
    ])
    prune(store, RetentionPolicy(max_records=1))
    remaining = store.read_all()
    assert len(remaining) == 2
    kept = {r.job_name: r.started_at for r in remaining}
    assert kept == {"a": now - timedelta(hours=2), "b": now - timedelta(hours=1)}


def test_prune_without_limits_keeps_everything(store):
    now = datetime.now(timezone.utc)
    seed(store, [Record(job_name="job", started_at=now - timedelta(days=400))])
    prune(store, RetentionPolicy())
    assert len(store.read_all()) == 1