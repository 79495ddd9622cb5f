import json
from datetime import datetime, timedelta, timezone

import pytest

from cronwrap.store import Filter, Record, Status, Store


@pytest.fixture
def store(tmp_path):
    return Store(tmp_path / "history.jsonl")


def seed(store, records):
    for record in records:
        store.append(record)
    return store


def test_append_and_read_all(store):
    now = datetime.now(timezone.utc)
    rec = Record(
        job_name="backup",
        command="tar -czf /tmp/backup.tar.gz /data",
        status=Status.SUCCESS,
        exit_code=0,
        started_at=now,
        duration=timedelta(seconds=2),
    )
    store.append(rec)
    records = store.read_all()
    assert len(records) == 1
    assert records[0].job_name == "backup"
    assert records[0].status == Status.SUCCESS
    assert records[0].duration == timedelta(seconds=2)
    assert records[0].started_at == now


def test_read_all_missing_file(store):
    assert store.read_all() == []


def test_append_multiple_records(store):
    for _ in range(5):
        store.append(Record(job_name="job", status=Status.FAILURE, exit_code=1))
    assert len(store.read_all()) == 5


def test_new_store_creates_parent_dirs(tmp_path):
    path = tmp_path / "a" / "b" / "c" / "history.jsonl"
    Store(path)
    assert path.parent.is_dir()


def test_query_filter_by_job_name(store):
    now = datetime.now(timezone.utc)
    seed(store, [
        Record(job_name="alpha", status=Status.SUCCESS, started_at=now),
        Record(job_name="beta", status=Status.FAILURE, started_at=now),
        Record(job_name="alpha", status=Status.FAILURE, started_at=now),
    ])
    results = store.query(Filter(job_name="alpha"))
    assert len(results) == 2
    assert {r.job_name for r in results} == {"alpha"}


def test_query_filter_by_status(store):
    now = datetime.now(timezone.utc)
    seed(store, [
        Record(job_name="j", status=Status.SUCCESS, started_at=now),
        Record(job_name="j", status=Status.TIMEOUT, started_at=now),
        Record(job_name="j", status=Status.SUCCESS, started_at=now),
    ])
    assert len(store.query(Filter(status=Status.SUCCESS))) == 2


def test_query_limit_keeps_newest(store):
    now = datetime.now(timezone.utc)
    seed(store, [
        Record(job_name="job", status=Status.SUCCESS, started_at=now, exit_code=i)
        for i in range(10)
    ])
    results = store.query(Filter(limit=3))
    assert [r.exit_code for r in results] == [7, 8, 9]


def test_query_since(store):
    now = datetime.now(timezone.utc)
    seed(store, [
        Record(job_name="j", started_at=now - timedelta(hours=3)),
        Record(job_name="j", started_at=now - timedelta(minutes=10)),
        Record(job_name="j"),
    ])
    results = store.query(Filter(since=now - timedelta(hours=1)))
    assert len(results) == 1
    assert results[0].started_at == now - timedelta(minutes=10)


def test_query_without_filter_returns_all(store):
    seed(store, [Record(job_name="a"), Record(job_name="b")])
    assert [r.job_name for r in store.query()] == ["a", "b"]


def test_last_returns_none_when_empty(store):
    assert store.last("nonexistent") is None


def test_last_returns_most_recent(store):
    now = datetime.now(timezone.utc)
    seed(store, [
        Record(job_name="myjob", status=Status.SUCCESS, started_at=now - timedelta(hours=2)),
        Record(job_name="myjob", status=Status.FAILURE, started_at=now),
    ])
    last = store.last("myjob")
    assert last is not None
    assert last.status == Status.FAILURE


def test_record_round_trip():
    rec = Record(
        job_name="sync",
        command="rsync",
        status="failure",
        exit_code=3,
        started_at=datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc),
        finished_at=datetime(2024, 5, 1, 10, 1, tzinfo=timezone.utc),
        duration=timedelta(milliseconds=1500),
        duration_ms=1500,
        stdout="out",
        stderr="err",
        error="boom",
        id="rec-1",
        meta={"tags": "daily"},
    )
    assert Record.from_dict(json.loads(json.dumps(rec.to_dict()))) == rec


def test_to_dict_omits_empty_optional_fields():
    data = Record(job_name="x").to_dict()
    for key in ("stdout", "stderr", "error", "id", "meta"):
        assert key not in data
    assert data["started_at"] == "0001-01-01T00:00:00Z"
    assert data["status"] == ""


def test_status_enum_serialises_as_value():
    assert Record(status=Status.TIMEOUT).to_dict()["status"] == "timeout"


def test_from_dict_accepts_nanosecond_timestamps():
    rec = Record.from_dict({
        "job_name": "x",
        "started_at": "2024-05-01T10:00:00.123456789Z",
        "duration_ns": 1_500_000_000,
        "schema_version": 1,
    })
    assert rec.started_at == datetime(2024, 5, 1, 10, 0, 0, 123456, tzinfo=timezone.utc)
    assert rec.duration == timedelta(seconds=1.5)


def test_from_dict_zero_time_is_none():
    assert Record.from_dict({"started_at": "0001-01-01T00:00:00Z"}).started_at is None


def test_elapsed_prefers_duration_then_ms_then_timestamps():
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert Record(duration=timedelta(seconds=4), duration_ms=10).elapsed() == timedelta(seconds=4)
    assert Record(duration_ms=250).elapsed() == timedelta(milliseconds=250)
    rec = Record(started_at=start, finished_at=start + timedelta(seconds=9))
    assert rec.elapsed() == timedelta(seconds=9)
    assert Record().elapsed() == timedelta(0)


def test_is_success():
    assert Record(status=Status.SUCCESS).is_success() is True
    assert Record(status="failure").is_success() is False


def test_replace_all(store):
    seed(store, [Record(job_name="a"), Record(job_name="b")])
    store.replace_all([Record(job_name="c")])
    assert [r.job_name for r in store.read_all()] == ["c"]


def test_truncate(store):
    seed(store, [Record(job_name="a")])
    store.truncate()
    assert store.read_all() == []


def test_truncate_missing_file_keeps_it_missing(store):
    store.truncate()
    assert not store.path.exists()


def test_read_all_rejects_corrupt_line(store):
    store.path.write_text('{"job_name": "ok"}\nnot json\n')
    with pytest.raises(ValueError):
        store.read_all()