import json
from datetime import datetime, timezone

import pytest

from cronwrap.snapshot import (
    CURRENT_VERSION,
    load_snapshot,
    restore_snapshot,
    take_snapshot,
)
from cronwrap.store import Record, Store


def _seed(path):
    store = Store(path)
    for i in range(3):
        store.append(
            Record(
                id=f"snap-{i}",
                job_name="backup",
                started_at=datetime.now(timezone.utc),
                status="success",
                exit_code=0,
            )
        )
    return store


def test_take_snapshot_creates_file(tmp_path):
    store = _seed(tmp_path / "history.jsonl")
    dest = tmp_path / "snap.json"

    snap = take_snapshot(store, dest)

    assert len(snap.records) == 3
    assert snap.version == CURRENT_VERSION
    data = json.loads(dest.read_text())
    assert len(data["records"]) == 3
    assert data["version"] == CURRENT_VERSION


def test_load_snapshot_round_trip(tmp_path):
    store = _seed(tmp_path / "history.jsonl")
    dest = tmp_path / "snap.json"
    taken = take_snapshot(store, dest)

    loaded = load_snapshot(dest)

    assert len(loaded.records) == 3
    assert [r.id for r in loaded.records] == ["snap-0", "snap-1", "snap-2"]
    assert loaded.records == taken.records
    assert loaded.created_at == taken.created_at


def test_restore_snapshot_replaces_contents(tmp_path):
    orig = _seed(tmp_path / "orig.jsonl")
    snap = take_snapshot(orig, tmp_path / "snap.json")

    target = Store(tmp_path / "target.jsonl")
    target.append(Record(id="old", job_name="old-job", status="success"))

    restore_snapshot(snap, target)

    records = target.read_all()
    assert len(records) == 3
    assert "old" not in {r.id for r in records}


def test_load_snapshot_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_snapshot(tmp_path / "nonexistent" / "snap.json")


def test_load_snapshot_malformed(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text("[1, 2")
    with pytest.raises(ValueError):
        load_snapshot(path)