import csv
import io
import json
from datetime import datetime, timedelta, timezone

import pytest

from cronwrap.export import CSV_HEADER, Format, export_csv, export_json
from cronwrap.store import Filter, Record, Store


@pytest.fixture
def store(tmp_path):
    return Store(tmp_path / "history.jsonl")


@pytest.fixture
def seeded(store):
    now = datetime.now(timezone.utc).replace(microsecond=0)
    records = [
        Record(job_name="backup", exit_code=0, status="success",
               started_at=now - timedelta(minutes=2), finished_at=now - timedelta(minutes=1),
               stdout="ok"),
        Record(job_name="backup", exit_code=1, status="failure",
               started_at=now - timedelta(minutes=1), finished_at=now, stderr="err"),
        Record(job_name="sync", exit_code=0, status="success",
               started_at=now - timedelta(seconds=30), finished_at=now, stdout="done"),
    ]
    for r in records:
        store.append(r)
    return store


def test_export_json_all_records(seeded):
    buf = io.StringIO()
    export_json(seeded, buf, Filter())
    data = json.loads(buf.getvalue())
    assert len(data) == 3
    assert [Record.from_dict(d).job_name for d in data] == ["backup", "backup", "sync"]


def test_export_json_filtered_by_job_name(seeded):
    buf = io.StringIO()
    export_json(seeded, buf, Filter(job_name="sync"))
    data = json.loads(buf.getvalue())
    assert len(data) == 1
    assert data[0]["job_name"] == "sync"


def test_export_csv_header_and_rows(seeded):
    buf = io.StringIO()
    export_csv(seeded, buf, Filter())
    rows = list(csv.reader(io.StringIO(buf.getvalue())))
    assert len(rows) == 4
    assert rows[0][0] == "job_name"
    assert rows[0] == CSV_HEADER
    assert rows[1][5] == "60000"
    assert rows[3][5] == "30000"
    assert rows[2][1] == "1"
    assert rows[2][7] == "err"


def test_export_csv_empty_store(store):
    buf = io.StringIO()
    export_csv(store, buf, Filter())
    rows = list(csv.reader(io.StringIO(buf.getvalue())))
    assert rows == [CSV_HEADER]


def test_export_json_empty_store(store):
    buf = io.StringIO()
    export_json(store, buf)
    assert json.loads(buf.getvalue()) == []


def test_format_values():
    assert Format("json") is Format.JSON
    assert Format("csv") is Format.CSV