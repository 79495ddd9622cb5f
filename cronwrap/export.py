"""Export of filtered records as JSON or CSV."""

from __future__ import annotations

import csv
import json
from datetime import datetime, timedelta
from enum import Enum
from typing import TextIO

from cronwrap.durations import format_timestamp
from cronwrap.store import Filter, Record, Store

_ZERO_TIME = "0001-01-01T00:00:00Z"

CSV_HEADER = [
    "job_name",
    "exit_code",
    "status",
    "started_at",
    "finished_at",
    "duration_ms",
    "stdout",
    "stderr",
]


class Format(str, Enum):
    JSON = "json"
    CSV = "csv"


def _stamp(value: datetime | None) -> str:
    return _ZERO_TIME if value is None else format_timestamp(value)


def _aware(value: datetime) -> datetime:
    return value.astimezone() if value.tzinfo is None else value


def _elapsed_ms(record: Record) -> int:
    if record.started_at is None or record.finished_at is None:
        return 0
    delta = _aware(record.finished_at) - _aware(record.started_at)
    micros = delta // timedelta(microseconds=1)
    ms = abs(micros) // 1_000
    return ms if micros >= 0 else -ms


def export_json(store: Store, out: TextIO, filter: Filter | None = None) -> None:
    """Write the matching records to out as an indented JSON array."""
    records = store.query(filter)
    json.dump([r.to_dict() for r in records], out, indent=2, ensure_ascii=False)
    out.write("\n")


def export_csv(store: Store, out: TextIO, filter: Filter | None = None) -> None:
    """Write the matching records to out as CSV with a header row."""
    records = store.query(filter)
    writer = csv.writer(out, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for r in records:
        writer.writerow(
            [
                r.job_name,
                str(r.exit_code),
                r.status,
                _stamp(r.started_at),
                _stamp(r.finished_at),
                str(_elapsed_ms(r)),
                r.stdout,
                r.stderr,
            ]
        )