"""Per-job summaries and their tabular rendering."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Sequence, TextIO

from cronwrap.durations import format_duration, format_timestamp, round_duration
from cronwrap.replay import render_table
from cronwrap.store import Record, Store

_ZERO_TIME = "0001-01-01T00:00:00Z"


@dataclass
class JobSummary:
    job_name: str
    total_runs: int = 0
    success_count: int = 0
    failure_count: int = 0
    success_rate: float = 0.0
    avg_duration: timedelta = timedelta(0)
    last_status: str = ""
    last_run: datetime | None = None


def _aware(value: datetime) -> datetime:
    return value.astimezone() if value.tzinfo is None else value


def _latest(records: list[Record]) -> Record | None:
    latest: Record | None = None
    for r in records:
        if r.started_at is None:
            continue
        if latest is None or _aware(r.started_at) > _aware(latest.started_at):
            latest = r
    return latest


def summarize(store: Store, job_name: str = "") -> list[JobSummary]:
    """One summary per job in first-seen order, or only job_name when given."""
    groups: dict[str, list[Record]] = {}
    for record in store.read_all():
        if job_name and record.job_name != job_name:
            continue
        groups.setdefault(record.job_name, []).append(record)

    summaries = []
    for name, records in groups.items():
        total = len(records)
        success = sum(1 for r in records if r.exit_code == 0)
        latest = _latest(records)
        summaries.append(
            JobSummary(
                job_name=name,
                total_runs=total,
                success_count=success,
                failure_count=total - success,
                success_rate=success / total * 100,
                avg_duration=sum((r.duration for r in records), timedelta(0)) // total,
                last_status=latest.status if latest else "",
                last_run=latest.started_at if latest else None,
            )
        )
    return summaries


def print_summary(out: TextIO, summaries: Sequence[JobSummary]) -> None:
    """Write summaries to out as an aligned table."""
    rows = [["JOB", "RUNS", "SUCCESS", "FAILURE", "SUCCESS%", "AVG DURATION", "LAST STATUS", "LAST RUN"]]
    for s in summaries:
        rows.append(
            [
                s.job_name,
                str(s.total_runs),
                str(s.success_count),
                str(s.failure_count),
                f"{s.success_rate:.1f}%",
                format_duration(round_duration(s.avg_duration, timedelta(milliseconds=1))),
                s.last_status,
                _ZERO_TIME if s.last_run is None else format_timestamp(s.last_run),
            ]
        )
    out.write(render_table(rows))