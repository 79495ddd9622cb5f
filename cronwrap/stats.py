"""Aggregate statistics per job."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta

from cronwrap.store import Record, Store


@dataclass
class JobStats:
    job_name: str
    total_runs: int = 0
    success_count: int = 0
    failure_count: int = 0
    success_rate: float = 0.0
    avg_duration: timedelta = timedelta(0)
    min_duration: timedelta = timedelta(0)
    max_duration: timedelta = timedelta(0)
    last_run: datetime | None = None


def _aware(value: datetime) -> datetime:
    return value.astimezone() if value.tzinfo is None else value


def _summarise(name: str, records: list[Record]) -> JobStats:
    total = len(records)
    success = sum(1 for r in records if r.exit_code == 0)
    durations = [r.duration for r in records]
    started = [r.started_at for r in records if r.started_at is not None]
    return JobStats(
        job_name=name,
        total_runs=total,
        success_count=success,
        failure_count=total - success,
        success_rate=math.floor(success / total * 10000 + 0.5) / 100,
        avg_duration=sum(durations, timedelta(0)) // total,
        min_duration=min(durations),
        max_duration=max(durations),
        last_run=max(started, key=_aware) if started else None,
    )


def stats(store: Store, job_name: str = "") -> list[JobStats]:
    """Statistics for each job in store, or only job_name when given.

    The success rate is a percentage rounded to two decimals.
    """
    groups: dict[str, list[Record]] = {}
    for record in store.read_all():
        if job_name and record.job_name != job_name:
            continue
        groups.setdefault(record.job_name, []).append(record)
    return [_summarise(name, records) for name, records in groups.items()]