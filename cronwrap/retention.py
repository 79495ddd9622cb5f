"""Retention policies for pruning old execution records."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from cronwrap.store import Record, Store


@dataclass
class RetentionPolicy:
    """max_age of zero and max_records of zero mean no limit; max_records is per job."""

    max_age: timedelta = timedelta(0)
    max_records: int = 0


def _too_old(record: Record, now: datetime, max_age: timedelta) -> bool:
    if record.started_at is None:
        return True
    started = record.started_at
    if started.tzinfo is None:
        started = started.astimezone()
    return now - started > max_age


def prune(store: Store, policy: RetentionPolicy) -> None:
    """Drop records by age, then keep only the newest max_records per job."""
    records = store.read_all()
    if not records:
        return

    if policy.max_age > timedelta(0):
        now = datetime.now(timezone.utc)
        records = [r for r in records if not _too_old(r, now, policy.max_age)]

    if policy.max_records > 0:
        by_job: dict[str, list[Record]] = {}
        for r in records:
            by_job.setdefault(r.job_name, []).append(r)
        records = [r for group in by_job.values() for r in group[-policy.max_records:]]

    store.replace_all(records)