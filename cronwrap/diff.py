"""Differences in outcome and timing between two runs of a job."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from cronwrap.durations import format_duration, format_timestamp, round_duration
from cronwrap.store import Record

_ZERO_TIME = "0001-01-01T00:00:00Z"


def _stamp(value: datetime | None) -> str:
    return _ZERO_TIME if value is None else format_timestamp(value)


@dataclass
class Diff:
    """Change between an older and a newer record; a positive delta means slower."""

    job_name: str = ""
    older_run_at: datetime | None = None
    newer_run_at: datetime | None = None
    duration_delta: timedelta = timedelta(0)
    exit_code_change: bool = False
    older_exit_code: int = 0
    newer_exit_code: int = 0
    status_change: bool = False
    older_status: str = ""
    newer_status: str = ""

    def __str__(self) -> str:
        older = _stamp(self.older_run_at)
        newer = _stamp(self.newer_run_at)
        if not self.exit_code_change and not self.status_change and not self.duration_delta:
            return f"[{self.job_name}] no change between runs at {older} and {newer}"

        lines = [f"[{self.job_name}] diff between {older} → {newer}:\n"]
        if self.status_change:
            lines.append(f"  status:    {self.older_status} → {self.newer_status}\n")
        if self.exit_code_change:
            lines.append(f"  exit_code: {self.older_exit_code} → {self.newer_exit_code}\n")
        if self.duration_delta:
            sign = "" if self.duration_delta < timedelta(0) else "+"
            rounded = round_duration(self.duration_delta, timedelta(milliseconds=1))
            lines.append(f"  duration:  {sign}{format_duration(rounded)}\n")
        return "".join(lines)


def diff_records(older: Record, newer: Record) -> Diff:
    """Compare two records of the same job, older first."""
    diff = Diff(
        job_name=older.job_name,
        older_run_at=older.started_at,
        newer_run_at=newer.started_at,
        duration_delta=newer.duration - older.duration,
    )
    if older.exit_code != newer.exit_code:
        diff.exit_code_change = True
        diff.older_exit_code = older.exit_code
        diff.newer_exit_code = newer.exit_code
    if older.status != newer.status:
        diff.status_change = True
        diff.older_status = older.status
        diff.newer_status = newer.status
    return diff