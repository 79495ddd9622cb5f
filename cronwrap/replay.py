"""Chronological, human-readable replay of past job executions.

Options:

- job_name: when non-empty, only records for that job are shown.
- since: when set, records started before it are excluded.
- limit: when positive, only the newest matching records are shown.
- out: destination stream for the rendered table (stdout when unset).
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Sequence, TextIO

from cronwrap.durations import format_duration, format_timestamp, round_duration
from cronwrap.store import Record, Store

_ZERO_TIME = "0001-01-01T00:00:00Z"
_PADDING = 2


@dataclass
class ReplayOptions:
    job_name: str = ""
    since: datetime | None = None
    limit: int = 0
    out: TextIO | None = None


@dataclass
class ReplayResult:
    total: int = 0
    printed: int = 0
    job_names: list[str] = field(default_factory=list)


def render_table(rows: Sequence[Sequence[str]]) -> str:
    """Align rows into space-padded columns; the last cell of each row is left as is."""
    widths: list[int] = []
    for row in rows:
        for col, cell in enumerate(row[:-1]):
            if col == len(widths):
                widths.append(0)
            widths[col] = max(widths[col], len(cell))

    lines = []
    for row in rows:
        cells = [cell.ljust(widths[col] + _PADDING) for col, cell in enumerate(row[:-1])]
        if row:
            cells.append(row[-1])
        lines.append("".join(cells) + "\n")
    return "".join(lines)


def _aware(value: datetime) -> datetime:
    return value.astimezone() if value.tzinfo is None else value


def _selected(record: Record, options: ReplayOptions) -> bool:
    if options.job_name and record.job_name != options.job_name:
        return False
    if options.since is not None:
        if record.started_at is None or _aware(record.started_at) < _aware(options.since):
            return False
    return True


def replay(store: Store, options: ReplayOptions | None = None) -> ReplayResult:
    """Print the matching records as a table and report what was shown."""
    options = options or ReplayOptions()
    records = store.read_all()
    filtered = [r for r in records if _selected(r, options)]
    if options.limit > 0 and len(filtered) > options.limit:
        filtered = filtered[-options.limit:]

    rows = [["TIME", "JOB", "STATUS", "DURATION", "EXIT"]]
    for r in filtered:
        started = _ZERO_TIME if r.started_at is None else format_timestamp(r.started_at)
        rows.append(
            [
                started,
                r.job_name,
                r.status or "unknown",
                format_duration(round_duration(r.duration, timedelta(milliseconds=1))),
                str(r.exit_code),
            ]
        )
    out = options.out if options.out is not None else sys.stdout
    out.write(render_table(rows))

    return ReplayResult(
        total=len(records),
        printed=len(filtered),
        job_names=list(dict.fromkeys(r.job_name for r in filtered)),
    )