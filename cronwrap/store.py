"""Execution records and their newline-delimited JSON store."""

from __future__ import annotations

import json
import os
import re
import tempfile
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import Any, Iterable

_ZERO_TIME = "0001-01-01T00:00:00Z"
_FRACTION = re.compile(r"\.(\d+)")


class Status(str, Enum):
    """Outcome of a job execution."""

    SUCCESS = "success"
    FAILURE = "failure"
    TIMEOUT = "timeout"


def _ns_to_timedelta(ns: int) -> timedelta:
    magnitude = abs(ns) // 1_000
    return timedelta(microseconds=magnitude if ns >= 0 else -magnitude)


def _timedelta_to_ns(value: timedelta) -> int:
    return (value // timedelta(microseconds=1)) * 1_000


def _aware(value: datetime) -> datetime:
    return value.astimezone() if value.tzinfo is None else value


def _time_to_json(value: datetime | None) -> str:
    if value is None:
        return _ZERO_TIME
    text = _aware(value).isoformat()
    return text[:-6] + "Z" if text.endswith("+00:00") else text


def _time_from_json(text: Any) -> datetime | None:
    if not text:
        return None
    text = str(text)
    if text.startswith("0001-01-01T00:00:00"):
        return None
    if text[-1:] in ("Z", "z"):
        text = text[:-1] + "+00:00"
    text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    return datetime.fromisoformat(text)


@dataclass
class Record:
    """One execution of a wrapped job."""

    job_name: str = ""
    command: str = ""
    status: str = ""
    exit_code: int = 0
    started_at: datetime | None = None
    finished_at: datetime | None = None
    duration: timedelta = timedelta(0)
    duration_ms: int = 0
    stdout: str = ""
    stderr: str = ""
    error: str = ""
    id: str = ""
    meta: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if isinstance(self.status, Status):
            self.status = self.status.value

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON-ready mapping written to the store."""
        data: dict[str, Any] = {
            "job_name": self.job_name,
            "command": self.command,
            "status": self.status,
            "exit_code": self.exit_code,
            "started_at": _time_to_json(self.started_at),
            "finished_at": _time_to_json(self.finished_at),
            "duration_ns": _timedelta_to_ns(self.duration),
            "duration_ms": self.duration_ms,
        }
        for key in ("stdout", "stderr", "error", "id"):
            value = getattr(self, key)
            if value:
                data[key] = value
        if self.meta:
            data["meta"] = dict(self.meta)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Record:
        """Build a record from a decoded JSON object; unknown keys are ignored."""
        meta = data.get("meta") or {}
        return cls(
            job_name=str(data.get("job_name") or ""),
            command=str(data.get("command") or ""),
            status=str(data.get("status") or ""),
            exit_code=int(data.get("exit_code") or 0),
            started_at=_time_from_json(data.get("started_at")),
            finished_at=_time_from_json(data.get("finished_at")),
            duration=_ns_to_timedelta(int(data.get("duration_ns") or 0)),
            duration_ms=int(data.get("duration_ms") or 0),
            stdout=str(data.get("stdout") or ""),
            stderr=str(data.get("stderr") or ""),
            error=str(data.get("error") or ""),
            id=str(data.get("id") or ""),
            meta={str(k): str(v) for k, v in meta.items()},
        )

    def elapsed(self) -> timedelta:
        """Execution time, from whichever of the duration fields is populated."""
        if self.duration:
            return self.duration
        if self.duration_ms > 0:
            return timedelta(milliseconds=self.duration_ms)
        if self.started_at is not None and self.finished_at is not None:
            return _aware(self.finished_at) - _aware(self.started_at)
        return timedelta(0)

    def is_success(self) -> bool:
        return self.status == Status.SUCCESS


@dataclass
class Filter:
    """Optional criteria for selecting records; empty fields match everything."""

    job_name: str = ""
    status: str = ""
    since: datetime | None = None
    limit: int = 0

    def matches(self, record: Record) -> bool:
        if self.job_name and record.job_name != self.job_name:
            return False
        if self.status and record.status != self.status:
            return False
        if self.since is not None:
            if record.started_at is None or _aware(record.started_at) < _aware(self.since):
                return False
        return True


class Store:
    """Records kept one JSON object per line in a single file."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def __repr__(self) -> str:
        return f"Store({str(self.path)!r})"

    def append(self, record: Record) -> None:
        line = json.dumps(record.to_dict(), ensure_ascii=False)
        with self.path.open("a", encoding="utf-8") as fh:
            fh.write(line + "\n")

    def read_all(self) -> list[Record]:
        """All stored records in file order; a missing file holds none."""
        try:
            fh = self.path.open(encoding="utf-8")
        except FileNotFoundError:
            return []
        records = []
        with fh:
            for lineno, line in enumerate(fh, start=1):
                if not line.strip():
                    continue
                try:
                    data = json.loads(line)
                except json.JSONDecodeError as exc:
                    raise ValueError(f"{self.path}:{lineno}: invalid record: {exc}") from exc
                if not isinstance(data, dict):
                    raise ValueError(f"{self.path}:{lineno}: record is not a JSON object")
                records.append(Record.from_dict(data))
        return records

    def replace_all(self, records: Iterable[Record]) -> None:
        """Atomically replace the file's contents with the given records."""
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=self.path.name + ".")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                for record in records:
                    fh.write(json.dumps(record.to_dict(), ensure_ascii=False) + "\n")
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def truncate(self) -> None:
        """Empty the store file if it exists."""
        if self.path.exists():
            self.path.open("w").close()

    def query(self, filter: Filter | None = None) -> list[Record]:
        """Matching records, oldest first; a positive limit keeps the newest ones."""
        filter = filter or Filter()
        result = [r for r in self.read_all() if filter.matches(r)]
        if filter.limit > 0 and len(result) > filter.limit:
            result = result[-filter.limit:]
        return result

    def last(self, job_name: str) -> Record | None:
        """The most recent record for job_name, or None."""
        records = self.query(Filter(job_name=job_name, limit=1))
        return records[-1] if records else None