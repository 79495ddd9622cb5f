"""Alerts raised when a job fails or runs longer than its threshold."""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import TextIO

from cronwrap.durations import format_duration, format_timestamp, round_duration


class Level(str, Enum):
    """Severity of an alert."""

    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"


@dataclass
class Alert:
    job_name: str
    level: Level
    message: str
    exit_code: int = 0
    duration: timedelta = timedelta(0)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


class LogNotifier:
    """Writes alerts as single structured text lines to a stream (stderr by default)."""

    def __init__(self, out: TextIO | None = None) -> None:
        self.out = out if out is not None else sys.stderr

    def notify(self, alert: Alert) -> None:
        timestamp = alert.timestamp
        if timestamp.tzinfo is None:
            timestamp = timestamp.astimezone()
        line = (
            f"[{format_timestamp(timestamp.astimezone(timezone.utc))}] "
            f"level={Level(alert.level).value} "
            f"job={_quote(alert.job_name)} "
            f"exit_code={alert.exit_code} "
            f"duration={format_duration(round_duration(alert.duration, timedelta(milliseconds=1)))} "
            f"message={_quote(alert.message)}\n"
        )
        self.out.write(line)


def should_alert(exit_code: int, duration: timedelta, threshold: timedelta) -> bool:
    """True for a non-zero exit code or a duration above a positive threshold."""
    if exit_code != 0:
        return True
    return threshold > timedelta(0) and duration > threshold


def build_alert(
    job_name: str, exit_code: int, duration: timedelta, threshold: timedelta
) -> Alert:
    """Build the alert describing a finished job."""
    level = Level.INFO
    message = "job completed successfully"
    if exit_code != 0:
        level = Level.ERROR
        message = f"job failed with exit code {exit_code}"
    elif threshold > timedelta(0) and duration > threshold:
        level = Level.WARN
        message = f"job exceeded duration threshold of {format_duration(threshold)}"
    return Alert(
        job_name=job_name,
        level=level,
        message=message,
        exit_code=exit_code,
        duration=duration,
        timestamp=datetime.now(timezone.utc),
    )