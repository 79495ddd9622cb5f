"""Run a command, capturing its output, timing and exit code."""

from __future__ import annotations

import subprocess
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Sequence


@dataclass
class RunResult:
    """Outcome of one command execution.

    exit_code is -1 when the command could not be started, timed out
    or was killed by a signal; error then holds the cause.
    """

    command: str
    args: list[str] = field(default_factory=list)
    start_time: datetime | None = None
    end_time: datetime | None = None
    duration: timedelta = timedelta(0)
    exit_code: int = 0
    stdout: str = ""
    stderr: str = ""
    error: BaseException | None = None


def _text(data: bytes | str | None) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


def run(
    command: str,
    args: Sequence[str] | None = None,
    timeout: timedelta | float | None = None,
) -> RunResult:
    """Execute command with args; timeout (seconds or timedelta) kills it when exceeded."""
    arg_list = list(args or [])
    seconds = timeout.total_seconds() if isinstance(timeout, timedelta) else timeout
    result = RunResult(command=command, args=arg_list, start_time=datetime.now(timezone.utc))
    started = time.monotonic()

    try:
        completed = subprocess.run(
            [command, *arg_list], capture_output=True, timeout=seconds, check=False
        )
    except subprocess.TimeoutExpired as exc:
        result.stdout = _text(exc.stdout)
        result.stderr = _text(exc.stderr)
        result.exit_code = -1
        result.error = exc
    except OSError as exc:
        result.exit_code = -1
        result.error = exc
    else:
        result.stdout = _text(completed.stdout)
        result.stderr = _text(completed.stderr)
        code = completed.returncode
        if code != 0:
            result.error = subprocess.CalledProcessError(
                code, [command, *arg_list], completed.stdout, completed.stderr
            )
        result.exit_code = code if code >= 0 else -1

    result.duration = timedelta(seconds=time.monotonic() - started)
    result.end_time = result.start_time + result.duration
    return result