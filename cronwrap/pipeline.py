"""Recording of multi-step pipeline runs as single history records.

Each step's name, exit code and duration are stored as meta keys
(``step_<i>_name``, ``step_<i>_exit_code``, ``step_<i>_duration_ns``)
alongside ``pipeline_steps``, the number of steps.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from cronwrap.store import Record, Status, Store


@dataclass
class PipelineStep:
    name: str
    command: str = ""
    exit_code: int = 0
    duration: timedelta = timedelta(0)
    stdout: str = ""
    stderr: str = ""


@dataclass
class PipelineResult:
    job_name: str = ""
    steps: list[PipelineStep] = field(default_factory=list)
    started_at: datetime | None = None
    total: timedelta = timedelta(0)
    success: bool = False


def _ns(value: timedelta) -> int:
    return (value // timedelta(microseconds=1)) * 1_000


def record_pipeline(store: Store, result: PipelineResult) -> None:
    """Append result to store as one record with per-step meta keys."""
    if not result.job_name:
        raise ValueError("pipeline: job name must not be empty")

    status = Status.SUCCESS
    exit_code = 0
    if not result.success:
        status = Status.FAILURE
        exit_code = next((s.exit_code for s in result.steps if s.exit_code != 0), 0)

    meta = {"pipeline_steps": str(len(result.steps))}
    for i, step in enumerate(result.steps):
        meta[f"step_{i}_name"] = step.name
        meta[f"step_{i}_exit_code"] = str(step.exit_code)
        meta[f"step_{i}_duration_ns"] = str(_ns(step.duration))

    store.append(
        Record(
            job_name=result.job_name,
            started_at=result.started_at,
            duration=result.total,
            exit_code=exit_code,
            status=status,
            meta=meta,
        )
    )