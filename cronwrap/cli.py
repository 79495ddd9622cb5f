"""Command-line entry points: the job wrapper and its history sub-commands.

Usage::

    cronwrap [flags] -- <command> [args...]
    cronwrap replay [--job NAME] [--limit N] [--since DURATION] [--db PATH]
    cronwrap snapshot take [--db PATH] [--out FILE]
    cronwrap snapshot restore [--db PATH] --src FILE
    cronwrap tags index [--db PATH]
    cronwrap tags filter TAG [--db PATH]
    cronwrap watch [--db PATH] [--job NAME] [--interval DURATION]
"""

from __future__ import annotations

import argparse
import json
import os
import shlex
import signal
import subprocess
import sys
import threading
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Sequence, TextIO

from cronwrap.alert import LogNotifier, build_alert, should_alert
from cronwrap.config import ConfigError, load
from cronwrap.durations import format_duration, format_timestamp, parse_duration
from cronwrap.replay import ReplayOptions, ReplayResult, render_table, replay
from cronwrap.runner import RunResult, run
from cronwrap.snapshot import Snapshot, load_snapshot, restore_snapshot, take_snapshot
from cronwrap.store import Record, Status, Store
from cronwrap.tags import build_tag_index, filter_by_tag
from cronwrap.watch import WatchOptions, watch

_FALLBACK_HISTORY = ".cronwrap/history.jsonl"
_ZERO_TIME = "0001-01-01T00:00:00Z"
_DEFAULT_WATCH_INTERVAL = timedelta(seconds=5)

_LEVELS = {"debug": -4, "info": 0, "warn": 4, "error": 8}
_LEVEL_NAMES = {-4: "DEBUG", 0: "INFO", 4: "WARN", 8: "ERROR"}


class CommandError(Exception):
    """A sub-command was misused or could not complete."""


class _Parser(argparse.ArgumentParser):
    """Argument parser that raises CommandError instead of exiting."""

    def error(self, message: str) -> None:  # type: ignore[override]
        raise CommandError(f"{self.prog}: {message}")


class _JsonLogger:
    """Writes one JSON object per log entry, dropping entries below the threshold."""

    def __init__(self, out: TextIO, level_name: str) -> None:
        self.out = out
        self.threshold = _LEVELS.get(level_name.strip().lower(), _LEVELS["info"])

    def _log(self, level: int, msg: str, **attrs: Any) -> None:
        if level < self.threshold:
            return
        entry = {
            "time": datetime.now().astimezone().isoformat(),
            "level": _LEVEL_NAMES[level],
            "msg": msg,
            **attrs,
        }
        self.out.write(json.dumps(entry, default=str, ensure_ascii=False) + "\n")
        self.out.flush()

    def info(self, msg: str, **attrs: Any) -> None:
        self._log(_LEVELS["info"], msg, **attrs)

    def warn(self, msg: str, **attrs: Any) -> None:
        self._log(_LEVELS["warn"], msg, **attrs)

    def error(self, msg: str, **attrs: Any) -> None:
        self._log(_LEVELS["error"], msg, **attrs)


def _duration_arg(text: str) -> timedelta:
    try:
        return parse_duration(text)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def default_history_path() -> str:
    """The history file under the user's home directory, or a relative fallback."""
    try:
        home = Path.home()
    except (RuntimeError, KeyError):
        return _FALLBACK_HISTORY
    return str(home / ".cronwrap" / "history.jsonl")


def _status_of(result: RunResult) -> Status:
    if isinstance(result.error, subprocess.TimeoutExpired):
        return Status.TIMEOUT
    return Status.SUCCESS if result.exit_code == 0 else Status.FAILURE


def run_wrapper(argv: Sequence[str] | None = None) -> int:
    """Run a command as a cron job, record it and alert on it; returns the exit status."""
    args = list(sys.argv[1:] if argv is None else argv)
    parser = argparse.ArgumentParser(
        prog="cronwrap", usage="cronwrap [flags] -- <command> [args...]"
    )
    parser.add_argument("--job-name", default="", help="unique name for this cron job")
    parser.add_argument("--config", default="", help="path to cronwrap config file")
    parser.add_argument(
        "--timeout",
        type=_duration_arg,
        default=timedelta(0),
        help="maximum execution time (e.g. 30s, 5m); 0 means no timeout",
    )
    parser.add_argument("command", nargs=argparse.REMAINDER, help=argparse.SUPPRESS)

    if "--" in args:
        split = args.index("--")
        flag_args, command = args[:split], args[split + 1:]
    else:
        flag_args, command = args, None

    try:
        ns = parser.parse_args(flag_args)
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else 2
    if command is None:
        command = ns.command

    if not command:
        print("cronwrap: no command specified", file=sys.stderr)
        print("Usage: cronwrap [flags] -- <command> [args...]", file=sys.stderr)
        parser.print_help(sys.stderr)
        return 2

    job_name = ns.job_name or os.path.basename(command[0])

    try:
        cfg = load(ns.config)
    except ConfigError as exc:
        print(f"cronwrap: failed to load config: {exc}", file=sys.stderr)
        return 2

    logger = _JsonLogger(sys.stdout, cfg.alert.log_level)

    try:
        store = Store(os.path.expanduser(cfg.history_path))
    except OSError as exc:
        logger.error("failed to open history store", error=str(exc))
        return 2

    timeout = ns.timeout if ns.timeout > timedelta(0) else cfg.default_timeout

    logger.info("job started", job=job_name, command=command)
    result = run(command[0], command[1:], timeout if timeout > timedelta(0) else None)
    duration = result.duration
    logger.info(
        "job finished",
        job=job_name,
        exit_code=result.exit_code,
        duration_ms=duration // timedelta(milliseconds=1),
    )

    record = Record(
        job_name=job_name,
        command=shlex.join(command),
        status=_status_of(result),
        exit_code=result.exit_code,
        started_at=result.start_time,
        finished_at=result.end_time,
        duration=duration,
        stdout=result.stdout,
        stderr=result.stderr,
        error="" if result.error is None or result.exit_code >= 0 else str(result.error),
    )
    try:
        store.append(record)
    except OSError as exc:
        logger.warn("failed to write history record", error=str(exc))

    threshold = cfg.alert.duration_threshold
    alerting_code = result.exit_code if cfg.alert.on_failure else 0
    if should_alert(alerting_code, duration, threshold):
        alert = build_alert(job_name, result.exit_code, duration, threshold)
        try:
            LogNotifier(sys.stderr).notify(alert)
        except OSError as exc:
            logger.warn("alert notification failed", error=str(exc))

    return result.exit_code if result.exit_code >= 0 else 255


def run_replay(args: Sequence[str]) -> ReplayResult:
    """Print a chronological table of past executions."""
    parser = _Parser(prog="replay")
    parser.add_argument("-job", "--job", default="", help="filter by job name")
    parser.add_argument(
        "-limit", "--limit", type=int, default=50,
        help="maximum number of records to show (0 = all)",
    )
    parser.add_argument(
        "-since", "--since", type=_duration_arg, default=timedelta(0),
        help="show records from the last duration (e.g. 24h)",
    )
    parser.add_argument("-db", "--db", default="", help="path to history database")
    ns = parser.parse_args(list(args))

    path = ns.db or default_history_path()
    try:
        store = Store(path)
    except OSError as exc:
        raise CommandError(f"replay: open store: {exc}") from exc

    since = datetime.now().astimezone() - ns.since if ns.since > timedelta(0) else None

    try:
        result = replay(
            store,
            ReplayOptions(job_name=ns.job, since=since, limit=ns.limit, out=sys.stdout),
        )
    except (OSError, ValueError) as exc:
        raise CommandError(f"replay: read store: {exc}") from exc

    print(
        f"\n{result.printed} record(s) shown (total in store: {result.total})",
        file=sys.stderr,
    )
    return result


def run_snapshot(args: Sequence[str]) -> Snapshot:
    """Dispatch ``snapshot take`` and ``snapshot restore``."""
    args = list(args)
    if not args:
        raise CommandError("snapshot: expected sub-command: take|restore")
    if args[0] == "take":
        return _snapshot_take(args[1:])
    if args[0] == "restore":
        return _snapshot_restore(args[1:])
    raise CommandError(f"snapshot: unknown sub-command {args[0]!r}")


def _snapshot_take(args: list[str]) -> Snapshot:
    parser = _Parser(prog="snapshot take")
    parser.add_argument("-db", "--db", default=default_history_path(), help="history DB path")
    parser.add_argument("-out", "--out", default="", help="destination snapshot file")
    ns = parser.parse_args(args)
    out_path = ns.out or datetime.now().strftime("cronwrap-snapshot-%Y%m%d-%H%M%S.json")

    try:
        store = Store(ns.db)
    except OSError as exc:
        raise CommandError(f"snapshot take: open store: {exc}") from exc

    try:
        snapshot = take_snapshot(store, out_path)
    except (OSError, ValueError) as exc:
        raise CommandError(f"snapshot take: {exc}") from exc

    print(f"snapshot: wrote {len(snapshot.records)} records to {out_path}")
    return snapshot


def _snapshot_restore(args: list[str]) -> Snapshot:
    parser = _Parser(prog="snapshot restore")
    parser.add_argument("-db", "--db", default=default_history_path(), help="history DB path")
    parser.add_argument("-src", "--src", default="", help="snapshot file to restore")
    ns = parser.parse_args(args)
    if not ns.src:
        raise CommandError("snapshot restore: --src is required")

    try:
        snapshot = load_snapshot(ns.src)
    except (OSError, ValueError) as exc:
        raise CommandError(f"snapshot restore: load: {exc}") from exc

    try:
        store = Store(ns.db)
    except OSError as exc:
        raise CommandError(f"snapshot restore: open store: {exc}") from exc

    try:
        restore_snapshot(snapshot, store)
    except OSError as exc:
        raise CommandError(f"snapshot restore: {exc}") from exc

    print(f"snapshot: restored {len(snapshot.records)} records from {ns.src}")
    return snapshot


def _open_store(path: str) -> Store:
    try:
        return Store(path)
    except OSError as exc:
        raise CommandError(f"open store: {exc}") from exc


def run_tag_index(store_path: str) -> dict[str, list[str]]:
    """Print a table of each tag and the jobs carrying it."""
    store = _open_store(store_path)
    try:
        index = build_tag_index(store)
    except (OSError, ValueError) as exc:
        raise CommandError(f"tag: read store: {exc}") from exc

    if not index:
        print("no tags found")
        return index

    rows = [["TAG", "JOBS"]]
    rows.extend([tag, "[" + " ".join(jobs) + "]"] for tag, jobs in sorted(index.items()))
    sys.stdout.write(render_table(rows))
    return index


def run_tag_filter(store_path: str, tag: str) -> list[Record]:
    """Print the records carrying tag as an indented JSON array."""
    if not tag:
        raise CommandError("tag name must not be empty")
    store = _open_store(store_path)
    try:
        records = filter_by_tag(store, tag)
    except (OSError, ValueError) as exc:
        raise CommandError(f"tag: read store: {exc}") from exc

    json.dump([r.to_dict() for r in records], sys.stdout, indent=2, ensure_ascii=False)
    sys.stdout.write("\n")
    return records


def _run_tags(args: Sequence[str]) -> None:
    parser = _Parser(prog="tags")
    parser.add_argument("action", choices=["index", "filter"])
    parser.add_argument("tag", nargs="?", default="")
    parser.add_argument("-db", "--db", default=default_history_path(), help="history DB path")
    ns = parser.parse_args(list(args))
    if ns.action == "index":
        run_tag_index(ns.db)
    else:
        run_tag_filter(ns.db, ns.tag)


def run_watch(args: Sequence[str]) -> None:
    """Poll the history store and print records as they arrive, until interrupted."""
    args = list(args)
    db_path = default_history_path()
    job_filter = ""
    interval = _DEFAULT_WATCH_INTERVAL

    remaining = iter(args)
    for arg in remaining:
        if arg not in ("--db", "--job", "--interval"):
            continue
        value = next(remaining, None)
        if value is None:
            raise CommandError(f"{arg} requires a value")
        if arg == "--db":
            db_path = value
        elif arg == "--job":
            job_filter = value
        else:
            try:
                interval = parse_duration(value)
            except ValueError as exc:
                raise CommandError(f"invalid interval {value!r}: {exc}") from exc

    store = _open_store(db_path)
    try:
        watcher = watch(store, WatchOptions(job_name=job_filter, interval=interval))
    except (OSError, ValueError) as exc:
        raise CommandError(f"watch: {exc}") from exc

    print(f"watching {db_path} (interval={format_duration(interval)})…", file=sys.stderr)

    in_main = threading.current_thread() is threading.main_thread()
    previous = None
    if in_main:
        previous = signal.signal(signal.SIGTERM, lambda signum, frame: watcher.close())
    try:
        for event in watcher:
            r = event.record
            started = _ZERO_TIME if r.started_at is None else format_timestamp(r.started_at)
            print(f"{started}\t{r.job_name}\t{r.status}\t{format_duration(r.duration)}", flush=True)
    except KeyboardInterrupt:
        watcher.close()
    finally:
        if in_main and previous is not None:
            signal.signal(signal.SIGTERM, previous)


def main(argv: Sequence[str] | None = None) -> int:
    """Dispatch to a sub-command or wrap a job; returns the process exit status."""
    args = list(sys.argv[1:] if argv is None else argv)
    handlers = {
        "replay": run_replay,
        "snapshot": run_snapshot,
        "tags": _run_tags,
        "watch": run_watch,
    }
    try:
        if args and args[0] in handlers:
            handlers[args[0]](args[1:])
            return 0
        return run_wrapper(args)
    except CommandError as exc:
        print(f"cronwrap: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())