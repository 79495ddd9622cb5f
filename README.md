# cronwrap

`cronwrap` wraps any command you run from cron and gives it:

- JSON log lines on standard output when the job starts and finishes,
- an alert line on standard error when a job fails or runs longer than a
  threshold,
- a persistent execution history (newline-delimited JSON) that you can
  replay, snapshot, tag and watch from the command line, and summarise,
  prune, export or diff from Python.

## Installation

```sh
pip install .
```

For running the test suite:

```sh
pip install ".[test]"
pytest
```

## Wrapping a job

Put `cronwrap` in front of the command in your crontab, separated by `--`:

```sh
cronwrap --job-name backup --config /etc/cronwrap.yaml -- /usr/local/bin/backup.sh
```

Options:

| Option        | Meaning                                                                  |
|---------------|--------------------------------------------------------------------------|
| `--job-name`  | Name for the job. Defaults to the base name of the command.              |
| `--config`    | Path to a YAML configuration file. Defaults are used when omitted.       |
| `--timeout`   | Maximum run time, e.g. `30s`, `5m`. `0` (the default) falls back to the configured `default_timeout`; when that is also `0` there is no timeout. |

The command's standard output and standard error are captured and stored in
the history record rather than passed through.

Exit status:

- the exit code of the wrapped command when it ran to completion;
- `255` when the command could not be started, was killed by the timeout or
  ended on a signal (the record's status is `timeout` for a timeout);
- `2` when no command is given, the configuration cannot be loaded or the
  history file cannot be opened.

Each run is appended to the file named by `history_path` (with `~`
expanded). An alert is written to standard error as a single line such as

```
[2024-05-01T02:00:03Z] level=ERROR job="backup" exit_code=1 duration=3.2s message="job failed with exit code 1"
```

when the job exits non-zero (and `alert.on_failure` is true) or when it runs
longer than a non-zero `alert.duration_threshold`.

## Configuration

All fields are optional; anything left out keeps its default shown here,
except `default_timeout` and `alert.duration_threshold`, which default to `0`.

```yaml
history_path: .cronwrap/history.jsonl
max_history_records: 1000
default_timeout: 5m
alert:
  on_failure: true
  duration_threshold: 10m
  log_level: error
```

Durations are written like `300ms`, `1.5h` or `2h45m`.

`alert.log_level` sets the lowest level of the JSON log lines written to
standard output. It must be one of `info`, `warn` or `error` (or empty,
which means `info`); with the default `error`, the "job started" and
"job finished" lines are not shown. `max_history_records` must not be
negative. Invalid values make loading fail.

## Inspecting history

The sub-commands below read the history file given by `--db`. Without it
they use `~/.cronwrap/history.jsonl`, which is not the same file as the
wrapper's default `history_path` (`.cronwrap/history.jsonl`, relative to
the working directory); pass `--db` or set `history_path` so both agree.
A failing sub-command prints a message and exits with status 1.

Replay past runs as a table (most recent 50 by default, `--limit 0` for all):

```sh
cronwrap replay --job backup --since 24h --limit 20
```

Take a snapshot of the whole history, and restore it later (restoring
replaces the contents of the target history):

```sh
cronwrap snapshot take --out backup-snapshot.json
cronwrap snapshot restore --db /tmp/history.jsonl --src backup-snapshot.json
```

When `--out` is omitted the snapshot is named
`cronwrap-snapshot-YYYYMMDD-HHMMSS.json` in the current directory.

List tags and the jobs that carry them, or print every record with a tag as
a JSON array:

```sh
cronwrap tags index
cronwrap tags filter daily
```

Tags are stored as a comma-separated list under the `tags` key of a record's
`meta` mapping, e.g. `{"tags": "daily, infra"}`.

Follow new runs as they are recorded, one tab-separated line per run, until
interrupted (Ctrl-C or SIGTERM):

```sh
cronwrap watch --job backup --interval 10s
```

The interval defaults to `5s`. Records are told apart by their `id` field.

## Using the library

The history can also be used from Python:

```python
import sys

from cronwrap.stats import stats
from cronwrap.store import Filter, Store
from cronwrap.summary import print_summary, summarize

store = Store(".cronwrap/history.jsonl")

for record in store.query(Filter(job_name="backup", limit=10)):
    print(record.started_at, record.status, record.exit_code)

print_summary(sys.stdout, summarize(store))

for job in stats(store, "backup"):
    print(job.job_name, job.success_rate, job.avg_duration)
```

Other modules:

- `cronwrap.runner.run` runs a command and returns a `RunResult` with its
  output, timing and exit code.
- `cronwrap.retention.prune(store, RetentionPolicy(...))` drops records
  older than `max_age` and keeps at most `max_records` per job;
  `cronwrap.gc.gc(path, GCOptions(...))` does the same with an optional
  `.bak` backup and returns a `GCResult`.
- `cronwrap.export.export_json` and `cronwrap.export.export_csv` write
  filtered records to a text stream.
- `cronwrap.diff.diff_records(older, newer)` compares two runs.
- `cronwrap.annotate.annotate` and `cronwrap.annotate.get_annotations` keep
  key-value notes on a record found by its `id`.
- `cronwrap.pipeline.record_pipeline` stores a multi-step run as one record.
- `cronwrap.migrate.migrate_store` upgrades an unversioned history file,
  backing it up to `<file>.bak` first.
- `cronwrap.watch.watch` returns a `Watcher` to iterate over new records.
- `cronwrap.alert` and `cronwrap.config` hold the alerting rules and the
  configuration loader used by the wrapper.

## What it does not do

- The wrapper never prunes the history on its own: `max_history_records` is
  validated but not applied. Run `cronwrap.retention.prune` or
  `cronwrap.gc.gc` yourself to trim the file.
- Alerts are only written to standard error; there is no e-mail, chat or
  webhook delivery.
- Summaries, statistics, export, diffs, annotations, pruning and migration
  have no sub-commands; they are available from Python only.