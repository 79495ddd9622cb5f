"""Schema versioning and migration of the history file."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Callable

SCHEMA_VERSION = 1


class MigrationError(RuntimeError):
    """The history file could not be read or migrated."""


def _read_raw(path: Path) -> list[Any]:
    records: list[Any] = []
    with path.open(encoding="utf-8") as fh:
        for lineno, line in enumerate(fh, start=1):
            if not line.strip():
                continue
            try:
                records.append(json.loads(line))
            except json.JSONDecodeError as exc:
                raise MigrationError(
                    f"migrate: read records: {path}:{lineno}: {exc}"
                ) from exc
    return records


def _version_of(raw: Any) -> int:
    if isinstance(raw, dict):
        version = raw.get("schema_version")
        if isinstance(version, int) and not isinstance(version, bool):
            return version
    return 0


def _stamp_version(records: list[Any], version: int) -> list[Any]:
    stamped = []
    for raw in records:
        if not isinstance(raw, dict):
            raise MigrationError(f"record is not a JSON object: {raw!r}")
        stamped.append({**raw, "schema_version": version})
    return stamped


_MIGRATIONS: dict[int, Callable[[list[Any]], list[Any]]] = {
    0: lambda records: _stamp_version(records, 1),
}


def detect_version(path: str | os.PathLike[str]) -> int:
    """Schema version of the file's first record; 0 for legacy, empty or missing files."""
    path = Path(path)
    try:
        if path.stat().st_size == 0:
            return 0
    except FileNotFoundError:
        return 0
    records = _read_raw(path)
    return _version_of(records[0]) if records else 0


def backup_file(path: str | os.PathLike[str]) -> str:
    """Copy path to path.bak, overwriting any earlier backup, and return the copy's path."""
    source = Path(path)
    dest = Path(str(source) + ".bak")
    dest.write_bytes(source.read_bytes())
    return str(dest)


def _rewrite(path: Path, records: list[Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=path.name + ".")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            for record in records:
                fh.write(
                    json.dumps(record, separators=(",", ":"), sort_keys=True, ensure_ascii=False)
                    + "\n"
                )
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def migrate_store(path: str | os.PathLike[str]) -> None:
    """Bring the history file at path up to the current schema version.

    Missing or empty files are left alone. The original file is backed up
    to path.bak before any change is written.
    """
    path = Path(path)
    try:
        if path.stat().st_size == 0:
            return
    except FileNotFoundError:
        return
    except OSError as exc:
        raise MigrationError(f"migrate: stat {path}: {exc}") from exc

    records = _read_raw(path)
    if not records:
        return

    detected = _version_of(records[0])
    if detected >= SCHEMA_VERSION:
        return

    try:
        backup_file(path)
    except OSError as exc:
        raise MigrationError(f"migrate: backup: {exc}") from exc

    for version in range(detected, SCHEMA_VERSION):
        step = _MIGRATIONS.get(version)
        if step is None:
            raise MigrationError(
                f"migrate: apply v{version}->v{version + 1}: "
                f"no migration defined for version {version}"
            )
        try:
            records = step(records)
        except MigrationError as exc:
            raise MigrationError(
                f"migrate: apply v{version}->v{version + 1}: {exc}"
            ) from exc

    try:
        _rewrite(path, records)
    except OSError as exc:
        raise MigrationError(f"migrate: rewrite: {exc}") from exc