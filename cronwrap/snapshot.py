"""Point-in-time copies of the history store.

A snapshot is a versioned JSON file holding every record, useful as a
backup before destructive operations, to move history between machines
or for offline analysis.
"""

from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from cronwrap.migrate import SCHEMA_VERSION
from cronwrap.store import Record, Store

CURRENT_VERSION = SCHEMA_VERSION

_ZERO_TIME = "0001-01-01T00:00:00Z"
_FRACTION = re.compile(r"\.(\d+)")


@dataclass
class Snapshot:
    created_at: datetime | None = field(default_factory=lambda: datetime.now(timezone.utc))
    version: int = CURRENT_VERSION
    records: list[Record] = field(default_factory=list)


def _time_to_json(value: datetime | None) -> str:
    if value is None:
        return _ZERO_TIME
    if value.tzinfo is None:
        value = value.astimezone()
    text = value.isoformat()
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


def _to_dict(snapshot: Snapshot) -> dict[str, Any]:
    return {
        "created_at": _time_to_json(snapshot.created_at),
        "version": snapshot.version,
        "records": [r.to_dict() for r in snapshot.records],
    }


def take_snapshot(store: Store, dest_path: str | os.PathLike[str]) -> Snapshot:
    """Write every record in store to dest_path and return the snapshot."""
    snapshot = Snapshot(
        created_at=datetime.now(timezone.utc),
        version=CURRENT_VERSION,
        records=store.read_all(),
    )
    with open(dest_path, "w", encoding="utf-8") as fh:
        json.dump(_to_dict(snapshot), fh, indent=2, ensure_ascii=False)
        fh.write("\n")
    return snapshot


def load_snapshot(path: str | os.PathLike[str]) -> Snapshot:
    """Read a snapshot file; raises OSError when unreadable, ValueError when malformed."""
    with open(path, encoding="utf-8") as fh:
        try:
            data = json.load(fh)
        except json.JSONDecodeError as exc:
            raise ValueError(f"snapshot: decode: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError("snapshot: decode: document is not a JSON object")
    raw_records = data.get("records") or []
    if not isinstance(raw_records, list) or not all(isinstance(r, dict) for r in raw_records):
        raise ValueError("snapshot: decode: records must be a list of objects")
    try:
        created_at = _time_from_json(data.get("created_at"))
    except ValueError as exc:
        raise ValueError(f"snapshot: decode: {exc}") from exc
    return Snapshot(
        created_at=created_at,
        version=int(data.get("version") or 0),
        records=[Record.from_dict(r) for r in raw_records],
    )


def restore_snapshot(snapshot: Snapshot, store: Store) -> None:
    """Replace the store's contents with the snapshot's records."""
    store.replace_all(snapshot.records)