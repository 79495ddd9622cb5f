"""Key-value annotations attached to stored execution records."""

from __future__ import annotations

import os
from dataclasses import dataclass

from cronwrap.store import Store

_PREFIX = "annotation:"


@dataclass(frozen=True)
class Annotation:
    key: str
    value: str


class RecordNotFoundError(LookupError):
    """No record with the requested id exists in the store."""

    def __init__(self, record_id: str) -> None:
        super().__init__(f"record {record_id!r} not found")
        self.record_id = record_id


def annotate(path: str | os.PathLike[str], record_id: str, key: str, value: str) -> None:
    """Add or update the annotation key on the record with record_id."""
    if not key:
        raise ValueError("annotation key must not be empty")
    store = Store(path)
    records = store.read_all()
    target = next((r for r in records if r.id == record_id), None)
    if target is None:
        raise RecordNotFoundError(record_id)
    target.meta[_PREFIX + key] = value
    store.replace_all(records)


def get_annotations(path: str | os.PathLike[str], record_id: str) -> list[Annotation]:
    """All annotations on the record with record_id."""
    for record in Store(path).read_all():
        if record.id != record_id:
            continue
        return [
            Annotation(key=k[len(_PREFIX):], value=v)
            for k, v in record.meta.items()
            if len(k) > len(_PREFIX) and k.startswith(_PREFIX)
        ]
    raise RecordNotFoundError(record_id)