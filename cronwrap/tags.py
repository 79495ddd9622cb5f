"""Tags grouping jobs by label.

Tags are stored as a comma-separated string under the ``tags`` key of a
record's meta mapping, for example ``{"tags": "daily, infra"}``.
"""

from __future__ import annotations

from cronwrap.store import Record, Store


def tags_for_record(record: Record) -> list[str]:
    """The record's tags with surrounding whitespace removed."""
    raw = record.meta.get("tags", "") if record.meta else ""
    if not raw:
        return []
    return [tag.strip() for tag in raw.split(",")]


def build_tag_index(store: Store) -> dict[str, list[str]]:
    """Map each tag to the sorted, distinct job names carrying it."""
    seen: dict[str, set[str]] = {}
    for record in store.read_all():
        for tag in tags_for_record(record):
            seen.setdefault(tag, set()).add(record.job_name)
    return {tag: sorted(jobs) for tag, jobs in seen.items()}


def filter_by_tag(store: Store, tag: str) -> list[Record]:
    """All records carrying tag, in store order."""
    return [r for r in store.read_all() if tag in tags_for_record(r)]