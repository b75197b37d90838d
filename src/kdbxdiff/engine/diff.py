"""Reconciliation of two entry collections.

:func:`compare` partitions the entries of two databases into four
categories:

- only in A: no counterpart in B
- only in B: never claimed as a counterpart by any A entry
- modified: matched, with at least one field, time, attachment or
  history difference
- identical: matched, with no differences

Matching uses the UUID first and the title+username fallback second (see
:mod:`kdbxdiff.engine.matcher`). B is indexed once, so the comparison is a
single pass over A regardless of collection size.

Field values are compared as real strings. Values reported for protected
fields are masked.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from ..models import Entry
from .accessor import (
    EntrySource,
    attachment_sizes,
    field_as_string,
    format_time,
    mask,
    modification_time,
    resolve_entries,
    serialize_entry,
)
from .matcher import EntryIndex

logger = logging.getLogger(__name__)


class Side(Enum):
    """One side of a comparison."""

    A = "A"
    B = "B"


class BinaryChange(Enum):
    """How an attachment differs between A and B."""

    ADDED = "added"  # only in B
    REMOVED = "removed"  # only in A
    MODIFIED = "modified"  # in both, sizes differ


@dataclass(frozen=True, slots=True)
class FieldDiff:
    """A field whose value differs. Protected values are already masked."""

    field: str
    value_a: str
    value_b: str

    def to_dict(self) -> dict[str, Any]:
        return {"field": self.field, "valueA": self.value_a, "valueB": self.value_b}


@dataclass(frozen=True, slots=True)
class TimeDiff:
    """Differing last-modification times."""

    last_mod_a: datetime | None
    last_mod_b: datetime | None
    newer_in: Side

    def to_dict(self) -> dict[str, Any]:
        return {
            "lastModA": format_time(self.last_mod_a),
            "lastModB": format_time(self.last_mod_b),
            "newerIn": self.newer_in.value,
        }


@dataclass(frozen=True, slots=True)
class BinaryDiff:
    """An attachment that was added, removed, or changed size."""

    name: str
    change: BinaryChange
    size_a: int | None
    size_b: int | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "change": self.change.value,
            "sizeA": self.size_a,
            "sizeB": self.size_b,
        }


@dataclass(frozen=True, slots=True)
class HistoryDiff:
    """Differing history lengths."""

    count_a: int
    count_b: int

    def to_dict(self) -> dict[str, Any]:
        return {"countA": self.count_a, "countB": self.count_b}


@dataclass(slots=True)
class ModifiedEntry:
    """A matched pair with at least one difference."""

    entry_a: Entry
    entry_b: Entry
    field_diffs: list[FieldDiff] = field(default_factory=list)
    time_diff: TimeDiff | None = None
    binary_diffs: list[BinaryDiff] = field(default_factory=list)
    history_diff: HistoryDiff | None = None
    matched_by_fallback: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "entryA": serialize_entry(self.entry_a),
            "entryB": serialize_entry(self.entry_b),
            "fieldDiffs": [d.to_dict() for d in self.field_diffs],
            "timeDiff": self.time_diff.to_dict() if self.time_diff else None,
            "binaryDiffs": [d.to_dict() for d in self.binary_diffs],
            "historyDiff": self.history_diff.to_dict() if self.history_diff else None,
            "matchedByFallback": self.matched_by_fallback,
        }


@dataclass(slots=True)
class IdenticalEntry:
    """A matched pair with no differences."""

    entry_a: Entry
    entry_b: Entry
    matched_by_fallback: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"uuid": str(self.entry_a.uuid), "matchedByFallback": self.matched_by_fallback}


@dataclass(slots=True)
class DiffResult:
    """Full reconciliation report between collections A and B."""

    total_a: int = 0
    total_b: int = 0
    only_in_a: list[Entry] = field(default_factory=list)
    only_in_b: list[Entry] = field(default_factory=list)
    modified: list[ModifiedEntry] = field(default_factory=list)
    identical: list[IdenticalEntry] = field(default_factory=list)

    @property
    def summary(self) -> dict[str, int]:
        fallback = sum(1 for m in self.modified if m.matched_by_fallback)
        fallback += sum(1 for i in self.identical if i.matched_by_fallback)
        return {
            "totalA": self.total_a,
            "totalB": self.total_b,
            "onlyInA": len(self.only_in_a),
            "onlyInB": len(self.only_in_b),
            "modified": len(self.modified),
            "identical": len(self.identical),
            "matchedByFallback": fallback,
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "onlyInA": [serialize_entry(e) for e in self.only_in_a],
            "onlyInB": [serialize_entry(e) for e in self.only_in_b],
            "modified": [m.to_dict() for m in self.modified],
            "identical": [i.to_dict() for i in self.identical],
            "summary": self.summary,
        }


def compare(entries_a: EntrySource, entries_b: EntrySource) -> DiffResult:
    """Compare two entry collections.

    Args:
        entries_a: Database or entries for side A
        entries_b: Database or entries for side B

    Returns:
        DiffResult partitioning both sides
    """
    list_a = resolve_entries(entries_a)
    list_b = resolve_entries(entries_b)
    index_b = EntryIndex(list_b)
    seen_b: set[int] = set()
    result = DiffResult(total_a=len(list_a), total_b=len(list_b))

    for entry_a in list_a:
        match = index_b.lookup(entry_a)
        entry_b = match.entry
        if entry_b is None:
            result.only_in_a.append(entry_a)
            continue

        if match.by_fallback:
            logger.warning(
                "Entry matched by title+username fallback (UUIDs differ: %s vs %s)",
                entry_a.uuid,
                entry_b.uuid,
            )
        seen_b.add(id(entry_b))

        field_diffs = compare_fields(entry_a, entry_b)
        time_diff = compare_times(entry_a, entry_b)
        binary_diffs = compare_binaries(entry_a, entry_b)
        history_diff = compare_history(entry_a, entry_b)

        if not field_diffs and time_diff is None and not binary_diffs and history_diff is None:
            result.identical.append(
                IdenticalEntry(entry_a, entry_b, matched_by_fallback=match.by_fallback)
            )
        else:
            result.modified.append(
                ModifiedEntry(
                    entry_a,
                    entry_b,
                    field_diffs=field_diffs,
                    time_diff=time_diff,
                    binary_diffs=binary_diffs,
                    history_diff=history_diff,
                    matched_by_fallback=match.by_fallback,
                )
            )

    result.only_in_b = [e for e in list_b if id(e) not in seen_b]

    logger.info(
        "Compared %d vs %d entries: %d only in A, %d only in B, %d modified, %d identical",
        result.total_a,
        result.total_b,
        len(result.only_in_a),
        len(result.only_in_b),
        len(result.modified),
        len(result.identical),
    )
    return result


def compare_fields(entry_a: Entry, entry_b: Entry) -> list[FieldDiff]:
    """Differences over the union of both entries' field names."""
    diffs = []
    keys = list(entry_a.strings)
    keys += [k for k in entry_b.strings if k not in entry_a.strings]
    for key in keys:
        value_a = field_as_string(entry_a, key)
        value_b = field_as_string(entry_b, key)
        if value_a != value_b:
            protected = entry_a.is_protected(key) or entry_b.is_protected(key)
            diffs.append(FieldDiff(key, mask(value_a, protected), mask(value_b, protected)))
    return diffs


def compare_times(entry_a: Entry, entry_b: Entry) -> TimeDiff | None:
    """Last-modification difference, or None on a tie."""
    time_a = entry_a.times.last_modification_time
    time_b = entry_b.times.last_modification_time
    if time_a == time_b:
        return None
    newer = Side.A if modification_time(entry_a) > modification_time(entry_b) else Side.B
    return TimeDiff(time_a, time_b, newer)


def compare_binaries(entry_a: Entry, entry_b: Entry) -> list[BinaryDiff]:
    """Attachment differences, judged by size only."""
    sizes_a = attachment_sizes(entry_a)
    sizes_b = attachment_sizes(entry_b)
    diffs = []
    for name, size_a in sizes_a.items():
        if name not in sizes_b:
            diffs.append(BinaryDiff(name, BinaryChange.REMOVED, size_a, None))
        elif sizes_b[name] != size_a:
            diffs.append(BinaryDiff(name, BinaryChange.MODIFIED, size_a, sizes_b[name]))
    for name, size_b in sizes_b.items():
        if name not in sizes_a:
            diffs.append(BinaryDiff(name, BinaryChange.ADDED, None, size_b))
    return diffs


def compare_history(entry_a: Entry, entry_b: Entry) -> HistoryDiff | None:
    """History length difference, or None if the lengths agree."""
    if len(entry_a.history) == len(entry_b.history):
        return None
    return HistoryDiff(len(entry_a.history), len(entry_b.history))
