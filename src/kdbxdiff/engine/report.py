"""Export of a comparison as a database of its own.

The resulting database can be opened in any KeePass client to review what
side A has that side B lacks, and how the entries both sides share differ.
"""

from __future__ import annotations

import copy
import json
import logging

from ..database import Database
from ..models import Entry, Group
from .diff import ModifiedEntry, compare

logger = logging.getLogger(__name__)

MISSING_GROUP = "Missing Entries"
MODIFIED_GROUP = "Modified Entries"
DATE_FORMAT = "%Y-%m-%d"


def build_diff_database(
    db_a: Database, db_b: Database, name: str = "KDBX Diff"
) -> Database:
    """Build a database describing how ``db_a`` differs from ``db_b``.

    ``Missing Entries`` holds copies of the entries only in A.
    ``Modified Entries`` holds copies of A's version of every modified
    pair, filed under a sub-group named after B's modification date, with
    the differences written into the copy's notes. Protected values in the
    notes are masked.

    Copies get fresh UUIDs so the report never reconciles against either
    input.

    Args:
        db_a: Database A
        db_b: Database B
        name: Name for the new database

    Returns:
        New in-memory Database
    """
    result = compare(db_a, db_b)
    report = Database.create(database_name=name, recycle_bin=False)
    missing = report.create_group(None, MISSING_GROUP)
    modified = report.create_group(None, MODIFIED_GROUP)

    for entry in result.only_in_a:
        _copy_strings(report, missing, entry)

    for pair in result.modified:
        group = _date_group(report, modified, pair)
        report_entry = _copy_strings(report, group, pair.entry_a)
        report_entry.notes = describe_differences(pair)

    logger.info(
        "Built diff database with %d missing and %d modified entries",
        len(result.only_in_a),
        len(result.modified),
    )
    return report


def describe_differences(pair: ModifiedEntry) -> str:
    """Human-readable account of a modified pair."""
    details: dict[str, object] = {}
    if pair.field_diffs:
        details["fields"] = [d.to_dict() for d in pair.field_diffs]
    if pair.time_diff:
        details["time"] = pair.time_diff.to_dict()
    if pair.binary_diffs:
        details["binaries"] = [d.to_dict() for d in pair.binary_diffs]
    if pair.history_diff:
        details["history"] = pair.history_diff.to_dict()
    if pair.matched_by_fallback:
        details["matchedByFallback"] = True
    return "Differences found:\n" + json.dumps(details, indent=2)


def _copy_strings(report: Database, group: Group, entry: Entry) -> Entry:
    report_entry = report.create_entry(group)
    report_entry.strings = copy.deepcopy(entry.strings)
    report_entry.tags = list(entry.tags)
    return report_entry


def _date_group(report: Database, parent: Group, pair: ModifiedEntry) -> Group:
    modified_at = pair.entry_b.times.last_modification_time
    if modified_at is None:
        return parent
    name = modified_at.strftime(DATE_FORMAT)
    return parent.find_subgroup(name) or report.create_group(parent, name)
