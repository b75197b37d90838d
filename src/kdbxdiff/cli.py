"""
Command-line entry point for kdbxdiff.

Usage:
    kdbxdiff compare A.xml B.xml [--export OUT.xml]
    kdbxdiff show UUID SOURCE.xml [TARGET.xml] [--show-protected]
    kdbxdiff duplicates DB.xml [--criteria C] [--remove --output OUT.xml]
    kdbxdiff search QUERY A.xml [B.xml] [--field NAME ...]
    kdbxdiff merge SOURCE.xml TARGET.xml --mode MODE [--select UUID ...] --output OUT.xml

All commands read KeePass 2.x XML exports and print JSON to stdout.
Protected values are masked unless ``show --show-protected`` is given.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from collections.abc import Sequence
from typing import Any

from .database import Database
from .engine import (
    DEFAULT_SEARCH_FIELDS,
    DuplicateCriteria,
    ImportMode,
    build_diff_database,
    compare,
    find_counterpart_by_uuid,
    find_duplicates,
    import_entries,
    remove_entries,
    search,
)
from .exceptions import KdbxError
from .log import configure_logging, verbosity_to_level

logger = logging.getLogger(__name__)


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2))


def cmd_compare(args: argparse.Namespace) -> int:
    """Compare two databases."""
    db_a = Database.open_xml(args.a)
    db_b = Database.open_xml(args.b)
    result = compare(db_a, db_b)
    _print_json(result.to_dict())

    if args.export:
        build_diff_database(db_a, db_b).save_xml(args.export)
        logger.info("Wrote diff database to %s", args.export)
    return 0


def cmd_show(args: argparse.Namespace) -> int:
    """Show one entry and its counterpart."""
    source = Database.open_xml(args.source)
    target = Database.open_xml(args.target) if args.target else None
    result = find_counterpart_by_uuid(
        source, target, args.uuid, show_protected=args.show_protected
    )
    _print_json(result.to_dict())
    return 0 if result.source_entry is not None else 1


def cmd_duplicates(args: argparse.Namespace) -> int:
    """Find, and optionally remove, duplicate entries."""
    if args.remove and not args.output:
        print("Error: --remove requires --output", file=sys.stderr)
        return 1

    db = Database.open_xml(args.db)
    result = find_duplicates(db, args.criteria)
    output = result.to_dict()

    if args.remove:
        uuids = [entry.uuid for group in result.groups for entry in group.remove]
        removed = remove_entries(db, uuids, use_recycle_bin=args.recycle_bin)
        db.save_xml(args.output)
        output["removal"] = removed.to_dict()
    _print_json(output)
    return 0


def cmd_search(args: argparse.Namespace) -> int:
    """Search one or two databases."""
    db_a = Database.open_xml(args.a)
    db_b = Database.open_xml(args.b) if args.b else None
    fields = args.field or DEFAULT_SEARCH_FIELDS
    _print_json(search(db_a, db_b, args.query, fields).to_dict())
    return 0


def cmd_merge(args: argparse.Namespace) -> int:
    """Import entries from one database into another."""
    source = Database.open_xml(args.source)
    target = Database.open_xml(args.target)
    result = import_entries(source, target, args.mode, args.select)
    target.save_xml(args.output)
    _print_json(result.to_dict())
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kdbxdiff",
        description="Compare, deduplicate and merge KeePass XML exports",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    kdbxdiff compare laptop.xml phone.xml --export diff.xml
    kdbxdiff duplicates vault.xml --criteria title+username
    kdbxdiff merge phone.xml laptop.xml --mode skip-existing --output merged.xml
        """,
    )
    parser.add_argument(
        "-v", "--verbose", action="count", default=0, help="More log output (repeatable)"
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    compare_p = subparsers.add_parser("compare", help="Compare two databases")
    compare_p.add_argument("a", help="Database A")
    compare_p.add_argument("b", help="Database B")
    compare_p.add_argument("--export", metavar="OUT", help="Write a diff database")
    compare_p.set_defaults(func=cmd_compare)

    show_p = subparsers.add_parser("show", help="Show an entry and its counterpart")
    show_p.add_argument("uuid", help="Entry UUID")
    show_p.add_argument("source", help="Database holding the entry")
    show_p.add_argument("target", nargs="?", help="Database to find the counterpart in")
    show_p.add_argument(
        "--show-protected", action="store_true", help="Print protected values in plaintext"
    )
    show_p.set_defaults(func=cmd_show)

    dup_p = subparsers.add_parser("duplicates", help="Find duplicate entries")
    dup_p.add_argument("db", help="Database to scan")
    dup_p.add_argument(
        "--criteria",
        choices=[c.value for c in DuplicateCriteria],
        default=DuplicateCriteria.USERNAME_URL.value,
    )
    dup_p.add_argument(
        "--remove", action="store_true", help="Remove entries suggested for removal"
    )
    dup_p.add_argument(
        "--recycle-bin", action="store_true", help="Move removed entries to the recycle bin"
    )
    dup_p.add_argument("--output", metavar="OUT", help="Where to write the cleaned database")
    dup_p.set_defaults(func=cmd_duplicates)

    search_p = subparsers.add_parser("search", help="Search entries")
    search_p.add_argument("query", help="Case-insensitive substring")
    search_p.add_argument("a", help="Database A")
    search_p.add_argument("b", nargs="?", help="Database B")
    search_p.add_argument(
        "--field", action="append", metavar="NAME", help="Field to search (repeatable)"
    )
    search_p.set_defaults(func=cmd_search)

    merge_p = subparsers.add_parser("merge", help="Import entries into a database")
    merge_p.add_argument("source", help="Database to import from")
    merge_p.add_argument("target", help="Database to import into")
    merge_p.add_argument(
        "--mode",
        choices=[m.value for m in ImportMode],
        default=ImportMode.SKIP_EXISTING.value,
    )
    merge_p.add_argument(
        "--select", action="append", metavar="UUID", help="Entry to import (mode selected)"
    )
    merge_p.add_argument("--output", required=True, metavar="OUT", help="Merged database")
    merge_p.set_defaults(func=cmd_merge)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    configure_logging(level=verbosity_to_level(args.verbose), force=True)

    try:
        return int(args.func(args))
    except (KdbxError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
