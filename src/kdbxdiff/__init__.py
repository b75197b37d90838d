"""kdbxdiff - Reconcile entries between KeePass databases.

This library compares, deduplicates and merges the entries of KeePass
databases loaded from KeePass 2.x XML exports:
- Matching entries by UUID, with a title+username fallback
- Field, timestamp, attachment and history diffs
- Near-duplicate detection with URL and title normalization
- Bulk import and per-entry transfer between two databases

Protected values (passwords by default) are masked in every rendered result
unless the caller explicitly asks to see them.

Example:
    from kdbxdiff import Database, compare, import_entries

    laptop = Database.open_xml("laptop.xml")
    phone = Database.open_xml("phone.xml")

    result = compare(laptop, phone)
    print(result.summary)

    # Bring over everything the laptop lacks
    import_entries(phone, laptop, "skip-existing")
    laptop.save_xml("merged.xml")
"""

__version__ = "0.1.0"

from .database import Database, DatabaseSettings
from .engine import (
    PROTECTED_MASK,
    DiffResult,
    DuplicateCriteria,
    DuplicateResult,
    ImportMode,
    ImportResult,
    MatchMethod,
    SearchResult,
    Transfer,
    TransferAction,
    TransferDirection,
    TransferResult,
    build_diff_database,
    compare,
    find_counterpart,
    find_counterpart_by_uuid,
    find_duplicates,
    import_entries,
    remove_entries,
    search,
    serialize_entry,
    transfer,
)
from .exceptions import (
    DatabaseError,
    EntryNotFoundError,
    FormatError,
    GroupNotFoundError,
    InvalidCriteriaError,
    InvalidModeError,
    InvalidTransferError,
    InvalidXmlError,
    KdbxError,
    ReconcileError,
)
from .models import BinaryRef, Entry, Group, HistoryEntry, StringField, Times

__all__ = [
    # Core classes
    "BinaryRef",
    "Database",
    "DatabaseSettings",
    "Entry",
    "Group",
    "HistoryEntry",
    "StringField",
    "Times",
    # Reconciliation
    "PROTECTED_MASK",
    "DiffResult",
    "DuplicateCriteria",
    "DuplicateResult",
    "ImportMode",
    "ImportResult",
    "MatchMethod",
    "SearchResult",
    "Transfer",
    "TransferAction",
    "TransferDirection",
    "TransferResult",
    "build_diff_database",
    "compare",
    "find_counterpart",
    "find_counterpart_by_uuid",
    "find_duplicates",
    "import_entries",
    "remove_entries",
    "search",
    "serialize_entry",
    "transfer",
    # Exceptions
    "DatabaseError",
    "EntryNotFoundError",
    "FormatError",
    "GroupNotFoundError",
    "InvalidCriteriaError",
    "InvalidModeError",
    "InvalidTransferError",
    "InvalidXmlError",
    "KdbxError",
    "ReconcileError",
]
