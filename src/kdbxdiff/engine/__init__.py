"""Entry reconciliation between two KeePass databases.

The engine matches entries across databases, reports their differences,
finds near-duplicates within one database, and moves entries between
databases. Every operation is synchronous and works on in-memory trees;
mutating operations change the Database objects they are given and leave
persisting them to the caller.
"""

from .accessor import (
    PROTECTED_MASK,
    coerce_uuid,
    field_as_string,
    group_path,
    group_path_names,
    serialize_entry,
)
from .diff import (
    BinaryChange,
    BinaryDiff,
    DiffResult,
    FieldDiff,
    HistoryDiff,
    IdenticalEntry,
    ModifiedEntry,
    Side,
    TimeDiff,
    compare,
)
from .duplicates import (
    DuplicateCriteria,
    DuplicateGroup,
    DuplicateResult,
    RemoveResult,
    find_duplicates,
    normalize_title,
    normalize_url,
    remove_entries,
)
from .matcher import EntryIndex, MatchMethod, MatchResult, find_counterpart
from .merge import (
    ImportMode,
    ImportResult,
    Transfer,
    TransferAction,
    TransferDirection,
    TransferResult,
    import_entries,
    transfer,
)
from .report import build_diff_database
from .search import (
    DEFAULT_SEARCH_FIELDS,
    SEARCH_RESULT_LIMIT,
    CounterpartResult,
    SearchResult,
    find_counterpart_by_uuid,
    search,
)

__all__ = [
    # Accessor
    "PROTECTED_MASK",
    "coerce_uuid",
    "field_as_string",
    "group_path",
    "group_path_names",
    "serialize_entry",
    # Matcher
    "EntryIndex",
    "MatchMethod",
    "MatchResult",
    "find_counterpart",
    # Diff
    "BinaryChange",
    "BinaryDiff",
    "DiffResult",
    "FieldDiff",
    "HistoryDiff",
    "IdenticalEntry",
    "ModifiedEntry",
    "Side",
    "TimeDiff",
    "compare",
    # Duplicates
    "DuplicateCriteria",
    "DuplicateGroup",
    "DuplicateResult",
    "RemoveResult",
    "find_duplicates",
    "normalize_title",
    "normalize_url",
    "remove_entries",
    # Merge
    "ImportMode",
    "ImportResult",
    "Transfer",
    "TransferAction",
    "TransferDirection",
    "TransferResult",
    "import_entries",
    "transfer",
    # Search
    "DEFAULT_SEARCH_FIELDS",
    "SEARCH_RESULT_LIMIT",
    "CounterpartResult",
    "SearchResult",
    "find_counterpart_by_uuid",
    "search",
    # Report
    "build_diff_database",
]
