"""Entry search across one or two databases."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from ..models import Entry, WellKnownField
from .accessor import (
    EntrySource,
    coerce_uuid,
    field_as_string,
    resolve_entries,
    serialize_entry,
)
from .matcher import MatchMethod, find_counterpart

# Maximum results returned per side
SEARCH_RESULT_LIMIT = 100

DEFAULT_SEARCH_FIELDS = (
    WellKnownField.TITLE.value,
    WellKnownField.USERNAME.value,
    WellKnownField.URL.value,
)


@dataclass(slots=True)
class SearchResult:
    results_a: list[Entry] = field(default_factory=list)
    results_b: list[Entry] = field(default_factory=list)

    @property
    def summary(self) -> dict[str, int]:
        return {
            "countA": len(self.results_a),
            "countB": len(self.results_b),
            "totalCount": len(self.results_a) + len(self.results_b),
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "resultsA": [serialize_entry(e) for e in self.results_a],
            "resultsB": [serialize_entry(e) for e in self.results_b],
            "summary": self.summary,
        }


@dataclass(slots=True)
class CounterpartResult:
    """A source entry and its counterpart on the other side, for a detail view.

    ``show_protected`` carries the caller's explicit choice to see protected
    values into :meth:`to_dict`.
    """

    source_entry: Entry | None = None
    counterpart: Entry | None = None
    match_method: MatchMethod | None = None
    show_protected: bool = False

    def to_dict(self) -> dict[str, Any]:
        mask_protected = not self.show_protected
        return {
            "sourceEntry": (
                serialize_entry(self.source_entry, mask_protected)
                if self.source_entry
                else None
            ),
            "counterpart": (
                serialize_entry(self.counterpart, mask_protected)
                if self.counterpart
                else None
            ),
            "matchMethod": self.match_method.value if self.match_method else None,
        }


def search(
    entries_a: EntrySource | None,
    entries_b: EntrySource | None,
    query: str,
    fields: Sequence[str] = DEFAULT_SEARCH_FIELDS,
    limit: int = SEARCH_RESULT_LIMIT,
) -> SearchResult:
    """Case-insensitive substring search over both sides.

    Results keep collection order; each side stops at ``limit`` matches.

    Args:
        entries_a: Database or entries for side A (None for no side A)
        entries_b: Database or entries for side B (None for no side B)
        query: Substring to look for
        fields: Field names to search
        limit: Maximum results per side

    Returns:
        SearchResult
    """
    needle = query.lower()
    return SearchResult(
        results_a=_search_side(entries_a, needle, fields, limit),
        results_b=_search_side(entries_b, needle, fields, limit),
    )


def _search_side(
    source: EntrySource | None, needle: str, fields: Sequence[str], limit: int
) -> list[Entry]:
    results: list[Entry] = []
    for entry in resolve_entries(source):
        if len(results) >= limit:
            break
        if any(needle in field_as_string(entry, name).lower() for name in fields):
            results.append(entry)
    return results


def find_counterpart_by_uuid(
    source: EntrySource,
    target: EntrySource | None,
    uuid: object,
    show_protected: bool = False,
) -> CounterpartResult:
    """Look up one entry and its counterpart on the other side.

    Args:
        source: Database or entries holding the entry
        target: Database or entries to find the counterpart in (may be None)
        uuid: UUID or UUID string of the source entry
        show_protected: Leave protected values unmasked in the rendered
            result. This is the only way to get unmasked values out of
            the package.

    Returns:
        CounterpartResult; all parts None if the source entry isn't found
    """
    wanted = coerce_uuid(uuid)
    source_entry = next(
        (e for e in resolve_entries(source) if e.uuid == wanted), None
    )
    if source_entry is None:
        return CounterpartResult(show_protected=show_protected)
    if target is None:
        return CounterpartResult(source_entry, show_protected=show_protected)

    match = find_counterpart(source_entry, target)
    return CounterpartResult(
        source_entry, match.entry, match.method, show_protected=show_protected
    )
