"""Counterpart matching between two entry collections.

An entry's counterpart is found by UUID first. Only when no entry shares
the UUID does matching fall back to the (title, username) pair, compared
case-insensitively. The fallback is a heuristic: when several targets
share a title and username, the first one in scan order wins.

UUID matches are reported as ``"uuid"`` and fallback matches as
``"title+username"`` in rendered results.
"""

from __future__ import annotations

import uuid as uuid_module
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from ..models import Entry, WellKnownField
from .accessor import EntrySource, field_as_string, resolve_entries


class MatchMethod(Enum):
    """How a counterpart was found."""

    UUID = "uuid"
    TITLE_USERNAME = "title+username"


@dataclass(frozen=True, slots=True)
class MatchResult:
    """Outcome of a counterpart lookup.

    Attributes:
        entry: The counterpart, or None if nothing matched
        method: Which rule matched, or None if nothing matched
    """

    entry: Entry | None = None
    method: MatchMethod | None = None

    @property
    def matched(self) -> bool:
        return self.entry is not None

    @property
    def by_fallback(self) -> bool:
        return self.method is MatchMethod.TITLE_USERNAME


NO_MATCH = MatchResult()


def title_username_key(entry: Entry) -> tuple[str, str] | None:
    """Fallback matching key, or None for entries with neither title nor username."""
    title = field_as_string(entry, WellKnownField.TITLE.value).lower()
    username = field_as_string(entry, WellKnownField.USERNAME.value).lower()
    if not title and not username:
        return None
    return title, username


def find_counterpart(source: Entry, targets: EntrySource) -> MatchResult:
    """Find the counterpart of ``source`` among ``targets``.

    Args:
        source: Entry to match
        targets: Database or entries to search

    Returns:
        MatchResult naming the counterpart and the rule that found it
    """
    candidates = resolve_entries(targets)

    for candidate in candidates:
        if candidate.uuid == source.uuid:
            return MatchResult(candidate, MatchMethod.UUID)

    key = title_username_key(source)
    if key is None:
        return NO_MATCH
    for candidate in candidates:
        if title_username_key(candidate) == key:
            return MatchResult(candidate, MatchMethod.TITLE_USERNAME)
    return NO_MATCH


class EntryIndex:
    """Prebuilt UUID and title+username lookups over one collection.

    Gives the same answers as :func:`find_counterpart` in constant time per
    lookup: for each key the first entry in scan order is kept.
    """

    def __init__(self, entries: Iterable[Entry]) -> None:
        self._by_uuid: dict[uuid_module.UUID, Entry] = {}
        self._by_title_username: dict[tuple[str, str], Entry] = {}
        for entry in entries:
            self._by_uuid.setdefault(entry.uuid, entry)
            key = title_username_key(entry)
            if key is not None:
                self._by_title_username.setdefault(key, entry)

    def get(self, uuid: uuid_module.UUID) -> Entry | None:
        """Look up an entry by UUID only."""
        return self._by_uuid.get(uuid)

    def lookup(self, source: Entry) -> MatchResult:
        """Find the counterpart of ``source`` in the indexed collection."""
        entry = self._by_uuid.get(source.uuid)
        if entry is not None:
            return MatchResult(entry, MatchMethod.UUID)
        key = title_username_key(source)
        if key is not None:
            entry = self._by_title_username.get(key)
            if entry is not None:
                return MatchResult(entry, MatchMethod.TITLE_USERNAME)
        return NO_MATCH

    def __len__(self) -> int:
        return len(self._by_uuid)
