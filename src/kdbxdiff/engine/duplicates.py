"""Near-duplicate detection within one database.

Entries are grouped by a normalized key. Two criteria are supported:

- ``username+url``: lowercased username plus a normalized URL, so that
  ``https://www.example.com/login`` and ``example.com/`` collide
- ``title+username``: normalized title plus lowercased username, so that
  ``Example (old)`` and ``example - Login`` collide

Within a group the most recently modified entry is suggested for keeping
and the rest for removal. Nothing is removed until the caller asks for it
with :func:`remove_entries`.

URL and title normalization are heuristics. They are applied in a fixed
order and are not a complete canonicalization.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..database import Database
from ..exceptions import InvalidCriteriaError
from ..models import Entry, WellKnownField
from .accessor import (
    EntrySource,
    coerce_uuid,
    field_as_string,
    modification_time,
    resolve_entries,
    serialize_entry,
)

logger = logging.getLogger(__name__)

# Path segments that mark a login page; they and everything after are dropped
AUTH_PATH_SUFFIXES = ("login", "signin", "sign-in", "log-in", "auth", "account")

# Trailing title decorations that don't change which site an entry is for
TITLE_NOISE_SUFFIXES = (
    "login",
    "log in",
    "signin",
    "sign in",
    "account",
    "old",
    "new",
    "copy",
    "duplicate",
    "backup",
)

_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.\-]*://")
_AUTH_PATH_RE = re.compile(
    r"/(?:%s)(?:/.*)?$" % "|".join(re.escape(s) for s in AUTH_PATH_SUFFIXES)
)
_PAREN_RE = re.compile(r"\s*\([^()]*\)$")
_NOISE_RE = re.compile(
    r"\s+[-–—]\s*(?:%s)$" % "|".join(re.escape(s) for s in TITLE_NOISE_SUFFIXES)
)


class DuplicateCriteria(Enum):
    """Which fields make two entries duplicates."""

    USERNAME_URL = "username+url"
    TITLE_USERNAME = "title+username"

    @classmethod
    def parse(cls, value: DuplicateCriteria | str) -> DuplicateCriteria:
        """Look up criteria by value.

        Raises:
            InvalidCriteriaError: If the value names no criteria
        """
        if isinstance(value, cls):
            return value
        for criteria in cls:
            if criteria.value == value:
                return criteria
        raise InvalidCriteriaError(value)


def normalize_url(url: str) -> str:
    """Reduce a URL to a comparison key.

    Steps, in order: lowercase, strip the scheme, strip a leading ``www.``,
    drop the fragment and query, drop an auth path segment and everything
    after it, drop trailing slashes.
    """
    url = url.strip().lower()
    url = _SCHEME_RE.sub("", url)
    if url.startswith("www."):
        url = url[4:]
    url = re.split(r"[?#]", url, maxsplit=1)[0]
    url = url.rstrip("/")
    url = _AUTH_PATH_RE.sub("", url)
    return url.rstrip("/")


def normalize_title(title: str) -> str:
    """Reduce a title to a comparison key.

    Lowercases, collapses whitespace, then repeatedly strips a trailing
    parenthetical note or a trailing ``- login``-style suffix.
    """
    title = " ".join(title.lower().split())
    while True:
        stripped = _NOISE_RE.sub("", _PAREN_RE.sub("", title)).strip()
        if stripped == title:
            return title
        title = stripped


def duplicate_key(entry: Entry, criteria: DuplicateCriteria) -> str | None:
    """Normalized key for an entry, or None if it can't be a duplicate."""
    username = field_as_string(entry, WellKnownField.USERNAME.value).lower()
    if criteria is DuplicateCriteria.USERNAME_URL:
        parts = (username, normalize_url(field_as_string(entry, WellKnownField.URL.value)))
    else:
        parts = (normalize_title(field_as_string(entry, WellKnownField.TITLE.value)), username)
    if not all(parts):
        return None
    return "|".join(parts)


@dataclass(slots=True)
class DuplicateGroup:
    """Entries sharing one key, newest first."""

    key: str
    entries: list[Entry]

    @property
    def keep(self) -> Entry:
        return self.entries[0]

    @property
    def remove(self) -> list[Entry]:
        return self.entries[1:]

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "entries": [
                {**serialize_entry(e), "suggested": "keep" if i == 0 else "remove"}
                for i, e in enumerate(self.entries)
            ],
        }


@dataclass(slots=True)
class DuplicateResult:
    """Duplicate groups found in one collection."""

    criteria: DuplicateCriteria
    groups: list[DuplicateGroup] = field(default_factory=list)

    @property
    def summary(self) -> dict[str, int]:
        return {
            "totalGroups": len(self.groups),
            "totalDuplicates": sum(len(g.entries) - 1 for g in self.groups),
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "criteria": self.criteria.value,
            "groups": [g.to_dict() for g in self.groups],
            "summary": self.summary,
        }


@dataclass(frozen=True, slots=True)
class RemoveResult:
    """Outcome of a removal batch."""

    removed: int
    skipped: int

    def to_dict(self) -> dict[str, int]:
        return {"removed": self.removed, "skipped": self.skipped}


def find_duplicates(
    entries: EntrySource,
    criteria: DuplicateCriteria | str = DuplicateCriteria.USERNAME_URL,
) -> DuplicateResult:
    """Find groups of near-duplicate entries.

    Args:
        entries: Database or entries to scan
        criteria: ``"username+url"`` or ``"title+username"``

    Returns:
        DuplicateResult with only groups of two or more entries

    Raises:
        InvalidCriteriaError: If criteria is not recognized
    """
    criteria = DuplicateCriteria.parse(criteria)
    buckets: dict[str, list[Entry]] = {}
    for entry in resolve_entries(entries):
        key = duplicate_key(entry, criteria)
        if key is not None:
            buckets.setdefault(key, []).append(entry)

    result = DuplicateResult(criteria=criteria)
    for key, bucket in buckets.items():
        if len(bucket) < 2:
            continue
        bucket.sort(key=modification_time, reverse=True)
        result.groups.append(DuplicateGroup(key, bucket))

    logger.info(
        "Found %d duplicate groups (%d removable entries) by %s",
        len(result.groups),
        result.summary["totalDuplicates"],
        criteria.value,
    )
    return result


def remove_entries(
    db: Database,
    uuids: Iterable[object],
    use_recycle_bin: bool = False,
) -> RemoveResult:
    """Remove entries by UUID.

    Args:
        db: Database to remove from
        uuids: UUIDs or UUID strings
        use_recycle_bin: Move entries to the recycle bin instead of deleting

    Returns:
        RemoveResult; ids that don't resolve are counted as skipped
    """
    removed = skipped = 0
    for value in uuids:
        uuid = coerce_uuid(value)
        entry = db.find_entry_by_uuid(uuid) if uuid is not None else None
        if entry is None:
            logger.debug("Skipping removal of unknown entry %s", value)
            skipped += 1
            continue
        db.remove_entry(entry, use_recycle_bin=use_recycle_bin)
        removed += 1
    logger.info("Removed %d entries (%d skipped)", removed, skipped)
    return RemoveResult(removed, skipped)
