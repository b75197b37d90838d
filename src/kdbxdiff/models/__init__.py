"""Data models for KeePass database elements.

This module provides typed Python classes for representing the decoded
contents of a KeePass database: entries, groups, and their timestamps.
"""

from .entry import (
    WELL_KNOWN_KEYS,
    BinaryRef,
    Entry,
    HistoryEntry,
    StringField,
    WellKnownField,
)
from .group import Group
from .times import Times, utc_now

__all__ = [
    "WELL_KNOWN_KEYS",
    "BinaryRef",
    "Entry",
    "Group",
    "HistoryEntry",
    "StringField",
    "Times",
    "WellKnownField",
    "utc_now",
]
