"""Uniform read access over entries.

Every reconciliation component reads entries through these helpers, and
every entry that leaves the package as a plain record goes through
:func:`serialize_entry`. Masking of protected values is decided here and
nowhere else.
"""

from __future__ import annotations

import uuid as uuid_module
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any, TypeAlias

from ..database import KDBX_TIME_FORMAT, Database
from ..models import Entry

# Placeholder shown instead of a non-empty protected value
PROTECTED_MASK = "********"

# Sort key for entries that carry no modification time
OLDEST = datetime.min.replace(tzinfo=UTC)

EntrySource: TypeAlias = Database | Iterable[Entry]


def resolve_entries(source: EntrySource | None) -> list[Entry]:
    """Materialize an entry collection.

    A Database yields its entries outside the recycle bin, in tree order.
    None yields no entries.
    """
    if source is None:
        return []
    if isinstance(source, Database):
        return source.entries()
    return list(source)


def coerce_uuid(value: object) -> uuid_module.UUID | None:
    """Turn a UUID or UUID string into a UUID, or None if it isn't one."""
    if isinstance(value, uuid_module.UUID):
        return value
    if isinstance(value, str):
        try:
            return uuid_module.UUID(value)
        except ValueError:
            return None
    return None


def field_as_string(entry: Entry, name: str) -> str:
    """Return a field's real value, or "" if the field is absent or empty.

    Protected values are returned in plaintext; this is for comparisons
    inside the package, not for output.
    """
    value = entry.get_field(name)
    return "" if value is None else str(value)


def mask(value: str, protected: bool) -> str:
    """Apply the masking policy to one value."""
    if not protected:
        return value
    return PROTECTED_MASK if value else ""


def mask_value(entry: Entry, name: str, mask_protected: bool = True) -> str:
    """Return a field's value as it may be shown outside the package."""
    return mask(field_as_string(entry, name), mask_protected and entry.is_protected(name))


def group_path_names(entry: Entry, include_root: bool = False) -> list[str]:
    """Names of the groups from the top of the tree down to the entry's group.

    Args:
        entry: Entry to inspect
        include_root: Prefix the root group's name, if it has one

    Returns:
        Group names, outermost first; the entry itself is not included
    """
    group = entry.parent
    if group is None:
        return []
    names = group.path
    if include_root:
        current = group
        while current.parent is not None:
            current = current.parent
        if current.name:
            names.insert(0, current.name)
    return names


def group_path(entry: Entry) -> str:
    """Group path joined with "/"."""
    return "/".join(group_path_names(entry))


def owning_database(entry: Entry) -> Database | None:
    """Database whose tree holds the entry, if it is attached to one."""
    parent = entry.parent
    return parent.database if parent is not None else None


def attachment_sizes(entry: Entry, db: Database | None = None) -> dict[str, int]:
    """Size in bytes of each attachment, by attachment name.

    Attachment data is resolved through ``db`` or, when not given, the
    database the entry belongs to. Unresolvable attachments count as 0.
    """
    db = db or owning_database(entry)
    sizes: dict[str, int] = {}
    for binary_ref in entry.binaries:
        data = db.get_binary(binary_ref.ref) if db is not None else None
        sizes[binary_ref.key] = len(data) if data is not None else 0
    return sizes


def modification_time(entry: Entry) -> datetime:
    """Last modification time, with missing times sorting as oldest."""
    return entry.times.last_modification_time or OLDEST


def format_time(value: datetime | None) -> str | None:
    """Render a timestamp for output."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).strftime(KDBX_TIME_FORMAT)


def serialize_entry(entry: Entry, mask_protected: bool = True) -> dict[str, Any]:
    """Render an entry as a plain record.

    Args:
        entry: Entry to render
        mask_protected: Replace non-empty protected values with
            PROTECTED_MASK

    Returns:
        Dict with uuid, fields, times, groupPath, binaries and historyCount
    """
    return {
        "uuid": str(entry.uuid),
        "fields": {
            key: mask_value(entry, key, mask_protected) for key in entry.strings
        },
        "times": {
            "creationTime": format_time(entry.times.creation_time),
            "lastModTime": format_time(entry.times.last_modification_time),
            "lastAccessTime": format_time(entry.times.last_access_time),
        },
        "groupPath": group_path(entry),
        "binaries": [
            {"name": name, "size": size}
            for name, size in attachment_sizes(entry).items()
        ],
        "historyCount": len(entry.history),
    }
