"""Test utilities for kdbxdiff.

Builders for in-memory databases and entries with predictable timestamps,
so reconciliation scenarios can be set up without XML fixtures.

Example:
    >>> db = make_database("Laptop")
    >>> entry = add_entry(db, "Banking", title="Bank", username="alice")
    >>> "/".join(entry.parent.path)
    'Banking'
"""

from __future__ import annotations

import uuid as uuid_module
from collections.abc import Sequence
from datetime import UTC, datetime

from kdbxdiff.database import Database
from kdbxdiff.models import Entry, Group, Times

# Timestamp used for every builder-made entry unless told otherwise
DEFAULT_TIME = datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)


def fixed_times(modified: datetime | None = DEFAULT_TIME) -> Times:
    """Times with creation and access at DEFAULT_TIME and the given modification."""
    return Times(
        creation_time=DEFAULT_TIME,
        last_modification_time=modified,
        last_access_time=DEFAULT_TIME,
        location_changed=DEFAULT_TIME,
    )


def make_entry(
    title: str | None = None,
    username: str | None = None,
    password: str | None = None,
    url: str | None = None,
    notes: str | None = None,
    *,
    uuid: uuid_module.UUID | str | None = None,
    modified: datetime | None = DEFAULT_TIME,
    custom: dict[str, str] | None = None,
) -> Entry:
    """Build a free-standing entry.

    Args:
        title: Title field
        username: UserName field
        password: Password field (protected)
        url: URL field
        notes: Notes field
        uuid: Fixed UUID (random if None)
        modified: Last modification time (None for a missing time)
        custom: Extra unprotected fields

    Returns:
        Entry not attached to any group
    """
    entry = Entry.create(
        title=title, username=username, password=password, url=url, notes=notes
    )
    if uuid is not None:
        entry.uuid = uuid if isinstance(uuid, uuid_module.UUID) else uuid_module.UUID(uuid)
    entry.times = fixed_times(modified)
    for key, value in (custom or {}).items():
        entry.set_custom_property(key, value)
    return entry


def make_database(name: str = "Database", recycle_bin: bool = True) -> Database:
    """Build an empty database."""
    return Database.create(database_name=name, recycle_bin=recycle_bin)


def group_at(db: Database, path: str | Sequence[str] | None) -> Group:
    """Return the group at a "/"-separated path, creating it if needed."""
    if not path:
        return db.root_group
    names = path.split("/") if isinstance(path, str) else list(path)
    return db.ensure_group_path(names)


def add_entry(
    db: Database,
    path: str | Sequence[str] | None = None,
    **kwargs: object,
) -> Entry:
    """Build an entry with :func:`make_entry` and file it under ``path``.

    Args:
        db: Database to add to
        path: Group path below the root (root if None)
        **kwargs: Passed to make_entry

    Returns:
        The added entry
    """
    entry = make_entry(**kwargs)  # type: ignore[arg-type]
    db.apply_protection_policy(entry)
    return group_at(db, path).add_entry(entry)
