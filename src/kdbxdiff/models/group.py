"""Group model for KeePass database folders."""

from __future__ import annotations

import uuid as uuid_module
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .entry import Entry
from .times import Times

if TYPE_CHECKING:
    from ..database import Database


@dataclass
class Group:
    """A group (folder) in a KeePass database.

    Groups organize entries into a hierarchical structure. Each group can
    contain entries and subgroups.

    Attributes:
        uuid: Unique identifier for the group
        name: Display name of the group
        notes: Optional notes/description
        times: Timestamps (creation, modification, access, expiry)
        icon_id: Icon ID for display
        entries: List of entries in this group
        subgroups: List of subgroups
    """

    uuid: uuid_module.UUID = field(default_factory=uuid_module.uuid4)
    name: str | None = None
    notes: str | None = None
    times: Times = field(default_factory=Times.create_new)
    icon_id: str = "48"  # Default folder icon
    entries: list[Entry] = field(default_factory=list)
    subgroups: list[Group] = field(default_factory=list)

    # Runtime reference to parent group (not serialized)
    _parent: Group | None = field(default=None, repr=False, compare=False)
    # Flag for root group
    _is_root: bool = field(default=False, repr=False)
    # Owning database, set on the root group only (not serialized)
    _database: Database | None = field(default=None, repr=False, compare=False)

    @property
    def parent(self) -> Group | None:
        """Get parent group, or None if this is the root."""
        return self._parent

    @property
    def database(self) -> Database | None:
        """Get the database owning this group's tree, if any."""
        current: Group | None = self
        while current is not None:
            if current._database is not None:
                return current._database
            current = current._parent
        return None

    @property
    def is_root_group(self) -> bool:
        """Check if this is the database root group."""
        return self._is_root

    @property
    def path(self) -> list[str]:
        """Get path from root to this group.

        Returns:
            List of group names from root (exclusive) to this group (inclusive).
            Empty list for the root group. Unnamed groups are skipped.
        """
        parts: list[str] = []
        current: Group | None = self
        while current is not None and not current.is_root_group:
            if current.name:
                parts.insert(0, current.name)
            current = current._parent
        return parts

    def touch(self, modify: bool = False) -> None:
        """Update access time, optionally modification time."""
        self.times.touch(modify=modify)

    def is_within(self, other: Group) -> bool:
        """Check if this group is ``other`` or one of its descendants."""
        current: Group | None = self
        while current is not None:
            if current is other or current.uuid == other.uuid:
                return True
            current = current._parent
        return False

    # --- Entry management ---

    def add_entry(self, entry: Entry) -> Entry:
        """Add an entry to this group.

        Args:
            entry: Entry to add

        Returns:
            The added entry
        """
        entry._parent = self
        self.entries.append(entry)
        return entry

    def remove_entry(self, entry: Entry) -> None:
        """Remove an entry from this group.

        Args:
            entry: Entry to remove

        Raises:
            ValueError: If entry is not in this group
        """
        for i, candidate in enumerate(self.entries):
            if candidate is entry:
                del self.entries[i]
                entry._parent = None
                self.touch(modify=True)
                return
        raise ValueError("Entry not in this group")

    def create_entry(
        self,
        title: str | None = None,
        username: str | None = None,
        password: str | None = None,
        url: str | None = None,
        notes: str | None = None,
        tags: list[str] | None = None,
    ) -> Entry:
        """Create and add a new entry to this group.

        Returns:
            Newly created entry
        """
        entry = Entry.create(
            title=title,
            username=username,
            password=password,
            url=url,
            notes=notes,
            tags=tags,
        )
        return self.add_entry(entry)

    # --- Subgroup management ---

    def add_subgroup(self, group: Group) -> Group:
        """Add a subgroup to this group.

        Args:
            group: Group to add

        Returns:
            The added group
        """
        group._parent = self
        self.subgroups.append(group)
        return group

    def create_subgroup(
        self,
        name: str,
        notes: str | None = None,
        icon_id: str = "48",
    ) -> Group:
        """Create and add a new subgroup.

        Args:
            name: Group name
            notes: Optional notes
            icon_id: Icon ID

        Returns:
            Newly created group
        """
        group = Group(name=name, notes=notes, icon_id=icon_id)
        self.touch(modify=True)
        return self.add_subgroup(group)

    def find_subgroup(self, name: str) -> Group | None:
        """Return the first direct subgroup with the given name."""
        for subgroup in self.subgroups:
            if subgroup.name == name:
                return subgroup
        return None

    # --- Iteration and search ---

    def iter_entries(self, recursive: bool = True) -> Iterator[Entry]:
        """Iterate over entries in this group.

        Args:
            recursive: If True, include entries from all subgroups

        Yields:
            Entry objects
        """
        yield from self.entries
        if recursive:
            for subgroup in self.subgroups:
                yield from subgroup.iter_entries(recursive=True)

    def iter_groups(self, recursive: bool = True) -> Iterator[Group]:
        """Iterate over subgroups.

        Args:
            recursive: If True, include nested subgroups

        Yields:
            Group objects
        """
        for subgroup in self.subgroups:
            yield subgroup
            if recursive:
                yield from subgroup.iter_groups(recursive=True)

    def find_entry_by_uuid(
        self, uuid: uuid_module.UUID, recursive: bool = True
    ) -> Entry | None:
        """Find an entry by UUID.

        Args:
            uuid: Entry UUID to find
            recursive: Search in subgroups

        Returns:
            Entry if found, None otherwise
        """
        for entry in self.iter_entries(recursive=recursive):
            if entry.uuid == uuid:
                return entry
        return None

    def find_group_by_uuid(
        self, uuid: uuid_module.UUID, recursive: bool = True
    ) -> Group | None:
        """Find a group by UUID.

        Args:
            uuid: Group UUID to find
            recursive: Search in nested subgroups

        Returns:
            Group if found, None otherwise
        """
        if self.uuid == uuid:
            return self
        for group in self.iter_groups(recursive=recursive):
            if group.uuid == uuid:
                return group
        return None

    def find_groups(
        self,
        name: str | None = None,
        recursive: bool = True,
    ) -> list[Group]:
        """Find groups matching criteria.

        Args:
            name: Match groups with this name (exact)
            recursive: Search in nested subgroups

        Returns:
            List of matching groups
        """
        results = []
        for group in self.iter_groups(recursive=recursive):
            if name is not None and group.name != name:
                continue
            results.append(group)
        return results

    def __str__(self) -> str:
        path_str = "/".join(self.path) if self.path else "(root)"
        return f'Group: "{path_str}"'

    def __hash__(self) -> int:
        return hash(self.uuid)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Group):
            return self.uuid == other.uuid
        return NotImplemented

    @classmethod
    def create_root(cls, name: str = "Root") -> Group:
        """Create a root group for a new database.

        Args:
            name: Name for the root group

        Returns:
            New root Group instance
        """
        group = cls(name=name)
        group._is_root = True
        return group
