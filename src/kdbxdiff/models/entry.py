"""Entry model for KeePass password entries."""

from __future__ import annotations

import copy
import uuid as uuid_module
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from .times import Times

if TYPE_CHECKING:
    from .group import Group


class WellKnownField(Enum):
    """Standard string fields every KeePass entry carries."""

    TITLE = "Title"
    USERNAME = "UserName"
    PASSWORD = "Password"
    URL = "URL"
    NOTES = "Notes"

    @classmethod
    def is_well_known(cls, key: str) -> bool:
        """Check whether a field name is one of the standard fields."""
        return key in WELL_KNOWN_KEYS


WELL_KNOWN_KEYS = frozenset(f.value for f in WellKnownField)

# Standard fields that are protected when an entry is created
DEFAULT_PROTECTED_KEYS = frozenset({WellKnownField.PASSWORD.value})


@dataclass
class StringField:
    """A string field in an entry.

    Attributes:
        key: Field name (e.g., "Title", "UserName", "Password")
        value: Field value
        protected: Whether the field holds a sensitive value
    """

    key: str
    value: str | None = None
    protected: bool = False


@dataclass
class BinaryRef:
    """Reference to a binary attachment.

    Attributes:
        key: Filename of the attachment
        ref: Reference ID to the binary in the owning database's pool
    """

    key: str
    ref: int


@dataclass
class Entry:
    """A password entry.

    Entries store credentials and associated metadata. Each entry has
    standard fields (title, username, password, url, notes) plus any number
    of custom string fields and binary attachments.

    Attributes:
        uuid: Unique identifier for the entry
        times: Timestamps (creation, modification, access, expiry)
        icon_id: Icon ID for display
        tags: List of tags for categorization
        strings: Dictionary of string fields (key -> StringField)
        binaries: List of binary attachment references
        history: List of previous versions of this entry
    """

    uuid: uuid_module.UUID = field(default_factory=uuid_module.uuid4)
    times: Times = field(default_factory=Times.create_new)
    icon_id: str = "0"
    tags: list[str] = field(default_factory=list)
    strings: dict[str, StringField] = field(default_factory=dict)
    binaries: list[BinaryRef] = field(default_factory=list)
    history: list[HistoryEntry] = field(default_factory=list)

    # Runtime reference to parent group (not serialized)
    _parent: Group | None = field(default=None, repr=False, compare=False)

    # --- Standard field properties ---

    @property
    def title(self) -> str | None:
        """Get or set entry title."""
        return self.get_field(WellKnownField.TITLE.value)

    @title.setter
    def title(self, value: str | None) -> None:
        self.set_field(WellKnownField.TITLE.value, value)

    @property
    def username(self) -> str | None:
        """Get or set entry username."""
        return self.get_field(WellKnownField.USERNAME.value)

    @username.setter
    def username(self, value: str | None) -> None:
        self.set_field(WellKnownField.USERNAME.value, value)

    @property
    def password(self) -> str | None:
        """Get or set entry password."""
        return self.get_field(WellKnownField.PASSWORD.value)

    @password.setter
    def password(self, value: str | None) -> None:
        self.set_field(WellKnownField.PASSWORD.value, value)

    @property
    def url(self) -> str | None:
        """Get or set entry URL."""
        return self.get_field(WellKnownField.URL.value)

    @url.setter
    def url(self, value: str | None) -> None:
        self.set_field(WellKnownField.URL.value, value)

    @property
    def notes(self) -> str | None:
        """Get or set entry notes."""
        return self.get_field(WellKnownField.NOTES.value)

    @notes.setter
    def notes(self, value: str | None) -> None:
        self.set_field(WellKnownField.NOTES.value, value)

    # --- Generic field access ---

    def get_field(self, key: str) -> str | None:
        """Get a field value by name, or None if the field is absent."""
        string_field = self.strings.get(key)
        return string_field.value if string_field else None

    def set_field(
        self, key: str, value: str | None, protected: bool | None = None
    ) -> None:
        """Set a field value, creating the field if needed.

        Args:
            key: Field name (standard or custom)
            value: New value
            protected: Protection flag; None keeps the existing flag, or
                applies the default policy for a new field
        """
        existing = self.strings.get(key)
        if existing is None:
            if protected is None:
                protected = key in DEFAULT_PROTECTED_KEYS
            self.strings[key] = StringField(key=key, value=value, protected=protected)
            return
        existing.value = value
        if protected is not None:
            existing.protected = protected

    def is_protected(self, key: str) -> bool:
        """Check whether a field is marked protected."""
        return key in self.protected_keys

    @property
    def protected_keys(self) -> frozenset[str]:
        """Names of all fields marked protected on this entry."""
        return frozenset(k for k, v in self.strings.items() if v.protected)

    @property
    def field_names(self) -> list[str]:
        """Names of all fields present on this entry."""
        return list(self.strings)

    # --- Custom properties ---

    def get_custom_property(self, key: str) -> str | None:
        """Get a custom property value.

        Args:
            key: Property name (must not be a standard field)

        Returns:
            Property value, or None if not set

        Raises:
            ValueError: If key is a standard field name
        """
        if key in WELL_KNOWN_KEYS:
            raise ValueError(f"{key} is a reserved key, use the property instead")
        return self.get_field(key)

    def set_custom_property(
        self, key: str, value: str, protected: bool = False
    ) -> None:
        """Set a custom property.

        Args:
            key: Property name (must not be a standard field)
            value: Property value
            protected: Whether the value is sensitive

        Raises:
            ValueError: If key is a standard field name
        """
        if key in WELL_KNOWN_KEYS:
            raise ValueError(f"{key} is a reserved key, use the property instead")
        self.strings[key] = StringField(key=key, value=value, protected=protected)

    def delete_custom_property(self, key: str) -> None:
        """Delete a custom property.

        Raises:
            ValueError: If key is a standard field name
            KeyError: If property doesn't exist
        """
        if key in WELL_KNOWN_KEYS:
            raise ValueError(f"{key} is a reserved key")
        if key not in self.strings:
            raise KeyError(f"No such property: {key}")
        del self.strings[key]

    @property
    def custom_properties(self) -> dict[str, str | None]:
        """Get all custom properties as a dictionary."""
        return {
            k: v.value
            for k, v in self.strings.items()
            if k not in WELL_KNOWN_KEYS
        }

    # --- Convenience methods ---

    @property
    def parent(self) -> Group | None:
        """Get parent group."""
        return self._parent

    def touch(self, modify: bool = False) -> None:
        """Update access time, optionally modification time."""
        self.times.touch(modify=modify)

    def save_history(self) -> None:
        """Save current state to history before making changes."""
        self.history.append(HistoryEntry.from_entry(self))

    def __str__(self) -> str:
        return f'Entry: "{self.title}" ({self.username})'

    def __hash__(self) -> int:
        return hash(self.uuid)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Entry):
            return self.uuid == other.uuid
        return NotImplemented

    @classmethod
    def create(
        cls,
        title: str | None = None,
        username: str | None = None,
        password: str | None = None,
        url: str | None = None,
        notes: str | None = None,
        tags: list[str] | None = None,
        icon_id: str = "0",
    ) -> Entry:
        """Create a new entry with the standard fields populated.

        Returns:
            New Entry instance with a fresh UUID
        """
        entry = cls(times=Times.create_new(), icon_id=icon_id, tags=tags or [])
        entry.title = title
        entry.username = username
        entry.password = password
        entry.url = url
        entry.notes = notes
        return entry


@dataclass(eq=False)
class HistoryEntry(Entry):
    """A historical version of an entry.

    History entries are snapshots of an entry at a previous point in time.
    They share the same UUID as their parent entry.
    """

    def __str__(self) -> str:
        return f'HistoryEntry: "{self.title}" ({self.times.last_modification_time})'

    def __hash__(self) -> int:
        # History entries share UUID with parent
        return hash((self.uuid, self.times.last_modification_time))

    @classmethod
    def from_entry(cls, entry: Entry) -> HistoryEntry:
        """Create a history snapshot of an entry.

        Args:
            entry: Entry to snapshot

        Returns:
            New HistoryEntry with copied data and no history of its own
        """
        return cls(
            uuid=entry.uuid,
            times=copy.deepcopy(entry.times),
            icon_id=entry.icon_id,
            tags=list(entry.tags),
            strings=copy.deepcopy(entry.strings),
            binaries=[BinaryRef(b.key, b.ref) for b in entry.binaries],
            history=[],
            _parent=None,
        )
