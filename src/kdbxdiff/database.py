"""In-memory KeePass database and its XML representation.

This module provides the tree the reconciliation engines operate on:
- Loading and writing KeePass 2.x XML exports
- Creating new databases
- Enumerating entries (recycle bin aware)
- The mutating primitives used by merge operations: creating groups and
  entries, importing entries from another database, replacing an entry's
  contents, and removing entries

Decrypting the binary .kdbx container is not handled here; a database is
built from the decoded XML tree.
"""

from __future__ import annotations

import base64
import binascii
import copy
import gzip
import logging
import struct
import uuid as uuid_module
import zlib
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import cast
from xml.etree.ElementTree import Element, ParseError, SubElement, tostring

from defusedxml import DefusedXmlException
from defusedxml import ElementTree as DefusedET

from .exceptions import (
    EntryNotFoundError,
    FormatError,
    GroupNotFoundError,
    InvalidXmlError,
)
from .models import BinaryRef, Entry, Group, HistoryEntry, StringField, Times

logger = logging.getLogger(__name__)

# KeePass XML time format (ISO 8601, compatible with KeePass and KeePassXC)
KDBX_TIME_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# Name KeePass gives the recycle bin group when it creates one
RECYCLE_BIN_NAME = "Recycle Bin"

_NULL_UUID = uuid_module.UUID(int=0)


@dataclass
class DatabaseSettings:
    """Settings for a KeePass database.

    Attributes:
        generator: Generator application name
        database_name: Name of the database
        database_description: Description of the database
        default_username: Default username for new entries
        memory_protection: Which standard fields are protected
        recycle_bin_enabled: Whether recycle bin is enabled
        recycle_bin_uuid: UUID of recycle bin group
        history_max_items: Max history entries per entry
    """

    generator: str = "kdbxdiff"
    database_name: str = "Database"
    database_description: str = ""
    default_username: str = ""
    memory_protection: dict[str, bool] = field(
        default_factory=lambda: {
            "Title": False,
            "UserName": False,
            "Password": True,
            "URL": False,
            "Notes": False,
        }
    )
    recycle_bin_enabled: bool = True
    recycle_bin_uuid: uuid_module.UUID | None = None
    history_max_items: int = 10


class Database:
    """In-memory KeePass database.

    A database owns a tree of groups and entries, its settings, and a pool
    of binary attachments that entries reference by ID.

    Example usage:
        # Open an XML export
        db = Database.open_xml("passwords.xml")

        # Enumerate entries (recycle bin excluded)
        for entry in db.iter_entries():
            print(entry.title)

        # Create entry
        entry = db.root_group.create_entry(
            title="New Site",
            username="user",
            password="pass123",
        )

        # Write it back
        db.save_xml("merged.xml")
    """

    def __init__(
        self,
        root_group: Group,
        settings: DatabaseSettings | None = None,
        binaries: dict[int, bytes] | None = None,
    ) -> None:
        """Initialize database.

        Usually you should use Database.open_xml() or Database.create() instead.

        Args:
            root_group: Root group containing all entries/groups
            settings: Database settings
            binaries: Binary attachment pool (ref -> data)
        """
        self._root_group = root_group
        self._root_group._is_root = True
        self._root_group._database = self
        self._settings = settings or DatabaseSettings()
        self._binaries = binaries or {}
        self._filepath: Path | None = None

    @property
    def root_group(self) -> Group:
        """Get the root group of the database."""
        return self._root_group

    @property
    def default_group(self) -> Group:
        """Group new entries are placed in when no group is given."""
        return self._root_group

    @property
    def settings(self) -> DatabaseSettings:
        """Get database settings."""
        return self._settings

    @property
    def filepath(self) -> Path | None:
        """Get the file path (if opened from file)."""
        return self._filepath

    @property
    def recycle_bin(self) -> Group | None:
        """Get the recycle bin group, if the database has one."""
        rb_uuid = self._settings.recycle_bin_uuid
        if rb_uuid is None:
            return None
        return self._root_group.find_group_by_uuid(rb_uuid)

    # --- Opening and creating databases ---

    @classmethod
    def open_xml(cls, filepath: str | Path) -> Database:
        """Open a KeePass XML export.

        Args:
            filepath: Path to the .xml file

        Returns:
            Database instance

        Raises:
            FileNotFoundError: If file doesn't exist
            InvalidXmlError: If the file is not a KeePass XML document
        """
        filepath = Path(filepath)
        if not filepath.exists():
            raise FileNotFoundError(f"Database file not found: {filepath}")

        db = cls.from_xml(filepath.read_bytes())
        db._filepath = filepath
        return db

    @classmethod
    def from_xml(cls, data: bytes | str) -> Database:
        """Build a database from KeePass XML content.

        Args:
            data: XML document

        Returns:
            Database instance
        """
        root_group, settings, binaries = cls._parse_xml(data)
        db = cls(root_group=root_group, settings=settings, binaries=binaries)
        for entry in db.iter_entries(include_recycle_bin=True):
            for item in (entry, *entry.history):
                db.apply_protection_policy(item)
        logger.debug(
            "Loaded database %r (%d entries)",
            settings.database_name,
            sum(1 for _ in db.iter_entries(include_recycle_bin=True)),
        )
        return db

    @classmethod
    def create(
        cls,
        database_name: str = "Database",
        recycle_bin: bool = True,
    ) -> Database:
        """Create a new, empty database.

        Args:
            database_name: Name for the database and its root group
            recycle_bin: Whether to create a recycle bin group

        Returns:
            New Database instance
        """
        root_group = Group.create_root(database_name)
        settings = DatabaseSettings(
            database_name=database_name,
            recycle_bin_enabled=recycle_bin,
        )
        if recycle_bin:
            bin_group = Group(name=RECYCLE_BIN_NAME, icon_id="43")
            root_group.add_subgroup(bin_group)
            settings.recycle_bin_uuid = bin_group.uuid
        return cls(root_group=root_group, settings=settings)

    # --- Saving databases ---

    def save_xml(self, filepath: str | Path | None = None) -> None:
        """Write the database as a KeePass XML document.

        Args:
            filepath: Path to save to (uses original path if not specified)

        Raises:
            ValueError: If no filepath specified and database wasn't opened from file
        """
        if filepath:
            self._filepath = Path(filepath)
        elif self._filepath is None:
            raise ValueError("No filepath specified and database wasn't opened from file")

        self._filepath.write_bytes(self.to_xml())

    def to_xml(self) -> bytes:
        """Serialize the database to KeePass XML.

        Returns:
            UTF-8 encoded XML document
        """
        root = Element("KeePassFile")

        meta = SubElement(root, "Meta")
        self._build_meta(meta)

        root_elem = SubElement(root, "Root")
        self._build_group(root_elem, self._root_group)
        SubElement(root_elem, "DeletedObjects")

        return cast(bytes, tostring(root, encoding="utf-8", xml_declaration=True))

    # --- Enumeration and lookup ---

    def iter_entries(
        self, recursive: bool = True, include_recycle_bin: bool = False
    ) -> Iterator[Entry]:
        """Iterate over entries in the database.

        Args:
            recursive: Include entries from all subgroups
            include_recycle_bin: Include entries under the recycle bin

        Yields:
            Entry objects in tree order
        """
        recycle_bin = None if include_recycle_bin else self.recycle_bin
        for entry in self._root_group.iter_entries(recursive=recursive):
            if recycle_bin is not None and self._under(entry, recycle_bin):
                continue
            yield entry

    def iter_groups(self, recursive: bool = True) -> Iterator[Group]:
        """Iterate over all groups in the database (root excluded)."""
        yield from self._root_group.iter_groups(recursive=recursive)

    def entries(self, include_recycle_bin: bool = False) -> list[Entry]:
        """Return all entries as a list."""
        return list(self.iter_entries(include_recycle_bin=include_recycle_bin))

    def is_in_recycle_bin(self, entry: Entry) -> bool:
        """Check if an entry lives under the recycle bin group."""
        recycle_bin = self.recycle_bin
        return recycle_bin is not None and self._under(entry, recycle_bin)

    @staticmethod
    def _under(entry: Entry, group: Group) -> bool:
        parent = entry.parent
        return parent is not None and parent.is_within(group)

    def find_entry_by_uuid(
        self, uuid: uuid_module.UUID, include_recycle_bin: bool = False
    ) -> Entry | None:
        """Find an entry by UUID.

        Args:
            uuid: Entry UUID to find
            include_recycle_bin: Also search the recycle bin

        Returns:
            Entry if found, None otherwise
        """
        for entry in self.iter_entries(include_recycle_bin=include_recycle_bin):
            if entry.uuid == uuid:
                return entry
        return None

    def find_groups(self, name: str | None = None, recursive: bool = True) -> list[Group]:
        """Find groups by name."""
        return self._root_group.find_groups(name=name, recursive=recursive)

    # --- Tree mutation ---

    def create_group(self, parent: Group | None, name: str) -> Group:
        """Create a named group under ``parent`` (root if None).

        Raises:
            GroupNotFoundError: If ``parent`` belongs to another tree
        """
        if parent is not None and parent.database is not self:
            raise GroupNotFoundError(f"Group {parent.uuid} is not in this database")
        return (parent or self._root_group).create_subgroup(name)

    def create_entry(self, group: Group | None = None) -> Entry:
        """Create an empty entry in ``group`` (default group if None).

        The entry gets the standard fields with empty values and the
        database's protection policy applied.
        """
        entry = Entry.create()
        self.apply_protection_policy(entry)
        return (group or self.default_group).add_entry(entry)

    def ensure_group_path(self, names: Sequence[str]) -> Group:
        """Ensure a group path exists, creating missing groups.

        Walks from the root group. If the first name equals the root group's
        name it is skipped, so a path taken from another database's tree
        lands under this database's root rather than in a copy of it.

        Args:
            names: Group names from the top level down to the target group

        Returns:
            The deepest group in the path
        """
        current = self._root_group
        start = 1 if names and names[0] == current.name else 0
        for name in names[start:]:
            child = current.find_subgroup(name)
            if child is None:
                child = self.create_group(current, name)
                logger.debug("Created group %r", "/".join(child.path))
            current = child
        return current

    def import_entry(
        self,
        entry: Entry,
        group: Group | None = None,
        source_db: Database | None = None,
    ) -> Entry:
        """Copy an entry (from any database) into this database.

        The copy keeps the source UUID, so later reconciliation passes still
        match it by identity. Strings, tags, times and history are copied;
        attachment data is copied into this database's binary pool.

        Args:
            entry: Entry to copy
            group: Destination group (default group if None)
            source_db: Database owning the entry's attachments
                (defaults to this database)

        Returns:
            The new entry
        """
        refs: dict[int, int] = {}
        new_entry = Entry(
            uuid=entry.uuid,
            times=copy.deepcopy(entry.times),
            icon_id=entry.icon_id,
            tags=list(entry.tags),
            strings=copy.deepcopy(entry.strings),
            binaries=self._copy_binary_refs(entry.binaries, source_db, refs),
            history=self._copy_history(entry, entry.uuid, source_db, refs),
        )
        (group or self.default_group).add_entry(new_entry)
        logger.debug("Imported entry %s", entry.uuid)
        return new_entry

    def replace_contents(
        self,
        dst: Entry,
        src: Entry,
        source_db: Database | None = None,
    ) -> None:
        """Replace an entry's contents with another entry's.

        Copies strings, tags, icon, binaries, history and modification
        times. The destination keeps its own UUID and group placement.

        Args:
            dst: Entry in this database to overwrite
            src: Entry to copy from
            source_db: Database owning ``src``'s attachments
                (defaults to this database)
        """
        refs: dict[int, int] = {}
        dst.strings = copy.deepcopy(src.strings)
        dst.tags = list(src.tags)
        dst.icon_id = src.icon_id
        dst.binaries = self._copy_binary_refs(src.binaries, source_db, refs)
        dst.history = self._copy_history(src, dst.uuid, source_db, refs)
        location_changed = dst.times.location_changed
        dst.times = copy.deepcopy(src.times)
        dst.times.location_changed = location_changed
        logger.debug("Replaced contents of entry %s from %s", dst.uuid, src.uuid)

    def remove_entry(self, entry: Entry, use_recycle_bin: bool = False) -> None:
        """Remove an entry from the database.

        Args:
            entry: Entry to remove
            use_recycle_bin: Move the entry into the recycle bin (created
                if missing) instead of deleting it, when the database has
                the recycle bin enabled

        Raises:
            EntryNotFoundError: If the entry is not attached to a group
        """
        parent = entry.parent
        if parent is None:
            raise EntryNotFoundError(f"Entry {entry.uuid} is not in a group")
        parent.remove_entry(entry)

        if use_recycle_bin and self._settings.recycle_bin_enabled:
            recycle_bin = self.recycle_bin
            if recycle_bin is None:
                recycle_bin = self._root_group.create_subgroup(RECYCLE_BIN_NAME, icon_id="43")
                self._settings.recycle_bin_uuid = recycle_bin.uuid
            recycle_bin.add_entry(entry)
            entry.times.update_location()
            logger.debug("Moved entry %s to recycle bin", entry.uuid)
        else:
            logger.debug("Deleted entry %s", entry.uuid)

    def _copy_history(
        self,
        entry: Entry,
        uuid: uuid_module.UUID,
        source_db: Database | None,
        refs: dict[int, int],
    ) -> list[HistoryEntry]:
        history = []
        for item in entry.history:
            snapshot = HistoryEntry.from_entry(item)
            snapshot.uuid = uuid
            snapshot.binaries = self._copy_binary_refs(item.binaries, source_db, refs)
            history.append(snapshot)
        return history

    def _copy_binary_refs(
        self,
        binaries: list[BinaryRef],
        source_db: Database | None,
        refs: dict[int, int],
    ) -> list[BinaryRef]:
        if source_db is None or source_db is self:
            return [BinaryRef(b.key, b.ref) for b in binaries]
        copied = []
        for binary_ref in binaries:
            if binary_ref.ref not in refs:
                data = source_db.get_binary(binary_ref.ref)
                refs[binary_ref.ref] = self.add_binary(data if data is not None else b"")
            copied.append(BinaryRef(binary_ref.key, refs[binary_ref.ref]))
        return copied

    # --- Memory protection ---

    def apply_protection_policy(self, entry: Entry) -> None:
        """Apply the database's memory protection policy to an entry.

        Marks the entry's standard string fields protected where the
        database's memory_protection settings ask for it. Fields already
        flagged protected stay protected.

        Args:
            entry: Entry to apply policy to
        """
        for key, string_field in entry.strings.items():
            if self._settings.memory_protection.get(key):
                string_field.protected = True

    # --- Binary attachments ---

    def get_binary(self, ref: int) -> bytes | None:
        """Get binary attachment data by reference ID."""
        return self._binaries.get(ref)

    def add_binary(self, data: bytes) -> int:
        """Add a new binary to the pool.

        Args:
            data: Binary data

        Returns:
            Reference ID for the new binary
        """
        ref = max(self._binaries.keys(), default=-1) + 1
        self._binaries[ref] = data
        return ref

    def get_attachment(self, entry: Entry, name: str) -> bytes | None:
        """Get an attachment from an entry by filename.

        Args:
            entry: Entry to get attachment from
            name: Filename of the attachment

        Returns:
            Attachment data or None if not found
        """
        for binary_ref in entry.binaries:
            if binary_ref.key == name:
                return self._binaries.get(binary_ref.ref)
        return None

    def add_attachment(self, entry: Entry, name: str, data: bytes) -> None:
        """Add an attachment to an entry.

        Args:
            entry: Entry to add attachment to
            name: Filename for the attachment
            data: Attachment data
        """
        ref = self.add_binary(data)
        entry.binaries.append(BinaryRef(key=name, ref=ref))

    def list_attachments(self, entry: Entry) -> list[str]:
        """List all attachment filenames for an entry."""
        return [binary_ref.key for binary_ref in entry.binaries]

    # --- XML parsing ---

    @classmethod
    def _parse_xml(
        cls, xml_data: bytes | str
    ) -> tuple[Group, DatabaseSettings, dict[int, bytes]]:
        """Parse KeePass XML into models.

        Returns:
            Tuple of (root_group, settings, binaries)

        Raises:
            InvalidXmlError: If the document is malformed or not KeePass XML
            FormatError: If the document holds stream-encrypted values
        """
        try:
            root = DefusedET.fromstring(xml_data)
        except (ParseError, DefusedXmlException) as e:
            raise InvalidXmlError(f"Invalid KeePass XML: {e}") from e

        if root.tag != "KeePassFile":
            raise InvalidXmlError("Invalid KeePass XML: missing KeePassFile element")

        meta_elem = root.find("Meta")
        settings = cls._parse_meta(meta_elem)
        binaries = cls._parse_binaries(meta_elem)

        root_elem = root.find("Root")
        if root_elem is None:
            raise InvalidXmlError("Invalid KeePass XML: missing Root element")

        group_elem = root_elem.find("Group")
        if group_elem is None:
            raise InvalidXmlError("Invalid KeePass XML: missing root Group element")

        root_group = cls._parse_group(group_elem)
        root_group._is_root = True

        return root_group, settings, binaries

    @classmethod
    def _parse_meta(cls, meta_elem: Element | None) -> DatabaseSettings:
        """Parse Meta element into DatabaseSettings."""
        settings = DatabaseSettings()

        if meta_elem is None:
            return settings

        def get_text(tag: str) -> str | None:
            elem = meta_elem.find(tag)
            return elem.text if elem is not None else None

        if name := get_text("DatabaseName"):
            settings.database_name = name
        if desc := get_text("DatabaseDescription"):
            settings.database_description = desc
        if username := get_text("DefaultUserName"):
            settings.default_username = username
        if gen := get_text("Generator"):
            settings.generator = gen
        if max_items := get_text("HistoryMaxItems"):
            try:
                settings.history_max_items = int(max_items)
            except ValueError:
                pass

        mp_elem = meta_elem.find("MemoryProtection")
        if mp_elem is not None:
            for field_name in ["Title", "UserName", "Password", "URL", "Notes"]:
                elem = mp_elem.find(f"Protect{field_name}")
                if elem is not None:
                    settings.memory_protection[field_name] = elem.text == "True"

        if rb := get_text("RecycleBinEnabled"):
            settings.recycle_bin_enabled = rb == "True"
        if rb_uuid := get_text("RecycleBinUUID"):
            parsed = cls._decode_uuid(rb_uuid)
            settings.recycle_bin_uuid = parsed if parsed != _NULL_UUID else None

        return settings

    @classmethod
    def _parse_binaries(cls, meta_elem: Element | None) -> dict[int, bytes]:
        """Parse the Meta/Binaries pool of an XML export."""
        binaries: dict[int, bytes] = {}
        if meta_elem is None:
            return binaries
        pool = meta_elem.find("Binaries")
        if pool is None:
            return binaries
        for elem in pool.findall("Binary"):
            ref = elem.get("ID")
            if ref is None:
                continue
            try:
                data = base64.b64decode(elem.text or "")
                if elem.get("Compressed") == "True":
                    data = gzip.decompress(data)
                binaries[int(ref)] = data
            except (binascii.Error, ValueError, OSError, EOFError, zlib.error) as e:
                raise InvalidXmlError(f"Invalid binary attachment {ref}") from e
        return binaries

    @classmethod
    def _parse_group(cls, elem: Element) -> Group:
        """Parse a Group element into a Group model."""
        group = Group()

        uuid_elem = elem.find("UUID")
        if uuid_elem is not None and uuid_elem.text:
            group.uuid = cls._decode_uuid(uuid_elem.text)

        name_elem = elem.find("Name")
        if name_elem is not None:
            group.name = name_elem.text

        notes_elem = elem.find("Notes")
        if notes_elem is not None:
            group.notes = notes_elem.text

        icon_elem = elem.find("IconID")
        if icon_elem is not None and icon_elem.text:
            group.icon_id = icon_elem.text

        group.times = cls._parse_times(elem.find("Times"))

        for entry_elem in elem.findall("Entry"):
            group.add_entry(cls._parse_entry(entry_elem))

        for subgroup_elem in elem.findall("Group"):
            group.add_subgroup(cls._parse_group(subgroup_elem))

        return group

    @classmethod
    def _parse_entry(cls, elem: Element) -> Entry:
        """Parse an Entry element into an Entry model."""
        entry = Entry()

        uuid_elem = elem.find("UUID")
        if uuid_elem is not None and uuid_elem.text:
            entry.uuid = cls._decode_uuid(uuid_elem.text)

        icon_elem = elem.find("IconID")
        if icon_elem is not None and icon_elem.text:
            entry.icon_id = icon_elem.text

        tags_elem = elem.find("Tags")
        if tags_elem is not None and tags_elem.text:
            tag_text = tags_elem.text.replace(",", ";")
            entry.tags = [t.strip() for t in tag_text.split(";") if t.strip()]

        entry.times = cls._parse_times(elem.find("Times"))

        for string_elem in elem.findall("String"):
            key_elem = string_elem.find("Key")
            value_elem = string_elem.find("Value")
            if key_elem is None or not key_elem.text:
                continue
            key = key_elem.text
            value = None
            protected = False
            if value_elem is not None:
                if value_elem.get("Protected") == "True":
                    raise FormatError(
                        f"Field {key!r} is stream-encrypted; "
                        "load a plain XML export instead"
                    )
                value = value_elem.text
                protected = value_elem.get("ProtectInMemory") == "True"
            entry.strings[key] = StringField(key=key, value=value, protected=protected)

        for binary_elem in elem.findall("Binary"):
            key_elem = binary_elem.find("Key")
            value_elem = binary_elem.find("Value")
            if key_elem is not None and key_elem.text and value_elem is not None:
                ref = value_elem.get("Ref")
                if ref is not None:
                    try:
                        ref_id = int(ref)
                    except ValueError as e:
                        raise InvalidXmlError(f"Invalid binary reference {ref!r}") from e
                    entry.binaries.append(BinaryRef(key=key_elem.text, ref=ref_id))

        history_elem = elem.find("History")
        if history_elem is not None:
            for hist_entry_elem in history_elem.findall("Entry"):
                hist_entry = cls._parse_entry(hist_entry_elem)
                entry.history.append(HistoryEntry.from_entry(hist_entry))

        return entry

    @classmethod
    def _parse_times(cls, times_elem: Element | None) -> Times:
        """Parse Times element into Times model.

        Times absent from the document stay None.
        """
        times = Times()

        if times_elem is None:
            return times

        def parse_time(tag: str) -> datetime | None:
            elem = times_elem.find(tag)
            if elem is not None and elem.text:
                return cls._decode_time(elem.text)
            return None

        times.creation_time = parse_time("CreationTime")
        times.last_modification_time = parse_time("LastModificationTime")
        times.last_access_time = parse_time("LastAccessTime")
        times.expiry_time = parse_time("ExpiryTime")
        times.location_changed = parse_time("LocationChanged")

        expires_elem = times_elem.find("Expires")
        if expires_elem is not None:
            times.expires = expires_elem.text == "True"

        usage_elem = times_elem.find("UsageCount")
        if usage_elem is not None and usage_elem.text:
            try:
                times.usage_count = int(usage_elem.text)
            except ValueError:
                times.usage_count = 0

        return times

    @classmethod
    def _decode_uuid(cls, text: str) -> uuid_module.UUID:
        """Decode a base64 UUID as stored in KeePass XML."""
        try:
            return uuid_module.UUID(bytes=base64.b64decode(text))
        except (binascii.Error, ValueError) as e:
            raise InvalidXmlError(f"Invalid UUID value: {text!r}") from e

    @classmethod
    def _decode_time(cls, time_str: str) -> datetime | None:
        """Decode KeePass time string to datetime.

        KDBX4-era documents use base64-encoded int64 seconds since
        0001-01-01; exports use ISO 8601. Unparseable values yield None.
        """
        # Base64 strings don't contain - or : which are present in ISO dates
        if "-" not in time_str and ":" not in time_str:
            try:
                binary = base64.b64decode(time_str)
                if len(binary) == 8:
                    seconds = struct.unpack("<q", binary)[0]
                    return datetime(1, 1, 1, tzinfo=UTC) + timedelta(seconds=seconds)
            except (binascii.Error, ValueError, OverflowError, struct.error):
                pass

        try:
            return datetime.strptime(time_str, KDBX_TIME_FORMAT).replace(tzinfo=UTC)
        except ValueError:
            pass

        try:
            parsed = datetime.fromisoformat(time_str.replace("Z", "+00:00"))
        except ValueError:
            logger.debug("Unparseable time value %r", time_str)
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=UTC)
        return parsed.astimezone(UTC)

    @classmethod
    def _encode_time(cls, dt: datetime) -> str:
        """Encode datetime to ISO 8601 format (e.g., 2025-01-15T10:30:45Z)."""
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=UTC)
        return dt.astimezone(UTC).strftime(KDBX_TIME_FORMAT)

    # --- XML building ---

    def _build_meta(self, meta: Element) -> None:
        """Build Meta element from settings and the binary pool."""
        s = self._settings

        SubElement(meta, "Generator").text = s.generator
        SubElement(meta, "DatabaseName").text = s.database_name
        if s.database_description:
            SubElement(meta, "DatabaseDescription").text = s.database_description
        if s.default_username:
            SubElement(meta, "DefaultUserName").text = s.default_username

        mp = SubElement(meta, "MemoryProtection")
        for field_name, is_protected in s.memory_protection.items():
            SubElement(mp, f"Protect{field_name}").text = str(is_protected)

        SubElement(meta, "RecycleBinEnabled").text = str(s.recycle_bin_enabled)
        SubElement(meta, "RecycleBinUUID").text = self._encode_uuid(
            s.recycle_bin_uuid or _NULL_UUID
        )
        SubElement(meta, "HistoryMaxItems").text = str(s.history_max_items)

        if self._binaries:
            pool = SubElement(meta, "Binaries")
            for ref in sorted(self._binaries):
                elem = SubElement(pool, "Binary", ID=str(ref), Compressed="True")
                elem.text = base64.b64encode(
                    gzip.compress(self._binaries[ref])
                ).decode("ascii")

    def _build_group(self, parent: Element, group: Group) -> None:
        """Build Group element from Group model."""
        elem = SubElement(parent, "Group")

        SubElement(elem, "UUID").text = self._encode_uuid(group.uuid)
        SubElement(elem, "Name").text = group.name or ""
        if group.notes:
            SubElement(elem, "Notes").text = group.notes
        SubElement(elem, "IconID").text = group.icon_id

        self._build_times(elem, group.times)

        for entry in group.entries:
            self._build_entry(elem, entry)

        for subgroup in group.subgroups:
            self._build_group(elem, subgroup)

    def _build_entry(self, parent: Element, entry: Entry) -> None:
        """Build Entry element from Entry model."""
        elem = SubElement(parent, "Entry")

        SubElement(elem, "UUID").text = self._encode_uuid(entry.uuid)
        SubElement(elem, "IconID").text = entry.icon_id

        if entry.tags:
            SubElement(elem, "Tags").text = ";".join(entry.tags)

        self._build_times(elem, entry.times)

        for key, string_field in entry.strings.items():
            string_elem = SubElement(elem, "String")
            SubElement(string_elem, "Key").text = key
            value_elem = SubElement(string_elem, "Value")
            value_elem.text = string_field.value or ""
            if string_field.protected or self._settings.memory_protection.get(key, False):
                value_elem.set("ProtectInMemory", "True")

        for binary_ref in entry.binaries:
            binary_elem = SubElement(elem, "Binary")
            SubElement(binary_elem, "Key").text = binary_ref.key
            SubElement(binary_elem, "Value", Ref=str(binary_ref.ref))

        if entry.history:
            history_elem = SubElement(elem, "History")
            for hist_entry in entry.history:
                self._build_entry(history_elem, hist_entry)

    def _build_times(self, parent: Element, times: Times) -> None:
        """Build Times element from Times model. None times are omitted."""
        elem = SubElement(parent, "Times")

        for tag, value in (
            ("CreationTime", times.creation_time),
            ("LastModificationTime", times.last_modification_time),
            ("LastAccessTime", times.last_access_time),
            ("ExpiryTime", times.expiry_time),
        ):
            if value is not None:
                SubElement(elem, tag).text = self._encode_time(value)
        SubElement(elem, "Expires").text = str(times.expires)
        SubElement(elem, "UsageCount").text = str(times.usage_count)
        if times.location_changed:
            SubElement(elem, "LocationChanged").text = self._encode_time(times.location_changed)

    @staticmethod
    def _encode_uuid(value: uuid_module.UUID) -> str:
        return base64.b64encode(value.bytes).decode("ascii")

    def __str__(self) -> str:
        entry_count = sum(1 for _ in self.iter_entries())
        group_count = sum(1 for _ in self.iter_groups())
        name = self._settings.database_name
        return f'Database: "{name}" ({entry_count} entries, {group_count} groups)'
