"""Tests for high-level Database API."""

import base64
import gzip
import uuid
from datetime import UTC, datetime
from pathlib import Path

import pytest

from kdbxdiff import Database, DatabaseSettings, Entry
from kdbxdiff.engine.accessor import PROTECTED_MASK, serialize_entry
from kdbxdiff.exceptions import (
    EntryNotFoundError,
    FormatError,
    GroupNotFoundError,
    InvalidXmlError,
)
from kdbxdiff.testing import add_entry, make_database, make_entry


def _b64_uuid(value: uuid.UUID) -> str:
    return base64.b64encode(value.bytes).decode("ascii")


ENTRY_UUID = uuid.UUID("11111111-1111-1111-1111-111111111111")

SAMPLE_XML = f"""<?xml version="1.0" encoding="utf-8"?>
<KeePassFile>
  <Meta>
    <Generator>KeePassXC</Generator>
    <DatabaseName>Laptop</DatabaseName>
    <MemoryProtection>
      <ProtectPassword>True</ProtectPassword>
    </MemoryProtection>
    <Binaries>
      <Binary ID="0" Compressed="True">{base64.b64encode(gzip.compress(b"hello")).decode()}</Binary>
      <Binary ID="1">{base64.b64encode(b"raw").decode()}</Binary>
    </Binaries>
  </Meta>
  <Root>
    <Group>
      <UUID>{_b64_uuid(uuid.UUID(int=1))}</UUID>
      <Name>Laptop</Name>
      <Group>
        <UUID>{_b64_uuid(uuid.UUID(int=2))}</UUID>
        <Name>Banking</Name>
        <Entry>
          <UUID>{_b64_uuid(ENTRY_UUID)}</UUID>
          <Tags>money;bank</Tags>
          <Times>
            <CreationTime>2024-01-01T12:00:00Z</CreationTime>
            <LastModificationTime>2024-02-01T08:30:00Z</LastModificationTime>
          </Times>
          <String><Key>Title</Key><Value>Bank</Value></String>
          <String><Key>UserName</Key><Value>alice</Value></String>
          <String><Key>Password</Key><Value ProtectInMemory="True">s3cret</Value></String>
          <String><Key>PIN</Key><Value>1234</Value></String>
          <Binary><Key>statement.pdf</Key><Value Ref="0"/></Binary>
          <Binary><Key>notes.txt</Key><Value Ref="1"/></Binary>
        </Entry>
      </Group>
    </Group>
  </Root>
</KeePassFile>
"""


class TestDatabaseOpen:
    """Tests for loading XML exports."""

    @pytest.fixture
    def sample_db(self) -> Database:
        """Database parsed from SAMPLE_XML."""
        return Database.from_xml(SAMPLE_XML)

    def test_settings_parsed(self, sample_db: Database) -> None:
        """Test that Meta is read into settings."""
        assert sample_db.settings.database_name == "Laptop"
        assert sample_db.settings.generator == "KeePassXC"
        assert sample_db.recycle_bin is None

    def test_entry_parsed(self, sample_db: Database) -> None:
        """Test that entry fields, tags and times are read."""
        entry = sample_db.find_entry_by_uuid(ENTRY_UUID)

        assert entry is not None
        assert entry.title == "Bank"
        assert entry.password == "s3cret"
        assert entry.is_protected("Password")
        assert not entry.is_protected("PIN")
        assert entry.tags == ["money", "bank"]
        assert entry.times.last_modification_time == datetime(2024, 2, 1, 8, 30, tzinfo=UTC)
        assert entry.times.last_access_time is None
        assert entry.parent is not None
        assert entry.parent.path == ["Banking"]

    def test_binaries_parsed(self, sample_db: Database) -> None:
        """Test that compressed and plain attachments are decoded."""
        entry = sample_db.find_entry_by_uuid(ENTRY_UUID)
        assert entry is not None

        assert sample_db.get_attachment(entry, "statement.pdf") == b"hello"
        assert sample_db.get_attachment(entry, "notes.txt") == b"raw"
        assert sample_db.list_attachments(entry) == ["statement.pdf", "notes.txt"]

    def test_root_group_has_database(self, sample_db: Database) -> None:
        """Test that the tree knows its database."""
        entry = sample_db.find_entry_by_uuid(ENTRY_UUID)
        assert entry is not None and entry.parent is not None

        assert sample_db.root_group.is_root_group
        assert entry.parent.database is sample_db

    def test_open_xml_file(self, tmp_path: Path) -> None:
        """Test opening from a file records the path."""
        path = tmp_path / "laptop.xml"
        path.write_text(SAMPLE_XML, encoding="utf-8")

        db = Database.open_xml(path)
        assert db.filepath == path
        assert len(db.entries()) == 1

    def test_open_file_not_found(self) -> None:
        """Test that opening non-existent file raises error."""
        with pytest.raises(FileNotFoundError):
            Database.open_xml("/nonexistent/path.xml")

    def test_malformed_xml(self) -> None:
        """Test that broken XML is reported as InvalidXmlError."""
        with pytest.raises(InvalidXmlError):
            Database.from_xml("<KeePassFile><Root>")

    def test_wrong_document(self) -> None:
        """Test that a non-KeePass document is rejected."""
        with pytest.raises(InvalidXmlError, match="KeePassFile"):
            Database.from_xml("<html/>")

    def test_missing_root_group(self) -> None:
        """Test that a document without a root group is rejected."""
        with pytest.raises(InvalidXmlError, match="Root"):
            Database.from_xml("<KeePassFile><Meta/></KeePassFile>")

    def test_entity_expansion_rejected(self) -> None:
        """Test that entity declarations are refused."""
        payload = (
            '<?xml version="1.0"?>'
            '<!DOCTYPE x [<!ENTITY a "aaaaaaaa">]>'
            "<KeePassFile>&a;</KeePassFile>"
        )
        with pytest.raises(InvalidXmlError):
            Database.from_xml(payload)

    def test_stream_encrypted_value_rejected(self) -> None:
        """Test that Protected="True" values are refused."""
        xml = SAMPLE_XML.replace('ProtectInMemory="True"', 'Protected="True"')
        with pytest.raises(FormatError, match="stream-encrypted"):
            Database.from_xml(xml)

    def test_meta_policy_protects_fields(self) -> None:
        """Test that Meta/MemoryProtection alone marks the password protected."""
        xml = SAMPLE_XML.replace(' ProtectInMemory="True"', "")
        db = Database.from_xml(xml)
        entry = db.find_entry_by_uuid(ENTRY_UUID)
        assert entry is not None

        assert entry.is_protected("Password")
        assert serialize_entry(entry)["fields"]["Password"] == PROTECTED_MASK

    def test_meta_policy_protects_history(self) -> None:
        """Test that history snapshots get the Meta policy too."""
        history = (
            "<History><Entry>"
            f"<UUID>{_b64_uuid(ENTRY_UUID)}</UUID>"
            "<String><Key>Password</Key><Value>older</Value></String>"
            "</Entry></History>"
        )
        xml = SAMPLE_XML.replace("</Entry>", f"{history}</Entry>", 1)
        entry = Database.from_xml(xml).find_entry_by_uuid(ENTRY_UUID)
        assert entry is not None

        assert entry.history[0].is_protected("Password")

    def test_value_flag_kept_when_policy_off(self) -> None:
        """Test that a per-value ProtectInMemory survives a disabled policy."""
        xml = SAMPLE_XML.replace(
            "<ProtectPassword>True</ProtectPassword>",
            "<ProtectPassword>False</ProtectPassword>",
        )
        entry = Database.from_xml(xml).find_entry_by_uuid(ENTRY_UUID)
        assert entry is not None

        assert entry.is_protected("Password")

    def test_invalid_binary_reference(self) -> None:
        """Test that a non-numeric attachment reference is InvalidXmlError."""
        xml = SAMPLE_XML.replace('<Value Ref="1"/>', '<Value Ref="x"/>')
        with pytest.raises(InvalidXmlError, match="binary reference"):
            Database.from_xml(xml)


class TestDatabaseCreate:
    """Tests for creating new databases."""

    def test_create_basic(self) -> None:
        """Test creating a new database."""
        db = Database.create(database_name="Test DB")

        assert db.root_group.name == "Test DB"
        assert db.settings.database_name == "Test DB"
        assert db.recycle_bin is not None
        assert db.recycle_bin.name == "Recycle Bin"

    def test_create_without_recycle_bin(self) -> None:
        """Test creating a database with no recycle bin."""
        db = Database.create(recycle_bin=False)
        assert db.recycle_bin is None
        assert list(db.iter_groups()) == []

    def test_create_entry_applies_protection_policy(self) -> None:
        """Test that create_entry follows memory protection settings."""
        db = Database.create()
        db.settings.memory_protection["UserName"] = True
        entry = db.create_entry()

        assert entry.parent is db.root_group
        assert entry.is_protected("Password")
        assert entry.is_protected("UserName")


class TestDatabaseSave:
    """Tests for writing XML."""

    def test_roundtrip_preserves_entries(self) -> None:
        """Test that entries survive to_xml/from_xml."""
        db = make_database("Save Test")
        entry = add_entry(
            db,
            "Work/Projects",
            title="Jira",
            username="dev",
            password="pw",
            custom={"Token": "abc"},
        )
        entry.tags = ["work", "tracking"]
        db.add_attachment(entry, "key.pem", b"PEM DATA")
        entry.save_history()

        db2 = Database.from_xml(db.to_xml())
        e = db2.find_entry_by_uuid(entry.uuid)

        assert e is not None
        assert e.title == "Jira"
        assert e.password == "pw"
        assert e.is_protected("Password")
        assert e.get_custom_property("Token") == "abc"
        assert e.tags == ["work", "tracking"]
        assert e.times.last_modification_time == entry.times.last_modification_time
        assert db2.get_attachment(e, "key.pem") == b"PEM DATA"
        assert len(e.history) == 1
        assert e.parent is not None
        assert e.parent.path == ["Work", "Projects"]

    def test_roundtrip_preserves_settings(self) -> None:
        """Test that settings survive save/load."""
        db = make_database()
        db.settings.database_name = "Custom Name"
        db.settings.database_description = "My Description"
        db.settings.default_username = "defaultuser"

        db2 = Database.from_xml(db.to_xml())

        assert db2.settings.database_name == "Custom Name"
        assert db2.settings.database_description == "My Description"
        assert db2.settings.default_username == "defaultuser"
        assert db2.recycle_bin is not None

    def test_save_and_reopen(self, tmp_path: Path) -> None:
        """Test that a saved file can be reopened."""
        path = tmp_path / "out.xml"
        db = make_database()
        add_entry(db, title="Test Entry")
        db.save_xml(path)

        db2 = Database.open_xml(path)
        assert [e.title for e in db2.entries()] == ["Test Entry"]

    def test_save_no_filepath_raises(self) -> None:
        """Test that saving without a path raises error."""
        db = make_database()
        with pytest.raises(ValueError, match="No filepath"):
            db.save_xml()


class TestDatabaseSettings:
    """Tests for DatabaseSettings."""

    def test_default_settings(self) -> None:
        """Test default settings values."""
        settings = DatabaseSettings()

        assert settings.generator == "kdbxdiff"
        assert settings.database_name == "Database"
        assert settings.recycle_bin_enabled is True
        assert settings.memory_protection["Password"] is True
        assert settings.memory_protection["Title"] is False


class TestRecycleBin:
    """Tests for recycle bin handling."""

    @pytest.fixture
    def db(self) -> Database:
        db = make_database()
        add_entry(db, title="Live")
        binned = add_entry(db, title="Binned")
        db.remove_entry(binned, use_recycle_bin=True)
        return db

    def test_binned_entries_excluded(self, db: Database) -> None:
        """Test that default enumeration skips the recycle bin."""
        assert [e.title for e in db.entries()] == ["Live"]
        titles = [e.title for e in db.entries(include_recycle_bin=True)]
        assert titles == ["Live", "Binned"]

    def test_is_in_recycle_bin(self, db: Database) -> None:
        """Test the recycle bin membership check."""
        binned = db.entries(include_recycle_bin=True)[1]
        assert db.is_in_recycle_bin(binned)
        assert not db.is_in_recycle_bin(db.entries()[0])

    def test_find_by_uuid_skips_recycle_bin(self, db: Database) -> None:
        """Test that UUID lookup ignores binned entries unless asked."""
        binned = db.entries(include_recycle_bin=True)[1]
        assert db.find_entry_by_uuid(binned.uuid) is None
        assert db.find_entry_by_uuid(binned.uuid, include_recycle_bin=True) is binned

    def test_recycle_bin_created_on_demand(self) -> None:
        """Test that binning recreates a missing recycle bin."""
        db = make_database(recycle_bin=False)
        db.settings.recycle_bin_enabled = True
        entry = add_entry(db, title="Gone")

        db.remove_entry(entry, use_recycle_bin=True)
        assert db.recycle_bin is not None
        assert entry.parent is db.recycle_bin


class TestTreeMutation:
    """Tests for the primitives merge operations are built on."""

    def test_ensure_group_path_creates_and_reuses(self) -> None:
        """Test that ensure_group_path creates once and then reuses."""
        db = make_database()
        first = db.ensure_group_path(["Work", "Projects"])
        second = db.ensure_group_path(["Work", "Projects"])

        assert first is second
        assert first.path == ["Work", "Projects"]
        assert len(db.find_groups(name="Work")) == 1

    def test_ensure_group_path_skips_own_root_name(self) -> None:
        """Test that a leading segment naming this root is skipped."""
        db = make_database("Laptop")
        group = db.ensure_group_path(["Laptop", "Banking"])

        assert group.path == ["Banking"]
        assert group.parent is db.root_group

    def test_ensure_group_path_keeps_foreign_root_name(self) -> None:
        """Test that another database's root name becomes a group."""
        db = make_database("Laptop")
        group = db.ensure_group_path(["Phone", "Banking"])
        assert group.path == ["Phone", "Banking"]

    def test_create_group_in_foreign_tree(self) -> None:
        """Test that a parent from another database is refused."""
        db = make_database("Laptop")
        other = make_database("Phone")
        with pytest.raises(GroupNotFoundError):
            db.create_group(other.root_group, "Stray")

    def test_ensure_group_path_empty(self) -> None:
        """Test that an empty path is the root group."""
        db = make_database()
        assert db.ensure_group_path([]) is db.root_group

    def test_import_entry_keeps_uuid_and_copies_binaries(self) -> None:
        """Test that an imported entry is an independent copy."""
        source = make_database("Phone")
        target = make_database("Laptop")
        entry = add_entry(source, title="Bank", password="pw")
        source.add_attachment(entry, "a.txt", b"12345")
        entry.save_history()

        copied = target.import_entry(entry, source_db=source)

        assert copied is not entry
        assert copied.uuid == entry.uuid
        assert copied.parent is target.root_group
        assert target.get_attachment(copied, "a.txt") == b"12345"
        assert len(copied.history) == 1
        assert copied.history[0].binaries[0].ref == copied.binaries[0].ref

        copied.title = "Changed"
        assert entry.title == "Bank"

    def test_replace_contents_keeps_identity_and_group(self) -> None:
        """Test that replace_contents copies data but not placement."""
        db_a = make_database("A")
        db_b = make_database("B")
        dst = add_entry(db_a, "Old", title="Bank", password="old")
        src = make_entry(title="Bank", password="new", modified=datetime(2025, 1, 1, tzinfo=UTC))
        src.tags = ["updated"]
        group = dst.parent
        uuid_before = dst.uuid

        db_a.replace_contents(dst, src, db_b)

        assert dst.uuid == uuid_before
        assert dst.parent is group
        assert dst.password == "new"
        assert dst.tags == ["updated"]
        assert dst.times.last_modification_time == datetime(2025, 1, 1, tzinfo=UTC)

    def test_remove_entry_deletes(self) -> None:
        """Test that remove_entry without recycle bin deletes outright."""
        db = make_database()
        entry = add_entry(db, title="Gone")

        db.remove_entry(entry)
        assert entry.parent is None
        assert db.entries(include_recycle_bin=True) == []

    def test_remove_detached_entry_raises(self) -> None:
        """Test removing an entry that isn't in the tree."""
        db = make_database()
        with pytest.raises(EntryNotFoundError):
            db.remove_entry(Entry.create(title="Stray"))


class TestDatabaseStr:
    """Tests for Database string representation."""

    def test_str_representation(self) -> None:
        """Test database string output."""
        db = Database.create(database_name="My Database", recycle_bin=False)
        db.root_group.create_entry(title="Entry1")
        db.root_group.create_subgroup("Group1")

        s = str(db)
        assert "My Database" in s
        assert "1 entries" in s
        assert "1 groups" in s
